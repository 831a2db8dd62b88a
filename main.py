import logging
from pathlib import Path
from typing import List

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse, Response
from fastapi.templating import Jinja2Templates
from fastapi.staticfiles import StaticFiles

from auth import FirebaseTokenVerifier, OwnerContext, get_owner_context
from cards import CardNotFound, CardOwnershipError, CardService, SlugConflict
from config import get_settings
from dependencies import build_card_store, get_card_service
from models import CardCreate, CardRecord, CardUpdate, PublicCard
from utils import (
    VCARD_MEDIA_TYPE,
    build_card_package,
    card_url,
    content_disposition,
    generate_vcard,
    make_qr_png,
    vcard_filename,
)

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

api = APIRouter()
public = APIRouter()


def _store_failure(action: str, e: Exception) -> HTTPException:
    logger.exception("Failed to %s", action)
    return HTTPException(status_code=500, detail=f"Failed to {action}: {str(e)}")


def _load_public_card(service: CardService, slug: str) -> PublicCard:
    try:
        return service.resolve_slug(slug)
    except CardNotFound:
        raise HTTPException(status_code=404, detail="Card not found")
    except Exception as e:
        raise _store_failure("load card", e) from e


# -------- Owner endpoints --------
@api.post("/cards", response_model=CardRecord, status_code=201)
def create_card(
    payload: CardCreate,
    owner: OwnerContext = Depends(get_owner_context),
    service: CardService = Depends(get_card_service),
):
    try:
        return service.create_card(owner, payload)
    except SlugConflict as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        raise _store_failure("save card", e) from e


@api.put("/cards/{card_id}", response_model=CardRecord)
def update_card(
    card_id: str,
    payload: CardUpdate,
    owner: OwnerContext = Depends(get_owner_context),
    service: CardService = Depends(get_card_service),
):
    try:
        return service.update_card(owner, card_id, payload)
    except CardNotFound:
        raise HTTPException(status_code=404, detail="Card not found")
    except CardOwnershipError:
        raise HTTPException(status_code=403, detail="Card belongs to another user")
    except SlugConflict as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        raise _store_failure("update card", e) from e


@api.get("/cards", response_model=List[CardRecord])
def list_cards(
    owner: OwnerContext = Depends(get_owner_context),
    service: CardService = Depends(get_card_service),
):
    try:
        return service.list_cards(owner)
    except Exception as e:
        raise _store_failure("list cards", e) from e


@api.get("/public/cards/{slug}", response_model=PublicCard)
def get_public_card(slug: str, service: CardService = Depends(get_card_service)):
    return _load_public_card(service, slug)


# -------- Public card pages --------
@public.get("/", response_class=HTMLResponse)
async def index(request: Request):
    return templates.TemplateResponse(request, "index.html")


@public.get("/card/{slug}", response_class=HTMLResponse)
def card_page(request: Request, slug: str, service: CardService = Depends(get_card_service)):
    try:
        card = service.resolve_slug(slug)
    except CardNotFound:
        return templates.TemplateResponse(
            request, "not_found.html", {"slug": slug}, status_code=404
        )
    except Exception as e:
        raise _store_failure("load card", e) from e
    return templates.TemplateResponse(request, "card.html", {"card": card})


@public.get("/card/{slug}/vcard")
def download_vcard(slug: str, service: CardService = Depends(get_card_service)):
    card = _load_public_card(service, slug)
    return Response(
        content=generate_vcard(card.model_dump()),
        media_type=VCARD_MEDIA_TYPE,
        headers={"Content-Disposition": content_disposition(vcard_filename(card.business_name))},
    )


@public.get("/card/{slug}/qrcode")
def card_qrcode(slug: str, service: CardService = Depends(get_card_service)):
    card = _load_public_card(service, slug)
    settings = get_settings()
    png = make_qr_png(card_url(settings.public_base_url, card.url_slug), settings.qr_logo_path)
    return Response(content=png, media_type="image/png")


@public.get("/card/{slug}/package")
def card_package(slug: str, service: CardService = Depends(get_card_service)):
    card = _load_public_card(service, slug)
    settings = get_settings()
    png = make_qr_png(card_url(settings.public_base_url, card.url_slug), settings.qr_logo_path)
    return Response(
        content=build_card_package(generate_vcard(card.model_dump()), png),
        media_type="application/zip",
        headers={"Content-Disposition": content_disposition("digital_card.zip")},
    )


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)
    app = FastAPI(title="Digital Business Card API", version="0.1.0")
    # Built once per app; sync routes share them across the threadpool.
    app.state.card_store = build_card_store(settings)
    app.state.token_verifier = FirebaseTokenVerifier(settings.firebase_project_id)
    app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")
    app.include_router(api, prefix=settings.api_prefix)
    app.include_router(public)
    return app


app = create_app()
