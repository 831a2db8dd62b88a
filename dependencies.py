"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from fastapi import Depends, Request

from cards import CardService
from config import Settings
from store import CardStore, FirestoreCardStore, InMemoryCardStore


def build_card_store(settings: Settings) -> CardStore:
    if settings.use_in_memory_backends or not settings.firebase_project_id:
        return InMemoryCardStore()
    return FirestoreCardStore(
        project=settings.firebase_project_id,
        collection=settings.cards_collection,
    )


def get_card_store(request: Request) -> CardStore:
    """
    Return the store built once in create_app so cards persist across requests.
    """
    return request.app.state.card_store


def get_card_service(store: CardStore = Depends(get_card_store)) -> CardService:
    return CardService(store)
