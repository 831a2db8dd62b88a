"""
Card operations: owner-scoped create/update/list and public slug resolution.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from auth import OwnerContext
from models import CardCreate, CardRecord, CardUpdate, PublicCard
from store import CardStore
from utils import generate_slug

logger = logging.getLogger(__name__)

SLUG_ATTEMPTS = 5


class CardNotFound(Exception):
    pass


class CardOwnershipError(Exception):
    pass


class SlugConflict(Exception):
    pass


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CardService:
    def __init__(self, store: CardStore, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.clock = clock

    def _slug_taken(self, slug: str, card_id: Optional[str] = None) -> bool:
        return any(record.id != card_id for record in self.store.query_by_field("url_slug", slug))

    def _new_slug(self) -> str:
        for _ in range(SLUG_ATTEMPTS):
            slug = generate_slug()
            if not self._slug_taken(slug):
                return slug
        raise SlugConflict("could not generate an unused slug")

    def create_card(self, owner: OwnerContext, payload: CardCreate) -> CardRecord:
        if payload.url_slug:
            if self._slug_taken(payload.url_slug):
                raise SlugConflict(f"slug {payload.url_slug!r} is already in use")
            slug = payload.url_slug
        else:
            slug = self._new_slug()

        now = self.clock()
        record = CardRecord(
            **payload.model_dump(exclude={"url_slug"}),
            url_slug=slug,
            owner_id=owner.owner_id,
            created_at=now,
            updated_at=now,
        )
        card_id = self.store.create(record)
        logger.info("Created card %s with slug %s for owner %s", card_id, slug, owner.owner_id)
        return record.model_copy(update={"id": card_id})

    def update_card(self, owner: OwnerContext, card_id: str, payload: CardUpdate) -> CardRecord:
        existing = self.store.get(card_id)
        if existing is None:
            raise CardNotFound(card_id)
        if existing.owner_id != owner.owner_id:
            raise CardOwnershipError(card_id)

        fields = payload.model_dump(exclude_unset=True, exclude_none=True)
        slug = fields.get("url_slug")
        if slug and slug != existing.url_slug and self._slug_taken(slug, card_id):
            raise SlugConflict(f"slug {slug!r} is already in use")

        fields["updated_at"] = max(self.clock(), existing.created_at)
        self.store.update(card_id, fields)
        logger.info("Updated card %s (%s)", card_id, ", ".join(sorted(fields)))
        return existing.model_copy(update=fields)

    def list_cards(self, owner: OwnerContext) -> List[CardRecord]:
        return self.store.query_by_field("owner_id", owner.owner_id)

    def resolve_slug(self, slug: str) -> PublicCard:
        """
        Return the public view of the card published under ``slug``.

        Matching is exact. When several records share a slug the first one in
        store order wins; store errors propagate unchanged.
        """
        matches = self.store.query_by_field("url_slug", slug)
        if not matches:
            raise CardNotFound(slug)
        if len(matches) > 1:
            logger.warning("Slug %s matches %d cards; using %s", slug, len(matches), matches[0].id)
        return matches[0].to_public()
