"""
Card persistence: a Firestore-backed store and an in-memory test implementation.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol

from google.api_core import exceptions

from models import CardRecord


class CardStoreError(Exception):
    """Raised when the store cannot satisfy a request."""


class CardStore(Protocol):
    """Interface for card persistence."""

    def create(self, record: CardRecord) -> str:
        ...

    def update(self, card_id: str, fields: dict) -> None:
        ...

    def get(self, card_id: str) -> Optional[CardRecord]:
        ...

    def query_by_field(self, field: str, value) -> List[CardRecord]:
        ...


class InMemoryCardStore:
    """Simple in-memory store for development and tests."""

    def __init__(self):
        self.cards: Dict[str, CardRecord] = {}

    def create(self, record: CardRecord) -> str:
        card_id = uuid.uuid4().hex
        self.cards[card_id] = record.model_copy(update={"id": card_id}, deep=True)
        return card_id

    def update(self, card_id: str, fields: dict) -> None:
        existing = self.cards.get(card_id)
        if existing is None:
            raise CardStoreError(f"card {card_id} does not exist")
        self.cards[card_id] = existing.model_copy(update=fields, deep=True)

    def get(self, card_id: str) -> Optional[CardRecord]:
        record = self.cards.get(card_id)
        return record.model_copy(deep=True) if record is not None else None

    def query_by_field(self, field: str, value) -> List[CardRecord]:
        # dicts keep insertion order, which stands in for the native result order
        return [
            record.model_copy(deep=True)
            for record in self.cards.values()
            if getattr(record, field) == value
        ]


# Firestore documents use the camelCase layout shared with the web client.
FIRESTORE_FIELDS = {
    "owner_id": "userId",
    "business_name": "businessName",
    "business_description": "businessDescription",
    "phone_number": "phoneNumber",
    "email": "email",
    "address": "address",
    "website": "website",
    "hero_image": "heroImage",
    "url_slug": "urlSlug",
    "keywords": "keywords",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
}


def to_utc_datetime(value) -> Optional[datetime]:
    """Convert a Firestore timestamp value into a plain UTC datetime."""
    if value is None:
        return None
    if hasattr(value, "ToDatetime"):
        return value.ToDatetime(tzinfo=timezone.utc)
    if not isinstance(value, datetime):
        raise CardStoreError(f"unsupported timestamp value: {value!r}")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    # DatetimeWithNanoseconds subclasses datetime; rebuild as a plain one.
    return datetime(
        value.year,
        value.month,
        value.day,
        value.hour,
        value.minute,
        value.second,
        value.microsecond,
        tzinfo=timezone.utc,
    )


def to_document(fields: dict) -> dict:
    return {FIRESTORE_FIELDS[key]: value for key, value in fields.items() if key != "id"}


def from_document(card_id: str, data: dict) -> CardRecord:
    created_at = to_utc_datetime(data.get("createdAt"))
    updated_at = to_utc_datetime(data.get("updatedAt"))
    if created_at is None:
        created_at = updated_at or datetime.now(timezone.utc)
    if updated_at is None:
        updated_at = created_at
    return CardRecord(
        id=card_id,
        owner_id=data.get("userId") or "",
        business_name=data.get("businessName") or "",
        business_description=data.get("businessDescription") or "",
        phone_number=data.get("phoneNumber") or "",
        email=data.get("email") or "",
        address=data.get("address") or "",
        website=data.get("website") or "",
        hero_image=data.get("heroImage") or "",
        url_slug=data.get("urlSlug") or "",
        keywords=list(data.get("keywords") or []),
        created_at=created_at,
        updated_at=updated_at,
    )


class FirestoreCardStore:
    """
    Card store backed by a Cloud Firestore collection.
    """

    def __init__(self, client=None, project: str | None = None, collection: str = "businessCards"):
        if client is None:
            from google.cloud import firestore

            client = firestore.Client(project=project)
        self._client = client
        self._collection = collection

    def _cards(self):
        return self._client.collection(self._collection)

    def create(self, record: CardRecord) -> str:
        _, doc_ref = self._cards().add(to_document(record.model_dump()))
        return doc_ref.id

    def update(self, card_id: str, fields: dict) -> None:
        try:
            self._cards().document(card_id).update(to_document(fields))
        except exceptions.NotFound as e:
            raise CardStoreError(f"card {card_id} does not exist") from e

    def get(self, card_id: str) -> Optional[CardRecord]:
        snapshot = self._cards().document(card_id).get()
        if not snapshot.exists:
            return None
        return from_document(snapshot.id, snapshot.to_dict())

    def query_by_field(self, field: str, value) -> List[CardRecord]:
        query = self._cards().where(FIRESTORE_FIELDS[field], "==", value)
        return [from_document(snapshot.id, snapshot.to_dict()) for snapshot in query.stream()]
