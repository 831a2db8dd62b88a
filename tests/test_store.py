import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

from google.api_core import exceptions

from models import CardRecord
from store import (
    CardStoreError,
    FirestoreCardStore,
    InMemoryCardStore,
    from_document,
    to_utc_datetime,
)

CREATED = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_record(slug="acme"):
    return CardRecord(
        owner_id="owner-1",
        business_name="Acme Inc",
        phone_number="555-1234",
        email="a@acme.com",
        address="1 Main St",
        url_slug=slug,
        keywords=["cafe"],
        created_at=CREATED,
        updated_at=CREATED,
    )


def make_snapshot(doc_id, data, exists=True):
    snapshot = MagicMock()
    snapshot.id = doc_id
    snapshot.exists = exists
    snapshot.to_dict.return_value = data
    return snapshot


class InMemoryCardStoreTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryCardStore()

    def test_create_assigns_id(self):
        card_id = self.store.create(make_record())
        self.assertEqual(self.store.get(card_id).id, card_id)

    def test_returned_records_are_copies(self):
        card_id = self.store.create(make_record())
        self.store.get(card_id).keywords.append("mutated")
        self.assertEqual(self.store.get(card_id).keywords, ["cafe"])

    def test_update_missing_card_raises(self):
        with self.assertRaises(CardStoreError):
            self.store.update("missing", {"business_name": "X"})

    def test_query_preserves_insertion_order(self):
        first = self.store.create(make_record("dup"))
        second = self.store.create(make_record("dup"))
        self.store.create(make_record("other"))
        ids = [record.id for record in self.store.query_by_field("url_slug", "dup")]
        self.assertEqual(ids, [first, second])


class TimestampConversionTests(unittest.TestCase):
    def test_naive_datetime_is_treated_as_utc(self):
        value = to_utc_datetime(datetime(2024, 5, 1, 12, 0))
        self.assertEqual(value, CREATED)
        self.assertIs(type(value), datetime)

    def test_aware_datetime_is_normalised_to_utc(self):
        offset = timezone(timedelta(hours=2))
        value = to_utc_datetime(datetime(2024, 5, 1, 14, 0, tzinfo=offset))
        self.assertEqual(value.utcoffset(), timedelta(0))
        self.assertEqual(value, CREATED)

    def test_datetime_subclass_becomes_plain_datetime(self):
        class NanoDatetime(datetime):
            pass

        value = to_utc_datetime(NanoDatetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc))
        self.assertIs(type(value), datetime)

    def test_protobuf_timestamp(self):
        stamp = MagicMock()
        stamp.ToDatetime.return_value = CREATED
        self.assertEqual(to_utc_datetime(stamp), CREATED)
        stamp.ToDatetime.assert_called_once_with(tzinfo=timezone.utc)

    def test_unsupported_value(self):
        with self.assertRaises(CardStoreError):
            to_utc_datetime("2024-05-01")

    def test_missing_created_at_falls_back_to_updated_at(self):
        record = from_document("abc", {"businessName": "Acme", "updatedAt": CREATED})
        self.assertEqual(record.created_at, CREATED)
        self.assertEqual(record.updated_at, CREATED)
        self.assertEqual(record.phone_number, "")
        self.assertEqual(record.keywords, [])


class FirestoreCardStoreTests(unittest.TestCase):
    def setUp(self):
        self.client = MagicMock()
        self.collection = self.client.collection.return_value
        self.store = FirestoreCardStore(client=self.client, collection="businessCards")

    def test_create_writes_camel_case_document(self):
        doc_ref = MagicMock()
        doc_ref.id = "doc-1"
        self.collection.add.return_value = (CREATED, doc_ref)

        self.assertEqual(self.store.create(make_record()), "doc-1")
        self.client.collection.assert_called_with("businessCards")
        document = self.collection.add.call_args[0][0]
        self.assertEqual(document["businessName"], "Acme Inc")
        self.assertEqual(document["userId"], "owner-1")
        self.assertEqual(document["urlSlug"], "acme")
        self.assertEqual(document["createdAt"], CREATED)
        self.assertNotIn("id", document)

    def test_update_maps_field_names(self):
        self.store.update("doc-1", {"keywords": ["a", "b"], "updated_at": CREATED})
        self.collection.document.assert_called_with("doc-1")
        self.collection.document.return_value.update.assert_called_once_with(
            {"keywords": ["a", "b"], "updatedAt": CREATED}
        )

    def test_update_missing_document_raises_store_error(self):
        self.collection.document.return_value.update.side_effect = exceptions.NotFound(
            "No document to update"
        )
        with self.assertRaises(CardStoreError):
            self.store.update("doc-1", {"business_name": "X"})

    def test_get_missing_document(self):
        self.collection.document.return_value.get.return_value = make_snapshot(
            "doc-1", None, exists=False
        )
        self.assertIsNone(self.store.get("doc-1"))

    def test_query_by_slug_converts_documents(self):
        self.collection.where.return_value.stream.return_value = [
            make_snapshot(
                "doc-1",
                {
                    "businessName": "Acme Inc",
                    "userId": "owner-1",
                    "urlSlug": "acme",
                    "createdAt": datetime(2024, 5, 1, 12, 0),
                    "updatedAt": datetime(2024, 5, 2, 12, 0),
                },
            )
        ]
        records = self.store.query_by_field("url_slug", "acme")
        self.collection.where.assert_called_once_with("urlSlug", "==", "acme")
        self.assertEqual(len(records), 1)
        self.assertEqual(records[0].id, "doc-1")
        self.assertEqual(records[0].owner_id, "owner-1")
        self.assertEqual(records[0].created_at, CREATED)
        self.assertEqual(records[0].updated_at.tzinfo, timezone.utc)

    def test_query_failure_propagates(self):
        self.collection.where.return_value.stream.side_effect = RuntimeError("unavailable")
        with self.assertRaises(RuntimeError):
            self.store.query_by_field("url_slug", "acme")


if __name__ == "__main__":
    unittest.main()
