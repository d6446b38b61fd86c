"""Tests for the key-value stores and invoice storage."""

import json
from decimal import Decimal

import pytest

from invoice_manager.models.invoice import (
    Client,
    CompanyProfile,
    Contact,
    InvoiceLineItem,
    InvoiceStatus,
)
from invoice_manager.services.storage import (
    COMPANY_KEY,
    CONTACTS_KEY,
    INVOICES_KEY,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueInvoiceStorage,
    StorageError,
)


class TestInMemoryKeyValueStore:
    """Tests for the dict-backed store."""

    def test_missing_key_returns_default(self):
        store = InMemoryKeyValueStore()
        assert store.get("invoices", []) == []
        assert not store.has("invoices")

    def test_values_are_copied_on_write(self):
        store = InMemoryKeyValueStore()
        value = [{"id": "1"}]
        store.set("invoices", value)
        value.append({"id": "2"})
        assert store.get("invoices") == [{"id": "1"}]

    def test_corrupt_value_returns_default(self):
        store = InMemoryKeyValueStore(initial={"invoices": "{not json"})
        assert store.get("invoices", []) == []

    def test_unserializable_value_raises(self):
        with pytest.raises(StorageError):
            InMemoryKeyValueStore().set("invoices", object())


class TestJsonFileKeyValueStore:
    """Tests for the file-backed store."""

    def test_set_and_get(self, tmp_path):
        store = JsonFileKeyValueStore(tmp_path / "data")
        store.set("company", {"name": "Northwind"})
        assert store.has("company")
        assert store.get("company") == {"name": "Northwind"}
        assert (tmp_path / "data" / "company.json").exists()

    def test_no_temp_files_left(self, tmp_path):
        store = JsonFileKeyValueStore(tmp_path)
        store.set("invoices", [])
        store.set("invoices", [{"id": "1"}])
        assert [p.name for p in tmp_path.iterdir()] == ["invoices.json"]

    def test_corrupt_file_returns_default(self, tmp_path):
        (tmp_path / "invoices.json").write_text("[{oops", encoding="utf-8")
        store = JsonFileKeyValueStore(tmp_path)
        assert store.get("invoices", []) == []

    def test_rejects_unsafe_keys(self, tmp_path):
        store = JsonFileKeyValueStore(tmp_path)
        with pytest.raises(ValueError):
            store.get("../escape")

    def test_write_failure_raises_storage_error(self, tmp_path):
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("x", encoding="utf-8")
        store = JsonFileKeyValueStore(blocker)
        with pytest.raises(StorageError):
            store.set("invoices", [])


class TestInvoiceStorage:
    """Tests for KeyValueInvoiceStorage."""

    def test_initialize_creates_missing_keys_once(self, store):
        storage = KeyValueInvoiceStorage(store)
        assert storage.initialize_storage() == [INVOICES_KEY, CONTACTS_KEY, COMPANY_KEY]
        assert storage.initialize_storage() == []
        assert store.get(INVOICES_KEY) == []
        assert store.get(COMPANY_KEY, "missing") is None

    def test_initialize_keeps_existing_data(self, store, make_invoice):
        store.set(INVOICES_KEY, [make_invoice().to_record()])
        storage = KeyValueInvoiceStorage(store)
        assert storage.initialize_storage() == [CONTACTS_KEY, COMPANY_KEY]
        assert len(storage.get_invoices()) == 1

    def test_save_new_invoice_appends(self, storage, make_invoice):
        first = make_invoice()
        second = make_invoice(invoice_number="INV-0002")
        storage.save_invoice(first)
        storage.save_invoice(second)
        assert [i.id for i in storage.get_invoices()] == [first.id, second.id]

    def test_save_existing_invoice_replaces_in_place(self, storage, make_invoice):
        first = make_invoice()
        second = make_invoice(invoice_number="INV-0002")
        storage.save_invoice(first)
        storage.save_invoice(second)

        stored = storage.save_invoice(first.with_updates(status=InvoiceStatus.PAID))

        invoices = storage.get_invoices()
        assert len(invoices) == 2
        assert invoices[0].id == first.id
        assert invoices[0].status == InvoiceStatus.PAID
        assert stored.updated_at >= first.updated_at
        assert stored.created_at == first.created_at

    def test_get_invoice(self, storage, make_invoice):
        invoice = storage.save_invoice(make_invoice())
        assert storage.get_invoice(invoice.id).total == Decimal("108.25")
        assert storage.get_invoice("nope") is None

    def test_delete_invoice(self, storage, make_invoice):
        invoice = storage.save_invoice(make_invoice())
        assert storage.delete_invoice(invoice.id)
        assert storage.get_invoice(invoice.id) is None
        assert not storage.delete_invoice(invoice.id)

    def test_malformed_records_are_skipped_but_kept(self, make_invoice):
        good = make_invoice().to_record()
        store = InMemoryKeyValueStore(initial={
            INVOICES_KEY: json.dumps([{"id": "broken"}, good]),
        })
        storage = KeyValueInvoiceStorage(store)

        assert [i.id for i in storage.get_invoices()] == [good["id"]]

        storage.save_invoice(make_invoice(invoice_number="INV-0002"))
        assert len(store.get(INVOICES_KEY)) == 3

    def test_long_descriptions_are_read_back(self, make_invoice):
        description = "Discovery workshop, wireframes and copy review. " * 13
        record = make_invoice(
            items=[InvoiceLineItem(description=description, quantity=1, price=600)],
            client=Client(name="A" * 300),
        ).to_record()
        assert len(record["items"][0]["description"]) > 600
        store = InMemoryKeyValueStore(initial={INVOICES_KEY: json.dumps([record])})

        invoices = KeyValueInvoiceStorage(store).get_invoices()

        assert len(invoices) == 1
        assert invoices[0].items[0].description == description.strip()
        assert invoices[0].client.name == "A" * 300

    def test_non_list_collection_reads_as_empty(self):
        store = InMemoryKeyValueStore(initial={INVOICES_KEY: json.dumps({"oops": 1})})
        assert KeyValueInvoiceStorage(store).get_invoices() == []

    def test_contacts_crud(self, storage, contact):
        storage.save_contact(contact)
        storage.save_contact(contact.with_updates(phone="555-0100"))

        contacts = storage.get_contacts()
        assert len(contacts) == 1
        assert contacts[0].phone == "555-0100"
        assert storage.get_contact(contact.id).name == "Acme Corp"

        assert storage.delete_contact(contact.id)
        assert storage.get_contacts() == []
        assert storage.get_contact(contact.id) is None

    def test_company_profile_overwrites(self, storage, company):
        assert storage.get_company_profile() is None
        storage.save_company_profile(company)
        storage.save_company_profile(CompanyProfile(name="Renamed"))
        profile = storage.get_company_profile()
        assert profile.name == "Renamed"
        assert profile.payment_details is None

    def test_contacts_are_stored_under_saved_clients(self, store, storage, contact):
        storage.save_contact(contact)
        assert store.get("savedClients")[0]["name"] == "Acme Corp"


class TestInvoiceNumbers:
    """Tests for generate_invoice_number."""

    def test_first_number(self, storage):
        assert storage.generate_invoice_number() == "INV-0001"

    def test_next_after_highest(self, storage, make_invoice):
        storage.save_invoice(make_invoice(invoice_number="INV-0001"))
        storage.save_invoice(make_invoice(invoice_number="INV-0003"))
        assert storage.generate_invoice_number() == "INV-0004"

    def test_numbers_without_digits_count_as_zero(self, storage, make_invoice):
        storage.save_invoice(make_invoice(invoice_number="DRAFT"))
        assert storage.generate_invoice_number() == "INV-0001"

    def test_custom_prefix_and_width(self, store, make_invoice):
        storage = KeyValueInvoiceStorage(store, number_prefix="NW/", number_width=6)
        storage.save_invoice(make_invoice(invoice_number="7"))
        assert storage.generate_invoice_number() == "NW/000008"

    def test_contact_is_independent_of_invoices(self, storage, make_invoice):
        """A contact saved with the same id as an invoice does not clash."""
        invoice = storage.save_invoice(make_invoice())
        storage.save_contact(Contact(id=invoice.id, name="Same Id"))
        assert storage.get_invoice(invoice.id) is not None
        assert storage.get_contact(invoice.id).name == "Same Id"
