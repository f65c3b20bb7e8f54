"""
Tests de documentos de facturación

Cubren:
- Numeración por organización, tipo y año fiscal (siguiente número, duplicados, concurrencia)
- Totales con CGST/SGST e IGST
- Fila de transactions escrita y borrada junto con cada documento
- Pagos, conversión de cotizaciones, impresión y envío por correo
"""

import gc
import threading
import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from app.common.exceptions import QuoteAlreadyConverted, SequenceConflict
from app.database.database import SessionLocal
from app.modules.billing.models import BillingDocument, DocumentKind
from app.modules.billing.schemas import DocumentCreate
from app.modules.billing import sequence as sequence_module
from app.modules.billing.sequence import SequenceGuard, SequenceKey, format_number, sequence_lock
from app.modules.billing.service import BillingService
from app.modules.email.service import email_service
from app.modules.organizations import service as organization_service
from app.modules.organizations.schemas import BankDetails, OrganizationSettingsUpdate, OrganizationUpdate
from app.modules.taxes.schemas import LineItemIn
from app.modules.transactions.models import Transaction


@pytest.fixture
def sent_emails(monkeypatch):
    """Reemplaza el envío SMTP y guarda los correos enviados"""
    sent = []

    def fake_send_email(**kwargs):
        sent.append(kwargs)
        return True

    monkeypatch.setattr(email_service, "send_email", fake_send_email)
    return sent


def bolt_line():
    return LineItemIn(name="Bolt", price=Decimal("10"), quantity=Decimal("1"), tax_code="gst:5")


class TestNumbering:

    def test_format_number(self):
        assert format_number("INV-", 7) == "INV-7"
        assert format_number(None, 7) == "7"

    def test_sequence_locks_are_released(self):
        key = SequenceKey(uuid4(), DocumentKind.INVOICE.value, date(2024, 4, 1), date(2025, 3, 31))
        lock = sequence_lock(key)
        assert sequence_lock(key) is lock

        del lock
        gc.collect()
        assert key not in sequence_module._locks

    def test_sequences_start_at_one(self, client, invoice_payload):
        response = client.post("/invoices/", json=invoice_payload)
        assert response.status_code == 201
        data = response.json()
        assert data["sequence"] == 1
        assert data["num"] == "INV-1"

    def test_next_number_after_delete(self, client, invoice_payload):
        ids = [client.post("/invoices/", json=invoice_payload).json()["id"] for _ in range(3)]
        assert client.get("/invoices/next-number").json()["sequence"] == 4

        assert client.delete(f"/invoices/{ids[2]}").status_code == 204
        response = client.get("/invoices/next-number")
        assert response.json() == {"sequence": 3, "prefix": "INV-", "num": "INV-3"}

    def test_next_number_is_max_plus_one(self, client, invoice_payload):
        client.post("/invoices/", json={**invoice_payload, "sequence": 10})
        assert client.get("/invoices/next-number").json()["sequence"] == 11

    def test_duplicate_sequence_rejected(self, client, invoice_payload):
        assert client.post("/invoices/", json={**invoice_payload, "sequence": 5}).status_code == 201

        response = client.post("/invoices/", json={**invoice_payload, "sequence": 5})
        assert response.status_code == 409
        assert response.json()["code"] == "sequence_conflict"
        assert client.get("/invoices/").json()["total"] == 1

    def test_kinds_number_independently(self, client, invoice_payload):
        assert client.post("/invoices/", json={**invoice_payload, "sequence": 1}).status_code == 201
        response = client.post("/quotes/", json={**invoice_payload, "sequence": 1})
        assert response.status_code == 201
        assert response.json()["num"] == "QT-1"

    def test_update_keeps_own_number(self, client, invoice_payload):
        document_id = client.post("/invoices/", json=invoice_payload).json()["id"]

        response = client.patch(f"/invoices/{document_id}", json={"sequence": 1, "description": "Revised"})
        assert response.status_code == 200
        assert response.json()["num"] == "INV-1"
        assert response.json()["description"] == "Revised"

    def test_update_to_taken_number(self, client, invoice_payload):
        client.post("/invoices/", json=invoice_payload)
        second_id = client.post("/invoices/", json=invoice_payload).json()["id"]

        response = client.patch(f"/invoices/{second_id}", json={"sequence": 1})
        assert response.status_code == 409
        assert response.json()["code"] == "sequence_conflict"
        assert client.get(f"/invoices/{second_id}").json()["sequence"] == 2

    def test_new_financial_year_restarts_numbering(self, client, db_session, organization, invoice_payload):
        client.post("/invoices/", json=invoice_payload)
        client.post("/invoices/", json=invoice_payload)

        organization_service.update_settings(db_session, organization.id, OrganizationSettingsUpdate(
            financial_year_start=date(2030, 4, 1),
            financial_year_end=date(2031, 3, 31)
        ))

        response = client.post("/invoices/", json=invoice_payload)
        assert response.status_code == 201
        assert response.json()["num"] == "INV-1"
        assert response.json()["fy_start"] == "2030-04-01"

    def test_numbering_is_per_organization(self, db_session, organization, other_organization, owner_user, customer):
        BillingService(db_session, DocumentKind.INVOICE).create_document(
            DocumentCreate(party_id=customer.id, items=[bolt_line()]), organization.id, owner_user.id
        )
        guard = BillingService(db_session, DocumentKind.INVOICE).guard
        other_fy = organization_service.get_financial_year(db_session, other_organization.id)
        assert guard.next_sequence(other_organization.id, DocumentKind.INVOICE.value, other_fy) == 1


class TestConcurrentCreates:
    """Cada hilo usa su propia sesión, como dos requests simultáneos"""

    def _run(self, worker, count=5):
        threads = [threading.Thread(target=worker) for _ in range(count)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

    def test_same_number_only_one_wins(self, db_session, organization, owner_user, customer):
        org_id, user_id, party_id = organization.id, owner_user.id, customer.id
        results = []

        def worker():
            db = SessionLocal()
            try:
                BillingService(db, DocumentKind.INVOICE).create_document(
                    DocumentCreate(party_id=party_id, sequence=7, items=[bolt_line()]), org_id, user_id
                )
                results.append("created")
            except SequenceConflict:
                results.append("conflict")
            finally:
                db.close()

        self._run(worker)

        assert results.count("created") == 1
        assert results.count("conflict") == 4
        assert db_session.query(BillingDocument).filter(BillingDocument.sequence == 7).count() == 1
        assert db_session.query(Transaction).count() == 1

    def test_automatic_numbers_are_distinct(self, db_session, organization, owner_user, customer):
        org_id, user_id, party_id = organization.id, owner_user.id, customer.id
        numbers = []

        def worker():
            db = SessionLocal()
            try:
                document = BillingService(db, DocumentKind.INVOICE).create_document(
                    DocumentCreate(party_id=party_id, items=[bolt_line()]), org_id, user_id
                )
                numbers.append(document.sequence)
            finally:
                db.close()

        self._run(worker)

        assert sorted(numbers) == [1, 2, 3, 4, 5]

    def test_unique_index_reports_conflict(self, monkeypatch, db_session, organization, owner_user, customer):
        service = BillingService(db_session, DocumentKind.INVOICE)
        data = DocumentCreate(party_id=customer.id, sequence=3, items=[bolt_line()])
        service.create_document(data, organization.id, owner_user.id)

        original_check = SequenceGuard.assert_no_duplicate
        checks = []

        def skip_first_check(guard, *args, **kwargs):
            checks.append(args)
            if len(checks) > 1:
                original_check(guard, *args, **kwargs)

        monkeypatch.setattr(SequenceGuard, "assert_no_duplicate", skip_first_check)

        # Sin la comprobación previa, el rechazo llega desde el índice único
        with pytest.raises(SequenceConflict):
            service.create_document(data, organization.id, owner_user.id)

        assert len(checks) == 2
        assert db_session.query(BillingDocument).filter(BillingDocument.sequence == 3).count() == 1
        assert db_session.query(Transaction).count() == 1


class TestTotals:

    def test_local_supply_splits_tax(self, client, invoice_payload):
        data = client.post("/invoices/", json=invoice_payload).json()
        assert Decimal(data["subtotal"]) == Decimal("200")
        assert Decimal(data["total_tax"]) == Decimal("36")
        assert Decimal(data["cgst"]) == Decimal("18")
        assert Decimal(data["sgst"]) == Decimal("18")
        assert Decimal(data["igst"]) == Decimal("0")
        assert Decimal(data["grand_total"]) == Decimal("236")
        assert Decimal(data["items"][0]["line_total"]) == Decimal("236")

    def test_interstate_supply_uses_igst(self, client, invoice_payload):
        data = client.post("/invoices/", json={**invoice_payload, "interstate": True}).json()
        assert Decimal(data["igst"]) == Decimal("36")
        assert Decimal(data["cgst"]) == Decimal("0")
        assert Decimal(data["grand_total"]) == Decimal("236")

    def test_update_recomputes_totals(self, client, invoice_payload):
        document_id = client.post("/invoices/", json=invoice_payload).json()["id"]

        response = client.patch(f"/invoices/{document_id}", json={
            "items": [{"name": "Cable", "price": "100", "quantity": "1", "tax_code": "gst:5"},
                      {"name": "Labour", "price": "50", "quantity": "1"}]
        })
        data = response.json()
        assert Decimal(data["subtotal"]) == Decimal("150")
        assert Decimal(data["total_tax"]) == Decimal("5")
        assert Decimal(data["grand_total"]) == Decimal("155")
        assert [item["position"] for item in data["items"]] == [1, 2]

    def test_switching_to_interstate_recomputes(self, client, invoice_payload):
        document_id = client.post("/invoices/", json=invoice_payload).json()["id"]
        data = client.patch(f"/invoices/{document_id}", json={"interstate": True}).json()
        assert Decimal(data["igst"]) == Decimal("36")
        assert Decimal(data["sgst"]) == Decimal("0")


class TestValidation:

    def test_unknown_tax_code_writes_nothing(self, client, db_session, invoice_payload):
        payload = {**invoice_payload, "items": [{"name": "X", "price": "10", "quantity": "1", "tax_code": "gst:13"}]}
        response = client.post("/invoices/", json=payload)
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_tax_code"
        assert db_session.query(BillingDocument).count() == 0
        assert db_session.query(Transaction).count() == 0

    def test_unknown_party(self, client, invoice_payload):
        response = client.post("/invoices/", json={**invoice_payload, "party_id": str(uuid4())})
        assert response.status_code == 404
        assert response.json()["code"] == "party_not_found"

    def test_invalid_status(self, client, invoice_payload):
        response = client.post("/invoices/", json={**invoice_payload, "status": "accepted"})
        assert response.status_code == 422
        assert response.json()["code"] == "invalid_status"

    def test_items_required(self, client, invoice_payload):
        assert client.post("/invoices/", json={**invoice_payload, "items": []}).status_code == 422

    def test_due_date_before_date(self, client, invoice_payload):
        payload = {**invoice_payload, "date": "2024-05-10", "due_date": "2024-05-01"}
        assert client.post("/invoices/", json=payload).status_code == 422

    def test_missing_document(self, client):
        response = client.get(f"/invoices/{uuid4()}")
        assert response.status_code == 404
        assert response.json()["code"] == "document_not_found"

    def test_kinds_are_separate(self, client, invoice_payload):
        document_id = client.post("/invoices/", json=invoice_payload).json()["id"]
        assert client.get(f"/quotes/{document_id}").status_code == 404


class TestLedger:

    def test_create_writes_transaction(self, client, invoice_payload):
        document = client.post("/invoices/", json=invoice_payload).json()

        rows = client.get("/transactions/").json()["items"]
        assert len(rows) == 1
        assert rows[0]["doc_id"] == document["id"]
        assert rows[0]["doc_model"] == "invoice"
        assert rows[0]["num"] == "INV-1"
        assert Decimal(rows[0]["total"]) == Decimal("200")
        assert Decimal(rows[0]["total_tax"]) == Decimal("36")

    def test_update_refreshes_transaction(self, client, invoice_payload):
        document_id = client.post("/invoices/", json=invoice_payload).json()["id"]
        client.patch(f"/invoices/{document_id}", json={
            "sequence": 4,
            "items": [{"name": "Cable", "price": "80", "quantity": "1"}]
        })

        row = client.get("/transactions/").json()["items"][0]
        assert row["num"] == "INV-4"
        assert Decimal(row["total"]) == Decimal("80")
        assert Decimal(row["total_tax"]) == Decimal("0")

    def test_delete_removes_transaction(self, client, db_session, invoice_payload):
        document_id = client.post("/invoices/", json=invoice_payload).json()["id"]
        assert client.delete(f"/invoices/{document_id}").status_code == 204

        assert client.get("/transactions/").json()["total"] == 0
        assert db_session.query(BillingDocument).count() == 0

    def test_failed_create_leaves_ledger_untouched(self, client, invoice_payload):
        client.post("/invoices/", json={**invoice_payload, "sequence": 1})
        client.post("/invoices/", json={**invoice_payload, "sequence": 1})
        assert client.get("/transactions/").json()["total"] == 1


class TestPayments:

    def test_full_payment_marks_paid(self, client, invoice_payload):
        document_id = client.post("/invoices/", json=invoice_payload).json()["id"]

        response = client.post(f"/invoices/{document_id}/payment", json={"amount": "236", "mode": "upi"})
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "paid"
        assert Decimal(data["payment"]["amount"]) == Decimal("236")
        assert data["payment"]["mode"] == "upi"

    def test_partial_payment_is_unpaid(self, client, invoice_payload):
        document_id = client.post("/invoices/", json=invoice_payload).json()["id"]
        response = client.post(f"/invoices/{document_id}/payment", json={"amount": "100"})
        assert response.json()["status"] == "unpaid"

    def test_purchase_defaults_to_unpaid(self, client, vendor):
        payload = {
            "party_id": str(vendor.id),
            "po_no": "PO-77",
            "items": [{"name": "Steel sheet", "price": "500", "quantity": "2", "tax_code": "gst:18", "unit": "kg"}],
        }
        response = client.post("/purchases/", json=payload)
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "unpaid"
        assert data["num"] == "PUR-1"
        assert data["po_no"] == "PO-77"

        response = client.post(f"/purchases/{data['id']}/payment", json={"amount": "1180", "mode": "bank"})
        assert response.json()["status"] == "paid"

    def test_po_number_only_on_purchases(self, client, invoice_payload):
        response = client.post("/invoices/", json={**invoice_payload, "po_no": "PO-1"})
        assert response.json()["po_no"] is None

    def test_quotes_have_no_payment_route(self, client, invoice_payload):
        document_id = client.post("/quotes/", json=invoice_payload).json()["id"]
        response = client.post(f"/quotes/{document_id}/payment", json={"amount": "10"})
        assert response.status_code in (404, 405)


class TestQuoteConversion:

    def test_convert_quote(self, client, invoice_payload):
        quote = client.post("/quotes/", json=invoice_payload).json()

        response = client.post(f"/quotes/{quote['id']}/convert")
        assert response.status_code == 201
        invoice = response.json()
        assert invoice["kind"] == "invoice"
        assert invoice["num"] == "INV-1"
        assert invoice["grand_total"] == quote["grand_total"]
        assert [item["name"] for item in invoice["items"]] == ["Steel bracket"]

        quote = client.get(f"/quotes/{quote['id']}").json()
        assert quote["status"] == "accepted"
        assert quote["converted_id"] == invoice["id"]

        ledger = client.get("/transactions/", params={"doc_model": "invoice"}).json()
        assert ledger["total"] == 1

    def test_convert_twice(self, client, invoice_payload):
        quote_id = client.post("/quotes/", json=invoice_payload).json()["id"]
        client.post(f"/quotes/{quote_id}/convert")

        response = client.post(f"/quotes/{quote_id}/convert")
        assert response.status_code == 409
        assert response.json()["code"] == "quote_already_converted"
        assert client.get("/invoices/").json()["total"] == 1

    def test_stale_read_does_not_convert_twice(self, db_session, organization, owner_user, customer):
        org_id, user_id = organization.id, owner_user.id
        quotes = BillingService(db_session, DocumentKind.QUOTE)
        quote_id = quotes.create_document(
            DocumentCreate(party_id=customer.id, items=[bolt_line()]), org_id, user_id
        ).id

        late_db = SessionLocal()
        try:
            late_quotes = BillingService(late_db, DocumentKind.QUOTE)
            # Esta sesión conserva la cotización tal como la leyó, sin convertir
            assert late_quotes.get_document(quote_id, org_id).converted_id is None

            invoice = quotes.convert_quote(quote_id, org_id, user_id)

            with pytest.raises(QuoteAlreadyConverted):
                late_quotes.convert_quote(quote_id, org_id, user_id)
        finally:
            late_db.close()

        db_session.expire_all()
        assert db_session.query(BillingDocument).filter(BillingDocument.kind == "invoice").count() == 1
        assert db_session.query(Transaction).count() == 2
        assert quotes.get_document(quote_id, org_id).converted_id == invoice.id

    def test_deleting_invoice_clears_conversion(self, client, invoice_payload):
        quote_id = client.post("/quotes/", json=invoice_payload).json()["id"]
        invoice_id = client.post(f"/quotes/{quote_id}/convert").json()["id"]

        assert client.delete(f"/invoices/{invoice_id}").status_code == 204
        assert client.get(f"/quotes/{quote_id}").json()["converted_id"] is None


class TestPrintAndSend:

    def test_print_data(self, client, invoice_payload):
        document_id = client.post("/invoices/", json=invoice_payload).json()["id"]

        response = client.get(f"/invoices/{document_id}/print-data")
        assert response.status_code == 200
        data = response.json()
        assert data["document"]["title"] == "Invoice"
        assert data["document"]["num"] == "INV-1"
        assert data["organization"]["name"] == "Verma Hardware"
        assert data["party"]["name"] == "Sharma Traders"
        assert data["lines"][0]["unit_label"] == "Pieces"
        assert data["lines"][0]["tax_label"] == "GST 18%"
        assert Decimal(data["totals"]["grand_total"]) == Decimal("236")
        assert data["currency"] == "INR"
        assert data["upi_url"] is None

    def test_print_data_with_upi(self, client, db_session, organization, invoice_payload):
        organization_service.update_organization(db_session, organization.id, OrganizationUpdate(
            bank=BankDetails(name="HDFC", account_no="50100012345678", ifsc="HDFC0001234", upi="verma@hdfc")
        ))
        organization_service.update_settings(db_session, organization.id, OrganizationSettingsUpdate(print_upi_qr=True))
        document_id = client.post("/invoices/", json=invoice_payload).json()["id"]

        data = client.get(f"/invoices/{document_id}/print-data").json()
        assert data["upi_url"] == "upi://pay?pa=verma@hdfc&am=236.00"
        assert data["bank"]["ifsc"] == "HDFC0001234"

    def test_send_invoice(self, client, invoice_payload, sent_emails):
        document_id = client.post("/invoices/", json=invoice_payload).json()["id"]

        response = client.post(f"/invoices/{document_id}/send", json={
            "to_emails": ["accounts@sharmatraders.in", "Accounts@sharmatraders.in"],
            "message": "Please find the invoice attached."
        })
        assert response.status_code == 202
        assert response.json()["recipients"] == ["accounts@sharmatraders.in"]

        assert len(sent_emails) == 1
        email = sent_emails[0]
        assert email["to_emails"] == ["accounts@sharmatraders.in"]
        assert "INV-1" in email["subject"]
        assert "INV-1" in email["html_content"]
        assert "Please find the invoice attached." in email["html_content"]
        assert email["attachments"][0].filename == "INV-1.html"

        assert client.get(f"/invoices/{document_id}").json()["status"] == "sent"

    def test_send_requires_recipient(self, client, invoice_payload, sent_emails):
        document_id = client.post("/invoices/", json=invoice_payload).json()["id"]
        response = client.post(f"/invoices/{document_id}/send", json={"to_emails": []})
        assert response.status_code == 422
        assert sent_emails == []

    def test_too_many_recipients(self, client, invoice_payload, sent_emails):
        document_id = client.post("/invoices/", json=invoice_payload).json()["id"]
        recipients = [f"user{i}@sharmatraders.in" for i in range(6)]
        response = client.post(f"/invoices/{document_id}/send", json={"to_emails": recipients})
        assert response.status_code == 422

    def test_purchases_are_not_sent(self, client, vendor):
        payload = {"party_id": str(vendor.id), "items": [{"name": "Nuts", "price": "5", "quantity": "10"}]}
        document_id = client.post("/purchases/", json=payload).json()["id"]
        response = client.post(f"/purchases/{document_id}/send", json={"to_emails": ["a@guptasteel.in"]})
        assert response.status_code in (404, 405)


class TestListing:

    def test_search_by_party_name(self, client, invoice_payload, vendor):
        client.post("/invoices/", json=invoice_payload)
        client.post("/invoices/", json={**invoice_payload, "party_id": str(vendor.id)})

        response = client.get("/invoices/", params={"search": "sharma"})
        assert response.json()["total"] == 1
        assert response.json()["items"][0]["party"]["name"] == "Sharma Traders"

    def test_filter_by_status(self, client, invoice_payload):
        client.post("/invoices/", json=invoice_payload)
        client.post("/invoices/", json={**invoice_payload, "status": "unpaid"})

        response = client.get("/invoices/", params={"status": "unpaid"})
        assert response.json()["total"] == 1
