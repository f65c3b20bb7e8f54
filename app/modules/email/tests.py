"""
Tests del servicio de email y sus tareas de Celery (ejecución en línea)
"""

import pytest

from app.modules.email.service import email_service, EmailAttachment
from app.modules.email.tasks import send_email_task, send_template_email_task, send_document_email_task


@pytest.fixture
def sent_emails(monkeypatch):
    sent = []

    def fake_send_email(**kwargs):
        sent.append(kwargs)
        return True

    monkeypatch.setattr(email_service, "send_email", fake_send_email)
    return sent


def print_context():
    return {
        "document": {"title": "Quotation", "num": "QT-3", "date": "2024-06-01", "interstate": True},
        "organization": {"name": "Verma Hardware", "gst_no": "27AAPFU0939F1ZV"},
        "party": {"name": "Sharma Traders"},
        "lines": [{"name": "Hinge", "quantity": "4", "unit_label": "Pieces", "price": "25.00",
                   "tax_label": "GST 5%", "line_total": "105.00"}],
        "totals": {"subtotal": "100.00", "igst": "5.00", "grand_total": "105.00"},
        "currency_symbol": "₹",
        "bank": None,
    }


class TestEmailService:

    def test_render_document_template(self):
        html = email_service.render_template("billing_document.html", {**print_context(), "message": "Hola"})
        assert "Quotation QT-3" in html
        assert "IGST" in html
        assert "CGST" not in html
        assert "Hola" in html

    def test_build_message_with_attachment(self):
        msg = email_service.build_message(
            ["a@sharmatraders.in"],
            "Invoice INV-1",
            html_content="<p>INV-1</p>",
            cc_emails=["b@sharmatraders.in"],
            attachments=[EmailAttachment("INV-1.html", b"<p>INV-1</p>", "text/html")]
        )
        assert msg["To"] == "a@sharmatraders.in"
        assert msg["Cc"] == "b@sharmatraders.in"
        filenames = [part.get_filename() for part in msg.walk() if part.get_filename()]
        assert filenames == ["INV-1.html"]

    def test_smtp_failure_returns_false(self, monkeypatch):
        def broken_connection():
            raise ConnectionRefusedError("smtp down")

        monkeypatch.setattr(email_service, "_create_smtp_connection", broken_connection)
        assert email_service.send_email(["a@sharmatraders.in"], "Hi", text_content="Hi") is False


class TestEmailTasks:

    def test_send_email_task(self, sent_emails):
        result = send_email_task.delay(to_emails=["a@sharmatraders.in"], subject="Hi", text_content="Hi").get()
        assert result == {"status": "success", "recipients": ["a@sharmatraders.in"]}
        assert sent_emails[0]["subject"] == "Hi"

    def test_send_template_email_task(self, sent_emails):
        result = send_template_email_task.delay(
            to_emails=["a@sharmatraders.in"],
            subject="Quotation QT-3",
            template_name="billing_document.html",
            context=print_context()
        ).get()
        assert result["status"] == "success"
        assert "Sharma Traders" in sent_emails[0]["html_content"]

    def test_send_document_email_task(self, sent_emails):
        result = send_document_email_task.delay(
            to_emails=["a@sharmatraders.in"],
            subject="Quotation QT-3",
            context=print_context(),
            message="Valid for 15 days"
        ).get()
        assert result == {"status": "success", "num": "QT-3", "recipients": ["a@sharmatraders.in"]}
        email = sent_emails[0]
        assert "Valid for 15 days" in email["html_content"]
        assert email["attachments"][0].filename == "QT-3.html"
