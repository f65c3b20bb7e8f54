"""
Tareas asíncronas de Celery para el envío de correos electrónicos.
"""
import logging
from typing import Dict, Any, List, Optional
from app.core.celery import celery_app
from app.modules.email.service import email_service, EmailAttachment

logger = logging.getLogger(__name__)

DOCUMENT_TEMPLATE = "billing_document.html"


class EmailDeliveryError(Exception):
    pass


@celery_app.task(bind=True, max_retries=3)
def send_email_task(
    self,
    to_emails: List[str],
    subject: str,
    html_content: Optional[str] = None,
    text_content: Optional[str] = None,
    cc_emails: Optional[List[str]] = None
):
    """
    Tarea asíncrona para envío de correos electrónicos.
    """
    try:
        success = email_service.send_email(
            to_emails=to_emails,
            subject=subject,
            html_content=html_content,
            text_content=text_content,
            cc_emails=cc_emails
        )
        if not success:
            raise EmailDeliveryError("Failed to send email")

        return {"status": "success", "recipients": to_emails}

    except Exception as exc:
        logger.error(f"Email sending failed: {str(exc)}")

        # Retry with exponential backoff
        if self.request.retries < self.max_retries:
            raise self.retry(exc=exc, countdown=60 * (2 ** self.request.retries))

        return {"status": "failed", "error": str(exc), "recipients": to_emails}


@celery_app.task(bind=True, max_retries=3)
def send_template_email_task(
    self,
    to_emails: List[str],
    subject: str,
    template_name: str,
    context: Dict[str, Any],
    cc_emails: Optional[List[str]] = None
):
    """
    Tarea asíncrona para envío de correos con template.
    """
    try:
        success = email_service.send_template_email(
            to_emails=to_emails,
            subject=subject,
            template_name=template_name,
            context=context,
            cc_emails=cc_emails
        )
        if not success:
            raise EmailDeliveryError("Failed to send template email")

        logger.info(f"Template email '{template_name}' sent to {', '.join(to_emails)}")
        return {"status": "success", "template": template_name, "recipients": to_emails}

    except Exception as exc:
        logger.error(f"Template email sending failed: {str(exc)}")
        if self.request.retries < self.max_retries:
            raise self.retry(exc=exc, countdown=60 * (2 ** self.request.retries))
        return {"status": "failed", "error": str(exc), "template": template_name, "recipients": to_emails}


@celery_app.task(bind=True, max_retries=3)
def send_document_email_task(
    self,
    to_emails: List[str],
    subject: str,
    context: Dict[str, Any],
    cc_emails: Optional[List[str]] = None,
    message: Optional[str] = None
):
    """
    Enviar una factura, cotización u orden de compra por correo.

    El documento se renderiza en el cuerpo y también va adjunto como HTML.

    Args:
        to_emails: Destinatarios (1 a 5)
        subject: Asunto del correo
        context: Datos de impresión del documento, serializables a JSON
        cc_emails: Destinatarios en copia
        message: Mensaje personalizado antes del documento
    """
    document = context.get("document", {})
    try:
        html_content = email_service.render_template(DOCUMENT_TEMPLATE, {**context, "message": message})
        attachment = EmailAttachment(
            filename=f"{document.get('num', 'document')}.html",
            content=html_content.encode("utf-8"),
            mime_type="text/html"
        )
        success = email_service.send_email(
            to_emails=to_emails,
            subject=subject,
            html_content=html_content,
            cc_emails=cc_emails,
            attachments=[attachment]
        )
        if not success:
            raise EmailDeliveryError("Failed to send document email")

        logger.info(f"Document {document.get('num')} sent to {', '.join(to_emails)}")
        return {"status": "success", "num": document.get("num"), "recipients": to_emails}

    except Exception as exc:
        logger.error(f"Document email failed for {document.get('num')}: {str(exc)}")
        if self.request.retries < self.max_retries:
            raise self.retry(exc=exc, countdown=30 * (2 ** self.request.retries))
        return {"status": "failed", "error": str(exc), "num": document.get("num")}
