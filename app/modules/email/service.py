import smtplib
import ssl
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from email.mime.base import MIMEBase
from email import encoders
from typing import List, Optional, Dict, Any
from pathlib import Path
import logging
from jinja2 import Environment, FileSystemLoader, select_autoescape
from app.core.config import settings

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"


class EmailAttachment:
    """Adjunto en memoria (ej. el HTML o PDF renderizado de un documento)"""

    def __init__(self, filename: str, content: bytes, mime_type: str = "application/octet-stream"):
        self.filename = filename
        self.content = content
        self.mime_type = mime_type


class EmailService:
    """
    Envío de correos por SMTP con templates Jinja2.
    """

    def __init__(self):
        self.smtp_server = settings.EMAIL_SMTP_SERVER
        self.smtp_port = settings.EMAIL_SMTP_PORT
        self.username = settings.EMAIL_USERNAME
        self.password = settings.EMAIL_PASSWORD
        self.use_tls = settings.EMAIL_USE_TLS
        self.from_email = settings.EMAIL_FROM
        self.from_name = settings.EMAIL_FROM_NAME

        self.jinja_env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=select_autoescape(['html', 'xml'])
        )

    def _create_smtp_connection(self):
        """Crear conexión SMTP segura."""
        try:
            if self.use_tls:
                context = ssl.create_default_context()
                server = smtplib.SMTP(self.smtp_server, self.smtp_port)
                server.starttls(context=context)
            else:
                server = smtplib.SMTP_SSL(self.smtp_server, self.smtp_port)

            server.login(self.username, self.password)
            return server
        except Exception as e:
            logger.error(f"Error creating SMTP connection: {str(e)}")
            raise

    def render_template(self, template_name: str, context: Dict[str, Any]) -> str:
        """Renderizar un template de email con su contexto."""
        template = self.jinja_env.get_template(template_name)
        return template.render(**context)

    def build_message(
        self,
        to_emails: List[str],
        subject: str,
        html_content: Optional[str] = None,
        text_content: Optional[str] = None,
        cc_emails: Optional[List[str]] = None,
        attachments: Optional[List[EmailAttachment]] = None
    ) -> MIMEMultipart:
        msg = MIMEMultipart('mixed')
        msg['Subject'] = subject
        msg['From'] = f"{self.from_name} <{self.from_email}>"
        msg['To'] = ', '.join(to_emails)
        if cc_emails:
            msg['Cc'] = ', '.join(cc_emails)

        body = MIMEMultipart('alternative')
        if text_content:
            body.attach(MIMEText(text_content, 'plain', 'utf-8'))
        if html_content:
            body.attach(MIMEText(html_content, 'html', 'utf-8'))
        msg.attach(body)

        for attachment in attachments or []:
            maintype, _, subtype = attachment.mime_type.partition('/')
            part = MIMEBase(maintype, subtype or 'octet-stream')
            part.set_payload(attachment.content)
            encoders.encode_base64(part)
            part.add_header('Content-Disposition', f'attachment; filename="{attachment.filename}"')
            msg.attach(part)

        return msg

    def send_email(
        self,
        to_emails: List[str],
        subject: str,
        html_content: Optional[str] = None,
        text_content: Optional[str] = None,
        cc_emails: Optional[List[str]] = None,
        attachments: Optional[List[EmailAttachment]] = None
    ) -> bool:
        """
        Enviar correo electrónico.

        Returns:
            True si se envió correctamente, False en caso contrario
        """
        msg = self.build_message(to_emails, subject, html_content, text_content, cc_emails, attachments)
        recipients = to_emails + (cc_emails or [])
        try:
            with self._create_smtp_connection() as server:
                server.sendmail(self.from_email, recipients, msg.as_string())
        except Exception as e:
            logger.error(f"Error sending email to {', '.join(to_emails)}: {str(e)}")
            return False

        logger.info(f"Email sent successfully to {', '.join(to_emails)}")
        return True

    def send_template_email(
        self,
        to_emails: List[str],
        subject: str,
        template_name: str,
        context: Dict[str, Any],
        cc_emails: Optional[List[str]] = None,
        attachments: Optional[List[EmailAttachment]] = None
    ) -> bool:
        """Enviar correo renderizando un template (ej. "billing_document.html")."""
        html_content = self.render_template(template_name, context)
        return self.send_email(
            to_emails=to_emails,
            subject=subject,
            html_content=html_content,
            cc_emails=cc_emails,
            attachments=attachments
        )


# Singleton instance
email_service = EmailService()
