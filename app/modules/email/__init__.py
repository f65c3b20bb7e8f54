"""
Módulo de email: servicio SMTP y tareas de Celery.
"""

from .service import email_service
from .tasks import send_email_task, send_template_email_task, send_document_email_task

__all__ = [
    'email_service',
    'send_email_task',
    'send_template_email_task',
    'send_document_email_task'
]
