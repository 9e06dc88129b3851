import logging
import os
import smtplib
from email.message import EmailMessage
from typing import Any, Dict

from jinja2 import Environment, FileSystemLoader, select_autoescape

from core.config import settings

logger = logging.getLogger(__name__)

# Jinja2 environment for email templates
_templates_env = Environment(
    loader=FileSystemLoader(searchpath=os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates")),
    autoescape=select_autoescape(["html", "xml"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


def send_email(to_email: str, subject: str, body: str) -> None:
    """
    Queue an email on the Celery worker and return immediately.
    Falls back to sending directly when the broker cannot be reached.
    """
    if settings.TESTING:
        logger.info("TESTING mode: email to %s skipped (%s)", to_email, subject)
        return

    from tasks.email_tasks import send_email_task

    try:
        send_email_task.delay(to_email, subject, body)
        logger.debug("Email task queued for %s", to_email)
        return
    except Exception:
        logger.warning("Celery not available, sending email to %s directly", to_email, exc_info=True)

    deliver_smtp(to_email, subject, body)


def render_template(template_path: str, context: Dict[str, Any]) -> str:
    """Render a text template from templates/ directory with provided context."""
    template = _templates_env.get_template(template_path)
    return template.render(**context)


def send_templated_email(to_email: str, subject: str, template_path: str, context: Dict[str, Any]) -> None:
    """Render a template and send email via existing send_email path."""
    body = render_template(template_path, context)
    send_email(to_email, subject, body)


def deliver_smtp(to_email: str, subject: str, body: str) -> None:
    """Hand one message to the SMTP relay. Raises on delivery failure."""
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = settings.SMTP_FROM or settings.SMTP_USERNAME
    msg["To"] = to_email
    msg.set_content(body)

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
        server.starttls()
        if settings.SMTP_USERNAME and settings.SMTP_PASSWORD:
            server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        server.send_message(msg)

    logger.info("Email sent to %s (%s)", to_email, subject)
