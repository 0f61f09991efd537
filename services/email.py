import logging
import smtplib
from email.message import EmailMessage
from typing import Any, Dict

from core.config import settings
from core.templating import render_template
from tasks.email_tasks import send_email_task

logger = logging.getLogger(__name__)


def send_email(to_email: str, subject: str, body: str, inline_fallback: bool = True) -> None:
    """
    Queue the email on Celery; send it inline if the broker is unreachable.
    Returns immediately when the task is queued.

    With inline_fallback=False a broker failure drops the email instead of
    blocking the caller on SMTP.
    """
    try:
        send_email_task.delay(to_email, subject, body)
        logger.info("Email task queued for %s", to_email)
        return
    except Exception as e:
        if not inline_fallback:
            logger.error("Celery not available, email to %s (%s) not sent: %s", to_email, subject, e)
            return
        logger.warning("Celery not available, sending email directly: %s", e)

    _send_email_direct(to_email, subject, body)


def send_templated_email(
    to_email: str, subject: str, template_path: str, context: Dict[str, Any], inline_fallback: bool = True
) -> None:
    """Render a template and send email via existing send_email path."""
    body = render_template(template_path, context)
    send_email(to_email, subject, body, inline_fallback=inline_fallback)


def send_order_confirmation(user, order) -> None:
    """Tell the customer their payment went through. Runs inside the bank callback, so never sends inline."""
    send_templated_email(
        user.email,
        f"Order {order.order_id} confirmed",
        "emails/order_confirmation.txt",
        {
            "first_name": user.first_name,
            "order_id": order.order_id,
            "total_amount": f"{order.total_amount:.2f}",
            "items": [
                {
                    "name": item.product_name,
                    "size": item.size,
                    "color": item.color,
                    "quantity": item.quantity,
                    "price": f"{item.price_at_purchase:.2f}",
                }
                for item in order.items
            ],
            "transaction_id": (order.payment_details or {}).get("transaction_id"),
        },
        inline_fallback=False,
    )


def _send_email_direct(to_email: str, subject: str, body: str) -> None:
    """Direct SMTP send used when the queue is down."""
    if not settings.SMTP_PASSWORD:
        logger.info("SMTP not configured; email to %s (%s) not sent", to_email, subject)
        return

    try:
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

        logger.info("Email sent to %s", to_email)
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Email sending to %s failed: %s", to_email, e)
