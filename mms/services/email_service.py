from fastapi_mail import FastMail, MessageSchema, ConnectionConfig, MessageType
from jinja2 import Environment, FileSystemLoader, select_autoescape
from pathlib import Path
from typing import Optional
from mms.config import settings
import asyncio
import logging

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"

env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
)

# Applicant-facing template per workflow stage
STAGE_TEMPLATES = {
    "under_review": ("under_review.html", "Your application is under review"),
    "document_review": ("document_review.html", "Your documents are being reviewed"),
    "payment_received": ("payment_received.html", "Payment received"),
}

STAGE_LABELS = {
    "submitted": "Application Submitted",
    "payment_pending": "Payment Recorded",
    "payment_received": "Payment Review",
    "under_review": "Under Review",
    "document_review": "Document Review",
    "approved": "Approved",
    "rejected": "Rejected",
}


class Mailer:
    """Outbound email capability. Implementations raise on failure."""

    name = "abstract"

    async def send(self, to_email: str, subject: str, html: str) -> None:
        raise NotImplementedError


class SmtpMailer(Mailer):
    name = "smtp"

    def __init__(self, conf: ConnectionConfig):
        self.fm = FastMail(conf)

    async def send(self, to_email: str, subject: str, html: str) -> None:
        message = MessageSchema(
            subject=subject,
            recipients=[to_email],
            body=html,
            subtype=MessageType.html,
        )
        await self.fm.send_message(message)


class DisabledMailer(Mailer):
    """Used when no SMTP host is configured; messages are logged and dropped."""

    name = "disabled"

    async def send(self, to_email: str, subject: str, html: str) -> None:
        logger.info(f"Email disabled, not sending '{subject}' to {to_email}")


def build_mailer(config=settings) -> Mailer:
    if not config.EMAIL_HOST:
        logger.warning("EMAIL_HOST not set, outbound email is disabled")
        return DisabledMailer()

    implicit_tls = config.EMAIL_PORT == 465
    conf = ConnectionConfig(
        MAIL_USERNAME=config.EMAIL_HOST_USER,
        MAIL_PASSWORD=config.EMAIL_HOST_PASSWORD,
        MAIL_FROM=config.EMAIL_FROM,
        MAIL_FROM_NAME=config.EMAIL_FROM_NAME,
        MAIL_PORT=config.EMAIL_PORT,
        MAIL_SERVER=config.EMAIL_HOST,
        MAIL_STARTTLS=not implicit_tls,
        MAIL_SSL_TLS=implicit_tls,
        USE_CREDENTIALS=bool(config.EMAIL_HOST_USER),
        VALIDATE_CERTS=True,
    )
    logger.info(f"SMTP mailer configured for {config.EMAIL_HOST}:{config.EMAIL_PORT}")
    return SmtpMailer(conf)


def _log_late_result(subject: str, to_email: str):
    def callback(task: asyncio.Task):
        if task.cancelled():
            return
        if task.exception() is not None:
            logger.error(f"{subject} email to {to_email} failed after timeout: {task.exception()}")
        else:
            logger.info(f"{subject} email to {to_email} completed after timeout")
    return callback


async def send_templated(
    mailer: Mailer,
    to_email: str,
    subject: str,
    template: str,
    timeout: Optional[float] = None,
    **context,
) -> bool:
    """Render ``template`` and send it, bounded by a timeout.

    Never raises. Returns False when rendering, sending or the timeout fails.
    A send that outlives the timeout keeps running in the background.
    """
    timeout = timeout if timeout is not None else settings.EMAIL_SEND_TIMEOUT_SECONDS
    try:
        html = env.get_template(template).render(**context)
    except Exception as e:
        logger.error(f"Failed to render {template} for {to_email}: {e}")
        return False

    task = asyncio.ensure_future(mailer.send(to_email, subject, html))
    try:
        await asyncio.wait_for(asyncio.shield(task), timeout=timeout)
        logger.info(f"'{subject}' email sent to {to_email}")
        return True
    except asyncio.TimeoutError:
        logger.error(f"'{subject}' email to {to_email} timed out after {timeout}s")
        task.add_done_callback(_log_late_result(subject, to_email))
        return False
    except Exception as e:
        logger.error(f"Failed to send '{subject}' email to {to_email}: {e}")
        return False


# ---------------- Applicant emails ----------------

async def send_welcome_email(mailer: Mailer, to_email: str, name: str, applicant_id: str) -> bool:
    return await send_templated(
        mailer, to_email, f"Welcome - your applicant ID is {applicant_id}", "welcome.html",
        name=name, applicant_id=applicant_id, login_url=f"{settings.FRONTEND_URL}/applicant/login",
    )


async def send_verification_email(mailer: Mailer, to_email: str, name: str, token: str) -> bool:
    return await send_templated(
        mailer, to_email, "Verify your email address", "verify_email.html",
        name=name, verify_url=f"{settings.FRONTEND_URL}/verify-email?token={token}",
        hours=settings.VERIFICATION_TOKEN_HOURS,
    )


async def send_submission_confirmation(mailer: Mailer, to_email: str, name: str, application_id: str,
                                       fee_amount: float, fee_currency: str) -> bool:
    return await send_templated(
        mailer, to_email, f"Application {application_id} received", "application_submitted.html",
        name=name, application_id=application_id, fee_amount=fee_amount, fee_currency=fee_currency,
    )


async def send_stage_email(mailer: Mailer, to_email: str, name: str, application_id: str, stage: str) -> bool:
    template, subject = STAGE_TEMPLATES[stage]
    return await send_templated(
        mailer, to_email, f"{subject} - {application_id}", template,
        name=name, application_id=application_id,
    )


async def send_approval_email(mailer: Mailer, to_email: str, name: str, application_id: str,
                              member_number: str, expiry_date) -> bool:
    return await send_templated(
        mailer, to_email, f"Congratulations - membership {member_number} approved", "approved.html",
        name=name, application_id=application_id, member_number=member_number, expiry_date=expiry_date,
    )


async def send_rejection_email(mailer: Mailer, to_email: str, name: str, application_id: str,
                               reason: Optional[str]) -> bool:
    return await send_templated(
        mailer, to_email, f"Update on application {application_id}", "rejected.html",
        name=name, application_id=application_id, reason=reason,
    )


# ---------------- Staff emails ----------------

async def send_staff_notification(mailer: Mailer, to_email: str, staff_name: str, application_id: str,
                                  stage: str, applicant_name: str) -> bool:
    label = STAGE_LABELS.get(stage, stage)
    return await send_templated(
        mailer, to_email, f"Action Required: {label} - {application_id}", "staff_notification.html",
        staff_name=staff_name, application_id=application_id, stage=label, applicant_name=applicant_name,
        review_url=f"{settings.FRONTEND_URL}/admin/applications/{application_id}",
    )
