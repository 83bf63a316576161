"""Outgoing email notifications.

Every message is sent from a background task after the response is
produced. Delivery problems are logged and never reach the caller.
"""

import logging

from fastapi import BackgroundTasks
from fastapi_mail import FastMail, MessageSchema

from .core import get_settings, get_mail_config

logger = logging.getLogger(__name__)


async def deliver(subject: str, recipient: str, body: str) -> bool:
    """
    Send one HTML email.

    Args:
        subject (str): Message subject.
        recipient (str): Recipient email address.
        body (str): HTML body.

    Returns:
        bool: ``True`` when the message was handed to the SMTP server.
    """
    settings = get_settings()
    if not settings.mail_enabled:
        logger.info("SMTP is not configured, skipping %r to %s", subject, recipient)
        return False

    message = MessageSchema(
        subject=subject,
        recipients=[recipient],
        body=body,
        subtype="html",
    )
    fm = FastMail(get_mail_config())
    try:
        await fm.send_message(message)
    except Exception:
        logger.warning("Failed to send %r to %s", subject, recipient, exc_info=True)
        return False
    return True


def send_signup_email(background_tasks: BackgroundTasks, email: str, name: str):
    """Schedule the welcome message for a new member."""
    background_tasks.add_task(send_signup_email_task, email, name)


async def send_signup_email_task(email: str, name: str):
    settings = get_settings()
    return await deliver(
        "Welcome to Grace Church",
        email,
        f"""
        <html>
          <body>
            <h2>Welcome, {name}!</h2>
            <p>Thank you for joining the Grace Church community.</p>
            <p>Sign in at <a href="{settings.BASE_URL}/login">{settings.BASE_URL}</a>
            to follow our events and sermons.</p>
          </body>
        </html>
        """,
    )


def send_password_reset_email(background_tasks: BackgroundTasks, email: str, token: str):
    """Schedule sending password reset instructions."""
    background_tasks.add_task(send_password_reset_email_task, email, token)


async def send_password_reset_email_task(email: str, token: str):
    """
    Send password reset email asynchronously.

    Args:
        email (str): Recipient email.
        token (str): Password reset token.
    """
    settings = get_settings()
    reset_link = f"{settings.BASE_URL}/reset-password?token={token}"
    return await deliver(
        "Password Reset Request - Grace Church",
        email,
        f"""
        <html>
          <body>
            <h2>Password reset</h2>
            <p>To reset your password, follow the link within
            {settings.RESET_TOKEN_EXPIRE_MINUTES} minutes:</p>
            <a href="{reset_link}">Reset password</a>
            <p>If you did not ask for this, you can ignore this email.</p>
          </body>
        </html>
        """,
    )


def send_contact_receipt_email(background_tasks: BackgroundTasks, email: str, name: str):
    """Schedule the acknowledgement for a contact form submission."""
    background_tasks.add_task(send_contact_receipt_email_task, email, name)


async def send_contact_receipt_email_task(email: str, name: str):
    return await deliver(
        "We Received Your Message - Grace Church",
        email,
        f"""
        <html>
          <body>
            <h2>Dear {name},</h2>
            <p>Thank you for contacting Grace Church. We have received your
            message and will get back to you soon.</p>
          </body>
        </html>
        """,
    )


def send_donation_receipt_email(
    background_tasks: BackgroundTasks, email: str, name: str, amount: float, method: str
):
    """Schedule the thank-you note for a completed donation."""
    background_tasks.add_task(send_donation_receipt_email_task, email, name, amount, method)


async def send_donation_receipt_email_task(email: str, name: str, amount: float, method: str):
    return await deliver(
        "Thank You for Your Donation - Grace Church",
        email,
        f"""
        <html>
          <body>
            <h2>Dear {name},</h2>
            <p>Thank you for your generous donation of ${amount:.2f}
            made with {method.replace("_", " ")}.</p>
            <p>Your support helps our ministry grow.</p>
          </body>
        </html>
        """,
    )
