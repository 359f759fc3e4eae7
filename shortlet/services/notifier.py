# shortlet/services/notifier.py
"""
Booking status notifications.

``EmailNotifier`` mails the guest and the property owner over SMTP;
``LoggingNotifier`` is used when no SMTP host is configured. Delivery is
fire-and-forget: there is no retry queue.
"""
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List, Protocol, Tuple

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession

from shortlet.core.config import Settings
from shortlet.db import crud_properties, crud_users
from shortlet.db.models import Booking

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    pass


class Notifier(Protocol):
    async def notify(self, booking: Booking, new_status: str) -> None: ...


class LoggingNotifier:
    async def notify(self, booking: Booking, new_status: str) -> None:
        logger.info("booking %s is now %s", booking.id, new_status)


def render_status_email(booking: Booking, new_status: str, property_title: str) -> MIMEMultipart:
    msg = MIMEMultipart("alternative")
    msg["Subject"] = f"Booking {new_status}: {property_title}"

    text = (
        f"Booking #{booking.id} for {property_title} has been {new_status}.\n"
        f"Check-in: {booking.check_in_date.isoformat()}\n"
        f"Check-out: {booking.check_out_date.isoformat()}\n"
        f"Total: {booking.total_price:.2f}\n"
    )
    html = f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
          <h1 style="color: #333; text-align: center;">Booking {new_status}</h1>
          <div style="background: #f5f5f5; padding: 20px; border-radius: 5px;">
            <p>Booking #{booking.id} for {property_title} has been {new_status}.</p>
            <p><strong>Check-in:</strong> {booking.check_in_date.isoformat()}</p>
            <p><strong>Check-out:</strong> {booking.check_out_date.isoformat()}</p>
            <p><strong>Total:</strong> {booking.total_price:.2f}</p>
          </div>
          <p style="text-align: center; margin-top: 20px; color: #666;">
            This is an automated message from Shortlet. Please do not reply to this email.
          </p>
        </div>
    """
    msg.attach(MIMEText(text, "plain"))
    msg.attach(MIMEText(html, "html"))
    return msg


class EmailNotifier:
    def __init__(self, db: AsyncSession, settings: Settings):
        self.db = db
        self.settings = settings

    async def _recipients(self, booking: Booking) -> Tuple[List[str], str]:
        prop = await crud_properties.get_property(self.db, booking.property_id)
        if prop is None:
            raise NotificationError(f"property {booking.property_id} not found")
        to = []
        for user_id in (booking.guest_id, prop.owner_id):
            user = await crud_users.get_user(self.db, user_id)
            if user is not None and user.email not in to:
                to.append(user.email)
        return to, prop.title

    def _send(self, msg: MIMEMultipart, to: List[str]) -> None:
        s = self.settings
        with smtplib.SMTP(s.SMTP_HOST, s.SMTP_PORT, timeout=s.SMTP_TIMEOUT_SECONDS) as server:
            if s.SMTP_USE_TLS:
                server.starttls()
            if s.SMTP_USER and s.SMTP_PASSWORD:
                server.login(s.SMTP_USER, s.SMTP_PASSWORD)
            server.send_message(msg, to_addrs=to)

    async def notify(self, booking: Booking, new_status: str) -> None:
        to, title = await self._recipients(booking)
        if not to:
            raise NotificationError(f"no recipients for booking {booking.id}")

        msg = render_status_email(booking, new_status, title)
        msg["From"] = self.settings.SMTP_FROM
        msg["To"] = ", ".join(to)
        try:
            await run_in_threadpool(self._send, msg, to)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"Failed to send booking {new_status} email: {e}") from e
        logger.info("status email sent: %s", msg["Subject"])
