"""
Notification service — renders attendance messages, stores them and hands
them to an outbound webhook (a WhatsApp gateway in production).

Delivery is best-effort: a notification never fails the attendance that
triggered it.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings
from app.models.notification import Notification
from app.models.user import User

logger = logging.getLogger(__name__)


def _check_in_success(data: dict[str, Any]) -> str:
    lines = [
        "*Check-in successful*",
        "",
        f"Hi {data.get('user_name', '')},",
        "",
        f"Time: {data.get('check_in_time', '-')}",
        f"Location: {data.get('location_name') or '-'}",
    ]
    if data.get("points"):
        lines.append(f"Points: +{data['points']}")
    lines += ["", "Have a productive day!"]
    return "\n".join(lines)


def _check_out_success(data: dict[str, Any]) -> str:
    lines = [
        "*Check-out successful*",
        "",
        f"Hi {data.get('user_name', '')},",
        "",
        f"Time: {data.get('check_out_time', '-')}",
        f"Location: {data.get('location_name') or '-'}",
    ]
    if data.get("points"):
        lines.append(f"Points: +{data['points']}")
    lines += ["", "Thanks for your work today!"]
    return "\n".join(lines)


TEMPLATES: dict[str, Callable[[dict[str, Any]], str]] = {
    "check_in_success": _check_in_success,
    "check_out_success": _check_out_success,
}

TITLES = {
    "check_in_success": "Check-in Successful",
    "check_out_success": "Check-out Successful",
}


def render(notification_type: str, data: dict[str, Any]) -> tuple[str, str]:
    """Return ``(title, message)``; raises ``KeyError`` for unknown types."""
    template = TEMPLATES[notification_type]
    return TITLES.get(notification_type, "Notification"), template(data)


class NotificationService:
    def __init__(self, db: AsyncSession, settings: Settings) -> None:
        self.db = db
        self.webhook_url = settings.NOTIFICATION_WEBHOOK_URL
        self.timeout = httpx.Timeout(settings.NOTIFICATION_TIMEOUT_SECONDS)

    async def send(
        self, user: User, notification_type: str, data: dict[str, Any]
    ) -> Notification | None:
        try:
            payload = {"user_name": user.full_name or user.email, **data}
            title, message = render(notification_type, payload)

            notification = Notification(
                user_id=user.id,
                tenant_id=user.tenant_id,
                type=notification_type,
                title=title,
                message=message,
                data=payload,
                delivery_status="pending",
            )
            self.db.add(notification)

            notification.delivery_status = await self._deliver(user, title, message)
            await self.db.commit()
            return notification
        except Exception as e:
            logger.warning(
                "Notification %s for user %s not recorded: %s", notification_type, user.id, e
            )
            await self.db.rollback()
            return None

    async def _deliver(self, user: User, title: str, message: str) -> str:
        if not self.webhook_url or not user.phone:
            return "skipped"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.webhook_url,
                    json={"phone": user.phone, "title": title, "message": message},
                )
                response.raise_for_status()
            return "sent"
        except httpx.HTTPError as e:
            logger.warning("Notification delivery to user %s failed: %s", user.id, e)
            return "failed"
