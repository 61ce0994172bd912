"""
Role and customer notifications.

Every call here is best-effort: delivery problems are logged and never reach
the workflow that triggered them.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from django.conf import settings
from django.core.mail import send_mail
from django.db import transaction
from django.utils import timezone

from main.models import Notification, User
from main.services.telegram_service import get_telegram_service

logger = logging.getLogger(__name__)


class NotificationService:

    @classmethod
    def serialize(cls, notification: Notification) -> Dict[str, Any]:
        return {
            "id": notification.id,
            "role": notification.role,
            "message": notification.message,
            "status": notification.status,
            "created_at": notification.created_at.isoformat(),
            "read_at": notification.read_at.isoformat() if notification.read_at else None,
        }

    @classmethod
    def notify_role(cls, role: str, message: str) -> int:
        """Store an unread notification for every active user holding ``role``."""
        try:
            with transaction.atomic():
                recipient_ids = list(
                    User.objects.filter(role=role, is_active=True).values_list("id", flat=True)
                )
                Notification.objects.bulk_create([
                    Notification(recipient_id=user_id, role=role, message=message)
                    for user_id in recipient_ids
                ])
        except Exception:
            logger.exception(f"Failed to store notifications for role {role}")
            return 0

        logger.info(f"Notified {len(recipient_ids)} user(s) with role {role}: {message}")
        cls._mirror_to_telegram(role, message)
        return len(recipient_ids)

    @classmethod
    def notify_customer(cls,
                        email: str,
                        order_ref: str,
                        amount: Decimal,
                        name: Optional[str] = None) -> bool:
        if not email:
            return False

        greeting = f"Dear {name}," if name else "Dear customer,"
        body = (
            f"{greeting}\n\n"
            f"Your order {order_ref} has been approved.\n"
            f"Amount: {amount}\n\n"
            f"Thank you for your business."
        )
        try:
            send_mail(
                subject=f"Order {order_ref} approved",
                message=body,
                from_email=settings.DEFAULT_FROM_EMAIL,
                recipient_list=[email],
            )
        except Exception:
            logger.exception(f"Failed to email customer {email} about order {order_ref}")
            return False

        logger.info(f"Customer {email} notified about order {order_ref}")
        return True

    @classmethod
    def notify_role_on_commit(cls, role: str, message: str):
        transaction.on_commit(lambda: cls.notify_role(role, message))

    @classmethod
    def notify_customer_on_commit(cls, email: str, order_ref: str, amount: Decimal, name: Optional[str] = None):
        transaction.on_commit(lambda: cls.notify_customer(email, order_ref, amount, name))

    @classmethod
    def list_for_user(cls, user_id: int, unread_only: bool = False, limit: int = 50) -> Dict[str, Any]:
        queryset = Notification.objects.filter(recipient_id=user_id)
        if unread_only:
            queryset = queryset.filter(status=Notification.Status.UNREAD)

        unread_count = Notification.objects.filter(
            recipient_id=user_id, status=Notification.Status.UNREAD
        ).count()

        return {
            "success": True,
            "notifications": [cls.serialize(n) for n in queryset[:limit]],
            "unread_count": unread_count,
        }

    @classmethod
    def mark_as_read(cls, notification_id: int, user_id: int) -> Dict[str, Any]:
        updated = Notification.objects.filter(
            id=notification_id,
            recipient_id=user_id,
            status=Notification.Status.UNREAD,
        ).update(status=Notification.Status.READ, read_at=timezone.now())

        if not updated and not Notification.objects.filter(id=notification_id, recipient_id=user_id).exists():
            return {"success": False, "message": "Notification not found"}

        return {"success": True, "message": "Notification marked as read"}

    @classmethod
    def _mirror_to_telegram(cls, role: str, message: str):
        telegram = get_telegram_service()
        if telegram is None:
            return
        try:
            telegram.send_role_message(role, message)
        except Exception:
            logger.exception("Telegram mirror failed")
