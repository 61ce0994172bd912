import logging
from typing import Dict, Any

from django.conf import settings
from django.core.cache import cache

from main.models import User
from main.services.notification_service import NotificationService
from stock.services.base_service import success_response
from stock.services.ledger_service import StockLedgerService

logger = logging.getLogger(__name__)

ALERT_ROLES = (User.Role.MANAGER, User.Role.CEO)


class StockAlertService:

    @classmethod
    def cache_key(cls, item_kind: str) -> str:
        return f"stock:low-stock-alert:{item_kind}"

    @classmethod
    def check_low_stock(cls, force: bool = False) -> Dict[str, Any]:
        entries = StockLedgerService.list_below_threshold()
        alerted = []

        for entry in entries:
            # cache.add is a no-op while a previous alert is still cooling down
            if not force and not cache.add(cls.cache_key(entry.item_kind), True, settings.LOW_STOCK_ALERT_COOLDOWN):
                continue

            message = (
                f"Low stock alert: {entry.item_kind} has {entry.on_hand_quantity} on hand "
                f"(minimum {entry.minimum_threshold})"
            )
            for role in ALERT_ROLES:
                NotificationService.notify_role(role, message)
            alerted.append(entry.item_kind)
            logger.warning(message)

        return success_response({
            "below_threshold": [StockLedgerService.serialize(e) for e in entries],
            "alerted": alerted,
        })
