import logging
from typing import Dict, Any, Optional, List
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.db.models import F

from stock.models import StockLedgerEntry, LedgerMovement
from stock.services.base_service import (
    BaseService, success_response,
    ValidationError, NotFoundError, InsufficientStockError,
    to_decimal, to_quantity, round_decimal
)

logger = logging.getLogger(__name__)


PRICING_FIELDS = (
    "units_per_container",
    "container_price",
    "selling_unit_price",
    "buying_unit_price",
)


class StockLedgerService(BaseService):
    """On-hand quantities per item kind.

    Every quantity change goes through ``credit``, ``debit`` or
    ``return_to_stock``; callers never write ledger fields directly.
    """

    model = StockLedgerEntry

    @classmethod
    def serialize(cls, entry: StockLedgerEntry) -> Dict[str, Any]:
        return {
            "id": entry.id,
            "uuid": str(entry.uuid),
            "item_kind": entry.item_kind,
            "on_hand_quantity": entry.on_hand_quantity,
            "total_received": entry.total_received,
            "total_sold": entry.total_sold,
            "minimum_threshold": entry.minimum_threshold,
            "units_per_container": entry.units_per_container,
            "container_price": str(entry.container_price),
            "selling_unit_price": str(entry.selling_unit_price) if entry.selling_unit_price is not None else None,
            "buying_unit_price": str(entry.buying_unit_price) if entry.buying_unit_price is not None else None,
            "container_count": entry.container_count,
            "total_container_value": str(entry.total_container_value),
            "is_below_threshold": entry.is_below_threshold,
            "updated_at": entry.updated_at.isoformat() if entry.updated_at else None,
        }

    @classmethod
    def serialize_movement(cls, movement: LedgerMovement) -> Dict[str, Any]:
        return {
            "id": movement.id,
            "movement_type": movement.movement_type,
            "quantity": movement.quantity,
            "quantity_after": movement.quantity_after,
            "reference_type": movement.reference_type,
            "reference_id": movement.reference_id,
            "performed_by_id": movement.performed_by_id,
            "notes": movement.notes,
            "created_at": movement.created_at.isoformat(),
        }

    @classmethod
    def get_entry(cls, item_kind: str) -> StockLedgerEntry:
        try:
            return cls.model.objects.get(item_kind=item_kind)
        except cls.model.DoesNotExist:
            raise NotFoundError("StockLedgerEntry", item_kind)

    @classmethod
    def get(cls, item_kind: str) -> Dict[str, Any]:
        entry = cls.get_entry(item_kind)
        movements = entry.movements.all()[:20]
        return success_response({
            "entry": cls.serialize(entry),
            "recent_movements": [cls.serialize_movement(m) for m in movements],
        })

    @classmethod
    def get_all(cls) -> Dict[str, Any]:
        entries = cls.model.objects.all()
        return success_response({
            "entries": [cls.serialize(e) for e in entries],
            "count": entries.count(),
        })

    @classmethod
    def list_below_threshold(cls) -> List[StockLedgerEntry]:
        return list(
            cls.model.objects.filter(on_hand_quantity__lte=F("minimum_threshold")).order_by("item_kind")
        )

    # ------------------------------------------------------------------
    # Quantity changes
    # ------------------------------------------------------------------

    @classmethod
    @transaction.atomic
    def credit(cls,
               item_kind: str,
               quantity: Any,
               price_hints: Optional[Dict[str, Any]] = None,
               defaults: Optional[Dict[str, Any]] = None,
               reference_type: str = "",
               reference_id: int = None,
               performed_by_id: int = None,
               notes: str = "") -> StockLedgerEntry:
        quantity = to_quantity(quantity, "quantity")
        hints = cls._clean_pricing(price_hints or {})
        creation_defaults = cls._clean_pricing(defaults or {})

        entry = cls._lock_or_create(item_kind, creation_defaults)

        cls.model.objects.filter(pk=entry.pk).update(
            on_hand_quantity=F("on_hand_quantity") + quantity,
            total_received=F("total_received") + quantity,
        )
        entry.refresh_from_db()

        for field, value in hints.items():
            setattr(entry, field, value)
        cls._recompute_derived(entry)
        entry.save()

        cls._record_movement(
            entry, LedgerMovement.MovementType.CREDIT, quantity,
            reference_type, reference_id, performed_by_id, notes
        )
        logger.info(f"Ledger credit {item_kind} +{quantity} -> {entry.on_hand_quantity}")
        return entry

    @classmethod
    @transaction.atomic
    def debit(cls,
              item_kind: str,
              quantity: Any,
              reference_type: str = "",
              reference_id: int = None,
              performed_by_id: int = None,
              notes: str = "") -> StockLedgerEntry:
        quantity = to_quantity(quantity, "quantity")

        # Check and decrement in one statement
        updated = cls.model.objects.filter(
            item_kind=item_kind,
            on_hand_quantity__gte=quantity,
        ).update(
            on_hand_quantity=F("on_hand_quantity") - quantity,
            total_sold=F("total_sold") + quantity,
        )

        if not updated:
            available = cls.model.objects.filter(item_kind=item_kind).values_list(
                "on_hand_quantity", flat=True
            ).first()
            if available is None:
                raise NotFoundError("StockLedgerEntry", item_kind)
            raise InsufficientStockError(item_kind, available, quantity)

        entry = cls.model.objects.select_for_update().get(item_kind=item_kind)
        cls._recompute_derived(entry)
        entry.save(update_fields=["container_count", "total_container_value", "updated_at"])

        cls._record_movement(
            entry, LedgerMovement.MovementType.DEBIT, quantity,
            reference_type, reference_id, performed_by_id, notes
        )
        logger.info(f"Ledger debit {item_kind} -{quantity} -> {entry.on_hand_quantity}")
        return entry

    @classmethod
    @transaction.atomic
    def return_to_stock(cls,
                        item_kind: str,
                        quantity: Any,
                        reference_type: str = "",
                        reference_id: int = None,
                        performed_by_id: int = None,
                        notes: str = "") -> StockLedgerEntry:
        """Put previously sold units back on hand."""
        quantity = to_quantity(quantity, "quantity")

        updated = cls.model.objects.filter(
            item_kind=item_kind,
            total_sold__gte=quantity,
        ).update(
            on_hand_quantity=F("on_hand_quantity") + quantity,
            total_sold=F("total_sold") - quantity,
        )

        if not updated:
            if not cls.model.objects.filter(item_kind=item_kind).exists():
                raise NotFoundError("StockLedgerEntry", item_kind)
            raise ValidationError("Cannot return more than was sold", "quantity")

        entry = cls.model.objects.select_for_update().get(item_kind=item_kind)
        cls._recompute_derived(entry)
        entry.save(update_fields=["container_count", "total_container_value", "updated_at"])

        cls._record_movement(
            entry, LedgerMovement.MovementType.RETURN, quantity,
            reference_type, reference_id, performed_by_id, notes
        )
        logger.info(f"Ledger return {item_kind} +{quantity} -> {entry.on_hand_quantity}")
        return entry

    # ------------------------------------------------------------------
    # Thresholds and pricing
    # ------------------------------------------------------------------

    @classmethod
    @transaction.atomic
    def set_minimum_threshold(cls, item_kind: str, value: Any) -> Dict[str, Any]:
        value = to_quantity(value, "minimum_threshold")
        entry = cls._lock(item_kind)
        entry.minimum_threshold = value
        entry.save(update_fields=["minimum_threshold", "updated_at"])
        return success_response({"entry": cls.serialize(entry)}, "Minimum threshold updated")

    @classmethod
    @transaction.atomic
    def set_pricing(cls, item_kind: str, **fields) -> Dict[str, Any]:
        unknown = set(fields) - set(PRICING_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown pricing fields: {', '.join(sorted(unknown))}")

        pricing = cls._clean_pricing(fields)
        entry = cls._lock(item_kind)
        for field, value in pricing.items():
            setattr(entry, field, value)
        cls._recompute_derived(entry)
        entry.save()
        return success_response({"entry": cls.serialize(entry)}, "Pricing updated")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @classmethod
    def _lock(cls, item_kind: str) -> StockLedgerEntry:
        try:
            return cls.model.objects.select_for_update().get(item_kind=item_kind)
        except cls.model.DoesNotExist:
            raise NotFoundError("StockLedgerEntry", item_kind)

    @classmethod
    def _lock_or_create(cls, item_kind: str, defaults: Dict[str, Any]) -> StockLedgerEntry:
        if not item_kind:
            raise ValidationError("item_kind is required", "item_kind")

        create_values = {
            "minimum_threshold": settings.DEFAULT_MINIMUM_THRESHOLD,
            "units_per_container": settings.DEFAULT_UNITS_PER_CONTAINER,
        }
        create_values.update(defaults)

        cls.model.objects.get_or_create(item_kind=item_kind, defaults=create_values)
        return cls.model.objects.select_for_update().get(item_kind=item_kind)

    @classmethod
    def _clean_pricing(cls, fields: Dict[str, Any]) -> Dict[str, Any]:
        cleaned = {}
        for field, value in fields.items():
            if value is None:
                continue
            if field == "units_per_container":
                cleaned[field] = to_quantity(value, field, minimum=1)
                continue
            amount = to_decimal(value, field)
            if amount < 0:
                raise ValidationError(f"{field} cannot be negative", field)
            cleaned[field] = round_decimal(amount)
        return cleaned

    @staticmethod
    def _recompute_derived(entry: StockLedgerEntry):
        if entry.units_per_container:
            entry.container_count = -(-entry.on_hand_quantity // entry.units_per_container)
        else:
            entry.container_count = 0
        entry.total_container_value = round_decimal(
            Decimal(entry.container_count) * (entry.container_price or Decimal("0"))
        )

    @staticmethod
    def _record_movement(entry, movement_type, quantity, reference_type, reference_id, performed_by_id, notes):
        LedgerMovement.objects.create(
            entry=entry,
            movement_type=movement_type,
            quantity=quantity,
            quantity_after=entry.on_hand_quantity,
            reference_type=reference_type,
            reference_id=reference_id,
            performed_by_id=performed_by_id,
            notes=notes,
        )
