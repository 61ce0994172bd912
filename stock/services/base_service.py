from typing import Dict, Any, Optional, List, Tuple
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from datetime import date
from django.db import transaction
from django.db.models import Model, F
from django.utils import timezone
from django.utils.dateparse import parse_date

from stock.models import DocumentSequence


class ServiceError(Exception):
    def __init__(self, message: str, code: str = "ERROR", details: Dict = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)


class ValidationError(ServiceError):
    def __init__(self, message: str, field: str = None, details: Dict = None):
        super().__init__(message, "VALIDATION_ERROR", details)
        self.field = field


class NotFoundError(ServiceError):
    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            f"{resource} not found: {identifier}",
            "NOT_FOUND",
            {"resource": resource, "identifier": str(identifier)}
        )


class PermissionDeniedError(ServiceError):
    def __init__(self, action: str, role: str):
        super().__init__(
            f"Role {role} is not allowed to {action}",
            "PERMISSION_DENIED",
            {"action": action, "role": role}
        )


class InvalidTransitionError(ServiceError):
    def __init__(self, current: str, requested: str, role: str, resource: str = None):
        label = f"{resource} " if resource else ""
        super().__init__(
            f"Cannot move {label}from {current} to {requested} as {role}",
            "INVALID_TRANSITION",
            {"current": current, "requested": requested, "role": role}
        )
        self.current = current
        self.requested = requested
        self.role = role


class DuplicateError(ServiceError):
    def __init__(self, message: str, details: Dict = None):
        super().__init__(message, "DUPLICATE", details)


class InsufficientStockError(ServiceError):
    def __init__(self, item_kind: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock. Available: {available}, Requested: {requested}",
            "INSUFFICIENT_STOCK",
            {"item_kind": item_kind, "available": str(available), "requested": str(requested)}
        )
        self.available = available
        self.requested = requested


class OverReceiptError(ServiceError):
    def __init__(self, would_be_total: int, expected: int):
        super().__init__(
            f"Total received quantity ({would_be_total}) cannot exceed expected quantity ({expected})",
            "OVER_RECEIPT",
            {"would_be_total": str(would_be_total), "expected": str(expected)}
        )
        self.would_be_total = would_be_total
        self.expected = expected


class NotReceivedError(ServiceError):
    def __init__(self, stock_item_id: int):
        super().__init__(
            "Stock must be received before approval",
            "NOT_RECEIVED",
            {"stock_item_id": str(stock_item_id)}
        )


class ClassificationError(ServiceError):
    def __init__(self, description: str):
        super().__init__(
            f"Unable to classify feed type from description: {description}",
            "CLASSIFICATION_ERROR",
            {"description": description}
        )


def success_response(data: Any = None, message: str = "Success") -> Dict:
    response = {"success": True, "message": message}
    if data is not None:
        if isinstance(data, dict):
            response.update(data)
        else:
            response["data"] = data
    return response


def paginate_queryset(queryset, page: int = 1, per_page: int = 20) -> Tuple[List, Dict]:
    page = max(1, page)
    per_page = min(max(1, per_page), 100)

    total = queryset.count()
    total_pages = (total + per_page - 1) // per_page

    offset = (page - 1) * per_page
    items = list(queryset[offset:offset + per_page])

    return items, {
        "page": page,
        "per_page": per_page,
        "total_items": total,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1
    }


def to_decimal(value: Any, field: str = "value") -> Decimal:
    if value is None or value == "":
        raise ValidationError(f"{field} is required", field)
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number", field)
    if not result.is_finite():
        raise ValidationError(f"{field} must be a number", field)
    return result


def to_text(value: Any, field: str, required: bool = True) -> str:
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field} is required", field)
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", field)
    value = value.strip()
    if required and not value:
        raise ValidationError(f"{field} is required", field)
    return value


def to_quantity(value: Any, field: str = "quantity", minimum: int = 0) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a whole number", field)
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a whole number", field)
    if not result.is_finite() or result != result.to_integral_value():
        raise ValidationError(f"{field} must be a whole number", field)
    result = int(result)
    if result < minimum:
        raise ValidationError(f"{field} must be at least {minimum}", field)
    return result


def round_decimal(value: Decimal, places: int = 2) -> Decimal:
    if value is None:
        return Decimal("0")
    quantize_str = "0." + "0" * places
    return value.quantize(Decimal(quantize_str), rounding=ROUND_HALF_UP)


@transaction.atomic
def next_sequence(scope: str) -> int:
    """Increment the counter for ``scope`` and return the new value.

    The UPDATE takes the row lock, so concurrent callers in other
    transactions wait and then observe the incremented value.
    """
    DocumentSequence.objects.get_or_create(scope=scope)
    DocumentSequence.objects.filter(scope=scope).update(last_value=F("last_value") + 1)
    return DocumentSequence.objects.values_list("last_value", flat=True).get(scope=scope)


def generate_number(prefix: str, date_format: str = "%Y%m%d", width: int = 4, on_date=None) -> str:
    day = on_date or timezone.localdate()
    date_part = day.strftime(date_format)
    scope = f"{prefix}-{date_part}" if prefix else date_part
    seq = next_sequence(scope)
    return f"{scope}-{seq:0{width}d}"


class BaseService:
    model = None

    @classmethod
    def get_by_id(cls, id: int) -> Optional[Model]:
        try:
            return cls.model.objects.get(id=id)
        except (cls.model.DoesNotExist, ValueError, TypeError):
            return None

    @classmethod
    def get_or_404(cls, id: int) -> Model:
        obj = cls.get_by_id(id)
        if not obj:
            raise NotFoundError(cls.model.__name__, id)
        return obj

    @classmethod
    def lock_or_404(cls, id: int) -> Model:
        try:
            return cls.model.objects.select_for_update().get(id=id)
        except (cls.model.DoesNotExist, ValueError, TypeError):
            raise NotFoundError(cls.model.__name__, id)


def normalize_line_items(items: List[Dict[str, Any]]) -> Tuple[List[Dict[str, Any]], Decimal]:
    """Validate order-style lines and recompute every total from quantity and unit price."""
    if not items:
        raise ValidationError("At least one item is required", "items")

    lines = []
    subtotal = Decimal("0")
    for idx, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise ValidationError(f"Item {idx} must be an object", f"items[{idx}]")

        description = to_text(raw.get("description"), f"items[{idx}].description")

        quantity = to_quantity(raw.get("quantity"), f"items[{idx}].quantity", minimum=1)
        unit_price = to_decimal(raw.get("unit_price"), f"items[{idx}].unit_price")
        if unit_price < 0:
            raise ValidationError("Unit price cannot be negative", f"items[{idx}].unit_price")
        unit_price = round_decimal(unit_price)

        total_price = round_decimal(unit_price * quantity)
        subtotal += total_price
        lines.append({
            **raw,
            "description": description,
            "quantity": quantity,
            "unit_price": unit_price,
            "total_price": total_price,
        })

    return lines, round_decimal(subtotal)


def to_date(value: Any, field: str = "date") -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        parsed = parse_date(str(value))
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"{field} must be a date (YYYY-MM-DD)", field)
    return parsed
