import logging
from typing import Dict, Any, List
from decimal import Decimal

from django.db import transaction

from main.services.notification_service import NotificationService
from stock.models import ChickenOrder, ChickenType, FeedCompany, FeedOrderLine, FeedType, StockLedgerEntry
from stock.services.base_service import (
    BaseService, success_response, paginate_queryset,
    ValidationError, InvalidTransitionError,
    to_decimal, to_quantity, to_text, round_decimal
)
from stock.services.classification import feed_company_for
from stock.services.ledger_service import StockLedgerService
from stock.services.workflow import Actor, SALES_CLERKS, require_role

logger = logging.getLogger(__name__)


class ChickenOrderService(BaseService):
    """Customer chicken sales, debited against the ledger."""

    model = ChickenOrder

    @classmethod
    def serialize(cls, order: ChickenOrder) -> Dict[str, Any]:
        feed_lines = list(order.feed_orders.all())
        return {
            "id": order.id,
            "uuid": str(order.uuid),
            "customer_name": order.customer_name,
            "customer_email": order.customer_email,
            "customer_phone": order.customer_phone,
            "chicken_type": order.chicken_type,
            "quantity": order.quantity,
            "price_per_chicken": str(order.price_per_chicken),
            "total_price": str(order.total_price),
            "feed_orders": [cls.serialize_feed_line(line) for line in feed_lines],
            "feed_total": str(round_decimal(sum((line.total_price for line in feed_lines), Decimal("0")))),
            "status": order.status,
            "created_by_id": order.created_by_id,
            "created_at": order.created_at.isoformat(),
        }

    @staticmethod
    def serialize_feed_line(line: FeedOrderLine) -> Dict[str, Any]:
        return {
            "id": line.id,
            "feed_type": line.feed_type,
            "company": line.company,
            "quantity": str(line.quantity),
            "price_per_unit": str(line.price_per_unit),
            "total_price": str(line.total_price),
        }

    @classmethod
    def get(cls, order_id: int) -> Dict[str, Any]:
        return success_response({"chicken_order": cls.serialize(cls.get_or_404(order_id))})

    @classmethod
    def get_all(cls, chicken_type: str = None, page: int = 1, per_page: int = 20) -> Dict[str, Any]:
        queryset = cls.model.objects.prefetch_related("feed_orders")
        if chicken_type:
            queryset = queryset.filter(chicken_type=chicken_type)

        orders, pagination = paginate_queryset(queryset, page, per_page)
        return success_response({
            "chicken_orders": [cls.serialize(o) for o in orders],
            "pagination": pagination,
        })

    @classmethod
    @transaction.atomic
    def create(cls,
               actor: Actor,
               customer_name: str,
               chicken_type: str,
               quantity: Any,
               price_per_chicken: Any = None,
               customer_email: str = "",
               customer_phone: str = "",
               feed_orders: List[Dict[str, Any]] = None) -> Dict[str, Any]:
        require_role(actor, SALES_CLERKS, "sell chickens")

        customer_name = to_text(customer_name, "customer_name")
        if chicken_type not in ChickenType.values:
            raise ValidationError(f"Unknown chicken type: {chicken_type}", "chicken_type")
        quantity = to_quantity(quantity, "quantity", minimum=1)

        if price_per_chicken is None:
            price = StockLedgerEntry.objects.filter(item_kind=chicken_type).values_list(
                "selling_unit_price", flat=True
            ).first()
            if price is None:
                raise ValidationError(
                    f"Selling price is not set for {chicken_type}", "price_per_chicken"
                )
        else:
            price = to_decimal(price_per_chicken, "price_per_chicken")
            if price < 0:
                raise ValidationError("Price cannot be negative", "price_per_chicken")
        price = round_decimal(price)
        feed_lines = cls._normalize_feed_lines(feed_orders)

        order = cls.model.objects.create(
            customer_name=customer_name,
            customer_email=customer_email or "",
            customer_phone=customer_phone or "",
            chicken_type=chicken_type,
            quantity=quantity,
            price_per_chicken=price,
            total_price=round_decimal(price * quantity),
            created_by_id=actor.user_id,
        )
        FeedOrderLine.objects.bulk_create([
            FeedOrderLine(chicken_order=order, **line) for line in feed_lines
        ])

        StockLedgerService.debit(
            chicken_type,
            quantity,
            reference_type="CHICKEN_ORDER",
            reference_id=order.id,
            performed_by_id=actor.user_id,
            notes=f"Sale to {order.customer_name}",
        )

        if order.customer_email:
            NotificationService.notify_customer_on_commit(
                order.customer_email, f"CO-{order.id}", order.total_price, order.customer_name
            )

        logger.info(f"Chicken order {order.id}: {quantity} {chicken_type} for {order.customer_name}")
        return success_response({
            "id": order.id,
            "chicken_order": cls.serialize(order)
        }, "Chicken order created")

    @classmethod
    @transaction.atomic
    def change_quantity(cls, order_id: int, quantity: Any, actor: Actor) -> Dict[str, Any]:
        require_role(actor, SALES_CLERKS, "change chicken orders")
        quantity = to_quantity(quantity, "quantity", minimum=1)

        order = cls.lock_or_404(order_id)
        cls._ensure_active(order, actor)

        difference = quantity - order.quantity
        if difference > 0:
            StockLedgerService.debit(
                order.chicken_type, difference,
                reference_type="CHICKEN_ORDER", reference_id=order.id,
                performed_by_id=actor.user_id, notes="Order quantity increased",
            )
        elif difference < 0:
            StockLedgerService.return_to_stock(
                order.chicken_type, -difference,
                reference_type="CHICKEN_ORDER", reference_id=order.id,
                performed_by_id=actor.user_id, notes="Order quantity reduced",
            )

        order.quantity = quantity
        order.total_price = round_decimal(order.price_per_chicken * quantity)
        order.save(update_fields=["quantity", "total_price", "updated_at"])

        return success_response({"chicken_order": cls.serialize(order)}, "Chicken order updated")

    @classmethod
    @transaction.atomic
    def cancel(cls, order_id: int, actor: Actor) -> Dict[str, Any]:
        require_role(actor, SALES_CLERKS, "cancel chicken orders")

        order = cls.lock_or_404(order_id)
        cls._ensure_active(order, actor)

        StockLedgerService.return_to_stock(
            order.chicken_type, order.quantity,
            reference_type="CHICKEN_ORDER", reference_id=order.id,
            performed_by_id=actor.user_id, notes="Order cancelled",
        )

        order.status = ChickenOrder.Status.CANCELLED
        order.save(update_fields=["status", "updated_at"])

        logger.info(f"Chicken order {order.id} cancelled by user {actor.user_id}")
        return success_response({"chicken_order": cls.serialize(order)}, "Chicken order cancelled")

    @staticmethod
    def _normalize_feed_lines(feed_orders: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if feed_orders is None:
            return []
        if not isinstance(feed_orders, list):
            raise ValidationError("feed_orders must be a list", "feed_orders")

        lines = []
        for idx, raw in enumerate(feed_orders):
            field = f"feed_orders[{idx}]"
            if not isinstance(raw, dict):
                raise ValidationError(f"Feed order {idx} must be an object", field)

            feed_type = raw.get("feed_type")
            if feed_type not in FeedType.values:
                raise ValidationError(f"Unknown feed type: {feed_type}", f"{field}.feed_type")
            company = raw.get("company") or feed_company_for(feed_type)
            if company not in FeedCompany.values:
                raise ValidationError(f"Unknown feed company: {company}", f"{field}.company")

            quantity = to_decimal(raw.get("quantity"), f"{field}.quantity")
            price_per_unit = to_decimal(raw.get("price_per_unit"), f"{field}.price_per_unit")
            if quantity < 0 or price_per_unit < 0:
                raise ValidationError(f"Feed order {idx} cannot be negative", field)

            quantity = round_decimal(quantity)
            price_per_unit = round_decimal(price_per_unit)
            lines.append({
                "feed_type": feed_type,
                "company": company,
                "quantity": quantity,
                "price_per_unit": price_per_unit,
                "total_price": round_decimal(quantity * price_per_unit),
            })
        return lines

    @staticmethod
    def _ensure_active(order: ChickenOrder, actor: Actor):
        if order.status != ChickenOrder.Status.ACTIVE:
            raise InvalidTransitionError(order.status, ChickenOrder.Status.CANCELLED, actor.role, "chicken order")
