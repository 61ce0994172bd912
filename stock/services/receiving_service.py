import logging
from typing import Dict, Any, List

from django.conf import settings
from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from main.models import User
from main.services.notification_service import NotificationService
from stock.models import (
    StockItem, StockKind, ChickenType, PurchaseOrder, Invoice
)
from stock.services.base_service import (
    BaseService, success_response, paginate_queryset,
    ValidationError, DuplicateError, InvalidTransitionError, NotReceivedError,
    OverReceiptError, to_quantity
)
from stock.services.classification import (
    classify_stock_kind, classify_feed_type, match_feed_type
)
from stock.services.feed_service import FeedStockService
from stock.services.ledger_service import StockLedgerService
from stock.services.workflow import (
    Actor, STOCK_RECEIVERS, STOCK_APPROVERS, require_role
)

logger = logging.getLogger(__name__)


CHICK_LEDGER_KINDS = {
    StockKind.SASSO_CHICKS: ChickenType.SASSO,
    StockKind.BROILER_CHICKS: ChickenType.BROILER,
}


class StockReceivingService(BaseService):
    model = StockItem

    @classmethod
    def serialize(cls, item: StockItem) -> Dict[str, Any]:
        return {
            "id": item.id,
            "uuid": str(item.uuid),
            "purchase_order_id": item.purchase_order_id,
            "invoice_id": item.invoice_id,
            "kind": item.kind,
            "feed_type": item.feed_type or None,
            "description": item.description,
            "unit_price": str(item.unit_price),
            "expected_quantity": item.expected_quantity,
            "received_quantity": item.received_quantity,
            "pending_quantity": item.pending_quantity,
            "status": item.status,
            "received_by_id": item.received_by_id,
            "received_date": item.received_date.isoformat() if item.received_date else None,
            "notes": item.notes,
            "accountant_approved_by_id": item.accountant_approved_by_id,
            "accountant_approved_date": (
                item.accountant_approved_date.isoformat() if item.accountant_approved_date else None
            ),
        }

    @classmethod
    def list_for_order(cls, purchase_order_id: int) -> Dict[str, Any]:
        items = cls.model.objects.filter(purchase_order_id=purchase_order_id)
        return success_response({
            "stock_items": [cls.serialize(i) for i in items],
            "count": items.count(),
        })

    @classmethod
    def list_by_status(cls, status: str = None, page: int = 1, per_page: int = 20) -> Dict[str, Any]:
        queryset = cls.model.objects.all()
        if status:
            if status not in StockItem.Status.values:
                raise ValidationError(f"Unknown stock item status: {status}", "status")
            queryset = queryset.filter(status=status)

        items, pagination = paginate_queryset(queryset.order_by("-created_at", "-id"), page, per_page)
        return success_response({
            "stock_items": [cls.serialize(i) for i in items],
            "pagination": pagination,
        })

    @classmethod
    @transaction.atomic
    def spawn_from_approved_order(cls, purchase_order: PurchaseOrder, invoice: Invoice = None) -> List[StockItem]:
        """Create one receivable per trackable order line.

        Lines whose kind cannot be determined are not inventory and are
        skipped. Feed lines keep their sub-type when it can be resolved now;
        otherwise it is resolved again at approval.
        """
        if purchase_order.status != PurchaseOrder.Status.APPROVED:
            raise ValidationError(
                f"Stock can only be spawned from an approved order (order is {purchase_order.status})"
            )

        if cls.model.objects.filter(purchase_order=purchase_order).exists():
            raise DuplicateError(
                f"Stock items already exist for order {purchase_order.order_number}",
                {"purchase_order_id": str(purchase_order.id)}
            )

        spawned = []
        for line in purchase_order.items.all():
            kind = line.stock_kind or (StockKind.FEED if line.feed_type else classify_stock_kind(line.description))
            if not kind:
                logger.info(f"Skipping non-stock line '{line.description}' on {purchase_order.order_number}")
                continue

            feed_type = ""
            if kind == StockKind.FEED:
                feed_type = line.feed_type or match_feed_type(line.description) or ""

            spawned.append(cls.model.objects.create(
                purchase_order=purchase_order,
                invoice=invoice,
                kind=kind,
                feed_type=feed_type,
                description=line.description,
                unit_price=line.unit_price,
                expected_quantity=line.quantity,
                status=StockItem.Status.PENDING,
            ))

        logger.info(f"Spawned {len(spawned)} stock item(s) for order {purchase_order.order_number}")
        return spawned

    @classmethod
    @transaction.atomic
    def receive(cls,
                stock_item_id: int,
                received_quantity: Any,
                actor: Actor,
                notes: str = "") -> Dict[str, Any]:
        require_role(actor, STOCK_RECEIVERS, "receive stock")
        quantity = to_quantity(received_quantity, "received_quantity", minimum=1)

        item = cls.lock_or_404(stock_item_id)
        new_total = item.received_quantity + quantity

        if item.status == StockItem.Status.APPROVED:
            raise InvalidTransitionError(
                item.status,
                StockItem.derive_status(new_total, item.expected_quantity),
                actor.role,
                "stock item",
            )

        if new_total > item.expected_quantity:
            raise OverReceiptError(new_total, item.expected_quantity)

        item.received_quantity = new_total
        if notes:
            item.notes = f"{item.notes}; {notes}" if item.notes else notes
        item.received_by_id = actor.user_id
        item.received_date = timezone.now()
        item.status = StockItem.derive_status(new_total, item.expected_quantity)
        item.save()

        order = item.purchase_order
        cls._update_receiving_status(order)

        NotificationService.notify_role_on_commit(
            User.Role.ACCOUNTANT,
            f"Stock received for order {order.order_number}: {quantity} x {item.description} "
            f"({item.received_quantity}/{item.expected_quantity}). Please review and approve."
        )

        return success_response({"stock_item": cls.serialize(item)}, "Stock received")

    @classmethod
    @transaction.atomic
    def approve(cls, stock_item_id: int, actor: Actor) -> Dict[str, Any]:
        require_role(actor, STOCK_APPROVERS, "approve received stock")

        item = cls.lock_or_404(stock_item_id)

        if item.status == StockItem.Status.APPROVED:
            raise InvalidTransitionError(item.status, StockItem.Status.APPROVED, actor.role, "stock item")

        if item.received_quantity <= 0:
            raise NotReceivedError(item.id)

        feed_type = None
        if item.kind == StockKind.FEED:
            feed_type = item.feed_type or classify_feed_type(item.description)

        item.status = StockItem.derive_status(item.received_quantity, item.expected_quantity, approved=True)
        item.accountant_approved_by_id = actor.user_id
        item.accountant_approved_date = timezone.now()
        if feed_type:
            item.feed_type = feed_type
        item.save()

        if item.kind in CHICK_LEDGER_KINDS:
            StockLedgerService.credit(
                CHICK_LEDGER_KINDS[item.kind],
                item.received_quantity,
                price_hints={"buying_unit_price": item.unit_price},
                defaults={"container_price": item.unit_price * settings.DEFAULT_UNITS_PER_CONTAINER},
                reference_type="STOCK_ITEM",
                reference_id=item.id,
                performed_by_id=actor.user_id,
                notes=f"Approved receipt for order {item.purchase_order.order_number}",
            )
        else:
            FeedStockService.record_receipt(item, feed_type)

        NotificationService.notify_role_on_commit(
            User.Role.ORDER_MANAGER,
            f"Received stock approved: {item.received_quantity} x {item.description} "
            f"for order {item.purchase_order.order_number}"
        )

        logger.info(f"Stock item {item.id} approved by user {actor.user_id}")
        return success_response({"stock_item": cls.serialize(item)}, "Stock approved")

    @classmethod
    def _update_receiving_status(cls, order: PurchaseOrder):
        totals = cls.model.objects.filter(purchase_order=order).aggregate(
            expected=Sum("expected_quantity"),
            received=Sum("received_quantity"),
        )
        expected = totals["expected"] or 0
        received = totals["received"] or 0

        if expected and received >= expected:
            status = PurchaseOrder.ReceivingStatus.COMPLETE
        elif received > 0:
            status = PurchaseOrder.ReceivingStatus.PARTIAL
        else:
            status = PurchaseOrder.ReceivingStatus.NOT_STARTED

        if order.receiving_status != status:
            order.receiving_status = status
            order.save(update_fields=["receiving_status", "updated_at"])
