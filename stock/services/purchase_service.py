import logging
import re
from typing import Dict, Any, List
from datetime import date

from django.conf import settings
from django.db import transaction, IntegrityError
from django.utils import timezone

from main.models import User
from main.services.notification_service import NotificationService
from stock.models import PurchaseOrder, PurchaseOrderItem, StockKind, FeedType
from stock.services.base_service import (
    BaseService, success_response, paginate_queryset,
    ValidationError, DuplicateError,
    to_decimal, to_date, to_text, generate_number, normalize_line_items
)
from stock.services.workflow import (
    Actor, ORDER_TRANSITIONS, ORDER_SUBMITTERS, check_transition, require_role, allowed_transitions
)

logger = logging.getLogger(__name__)


class PurchaseOrderService(BaseService):
    model = PurchaseOrder

    @classmethod
    def serialize(cls, po: PurchaseOrder, include_items: bool = True) -> Dict[str, Any]:
        data = {
            "id": po.id,
            "uuid": str(po.uuid),
            "order_number": po.order_number,
            "order_date": po.order_date.isoformat(),
            "company_name": po.company_name,
            "farm_name": po.farm_name,
            "farm_number": po.farm_number,
            "village_name": po.village_name,
            "region": po.region,
            "pobox": po.pobox,
            "contact_name": po.contact_name,
            "phone_number": po.phone_number,
            "contact_email": po.contact_email,
            "total_amount": str(po.total_amount),
            "status": po.status,
            "receiving_status": po.receiving_status,
            "order_manager_id": po.order_manager_id,
            "approved_by_id": po.approved_by_id,
            "notes": po.notes,
            "created_at": po.created_at.isoformat(),
            "updated_at": po.updated_at.isoformat(),
        }
        if include_items:
            data["items"] = [cls.serialize_item(item) for item in po.items.all()]
        return data

    @classmethod
    def serialize_item(cls, item: PurchaseOrderItem) -> Dict[str, Any]:
        return {
            "id": item.id,
            "position": item.position,
            "description": item.description,
            "quantity": item.quantity,
            "unit_price": str(item.unit_price),
            "total_price": str(item.total_price),
            "stock_kind": item.stock_kind or None,
            "feed_type": item.feed_type or None,
        }

    @classmethod
    def get(cls, order_id: int) -> Dict[str, Any]:
        po = cls.get_or_404(order_id)
        return success_response({"purchase_order": cls.serialize(po)})

    @classmethod
    def get_all(cls, status: str = None, page: int = 1, per_page: int = 20) -> Dict[str, Any]:
        queryset = cls.model.objects.all()
        if status:
            queryset = queryset.filter(status=status)

        orders, pagination = paginate_queryset(queryset, page, per_page)
        return success_response({
            "purchase_orders": [cls.serialize(po, include_items=False) for po in orders],
            "pagination": pagination,
        })

    @classmethod
    def is_invoiceable(cls, po: PurchaseOrder) -> bool:
        if po.status != PurchaseOrder.Status.APPROVED:
            return False
        return not hasattr(po, "invoice")

    @classmethod
    def next_statuses(cls, po: PurchaseOrder, actor: Actor) -> List[str]:
        return allowed_transitions(ORDER_TRANSITIONS, po.status, actor.role)

    @classmethod
    @transaction.atomic
    def create(cls,
               actor: Actor,
               items: List[Dict[str, Any]],
               company_name: str,
               contact_name: str,
               phone_number: str,
               total_amount: Any = None,
               order_number: str = None,
               order_date: date = None,
               farm_name: str = "",
               farm_number: str = "",
               village_name: str = "",
               region: str = "",
               pobox: str = "",
               contact_email: str = "",
               notes: str = "") -> Dict[str, Any]:
        require_role(actor, ORDER_SUBMITTERS, "create purchase orders")

        company_name = to_text(company_name, "company_name")
        contact_name = to_text(contact_name, "contact_name")
        phone_number = to_text(phone_number, "phone_number")

        lines, computed_total = normalize_line_items(items)
        for idx, line in enumerate(lines):
            cls._validate_classification(line, idx)

        if total_amount is not None and to_decimal(total_amount, "total_amount") != computed_total:
            logger.warning(
                f"Submitted total {total_amount} for new order does not match "
                f"line totals {computed_total}; using {computed_total}"
            )

        order_number = to_text(order_number, "order_number", required=False)
        if order_number:
            cls._check_custom_number(order_number)
            if cls.model.objects.filter(order_number=order_number).exists():
                raise DuplicateError(
                    f"Order number {order_number} already exists",
                    {"order_number": order_number}
                )
        else:
            order_number = generate_number(settings.PURCHASE_ORDER_PREFIX)

        try:
            with transaction.atomic():
                po = cls.model.objects.create(
                    order_number=order_number,
                    order_date=to_date(order_date, "order_date") or timezone.localdate(),
                    company_name=company_name,
                    farm_name=farm_name,
                    farm_number=farm_number,
                    village_name=village_name,
                    region=region,
                    pobox=pobox,
                    contact_name=contact_name,
                    phone_number=phone_number,
                    contact_email=contact_email or "",
                    total_amount=computed_total,
                    order_manager_id=actor.user_id,
                    notes=notes,
                )
        except IntegrityError:
            raise DuplicateError(
                f"Order number {order_number} already exists",
                {"order_number": order_number}
            )

        PurchaseOrderItem.objects.bulk_create([
            PurchaseOrderItem(
                purchase_order=po,
                position=idx,
                description=line["description"],
                quantity=line["quantity"],
                unit_price=line["unit_price"],
                total_price=line["total_price"],
                stock_kind=line.get("stock_kind") or "",
                feed_type=line.get("feed_type") or "",
            )
            for idx, line in enumerate(lines)
        ])

        NotificationService.notify_role_on_commit(
            User.Role.ACCOUNTANT,
            f"New order {po.order_number} from {po.company_name} requires review"
        )
        logger.info(f"Purchase order {po.order_number} created by user {actor.user_id}")

        return success_response({
            "id": po.id,
            "purchase_order": cls.serialize(po)
        }, "Purchase order created")

    @classmethod
    @transaction.atomic
    def transition(cls, order_id: int, new_status: str, actor: Actor, reason: str = "") -> Dict[str, Any]:
        if new_status not in PurchaseOrder.Status.values:
            raise ValidationError(f"Unknown order status: {new_status}", "status")

        po = cls.lock_or_404(order_id)
        previous = po.status
        check_transition(ORDER_TRANSITIONS, previous, new_status, actor, "order")

        po.status = new_status
        update_fields = ["status", "updated_at"]

        if new_status == PurchaseOrder.Status.APPROVED:
            po.approved_by_id = actor.user_id
            update_fields.append("approved_by")

        if new_status == PurchaseOrder.Status.CANCELLED and reason:
            po.notes = f"{po.notes}\nCancelled: {reason}".strip()
            update_fields.append("notes")

        po.save(update_fields=update_fields)
        cls._notify_status_change(po, reason)

        logger.info(f"Order {po.order_number}: {previous} -> {new_status} by {actor.role} {actor.user_id}")
        return success_response({"purchase_order": cls.serialize(po)}, f"Order moved to {new_status}")

    @classmethod
    def _notify_status_change(cls, po: PurchaseOrder, reason: str = ""):
        Role = User.Role
        if po.status == PurchaseOrder.Status.IN_PROGRESS:
            for role in (Role.CEO, Role.MANAGER):
                NotificationService.notify_role_on_commit(
                    role, f"Order {po.order_number} is ready for final approval"
                )
            NotificationService.notify_role_on_commit(
                Role.ORDER_MANAGER, f"Order {po.order_number} has been approved for payment"
            )

        elif po.status == PurchaseOrder.Status.APPROVED:
            NotificationService.notify_role_on_commit(
                Role.ORDER_MANAGER, f"Order {po.order_number} has been approved"
            )
            if po.contact_email:
                NotificationService.notify_customer_on_commit(
                    po.contact_email, po.order_number, po.total_amount, po.contact_name
                )

        elif po.status == PurchaseOrder.Status.CANCELLED:
            message = f"Order {po.order_number} has been cancelled"
            if reason:
                message = f"{message}. Reason: {reason}"
            NotificationService.notify_role_on_commit(Role.ORDER_MANAGER, message)

    @staticmethod
    def _check_custom_number(order_number: str):
        # The PREFIX-YYYYMMDD-NNNN shape belongs to the daily sequence
        pattern = rf"{re.escape(settings.PURCHASE_ORDER_PREFIX)}-\d{{8}}-\d{{4}}"
        if re.fullmatch(pattern, order_number):
            raise ValidationError(
                f"Order number {order_number} is reserved for generated numbers", "order_number"
            )

    @staticmethod
    def _validate_classification(line: Dict[str, Any], idx: int):
        stock_kind = line.get("stock_kind")
        feed_type = line.get("feed_type")
        if stock_kind and stock_kind not in StockKind.values:
            raise ValidationError(f"Unknown stock kind: {stock_kind}", f"items[{idx}].stock_kind")
        if feed_type:
            if feed_type not in FeedType.values:
                raise ValidationError(f"Unknown feed type: {feed_type}", f"items[{idx}].feed_type")
            if stock_kind and stock_kind != StockKind.FEED:
                raise ValidationError("feed_type is only valid on feed lines", f"items[{idx}].feed_type")
