import logging
from typing import Dict, Any, List
from datetime import date
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from main.models import User
from main.services.notification_service import NotificationService
from stock.models import Requisition, RequisitionItem
from stock.services.base_service import (
    BaseService, success_response, paginate_queryset,
    ValidationError, NotFoundError, DuplicateError, InvalidTransitionError,
    generate_number, normalize_line_items, to_quantity, to_date, to_text
)
from stock.services.workflow import (
    Actor, REQUISITION_TRANSITIONS, REQUISITION_CREATORS, check_transition, require_role
)

logger = logging.getLogger(__name__)


class RequisitionService(BaseService):
    model = Requisition

    @classmethod
    def serialize(cls, req: Requisition, include_items: bool = True) -> Dict[str, Any]:
        data = {
            "id": req.id,
            "uuid": str(req.uuid),
            "request_number": req.request_number,
            "request_date": req.request_date.isoformat(),
            "task_type": req.task_type,
            "employee_name": req.employee_name,
            "employee_title": req.employee_title,
            "employee_address": req.employee_address,
            "employee_phone": req.employee_phone,
            "signed_by": req.signed_by,
            "invoice_subtotal": str(req.invoice_subtotal),
            "transaction_charges": str(req.transaction_charges),
            "total": str(req.total),
            "status": req.status,
            "created_by_id": req.created_by_id,
            "approved_by_id": req.approved_by_id,
            "created_at": req.created_at.isoformat(),
        }
        if include_items:
            data["items"] = [
                {
                    "item_number": item.item_number,
                    "description": item.description,
                    "quantity": item.quantity,
                    "unit_price": str(item.unit_price),
                    "total_price": str(item.total_price),
                }
                for item in req.items.all()
            ]
        return data

    @classmethod
    def get(cls, requisition_id: int) -> Dict[str, Any]:
        return success_response({"requisition": cls.serialize(cls.get_or_404(requisition_id))})

    @classmethod
    def get_all(cls, status: str = None, page: int = 1, per_page: int = 20) -> Dict[str, Any]:
        queryset = cls.model.objects.all()
        if status:
            queryset = queryset.filter(status=status)

        requisitions, pagination = paginate_queryset(queryset, page, per_page)
        return success_response({
            "requisitions": [cls.serialize(r, include_items=False) for r in requisitions],
            "pagination": pagination,
        })

    @classmethod
    @transaction.atomic
    def create(cls,
               actor: Actor,
               items: List[Dict[str, Any]],
               employee_name: str,
               task_type: str = "Services",
               employee_title: str = "",
               employee_address: str = "",
               employee_phone: str = "",
               signed_by: str = "",
               request_date: date = None) -> Dict[str, Any]:
        require_role(actor, REQUISITION_CREATORS, "create requisitions")

        employee_name = to_text(employee_name, "employee_name")

        lines, subtotal = normalize_line_items(items)
        request_date = to_date(request_date, "request_date") or timezone.localdate()

        req = cls.model.objects.create(
            request_number=generate_number("", "%Y%m%d", width=3, on_date=request_date),
            request_date=request_date,
            task_type=task_type or "Services",
            employee_name=employee_name,
            employee_title=employee_title,
            employee_address=employee_address,
            employee_phone=employee_phone,
            signed_by=signed_by,
            invoice_subtotal=subtotal,
            transaction_charges=Decimal("0"),
            total=subtotal,
            created_by_id=actor.user_id,
        )

        RequisitionItem.objects.bulk_create([
            RequisitionItem(
                requisition=req,
                item_number=to_quantity(line.get("item_number") or idx + 1, f"items[{idx}].item_number", minimum=1),
                description=line["description"],
                quantity=line["quantity"],
                unit_price=line["unit_price"],
                total_price=line["total_price"],
            )
            for idx, line in enumerate(lines)
        ])

        NotificationService.notify_role_on_commit(
            User.Role.MANAGER,
            f"New request {req.request_number} from {req.employee_name} requires approval"
        )
        logger.info(f"Requisition {req.request_number} created by user {actor.user_id}")

        return success_response({
            "id": req.id,
            "requisition": cls.serialize(req)
        }, "Requisition created")

    @classmethod
    @transaction.atomic
    def decide(cls, requisition_id: int, new_status: str, actor: Actor) -> Dict[str, Any]:
        if new_status not in Requisition.Status.values:
            raise ValidationError(f"Unknown requisition status: {new_status}", "status")

        req = cls.lock_or_404(requisition_id)
        previous = req.status
        check_transition(REQUISITION_TRANSITIONS, previous, new_status, actor, "requisition")

        req.status = new_status
        req.approved_by_id = actor.user_id
        req.save(update_fields=["status", "approved_by", "updated_at"])

        NotificationService.notify_role_on_commit(
            req.created_by.role,
            f"Request {req.request_number} has been {new_status.lower()}"
        )
        logger.info(f"Requisition {req.request_number}: {previous} -> {new_status} by {actor.role} {actor.user_id}")

        return success_response({"requisition": cls.serialize(req)}, f"Requisition {new_status.lower()}")

    @classmethod
    def mark_invoiced(cls, requisition_id: int, actor: Actor):
        """Flip APPROVED to INVOICED exactly once; must run inside the invoice transaction."""
        updated = cls.model.objects.filter(
            id=requisition_id,
            status=Requisition.Status.APPROVED,
        ).update(status=Requisition.Status.INVOICED, updated_at=timezone.now())

        if updated:
            return

        current = cls.model.objects.filter(id=requisition_id).values_list("status", flat=True).first()
        if current is None:
            raise NotFoundError("Requisition", requisition_id)
        if current == Requisition.Status.INVOICED:
            raise DuplicateError(
                "Requisition has already been invoiced",
                {"requisition_id": str(requisition_id)}
            )
        raise InvalidTransitionError(current, Requisition.Status.INVOICED, actor.role, "requisition")
