import logging
from typing import Dict, Any, List
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.db import transaction, IntegrityError
from django.utils import timezone

from main.models import User
from main.services.notification_service import NotificationService
from stock.models import ApprovalRecord, Invoice, InvoiceItem, PurchaseOrder, Requisition
from stock.services.base_service import (
    BaseService, success_response, paginate_queryset,
    ValidationError, DuplicateError, InvalidTransitionError,
    to_decimal, round_decimal, generate_number, normalize_line_items
)
from stock.services.purchase_service import PurchaseOrderService
from stock.services.receiving_service import StockReceivingService
from stock.services.requisition_service import RequisitionService
from stock.services.workflow import (
    Actor, INVOICE_TRANSITIONS, INVOICE_CREATORS, check_transition, require_role
)

logger = logging.getLogger(__name__)


class InvoiceService(BaseService):
    model = Invoice

    @classmethod
    def serialize(cls, invoice: Invoice, include_items: bool = True) -> Dict[str, Any]:
        data = {
            "id": invoice.id,
            "uuid": str(invoice.uuid),
            "invoice_number": invoice.invoice_number,
            "invoice_date": invoice.invoice_date.isoformat(),
            "due_date": invoice.due_date.isoformat(),
            "type": invoice.type,
            "purchase_order_id": invoice.purchase_order_id,
            "requisition_id": invoice.requisition_id,
            "subtotal": str(invoice.subtotal),
            "tax": str(invoice.tax),
            "total": str(invoice.total),
            "status": invoice.status,
            "created_by_id": invoice.created_by_id,
            "approved_by_id": invoice.approved_by_id,
            "notes": invoice.notes,
            "created_at": invoice.created_at.isoformat(),
        }
        if include_items:
            data["items"] = [
                {
                    "position": item.position,
                    "description": item.description,
                    "quantity": item.quantity,
                    "unit_price": str(item.unit_price),
                    "total_price": str(item.total_price),
                }
                for item in invoice.items.all()
            ]
        return data

    @classmethod
    def get(cls, invoice_id: int) -> Dict[str, Any]:
        return success_response({"invoice": cls.serialize(cls.get_or_404(invoice_id))})

    @classmethod
    def get_all(cls, status: str = None, page: int = 1, per_page: int = 20) -> Dict[str, Any]:
        queryset = cls.model.objects.all()
        if status:
            queryset = queryset.filter(status=status)

        invoices, pagination = paginate_queryset(queryset, page, per_page)
        return success_response({
            "invoices": [cls.serialize(inv, include_items=False) for inv in invoices],
            "pagination": pagination,
        })

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    @classmethod
    @transaction.atomic
    def generate_from_order(cls, order_id: int, actor: Actor, notes: str = "") -> Dict[str, Any]:
        require_role(actor, INVOICE_CREATORS, "generate invoices")

        # Lock the order so concurrent generations queue behind each other
        po = PurchaseOrderService.lock_or_404(order_id)

        if po.status != PurchaseOrder.Status.APPROVED:
            raise InvalidTransitionError(po.status, "INVOICED", actor.role, "order")

        if cls.model.objects.filter(purchase_order=po).exists():
            raise DuplicateError(
                f"Invoice already exists for order {po.order_number}",
                {"purchase_order_id": str(po.id)}
            )

        lines, subtotal = normalize_line_items([
            {"description": item.description, "quantity": item.quantity, "unit_price": item.unit_price}
            for item in po.items.all()
        ])

        invoice = cls._create_invoice(
            actor,
            Invoice.InvoiceType.ORDER,
            lines,
            subtotal,
            notes=notes,
            purchase_order=po,
        )

        NotificationService.notify_role_on_commit(
            User.Role.MANAGER,
            f"New invoice {invoice.invoice_number} generated for order {po.order_number}"
        )
        return success_response({
            "id": invoice.id,
            "invoice": cls.serialize(invoice)
        }, "Invoice generated")

    @classmethod
    @transaction.atomic
    def generate_from_request(cls, requisition_id: int, actor: Actor, notes: str = "") -> Dict[str, Any]:
        require_role(actor, INVOICE_CREATORS, "generate invoices")

        req = RequisitionService.lock_or_404(requisition_id)

        if req.status == Requisition.Status.INVOICED or cls.model.objects.filter(requisition=req).exists():
            raise DuplicateError(
                f"Requisition {req.request_number} has already been invoiced",
                {"requisition_id": str(req.id)}
            )

        if req.status != Requisition.Status.APPROVED:
            raise InvalidTransitionError(req.status, Requisition.Status.INVOICED, actor.role, "requisition")

        lines, subtotal = normalize_line_items([
            {"description": item.description, "quantity": item.quantity, "unit_price": item.unit_price}
            for item in req.items.all()
        ])

        invoice = cls._create_invoice(
            actor,
            Invoice.InvoiceType.REQUEST,
            lines,
            subtotal,
            notes=notes,
            requisition=req,
        )
        RequisitionService.mark_invoiced(req.id, actor)

        NotificationService.notify_role_on_commit(
            User.Role.MANAGER,
            f"New invoice {invoice.invoice_number} generated for request {req.request_number}"
        )
        return success_response({
            "id": invoice.id,
            "invoice": cls.serialize(invoice)
        }, "Invoice generated")

    @classmethod
    @transaction.atomic
    def create_manual(cls,
                      actor: Actor,
                      items: List[Dict[str, Any]],
                      tax: Any = 0,
                      notes: str = "") -> Dict[str, Any]:
        require_role(actor, INVOICE_CREATORS, "create invoices")

        lines, subtotal = normalize_line_items(items)
        tax = round_decimal(to_decimal(tax, "tax"))
        if tax < 0:
            raise ValidationError("Tax cannot be negative", "tax")

        invoice = cls._create_invoice(actor, Invoice.InvoiceType.MANUAL, lines, subtotal, tax=tax, notes=notes)

        NotificationService.notify_role_on_commit(
            User.Role.MANAGER,
            f"New invoice {invoice.invoice_number} created"
        )
        return success_response({
            "id": invoice.id,
            "invoice": cls.serialize(invoice)
        }, "Invoice created")

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    @classmethod
    @transaction.atomic
    def transition(cls, invoice_id: int, new_status: str, actor: Actor, reason: str = "") -> Dict[str, Any]:
        if new_status not in Invoice.Status.values:
            raise ValidationError(f"Unknown invoice status: {new_status}", "status")

        invoice = cls.lock_or_404(invoice_id)
        previous = invoice.status
        check_transition(INVOICE_TRANSITIONS, previous, new_status, actor, "invoice")

        invoice.status = new_status
        update_fields = ["status", "updated_at"]

        if new_status == Invoice.Status.APPROVED:
            invoice.approved_by_id = actor.user_id
            update_fields.append("approved_by")

        if new_status == Invoice.Status.CANCELLED and reason:
            invoice.notes = f"{invoice.notes}\nCancelled: {reason}".strip()
            update_fields.append("notes")

        invoice.save(update_fields=update_fields)
        approval = cls._append_approval(invoice, actor, reason)

        if new_status == Invoice.Status.APPROVED and invoice.purchase_order_id:
            # Any failure here rolls back the status change as well
            spawned = StockReceivingService.spawn_from_approved_order(invoice.purchase_order, invoice)
            if spawned:
                NotificationService.notify_role_on_commit(
                    User.Role.ORDER_MANAGER,
                    f"New stock items created for invoice {invoice.invoice_number}. "
                    f"Please review and receive the stock."
                )

        cls._notify_status_change(invoice, reason)
        logger.info(f"Invoice {invoice.invoice_number}: {previous} -> {new_status} by {actor.role} {actor.user_id}")

        return success_response({
            "invoice": cls.serialize(invoice),
            "approval_id": approval.id,
        }, f"Invoice moved to {new_status}")

    @classmethod
    def _append_approval(cls, invoice: Invoice, actor: Actor, comments: str) -> ApprovalRecord:
        # Every invoice status change is a manager or CEO decision
        if invoice.status == Invoice.Status.CANCELLED:
            decision = ApprovalRecord.Decision.REJECT
        else:
            decision = ApprovalRecord.Decision.APPROVE
        return ApprovalRecord.objects.create(
            invoice=invoice,
            approver_id=actor.user_id,
            approver_role=actor.role,
            decision=decision,
            resulting_status=invoice.status,
            comments=comments,
        )

    @classmethod
    def _notify_status_change(cls, invoice: Invoice, reason: str = ""):
        Role = User.Role
        if invoice.status == Invoice.Status.MANAGER_APPROVED:
            NotificationService.notify_role_on_commit(
                Role.CEO, f"Invoice {invoice.invoice_number} was approved by a manager and awaits final approval"
            )
        elif invoice.status == Invoice.Status.APPROVED:
            for role in (Role.ORDER_MANAGER, Role.ACCOUNTANT):
                NotificationService.notify_role_on_commit(
                    role, f"Invoice {invoice.invoice_number} has been approved"
                )
        elif invoice.status == Invoice.Status.CANCELLED:
            message = f"Invoice {invoice.invoice_number} has been cancelled"
            if reason:
                message = f"{message}. Reason: {reason}"
            NotificationService.notify_role_on_commit(Role.ACCOUNTANT, message)

    @classmethod
    def _create_invoice(cls,
                        actor: Actor,
                        invoice_type: str,
                        lines: List[Dict[str, Any]],
                        subtotal: Decimal,
                        tax: Decimal = Decimal("0"),
                        notes: str = "",
                        purchase_order: PurchaseOrder = None,
                        requisition: Requisition = None) -> Invoice:
        invoice_date = timezone.localdate()

        try:
            with transaction.atomic():
                invoice = cls.model.objects.create(
                    invoice_number=generate_number(settings.INVOICE_NUMBER_PREFIX, "%Y/%m/%d", on_date=invoice_date),
                    invoice_date=invoice_date,
                    due_date=invoice_date + timedelta(days=settings.INVOICE_DUE_DAYS),
                    type=invoice_type,
                    purchase_order=purchase_order,
                    requisition=requisition,
                    subtotal=subtotal,
                    tax=tax,
                    total=subtotal + tax,
                    created_by_id=actor.user_id,
                    notes=notes,
                )
        except IntegrityError:
            raise DuplicateError("An invoice already exists for this source document")

        InvoiceItem.objects.bulk_create([
            InvoiceItem(
                invoice=invoice,
                position=idx,
                description=line["description"],
                quantity=line["quantity"],
                unit_price=line["unit_price"],
                total_price=line["total_price"],
            )
            for idx, line in enumerate(lines)
        ])

        logger.info(f"Invoice {invoice.invoice_number} ({invoice_type}) created by user {actor.user_id}")
        return invoice
