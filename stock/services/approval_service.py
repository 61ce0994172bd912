import logging
from typing import Dict, Any

from django.db import transaction

from main.models import User
from stock.models import ApprovalRecord, Invoice
from stock.services.base_service import (
    BaseService, success_response, ValidationError, InvalidTransitionError
)
from stock.services.invoice_service import InvoiceService
from stock.services.workflow import Actor

logger = logging.getLogger(__name__)


# Invoice status an APPROVE decision moves to, by approver role
APPROVAL_TARGETS = {
    User.Role.MANAGER: Invoice.Status.MANAGER_APPROVED,
    User.Role.CEO: Invoice.Status.APPROVED,
}


class ApprovalRecorder(BaseService):
    model = ApprovalRecord

    @classmethod
    def serialize(cls, record: ApprovalRecord) -> Dict[str, Any]:
        return {
            "id": record.id,
            "invoice_id": record.invoice_id,
            "approver_id": record.approver_id,
            "approver_role": record.approver_role,
            "decision": record.decision,
            "resulting_status": record.resulting_status,
            "comments": record.comments,
            "created_at": record.created_at.isoformat(),
        }

    @classmethod
    @transaction.atomic
    def record(cls, invoice_id: int, actor: Actor, decision: str, comments: str = "") -> Dict[str, Any]:
        if decision not in ApprovalRecord.Decision.values:
            raise ValidationError(f"Unknown decision: {decision}", "decision")

        if decision == ApprovalRecord.Decision.REJECT:
            target = Invoice.Status.CANCELLED
        else:
            target = APPROVAL_TARGETS.get(actor.role)
            if target is None:
                invoice = InvoiceService.get_or_404(invoice_id)
                raise InvalidTransitionError(invoice.status, Invoice.Status.APPROVED, actor.role, "invoice")

        # The transition appends the record in the same transaction
        result = InvoiceService.transition(invoice_id, target, actor, reason=comments)
        record = cls.model.objects.get(id=result["approval_id"])
        logger.info(f"Approval recorded on invoice {invoice_id}: {decision} by {actor.role} {actor.user_id}")

        return success_response({
            "approval": cls.serialize(record),
            "invoice": result["invoice"],
        }, "Decision recorded")

    @classmethod
    def history(cls, invoice_id: int) -> Dict[str, Any]:
        InvoiceService.get_or_404(invoice_id)
        records = cls.model.objects.filter(invoice_id=invoice_id)
        return success_response({
            "approvals": [cls.serialize(r) for r in records],
            "count": records.count(),
        })
