"""
Role-gated state machines for purchase orders, invoices and requisitions.

Each table maps ``current_status -> {requested_status: allowed_roles}``.
Statuses absent from a table, or mapping to an empty dict, are terminal.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable

from main.models import User
from stock.models import PurchaseOrder, Invoice, Requisition
from stock.services.base_service import InvalidTransitionError, PermissionDeniedError

Role = User.Role

TransitionTable = Dict[str, Dict[str, FrozenSet[str]]]


@dataclass(frozen=True)
class Actor:
    user_id: int
    role: str

    @classmethod
    def from_user(cls, user) -> "Actor":
        return cls(user_id=user.id, role=user.role)


def roles(*members: str) -> FrozenSet[str]:
    return frozenset(members)


ORDER_TRANSITIONS: TransitionTable = {
    PurchaseOrder.Status.PENDING: {
        PurchaseOrder.Status.IN_PROGRESS: roles(Role.ACCOUNTANT),
        PurchaseOrder.Status.CANCELLED: roles(Role.ACCOUNTANT, Role.MANAGER, Role.CEO),
    },
    PurchaseOrder.Status.IN_PROGRESS: {
        PurchaseOrder.Status.APPROVED: roles(Role.MANAGER, Role.CEO),
        PurchaseOrder.Status.CANCELLED: roles(Role.ACCOUNTANT, Role.MANAGER, Role.CEO),
    },
    PurchaseOrder.Status.APPROVED: {},
    PurchaseOrder.Status.CANCELLED: {},
    PurchaseOrder.Status.REJECTED: {},
}

INVOICE_TRANSITIONS: TransitionTable = {
    Invoice.Status.PENDING: {
        Invoice.Status.MANAGER_APPROVED: roles(Role.MANAGER),
        Invoice.Status.CANCELLED: roles(Role.MANAGER, Role.CEO),
    },
    Invoice.Status.MANAGER_APPROVED: {
        Invoice.Status.APPROVED: roles(Role.CEO),
        Invoice.Status.CANCELLED: roles(Role.MANAGER, Role.CEO),
    },
    Invoice.Status.APPROVED: {},
    Invoice.Status.CANCELLED: {},
}

# APPROVED -> INVOICED is only reachable through invoice generation.
REQUISITION_TRANSITIONS: TransitionTable = {
    Requisition.Status.PENDING: {
        Requisition.Status.APPROVED: roles(Role.MANAGER, Role.CEO),
        Requisition.Status.REJECTED: roles(Role.MANAGER, Role.CEO),
    },
    Requisition.Status.APPROVED: {},
    Requisition.Status.REJECTED: {},
    Requisition.Status.INVOICED: {},
}

INVOICE_CREATORS = roles(Role.ACCOUNTANT)
STOCK_RECEIVERS = roles(Role.ORDER_MANAGER, Role.ADMIN)
STOCK_APPROVERS = roles(Role.ACCOUNTANT)
LEDGER_ADMINS = roles(Role.ADMIN, Role.MANAGER, Role.CEO)
ORDER_SUBMITTERS = roles(Role.ORDER_MANAGER, Role.ADMIN)
SALES_CLERKS = roles(Role.ORDER_MANAGER, Role.MANAGER, Role.CEO, Role.ADMIN)
REQUISITION_CREATORS = roles(Role.ORDER_MANAGER, Role.ACCOUNTANT, Role.MANAGER, Role.CEO, Role.ADMIN)


def allowed_transitions(table: TransitionTable, current: str, role: str) -> Iterable[str]:
    return [
        target for target, allowed in table.get(current, {}).items()
        if role in allowed
    ]


def check_transition(table: TransitionTable,
                     current: str,
                     requested: str,
                     actor: Actor,
                     resource: str = None):
    allowed = table.get(current, {}).get(requested)
    if not allowed or actor.role not in allowed:
        raise InvalidTransitionError(current, requested, actor.role, resource)


def require_role(actor: Actor, allowed: FrozenSet[str], action: str):
    if actor.role not in allowed:
        raise PermissionDeniedError(action, actor.role)
