from datetime import date

import pytest

from main.models import User
from stock.models import PurchaseOrder, Invoice, Requisition
from stock.services import (
    Actor, ORDER_TRANSITIONS, INVOICE_TRANSITIONS, REQUISITION_TRANSITIONS,
    check_transition, allowed_transitions, InvalidTransitionError, next_sequence, generate_number
)

Role = User.Role


@pytest.mark.parametrize("table, statuses", [
    (ORDER_TRANSITIONS, PurchaseOrder.Status.values),
    (INVOICE_TRANSITIONS, Invoice.Status.values),
    (REQUISITION_TRANSITIONS, Requisition.Status.values),
])
def test_tables_only_reference_known_statuses(table, statuses):
    for current, targets in table.items():
        assert current in statuses
        assert set(targets) <= set(statuses)


@pytest.mark.parametrize("current, requested, role, allowed", [
    ("PENDING", "IN_PROGRESS", Role.ACCOUNTANT, True),
    ("PENDING", "IN_PROGRESS", Role.MANAGER, False),
    ("PENDING", "APPROVED", Role.CEO, False),
    ("IN_PROGRESS", "APPROVED", Role.MANAGER, True),
    ("IN_PROGRESS", "APPROVED", Role.ACCOUNTANT, False),
    ("APPROVED", "CANCELLED", Role.CEO, False),
])
def test_order_transitions(current, requested, role, allowed):
    actor = Actor(user_id=1, role=role)
    if allowed:
        check_transition(ORDER_TRANSITIONS, current, requested, actor)
    else:
        with pytest.raises(InvalidTransitionError):
            check_transition(ORDER_TRANSITIONS, current, requested, actor)


def test_terminal_statuses_have_no_exits():
    for role in Role.values:
        assert allowed_transitions(INVOICE_TRANSITIONS, Invoice.Status.APPROVED, role) == []
        assert allowed_transitions(REQUISITION_TRANSITIONS, Requisition.Status.INVOICED, role) == []


@pytest.mark.django_db
def test_sequences_are_per_scope():
    assert next_sequence("A") == 1
    assert next_sequence("A") == 2
    assert next_sequence("B") == 1


@pytest.mark.django_db
def test_generate_number_format():
    day = date(2024, 1, 9)
    assert generate_number("INVOICE", "%Y/%m/%d", on_date=day) == "INVOICE-2024/01/09-0001"
    assert generate_number("", "%Y%m%d", width=3, on_date=day) == "20240109-001"
    assert generate_number("PO", on_date=day) == "PO-20240109-0001"
    assert generate_number("PO", on_date=day) == "PO-20240109-0002"
