import re
from datetime import timedelta
from decimal import Decimal

import pytest

from main.models import Notification
from stock.models import Invoice, StockItem, ApprovalRecord, StockKind
from stock.services import (
    InvoiceService, ApprovalRecorder, InvalidTransitionError, DuplicateError,
    PermissionDeniedError, ValidationError
)

pytestmark = pytest.mark.django_db


def test_invoice_totals_come_from_order_lines(create_order, approve_order, accountant_actor):
    po = approve_order(create_order(
        items=[{"description": "Sasso chicks", "quantity": 60, "unit_price": "2.50"}],
        total_amount=999,
    ))

    result = InvoiceService.generate_from_order(po.id, accountant_actor)

    invoice = result["invoice"]
    assert invoice["subtotal"] == "150.00"
    assert invoice["total"] == "150.00"
    assert invoice["type"] == Invoice.InvoiceType.ORDER
    assert invoice["items"] == [{
        "position": 0,
        "description": "Sasso chicks",
        "quantity": 60,
        "unit_price": "2.50",
        "total_price": "150.00",
    }]


def test_invoice_number_and_due_date(approved_order, accountant_actor):
    result = InvoiceService.generate_from_order(approved_order.id, accountant_actor)
    invoice = Invoice.objects.get(id=result["id"])

    assert re.fullmatch(r"INVOICE-\d{4}/\d{2}/\d{2}-0001", invoice.invoice_number)
    assert invoice.due_date == invoice.invoice_date + timedelta(days=30)
    assert invoice.status == Invoice.Status.PENDING


def test_second_invoice_for_order_is_duplicate(approved_order, accountant_actor):
    InvoiceService.generate_from_order(approved_order.id, accountant_actor)

    with pytest.raises(DuplicateError):
        InvoiceService.generate_from_order(approved_order.id, accountant_actor)

    assert Invoice.objects.filter(purchase_order=approved_order).count() == 1


def test_unapproved_order_cannot_be_invoiced(create_order, accountant_actor):
    po = create_order()

    with pytest.raises(InvalidTransitionError):
        InvoiceService.generate_from_order(po.id, accountant_actor)

    assert not Invoice.objects.exists()


def test_only_accountant_generates_invoices(approved_order, manager_actor):
    with pytest.raises(PermissionDeniedError):
        InvoiceService.generate_from_order(approved_order.id, manager_actor)


def test_final_approval_spawns_stock_items(approved_order, accountant_actor, manager_actor, ceo_actor,
                                           order_manager, django_capture_on_commit_callbacks):
    invoice_id = InvoiceService.generate_from_order(approved_order.id, accountant_actor)["id"]

    InvoiceService.transition(invoice_id, Invoice.Status.MANAGER_APPROVED, manager_actor)
    assert not StockItem.objects.exists()

    with django_capture_on_commit_callbacks(execute=True):
        InvoiceService.transition(invoice_id, Invoice.Status.APPROVED, ceo_actor)

    items = StockItem.objects.filter(invoice_id=invoice_id)
    assert {i.kind for i in items} == {StockKind.SASSO_CHICKS, StockKind.FEED}
    assert Notification.objects.filter(
        recipient=order_manager, message__startswith="New stock items created for invoice"
    ).exists()


def test_failed_spawn_rolls_back_approval(approved_order, accountant_actor, manager_actor, ceo_actor):
    invoice_id = InvoiceService.generate_from_order(approved_order.id, accountant_actor)["id"]
    ApprovalRecorder.record(invoice_id, manager_actor, "APPROVE")

    StockItem.objects.create(
        purchase_order=approved_order,
        kind=StockKind.SASSO_CHICKS,
        description="Sasso chicks day old",
        unit_price=Decimal("2.50"),
        expected_quantity=500,
    )

    with pytest.raises(DuplicateError):
        ApprovalRecorder.record(invoice_id, ceo_actor, "APPROVE")

    invoice = Invoice.objects.get(id=invoice_id)
    assert invoice.status == Invoice.Status.MANAGER_APPROVED
    assert ApprovalRecord.objects.filter(invoice=invoice).count() == 1
    assert StockItem.objects.filter(purchase_order=approved_order).count() == 1


def test_invoice_transitions_follow_approval_levels(approved_order, accountant_actor, manager_actor, ceo_actor):
    invoice_id = InvoiceService.generate_from_order(approved_order.id, accountant_actor)["id"]

    with pytest.raises(InvalidTransitionError):
        InvoiceService.transition(invoice_id, Invoice.Status.APPROVED, ceo_actor)
    with pytest.raises(InvalidTransitionError):
        InvoiceService.transition(invoice_id, Invoice.Status.MANAGER_APPROVED, accountant_actor)

    InvoiceService.transition(invoice_id, Invoice.Status.MANAGER_APPROVED, manager_actor)
    result = InvoiceService.transition(invoice_id, Invoice.Status.CANCELLED, ceo_actor, reason="Wrong supplier")

    assert result["invoice"]["status"] == Invoice.Status.CANCELLED
    assert "Wrong supplier" in result["invoice"]["notes"]
    records = ApprovalRecord.objects.filter(invoice_id=invoice_id)
    assert list(records.values_list("decision", "approver_role", "comments")) == [
        (ApprovalRecord.Decision.APPROVE, "MANAGER", ""),
        (ApprovalRecord.Decision.REJECT, "CEO", "Wrong supplier"),
    ]

    with pytest.raises(InvalidTransitionError):
        InvoiceService.transition(invoice_id, Invoice.Status.APPROVED, ceo_actor)


def test_manual_invoice_adds_tax_and_spawns_nothing(accountant_actor, approve_invoice):
    result = InvoiceService.create_manual(
        accountant_actor,
        [{"description": "Vaccines", "quantity": 4, "unit_price": "12.50"}],
        tax="9",
    )

    assert result["invoice"]["subtotal"] == "50.00"
    assert result["invoice"]["tax"] == "9.00"
    assert result["invoice"]["total"] == "59.00"

    invoice = approve_invoice(Invoice.objects.get(id=result["id"]))
    assert invoice.status == Invoice.Status.APPROVED
    assert not StockItem.objects.exists()


def test_manual_invoice_rejects_negative_tax(accountant_actor):
    with pytest.raises(ValidationError):
        InvoiceService.create_manual(
            accountant_actor,
            [{"description": "Vaccines", "quantity": 1, "unit_price": "1"}],
            tax="-1",
        )


def test_invoice_numbers_increase_within_a_day(accountant_actor):
    numbers = [
        InvoiceService.create_manual(
            accountant_actor,
            [{"description": "Service", "quantity": 1, "unit_price": "10"}],
        )["invoice"]["invoice_number"]
        for _ in range(3)
    ]

    assert [n[-4:] for n in numbers] == ["0001", "0002", "0003"]
    assert len(set(numbers)) == 3
