import itertools

import pytest

from main.models import User
from stock.models import PurchaseOrder, Invoice
from stock.services import (
    Actor, PurchaseOrderService, InvoiceService, ApprovalRecorder
)

_usernames = itertools.count(1)


@pytest.fixture
def make_user(django_user_model):
    def _make_user(role, **extra):
        username = extra.pop("username", f"{role.lower()}_{next(_usernames)}")
        return django_user_model.objects.create_user(
            username=username, password="secret-pass", role=role, **extra
        )
    return _make_user


@pytest.fixture
def order_manager(make_user):
    return make_user(User.Role.ORDER_MANAGER)


@pytest.fixture
def accountant(make_user):
    return make_user(User.Role.ACCOUNTANT)


@pytest.fixture
def manager(make_user):
    return make_user(User.Role.MANAGER)


@pytest.fixture
def ceo(make_user):
    return make_user(User.Role.CEO)


@pytest.fixture
def ledger_admin(make_user):
    return make_user(User.Role.ADMIN)


@pytest.fixture
def customer(make_user):
    return make_user(User.Role.CUSTOMER)


@pytest.fixture
def om_actor(order_manager):
    return Actor.from_user(order_manager)


@pytest.fixture
def accountant_actor(accountant):
    return Actor.from_user(accountant)


@pytest.fixture
def manager_actor(manager):
    return Actor.from_user(manager)


@pytest.fixture
def ceo_actor(ceo):
    return Actor.from_user(ceo)


@pytest.fixture
def admin_actor(ledger_admin):
    return Actor.from_user(ledger_admin)


@pytest.fixture
def order_lines():
    return [
        {"description": "Sasso chicks day old", "quantity": 500, "unit_price": "2.50"},
        {"description": "Broiler starter feed", "quantity": 20, "unit_price": "45.00"},
        {"description": "Delivery charge", "quantity": 1, "unit_price": "30.00"},
    ]


@pytest.fixture
def create_order(om_actor, order_lines):
    def _create_order(items=None, **fields):
        payload = {
            "company_name": "Green Valley Farms",
            "contact_name": "Amina Said",
            "phone_number": "+255700000001",
        }
        payload.update(fields)
        result = PurchaseOrderService.create(om_actor, order_lines if items is None else items, **payload)
        return PurchaseOrder.objects.get(id=result["id"])
    return _create_order


@pytest.fixture
def approve_order(accountant_actor, manager_actor):
    def _approve_order(po):
        PurchaseOrderService.transition(po.id, PurchaseOrder.Status.IN_PROGRESS, accountant_actor)
        PurchaseOrderService.transition(po.id, PurchaseOrder.Status.APPROVED, manager_actor)
        po.refresh_from_db()
        return po
    return _approve_order


@pytest.fixture
def approved_order(create_order, approve_order):
    return approve_order(create_order())


@pytest.fixture
def approve_invoice(manager_actor, ceo_actor):
    """Runs an invoice through both approval levels."""
    def _approve_invoice(invoice):
        ApprovalRecorder.record(invoice.id, manager_actor, "APPROVE")
        ApprovalRecorder.record(invoice.id, ceo_actor, "APPROVE")
        invoice.refresh_from_db()
        return invoice
    return _approve_invoice


@pytest.fixture
def receivable_order(approved_order, accountant_actor, approve_invoice):
    """Approved order whose invoice is fully approved, so stock items exist."""
    result = InvoiceService.generate_from_order(approved_order.id, accountant_actor)
    approve_invoice(Invoice.objects.get(id=result["id"]))
    approved_order.refresh_from_db()
    return approved_order
