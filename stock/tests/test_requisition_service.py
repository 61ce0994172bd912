import re

import pytest

from main.models import Notification
from stock.models import Requisition, Invoice
from stock.services import (
    RequisitionService, InvoiceService, DuplicateError, InvalidTransitionError,
    ValidationError, NotFoundError
)

pytestmark = pytest.mark.django_db


@pytest.fixture
def create_requisition(om_actor):
    def _create_requisition(**fields):
        payload = {
            "employee_name": "Joseph Mrema",
            "employee_title": "Driver",
            "items": [
                {"description": "Fuel for delivery truck", "quantity": 2, "unit_price": "60000"},
                {"description": "Vehicle washing", "quantity": 1, "unit_price": "5000"},
            ],
        }
        payload.update(fields)
        result = RequisitionService.create(om_actor, **payload)
        return Requisition.objects.get(id=result["id"])
    return _create_requisition


def test_create_numbers_and_totals(create_requisition):
    first = create_requisition()
    second = create_requisition()

    assert re.fullmatch(r"\d{8}-001", first.request_number)
    assert second.request_number.endswith("-002")
    assert first.total == first.invoice_subtotal
    assert str(first.total) == "125000.00"
    assert [i.item_number for i in first.items.all()] == [1, 2]


def test_create_requires_employee_name(create_requisition):
    with pytest.raises(ValidationError):
        create_requisition(employee_name="")
    with pytest.raises(ValidationError) as exc:
        create_requisition(employee_name=1001)
    assert exc.value.field == "employee_name"
    assert not Requisition.objects.exists()


def test_create_accepts_iso_date_strings(create_requisition):
    req = create_requisition(request_date="2024-03-05")

    assert req.request_date.isoformat() == "2024-03-05"
    assert req.request_number == "20240305-001"

    with pytest.raises(ValidationError):
        create_requisition(request_date="05/03/2024")


def test_decide_by_manager_or_ceo(create_requisition, manager_actor, ceo_actor, accountant_actor):
    approved = create_requisition()
    rejected = create_requisition()

    with pytest.raises(InvalidTransitionError):
        RequisitionService.decide(approved.id, Requisition.Status.APPROVED, accountant_actor)

    RequisitionService.decide(approved.id, Requisition.Status.APPROVED, manager_actor)
    result = RequisitionService.decide(rejected.id, Requisition.Status.REJECTED, ceo_actor)

    approved.refresh_from_db()
    assert approved.status == Requisition.Status.APPROVED
    assert approved.approved_by_id == manager_actor.user_id
    assert result["requisition"]["status"] == Requisition.Status.REJECTED

    with pytest.raises(InvalidTransitionError):
        RequisitionService.decide(rejected.id, Requisition.Status.APPROVED, ceo_actor)


def test_decide_cannot_mark_invoiced(create_requisition, manager_actor):
    req = create_requisition()
    RequisitionService.decide(req.id, Requisition.Status.APPROVED, manager_actor)

    with pytest.raises(InvalidTransitionError):
        RequisitionService.decide(req.id, Requisition.Status.INVOICED, manager_actor)


def test_invoicing_twice_is_duplicate(create_requisition, manager_actor, accountant_actor):
    req = create_requisition()
    RequisitionService.decide(req.id, Requisition.Status.APPROVED, manager_actor)

    result = InvoiceService.generate_from_request(req.id, accountant_actor)
    assert result["invoice"]["type"] == Invoice.InvoiceType.REQUEST
    assert result["invoice"]["total"] == "125000.00"

    req.refresh_from_db()
    assert req.status == Requisition.Status.INVOICED

    with pytest.raises(DuplicateError):
        InvoiceService.generate_from_request(req.id, accountant_actor)

    assert Invoice.objects.filter(requisition=req).count() == 1


def test_pending_requisition_cannot_be_invoiced(create_requisition, accountant_actor):
    req = create_requisition()

    with pytest.raises(InvalidTransitionError):
        InvoiceService.generate_from_request(req.id, accountant_actor)

    assert not Invoice.objects.exists()


def test_mark_invoiced_is_single_shot(create_requisition, manager_actor, accountant_actor):
    req = create_requisition()

    with pytest.raises(InvalidTransitionError):
        RequisitionService.mark_invoiced(req.id, accountant_actor)

    RequisitionService.decide(req.id, Requisition.Status.APPROVED, manager_actor)
    RequisitionService.mark_invoiced(req.id, accountant_actor)

    with pytest.raises(DuplicateError):
        RequisitionService.mark_invoiced(req.id, accountant_actor)
    with pytest.raises(NotFoundError):
        RequisitionService.mark_invoiced(999999, accountant_actor)


def test_creation_notifies_managers(create_requisition, manager, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        req = create_requisition()

    assert Notification.objects.filter(
        recipient=manager, message__contains=req.request_number
    ).exists()
