from unittest import mock

import pytest
from django.urls import reverse
from rest_framework.test import APIClient

from stock.models import PurchaseOrder, StockItem
from stock.services import StockLedgerService

pytestmark = pytest.mark.django_db


@pytest.fixture
def client_for():
    def _client_for(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client
    return _client_for


@pytest.fixture
def order_payload(order_lines):
    return {
        "company_name": "Green Valley Farms",
        "contact_name": "Amina Said",
        "phone_number": "+255700000001",
        "total_amount": "999.00",
        "items": order_lines,
    }


def test_requires_authentication():
    response = APIClient().get(reverse("stock:ledger-list"))

    assert response.status_code in (401, 403)


def test_create_order_returns_created(client_for, order_manager, order_payload):
    response = client_for(order_manager).post(reverse("stock:po-list"), order_payload, format="json")

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["purchase_order"]["total_amount"] == "2180.00"
    assert len(body["purchase_order"]["items"]) == 3


def test_invalid_order_is_bad_request(client_for, order_manager, order_payload):
    order_payload["items"] = []

    response = client_for(order_manager).post(reverse("stock:po-list"), order_payload, format="json")

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "validation_error"


def test_unexpected_field_is_bad_request(client_for, order_manager, order_payload):
    order_payload["discount"] = "10"

    response = client_for(order_manager).post(reverse("stock:po-list"), order_payload, format="json")

    assert response.status_code == 400
    assert response.json()["error"]["details"]["field"] == "discount"


def test_missing_required_field_is_bad_request(client_for, order_manager, order_payload):
    del order_payload["company_name"]

    response = client_for(order_manager).post(reverse("stock:po-list"), order_payload, format="json")

    assert response.status_code == 400
    assert response.json()["error"]["details"]["field"] == "company_name"


def test_numeric_name_is_bad_request(client_for, order_manager, order_payload):
    order_payload["company_name"] = 12345

    response = client_for(order_manager).post(reverse("stock:po-list"), order_payload, format="json")

    assert response.status_code == 400


def test_type_error_inside_service_is_server_error(client_for, order_manager, order_payload):
    with mock.patch(
        "stock.services.purchase_service.normalize_line_items", side_effect=TypeError("unexpected")
    ):
        response = client_for(order_manager).post(reverse("stock:po-list"), order_payload, format="json")

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "server_error"


def test_wrong_role_transition_is_conflict(client_for, manager, create_order):
    po = create_order()

    response = client_for(manager).post(
        reverse("stock:po-status", args=[po.id]), {"status": "IN_PROGRESS"}, format="json"
    )

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "invalid_transition"


def test_missing_order_is_not_found(client_for, accountant):
    response = client_for(accountant).get(reverse("stock:po-detail", args=[424242]))

    assert response.status_code == 404


def test_permission_denied_is_forbidden(client_for, manager, approved_order):
    response = client_for(manager).post(reverse("stock:po-invoice", args=[approved_order.id]), {}, format="json")

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "permission_denied"


def test_duplicate_invoice_is_conflict(client_for, accountant, approved_order):
    client = client_for(accountant)
    url = reverse("stock:po-invoice", args=[approved_order.id])

    assert client.post(url, {}, format="json").status_code == 201
    response = client.post(url, {}, format="json")

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "duplicate"


def test_invoice_approval_flow_over_http(client_for, accountant, manager, ceo, order_manager, approved_order):
    invoice_id = client_for(accountant).post(
        reverse("stock:po-invoice", args=[approved_order.id]), {}, format="json"
    ).json()["id"]
    url = reverse("stock:invoice-approvals", args=[invoice_id])

    assert client_for(manager).post(url, {"decision": "APPROVE"}, format="json").status_code == 201
    assert client_for(ceo).post(url, {"decision": "APPROVE"}, format="json").status_code == 201

    history = client_for(accountant).get(url).json()
    assert history["count"] == 2

    items = client_for(order_manager).get(reverse("stock:po-stock-items", args=[approved_order.id])).json()
    assert items["count"] == 2


def test_over_receipt_and_insufficient_stock_are_precondition_failures(client_for, order_manager,
                                                                       ledger_admin, receivable_order):
    item = StockItem.objects.filter(purchase_order=receivable_order).first()

    response = client_for(order_manager).post(
        reverse("stock:stock-item-receive", args=[item.id]),
        {"received_quantity": item.expected_quantity + 1},
        format="json",
    )
    assert response.status_code == 412
    assert response.json()["error"]["code"] == "over_receipt"

    StockLedgerService.credit("SASSO", 5)
    response = client_for(ledger_admin).post(
        reverse("stock:ledger-debit", args=["SASSO"]), {"quantity": 6}, format="json"
    )
    assert response.status_code == 412
    assert response.json()["error"]["details"] == {
        "item_kind": "SASSO", "available": "5", "requested": "6"
    }


def test_approve_unreceived_item_is_precondition_failure(client_for, accountant, receivable_order):
    item = StockItem.objects.filter(purchase_order=receivable_order).first()

    response = client_for(accountant).post(reverse("stock:stock-item-approve", args=[item.id]))

    assert response.status_code == 412
    assert response.json()["error"]["code"] == "not_received"


def test_ledger_adjustment_requires_admin_roles(client_for, order_manager, ledger_admin):
    url = reverse("stock:ledger-credit", args=["BROILER"])

    assert client_for(order_manager).post(url, {"quantity": 5}, format="json").status_code == 403

    response = client_for(ledger_admin).post(url, {"quantity": 5}, format="json")
    assert response.status_code == 200
    assert response.json()["entry"]["on_hand_quantity"] == 5


def test_list_orders_filters_by_status(client_for, accountant, create_order, approved_order):
    create_order()

    response = client_for(accountant).get(reverse("stock:po-list"), {"status": PurchaseOrder.Status.APPROVED})

    body = response.json()
    assert response.status_code == 200
    assert [o["id"] for o in body["purchase_orders"]] == [approved_order.id]
    assert body["pagination"]["total_items"] == 1


def test_invoice_status_route_records_each_decision(client_for, accountant, manager, ceo, approved_order):
    invoice_id = client_for(accountant).post(
        reverse("stock:po-invoice", args=[approved_order.id]), {}, format="json"
    ).json()["id"]
    url = reverse("stock:invoice-status", args=[invoice_id])

    assert client_for(manager).post(url, {"status": "MANAGER_APPROVED"}, format="json").status_code == 200
    response = client_for(ceo).post(url, {"status": "APPROVED"}, format="json")

    assert response.status_code == 200
    assert response.json()["invoice"]["status"] == "APPROVED"
    history = client_for(accountant).get(reverse("stock:invoice-approvals", args=[invoice_id])).json()
    assert [(a["approver_role"], a["decision"]) for a in history["approvals"]] == [
        ("MANAGER", "APPROVE"),
        ("CEO", "APPROVE"),
    ]
    assert StockItem.objects.filter(purchase_order=approved_order).count() == 2
