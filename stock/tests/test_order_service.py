from decimal import Decimal

import pytest
from django.core import mail

from stock.models import ChickenOrder, FeedOrderLine, StockLedgerEntry
from stock.services import (
    ChickenOrderService, StockLedgerService, InsufficientStockError, InvalidTransitionError,
    ValidationError, PermissionDeniedError
)

pytestmark = pytest.mark.django_db


@pytest.fixture
def sasso_stock():
    StockLedgerService.credit("SASSO", 200)
    StockLedgerService.set_pricing("SASSO", selling_unit_price="3.50")


def on_hand(kind):
    return StockLedgerEntry.objects.get(item_kind=kind).on_hand_quantity


def test_sale_uses_ledger_price_and_debits_stock(sasso_stock, om_actor):
    result = ChickenOrderService.create(om_actor, "Mama Neema", "SASSO", 50)

    order = result["chicken_order"]
    assert order["price_per_chicken"] == "3.50"
    assert order["total_price"] == "175.00"
    assert on_hand("SASSO") == 150


def test_oversell_creates_no_order(sasso_stock, om_actor):
    with pytest.raises(InsufficientStockError):
        ChickenOrderService.create(om_actor, "Mama Neema", "SASSO", 201, price_per_chicken="3")

    assert not ChickenOrder.objects.exists()
    assert on_hand("SASSO") == 200


def test_sale_without_selling_price_is_rejected(om_actor):
    StockLedgerService.credit("BROILER", 10)

    with pytest.raises(ValidationError):
        ChickenOrderService.create(om_actor, "Client", "BROILER", 1)


def test_sale_validates_input(sasso_stock, om_actor, accountant_actor):
    with pytest.raises(ValidationError):
        ChickenOrderService.create(om_actor, "Client", "DUCK", 1)
    with pytest.raises(ValidationError):
        ChickenOrderService.create(om_actor, "", "SASSO", 1)
    with pytest.raises(ValidationError):
        ChickenOrderService.create(om_actor, 2024, "SASSO", 1)
    with pytest.raises(PermissionDeniedError):
        ChickenOrderService.create(accountant_actor, "Client", "SASSO", 1)


def test_change_quantity_moves_the_difference(sasso_stock, om_actor):
    order_id = ChickenOrderService.create(om_actor, "Client", "SASSO", 50)["id"]

    ChickenOrderService.change_quantity(order_id, 80, om_actor)
    assert on_hand("SASSO") == 120

    result = ChickenOrderService.change_quantity(order_id, 30, om_actor)
    assert on_hand("SASSO") == 170
    assert result["chicken_order"]["total_price"] == "105.00"


def test_cancel_returns_stock_once(sasso_stock, om_actor):
    order_id = ChickenOrderService.create(om_actor, "Client", "SASSO", 40)["id"]

    ChickenOrderService.cancel(order_id, om_actor)
    assert on_hand("SASSO") == 200
    assert ChickenOrder.objects.get(id=order_id).status == ChickenOrder.Status.CANCELLED

    with pytest.raises(InvalidTransitionError):
        ChickenOrderService.cancel(order_id, om_actor)
    assert on_hand("SASSO") == 200


def test_sale_emails_customer_after_commit(sasso_stock, om_actor, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        ChickenOrderService.create(
            om_actor, "Client", "SASSO", 2, price_per_chicken=Decimal("4"), customer_email="client@example.com"
        )

    assert len(mail.outbox) == 1
    assert "8.00" in mail.outbox[0].body


def test_sale_stores_feed_lines_with_server_totals(sasso_stock, om_actor):
    result = ChickenOrderService.create(
        om_actor, "Mama Neema", "SASSO", 10,
        feed_orders=[
            {"feed_type": "BROILER_STARTER", "quantity": 2, "price_per_unit": "45000", "total_price": "1"},
            {"feed_type": "BROILER_GROWER_MV", "quantity": "1.5", "price_per_unit": "40000"},
        ],
    )

    order = result["chicken_order"]
    assert [(f["feed_type"], f["company"], f["total_price"]) for f in order["feed_orders"]] == [
        ("BROILER_STARTER", "SILVERLAND", "90000.00"),
        ("BROILER_GROWER_MV", "ARVINES", "60000.00"),
    ]
    assert order["feed_total"] == "150000.00"
    assert order["total_price"] == "35.00"
    assert FeedOrderLine.objects.filter(chicken_order_id=result["id"]).count() == 2
    assert on_hand("SASSO") == 190


@pytest.mark.parametrize("feed_line", [
    {"feed_type": "CAKE", "quantity": 1, "price_per_unit": "1"},
    {"feed_type": "BROILER_STARTER", "company": "ACME", "quantity": 1, "price_per_unit": "1"},
    {"feed_type": "BROILER_STARTER", "quantity": -1, "price_per_unit": "1"},
    {"feed_type": "BROILER_STARTER", "quantity": 1},
    "two bags",
])
def test_invalid_feed_line_rejects_whole_sale(sasso_stock, om_actor, feed_line):
    with pytest.raises(ValidationError):
        ChickenOrderService.create(om_actor, "Client", "SASSO", 5, feed_orders=[feed_line])

    assert not ChickenOrder.objects.exists()
    assert not FeedOrderLine.objects.exists()
    assert on_hand("SASSO") == 200


def test_oversell_discards_feed_lines(sasso_stock, om_actor):
    with pytest.raises(InsufficientStockError):
        ChickenOrderService.create(
            om_actor, "Client", "SASSO", 500,
            feed_orders=[{"feed_type": "BROILER_GROWER", "quantity": 1, "price_per_unit": "10"}],
        )

    assert not FeedOrderLine.objects.exists()
