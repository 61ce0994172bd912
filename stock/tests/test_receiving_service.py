from decimal import Decimal

import pytest

from stock.models import (
    StockItem, StockKind, FeedType, FeedCompany, FeedStockReceipt,
    StockLedgerEntry, PurchaseOrder
)
from stock.services import (
    StockReceivingService, OverReceiptError, NotReceivedError, InvalidTransitionError,
    ClassificationError, DuplicateError, ValidationError, PermissionDeniedError
)

pytestmark = pytest.mark.django_db


@pytest.fixture
def broiler_item(create_order, approve_order):
    po = approve_order(create_order(items=[
        {"description": "Broiler chicks", "quantity": 100, "unit_price": "1.50"},
    ]))
    return StockReceivingService.spawn_from_approved_order(po)[0]


def test_partial_over_and_full_receipt(broiler_item, om_actor):
    result = StockReceivingService.receive(broiler_item.id, 60, om_actor)
    assert result["stock_item"]["status"] == StockItem.Status.PARTIALLY_RECEIVED
    assert result["stock_item"]["received_quantity"] == 60

    with pytest.raises(OverReceiptError) as exc:
        StockReceivingService.receive(broiler_item.id, 50, om_actor)
    assert exc.value.would_be_total == 110
    assert exc.value.expected == 100

    broiler_item.refresh_from_db()
    assert broiler_item.received_quantity == 60

    result = StockReceivingService.receive(broiler_item.id, 40, om_actor)
    assert result["stock_item"]["status"] == StockItem.Status.FULLY_RECEIVED
    assert result["stock_item"]["received_quantity"] == 100
    assert result["stock_item"]["pending_quantity"] == 0


def test_receive_tracks_order_receiving_status(broiler_item, om_actor):
    order = broiler_item.purchase_order
    assert order.receiving_status == PurchaseOrder.ReceivingStatus.NOT_STARTED

    StockReceivingService.receive(broiler_item.id, 30, om_actor)
    order.refresh_from_db()
    assert order.receiving_status == PurchaseOrder.ReceivingStatus.PARTIAL

    StockReceivingService.receive(broiler_item.id, 70, om_actor)
    order.refresh_from_db()
    assert order.receiving_status == PurchaseOrder.ReceivingStatus.COMPLETE


def test_receive_requires_positive_quantity_and_receiver_role(broiler_item, om_actor, accountant_actor):
    with pytest.raises(ValidationError):
        StockReceivingService.receive(broiler_item.id, 0, om_actor)
    with pytest.raises(PermissionDeniedError):
        StockReceivingService.receive(broiler_item.id, 10, accountant_actor)


def test_approve_credits_ledger_once(broiler_item, om_actor, accountant_actor):
    StockReceivingService.receive(broiler_item.id, 100, om_actor)

    result = StockReceivingService.approve(broiler_item.id, accountant_actor)
    assert result["stock_item"]["status"] == StockItem.Status.APPROVED
    assert result["stock_item"]["accountant_approved_by_id"] == accountant_actor.user_id

    entry = StockLedgerEntry.objects.get(item_kind="BROILER")
    assert entry.on_hand_quantity == 100
    assert entry.buying_unit_price == Decimal("1.50")

    with pytest.raises(InvalidTransitionError):
        StockReceivingService.approve(broiler_item.id, accountant_actor)

    entry.refresh_from_db()
    assert entry.on_hand_quantity == 100


def test_approve_partial_receipt_credits_received_quantity(broiler_item, om_actor, accountant_actor):
    StockReceivingService.receive(broiler_item.id, 45, om_actor)
    StockReceivingService.approve(broiler_item.id, accountant_actor)

    assert StockLedgerEntry.objects.get(item_kind="BROILER").on_hand_quantity == 45

    with pytest.raises(InvalidTransitionError):
        StockReceivingService.receive(broiler_item.id, 5, om_actor)


def test_approve_before_receipt_fails(broiler_item, accountant_actor):
    with pytest.raises(NotReceivedError):
        StockReceivingService.approve(broiler_item.id, accountant_actor)

    assert not StockLedgerEntry.objects.exists()


def test_only_accountant_approves(broiler_item, om_actor, manager_actor):
    StockReceivingService.receive(broiler_item.id, 100, om_actor)

    with pytest.raises(PermissionDeniedError):
        StockReceivingService.approve(broiler_item.id, manager_actor)


def test_feed_approval_records_feed_receipt(receivable_order, om_actor, accountant_actor):
    feed_item = StockItem.objects.get(purchase_order=receivable_order, kind=StockKind.FEED)
    assert feed_item.feed_type == FeedType.BROILER_STARTER

    StockReceivingService.receive(feed_item.id, 20, om_actor)
    StockReceivingService.approve(feed_item.id, accountant_actor)

    receipt = FeedStockReceipt.objects.get(stock_item=feed_item)
    assert receipt.company == FeedCompany.SILVERLAND
    assert receipt.quantity == 20
    assert receipt.total_price == Decimal("900.00")
    assert not StockLedgerEntry.objects.filter(item_kind="FEED").exists()


def test_unclassifiable_feed_rolls_back_approval(create_order, approve_order, om_actor, accountant_actor):
    po = approve_order(create_order(items=[
        {"description": "Premium feed mix", "quantity": 10, "unit_price": "30"},
    ]))
    item = StockReceivingService.spawn_from_approved_order(po)[0]
    assert item.kind == StockKind.FEED
    assert item.feed_type == ""

    StockReceivingService.receive(item.id, 10, om_actor)

    with pytest.raises(ClassificationError):
        StockReceivingService.approve(item.id, accountant_actor)

    item.refresh_from_db()
    assert item.status == StockItem.Status.FULLY_RECEIVED
    assert item.accountant_approved_by_id is None
    assert not FeedStockReceipt.objects.exists()


def test_spawn_skips_non_stock_lines(receivable_order):
    items = StockItem.objects.filter(purchase_order=receivable_order).order_by("id")

    assert [(i.kind, i.expected_quantity) for i in items] == [
        (StockKind.SASSO_CHICKS, 500),
        (StockKind.FEED, 20),
    ]
    assert all(i.invoice_id == receivable_order.invoice.id for i in items)


def test_explicit_kind_overrides_description(create_order, approve_order):
    po = approve_order(create_order(items=[
        {"description": "Sasso chicks", "quantity": 5, "unit_price": "2", "stock_kind": "BROILER_CHICKS"},
        {"description": "Mixed supplies", "quantity": 3, "unit_price": "40", "feed_type": "LAYER_GROWER"},
    ]))

    items = StockReceivingService.spawn_from_approved_order(po)

    assert [(i.kind, i.feed_type) for i in items] == [
        (StockKind.BROILER_CHICKS, ""),
        (StockKind.FEED, FeedType.LAYER_GROWER),
    ]


def test_spawn_requires_approved_order_and_runs_once(create_order, approve_order):
    po = create_order()

    with pytest.raises(ValidationError):
        StockReceivingService.spawn_from_approved_order(po)

    po = approve_order(po)
    StockReceivingService.spawn_from_approved_order(po)

    with pytest.raises(DuplicateError):
        StockReceivingService.spawn_from_approved_order(po)
    assert StockItem.objects.filter(purchase_order=po).count() == 2


def test_list_by_status(broiler_item, om_actor):
    StockReceivingService.receive(broiler_item.id, 10, om_actor)

    partial = StockReceivingService.list_by_status(StockItem.Status.PARTIALLY_RECEIVED)
    pending = StockReceivingService.list_by_status(StockItem.Status.PENDING)

    assert [i["id"] for i in partial["stock_items"]] == [broiler_item.id]
    assert pending["stock_items"] == []

    with pytest.raises(ValidationError):
        StockReceivingService.list_by_status("LOST")
