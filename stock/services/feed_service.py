from typing import Dict, Any
from decimal import Decimal

from django.db import transaction
from django.db.models import Sum

from stock.models import FeedStockReceipt, StockItem
from stock.services.base_service import (
    BaseService, success_response, DuplicateError, round_decimal
)
from stock.services.classification import feed_company_for


class FeedStockService(BaseService):
    model = FeedStockReceipt

    @classmethod
    def serialize(cls, receipt: FeedStockReceipt) -> Dict[str, Any]:
        return {
            "id": receipt.id,
            "stock_item_id": receipt.stock_item_id,
            "feed_type": receipt.feed_type,
            "company": receipt.company,
            "quantity": receipt.quantity,
            "price_per_unit": str(receipt.price_per_unit),
            "total_price": str(receipt.total_price),
            "created_at": receipt.created_at.isoformat(),
        }

    @classmethod
    @transaction.atomic
    def record_receipt(cls, stock_item: StockItem, feed_type: str) -> FeedStockReceipt:
        if cls.model.objects.filter(stock_item=stock_item).exists():
            raise DuplicateError(
                "Feed stock already recorded for this item",
                {"stock_item_id": str(stock_item.id)}
            )

        quantity = stock_item.received_quantity
        return cls.model.objects.create(
            stock_item=stock_item,
            feed_type=feed_type,
            company=feed_company_for(feed_type),
            quantity=quantity,
            price_per_unit=stock_item.unit_price,
            total_price=round_decimal(stock_item.unit_price * Decimal(quantity)),
        )

    @classmethod
    def get_summary(cls) -> Dict[str, Any]:
        rows = cls.model.objects.values("feed_type", "company").annotate(
            quantity=Sum("quantity"),
            value=Sum("total_price"),
        ).order_by("feed_type")

        return success_response({
            "feed": [
                {
                    "feed_type": row["feed_type"],
                    "company": row["company"],
                    "quantity": row["quantity"] or 0,
                    "value": str(row["value"] or Decimal("0")),
                }
                for row in rows
            ]
        })
