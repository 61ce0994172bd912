from stock.services.base_service import (
    ServiceError, ValidationError, NotFoundError, PermissionDeniedError,
    InvalidTransitionError, DuplicateError, InsufficientStockError,
    OverReceiptError, NotReceivedError, ClassificationError,
    success_response, paginate_queryset, to_decimal, to_quantity, to_text, round_decimal,
    next_sequence, generate_number, normalize_line_items,
)
from stock.services.workflow import (
    Actor, ORDER_TRANSITIONS, INVOICE_TRANSITIONS, REQUISITION_TRANSITIONS,
    check_transition, allowed_transitions,
)
from stock.services.classification import (
    classify_stock_kind, classify_feed_type, match_feed_type, feed_company_for,
)
from stock.services.ledger_service import StockLedgerService
from stock.services.feed_service import FeedStockService
from stock.services.receiving_service import StockReceivingService
from stock.services.purchase_service import PurchaseOrderService
from stock.services.requisition_service import RequisitionService
from stock.services.invoice_service import InvoiceService
from stock.services.approval_service import ApprovalRecorder
from stock.services.order_service import ChickenOrderService
from stock.services.alert_service import StockAlertService


__all__ = [
    "ServiceError", "ValidationError", "NotFoundError", "PermissionDeniedError",
    "InvalidTransitionError", "DuplicateError", "InsufficientStockError",
    "OverReceiptError", "NotReceivedError", "ClassificationError",
    "success_response", "paginate_queryset", "to_decimal", "to_quantity", "to_text", "round_decimal",
    "next_sequence", "generate_number", "normalize_line_items",

    "Actor", "ORDER_TRANSITIONS", "INVOICE_TRANSITIONS", "REQUISITION_TRANSITIONS",
    "check_transition", "allowed_transitions",

    "classify_stock_kind", "classify_feed_type", "match_feed_type", "feed_company_for",

    "StockLedgerService",
    "FeedStockService",
    "StockReceivingService",
    "PurchaseOrderService",
    "RequisitionService",
    "InvoiceService",
    "ApprovalRecorder",
    "ChickenOrderService",
    "StockAlertService",
]
