import inspect
import logging

from rest_framework import status as http
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from stock.services import (
    ServiceError, ValidationError, NotFoundError, PermissionDeniedError,
    InvalidTransitionError, DuplicateError, InsufficientStockError,
    OverReceiptError, NotReceivedError, ClassificationError,
    Actor, StockLedgerService, FeedStockService, StockReceivingService,
    PurchaseOrderService, RequisitionService, InvoiceService,
    ApprovalRecorder, ChickenOrderService, StockAlertService,
)
from stock.services.workflow import LEDGER_ADMINS, require_role

logger = logging.getLogger(__name__)


def error_response(message: str, code: str = "error", status: int = 400, details: dict = None):
    data = {"success": False, "error": {"code": code, "message": message}}
    if details:
        data["error"]["details"] = details
    return Response(data, status=status)


def handle_service_error(e: Exception):
    if isinstance(e, (ValidationError, ClassificationError)):
        details = dict(e.details)
        if getattr(e, "field", None):
            details["field"] = e.field
        return error_response(e.message, e.code.lower(), http.HTTP_400_BAD_REQUEST, details)
    elif isinstance(e, NotFoundError):
        return error_response(e.message, "not_found", http.HTTP_404_NOT_FOUND, e.details)
    elif isinstance(e, PermissionDeniedError):
        return error_response(e.message, "permission_denied", http.HTTP_403_FORBIDDEN, e.details)
    elif isinstance(e, (InvalidTransitionError, DuplicateError)):
        return error_response(e.message, e.code.lower(), http.HTTP_409_CONFLICT, e.details)
    elif isinstance(e, (InsufficientStockError, OverReceiptError, NotReceivedError)):
        return error_response(e.message, e.code.lower(), http.HTTP_412_PRECONDITION_FAILED, e.details)
    elif isinstance(e, ServiceError):
        return error_response(e.message, e.code.lower(), http.HTTP_400_BAD_REQUEST, e.details)
    else:
        logger.exception("Unhandled error in stock API")
        return error_response("Internal server error", "server_error", http.HTTP_500_INTERNAL_SERVER_ERROR)


class BaseStockView(APIView):
    permission_classes = [IsAuthenticated]

    def get_json_body(self, request):
        return request.data if isinstance(request.data, dict) else {}

    def get_call_kwargs(self, request, service_method) -> dict:
        """Map the JSON body onto ``service_method`` keyword arguments.

        Unknown keys are a validation error. Required arguments missing from
        the body are passed as None so the service reports them.
        """
        data = dict(self.get_json_body(request))
        params = {
            name: param for name, param in inspect.signature(service_method).parameters.items()
            if name != "actor"
        }
        unknown = sorted(set(data) - set(params))
        if unknown:
            raise ValidationError(f"Unexpected fields: {', '.join(unknown)}", unknown[0])
        for name, param in params.items():
            if param.default is inspect.Parameter.empty:
                data.setdefault(name, None)
        return data

    def get_actor(self, request) -> Actor:
        return Actor.from_user(request.user)

    def get_page(self, request):
        try:
            page = int(request.query_params.get("page", 1))
            per_page = int(request.query_params.get("per_page", 20))
        except ValueError:
            raise ValidationError("page and per_page must be integers", "page")
        return page, per_page

    def success(self, data: dict, status: int = 200):
        return Response({"success": True, **data}, status=status)


# ==================== LEDGER ====================

class LedgerListView(BaseStockView):

    def get(self, request):
        try:
            return self.success(StockLedgerService.get_all())
        except Exception as e:
            return handle_service_error(e)


class LedgerDetailView(BaseStockView):

    def get(self, request, item_kind):
        try:
            return self.success(StockLedgerService.get(item_kind))
        except Exception as e:
            return handle_service_error(e)


class LedgerCreditView(BaseStockView):

    def post(self, request, item_kind):
        try:
            actor = self.get_actor(request)
            require_role(actor, LEDGER_ADMINS, "adjust the stock ledger")
            data = self.get_json_body(request)
            entry = StockLedgerService.credit(
                item_kind,
                data.get("quantity"),
                price_hints=data.get("price_hints"),
                reference_type="MANUAL",
                performed_by_id=actor.user_id,
                notes=data.get("notes", ""),
            )
            return self.success({"entry": StockLedgerService.serialize(entry)})
        except Exception as e:
            return handle_service_error(e)


class LedgerDebitView(BaseStockView):

    def post(self, request, item_kind):
        try:
            actor = self.get_actor(request)
            require_role(actor, LEDGER_ADMINS, "adjust the stock ledger")
            data = self.get_json_body(request)
            entry = StockLedgerService.debit(
                item_kind,
                data.get("quantity"),
                reference_type="MANUAL",
                performed_by_id=actor.user_id,
                notes=data.get("notes", ""),
            )
            return self.success({"entry": StockLedgerService.serialize(entry)})
        except Exception as e:
            return handle_service_error(e)


class LedgerThresholdView(BaseStockView):

    def put(self, request, item_kind):
        try:
            require_role(self.get_actor(request), LEDGER_ADMINS, "change stock thresholds")
            data = self.get_json_body(request)
            return self.success(StockLedgerService.set_minimum_threshold(item_kind, data.get("minimum_threshold")))
        except Exception as e:
            return handle_service_error(e)


class LedgerPricingView(BaseStockView):

    def put(self, request, item_kind):
        try:
            require_role(self.get_actor(request), LEDGER_ADMINS, "change stock pricing")
            data = self.get_json_body(request)
            return self.success(StockLedgerService.set_pricing(item_kind, **data))
        except Exception as e:
            return handle_service_error(e)


class LowStockView(BaseStockView):

    def get(self, request):
        try:
            entries = StockLedgerService.list_below_threshold()
            return self.success({
                "entries": [StockLedgerService.serialize(e) for e in entries],
                "count": len(entries),
            })
        except Exception as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            require_role(self.get_actor(request), LEDGER_ADMINS, "send low stock alerts")
            return self.success(StockAlertService.check_low_stock(force=True))
        except Exception as e:
            return handle_service_error(e)


class FeedSummaryView(BaseStockView):

    def get(self, request):
        try:
            return self.success(FeedStockService.get_summary())
        except Exception as e:
            return handle_service_error(e)


# ==================== PURCHASE ORDERS ====================

class PurchaseOrderListView(BaseStockView):

    def get(self, request):
        try:
            page, per_page = self.get_page(request)
            result = PurchaseOrderService.get_all(request.query_params.get("status"), page, per_page)
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            data = self.get_call_kwargs(request, PurchaseOrderService.create)
            result = PurchaseOrderService.create(self.get_actor(request), **data)
            return self.success(result, http.HTTP_201_CREATED)
        except Exception as e:
            return handle_service_error(e)


class PurchaseOrderDetailView(BaseStockView):

    def get(self, request, po_id):
        try:
            return self.success(PurchaseOrderService.get(po_id))
        except Exception as e:
            return handle_service_error(e)


class PurchaseOrderStatusView(BaseStockView):

    def post(self, request, po_id):
        try:
            data = self.get_json_body(request)
            result = PurchaseOrderService.transition(
                po_id, data.get("status"), self.get_actor(request), data.get("reason", "")
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


class PurchaseOrderStockItemsView(BaseStockView):

    def get(self, request, po_id):
        try:
            PurchaseOrderService.get_or_404(po_id)
            return self.success(StockReceivingService.list_for_order(po_id))
        except Exception as e:
            return handle_service_error(e)


class PurchaseOrderInvoiceView(BaseStockView):

    def post(self, request, po_id):
        try:
            data = self.get_json_body(request)
            result = InvoiceService.generate_from_order(po_id, self.get_actor(request), data.get("notes", ""))
            return self.success(result, http.HTTP_201_CREATED)
        except Exception as e:
            return handle_service_error(e)


# ==================== REQUISITIONS ====================

class RequisitionListView(BaseStockView):

    def get(self, request):
        try:
            page, per_page = self.get_page(request)
            return self.success(RequisitionService.get_all(request.query_params.get("status"), page, per_page))
        except Exception as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            data = self.get_call_kwargs(request, RequisitionService.create)
            result = RequisitionService.create(self.get_actor(request), **data)
            return self.success(result, http.HTTP_201_CREATED)
        except Exception as e:
            return handle_service_error(e)


class RequisitionDetailView(BaseStockView):

    def get(self, request, requisition_id):
        try:
            return self.success(RequisitionService.get(requisition_id))
        except Exception as e:
            return handle_service_error(e)


class RequisitionDecisionView(BaseStockView):

    def post(self, request, requisition_id):
        try:
            data = self.get_json_body(request)
            result = RequisitionService.decide(requisition_id, data.get("status"), self.get_actor(request))
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


class RequisitionInvoiceView(BaseStockView):

    def post(self, request, requisition_id):
        try:
            data = self.get_json_body(request)
            result = InvoiceService.generate_from_request(
                requisition_id, self.get_actor(request), data.get("notes", "")
            )
            return self.success(result, http.HTTP_201_CREATED)
        except Exception as e:
            return handle_service_error(e)


# ==================== INVOICES ====================

class InvoiceListView(BaseStockView):

    def get(self, request):
        try:
            page, per_page = self.get_page(request)
            return self.success(InvoiceService.get_all(request.query_params.get("status"), page, per_page))
        except Exception as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            data = self.get_json_body(request)
            result = InvoiceService.create_manual(
                self.get_actor(request),
                data.get("items"),
                tax=data.get("tax", 0),
                notes=data.get("notes", ""),
            )
            return self.success(result, http.HTTP_201_CREATED)
        except Exception as e:
            return handle_service_error(e)


class InvoiceDetailView(BaseStockView):

    def get(self, request, invoice_id):
        try:
            return self.success(InvoiceService.get(invoice_id))
        except Exception as e:
            return handle_service_error(e)


class InvoiceStatusView(BaseStockView):

    def post(self, request, invoice_id):
        try:
            data = self.get_json_body(request)
            result = InvoiceService.transition(
                invoice_id, data.get("status"), self.get_actor(request), data.get("reason", "")
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


class InvoiceApprovalView(BaseStockView):

    def get(self, request, invoice_id):
        try:
            return self.success(ApprovalRecorder.history(invoice_id))
        except Exception as e:
            return handle_service_error(e)

    def post(self, request, invoice_id):
        try:
            data = self.get_json_body(request)
            result = ApprovalRecorder.record(
                invoice_id,
                self.get_actor(request),
                data.get("decision"),
                data.get("comments", ""),
            )
            return self.success(result, http.HTTP_201_CREATED)
        except Exception as e:
            return handle_service_error(e)


# ==================== RECEIVING ====================

class StockItemListView(BaseStockView):

    def get(self, request):
        try:
            page, per_page = self.get_page(request)
            return self.success(
                StockReceivingService.list_by_status(request.query_params.get("status"), page, per_page)
            )
        except Exception as e:
            return handle_service_error(e)


class StockItemReceiveView(BaseStockView):

    def post(self, request, stock_item_id):
        try:
            data = self.get_json_body(request)
            result = StockReceivingService.receive(
                stock_item_id,
                data.get("received_quantity"),
                self.get_actor(request),
                data.get("notes", ""),
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


class StockItemApproveView(BaseStockView):

    def post(self, request, stock_item_id):
        try:
            return self.success(StockReceivingService.approve(stock_item_id, self.get_actor(request)))
        except Exception as e:
            return handle_service_error(e)


# ==================== CHICKEN ORDERS ====================

class ChickenOrderListView(BaseStockView):

    def get(self, request):
        try:
            page, per_page = self.get_page(request)
            return self.success(
                ChickenOrderService.get_all(request.query_params.get("chicken_type"), page, per_page)
            )
        except Exception as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            data = self.get_json_body(request)
            result = ChickenOrderService.create(
                self.get_actor(request),
                customer_name=data.get("customer_name"),
                chicken_type=data.get("chicken_type"),
                quantity=data.get("quantity"),
                price_per_chicken=data.get("price_per_chicken"),
                customer_email=data.get("customer_email", ""),
                customer_phone=data.get("customer_phone", ""),
                feed_orders=data.get("feed_orders"),
            )
            return self.success(result, http.HTTP_201_CREATED)
        except Exception as e:
            return handle_service_error(e)


class ChickenOrderDetailView(BaseStockView):

    def get(self, request, order_id):
        try:
            return self.success(ChickenOrderService.get(order_id))
        except Exception as e:
            return handle_service_error(e)

    def patch(self, request, order_id):
        try:
            data = self.get_json_body(request)
            result = ChickenOrderService.change_quantity(order_id, data.get("quantity"), self.get_actor(request))
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)

    def delete(self, request, order_id):
        try:
            return self.success(ChickenOrderService.cancel(order_id, self.get_actor(request)))
        except Exception as e:
            return handle_service_error(e)
