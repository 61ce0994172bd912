from django.urls import path
from . import views

app_name = "stock"

urlpatterns = [
    path("ledger/", views.LedgerListView.as_view(), name="ledger-list"),
    path("ledger/low-stock/", views.LowStockView.as_view(), name="low-stock"),
    path("ledger/<str:item_kind>/", views.LedgerDetailView.as_view(), name="ledger-detail"),
    path("ledger/<str:item_kind>/credit/", views.LedgerCreditView.as_view(), name="ledger-credit"),
    path("ledger/<str:item_kind>/debit/", views.LedgerDebitView.as_view(), name="ledger-debit"),
    path("ledger/<str:item_kind>/threshold/", views.LedgerThresholdView.as_view(), name="ledger-threshold"),
    path("ledger/<str:item_kind>/pricing/", views.LedgerPricingView.as_view(), name="ledger-pricing"),
    path("feed/", views.FeedSummaryView.as_view(), name="feed-summary"),

    path("purchase-orders/", views.PurchaseOrderListView.as_view(), name="po-list"),
    path("purchase-orders/<int:po_id>/", views.PurchaseOrderDetailView.as_view(), name="po-detail"),
    path("purchase-orders/<int:po_id>/status/", views.PurchaseOrderStatusView.as_view(), name="po-status"),
    path("purchase-orders/<int:po_id>/stock-items/", views.PurchaseOrderStockItemsView.as_view(), name="po-stock-items"),
    path("purchase-orders/<int:po_id>/invoice/", views.PurchaseOrderInvoiceView.as_view(), name="po-invoice"),

    path("requisitions/", views.RequisitionListView.as_view(), name="requisition-list"),
    path("requisitions/<int:requisition_id>/", views.RequisitionDetailView.as_view(), name="requisition-detail"),
    path("requisitions/<int:requisition_id>/decision/", views.RequisitionDecisionView.as_view(), name="requisition-decision"),
    path("requisitions/<int:requisition_id>/invoice/", views.RequisitionInvoiceView.as_view(), name="requisition-invoice"),

    path("invoices/", views.InvoiceListView.as_view(), name="invoice-list"),
    path("invoices/<int:invoice_id>/", views.InvoiceDetailView.as_view(), name="invoice-detail"),
    path("invoices/<int:invoice_id>/status/", views.InvoiceStatusView.as_view(), name="invoice-status"),
    path("invoices/<int:invoice_id>/approvals/", views.InvoiceApprovalView.as_view(), name="invoice-approvals"),

    path("stock-items/", views.StockItemListView.as_view(), name="stock-item-list"),
    path("stock-items/<int:stock_item_id>/receive/", views.StockItemReceiveView.as_view(), name="stock-item-receive"),
    path("stock-items/<int:stock_item_id>/approve/", views.StockItemApproveView.as_view(), name="stock-item-approve"),

    path("chicken-orders/", views.ChickenOrderListView.as_view(), name="chicken-order-list"),
    path("chicken-orders/<int:order_id>/", views.ChickenOrderDetailView.as_view(), name="chicken-order-detail"),
]
