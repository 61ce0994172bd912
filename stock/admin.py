from django.contrib import admin
from django.utils.translation import gettext_lazy as _
from unfold.admin import ModelAdmin, TabularInline
from unfold.decorators import display
from unfold.contrib.filters.admin import RangeDateFilter, RangeDateTimeFilter
from .models import (
    StockLedgerEntry, LedgerMovement, PurchaseOrder, PurchaseOrderItem,
    Requisition, RequisitionItem, Invoice, InvoiceItem, ApprovalRecord,
    StockItem, FeedStockReceipt, ChickenOrder, FeedOrderLine,
)


STATUS_COLORS = {
    'PENDING': 'warning',
    'IN_PROGRESS': 'info',
    'ACCOUNTANT_APPROVED': 'info',
    'MANAGER_APPROVED': 'info',
    'PARTIALLY_RECEIVED': 'info',
    'FULLY_RECEIVED': 'info',
    'APPROVED': 'success',
    'INVOICED': 'success',
    'ACTIVE': 'success',
    'CANCELLED': 'danger',
    'REJECTED': 'danger',
}


class ReadOnlyAdminMixin:
    """Rows here only change through the workflow services."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class PurchaseOrderItemInline(ReadOnlyAdminMixin, TabularInline):
    model = PurchaseOrderItem
    extra = 0
    fields = ('position', 'description', 'quantity', 'unit_price', 'total_price', 'stock_kind', 'feed_type')


class RequisitionItemInline(ReadOnlyAdminMixin, TabularInline):
    model = RequisitionItem
    extra = 0
    fields = ('item_number', 'description', 'quantity', 'unit_price', 'total_price')


class InvoiceItemInline(ReadOnlyAdminMixin, TabularInline):
    model = InvoiceItem
    extra = 0
    fields = ('position', 'description', 'quantity', 'unit_price', 'total_price')


class FeedOrderLineInline(ReadOnlyAdminMixin, TabularInline):
    model = FeedOrderLine
    extra = 0
    fields = ('feed_type', 'company', 'quantity', 'price_per_unit', 'total_price')


class ApprovalRecordInline(ReadOnlyAdminMixin, TabularInline):
    model = ApprovalRecord
    extra = 0
    fields = ('approver', 'approver_role', 'decision', 'resulting_status', 'comments', 'created_at')
    readonly_fields = ('created_at',)


@admin.register(StockLedgerEntry)
class StockLedgerEntryAdmin(ReadOnlyAdminMixin, ModelAdmin):
    list_display = [
        'item_kind', 'on_hand_quantity', 'minimum_threshold', 'level_badge',
        'container_count', 'selling_unit_price', 'buying_unit_price', 'updated_at'
    ]
    search_fields = ['item_kind']
    list_fullwidth = True

    @display(description=_("Level"), label=True)
    def level_badge(self, obj):
        if obj.on_hand_quantity == 0:
            return 'danger', _('Out of stock')
        if obj.is_below_threshold:
            return 'warning', _('Low')
        return 'success', _('OK')


@admin.register(LedgerMovement)
class LedgerMovementAdmin(ReadOnlyAdminMixin, ModelAdmin):
    list_display = ['id', 'entry', 'movement_type', 'quantity', 'quantity_after', 'reference', 'performed_by', 'created_at']
    list_filter = [
        'movement_type',
        ('created_at', RangeDateTimeFilter),
    ]
    search_fields = ['entry__item_kind', 'reference_type', 'notes']
    list_filter_submit = True

    @display(description=_("Reference"))
    def reference(self, obj):
        if obj.reference_type:
            return f"{obj.reference_type} #{obj.reference_id}"
        return "-"


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(ReadOnlyAdminMixin, ModelAdmin):
    list_display = [
        'order_number', 'order_date', 'company_name', 'contact_name',
        'total_amount', 'status_badge', 'receiving_status', 'order_manager'
    ]
    list_filter = [
        'status',
        'receiving_status',
        ('order_date', RangeDateFilter),
    ]
    search_fields = ['order_number', 'company_name', 'contact_name', 'phone_number']
    list_filter_submit = True
    list_fullwidth = True
    inlines = [PurchaseOrderItemInline]

    @display(description=_("Status"), label=True)
    def status_badge(self, obj):
        return STATUS_COLORS.get(obj.status, 'info'), obj.get_status_display()


@admin.register(Requisition)
class RequisitionAdmin(ReadOnlyAdminMixin, ModelAdmin):
    list_display = ['request_number', 'request_date', 'employee_name', 'task_type', 'total', 'status_badge']
    list_filter = [
        'status',
        ('request_date', RangeDateFilter),
    ]
    search_fields = ['request_number', 'employee_name']
    list_filter_submit = True
    inlines = [RequisitionItemInline]

    @display(description=_("Status"), label=True)
    def status_badge(self, obj):
        return STATUS_COLORS.get(obj.status, 'info'), obj.get_status_display()


@admin.register(Invoice)
class InvoiceAdmin(ReadOnlyAdminMixin, ModelAdmin):
    list_display = ['invoice_number', 'invoice_date', 'due_date', 'type', 'source', 'total', 'status_badge']
    list_filter = [
        'status',
        'type',
        ('invoice_date', RangeDateFilter),
    ]
    search_fields = ['invoice_number', 'purchase_order__order_number', 'requisition__request_number']
    list_filter_submit = True
    list_fullwidth = True
    inlines = [InvoiceItemInline, ApprovalRecordInline]

    @display(description=_("Source"))
    def source(self, obj):
        if obj.purchase_order_id:
            return obj.purchase_order.order_number
        if obj.requisition_id:
            return obj.requisition.request_number
        return "-"

    @display(description=_("Status"), label=True)
    def status_badge(self, obj):
        return STATUS_COLORS.get(obj.status, 'info'), obj.get_status_display()


@admin.register(StockItem)
class StockItemAdmin(ReadOnlyAdminMixin, ModelAdmin):
    list_display = [
        'id', 'purchase_order', 'kind', 'feed_type', 'description',
        'received_quantity', 'expected_quantity', 'status_badge', 'received_by'
    ]
    list_filter = [
        'status',
        'kind',
        ('received_date', RangeDateTimeFilter),
    ]
    search_fields = ['description', 'purchase_order__order_number']
    list_filter_submit = True
    list_fullwidth = True

    @display(description=_("Status"), label=True)
    def status_badge(self, obj):
        return STATUS_COLORS.get(obj.status, 'info'), obj.get_status_display()


@admin.register(FeedStockReceipt)
class FeedStockReceiptAdmin(ReadOnlyAdminMixin, ModelAdmin):
    list_display = ['id', 'feed_type', 'company', 'quantity', 'price_per_unit', 'total_price', 'created_at']
    list_filter = ['feed_type', 'company']


@admin.register(ChickenOrder)
class ChickenOrderAdmin(ReadOnlyAdminMixin, ModelAdmin):
    list_display = ['id', 'customer_name', 'chicken_type', 'quantity', 'price_per_chicken', 'total_price', 'status_badge', 'created_at']
    list_filter = [
        'status',
        'chicken_type',
        ('created_at', RangeDateTimeFilter),
    ]
    search_fields = ['customer_name', 'customer_email', 'customer_phone']
    list_filter_submit = True
    inlines = [FeedOrderLineInline]

    @display(description=_("Status"), label=True)
    def status_badge(self, obj):
        return STATUS_COLORS.get(obj.status, 'info'), obj.get_status_display()
