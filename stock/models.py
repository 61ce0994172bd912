import uuid as uuid_lib

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import models
from django.db.models import F, Q


class ChickenType(models.TextChoices):
    SASSO = "SASSO", "Sasso"
    BROILER = "BROILER", "Broiler"


class FeedType(models.TextChoices):
    BROILER_STARTER = "BROILER_STARTER", "Broiler Starter"
    BROILER_STARTER_MP = "BROILER_STARTER_MP", "Broiler Starter MP"
    BROILER_STARTER_MV = "BROILER_STARTER_MV", "Broiler Starter MV"
    BROILER_GROWER = "BROILER_GROWER", "Broiler Grower"
    BROILER_GROWER_MP = "BROILER_GROWER_MP", "Broiler Grower MP"
    BROILER_GROWER_MV = "BROILER_GROWER_MV", "Broiler Grower MV"
    BROILER_FINISHER = "BROILER_FINISHER", "Broiler Finisher"
    LAYER_STARTER = "LAYER_STARTER", "Layer Starter"
    BACKBONE_LAYER_STARTER = "BACKBONE_LAYER_STARTER", "Backbone Layer Starter"
    LAYER_GROWER = "LAYER_GROWER", "Layer Grower"
    BACKBONE_LAYER_GROWER = "BACKBONE_LAYER_GROWER", "Backbone Layer Grower"
    COMPLETE_LAYER_MASH = "COMPLETE_LAYER_MASH", "Complete Layer Mash"
    BACKBONE_COMPLETE_LAYER_MASH = "BACKBONE_COMPLETE_LAYER_MASH", "Backbone Complete Layer Mash"
    LOCAL_FEED = "LOCAL_FEED", "Local Feed"


class FeedCompany(models.TextChoices):
    SILVERLAND = "SILVERLAND", "Silverland"
    ARVINES = "ARVINES", "Arvines"
    BACKBONE = "BACKBONE", "Backbone"
    LOCAL = "LOCAL", "Local"


class StockKind(models.TextChoices):
    SASSO_CHICKS = "SASSO_CHICKS", "Sasso Chicks"
    BROILER_CHICKS = "BROILER_CHICKS", "Broiler Chicks"
    FEED = "FEED", "Feed"


# =============================================================================
# LEDGER
# =============================================================================

class StockLedgerEntry(models.Model):
    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    item_kind = models.CharField(max_length=50, unique=True)

    on_hand_quantity = models.IntegerField(default=0)
    total_received = models.PositiveIntegerField(default=0)
    total_sold = models.PositiveIntegerField(default=0)
    minimum_threshold = models.PositiveIntegerField(default=0)

    units_per_container = models.PositiveIntegerField(default=0)
    container_price = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    selling_unit_price = models.DecimalField(max_digits=15, decimal_places=2, null=True, blank=True)
    buying_unit_price = models.DecimalField(max_digits=15, decimal_places=2, null=True, blank=True)

    # Derived from on_hand_quantity and pricing, recomputed on every write
    container_count = models.PositiveIntegerField(default=0)
    total_container_value = models.DecimalField(max_digits=15, decimal_places=2, default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["item_kind"]
        verbose_name_plural = "stock ledger entries"
        constraints = [
            models.CheckConstraint(
                condition=Q(on_hand_quantity__gte=0),
                name="ledger_on_hand_non_negative",
            ),
        ]

    def __str__(self):
        return f"{self.item_kind}: {self.on_hand_quantity}"

    @property
    def is_below_threshold(self) -> bool:
        return self.on_hand_quantity <= self.minimum_threshold


class LedgerMovement(models.Model):
    class MovementType(models.TextChoices):
        CREDIT = "CREDIT", "Credit"
        DEBIT = "DEBIT", "Debit"
        RETURN = "RETURN", "Return"

    entry = models.ForeignKey(
        StockLedgerEntry, on_delete=models.PROTECT, related_name="movements"
    )
    movement_type = models.CharField(max_length=10, choices=MovementType.choices)
    quantity = models.PositiveIntegerField()
    quantity_after = models.IntegerField()

    reference_type = models.CharField(max_length=50, blank=True, default="")
    reference_id = models.PositiveIntegerField(null=True, blank=True)

    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    notes = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.movement_type} {self.quantity} {self.entry.item_kind}"


class DocumentSequence(models.Model):
    """Per-scope counter behind every business number (orders, invoices, requests)."""

    scope = models.CharField(max_length=100, unique=True)
    last_value = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.scope}: {self.last_value}"


# =============================================================================
# PURCHASE ORDERS
# =============================================================================

class PurchaseOrder(models.Model):
    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        IN_PROGRESS = "IN_PROGRESS", "In Progress"
        ACCOUNTANT_APPROVED = "ACCOUNTANT_APPROVED", "Accountant Approved"
        MANAGER_APPROVED = "MANAGER_APPROVED", "Manager Approved"
        APPROVED = "APPROVED", "Approved"
        CANCELLED = "CANCELLED", "Cancelled"
        REJECTED = "REJECTED", "Rejected"

    class ReceivingStatus(models.TextChoices):
        NOT_STARTED = "NOT_STARTED", "Not Started"
        PARTIAL = "PARTIAL", "Partially Received"
        COMPLETE = "COMPLETE", "Complete"

    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    order_number = models.CharField(max_length=50, unique=True)
    order_date = models.DateField()

    company_name = models.CharField(max_length=200)
    farm_name = models.CharField(max_length=200, blank=True, default="")
    farm_number = models.CharField(max_length=50, blank=True, default="")
    village_name = models.CharField(max_length=200, blank=True, default="")
    region = models.CharField(max_length=100, blank=True, default="")
    pobox = models.CharField(max_length=50, blank=True, default="")
    contact_name = models.CharField(max_length=200)
    phone_number = models.CharField(max_length=30)
    contact_email = models.EmailField(blank=True, default="")

    total_amount = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PENDING, db_index=True
    )
    receiving_status = models.CharField(
        max_length=20, choices=ReceivingStatus.choices, default=ReceivingStatus.NOT_STARTED
    )

    order_manager = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="managed_purchase_orders",
    )
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="approved_purchase_orders",
    )
    notes = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-order_date", "-id"]

    def __str__(self):
        return self.order_number


class PurchaseOrderItem(models.Model):
    purchase_order = models.ForeignKey(
        PurchaseOrder, on_delete=models.CASCADE, related_name="items"
    )
    position = models.PositiveIntegerField(default=0)
    description = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=15, decimal_places=2)
    total_price = models.DecimalField(max_digits=15, decimal_places=2)

    # Explicit classification, takes precedence over the description keywords
    stock_kind = models.CharField(max_length=20, choices=StockKind.choices, blank=True, default="")
    feed_type = models.CharField(max_length=40, choices=FeedType.choices, blank=True, default="")

    class Meta:
        ordering = ["position", "id"]

    def __str__(self):
        return f"{self.description} x {self.quantity}"


# =============================================================================
# REQUISITIONS
# =============================================================================

class Requisition(models.Model):
    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        APPROVED = "APPROVED", "Approved"
        REJECTED = "REJECTED", "Rejected"
        INVOICED = "INVOICED", "Invoiced"

    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    request_number = models.CharField(max_length=50, unique=True)
    request_date = models.DateField()
    task_type = models.CharField(max_length=100, default="Services")

    employee_name = models.CharField(max_length=200)
    employee_title = models.CharField(max_length=200, blank=True, default="")
    employee_address = models.CharField(max_length=255, blank=True, default="")
    employee_phone = models.CharField(max_length=30, blank=True, default="")
    signed_by = models.CharField(max_length=200, blank=True, default="")

    invoice_subtotal = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    transaction_charges = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    total = models.DecimalField(max_digits=15, decimal_places=2, default=0)

    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PENDING, db_index=True
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="created_requisitions",
    )
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="decided_requisitions",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-request_date", "-id"]

    def __str__(self):
        return self.request_number


class RequisitionItem(models.Model):
    requisition = models.ForeignKey(
        Requisition, on_delete=models.CASCADE, related_name="items"
    )
    item_number = models.PositiveIntegerField()
    description = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=15, decimal_places=2)
    total_price = models.DecimalField(max_digits=15, decimal_places=2)

    class Meta:
        ordering = ["item_number"]

    def __str__(self):
        return f"{self.item_number}. {self.description}"


# =============================================================================
# INVOICES
# =============================================================================

class Invoice(models.Model):
    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        MANAGER_APPROVED = "MANAGER_APPROVED", "Manager Approved"
        APPROVED = "APPROVED", "Approved"
        CANCELLED = "CANCELLED", "Cancelled"

    class InvoiceType(models.TextChoices):
        ORDER = "ORDER", "Purchase Order"
        REQUEST = "REQUEST", "Requisition"
        MANUAL = "MANUAL", "Manual"

    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    invoice_number = models.CharField(max_length=50, unique=True)
    invoice_date = models.DateField()
    due_date = models.DateField()
    type = models.CharField(max_length=10, choices=InvoiceType.choices)

    purchase_order = models.OneToOneField(
        PurchaseOrder,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="invoice",
    )
    requisition = models.OneToOneField(
        Requisition,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="invoice",
    )

    subtotal = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    tax = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    total = models.DecimalField(max_digits=15, decimal_places=2, default=0)

    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PENDING, db_index=True
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="created_invoices",
    )
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="approved_invoices",
    )
    notes = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-invoice_date", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=~Q(purchase_order__isnull=False, requisition__isnull=False),
                name="invoice_single_source",
            ),
        ]

    def __str__(self):
        return self.invoice_number


class InvoiceItem(models.Model):
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="items")
    position = models.PositiveIntegerField(default=0)
    description = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=15, decimal_places=2)
    total_price = models.DecimalField(max_digits=15, decimal_places=2)

    class Meta:
        ordering = ["position", "id"]

    def __str__(self):
        return f"{self.description} x {self.quantity}"


class ApprovalRecord(models.Model):
    """Append-only log of invoice approval decisions."""

    class Decision(models.TextChoices):
        APPROVE = "APPROVE", "Approve"
        REJECT = "REJECT", "Reject"

    invoice = models.ForeignKey(
        Invoice, on_delete=models.PROTECT, related_name="approvals"
    )
    approver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="approval_records",
    )
    approver_role = models.CharField(max_length=20)
    decision = models.CharField(max_length=10, choices=Decision.choices)
    resulting_status = models.CharField(max_length=20, choices=Invoice.Status.choices)
    comments = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise DjangoValidationError("Approval records cannot be modified")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise DjangoValidationError("Approval records cannot be deleted")

    def __str__(self):
        return f"{self.invoice.invoice_number}: {self.decision} by {self.approver_role}"


# =============================================================================
# RECEIVING
# =============================================================================

class StockItem(models.Model):
    """A receivable unit spawned from an approved invoice's order line."""

    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        PARTIALLY_RECEIVED = "PARTIALLY_RECEIVED", "Partially Received"
        FULLY_RECEIVED = "FULLY_RECEIVED", "Fully Received"
        APPROVED = "APPROVED", "Approved"

    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    purchase_order = models.ForeignKey(
        PurchaseOrder, on_delete=models.PROTECT, related_name="stock_items"
    )
    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="stock_items",
    )
    kind = models.CharField(max_length=20, choices=StockKind.choices)
    feed_type = models.CharField(max_length=40, choices=FeedType.choices, blank=True, default="")
    description = models.CharField(max_length=255)
    unit_price = models.DecimalField(max_digits=15, decimal_places=2)

    expected_quantity = models.PositiveIntegerField()
    received_quantity = models.PositiveIntegerField(default=0)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PENDING, db_index=True
    )

    received_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="received_stock_items",
    )
    received_date = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")

    accountant_approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="approved_stock_items",
    )
    accountant_approved_date = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(received_quantity__lte=F("expected_quantity")),
                name="stock_item_no_over_receipt",
            ),
        ]

    def __str__(self):
        return f"{self.kind} {self.received_quantity}/{self.expected_quantity}"

    @staticmethod
    def derive_status(received: int, expected: int, approved: bool = False) -> str:
        if approved:
            return StockItem.Status.APPROVED
        if received <= 0:
            return StockItem.Status.PENDING
        if received >= expected:
            return StockItem.Status.FULLY_RECEIVED
        return StockItem.Status.PARTIALLY_RECEIVED

    @property
    def pending_quantity(self) -> int:
        return self.expected_quantity - self.received_quantity


class FeedStockReceipt(models.Model):
    stock_item = models.OneToOneField(
        StockItem, on_delete=models.PROTECT, related_name="feed_receipt"
    )
    feed_type = models.CharField(max_length=40, choices=FeedType.choices)
    company = models.CharField(max_length=20, choices=FeedCompany.choices)
    quantity = models.PositiveIntegerField()
    price_per_unit = models.DecimalField(max_digits=15, decimal_places=2)
    total_price = models.DecimalField(max_digits=15, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.feed_type} x {self.quantity}"


# =============================================================================
# CUSTOMER SALES
# =============================================================================

class ChickenOrder(models.Model):
    class Status(models.TextChoices):
        ACTIVE = "ACTIVE", "Active"
        CANCELLED = "CANCELLED", "Cancelled"

    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    customer_name = models.CharField(max_length=200)
    customer_email = models.EmailField(blank=True, default="")
    customer_phone = models.CharField(max_length=30, blank=True, default="")

    chicken_type = models.CharField(max_length=20, choices=ChickenType.choices)
    quantity = models.PositiveIntegerField()
    price_per_chicken = models.DecimalField(max_digits=15, decimal_places=2)
    total_price = models.DecimalField(max_digits=15, decimal_places=2)

    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.ACTIVE
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="chicken_orders",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.customer_name}: {self.quantity} {self.chicken_type}"


class FeedOrderLine(models.Model):
    """Feed sold alongside a chicken order. Not drawn from the ledger."""

    chicken_order = models.ForeignKey(
        ChickenOrder, on_delete=models.CASCADE, related_name="feed_orders"
    )
    feed_type = models.CharField(max_length=40, choices=FeedType.choices)
    company = models.CharField(max_length=20, choices=FeedCompany.choices)
    quantity = models.DecimalField(max_digits=12, decimal_places=2)
    price_per_unit = models.DecimalField(max_digits=15, decimal_places=2)
    total_price = models.DecimalField(max_digits=15, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity__gte=0),
                name="feed_order_line_quantity_non_negative",
            ),
        ]

    def __str__(self):
        return f"{self.quantity} {self.feed_type} ({self.company})"
