"""
Poultry Trade accounts and in-app notifications
"""

import uuid
from django.contrib.auth.models import AbstractUser
from django.conf import settings
from django.db import models


class User(AbstractUser):
    class Role(models.TextChoices):
        ORDER_MANAGER = "ORDER_MANAGER", "Order Manager"
        ACCOUNTANT = "ACCOUNTANT", "Accountant"
        MANAGER = "MANAGER", "Manager"
        CEO = "CEO", "CEO"
        ADMIN = "ADMIN", "Admin"
        CUSTOMER = "CUSTOMER", "Customer"

    uuid = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.CUSTOMER,
        db_index=True,
    )
    phone_number = models.CharField(max_length=30, blank=True, default="")

    def __str__(self):
        full_name = self.get_full_name()
        return full_name or self.username


class Notification(models.Model):
    class Status(models.TextChoices):
        UNREAD = "UNREAD", "Unread"
        READ = "READ", "Read"

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    role = models.CharField(max_length=20, choices=User.Role.choices)
    message = models.TextField()
    status = models.CharField(
        max_length=10, choices=Status.choices, default=Status.UNREAD
    )
    created_at = models.DateTimeField(auto_now_add=True)
    read_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["recipient", "status"]),
        ]

    def __str__(self):
        return f"{self.recipient} - {self.message[:40]}"
