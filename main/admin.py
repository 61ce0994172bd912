from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _
from unfold.admin import ModelAdmin
from unfold.decorators import display
from unfold.contrib.filters.admin import RangeDateTimeFilter
from unfold.forms import AdminPasswordChangeForm, UserChangeForm, UserCreationForm
from .models import User, Notification


@admin.register(User)
class UserAdmin(BaseUserAdmin, ModelAdmin):
    form = UserChangeForm
    add_form = UserCreationForm
    change_password_form = AdminPasswordChangeForm

    list_display = ['id', 'username', 'full_name', 'email', 'role_badge', 'active_badge', 'last_login']
    list_filter = [
        'role',
        'is_active',
        ('last_login', RangeDateTimeFilter),
    ]
    search_fields = ['username', 'first_name', 'last_name', 'email', 'phone_number']
    list_filter_submit = True
    list_fullwidth = True

    fieldsets = (
        (_('Personal Information'), {
            'fields': ('username', 'first_name', 'last_name', 'email', 'phone_number'),
            'classes': ['tab'],
        }),
        (_('Access & Security'), {
            'fields': ('role', 'is_active', 'is_staff', 'is_superuser', 'password'),
            'classes': ['tab'],
            'description': _('The role decides which workflow steps this user may perform.')
        }),
        (_('Activity Tracking'), {
            'fields': ('last_login', 'date_joined'),
            'classes': ['tab'],
        }),
    )
    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('username', 'role', 'password1', 'password2'),
        }),
    )

    @display(description=_("Name"), ordering='first_name')
    def full_name(self, obj):
        return f"{obj.first_name} {obj.last_name}".strip() or "-"

    @display(description=_("Role"), label=True)
    def role_badge(self, obj):
        colors = {
            'ADMIN': 'danger',
            'CEO': 'danger',
            'MANAGER': 'warning',
            'ACCOUNTANT': 'success',
            'ORDER_MANAGER': 'info',
        }
        return colors.get(obj.role, 'info'), obj.get_role_display()

    @display(description=_("Active"), label=True)
    def active_badge(self, obj):
        if obj.is_active:
            return 'success', _('Active')
        return 'danger', _('Inactive')


@admin.register(Notification)
class NotificationAdmin(ModelAdmin):
    list_display = ['id', 'recipient', 'role', 'short_message', 'status_badge', 'created_at']
    list_filter = [
        'role',
        'status',
        ('created_at', RangeDateTimeFilter),
    ]
    search_fields = ['message', 'recipient__username']
    list_filter_submit = True
    readonly_fields = ['created_at', 'read_at']

    @display(description=_("Message"))
    def short_message(self, obj):
        return obj.message[:60]

    @display(description=_("Status"), label=True)
    def status_badge(self, obj):
        if obj.status == Notification.Status.UNREAD:
            return 'warning', obj.get_status_display()
        return 'success', obj.get_status_display()
