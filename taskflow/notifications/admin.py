from django.contrib import admin
from django.utils.html import format_html

from .models import DeliveryReceipt, Notification

PRIORITY_COLORS = {
    Notification.Priority.INFO: "#2563eb",
    Notification.Priority.WARNING: "#f59e0b",
    Notification.Priority.DANGER: "#dc2626",
}


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    """
    Delivered in-app notifications, one row per recipient and event.
    Rows are written by the dispatcher; the admin only reads them and
    toggles their read state.
    """

    # =====================================================
    # CHANGELIST
    # =====================================================
    list_display = (
        "id",
        "recipient",
        "kind",
        "title_by_priority",
        "project",
        "task",
        "is_read",
        "created_at",
    )
    list_filter = ("kind", "category", "priority", "is_read")
    search_fields = ("title", "message", "recipient__username", "dedup_key")
    date_hierarchy = "created_at"
    list_select_related = ("recipient", "project", "task")
    list_per_page = 50

    # =====================================================
    # DETAIL
    # =====================================================
    fieldsets = (
        (None, {
            "fields": ("recipient", "kind", "category", "priority"),
        }),
        ("Message", {
            "fields": ("title", "message", "payload"),
        }),
        ("Subject", {
            "fields": ("project", "task", "dedup_key"),
        }),
        ("Read state", {
            "fields": ("is_read", "read_at", "created_at"),
        }),
    )
    readonly_fields = ("dedup_key", "read_at", "created_at")
    raw_id_fields = ("recipient", "project", "task")

    actions = ("mark_read", "mark_unread")

    @admin.display(description="Title", ordering="title")
    def title_by_priority(self, obj):
        return format_html(
            '<span style="color:{}">{}</span>',
            PRIORITY_COLORS.get(obj.priority, "inherit"),
            obj.title,
        )

    @admin.action(description="Mark as read")
    def mark_read(self, request, queryset):
        changed = queryset.mark_read()
        self.message_user(request, f"{changed} notification(s) marked as read.")

    @admin.action(description="Mark as unread")
    def mark_unread(self, request, queryset):
        changed = queryset.mark_unread()
        self.message_user(request, f"{changed} notification(s) marked as unread.")


@admin.register(DeliveryReceipt)
class DeliveryReceiptAdmin(admin.ModelAdmin):
    list_display = ("dedup_key", "recipient", "channel", "delivered_at")
    list_filter = ("channel",)
    search_fields = ("dedup_key", "recipient__username")
    list_select_related = ("recipient",)
    readonly_fields = ("recipient", "dedup_key", "channel", "delivered_at")

    def has_add_permission(self, request):
        return False
