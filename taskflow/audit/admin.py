from django.contrib import admin

from .models import AuditLog
from .services import request_origin


class AuditedModelAdmin(admin.ModelAdmin):
    """Stamps admin saves and deletes with the signed-in user and request origin."""

    def stamp_audit(self, request, obj):
        obj._audit_actor = request.user
        obj._audit_origin = request_origin(request)

    def save_model(self, request, obj, form, change):
        self.stamp_audit(request, obj)
        super().save_model(request, obj, form, change)

    def delete_model(self, request, obj):
        self.stamp_audit(request, obj)
        super().delete_model(request, obj)

    def delete_queryset(self, request, queryset):
        # One delete per row so each entry carries the actor
        for obj in queryset:
            self.delete_model(request, obj)


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("id", "action", "model_type", "model_id", "user", "ip_address", "created_at")
    list_filter = ("action", "model_type", "created_at")
    search_fields = ("model_type", "user__username", "ip_address")
    ordering = ("-created_at",)
    list_per_page = 25

    readonly_fields = (
        "user",
        "action",
        "model_type",
        "model_id",
        "old_values",
        "new_values",
        "ip_address",
        "user_agent",
        "created_at",
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
