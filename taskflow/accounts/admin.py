from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.db.models import Count, Q

from task_management.models import Task

from .models import User


# ============================================================
# USER ADMIN
# ============================================================

@admin.register(User)
class UserAdmin(BaseUserAdmin):
    ordering = ("username",)

    list_display = (
        "username",
        "display_name",
        "role",
        "membership_count",
        "open_task_count",
        "last_activity",
        "is_active",
    )
    list_filter = ("role", "is_active", "is_staff")
    search_fields = ("username", "email", "first_name", "last_name")
    readonly_fields = ("last_activity",)

    fieldsets = BaseUserAdmin.fieldsets + (
        ("Taskflow", {"fields": ("role", "last_activity", "settings")}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ("Taskflow", {"fields": ("email", "role")}),
    )

    def get_queryset(self, request):
        return super().get_queryset(request).annotate(
            _membership_count=Count("project_memberships", distinct=True),
            _open_task_count=Count(
                "assigned_tasks",
                filter=~Q(assigned_tasks__status=Task.Status.DONE),
                distinct=True,
            ),
        )

    @admin.display(description="Projects", ordering="_membership_count")
    def membership_count(self, obj):
        return obj._membership_count

    @admin.display(description="Open tasks", ordering="_open_task_count")
    def open_task_count(self, obj):
        return obj._open_task_count
