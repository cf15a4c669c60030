from django.contrib import admin

from audit.admin import AuditedModelAdmin

from .models import Task, TaskComment


class TaskCommentInline(admin.TabularInline):
    model = TaskComment
    extra = 0
    raw_id_fields = ("user",)
    readonly_fields = ("created_at",)


@admin.register(Task)
class TaskAdmin(AuditedModelAdmin):

    # =====================================================
    # LIST VIEW
    # =====================================================
    list_display = (
        "id",
        "title",
        "project",
        "status",
        "priority",
        "assigned_to",
        "due_date",
        "completed_at",
    )

    list_filter = (
        "status",
        "priority",
        "project",
    )

    search_fields = (
        "title",
        "description",
        "project__name",
        "assigned_to__username",
    )

    ordering = ("-created_at",)
    list_per_page = 25

    # =====================================================
    # DETAIL VIEW
    # =====================================================
    fieldsets = (
        ("Task", {
            "fields": ("title", "description", "project", "tags"),
        }),
        ("People", {
            "fields": ("assigned_to", "created_by"),
        }),
        ("Progress", {
            "fields": ("status", "priority", "due_date", "started_at", "completed_at"),
        }),
        ("Effort", {
            "fields": ("estimated_hours", "actual_hours"),
        }),
    )

    raw_id_fields = ("project", "assigned_to", "created_by")
    inlines = (TaskCommentInline,)


@admin.register(TaskComment)
class TaskCommentAdmin(admin.ModelAdmin):
    list_display = ("id", "task", "user", "created_at")
    search_fields = ("content", "task__title", "user__username")
    raw_id_fields = ("task", "user")
