from django.contrib import admin

from audit.admin import AuditedModelAdmin

from .models import Project, ProjectMember


class ProjectMemberInline(admin.TabularInline):
    model = ProjectMember
    extra = 0
    raw_id_fields = ("user",)
    readonly_fields = ("joined_at",)


@admin.register(Project)
class ProjectAdmin(AuditedModelAdmin):
    """
    Changes made here bypass the lifecycle services: no notifications
    are sent and the manager membership is not maintained. They are
    still audited, with the admin user and request origin.
    """

    # =====================================================
    # LIST VIEW
    # =====================================================
    list_display = (
        "id",
        "name",
        "status",
        "priority",
        "manager",
        "due_date",
        "created_at",
    )

    list_filter = (
        "status",
        "priority",
        "due_date",
    )

    search_fields = (
        "name",
        "description",
        "manager__username",
    )

    ordering = ("-created_at",)
    list_per_page = 25

    # =====================================================
    # DETAIL VIEW
    # =====================================================
    fieldsets = (
        ("Project", {
            "fields": ("name", "description", "manager"),
        }),
        ("Classification", {
            "fields": ("status", "priority"),
        }),
        ("Schedule", {
            "fields": ("start_date", "due_date", "budget"),
        }),
        ("Settings", {
            "fields": ("settings",),
        }),
    )

    raw_id_fields = ("manager",)
    inlines = (ProjectMemberInline,)


@admin.register(ProjectMember)
class ProjectMemberAdmin(admin.ModelAdmin):
    list_display = ("id", "project", "user", "role", "joined_at")
    list_filter = ("role",)
    search_fields = ("project__name", "user__username")
    raw_id_fields = ("project", "user")
