from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.utils import timezone

from projects.models import ProjectMember
from taskflow.exceptions import NotFoundError

User = get_user_model()


def resolve_user(user_id):
    try:
        return User.objects.get(pk=user_id)
    except (User.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("User", user_id) from None


def member_ids(project):
    return list(
        ProjectMember.objects
        .filter(project=project)
        .order_by("joined_at", "pk")
        .values_list("user_id", flat=True)
    )


def add_member(*, project, user_id, role=ProjectMember.Role.MEMBER):
    """
    Upsert a membership.

    Adding an existing member updates the role and joined_at
    instead of creating a second row.
    """
    if role not in ProjectMember.Role.values:
        raise ValidationError({"role": f"Unknown project role {role!r}."})

    user = resolve_user(user_id)

    if user.pk == project.manager_id and role != ProjectMember.Role.LEAD:
        raise ValidationError({"role": "The project manager must keep the lead role."})

    membership, _ = ProjectMember.objects.update_or_create(
        project=project,
        user=user,
        defaults={
            "role": role,
            "joined_at": timezone.now(),
        },
    )
    return membership


def remove_member(*, project, user_id):
    """
    Delete the membership if present. Returns whether a row was
    removed; removing a non-member is not an error.
    """
    if user_id == project.manager_id:
        raise ValidationError("The project manager cannot be removed from the project.")

    deleted, _ = ProjectMember.objects.filter(
        project=project,
        user_id=user_id,
    ).delete()

    return deleted > 0
