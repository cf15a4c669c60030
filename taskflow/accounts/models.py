from django.db import models
from django.contrib.auth.models import AbstractUser


class User(AbstractUser):

    class Role(models.TextChoices):
        ADMIN = "admin", "Admin"
        MANAGER = "manager", "Manager"
        DEVELOPER = "developer", "Developer"

    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.DEVELOPER,
        db_index=True,
    )

    last_activity = models.DateTimeField(null=True, blank=True)

    settings = models.JSONField(default=dict, blank=True)

    @property
    def is_admin(self):
        return self.role == self.Role.ADMIN

    @property
    def display_name(self):
        return self.get_full_name() or self.username

    def __str__(self):
        full = self.get_full_name()
        return f"{full} ({self.username})" if full else self.username
