"""Shared fixtures for the taskflow test suite."""

import itertools

import pytest
from django.contrib.auth import get_user_model
from django.core import mail

from projects.models import Project, ProjectMember
from task_management.models import Task

User = get_user_model()


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    def _make(username=None, *, role=User.Role.DEVELOPER, email=None, **extra):
        username = username or f"user{next(counter)}"
        return User.objects.create_user(
            username=username,
            email=f"{username}@example.com" if email is None else email,
            password="secret",
            role=role,
            **extra,
        )

    return _make


@pytest.fixture
def manager(make_user):
    return make_user("manager", role=User.Role.MANAGER, first_name="Mara", last_name="Reyes")


@pytest.fixture
def developer(make_user):
    return make_user("developer")


@pytest.fixture
def administrator(make_user):
    return make_user("administrator", role=User.Role.ADMIN)


@pytest.fixture
def make_project(db):
    """Project rows created straight through the ORM, without notifications."""

    def _make(manager, *, members=(), **fields):
        fields.setdefault("name", "Apollo")
        project = Project.objects.create(manager=manager, **fields)
        ProjectMember.objects.create(project=project, user=manager, role=ProjectMember.Role.LEAD)
        for user in members:
            ProjectMember.objects.create(project=project, user=user)
        return project

    return _make


@pytest.fixture
def project(make_project, manager):
    return make_project(manager)


@pytest.fixture
def make_task(db):
    def _make(project, *, created_by=None, **fields):
        fields.setdefault("title", "Draft the plan")
        return Task.objects.create(
            project=project,
            created_by=created_by or project.manager,
            **fields,
        )

    return _make


@pytest.fixture(autouse=True)
def clear_outbox():
    mail.outbox = []
