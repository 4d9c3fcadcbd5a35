"""Row-level access policies.

Each table carries one predicate per action. Reads that return collections use
the ``visible_*`` SQL clauses so filtering happens in the database; single row
reads and every write go through :func:`check`. Passing ``None`` as the user
means the elevated service credential, which bypasses every policy. The same
rules are installed as PostgreSQL row-level security policies by the initial
migration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

import sqlalchemy as sa
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import col, select

from .errors import ForbiddenError, ValidationError
from .models import EmailLog, Notification, Project, ProjectMember, Task, User, UserRole


class Action(str, Enum):
    READ = "read"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True, slots=True)
class RowContext:
    """Facts about a row's project needed by membership based rules."""

    project_owner_id: int | None = None
    project_member_ids: frozenset[int] = field(default_factory=frozenset)


Rule = Callable[[User, Any, RowContext], bool]


def _is_admin(user: User, row: Any, context: RowContext) -> bool:
    return user.role == UserRole.ADMIN


def _anyone(user: User, row: Any, context: RowContext) -> bool:
    return True


def _nobody(user: User, row: Any, context: RowContext) -> bool:
    return False


def _self_or_admin(user: User, row: Any, context: RowContext) -> bool:
    return user.role == UserRole.ADMIN or row.id == user.id


def _owns_row(user: User, row: Any, context: RowContext) -> bool:
    return row.user_id == user.id


def _has_recipient(user: User, row: Any, context: RowContext) -> bool:
    return row.user_id is not None


def _project_reader(user: User, row: Any, context: RowContext) -> bool:
    if user.role == UserRole.ADMIN:
        return True
    return row.owner_id == user.id or user.id in context.project_member_ids


def _task_reader(user: User, row: Any, context: RowContext) -> bool:
    if user.role == UserRole.ADMIN:
        return True
    if row.assignee_id is not None and row.assignee_id == user.id:
        return True
    return context.project_owner_id == user.id or user.id in context.project_member_ids


def _email_log_reader(user: User, row: Any, context: RowContext) -> bool:
    return user.role == UserRole.ADMIN or row.to_user_id == user.id


POLICIES: dict[str, dict[Action, Rule]] = {
    "users": {
        Action.READ: _anyone,
        Action.INSERT: _is_admin,
        Action.UPDATE: _self_or_admin,
        Action.DELETE: _is_admin,
    },
    "projects": {
        Action.READ: _project_reader,
        Action.INSERT: _is_admin,
        Action.UPDATE: _is_admin,
        Action.DELETE: _is_admin,
    },
    "project_members": {
        Action.READ: _anyone,
        Action.INSERT: _is_admin,
        Action.UPDATE: _is_admin,
        Action.DELETE: _is_admin,
    },
    "tasks": {
        Action.READ: _task_reader,
        Action.INSERT: _is_admin,
        Action.UPDATE: _is_admin,
        Action.DELETE: _is_admin,
    },
    "notifications": {
        Action.READ: _owns_row,
        Action.INSERT: _has_recipient,
        Action.UPDATE: _owns_row,
        Action.DELETE: _owns_row,
    },
    "task_attachments": {
        Action.READ: _anyone,
        Action.INSERT: _is_admin,
        Action.UPDATE: _is_admin,
        Action.DELETE: _is_admin,
    },
    "notification_settings": {
        Action.READ: _owns_row,
        Action.INSERT: _owns_row,
        Action.UPDATE: _owns_row,
        Action.DELETE: _owns_row,
    },
    "email_logs": {
        Action.READ: _email_log_reader,
        Action.INSERT: _nobody,
        Action.UPDATE: _nobody,
        Action.DELETE: _nobody,
    },
}


def is_allowed(
    action: Action,
    table: str,
    user: User | None,
    row: Any,
    context: RowContext | None = None,
) -> bool:
    if user is None:
        return True
    try:
        rule = POLICIES[table][action]
    except KeyError as exc:
        raise KeyError(f"No policy registered for {action.value} on {table}") from exc
    return rule(user, row, context or RowContext())


def check(
    action: Action,
    table: str,
    user: User | None,
    row: Any,
    context: RowContext | None = None,
) -> None:
    """Raise :class:`ForbiddenError` when ``user`` may not ``action`` ``row``."""

    if not is_allowed(action, table, user, row, context):
        raise ForbiddenError(
            "Forbidden",
            details={"action": action.value, "table": table},
        )


def _member_project_ids(user_id: int | None) -> Any:
    return select(ProjectMember.project_id).where(col(ProjectMember.user_id) == user_id)


def _owned_project_ids(user_id: int | None) -> Any:
    return select(Project.id).where(col(Project.owner_id) == user_id)


def visible_projects(user: User | None) -> ColumnElement[bool]:
    if user is None or user.role == UserRole.ADMIN:
        return sa.true()
    return sa.or_(
        col(Project.owner_id) == user.id,
        col(Project.id).in_(_member_project_ids(user.id)),
    )


def visible_tasks(user: User | None) -> ColumnElement[bool]:
    if user is None or user.role == UserRole.ADMIN:
        return sa.true()
    return sa.or_(
        col(Task.assignee_id) == user.id,
        col(Task.project_id).in_(_owned_project_ids(user.id)),
        col(Task.project_id).in_(_member_project_ids(user.id)),
    )


def visible_notifications(user: User | None) -> ColumnElement[bool]:
    if user is None:
        return sa.true()
    return col(Notification.user_id) == user.id


def visible_email_logs(user: User | None) -> ColumnElement[bool]:
    if user is None or user.role == UserRole.ADMIN:
        return sa.true()
    return col(EmailLog.to_user_id) == user.id


def require_admin(user: User | None) -> None:
    """Gate operations reserved for administrators (role and status changes)."""

    if user is not None and user.role != UserRole.ADMIN:
        raise ForbiddenError("Forbidden")


def ensure_not_self(caller: User, target_id: int) -> None:
    if caller.id == target_id:
        raise ValidationError("Cannot delete your own account")


def ensure_admin_remains(target: User, admin_count: int, *, message: str) -> None:
    """Reject removing ``target`` from the admin set when it is the last one."""

    if target.role == UserRole.ADMIN and admin_count <= 1:
        raise ValidationError(message)


__all__ = [
    "POLICIES",
    "Action",
    "RowContext",
    "check",
    "ensure_admin_remains",
    "ensure_not_self",
    "is_allowed",
    "require_admin",
    "visible_email_logs",
    "visible_notifications",
    "visible_projects",
    "visible_tasks",
]
