"""create projectflow schema with row level security"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3c1d9e7a5b20"
down_revision: str | None = None
branch_labels: tuple[str, ...] | None = None
depends_on: tuple[str, ...] | None = None

PROJECT_STATUSES = ("PLANNING", "ACTIVE", "ON_HOLD", "COMPLETED", "ARCHIVED")
TASK_STATUSES = ("PENDING", "IN_PROGRESS", "IN_REVIEW", "DONE")
TASK_PRIORITIES = ("LOW", "MEDIUM", "HIGH", "URGENT")
NOTIFICATION_TYPES = ("TASK_ASSIGNED", "TASK_UPDATED", "PROJECT_INVITE", "MENTION", "SYSTEM", "EMAIL_SENT")

TIMESTAMPED_TABLES = ("users", "projects", "tasks", "notification_settings")
RLS_TABLES = (
    "users",
    "projects",
    "project_members",
    "tasks",
    "notifications",
    "task_attachments",
    "notification_settings",
    "email_logs",
)

HELPER_FUNCTIONS = """
CREATE OR REPLACE FUNCTION projectflow_current_user_id() RETURNS integer
LANGUAGE sql STABLE AS $$
  SELECT NULLIF(current_setting('projectflow.user_id', true), '')::integer
$$;

CREATE OR REPLACE FUNCTION projectflow_is_service() RETURNS boolean
LANGUAGE sql STABLE AS $$
  SELECT projectflow_current_user_id() IS NULL
$$;

CREATE OR REPLACE FUNCTION projectflow_is_admin() RETURNS boolean
LANGUAGE sql STABLE SECURITY DEFINER SET search_path = public AS $$
  SELECT EXISTS (
    SELECT 1 FROM users WHERE id = projectflow_current_user_id() AND role = 'admin'
  )
$$;

CREATE OR REPLACE FUNCTION projectflow_touch_updated_at() RETURNS trigger
LANGUAGE plpgsql AS $$
BEGIN
  NEW.updated_at = now();
  RETURN NEW;
END;
$$;
"""

# (table, name, command, using, with_check)
POLICIES: tuple[tuple[str, str, str, str | None, str | None], ...] = (
    ("users", "users_select", "SELECT", "true", None),
    ("users", "users_insert", "INSERT", None, "projectflow_is_service() OR projectflow_is_admin()"),
    (
        "users",
        "users_update",
        "UPDATE",
        "projectflow_is_service() OR projectflow_is_admin() OR id = projectflow_current_user_id()",
        None,
    ),
    ("users", "users_delete", "DELETE", "projectflow_is_service() OR projectflow_is_admin()", None),
    (
        "projects",
        "projects_select",
        "SELECT",
        "projectflow_is_service() OR projectflow_is_admin()"
        " OR owner_id = projectflow_current_user_id()"
        " OR EXISTS (SELECT 1 FROM project_members pm"
        " WHERE pm.project_id = projects.id AND pm.user_id = projectflow_current_user_id())",
        None,
    ),
    ("projects", "projects_insert", "INSERT", None, "projectflow_is_service() OR projectflow_is_admin()"),
    ("projects", "projects_update", "UPDATE", "projectflow_is_service() OR projectflow_is_admin()", None),
    ("projects", "projects_delete", "DELETE", "projectflow_is_service() OR projectflow_is_admin()", None),
    ("project_members", "project_members_select", "SELECT", "true", None),
    (
        "project_members",
        "project_members_insert",
        "INSERT",
        None,
        "projectflow_is_service() OR projectflow_is_admin()",
    ),
    (
        "project_members",
        "project_members_update",
        "UPDATE",
        "projectflow_is_service() OR projectflow_is_admin()",
        None,
    ),
    (
        "project_members",
        "project_members_delete",
        "DELETE",
        "projectflow_is_service() OR projectflow_is_admin()",
        None,
    ),
    (
        "tasks",
        "tasks_select",
        "SELECT",
        "projectflow_is_service() OR projectflow_is_admin()"
        " OR assignee_id = projectflow_current_user_id()"
        " OR EXISTS (SELECT 1 FROM projects p LEFT JOIN project_members pm ON pm.project_id = p.id"
        " WHERE p.id = tasks.project_id"
        " AND (p.owner_id = projectflow_current_user_id() OR pm.user_id = projectflow_current_user_id()))",
        None,
    ),
    ("tasks", "tasks_insert", "INSERT", None, "projectflow_is_service() OR projectflow_is_admin()"),
    ("tasks", "tasks_update", "UPDATE", "projectflow_is_service() OR projectflow_is_admin()", None),
    ("tasks", "tasks_delete", "DELETE", "projectflow_is_service() OR projectflow_is_admin()", None),
    (
        "notifications",
        "notifications_select",
        "SELECT",
        "projectflow_is_service() OR user_id = projectflow_current_user_id()",
        None,
    ),
    ("notifications", "notifications_insert", "INSERT", None, "user_id IS NOT NULL"),
    (
        "notifications",
        "notifications_update",
        "UPDATE",
        "projectflow_is_service() OR user_id = projectflow_current_user_id()",
        None,
    ),
    (
        "notifications",
        "notifications_delete",
        "DELETE",
        "projectflow_is_service() OR user_id = projectflow_current_user_id()",
        None,
    ),
    ("task_attachments", "task_attachments_select", "SELECT", "true", None),
    (
        "task_attachments",
        "task_attachments_insert",
        "INSERT",
        None,
        "projectflow_is_service() OR projectflow_is_admin()",
    ),
    (
        "task_attachments",
        "task_attachments_delete",
        "DELETE",
        "projectflow_is_service() OR projectflow_is_admin()",
        None,
    ),
    (
        "notification_settings",
        "notification_settings_all",
        "ALL",
        "projectflow_is_service() OR user_id = projectflow_current_user_id()",
        "projectflow_is_service() OR user_id = projectflow_current_user_id()",
    ),
    (
        "email_logs",
        "email_logs_select",
        "SELECT",
        "projectflow_is_service() OR projectflow_is_admin() OR to_user_id = projectflow_current_user_id()",
        None,
    ),
    ("email_logs", "email_logs_insert", "INSERT", None, "projectflow_is_service()"),
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def _create_tables() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "role",
            sa.Enum("user", "admin", name="app_role", native_enum=False),
            nullable=False,
            server_default="user",
        ),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "projects",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column(
            "status",
            sa.Enum(*PROJECT_STATUSES, name="project_status", native_enum=False, validate_strings=True),
            nullable=False,
            server_default="PLANNING",
        ),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"], name="fk_projects_owner_id_users", ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id", name="pk_projects"),
    )
    op.create_index("ix_projects_owner_id", "projects", ["owner_id"], unique=False)

    op.create_table(
        "project_members",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(
            ["project_id"], ["projects.id"], name="fk_project_members_project_id_projects", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_project_members_user_id_users", ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id", name="pk_project_members"),
        sa.UniqueConstraint("project_id", "user_id", name="uq_project_members_project_user"),
    )
    op.create_index("ix_project_members_user_id", "project_members", ["user_id"], unique=False)

    op.create_table(
        "tasks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "priority",
            sa.Enum(*TASK_PRIORITIES, name="task_priority", native_enum=False, validate_strings=True),
            nullable=False,
            server_default="MEDIUM",
        ),
        sa.Column(
            "status",
            sa.Enum(*TASK_STATUSES, name="task_status", native_enum=False, validate_strings=True),
            nullable=False,
            server_default="PENDING",
        ),
        sa.Column("assignee_id", sa.Integer(), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("length(title) > 0", name="ck_tasks_title_length"),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], name="fk_tasks_project_id_projects", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["assignee_id"], ["users.id"], name="fk_tasks_assignee_id_users", ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id", name="pk_tasks"),
    )
    op.create_index("ix_tasks_project_id", "tasks", ["project_id"], unique=False)
    op.create_index("ix_tasks_assignee_id", "tasks", ["assignee_id"], unique=False)

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column(
            "type",
            sa.Enum(*NOTIFICATION_TYPES, name="notification_type", native_enum=False, validate_strings=True),
            nullable=False,
        ),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("related_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_notifications_user_id_users", ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id", name="pk_notifications"),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"], unique=False)

    op.create_table(
        "task_attachments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("task_id", sa.Integer(), nullable=False),
        sa.Column("file_name", sa.Text(), nullable=False),
        sa.Column("file_path", sa.Text(), nullable=False),
        sa.Column("file_type", sa.String(length=255), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("uploaded_by", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["task_id"], ["tasks.id"], name="fk_task_attachments_task_id_tasks", ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id", name="pk_task_attachments"),
        sa.UniqueConstraint("file_path", name="uq_task_attachments_file_path"),
    )
    op.create_index("ix_task_attachments_task_id", "task_attachments", ["task_id"], unique=False)

    op.create_table(
        "notification_settings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("email_task_assigned", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("email_task_updated", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("email_project_invite", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("in_app_task_assigned", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("in_app_task_updated", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("in_app_project_invite", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_notification_settings_user_id_users", ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_notification_settings"),
        sa.UniqueConstraint("user_id", name="uq_notification_settings_user_id"),
    )

    op.create_table(
        "email_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("to_user_id", sa.Integer(), nullable=False),
        sa.Column("to_email", sa.String(length=320), nullable=False),
        sa.Column("subject", sa.Text(), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["to_user_id"], ["users.id"], name="fk_email_logs_to_user_id_users", ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id", name="pk_email_logs"),
    )
    op.create_index("ix_email_logs_to_user_id", "email_logs", ["to_user_id"], unique=False)


def _install_row_level_security() -> None:
    op.execute(HELPER_FUNCTIONS)
    for table in TIMESTAMPED_TABLES:
        op.execute(
            f"CREATE TRIGGER {table}_touch_updated_at BEFORE UPDATE ON {table} "
            "FOR EACH ROW EXECUTE FUNCTION projectflow_touch_updated_at()"
        )
    for table in RLS_TABLES:
        op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY")
        op.execute(f"ALTER TABLE {table} FORCE ROW LEVEL SECURITY")
    for table, name, command, using, with_check in POLICIES:
        statement = f"CREATE POLICY {name} ON {table} FOR {command}"
        if using is not None:
            statement += f" USING ({using})"
        if with_check is not None:
            statement += f" WITH CHECK ({with_check})"
        op.execute(statement)


def upgrade() -> None:
    _create_tables()
    if op.get_bind().dialect.name == "postgresql":
        _install_row_level_security()


def downgrade() -> None:
    if op.get_bind().dialect.name == "postgresql":
        for table, name, *_ in POLICIES:
            op.execute(f"DROP POLICY IF EXISTS {name} ON {table}")
        for table in TIMESTAMPED_TABLES:
            op.execute(f"DROP TRIGGER IF EXISTS {table}_touch_updated_at ON {table}")
        op.execute("DROP FUNCTION IF EXISTS projectflow_touch_updated_at()")
        op.execute("DROP FUNCTION IF EXISTS projectflow_is_admin()")
        op.execute("DROP FUNCTION IF EXISTS projectflow_is_service()")
        op.execute("DROP FUNCTION IF EXISTS projectflow_current_user_id()")

    op.drop_index("ix_email_logs_to_user_id", table_name="email_logs")
    op.drop_table("email_logs")
    op.drop_table("notification_settings")
    op.drop_index("ix_task_attachments_task_id", table_name="task_attachments")
    op.drop_table("task_attachments")
    op.drop_index("ix_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("ix_tasks_assignee_id", table_name="tasks")
    op.drop_index("ix_tasks_project_id", table_name="tasks")
    op.drop_table("tasks")
    op.drop_index("ix_project_members_user_id", table_name="project_members")
    op.drop_table("project_members")
    op.drop_index("ix_projects_owner_id", table_name="projects")
    op.drop_table("projects")
    op.drop_table("users")
