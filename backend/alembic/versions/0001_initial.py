"""initial intranet schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from pgvector.sqlalchemy import Vector
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

EMBEDDING_DIM = 1536

ENUMS = {
    "user_role": ("admin", "agent", "user", "viewer"),
    "ticket_priority": ("low", "medium", "high", "urgent"),
    "hierarchy_type": ("subdivision", "team"),
    "field_type": ("text", "textarea", "number", "email", "phone", "date", "select", "checkbox"),
    "field_width": ("full", "half", "third"),
    "escalation_trigger": ("time_based", "sla_breach", "first_response_breach"),
    "condition_operator": (
        "equals",
        "not_equals",
        "contains",
        "not_contains",
        "greater_than",
        "less_than",
        "in",
        "is_empty",
    ),
    "logic_operator": ("and", "or"),
    "page_type": ("page", "folder", "file"),
    "page_status": ("draft", "in_review", "published"),
}


def _col(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _id() -> sa.Column:
    return sa.Column("id", sa.String(length=36), primary_key=True, nullable=False)


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)


def upgrade() -> None:
    bind = op.get_bind()
    op.execute("CREATE EXTENSION IF NOT EXISTS vector")
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    # ----- people and departments -----
    op.create_table(
        "departments",
        _id(),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("head_id", sa.String(length=36), nullable=True),
        sa.Column("color", sa.String(length=16), nullable=False),
        _created_at(),
        sa.UniqueConstraint("name", name="uq_departments_name"),
    )

    op.create_table(
        "users",
        _id(),
        sa.Column("username", sa.String(length=80), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("role", _col("user_role"), nullable=False),
        sa.Column("department_id", sa.String(length=36), nullable=True),
        sa.Column("password_hash", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("invite_token", sa.String(length=128), nullable=True),
        sa.Column("invite_expires_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("invite_token", name="uq_users_invite_token"),
    )
    op.create_index(op.f("ix_users_username"), "users", ["username"], unique=True)
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)
    op.create_index(op.f("ix_users_department_id"), "users", ["department_id"], unique=False)

    op.create_foreign_key(
        "fk_departments_head_id_users",
        "departments",
        "users",
        ["head_id"],
        ["id"],
        ondelete="SET NULL",
    )

    op.create_table(
        "department_hierarchy",
        _id(),
        sa.Column("parent_department_id", sa.String(length=36), nullable=True),
        sa.Column("child_department_id", sa.String(length=36), nullable=False),
        sa.Column("hierarchy_type", _col("hierarchy_type"), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["parent_department_id"], ["departments.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["child_department_id"], ["departments.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("parent_department_id", "child_department_id", name="uq_department_hierarchy_edge"),
    )
    op.create_index(
        op.f("ix_department_hierarchy_parent_department_id"),
        "department_hierarchy",
        ["parent_department_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_department_hierarchy_child_department_id"),
        "department_hierarchy",
        ["child_department_id"],
        unique=False,
    )

    op.create_table(
        "department_managers",
        _id(),
        sa.Column("department_id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False),
        sa.Column("is_primary", sa.Boolean(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("department_id", "user_id", name="uq_department_managers_member"),
    )
    op.create_index(op.f("ix_department_managers_department_id"), "department_managers", ["department_id"], unique=False)
    op.create_index(op.f("ix_department_managers_user_id"), "department_managers", ["user_id"], unique=False)

    # ----- roles and audit -----
    op.create_table(
        "roles",
        _id(),
        sa.Column("name", sa.String(length=80), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_system", sa.Boolean(), nullable=False),
        _created_at(),
        sa.UniqueConstraint("name", name="uq_roles_name"),
    )
    op.create_table(
        "role_permissions",
        _id(),
        sa.Column("role_id", sa.String(length=36), nullable=False),
        sa.Column("permission", sa.String(length=80), nullable=False),
        sa.ForeignKeyConstraint(["role_id"], ["roles.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("role_id", "permission", name="uq_role_permissions_key"),
    )
    op.create_index(op.f("ix_role_permissions_role_id"), "role_permissions", ["role_id"], unique=False)
    op.create_table(
        "user_role_assignments",
        _id(),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("role_id", sa.String(length=36), nullable=False),
        sa.Column("assigned_by", sa.String(length=36), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["role_id"], ["roles.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "role_id", name="uq_user_role_assignments_pair"),
    )
    op.create_index(op.f("ix_user_role_assignments_user_id"), "user_role_assignments", ["user_id"], unique=False)
    op.create_index(op.f("ix_user_role_assignments_role_id"), "user_role_assignments", ["role_id"], unique=False)
    op.create_table(
        "audit_logs",
        _id(),
        sa.Column("actor_id", sa.String(length=36), nullable=True),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("entity_type", sa.String(length=32), nullable=False),
        sa.Column("entity_id", sa.String(length=36), nullable=True),
        sa.Column("details", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        _created_at(),
    )
    op.create_index("ix_audit_logs_entity", "audit_logs", ["entity_type", "entity_id"], unique=False)
    op.create_index(op.f("ix_audit_logs_created_at"), "audit_logs", ["created_at"], unique=False)

    # ----- helpdesks -----
    op.create_table(
        "helpdesks",
        _id(),
        sa.Column("department_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        sa.Column("public_access", sa.Boolean(), nullable=False),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("department_id", name="uq_helpdesks_department_id"),
    )
    op.create_table(
        "sla_states",
        _id(),
        sa.Column("helpdesk_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=80), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("color", sa.String(length=16), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False),
        sa.Column("is_final", sa.Boolean(), nullable=False),
        sa.Column("target_hours", sa.Float(), nullable=True),
        sa.ForeignKeyConstraint(["helpdesk_id"], ["helpdesks.id"], ondelete="CASCADE"),
    )
    op.create_index(op.f("ix_sla_states_helpdesk_id"), "sla_states", ["helpdesk_id"], unique=False)
    op.create_table(
        "sla_policies",
        _id(),
        sa.Column("helpdesk_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("priority", _col("ticket_priority"), nullable=False),
        sa.Column("first_response_hours", sa.Float(), nullable=False),
        sa.Column("resolution_hours", sa.Float(), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["helpdesk_id"], ["helpdesks.id"], ondelete="CASCADE"),
    )
    op.create_index(op.f("ix_sla_policies_helpdesk_id"), "sla_policies", ["helpdesk_id"], unique=False)

    op.create_table(
        "escalation_rules",
        _id(),
        sa.Column("helpdesk_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("trigger_type", _col("escalation_trigger"), nullable=False),
        sa.Column("trigger_hours", sa.Float(), nullable=True),
        sa.Column("priority", _col("ticket_priority"), nullable=True),
        sa.Column("ticket_type", sa.String(length=32), nullable=True),
        sa.Column("from_state_id", sa.String(length=36), nullable=True),
        sa.Column("target_department_id", sa.String(length=36), nullable=True),
        sa.Column("target_user_id", sa.String(length=36), nullable=True),
        sa.Column("notify_managers", sa.Boolean(), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["helpdesk_id"], ["helpdesks.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["from_state_id"], ["sla_states.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["target_department_id"], ["departments.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["target_user_id"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index(op.f("ix_escalation_rules_helpdesk_id"), "escalation_rules", ["helpdesk_id"], unique=False)
    op.create_table(
        "escalation_conditions",
        _id(),
        sa.Column("rule_id", sa.String(length=36), nullable=False),
        sa.Column("field", sa.String(length=80), nullable=False),
        sa.Column("operator", _col("condition_operator"), nullable=False),
        sa.Column("value", sa.Text(), nullable=True),
        sa.Column("logic_operator", _col("logic_operator"), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["rule_id"], ["escalation_rules.id"], ondelete="CASCADE"),
    )
    op.create_index(op.f("ix_escalation_conditions_rule_id"), "escalation_conditions", ["rule_id"], unique=False)

    op.create_table(
        "inbound_email_configs",
        _id(),
        sa.Column("helpdesk_id", sa.String(length=36), nullable=False),
        sa.Column("email_address", sa.String(length=255), nullable=False),
        sa.Column("provider", sa.String(length=32), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        sa.Column("auto_create_tickets", sa.Boolean(), nullable=False),
        sa.Column("default_priority", _col("ticket_priority"), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["helpdesk_id"], ["helpdesks.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("helpdesk_id", name="uq_inbound_email_configs_helpdesk_id"),
        sa.UniqueConstraint("email_address", name="uq_inbound_email_configs_email_address"),
    )
    op.create_table(
        "helpdesk_webhooks",
        _id(),
        sa.Column("helpdesk_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("url", sa.String(length=1024), nullable=False),
        sa.Column("secret", sa.String(length=255), nullable=True),
        sa.Column("events", sa.String(length=255), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        sa.Column("retry_count", sa.Integer(), nullable=False),
        sa.Column("timeout_seconds", sa.Integer(), nullable=False),
        sa.Column("last_triggered_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["helpdesk_id"], ["helpdesks.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("helpdesk_id", "url", name="uq_helpdesk_webhooks_url"),
    )
    op.create_index(op.f("ix_helpdesk_webhooks_helpdesk_id"), "helpdesk_webhooks", ["helpdesk_id"], unique=False)

    # ----- ticket forms -----
    op.create_table(
        "ticket_form_categories",
        _id(),
        sa.Column("helpdesk_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("icon", sa.String(length=40), nullable=True),
        sa.Column("color", sa.String(length=16), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["helpdesk_id"], ["helpdesks.id"], ondelete="CASCADE"),
    )
    op.create_index(op.f("ix_ticket_form_categories_helpdesk_id"), "ticket_form_categories", ["helpdesk_id"], unique=False)
    op.create_table(
        "ticket_form_fields",
        _id(),
        sa.Column("helpdesk_id", sa.String(length=36), nullable=False),
        sa.Column("form_category_id", sa.String(length=36), nullable=True),
        sa.Column("name", sa.String(length=80), nullable=False),
        sa.Column("label", sa.String(length=160), nullable=False),
        sa.Column("field_type", _col("field_type"), nullable=False),
        sa.Column("placeholder", sa.String(length=255), nullable=True),
        sa.Column("help_text", sa.Text(), nullable=True),
        sa.Column("required", sa.Boolean(), nullable=False),
        sa.Column("options", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("default_value", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        sa.Column("show_on_create", sa.Boolean(), nullable=False),
        sa.Column("show_on_edit", sa.Boolean(), nullable=False),
        sa.Column("width", _col("field_width"), nullable=False),
        sa.Column("internal_only", sa.Boolean(), nullable=False),
        sa.Column("conditional_field", sa.String(length=80), nullable=True),
        sa.Column("conditional_value", sa.String(length=255), nullable=True),
        sa.Column("min_value", sa.Float(), nullable=True),
        sa.Column("max_value", sa.Float(), nullable=True),
        sa.Column("validation_pattern", sa.String(length=255), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["helpdesk_id"], ["helpdesks.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["form_category_id"], ["ticket_form_categories.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("helpdesk_id", "form_category_id", "name", name="uq_ticket_form_fields_scope_name"),
    )
    op.create_index(op.f("ix_ticket_form_fields_helpdesk_id"), "ticket_form_fields", ["helpdesk_id"], unique=False)
    op.create_index(op.f("ix_ticket_form_fields_form_category_id"), "ticket_form_fields", ["form_category_id"], unique=False)

    # ----- tickets -----
    op.create_table(
        "tickets",
        _id(),
        sa.Column("helpdesk_id", sa.String(length=36), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("priority", _col("ticket_priority"), nullable=False),
        sa.Column("ticket_type", sa.String(length=32), nullable=True),
        sa.Column("source", sa.String(length=16), nullable=False),
        sa.Column("custom_fields", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("state_id", sa.String(length=36), nullable=True),
        sa.Column("assigned_to", sa.String(length=36), nullable=True),
        sa.Column("created_by", sa.String(length=36), nullable=True),
        sa.Column("department_id", sa.String(length=36), nullable=True),
        sa.Column("sub_department_id", sa.String(length=36), nullable=True),
        sa.Column("form_category_id", sa.String(length=36), nullable=True),
        sa.Column("email_message_id", sa.String(length=255), nullable=True),
        sa.Column("ai_routing_confidence", sa.Float(), nullable=True),
        sa.Column("ai_suggested_assignee_id", sa.String(length=36), nullable=True),
        sa.Column("first_response_due_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolution_due_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("first_responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("state_changed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("escalation_level", sa.Integer(), nullable=False),
        sa.Column("escalated_rule_ids", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("last_escalated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("embedding", Vector(EMBEDDING_DIM), nullable=True),
        sa.Column("embedding_updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["helpdesk_id"], ["helpdesks.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["state_id"], ["sla_states.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["assigned_to"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["sub_department_id"], ["departments.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["form_category_id"], ["ticket_form_categories.id"], ondelete="SET NULL"),
    )
    op.create_index(op.f("ix_tickets_helpdesk_id"), "tickets", ["helpdesk_id"], unique=False)
    op.create_index(op.f("ix_tickets_assigned_to"), "tickets", ["assigned_to"], unique=False)
    op.create_index(op.f("ix_tickets_created_by"), "tickets", ["created_by"], unique=False)
    op.create_index(op.f("ix_tickets_department_id"), "tickets", ["department_id"], unique=False)
    op.create_index(op.f("ix_tickets_email_message_id"), "tickets", ["email_message_id"], unique=False)
    op.create_index("ix_tickets_helpdesk_state", "tickets", ["helpdesk_id", "state_id"], unique=False)

    op.create_table(
        "ticket_comments",
        _id(),
        sa.Column("ticket_id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_internal", sa.Boolean(), nullable=False),
        sa.Column("source", sa.String(length=16), nullable=False),
        sa.Column("email_message_id", sa.String(length=255), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["ticket_id"], ["tickets.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index(op.f("ix_ticket_comments_ticket_id"), "ticket_comments", ["ticket_id"], unique=False)
    op.create_index(op.f("ix_ticket_comments_email_message_id"), "ticket_comments", ["email_message_id"], unique=False)
    op.create_table(
        "ticket_activities",
        _id(),
        sa.Column("ticket_id", sa.String(length=36), nullable=False),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("actor_id", sa.String(length=36), nullable=True),
        sa.Column("details", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["ticket_id"], ["tickets.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_ticket_activities_ticket_id", "ticket_activities", ["ticket_id"], unique=False)

    # ----- documents -----
    op.create_table(
        "books",
        _id(),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("author_id", sa.String(length=36), nullable=True),
        sa.Column("parent_id", sa.String(length=36), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_table(
        "pages",
        _id(),
        sa.Column("book_id", sa.String(length=36), nullable=True),
        sa.Column("parent_id", sa.String(length=36), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("type", _col("page_type"), nullable=False),
        sa.Column("status", _col("page_status"), nullable=False),
        sa.Column("reviewer_id", sa.String(length=36), nullable=True),
        sa.Column("author_id", sa.String(length=36), nullable=True),
        sa.Column("embedding", Vector(EMBEDDING_DIM), nullable=True),
        sa.Column("embedding_updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("moved_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["book_id"], ["books.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["parent_id"], ["pages.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["reviewer_id"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index(op.f("ix_pages_book_id"), "pages", ["book_id"], unique=False)
    op.create_index("ix_pages_parent_order", "pages", ["parent_id", "order"], unique=False)
    op.create_foreign_key("fk_books_parent_id_pages", "books", "pages", ["parent_id"], ["id"], ondelete="SET NULL")

    op.create_table(
        "page_comments",
        _id(),
        sa.Column("page_id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["page_id"], ["pages.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index(op.f("ix_page_comments_page_id"), "page_comments", ["page_id"], unique=False)
    op.create_table(
        "page_versions",
        _id(),
        sa.Column("page_id", sa.String(length=36), nullable=False),
        sa.Column("version_number", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("author_id", sa.String(length=36), nullable=True),
        sa.Column("change_description", sa.String(length=255), nullable=True),
        sa.Column("is_archived", sa.Boolean(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["page_id"], ["pages.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("page_id", "version_number", name="uq_page_versions_number"),
    )
    op.create_index(op.f("ix_page_versions_page_id"), "page_versions", ["page_id"], unique=False)
    op.create_table(
        "book_versions",
        _id(),
        sa.Column("book_id", sa.String(length=36), nullable=False),
        sa.Column("version_number", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("author_id", sa.String(length=36), nullable=True),
        sa.Column("change_description", sa.String(length=255), nullable=True),
        sa.Column("is_archived", sa.Boolean(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["book_id"], ["books.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("book_id", "version_number", name="uq_book_versions_number"),
    )
    op.create_index(op.f("ix_book_versions_book_id"), "book_versions", ["book_id"], unique=False)
    op.create_table(
        "document_activities",
        _id(),
        sa.Column("target_type", sa.String(length=16), nullable=False),
        sa.Column("target_id", sa.String(length=36), nullable=False),
        sa.Column("action", sa.String(length=32), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=True),
        sa.Column("details", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        _created_at(),
    )
    op.create_index("ix_document_activities_target", "document_activities", ["target_type", "target_id"], unique=False)

    op.execute("CREATE INDEX ix_pages_embedding_hnsw ON pages USING hnsw (embedding vector_cosine_ops)")
    op.execute("CREATE INDEX ix_tickets_embedding_hnsw ON tickets USING hnsw (embedding vector_cosine_ops)")

    # ----- settings -----
    op.create_table(
        "system_settings",
        sa.Column("key", sa.String(length=120), primary_key=True, nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("category", sa.String(length=40), nullable=False),
        sa.Column("updated_by", sa.String(length=36), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        "department_settings",
        _id(),
        sa.Column("department_id", sa.String(length=36), nullable=False),
        sa.Column("key", sa.String(length=120), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("updated_by", sa.String(length=36), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("department_id", "key", name="uq_department_settings_key"),
    )
    op.create_index(op.f("ix_department_settings_department_id"), "department_settings", ["department_id"], unique=False)
    op.create_table(
        "settings_audit",
        _id(),
        sa.Column("scope", sa.String(length=16), nullable=False),
        sa.Column("scope_id", sa.String(length=36), nullable=True),
        sa.Column("key", sa.String(length=120), nullable=False),
        sa.Column("old_value", sa.Text(), nullable=True),
        sa.Column("new_value", sa.Text(), nullable=True),
        sa.Column("changed_by", sa.String(length=36), nullable=True),
        _created_at(),
    )

    # ----- notifications and home -----
    op.create_table(
        "notifications",
        _id(),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column("severity", sa.String(length=16), nullable=False),
        sa.Column("link", sa.String(length=512), nullable=True),
        sa.Column("source", sa.String(length=32), nullable=True),
        sa.Column("target_id", sa.String(length=36), nullable=True),
        _created_at(),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index(op.f("ix_notifications_user_id"), "notifications", ["user_id"], unique=False)
    op.create_index("ix_notifications_user_id_read_at", "notifications", ["user_id", "read_at"], unique=False)
    op.create_index("ix_notifications_user_id_target_id", "notifications", ["user_id", "target_id"], unique=False)

    op.create_table(
        "external_links",
        _id(),
        sa.Column("title", sa.String(length=160), nullable=False),
        sa.Column("url", sa.String(length=1024), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=80), nullable=False),
        sa.Column("icon", sa.String(length=40), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False),
        _created_at(),
    )
    op.create_table(
        "announcements",
        _id(),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("severity", sa.String(length=16), nullable=False),
        sa.Column("department_id", sa.String(length=36), nullable=True),
        sa.Column("author_id", sa.String(length=36), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ends_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index(op.f("ix_announcements_department_id"), "announcements", ["department_id"], unique=False)
    op.create_table(
        "posts",
        _id(),
        sa.Column("author_id", sa.String(length=36), nullable=True),
        sa.Column("department_id", sa.String(length=36), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"], ondelete="CASCADE"),
    )
    op.create_index(op.f("ix_posts_department_id"), "posts", ["department_id"], unique=False)
    op.create_index(op.f("ix_posts_created_at"), "posts", ["created_at"], unique=False)
    op.create_table(
        "post_comments",
        _id(),
        sa.Column("post_id", sa.String(length=36), nullable=False),
        sa.Column("author_id", sa.String(length=36), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["post_id"], ["posts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index(op.f("ix_post_comments_post_id"), "post_comments", ["post_id"], unique=False)
    op.create_table(
        "post_likes",
        _id(),
        sa.Column("post_id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["post_id"], ["posts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("post_id", "user_id", name="uq_post_likes_user"),
    )
    op.create_index(op.f("ix_post_likes_post_id"), "post_likes", ["post_id"], unique=False)
    op.create_table(
        "search_history",
        _id(),
        sa.Column("user_id", sa.String(length=36), nullable=True),
        sa.Column("query", sa.String(length=255), nullable=False),
        sa.Column("result_count", sa.Integer(), nullable=False),
        _created_at(),
    )
    op.create_index(op.f("ix_search_history_query"), "search_history", ["query"], unique=False)
    op.create_index(op.f("ix_search_history_created_at"), "search_history", ["created_at"], unique=False)


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS ix_tickets_embedding_hnsw")
    op.execute("DROP INDEX IF EXISTS ix_pages_embedding_hnsw")
    for table in (
        "search_history",
        "post_likes",
        "post_comments",
        "posts",
        "announcements",
        "external_links",
        "notifications",
        "settings_audit",
        "department_settings",
        "system_settings",
        "document_activities",
        "book_versions",
        "page_versions",
        "page_comments",
    ):
        op.drop_table(table)
    op.drop_constraint("fk_books_parent_id_pages", "books", type_="foreignkey")
    for table in (
        "pages",
        "books",
        "ticket_activities",
        "ticket_comments",
        "tickets",
        "ticket_form_fields",
        "ticket_form_categories",
        "helpdesk_webhooks",
        "inbound_email_configs",
        "escalation_conditions",
        "escalation_rules",
        "sla_policies",
        "sla_states",
        "helpdesks",
        "audit_logs",
        "user_role_assignments",
        "role_permissions",
        "roles",
        "department_managers",
        "department_hierarchy",
    ):
        op.drop_table(table)
    op.drop_constraint("fk_departments_head_id_users", "departments", type_="foreignkey")
    op.drop_table("users")
    op.drop_table("departments")

    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
