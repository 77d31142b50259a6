"""client prioritization, automations, outbound messages, summaries

Revision ID: 0002_prioritization_automations
Revises: 0001_foundation
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa


revision = "0002_prioritization_automations"
down_revision = "0001_foundation"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "client_prioritizations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_user_id", sa.Integer(), nullable=False),
        sa.Column("client_id", sa.Integer(), nullable=False),
        sa.Column("active_deals_json", sa.String(), nullable=False),
        sa.Column("interaction_frequency_json", sa.String(), nullable=False),
        sa.Column("who_initiated_json", sa.String(), nullable=True),
        sa.Column("pending_proposal_json", sa.String(), nullable=True),
        sa.Column("pdf_priority", sa.String(length=12), nullable=True),
        sa.Column("pdf_keywords_count", sa.Integer(), nullable=True),
        sa.Column("pdf_sentiment", sa.String(length=12), nullable=True),
        sa.Column("calculated_priority", sa.String(length=12), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["owner_user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_client_prioritizations_owner_user_id"), "client_prioritizations", ["owner_user_id"], unique=False)
    op.create_index(op.f("ix_client_prioritizations_client_id"), "client_prioritizations", ["client_id"], unique=False)

    op.create_table(
        "automations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_user_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("action_type", sa.String(length=24), nullable=False),
        sa.Column("is_enabled", sa.Boolean(), nullable=False),
        sa.Column("config_json", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["owner_user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_automations_owner_user_id"), "automations", ["owner_user_id"], unique=False)
    op.create_index(op.f("ix_automations_name"), "automations", ["name"], unique=False)
    op.create_index(op.f("ix_automations_action_type"), "automations", ["action_type"], unique=False)

    op.create_table(
        "automation_runs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_user_id", sa.Integer(), nullable=False),
        sa.Column("automation_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=24), nullable=False),
        sa.Column("output_json", sa.String(), nullable=False),
        sa.Column("error_message", sa.String(), nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=True),
        sa.Column("ended_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["owner_user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["automation_id"], ["automations.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_automation_runs_owner_user_id"), "automation_runs", ["owner_user_id"], unique=False)
    op.create_index(op.f("ix_automation_runs_automation_id"), "automation_runs", ["automation_id"], unique=False)
    op.create_index(op.f("ix_automation_runs_status"), "automation_runs", ["status"], unique=False)

    op.create_table(
        "outbound_messages",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_user_id", sa.Integer(), nullable=False),
        sa.Column("automation_run_id", sa.Integer(), nullable=False),
        sa.Column("client_id", sa.Integer(), nullable=True),
        sa.Column("to_email", sa.String(length=255), nullable=False),
        sa.Column("subject", sa.String(length=200), nullable=False),
        sa.Column("body", sa.String(), nullable=False),
        sa.Column("status", sa.String(length=24), nullable=False),
        sa.Column("send_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["owner_user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["automation_run_id"], ["automation_runs.id"]),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_outbound_messages_owner_user_id"), "outbound_messages", ["owner_user_id"], unique=False)
    op.create_index(op.f("ix_outbound_messages_automation_run_id"), "outbound_messages", ["automation_run_id"], unique=False)
    op.create_index(op.f("ix_outbound_messages_client_id"), "outbound_messages", ["client_id"], unique=False)
    op.create_index(op.f("ix_outbound_messages_status"), "outbound_messages", ["status"], unique=False)
    op.create_index(op.f("ix_outbound_messages_send_at"), "outbound_messages", ["send_at"], unique=False)

    op.create_table(
        "client_summaries",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_user_id", sa.Integer(), nullable=False),
        sa.Column("client_id", sa.Integer(), nullable=False),
        sa.Column("automation_run_id", sa.Integer(), nullable=True),
        sa.Column("model", sa.String(length=80), nullable=False),
        sa.Column("summary", sa.String(), nullable=False),
        sa.Column("generated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["owner_user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"]),
        sa.ForeignKeyConstraint(["automation_run_id"], ["automation_runs.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_client_summaries_owner_user_id"), "client_summaries", ["owner_user_id"], unique=False)
    op.create_index(op.f("ix_client_summaries_client_id"), "client_summaries", ["client_id"], unique=False)
    op.create_index(op.f("ix_client_summaries_automation_run_id"), "client_summaries", ["automation_run_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_client_summaries_automation_run_id"), table_name="client_summaries")
    op.drop_index(op.f("ix_client_summaries_client_id"), table_name="client_summaries")
    op.drop_index(op.f("ix_client_summaries_owner_user_id"), table_name="client_summaries")
    op.drop_table("client_summaries")

    op.drop_index(op.f("ix_outbound_messages_send_at"), table_name="outbound_messages")
    op.drop_index(op.f("ix_outbound_messages_status"), table_name="outbound_messages")
    op.drop_index(op.f("ix_outbound_messages_client_id"), table_name="outbound_messages")
    op.drop_index(op.f("ix_outbound_messages_automation_run_id"), table_name="outbound_messages")
    op.drop_index(op.f("ix_outbound_messages_owner_user_id"), table_name="outbound_messages")
    op.drop_table("outbound_messages")

    op.drop_index(op.f("ix_automation_runs_status"), table_name="automation_runs")
    op.drop_index(op.f("ix_automation_runs_automation_id"), table_name="automation_runs")
    op.drop_index(op.f("ix_automation_runs_owner_user_id"), table_name="automation_runs")
    op.drop_table("automation_runs")

    op.drop_index(op.f("ix_automations_action_type"), table_name="automations")
    op.drop_index(op.f("ix_automations_name"), table_name="automations")
    op.drop_index(op.f("ix_automations_owner_user_id"), table_name="automations")
    op.drop_table("automations")

    op.drop_index(op.f("ix_client_prioritizations_client_id"), table_name="client_prioritizations")
    op.drop_index(op.f("ix_client_prioritizations_owner_user_id"), table_name="client_prioritizations")
    op.drop_table("client_prioritizations")
