"""Initial schema: users, doctors, admins, admin_actions, admin_settings, document_uploads.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19

Enum columns are plain strings (non-native enums) so the same schema runs
on PostgreSQL and SQLite.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "cognito_user_id",
            sa.String(255),
            nullable=True,
            comment="Identity provider user reference",
        ),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("role", sa.String(16), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("cognito_user_id", name="uq_users_cognito_user_id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_role_status", "users", ["role", "status"])

    op.create_table(
        "doctors",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("phone", sa.String(20), nullable=False),
        sa.Column("address_street", sa.Text(), nullable=True),
        sa.Column("address_city", sa.String(100), nullable=True),
        sa.Column("address_state", sa.String(50), nullable=True),
        sa.Column("address_postcode", sa.String(10), nullable=True),
        sa.Column("address_country", sa.String(50), nullable=False, server_default="Australia"),
        sa.Column("ahpra_number", sa.String(50), nullable=False),
        sa.Column("ahpra_registration_date", sa.Date(), nullable=False),
        sa.Column("medical_specialty", sa.String(100), nullable=False),
        sa.Column("years_experience", sa.Integer(), nullable=False),
        sa.Column("current_registration_status", sa.String(50), nullable=True),
        sa.Column("qualifications", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("current_roles", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("languages_spoken", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("consultation_types", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("working_hours", sa.Text(), nullable=True),
        sa.Column("abn", sa.String(20), nullable=True),
        sa.Column("bank_account_name", sa.String(100), nullable=True),
        sa.Column("bsb", sa.String(10), nullable=True),
        sa.Column("account_number", sa.String(20), nullable=True),
        sa.Column("tax_file_number", sa.String(20), nullable=True),
        sa.Column("insurance_provider", sa.String(100), nullable=True),
        sa.Column("insurance_policy_number", sa.String(50), nullable=True),
        sa.Column("insurance_expiry_date", sa.Date(), nullable=True),
        sa.Column("documents", sa.JSON(), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="email_unconfirmed"),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "approved_by",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
        sa.UniqueConstraint("user_id", name="uq_doctors_user_id"),
        sa.UniqueConstraint("ahpra_number", name="uq_doctors_ahpra_number"),
    )
    op.create_index("ix_doctors_status_created", "doctors", ["status", "created_at"])

    op.create_table(
        "admins",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False, server_default=""),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("calendly_link", sa.String(500), nullable=True),
        sa.Column("department", sa.String(100), nullable=True),
        sa.Column("title", sa.String(100), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="active"),
        *_timestamps(),
        sa.UniqueConstraint("user_id", name="uq_admins_user_id"),
    )

    op.create_table(
        "admin_actions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("admin_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("target_id", sa.String(36), nullable=False),
        sa.Column("target_type", sa.String(16), nullable=False),
        sa.Column("action", sa.String(32), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_admin_actions_admin_id", "admin_actions", ["admin_id"])
    op.create_index("ix_admin_actions_target", "admin_actions", ["target_type", "target_id"])

    op.create_table(
        "admin_settings",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "admin_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("setting_key", sa.String(100), nullable=False),
        sa.Column("setting_value", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("admin_id", "setting_key", name="uq_admin_settings_admin_key"),
    )

    op.create_table(
        "document_uploads",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "doctor_id",
            sa.String(36),
            sa.ForeignKey("doctors.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("original_name", sa.String(255), nullable=False),
        sa.Column("s3_key", sa.String(500), nullable=False),
        sa.Column("s3_url", sa.String(1000), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("mime_type", sa.String(100), nullable=False),
        sa.Column("document_type", sa.String(50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="uploaded"),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("s3_key", name="uq_document_uploads_s3_key"),
    )
    op.create_index("ix_document_uploads_doctor_id", "document_uploads", ["doctor_id"])


def downgrade() -> None:
    op.drop_index("ix_document_uploads_doctor_id", table_name="document_uploads")
    op.drop_table("document_uploads")
    op.drop_table("admin_settings")
    op.drop_index("ix_admin_actions_target", table_name="admin_actions")
    op.drop_index("ix_admin_actions_admin_id", table_name="admin_actions")
    op.drop_table("admin_actions")
    op.drop_table("admins")
    op.drop_index("ix_doctors_status_created", table_name="doctors")
    op.drop_table("doctors")
    op.drop_index("ix_users_role_status", table_name="users")
    op.drop_index("ix_users_role", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
