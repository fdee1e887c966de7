"""initial schema

Revision ID: 4f1c2a9e7b10
Revises:
Create Date: 2026-10-19 09:12:41.204118

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4f1c2a9e7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(), nullable=False),
        sa.Column("hashed_password", sa.String(), nullable=False),
        sa.Column("role", sa.Enum("ADMIN", "SUPERVISOR", name="userrole"), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "worker",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("employee_id", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=False),
        sa.Column("last_name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("company_id", sa.String(), nullable=False),
        sa.Column("status", sa.Enum("ACTIVE", "RESTRICTED", "INACTIVE", name="workerstatus"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_worker_employee_id", "worker", ["employee_id"], unique=True)
    op.create_index("ix_worker_status", "worker", ["status"])

    op.create_table(
        "client",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "site",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("client.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
    )

    op.create_table(
        "role",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("activity_package", sa.String(), nullable=True),
    )
    op.create_index("ix_role_name", "role", ["name"], unique=True)

    op.create_table(
        "workerrole",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("worker_id", sa.Integer(), sa.ForeignKey("worker.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("role.id"), nullable=False),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("client.id"), nullable=True),
        sa.Column("site_id", sa.Integer(), sa.ForeignKey("site.id"), nullable=True),
        sa.Column("is_primary", sa.Boolean(), nullable=False),
        sa.Column("start_at", sa.DateTime(), nullable=False),
        sa.Column("end_at", sa.DateTime(), nullable=True),
        sa.Column("notes", sa.String(), nullable=True),
    )
    op.create_index("ix_workerrole_worker_id", "workerrole", ["worker_id"])
    op.create_index("ix_workerrole_client_id", "workerrole", ["client_id"])

    op.create_table(
        "control",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("reference", sa.String(), nullable=True),
        sa.Column("validity_days", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_control_code", "control", ["code"], unique=True)

    op.create_table(
        "hazard",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("pre_control_risk", sa.Integer(), nullable=False),
        sa.Column("post_control_risk", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_hazard_code", "hazard", ["code"], unique=True)
    op.create_index("ix_hazard_category", "hazard", ["category"])

    op.create_table(
        "hazardcontrol",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("hazard_id", sa.Integer(), sa.ForeignKey("hazard.id", ondelete="CASCADE"), nullable=False),
        sa.Column("control_id", sa.Integer(), sa.ForeignKey("control.id", ondelete="CASCADE"), nullable=False),
        sa.Column("is_critical", sa.Boolean(), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False),
        sa.UniqueConstraint("hazard_id", "control_id", name="uq_hazardcontrol_pair"),
    )
    op.create_index("ix_hazardcontrol_hazard_id", "hazardcontrol", ["hazard_id"])
    op.create_index("ix_hazardcontrol_control_id", "hazardcontrol", ["control_id"])

    op.create_table(
        "requiredcontrol",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("worker_id", sa.Integer(), sa.ForeignKey("worker.id", ondelete="CASCADE"), nullable=False),
        sa.Column("control_id", sa.Integer(), sa.ForeignKey("control.id"), nullable=False),
        sa.Column(
            "status",
            sa.Enum("REQUIRED", "SATISFIED", "TEMPORARY", "OVERDUE", name="requirementstatus"),
            nullable=False,
        ),
        sa.Column("due_date", sa.DateTime(), nullable=True),
        sa.Column("temp_valid_until", sa.DateTime(), nullable=True),
        sa.Column("temp_evidence_id", sa.Integer(), nullable=True),
        sa.Column("temp_notes", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("worker_id", "control_id", name="uq_requiredcontrol_worker_control"),
    )
    op.create_index("ix_requiredcontrol_worker_id", "requiredcontrol", ["worker_id"])
    op.create_index("ix_requiredcontrol_control_id", "requiredcontrol", ["control_id"])
    op.create_index("ix_requiredcontrol_status", "requiredcontrol", ["status"])

    op.create_table(
        "evidence",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "required_control_id",
            sa.Integer(),
            sa.ForeignKey("requiredcontrol.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("status", sa.Enum("VALID", "SUPERSEDED", "REJECTED", name="evidencestatus"), nullable=False),
        sa.Column("file_path", sa.String(), nullable=True),
        sa.Column("checksum", sa.String(), nullable=True),
        sa.Column("file_size", sa.Integer(), nullable=True),
        sa.Column("original_name", sa.String(), nullable=True),
        sa.Column("issued_date", sa.DateTime(), nullable=False),
        sa.Column("expiry_date", sa.DateTime(), nullable=True),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_evidence_required_control_id", "evidence", ["required_control_id"])

    op.create_table(
        "kpi",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("period", sa.String(), nullable=False),
        sa.Column("hours_worked", sa.Float(), nullable=False),
        sa.Column("incidents", sa.Integer(), nullable=False),
        sa.Column("near_miss", sa.Integer(), nullable=False),
        sa.Column("crv_rate", sa.Float(), nullable=False),
    )
    op.create_index("ix_kpi_period", "kpi", ["period"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_kpi_period", table_name="kpi")
    op.drop_table("kpi")
    op.drop_index("ix_evidence_required_control_id", table_name="evidence")
    op.drop_table("evidence")
    op.drop_index("ix_requiredcontrol_status", table_name="requiredcontrol")
    op.drop_index("ix_requiredcontrol_control_id", table_name="requiredcontrol")
    op.drop_index("ix_requiredcontrol_worker_id", table_name="requiredcontrol")
    op.drop_table("requiredcontrol")
    op.drop_index("ix_hazardcontrol_control_id", table_name="hazardcontrol")
    op.drop_index("ix_hazardcontrol_hazard_id", table_name="hazardcontrol")
    op.drop_table("hazardcontrol")
    op.drop_index("ix_hazard_category", table_name="hazard")
    op.drop_index("ix_hazard_code", table_name="hazard")
    op.drop_table("hazard")
    op.drop_index("ix_control_code", table_name="control")
    op.drop_table("control")
    op.drop_index("ix_workerrole_client_id", table_name="workerrole")
    op.drop_index("ix_workerrole_worker_id", table_name="workerrole")
    op.drop_table("workerrole")
    op.drop_index("ix_role_name", table_name="role")
    op.drop_table("role")
    op.drop_table("site")
    op.drop_table("client")
    op.drop_index("ix_worker_status", table_name="worker")
    op.drop_index("ix_worker_employee_id", table_name="worker")
    op.drop_table("worker")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
    sa.Enum(name="evidencestatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="requirementstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="workerstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="userrole").drop(op.get_bind(), checkfirst=True)
