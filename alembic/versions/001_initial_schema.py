"""Initial schema: clinic backend.

Revision ID: 001
Revises: None
Create Date: 2026-10-19

Running ``alembic upgrade head`` on a clean database applies the entire
schema in one step.

Tables created
--------------
- users          : principals (email-anchored, role admin/doctor/patient)
- departments    : clinic departments
- doctors        : doctor profile, 1:1 with users (shared primary key)
- patients       : patient profile, 1:1 with users (shared primary key)
- appointments   : bookings with lifecycle status
- consultations  : 1:1 with a completed appointment
- prescriptions  : N per consultation, Issued -> Dispensed
- policy_rules   : (role, resource, action) authorization rules

Seed data
---------
None. Policy rules are seeded idempotently by the application at startup,
default departments only when SEED_DEPARTMENTS is set.

Rollback
--------
``downgrade()`` drops the tables leaf → root.
"""
from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    # =======================================================================
    # 1. USERS
    # =======================================================================
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("subject_id", sa.String(255), nullable=True, comment="External issuer subject (set-once)"),
        sa.Column("name", sa.String(255), nullable=False, server_default=""),
        sa.Column("picture", sa.String(1024), nullable=False, server_default=""),
        sa.Column("role", sa.String(20), nullable=False, server_default="patient", comment="User role: admin, doctor, patient"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("subject_id", name="uq_users_subject_id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_deleted_at", "users", ["deleted_at"])
    op.create_index("ix_users_role_deleted", "users", ["role", "deleted_at"])

    # =======================================================================
    # 2. DEPARTMENTS
    # =======================================================================
    op.create_table(
        "departments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_departments_name"),
    )
    op.create_index("ix_departments_deleted_at", "departments", ["deleted_at"])

    # =======================================================================
    # 3. ROLE PROFILES
    # =======================================================================
    op.create_table(
        "doctors",
        sa.Column("id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("department_id", sa.Integer(), nullable=True),
        sa.Column("specialization", sa.String(255), nullable=False, server_default="Pending..."),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["id"], ["users.id"], name="fk_doctors_user"),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"], name="fk_doctors_department"),
    )
    op.create_index("ix_doctors_department_id", "doctors", ["department_id"])
    op.create_index("ix_doctors_deleted_at", "doctors", ["deleted_at"])

    op.create_table(
        "patients",
        sa.Column("id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("gender", sa.String(32), nullable=False, server_default=""),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["id"], ["users.id"], name="fk_patients_user"),
    )
    op.create_index("ix_patients_deleted_at", "patients", ["deleted_at"])

    # =======================================================================
    # 4. APPOINTMENT LIFECYCLE
    # =======================================================================
    op.create_table(
        "appointments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("patient_id", sa.Integer(), nullable=False),
        sa.Column("doctor_id", sa.Integer(), nullable=False),
        sa.Column("appointment_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="Scheduled", comment="Scheduled, Cancelled, Completed"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["patient_id"], ["patients.id"], name="fk_appointments_patient"),
        sa.ForeignKeyConstraint(["doctor_id"], ["doctors.id"], name="fk_appointments_doctor"),
    )
    op.create_index("ix_appointments_patient_id", "appointments", ["patient_id"])
    op.create_index("ix_appointments_doctor_id", "appointments", ["doctor_id"])
    op.create_index("ix_appointments_appointment_date", "appointments", ["appointment_date"])
    op.create_index("ix_appointments_status", "appointments", ["status"])
    op.create_index("ix_appointments_deleted_at", "appointments", ["deleted_at"])
    op.create_index("ix_appointments_doctor_date", "appointments", ["doctor_id", "appointment_date"])

    op.create_table(
        "consultations",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("appointment_id", sa.Integer(), nullable=False),
        sa.Column("diagnosis", sa.Text(), nullable=False, server_default=""),
        sa.Column("notes", sa.Text(), nullable=False, server_default=""),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("appointment_id", name="uq_consultations_appointment_id"),
        sa.ForeignKeyConstraint(["appointment_id"], ["appointments.id"], name="fk_consultations_appointment"),
    )
    op.create_index("ix_consultations_deleted_at", "consultations", ["deleted_at"])

    op.create_table(
        "prescriptions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("consultation_id", sa.Integer(), nullable=False),
        sa.Column("medication", sa.String(255), nullable=False),
        sa.Column("dosage", sa.String(255), nullable=False, server_default=""),
        sa.Column("status", sa.String(20), nullable=False, server_default="Issued", comment="Issued, Dispensed"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["consultation_id"], ["consultations.id"], name="fk_prescriptions_consultation"),
    )
    op.create_index("ix_prescriptions_consultation_id", "prescriptions", ["consultation_id"])
    op.create_index("ix_prescriptions_deleted_at", "prescriptions", ["deleted_at"])

    # =======================================================================
    # 5. POLICY RULES
    # =======================================================================
    op.create_table(
        "policy_rules",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("ptype", sa.String(8), nullable=False, server_default="p"),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("resource", sa.String(255), nullable=False),
        sa.Column("action", sa.String(255), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("ptype", "role", "resource", "action", name="uq_policy_rules_triple"),
    )
    op.create_index("ix_policy_rules_role", "policy_rules", ["role"])


def downgrade() -> None:
    op.drop_table("policy_rules")
    op.drop_table("prescriptions")
    op.drop_table("consultations")
    op.drop_table("appointments")
    op.drop_table("patients")
    op.drop_table("doctors")
    op.drop_table("departments")
    op.drop_table("users")
