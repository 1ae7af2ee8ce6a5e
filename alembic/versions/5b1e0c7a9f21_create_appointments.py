"""create appointments (scheduling engine)

Revision ID: 5b1e0c7a9f21
Revises:
Create Date: 2026-10-16 10:12:41.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5b1e0c7a9f21'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# SQLAlchemy guarda el *nombre* del miembro del enum
APPT_TYPES = ("evaluation", "session", "return_visit", "pilates", "urgent", "teleconsulta")
APPT_STATUSES = ("scheduled", "completed", "canceled", "no_show")
PAYMENT_STATUSES = ("pending", "paid")


def upgrade() -> None:
    op.create_table(
        "appointments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("therapist_id", sa.String(36), nullable=False),
        sa.Column("patient_id", sa.String(36), nullable=False),
        sa.Column("starts_at", sa.DateTime(timezone=False), nullable=False),
        sa.Column("ends_at", sa.DateTime(timezone=False), nullable=False),
        sa.Column("type", sa.Enum(*APPT_TYPES, name="appointmenttype"), nullable=False),
        sa.Column("status", sa.Enum(*APPT_STATUSES, name="appointmentstatus"), nullable=False),
        sa.Column("value", sa.Float(), nullable=True),
        sa.Column("payment_status", sa.Enum(*PAYMENT_STATUSES, name="paymentstatus"), nullable=False),
        sa.Column("series_id", sa.String(36), nullable=True),
        sa.Column("session_number", sa.Integer(), nullable=True),
        sa.Column("total_sessions", sa.Integer(), nullable=True),
        sa.Column("notes", sa.String(500), nullable=True),
    )
    # solapamientos y cupo diario: terapeuta + rango de fechas
    op.create_index("ix_appt_therapist_starts", "appointments", ["therapist_id", "starts_at"], unique=False)
    op.create_index("ix_appt_starts", "appointments", ["starts_at"], unique=False)
    # historial del paciente
    op.create_index("ix_appointments_patient_id", "appointments", ["patient_id"], unique=False)
    # borrado "esta y las siguientes" de una serie
    op.create_index("ix_appointments_series_id", "appointments", ["series_id"], unique=False)
    op.create_index("ix_appointments_status", "appointments", ["status"], unique=False)


def downgrade() -> None:
    # Borrar en orden inverso
    op.drop_index("ix_appointments_status", table_name="appointments")
    op.drop_index("ix_appointments_series_id", table_name="appointments")
    op.drop_index("ix_appointments_patient_id", table_name="appointments")
    op.drop_index("ix_appt_starts", table_name="appointments")
    op.drop_index("ix_appt_therapist_starts", table_name="appointments")
    op.drop_table("appointments")
