"""billing schema: students, extra courses, staff, invoices, billing events

Revision ID: 5a1e0c7d2b90
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "5a1e0c7d2b90"
down_revision = None
branch_labels = None
depends_on = None


STUDENT_STATUS = postgresql.ENUM("ACTIVE", "LEFT", name="student_status", create_type=False)
ENROLLMENT_STATUS = postgresql.ENUM(
    "ACTIVE", "INACTIVE", "COMPLETED", "CANCELLED", name="enrollment_status", create_type=False
)
STAFF_TYPE = postgresql.ENUM(
    "ASSISTANT", "EDUCATRICE", "AIDE_EDUCATRICE", name="staff_type", create_type=False
)
PAYMENT_STATUS = postgresql.ENUM(
    "UNPAID", "PARTIAL", "PAID", "OVERDUE", name="payment_status", create_type=False
)
PAYMENT_TYPE = postgresql.ENUM("TUITION", "REGISTRATION", "OTHER", name="payment_type", create_type=False)


def _timestamps():
    return [
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def _invoice_columns():
    return [
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("billed_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", PAYMENT_STATUS, nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("paid_date", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("billing_year", sa.Integer(), nullable=True),
        sa.Column("billing_month", sa.Integer(), nullable=True),
    ]


def _invoice_indexes(table: str) -> None:
    for column in ("id", "status", "due_date", "paid_date"):
        op.create_index(op.f(f"ix_{table}_{column}"), table, [column], unique=False)


def upgrade() -> None:
    op.execute("CREATE TYPE student_status AS ENUM ('ACTIVE', 'LEFT')")
    op.execute("CREATE TYPE enrollment_status AS ENUM ("
               "'ACTIVE', 'INACTIVE', 'COMPLETED', 'CANCELLED')")
    op.execute("CREATE TYPE staff_type AS ENUM ('ASSISTANT', 'EDUCATRICE', 'AIDE_EDUCATRICE')")
    op.execute("CREATE TYPE payment_status AS ENUM ('UNPAID', 'PARTIAL', 'PAID', 'OVERDUE')")
    op.execute("CREATE TYPE payment_type AS ENUM ('TUITION', 'REGISTRATION', 'OTHER')")

    op.create_table(
        "students",
        sa.Column("first_name", sa.String(255), nullable=False),
        sa.Column("last_name", sa.String(255), nullable=False),
        sa.Column("birth_date", sa.Date(), nullable=True),
        sa.Column("guardian_name", sa.String(255), nullable=False),
        sa.Column("guardian_phone", sa.String(50), nullable=False),
        sa.Column("status", STUDENT_STATUS, nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_students_id"), "students", ["id"], unique=False)
    op.create_index(op.f("ix_students_status"), "students", ["status"], unique=False)

    op.create_table(
        "extra_students",
        sa.Column("first_name", sa.String(255), nullable=False),
        sa.Column("last_name", sa.String(255), nullable=False),
        sa.Column("responsible_name", sa.String(255), nullable=True),
        sa.Column("responsible_phone", sa.String(50), nullable=True),
        sa.Column("status", STUDENT_STATUS, nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_extra_students_id"), "extra_students", ["id"], unique=False)
    op.create_index(op.f("ix_extra_students_status"), "extra_students", ["status"], unique=False)

    op.create_table(
        "extra_courses",
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("monthly_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_extra_courses_id"), "extra_courses", ["id"], unique=False)
    op.create_index(op.f("ix_extra_courses_active"), "extra_courses", ["active"], unique=False)

    op.create_table(
        "extra_student_enrollments",
        sa.Column("extra_student_id", sa.UUID(), nullable=False),
        sa.Column("course_id", sa.UUID(), nullable=False),
        sa.Column("status", ENROLLMENT_STATUS, nullable=False),
        sa.Column("enrollment_date", sa.Date(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["extra_student_id"], ["extra_students.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["course_id"], ["extra_courses.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    for column in ("id", "extra_student_id", "course_id", "status"):
        op.create_index(
            op.f(f"ix_extra_student_enrollments_{column}"),
            "extra_student_enrollments", [column], unique=False,
        )

    op.create_table(
        "staff",
        sa.Column("first_name", sa.String(255), nullable=False),
        sa.Column("last_name", sa.String(255), nullable=False),
        sa.Column("identity_number", sa.String(50), nullable=False),
        sa.Column("phone_number", sa.String(50), nullable=False),
        sa.Column("salary", sa.Numeric(10, 2), nullable=False),
        sa.Column("type", STAFF_TYPE, nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("identity_number"),
    )
    op.create_index(op.f("ix_staff_id"), "staff", ["id"], unique=False)
    op.create_index(op.f("ix_staff_type"), "staff", ["type"], unique=False)
    op.create_index(op.f("ix_staff_active"), "staff", ["active"], unique=False)

    op.create_table(
        "regular_invoices",
        sa.Column("student_id", sa.UUID(), nullable=False),
        sa.Column("payment_type", PAYMENT_TYPE, nullable=False),
        *_invoice_columns(),
        *_timestamps(),
        sa.ForeignKeyConstraint(["student_id"], ["students.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "student_id", "payment_type", "billing_year", "billing_month",
            name="uq_regular_invoices_period",
        ),
    )
    _invoice_indexes("regular_invoices")
    op.create_index(op.f("ix_regular_invoices_student_id"), "regular_invoices", ["student_id"], unique=False)

    op.create_table(
        "extra_invoices",
        sa.Column("extra_student_id", sa.UUID(), nullable=False),
        sa.Column("extra_course_id", sa.UUID(), nullable=False),
        *_invoice_columns(),
        *_timestamps(),
        sa.ForeignKeyConstraint(["extra_student_id"], ["extra_students.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["extra_course_id"], ["extra_courses.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "extra_student_id", "extra_course_id", "billing_year", "billing_month",
            name="uq_extra_invoices_period",
        ),
    )
    _invoice_indexes("extra_invoices")
    op.create_index(op.f("ix_extra_invoices_extra_student_id"), "extra_invoices", ["extra_student_id"], unique=False)
    op.create_index(op.f("ix_extra_invoices_extra_course_id"), "extra_invoices", ["extra_course_id"], unique=False)
    op.create_index("ix_extra_invoices_student_due", "extra_invoices", ["extra_student_id", "due_date"], unique=False)

    op.create_table(
        "billing_events",
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("processed_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_billing_events_id"), "billing_events", ["id"], unique=False)
    op.create_index(op.f("ix_billing_events_event_type"), "billing_events", ["event_type"], unique=False)
    op.create_index(op.f("ix_billing_events_processed_at"), "billing_events", ["processed_at"], unique=False)


def downgrade() -> None:
    op.drop_table("billing_events")
    op.drop_table("extra_invoices")
    op.drop_table("regular_invoices")
    op.drop_table("staff")
    op.drop_table("extra_student_enrollments")
    op.drop_table("extra_courses")
    op.drop_table("extra_students")
    op.drop_table("students")
    for enum_name in ("payment_type", "payment_status", "staff_type", "enrollment_status", "student_status"):
        op.execute(f"DROP TYPE IF EXISTS {enum_name}")
