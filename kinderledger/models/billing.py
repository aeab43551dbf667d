"""Billing Models: regular and extra-course invoices"""

from typing import Optional

from sqlalchemy import Column, Date, Integer, Numeric, Text, ForeignKey, UniqueConstraint, Index
from sqlalchemy.dialects.postgresql import UUID, ENUM
from sqlalchemy.orm import relationship

from kinderledger.models.base import BaseModel
from kinderledger.models.enums import PaymentStatus, PaymentType, Population


class InvoiceMixin:
    """
    Columns shared by both invoice populations.

    billing_year/billing_month identify the billing cycle an invoice was
    generated for and stay NULL on ad-hoc invoices, so the per-period UNIQUE
    constraints only bind cycle invoices. billed_amount keeps the amount
    issued at creation; amount is what reports sum and is overwritten by a
    partial payment.
    """
    amount = Column(Numeric(10, 2), nullable=False)
    billed_amount = Column(Numeric(10, 2), nullable=False)
    status = Column(
        ENUM(PaymentStatus, name="payment_status"),
        default=PaymentStatus.UNPAID,
        nullable=False,
        index=True,
    )
    due_date = Column(Date, nullable=False, index=True)
    paid_date = Column(Date, nullable=True, index=True)
    notes = Column(Text, nullable=True)
    billing_year = Column(Integer, nullable=True)
    billing_month = Column(Integer, nullable=True)

    def append_notes(self, notes: Optional[str]) -> None:
        """Add a line to the notes, keeping what is already there"""
        if not notes:
            return
        self.notes = f"{self.notes}\n{notes}" if self.notes else notes

    @property
    def is_paid(self) -> bool:
        return self.status == PaymentStatus.PAID


class RegularInvoice(BaseModel, InvoiceMixin):
    """Invoice billed to a kindergarten student"""
    __tablename__ = "regular_invoices"
    __table_args__ = (
        UniqueConstraint(
            "student_id", "payment_type", "billing_year", "billing_month",
            name="uq_regular_invoices_period",
        ),
    )

    population = Population.REGULAR

    student_id = Column(
        UUID(as_uuid=True),
        ForeignKey("students.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    payment_type = Column(
        ENUM(PaymentType, name="payment_type"),
        default=PaymentType.TUITION,
        nullable=False,
    )

    student = relationship("Student", back_populates="invoices", lazy="selectin")

    @property
    def party_id(self):
        return self.student_id

    @property
    def course_id(self):
        return None

    @property
    def party_name(self) -> Optional[str]:
        return self.student.full_name if self.student is not None else None

    @property
    def course_title(self) -> Optional[str]:
        return None

    def __repr__(self) -> str:
        return f"<RegularInvoice {self.amount} - {self.status}>"


class ExtraInvoice(BaseModel, InvoiceMixin):
    """Invoice billed to an extra-course student for one course"""
    __tablename__ = "extra_invoices"
    __table_args__ = (
        UniqueConstraint(
            "extra_student_id", "extra_course_id", "billing_year", "billing_month",
            name="uq_extra_invoices_period",
        ),
        Index("ix_extra_invoices_student_due", "extra_student_id", "due_date"),
    )

    population = Population.EXTRA_COURSE

    extra_student_id = Column(
        UUID(as_uuid=True),
        ForeignKey("extra_students.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    extra_course_id = Column(
        UUID(as_uuid=True),
        ForeignKey("extra_courses.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    extra_student = relationship("ExtraStudent", lazy="selectin")
    course = relationship("ExtraCourse", lazy="selectin")

    @property
    def party_id(self):
        return self.extra_student_id

    @property
    def course_id(self):
        return self.extra_course_id

    @property
    def payment_type(self) -> Optional[PaymentType]:
        return None

    @property
    def party_name(self) -> Optional[str]:
        return self.extra_student.full_name if self.extra_student is not None else None

    @property
    def course_title(self) -> Optional[str]:
        return self.course.title if self.course is not None else None

    def __repr__(self) -> str:
        return f"<ExtraInvoice {self.amount} - {self.status}>"
