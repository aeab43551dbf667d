"""Billable populations.

Both cohorts share one generator, ledger and sweeper. Everything that
differs between them (which relationships are billable, where invoices live,
how a period is matched) sits behind PopulationAdapter.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Type, Union
from uuid import UUID

from sqlalchemy import select, exists
from sqlalchemy.ext.asyncio import AsyncSession

from kinderledger.core.exceptions import NotFoundError, ValidationError
from kinderledger.models.billing import RegularInvoice, ExtraInvoice
from kinderledger.models.enums import Population, PaymentStatus, PaymentType, StudentStatus, EnrollmentStatus
from kinderledger.models.student import Student, ExtraStudent, ExtraCourse, ExtraStudentEnrollment

Invoice = Union[RegularInvoice, ExtraInvoice]


@dataclass(frozen=True)
class BillableRelationship:
    """A student (regular) or a student + course pair (extra) that can be invoiced"""
    population: Population
    student_id: UUID
    student_name: str
    course_id: Optional[UUID] = None
    course_title: Optional[str] = None
    monthly_price: Optional[Decimal] = None
    payment_type: PaymentType = PaymentType.TUITION


class PopulationAdapter(ABC):
    """Population-specific data access used by the shared billing services"""

    population: Population
    invoice_model: Type[Any]
    # UNIQUE constraint guarding one cycle invoice per relationship and period
    period_constraint: str

    @abstractmethod
    async def list_active_relationships(self, db: AsyncSession) -> List[BillableRelationship]:
        """Relationships currently eligible for the monthly cycle"""

    @abstractmethod
    async def resolve(
        self,
        db: AsyncSession,
        student_id: UUID,
        course_id: Optional[UUID] = None,
        payment_type: PaymentType = PaymentType.TUITION,
    ) -> BillableRelationship:
        """Load one relationship for an ad-hoc invoice; NotFoundError when unknown"""

    @abstractmethod
    def period_clause(self, relationship: BillableRelationship, year: int, month: int) -> list:
        """WHERE clauses matching the cycle invoice of a relationship for a period"""

    @abstractmethod
    def build_invoice(
        self,
        relationship: BillableRelationship,
        amount: Decimal,
        due_date: date,
        notes: Optional[str],
        billing_year: Optional[int] = None,
        billing_month: Optional[int] = None,
    ) -> Invoice:
        """Transient UNPAID invoice for a relationship"""

    @abstractmethod
    def party_filter(self, student_id: UUID) -> list:
        """WHERE clauses selecting the invoices of one billed student"""

    async def has_invoice_for_period(
        self,
        db: AsyncSession,
        relationship: BillableRelationship,
        year: int,
        month: int,
    ) -> bool:
        result = await db.execute(
            select(exists().where(*self.period_clause(relationship, year, month)))
        )
        return bool(result.scalar())

    @staticmethod
    def _invoice_fields(
        amount: Decimal,
        due_date: date,
        notes: Optional[str],
        billing_year: Optional[int],
        billing_month: Optional[int],
    ) -> Dict[str, Any]:
        return {
            "amount": amount,
            "billed_amount": amount,
            "status": PaymentStatus.UNPAID,
            "due_date": due_date,
            "notes": notes,
            "billing_year": billing_year,
            "billing_month": billing_month,
        }


class RegularPopulation(PopulationAdapter):
    population = Population.REGULAR
    invoice_model = RegularInvoice
    period_constraint = "uq_regular_invoices_period"

    @staticmethod
    def _relationship(student: Student, payment_type: PaymentType = PaymentType.TUITION) -> BillableRelationship:
        return BillableRelationship(
            population=Population.REGULAR,
            student_id=student.id,
            student_name=student.full_name,
            payment_type=payment_type,
        )

    async def list_active_relationships(self, db: AsyncSession) -> List[BillableRelationship]:
        result = await db.execute(
            select(Student)
            .where(Student.status == StudentStatus.ACTIVE)
            .order_by(Student.last_name, Student.first_name)
        )
        return [self._relationship(s) for s in result.scalars().all()]

    async def resolve(
        self,
        db: AsyncSession,
        student_id: UUID,
        course_id: Optional[UUID] = None,
        payment_type: PaymentType = PaymentType.TUITION,
    ) -> BillableRelationship:
        if course_id is not None:
            raise ValidationError("Regular invoices are not tied to a course")
        student = await db.get(Student, student_id)
        if student is None:
            raise NotFoundError(f"Student {student_id} not found")
        return self._relationship(student, payment_type)

    def period_clause(self, relationship: BillableRelationship, year: int, month: int) -> list:
        return [
            RegularInvoice.student_id == relationship.student_id,
            RegularInvoice.payment_type == relationship.payment_type,
            RegularInvoice.billing_year == year,
            RegularInvoice.billing_month == month,
        ]

    def party_filter(self, student_id: UUID) -> list:
        return [RegularInvoice.student_id == student_id]

    def build_invoice(
        self,
        relationship: BillableRelationship,
        amount: Decimal,
        due_date: date,
        notes: Optional[str],
        billing_year: Optional[int] = None,
        billing_month: Optional[int] = None,
    ) -> RegularInvoice:
        return RegularInvoice(
            student_id=relationship.student_id,
            payment_type=relationship.payment_type,
            **self._invoice_fields(amount, due_date, notes, billing_year, billing_month),
        )


class ExtraCoursePopulation(PopulationAdapter):
    population = Population.EXTRA_COURSE
    invoice_model = ExtraInvoice
    period_constraint = "uq_extra_invoices_period"

    @staticmethod
    def _relationship(student: ExtraStudent, course: ExtraCourse) -> BillableRelationship:
        return BillableRelationship(
            population=Population.EXTRA_COURSE,
            student_id=student.id,
            student_name=student.full_name,
            course_id=course.id,
            course_title=course.title,
            monthly_price=course.monthly_price,
        )

    async def list_active_relationships(self, db: AsyncSession) -> List[BillableRelationship]:
        result = await db.execute(
            select(ExtraStudentEnrollment)
            .where(ExtraStudentEnrollment.status == EnrollmentStatus.ACTIVE)
            .order_by(ExtraStudentEnrollment.enrollment_date)
        )
        return [
            self._relationship(e.extra_student, e.course)
            for e in result.scalars().all()
        ]

    async def resolve(
        self,
        db: AsyncSession,
        student_id: UUID,
        course_id: Optional[UUID] = None,
        payment_type: PaymentType = PaymentType.TUITION,
    ) -> BillableRelationship:
        if course_id is None:
            raise ValidationError("course_id is required for extra-course invoices")
        student = await db.get(ExtraStudent, student_id)
        if student is None:
            raise NotFoundError(f"Extra student {student_id} not found")
        course = await db.get(ExtraCourse, course_id)
        if course is None:
            raise NotFoundError(f"Extra course {course_id} not found")
        return self._relationship(student, course)

    def period_clause(self, relationship: BillableRelationship, year: int, month: int) -> list:
        return [
            ExtraInvoice.extra_student_id == relationship.student_id,
            ExtraInvoice.extra_course_id == relationship.course_id,
            ExtraInvoice.billing_year == year,
            ExtraInvoice.billing_month == month,
        ]

    def party_filter(self, student_id: UUID) -> list:
        return [ExtraInvoice.extra_student_id == student_id]

    def build_invoice(
        self,
        relationship: BillableRelationship,
        amount: Decimal,
        due_date: date,
        notes: Optional[str],
        billing_year: Optional[int] = None,
        billing_month: Optional[int] = None,
    ) -> ExtraInvoice:
        return ExtraInvoice(
            extra_student_id=relationship.student_id,
            extra_course_id=relationship.course_id,
            **self._invoice_fields(amount, due_date, notes, billing_year, billing_month),
        )


ADAPTERS: Dict[Population, PopulationAdapter] = {
    Population.REGULAR: RegularPopulation(),
    Population.EXTRA_COURSE: ExtraCoursePopulation(),
}


def get_adapter(population: Population) -> PopulationAdapter:
    return ADAPTERS[Population(population)]


def all_adapters() -> List[PopulationAdapter]:
    return list(ADAPTERS.values())
