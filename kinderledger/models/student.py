"""Students, extra courses and enrollments (read by billing)"""

from sqlalchemy import Column, String, Date, Numeric, Boolean, Integer, ForeignKey
from sqlalchemy.dialects.postgresql import UUID, ENUM
from sqlalchemy.orm import relationship

from kinderledger.models.base import BaseModel
from kinderledger.models.enums import StudentStatus, EnrollmentStatus


class Student(BaseModel):
    """
    Kindergarten student. Every ACTIVE student is billed the platform-wide
    monthly tuition.
    """
    __tablename__ = "students"

    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    birth_date = Column(Date, nullable=True)
    guardian_name = Column(String(255), nullable=False)
    guardian_phone = Column(String(50), nullable=False)
    status = Column(
        ENUM(StudentStatus, name="student_status"),
        default=StudentStatus.ACTIVE,
        nullable=False,
        index=True,
    )

    invoices = relationship("RegularInvoice", back_populates="student")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_active(self) -> bool:
        return self.status == StudentStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<Student {self.full_name} ({self.status})>"


class ExtraStudent(BaseModel):
    """Student attending one or more paid extra courses"""
    __tablename__ = "extra_students"

    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    responsible_name = Column(String(255), nullable=True)
    responsible_phone = Column(String(50), nullable=True)
    status = Column(
        ENUM(StudentStatus, name="student_status"),
        default=StudentStatus.ACTIVE,
        nullable=False,
        index=True,
    )

    enrollments = relationship("ExtraStudentEnrollment", back_populates="extra_student")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<ExtraStudent {self.full_name}>"


class ExtraCourse(BaseModel):
    """Extra course with its own monthly price"""
    __tablename__ = "extra_courses"

    title = Column(String(255), nullable=False)
    monthly_price = Column(Numeric(10, 2), nullable=False)
    capacity = Column(Integer, nullable=True)
    active = Column(Boolean, default=True, nullable=False, index=True)

    enrollments = relationship("ExtraStudentEnrollment", back_populates="course")

    def __repr__(self) -> str:
        return f"<ExtraCourse {self.title} {self.monthly_price}>"


class ExtraStudentEnrollment(BaseModel):
    """Billable link between an extra student and a course"""
    __tablename__ = "extra_student_enrollments"

    extra_student_id = Column(
        UUID(as_uuid=True),
        ForeignKey("extra_students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    course_id = Column(
        UUID(as_uuid=True),
        ForeignKey("extra_courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status = Column(
        ENUM(EnrollmentStatus, name="enrollment_status"),
        default=EnrollmentStatus.ACTIVE,
        nullable=False,
        index=True,
    )
    enrollment_date = Column(Date, nullable=False)

    extra_student = relationship("ExtraStudent", back_populates="enrollments", lazy="selectin")
    course = relationship("ExtraCourse", back_populates="enrollments", lazy="selectin")

    @property
    def is_active(self) -> bool:
        return self.status == EnrollmentStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<ExtraStudentEnrollment {self.extra_student_id} -> {self.course_id} ({self.status})>"
