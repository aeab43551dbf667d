"""Staff model; salaries of active staff make up the monthly payroll"""

from sqlalchemy import Column, String, Numeric, Boolean
from sqlalchemy.dialects.postgresql import ENUM

from kinderledger.models.base import BaseModel
from kinderledger.models.enums import StaffType


class Staff(BaseModel):
    """
    Staff member. Only the current salary is stored, so payroll for past
    months is computed from today's salaries and active flags.
    """
    __tablename__ = "staff"

    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    identity_number = Column(String(50), unique=True, nullable=False)
    phone_number = Column(String(50), nullable=False)
    salary = Column(Numeric(10, 2), nullable=False)
    type = Column(ENUM(StaffType, name="staff_type"), nullable=False, index=True)
    active = Column(Boolean, default=True, nullable=False, index=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Staff {self.full_name} ({self.type})>"
