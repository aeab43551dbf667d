"""Centralized Enum Definitions"""

import enum


# Students & courses
class StudentStatus(str, enum.Enum):
    """Enrollment status of a kindergarten or extra-course student"""
    ACTIVE = "ACTIVE"
    LEFT = "LEFT"


class EnrollmentStatus(str, enum.Enum):
    """Extra-course enrollment status; only ACTIVE enrollments are billed"""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# Staff
class StaffType(str, enum.Enum):
    """Staff roles, used to group payroll"""
    ASSISTANT = "ASSISTANT"
    EDUCATRICE = "EDUCATRICE"
    AIDE_EDUCATRICE = "AIDE_EDUCATRICE"


# Billing
class Population(str, enum.Enum):
    """Billable cohorts, each with its own pricing model"""
    REGULAR = "regular"
    EXTRA_COURSE = "extra_course"


class PaymentStatus(str, enum.Enum):
    """Invoice lifecycle states"""
    UNPAID = "UNPAID"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    OVERDUE = "OVERDUE"


# Statuses still awaiting collection
OUTSTANDING_STATUSES = (PaymentStatus.UNPAID, PaymentStatus.PARTIAL, PaymentStatus.OVERDUE)

# Statuses the overdue sweep may promote
SWEEPABLE_STATUSES = (PaymentStatus.UNPAID, PaymentStatus.PARTIAL)


class PaymentType(str, enum.Enum):
    """Kind of charge on a regular invoice"""
    TUITION = "TUITION"
    REGISTRATION = "REGISTRATION"
    OTHER = "OTHER"


class BillingEventType(str, enum.Enum):
    """Events published for downstream fan-out"""
    INVOICE_CREATED = "billing:invoice_created"
    INVOICE_PAID = "billing:invoice_paid"
