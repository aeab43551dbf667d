"""Models Package - Export all models for easy imports"""

from kinderledger.models.base import BaseModel
from kinderledger.models.enums import *
from kinderledger.models.student import Student, ExtraStudent, ExtraCourse, ExtraStudentEnrollment
from kinderledger.models.staff import Staff
from kinderledger.models.billing import RegularInvoice, ExtraInvoice
from kinderledger.models.notification import BillingEvent


__all__ = [
    # Base classes
    "BaseModel",

    # Students & courses
    "Student",
    "ExtraStudent",
    "ExtraCourse",
    "ExtraStudentEnrollment",

    # Staff
    "Staff",

    # Billing
    "RegularInvoice",
    "ExtraInvoice",

    # Events
    "BillingEvent",
]
