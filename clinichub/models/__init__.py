"""
Database models package.

This module imports all SQLAlchemy models to ensure they are
registered with the database metadata for table creation.
"""

from clinichub.models.accounts import User, SubscriptionPlan, Subscription, UserAccess
from clinichub.models.facilities import (
    Organization, Complex, Department, ComplexDepartment, Clinic,
    MedicalService, ClinicService, SharedProfileMixin
)
from clinichub.models.supporting import WorkingHours, Contact, DynamicInfo
from clinichub.models.onboarding import StepProgress

__all__ = [
    # Accounts
    "User",
    "SubscriptionPlan",
    "Subscription",
    "UserAccess",
    
    # Facility hierarchy
    "Organization",
    "Complex",
    "Department",
    "ComplexDepartment",
    "Clinic",
    "MedicalService",
    "ClinicService",
    "SharedProfileMixin",
    
    # Supporting records
    "WorkingHours",
    "Contact",
    "DynamicInfo",
    
    # Onboarding
    "StepProgress",
]
