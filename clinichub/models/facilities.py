"""
Facility hierarchy SQLAlchemy models.

Organization → Complex → (ComplexDepartment ← Department) → Clinic → Service.
Every entity that can hand attributes down to its children carries the
shared profile columns from ``SharedProfileMixin``.
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from clinichub.core.database import Base


class SharedProfileMixin:
    """Business profile, legal and contact attributes shared down the tree."""
    
    # Business profile
    logo_url = Column(String(500), nullable=True)
    website = Column(String(255), nullable=True)
    year_established = Column(Integer, nullable=True)
    mission = Column(Text, nullable=True)
    vision = Column(Text, nullable=True)
    overview = Column(Text, nullable=True)
    goals = Column(Text, nullable=True)
    ceo_name = Column(String(255), nullable=True)
    
    # Contact
    email = Column(String(255), nullable=True)
    phone_numbers = Column(JSON, nullable=True)
    address = Column(JSON, nullable=True)
    google_location = Column(String(255), nullable=True)
    emergency_contact_name = Column(String(255), nullable=True)
    emergency_contact_phone = Column(String(50), nullable=True)
    social_media_links = Column(JSON, nullable=True)
    
    # Legal
    vat_number = Column(String(20), nullable=True)
    cr_number = Column(String(20), nullable=True)
    terms_conditions_url = Column(String(500), nullable=True)
    privacy_policy_url = Column(String(500), nullable=True)


class Organization(SharedProfileMixin, Base):
    """Root of a company-plan hierarchy; at most one per owner."""
    __tablename__ = "organizations"
    
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    legal_name = Column(String(255), nullable=True)
    registration_number = Column(String(100), nullable=True)
    owner_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    subscription_id = Column(Integer, ForeignKey("subscriptions.id"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)
    
    complexes = relationship("Complex", back_populates="organization", lazy="dynamic")
    
    def __repr__(self):
        return f"<Organization(name='{self.name}')>"


class Complex(SharedProfileMixin, Base):
    """Medical complex, optionally under an organization."""
    __tablename__ = "complexes"
    
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    subscription_id = Column(Integer, ForeignKey("subscriptions.id"), nullable=True)
    manager_name = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)
    
    organization = relationship("Organization", back_populates="complexes")
    departments = relationship("ComplexDepartment", back_populates="complex", lazy="dynamic")
    
    def __repr__(self):
        return f"<Complex(name='{self.name}')>"


class Department(Base):
    """Medical specialty catalog entry shared across complexes."""
    __tablename__ = "departments"
    
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    
    created_at = Column(DateTime, default=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<Department(name='{self.name}')>"


class ComplexDepartment(Base):
    """Department offered inside one complex."""
    __tablename__ = "complex_departments"
    __table_args__ = (
        UniqueConstraint("complex_id", "department_id", name="uq_complex_department"),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    complex_id = Column(Integer, ForeignKey("complexes.id"), nullable=False, index=True)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    
    created_at = Column(DateTime, default=func.now(), nullable=False)
    
    complex = relationship("Complex", back_populates="departments")
    department = relationship("Department")
    
    def __repr__(self):
        return f"<ComplexDepartment(complex_id={self.complex_id}, department_id={self.department_id})>"


class Clinic(SharedProfileMixin, Base):
    """Clinic, standalone or hosted by a complex department."""
    __tablename__ = "clinics"
    
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    complex_id = Column(Integer, ForeignKey("complexes.id"), nullable=True, index=True)
    complex_department_id = Column(Integer, ForeignKey("complex_departments.id"), nullable=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    subscription_id = Column(Integer, ForeignKey("subscriptions.id"), nullable=True)
    
    license_number = Column(String(100), nullable=True)
    head_doctor_name = Column(String(255), nullable=True)
    specialization = Column(String(255), nullable=True)
    max_staff = Column(Integer, nullable=True)
    max_doctors = Column(Integer, nullable=True)
    max_patients = Column(Integer, nullable=True)
    session_duration = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<Clinic(name='{self.name}')>"


class MedicalService(Base):
    """Bookable service, defined per complex department or per clinic."""
    __tablename__ = "medical_services"
    
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    duration_minutes = Column(Integer, nullable=True)
    price = Column(Integer, nullable=True)
    complex_department_id = Column(Integer, ForeignKey("complex_departments.id"), nullable=True, index=True)
    clinic_id = Column(Integer, ForeignKey("clinics.id"), nullable=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    
    created_at = Column(DateTime, default=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<MedicalService(name='{self.name}')>"


class ClinicService(Base):
    """Service offered by a clinic."""
    __tablename__ = "clinic_services"
    __table_args__ = (
        UniqueConstraint("clinic_id", "service_id", name="uq_clinic_service"),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(Integer, ForeignKey("clinics.id"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("medical_services.id"), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    
    created_at = Column(DateTime, default=func.now(), nullable=False)
