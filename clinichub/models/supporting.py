"""
Records attached to any facility entity through (entity_type, entity_id).
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, UniqueConstraint
from sqlalchemy.sql import func

from clinichub.core.database import Base


class WorkingHours(Base):
    """One day of an entity's weekly schedule."""
    __tablename__ = "working_hours"
    __table_args__ = (
        UniqueConstraint("entity_type", "entity_id", "day_of_week", name="uq_working_hours_day"),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    entity_type = Column(String(30), nullable=False, index=True)
    entity_id = Column(Integer, nullable=False, index=True)
    day_of_week = Column(String(10), nullable=False)
    is_working_day = Column(Boolean, default=False, nullable=False)
    opening_time = Column(String(5), nullable=True)
    closing_time = Column(String(5), nullable=True)
    break_start_time = Column(String(5), nullable=True)
    break_end_time = Column(String(5), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    
    created_at = Column(DateTime, default=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<WorkingHours({self.entity_type}:{self.entity_id} {self.day_of_week})>"
    
    def to_schedule(self):
        return {
            "day_of_week": self.day_of_week,
            "is_working_day": self.is_working_day,
            "opening_time": self.opening_time,
            "closing_time": self.closing_time,
            "break_start_time": self.break_start_time,
            "break_end_time": self.break_end_time,
        }


class Contact(Base):
    """Phone, email or social media entry of an entity."""
    __tablename__ = "contacts"
    
    id = Column(Integer, primary_key=True, index=True)
    entity_type = Column(String(30), nullable=False, index=True)
    entity_id = Column(Integer, nullable=False, index=True)
    contact_type = Column(String(30), nullable=False)
    contact_value = Column(String(500), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    
    created_at = Column(DateTime, default=func.now(), nullable=False)


class DynamicInfo(Base):
    """Free-form legal document (terms, privacy policy) of an entity."""
    __tablename__ = "dynamic_info"
    __table_args__ = (
        UniqueConstraint("entity_type", "entity_id", "info_type", name="uq_dynamic_info_type"),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    entity_type = Column(String(30), nullable=False, index=True)
    entity_id = Column(Integer, nullable=False, index=True)
    info_type = Column(String(50), nullable=False)
    info_value = Column(Text, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)
