"""
Persisted onboarding progress.
"""

from sqlalchemy import Boolean, Column, Integer, String, DateTime, ForeignKey, JSON
from sqlalchemy.sql import func

from clinichub.core.database import Base


class StepProgress(Base):
    """
    Per-user wizard state.
    
    ``completed_steps`` and ``skipped_steps`` only ever grow; the row is never
    deleted. ``current_step`` is recomputed from them on every write.
    """
    __tablename__ = "step_progress"
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    plan_type = Column(String(20), nullable=False)
    current_step = Column(String(50), nullable=False)
    completed_steps = Column(JSON, nullable=False, default=list)
    skipped_steps = Column(JSON, nullable=False, default=list)
    # Wizard left for the dashboard; cleared as soon as the user resumes
    skipped_to_dashboard = Column(Boolean, nullable=False, default=False)
    
    organization_id = Column(Integer, nullable=True)
    complex_id = Column(Integer, nullable=True)
    clinic_id = Column(Integer, nullable=True)
    
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<StepProgress(user_id={self.user_id}, current_step='{self.current_step}')>"
