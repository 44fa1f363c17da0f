"""
User, subscription and access-grant SQLAlchemy models.

Users are created and authenticated elsewhere; onboarding only looks them up,
attaches a subscription and grants them owner access to what they build.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from clinichub.core.database import Base


class User(Base):
    """Account that owns an onboarding run."""
    __tablename__ = "users"
    
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)
    
    subscriptions = relationship("Subscription", back_populates="user", lazy="dynamic")
    
    def __repr__(self):
        return f"<User(email='{self.email}')>"
    
    @property
    def full_name(self):
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class SubscriptionPlan(Base):
    """
    Subscription tier.
    
    ``name`` is the plan type (company / complex / clinic); the ``max_*``
    columns override the built-in plan limits when set.
    """
    __tablename__ = "subscription_plans"
    
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False)
    display_name = Column(String(100), nullable=True)
    max_organizations = Column(Integer, nullable=True)
    max_complexes = Column(Integer, nullable=True)
    max_clinics = Column(Integer, nullable=True)
    max_departments = Column(Integer, nullable=True)
    max_services = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    
    created_at = Column(DateTime, default=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<SubscriptionPlan(name='{self.name}')>"
    
    @property
    def limits(self):
        """Per-entity maximums, omitting columns left unset."""
        columns = {
            "organization": self.max_organizations,
            "complex": self.max_complexes,
            "clinic": self.max_clinics,
            "department": self.max_departments,
            "service": self.max_services,
        }
        return {entity: value for entity, value in columns.items() if value is not None}


class Subscription(Base):
    """A user's active plan."""
    __tablename__ = "subscriptions"
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    plan_id = Column(Integer, ForeignKey("subscription_plans.id"), nullable=False)
    plan_type = Column(String(20), nullable=False)
    status = Column(String(20), default="active", nullable=False)
    
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)
    
    user = relationship("User", back_populates="subscriptions")
    plan = relationship("SubscriptionPlan")
    
    def __repr__(self):
        return f"<Subscription(user_id={self.user_id}, plan_type='{self.plan_type}')>"


class UserAccess(Base):
    """Role a user holds on one entity of the facility hierarchy."""
    __tablename__ = "user_access"
    __table_args__ = (
        UniqueConstraint("user_id", "scope_type", "scope_id", name="uq_user_access_scope"),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    scope_type = Column(String(30), nullable=False)
    scope_id = Column(Integer, nullable=False)
    role = Column(String(30), nullable=False)
    
    created_at = Column(DateTime, default=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<UserAccess(user_id={self.user_id}, {self.scope_type}:{self.scope_id}, role='{self.role}')>"
