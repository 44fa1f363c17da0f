#!/usr/bin/env python3
"""
Database setup script for ClinicHub onboarding.

This script initializes the database, creates all tables, seeds the
subscription plans and provides options for resetting the database or
registering a development user.
"""

import sys
from pathlib import Path

# Add the project root to the Python path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

from sqlalchemy import inspect, text
from clinichub.core.database import engine, create_tables, drop_tables, SessionLocal
from clinichub.core.unit_of_work import UnitOfWork
from clinichub.models import User
from clinichub.services.domain.subscription_service import SubscriptionService
from clinichub.config.settings import settings


EXPECTED_TABLES = [
    'users', 'subscription_plans', 'subscriptions', 'user_access',
    'organizations', 'complexes', 'departments', 'complex_departments',
    'clinics', 'medical_services', 'clinic_services',
    'working_hours', 'contacts', 'dynamic_info', 'step_progress'
]


def check_database_connection():
    """Check if database connection is working."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            print("✅ Database connection successful")
            return True
    except Exception as e:
        print(f"❌ Database connection failed: {e}")
        return False


def create_database_tables():
    """Create all database tables and seed the subscription plans."""
    try:
        print("📝 Creating database tables...")
        create_tables()
        print("✅ Database tables created successfully")
        print(f"📋 Tables: {', '.join(inspect(engine).get_table_names())}")
        
        return seed_plans()
    except Exception as e:
        print(f"❌ Failed to create tables: {e}")
        return False


def seed_plans():
    """Insert any missing built-in subscription plan."""
    try:
        with UnitOfWork() as uow:
            with uow.transaction():
                plans = SubscriptionService().ensure_default_plans(uow)
                names = [plan.name for plan in plans]
        print(f"✅ Subscription plans: {', '.join(names)}")
        return True
    except Exception as e:
        print(f"❌ Failed to seed subscription plans: {e}")
        return False


def reset_database():
    """Drop and recreate all database tables."""
    try:
        print("⚠️  Dropping all existing tables...")
        drop_tables()
        print("✅ Tables dropped successfully")
        
        return create_database_tables()
    except Exception as e:
        print(f"❌ Failed to reset database: {e}")
        return False


def verify_tables():
    """Verify that all expected tables exist."""
    db = SessionLocal()
    try:
        for table_name in EXPECTED_TABLES:
            try:
                count = db.execute(text(f"SELECT COUNT(*) FROM {table_name}")).scalar()
                print(f"✅ Table '{table_name}': {count} records")
            except Exception as e:
                print(f"❌ Table '{table_name}': Error - {e}")
                return False
        return True
    finally:
        db.close()


def create_user(email, first_name=None, last_name=None):
    """Register a development user that can run an onboarding."""
    email = email.strip().lower()
    with UnitOfWork() as uow:
        with uow.transaction():
            user = uow.session.query(User).filter(User.email == email).first()
            if user is None:
                user = User(email=email, first_name=first_name, last_name=last_name)
                uow.add(user)
                uow.flush()
                print(f"✅ Created user {user.full_name or email} <{email}> with id {user.id}")
            else:
                print(f"ℹ️  User {email} already exists with id {user.id}")
    return True


def main():
    """Main setup function."""
    print("🚀 ClinicHub Database Setup")
    print("=" * 40)
    print(f"Database URL: {settings.database_url}")
    print()
    
    if not check_database_connection():
        print("❌ Cannot proceed without database connection")
        sys.exit(1)
    
    if len(sys.argv) > 1:
        command = sys.argv[1].lower()
        
        if command == "reset":
            print("⚠️  WARNING: This will delete all existing data!")
            response = input("Are you sure you want to reset the database? (yes/no): ")
            
            if response.lower() == "yes":
                if reset_database():
                    print("✅ Database reset completed successfully")
                else:
                    print("❌ Database reset failed")
                    sys.exit(1)
            else:
                print("❌ Database reset cancelled")
                sys.exit(0)
                
        elif command == "verify":
            print("🔍 Verifying database tables...")
            if verify_tables():
                print("✅ All tables verified successfully")
            else:
                print("❌ Table verification failed")
                sys.exit(1)
        
        elif command == "user":
            if len(sys.argv) < 3:
                print("Usage: python scripts/setup_db.py user <email> [first_name] [last_name]")
                sys.exit(1)
            create_user(*sys.argv[2:5])
                
        else:
            print(f"❌ Unknown command: {command}")
            print("Available commands: reset, verify, user")
            sys.exit(1)
    
    else:
        print("📝 Setting up database tables...")
        
        if create_database_tables():
            print()
            print("🔍 Verifying created tables...")
            if verify_tables():
                print()
                print("✅ Database setup completed successfully!")
                print()
                print("Next steps:")
                print("1. Register a user: python scripts/setup_db.py user owner@example.com")
                print("2. Start Redis server: redis-server")
                print("3. Start Celery worker: python scripts/run_workers.py worker")
                print("4. Start FastAPI server: uvicorn clinichub.main:app --reload")
            else:
                print("❌ Database setup verification failed")
                sys.exit(1)
        else:
            print("❌ Database setup failed")
            sys.exit(1)


if __name__ == "__main__":
    main()
