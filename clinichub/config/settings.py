"""
Application settings and configuration management.

This module centralizes all application configuration using Pydantic settings
for type validation and environment variable handling.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Main application settings class.
    
    Uses Pydantic BaseSettings to automatically load configuration from:
    1. Environment variables (prefixed with ``CLINICHUB_``)
    2. .env file  
    3. Default values defined here
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="CLINICHUB_",
        case_sensitive=False,
        extra="ignore",
    )
    
    # Database Configuration
    database_url: str = "sqlite:///./clinichub.db"
    
    # Redis Configuration (step progress read-through cache)
    redis_url: str = "redis://localhost:6379/0"
    progress_cache_ttl: int = 900
    
    # Celery Configuration (audit and notification side effects)
    celery_broker_url: str = "redis://localhost:6379/1"
    celery_result_backend: str = "redis://localhost:6379/2"
    celery_task_always_eager: bool = False
    
    # Application Configuration
    debug: bool = True
    log_level: str = "INFO"
    
    # API Configuration
    api_v1_str: str = "/api/v1"
    project_name: str = "ClinicHub Onboarding"
    
    # Onboarding Configuration
    owner_role: str = "owner"


# Global settings instance
# This will be imported throughout the application for configuration access
settings = Settings()
