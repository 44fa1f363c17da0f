"""
External System Mocks

In-memory stand-ins for external systems, used by tests and by local runs
without the real services:

1. **RedisMock** - Progress cache (same interface as ``RedisManager``)
2. **EmailServiceMock** - Email channel for onboarding notifications
"""

from .redis_mock import RedisMock
from .email_service_mock import EmailServiceMock

__all__ = [
    'RedisMock',
    'EmailServiceMock'
]
