"""
Service Layer

Business logic between the API endpoints and storage / Celery side effects.

Architecture:
============

1. **Base Services** (base.py):
   - Error types, ``ServiceResult`` and the ``service_method`` decorator
   - Base and cache-fronted service classes

2. **Onboarding Engine** (onboarding/):
   - Plan configuration, hierarchy and inheritance rules
   - Working-hours validation and step progress tracking

3. **Domain Services** (domain/):
   - One collaborator per record type, all sharing the caller's unit of work

4. **Integration Services** (integration/):
   - Fire-and-forget audit and notification dispatch

5. **Workflow Services** (workflows/):
   - Full onboarding submissions and the step-by-step wizard

Usage Example:
=============

```python
from clinichub.core.unit_of_work import UnitOfWork
from clinichub.services.workflows import OnboardingService

with UnitOfWork() as uow:
    service = OnboardingService(uow)
    service.initialize()
    result = await service.run_onboarding(payload)
```
"""

from .base import BaseService, ServiceError, ServiceResult
from .domain import *
from .integration import *
from .workflows import *

__all__ = [
    'BaseService',
    'ServiceError',
    'ServiceResult'
]
