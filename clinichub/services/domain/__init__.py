"""
Domain Services

Collaborators that read and write one kind of record. Every operation takes
the caller's ``UnitOfWork`` and only flushes; the workflow that owns the unit
of work decides when to commit.

Available Domain Services:
=========================

1. **OrganizationService** - Company-plan root entity, one per owner
2. **ComplexService** - Medical complexes
3. **DepartmentService** - Department catalog and complex links
4. **ClinicService** - Clinics
5. **ServiceCatalogService** - Medical services and clinic links
6. **WorkingHoursService** - Weekly schedules of any entity
7. **ContactService** - Normalized contact entries
8. **DynamicInfoService** - Legal documents
9. **UserAccessService** - Role grants on entities
10. **SubscriptionService** - Plans and subscriptions
11. **UserService** - User lookup
"""

from dataclasses import dataclass

from .organization_service import OrganizationService
from .complex_service import ComplexService
from .department_service import DepartmentService
from .clinic_service import ClinicService
from .service_catalog_service import ServiceCatalogService
from .working_hours_service import WorkingHoursService
from .contact_service import ContactService
from .dynamic_info_service import DynamicInfoService
from .user_access_service import UserAccessService
from .subscription_service import SubscriptionService
from .user_service import UserService


@dataclass
class DomainServices:
    """The collaborators an onboarding workflow needs, injectable as one unit."""
    organizations: OrganizationService
    complexes: ComplexService
    departments: DepartmentService
    clinics: ClinicService
    services: ServiceCatalogService
    working_hours: WorkingHoursService
    contacts: ContactService
    dynamic_info: DynamicInfoService
    user_access: UserAccessService
    subscriptions: SubscriptionService
    users: UserService

    @classmethod
    def default(cls) -> "DomainServices":
        return cls(
            organizations=OrganizationService(),
            complexes=ComplexService(),
            departments=DepartmentService(),
            clinics=ClinicService(),
            services=ServiceCatalogService(),
            working_hours=WorkingHoursService(),
            contacts=ContactService(),
            dynamic_info=DynamicInfoService(),
            user_access=UserAccessService(),
            subscriptions=SubscriptionService(),
            users=UserService(),
        )


__all__ = [
    'DomainServices',
    'OrganizationService',
    'ComplexService',
    'DepartmentService',
    'ClinicService',
    'ServiceCatalogService',
    'WorkingHoursService',
    'ContactService',
    'DynamicInfoService',
    'UserAccessService',
    'SubscriptionService',
    'UserService',
]
