"""
Medical Service Catalog Domain Service
"""

from typing import Optional

from clinichub.models.facilities import ClinicService as ClinicServiceLink
from clinichub.models.facilities import MedicalService
from clinichub.services.domain.entity_service import EntityService


class ServiceCatalogService(EntityService):
    """Services offered by a complex department or a clinic."""

    model = MedicalService
    entity_type = "service"
    parent_field = "complex_department_id"

    def __init__(self):
        super().__init__("ServiceCatalogService")

    def find_existing(self, uow, user_id: int, name: str,
                      complex_department_id: int = None, clinic_id: int = None) -> Optional[MedicalService]:
        return (
            uow.session.query(MedicalService)
            .filter(
                MedicalService.owner_id == user_id,
                MedicalService.name == name,
                MedicalService.complex_department_id == complex_department_id,
                MedicalService.clinic_id == clinic_id,
            )
            .first()
        )

    def upsert(self, uow, user_id: int, data: dict) -> MedicalService:
        existing = self.find_existing(
            uow, user_id, data["name"], data.get("complex_department_id"), data.get("clinic_id")
        )
        if existing is not None:
            return self.update(uow, existing.id, data)
        return self.create(uow, {**data, "owner_id": user_id})

    def link_to_clinic(self, uow, clinic_id: int, service_id: int) -> ClinicServiceLink:
        link = (
            uow.session.query(ClinicServiceLink)
            .filter(ClinicServiceLink.clinic_id == clinic_id, ClinicServiceLink.service_id == service_id)
            .first()
        )
        if link is None:
            link = ClinicServiceLink(clinic_id=clinic_id, service_id=service_id)
            uow.add(link)
            uow.flush()
        return link
