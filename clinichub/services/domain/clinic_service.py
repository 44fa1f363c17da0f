"""
Clinic Domain Service
"""

from clinichub.models.facilities import Clinic
from clinichub.services.domain.entity_service import EntityService


class ClinicService(EntityService):
    model = Clinic
    entity_type = "clinic"
    parent_field = "complex_department_id"

    def __init__(self):
        super().__init__("ClinicService")
