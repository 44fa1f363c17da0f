"""
Complex Domain Service
"""

from clinichub.models.facilities import Complex
from clinichub.services.domain.entity_service import EntityService


class ComplexService(EntityService):
    model = Complex
    entity_type = "complex"
    parent_field = "organization_id"

    def __init__(self):
        super().__init__("ComplexService")
