"""
Organization Domain Service
"""

from typing import Any, Mapping

from sqlalchemy.exc import IntegrityError

from clinichub.models.facilities import Organization
from clinichub.services.domain.entity_service import EntityService


class OrganizationService(EntityService):
    """Root entity of company plans; one per owner."""

    model = Organization
    entity_type = "organization"

    def __init__(self):
        super().__init__("OrganizationService")

    def upsert_for_owner(self, uow, user_id: int, data: Mapping[str, Any]) -> Organization:
        """
        Update the owner's organization, or create it.

        A concurrent create for the same owner trips the unique owner
        constraint; the insert is undone inside a savepoint and retried as an
        update of the row that won.
        """
        existing = self.find_by_owner(uow, user_id)
        if existing is not None:
            return self.update(uow, existing.id, data)

        try:
            with uow.savepoint():
                return self.create(uow, {**data, "owner_id": user_id})
        except IntegrityError:
            self.logger.warning(f"Organization for owner {user_id} created concurrently; updating instead")
            existing = self.find_by_owner(uow, user_id)
            if existing is None:
                raise
            return self.update(uow, existing.id, data)
