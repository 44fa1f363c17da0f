"""
Entity Service Base

Shared create / update / lookup operations for the facility hierarchy
collaborators. Every method takes the caller's unit of work and only flushes;
committing is left to whoever owns the unit of work.
"""

from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import func
from sqlalchemy import inspect as sa_inspect

from clinichub.services.base import BaseService, NotFoundError

PROTECTED_COLUMNS = frozenset({"id", "created_at", "updated_at"})


class EntityService(BaseService):
    """Collaborator for one SQLAlchemy model."""

    model = None
    entity_type: str = None
    parent_field: Optional[str] = None

    def __init__(self, name: str = None):
        super().__init__(name)
        self.initialize()

    @property
    def writable_columns(self) -> frozenset:
        return frozenset(column.key for column in sa_inspect(self.model).column_attrs) - PROTECTED_COLUMNS

    def _clean(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Keep only keys that are writable columns of the model."""
        columns = self.writable_columns
        return {key: value for key, value in data.items() if key in columns}

    def create(self, uow, data: Mapping[str, Any]):
        entity = self.model(**self._clean(data))
        uow.add(entity)
        uow.flush()
        self.logger.info(f"Created {self.entity_type} {entity.id}")
        return entity

    def update(self, uow, entity_id: int, data: Mapping[str, Any]):
        entity = self.get(uow, entity_id)
        if entity is None:
            raise NotFoundError(self.entity_type, entity_id)
        for key, value in self._clean(data).items():
            setattr(entity, key, value)
        uow.flush()
        self.logger.info(f"Updated {self.entity_type} {entity.id}")
        return entity

    def get(self, uow, entity_id: int):
        return uow.session.get(self.model, entity_id)

    def list_by_parent(self, uow, parent_id: int) -> List[Any]:
        if self.parent_field is None:
            raise NotImplementedError(f"{self.entity_type} has no parent")
        column = getattr(self.model, self.parent_field)
        return uow.session.query(self.model).filter(column == parent_id).order_by(self.model.id).all()

    def find_by_owner(self, uow, user_id: int):
        return (
            uow.session.query(self.model)
            .filter(self.model.owner_id == user_id)
            .order_by(self.model.id)
            .first()
        )

    def list_by_owner(self, uow, user_id: int) -> List[Any]:
        return uow.session.query(self.model).filter(self.model.owner_id == user_id).order_by(self.model.id).all()

    def find_by_owner_and_name(self, uow, user_id: int, name: str):
        return (
            uow.session.query(self.model)
            .filter(self.model.owner_id == user_id, self.model.name == name)
            .order_by(self.model.id)
            .first()
        )

    def upsert_by_owner_and_name(self, uow, user_id: int, data: Mapping[str, Any]):
        """Update the owner's entity with the same name, or create it."""
        existing = self.find_by_owner_and_name(uow, user_id, data["name"])
        if existing is not None:
            return self.update(uow, existing.id, data)
        return self.create(uow, {**data, "owner_id": user_id})

    def find_taken(self, uow, column: str, value: str, user_id: Optional[int] = None):
        """
        First entity whose ``column`` matches ``value`` ignoring case and
        surrounding spaces, skipping entities ``user_id`` owns.
        """
        attribute = getattr(self.model, column)
        query = uow.session.query(self.model).filter(func.lower(func.trim(attribute)) == value.strip().lower())
        if user_id is not None:
            query = query.filter(self.model.owner_id != user_id)
        return query.order_by(self.model.id).first()
