"""
Contact Domain Service
"""

import re
from typing import Any, Iterable, List, Mapping

from clinichub.models.supporting import Contact
from clinichub.services.base import BaseService

PHONE_PUNCTUATION = re.compile(r"[\s\-()]")
PHONE_TYPES = {"phone", "whatsapp"}
SOCIAL_TYPES = {"facebook", "instagram", "twitter", "linkedin"}


def normalize_contact_value(contact_type: str, value: str) -> str:
    contact_type = contact_type.lower()
    if contact_type in PHONE_TYPES:
        return PHONE_PUNCTUATION.sub("", value)
    if contact_type == "email" or contact_type in SOCIAL_TYPES:
        return value.strip().lower()
    return value.strip()


class ContactService(BaseService):

    def __init__(self):
        super().__init__("ContactService")
        self.initialize()

    def replace_contacts(self, uow, entity_type: str, entity_id: int, contacts: Iterable[Any]) -> List[Contact]:
        """Replace the entity's contacts with the normalized ``contacts``."""
        uow.session.query(Contact).filter(
            Contact.entity_type == entity_type, Contact.entity_id == entity_id
        ).delete()

        rows = []
        for contact in contacts:
            if not isinstance(contact, Mapping):
                contact = contact.model_dump()
            contact_type = contact["contact_type"].strip().lower()
            row = Contact(
                entity_type=entity_type,
                entity_id=entity_id,
                contact_type=contact_type,
                contact_value=normalize_contact_value(contact_type, contact["contact_value"]),
                is_active=contact.get("is_active", True) is not False,
            )
            uow.add(row)
            rows.append(row)
        uow.flush()
        return rows
