"""
Dynamic Info Domain Service

Stores an entity's legal documents (terms and conditions, privacy policy).
"""

from typing import Dict, List, Optional

from clinichub.models.supporting import DynamicInfo
from clinichub.services.base import BaseService

LEGAL_INFO_TYPES = ("terms_conditions", "privacy_policy")


class DynamicInfoService(BaseService):

    def __init__(self):
        super().__init__("DynamicInfoService")
        self.initialize()

    def get(self, uow, entity_type: str, entity_id: int, info_type: str) -> Optional[DynamicInfo]:
        return (
            uow.session.query(DynamicInfo)
            .filter(
                DynamicInfo.entity_type == entity_type,
                DynamicInfo.entity_id == entity_id,
                DynamicInfo.info_type == info_type,
            )
            .first()
        )

    def upsert(self, uow, entity_type: str, entity_id: int, info_type: str, info_value: str) -> DynamicInfo:
        record = self.get(uow, entity_type, entity_id, info_type)
        if record is None:
            record = DynamicInfo(
                entity_type=entity_type, entity_id=entity_id, info_type=info_type, info_value=info_value
            )
            uow.add(record)
        else:
            record.info_value = info_value
            record.is_active = True
        uow.flush()
        return record

    def upsert_legal_documents(self, uow, entity_type: str, entity_id: int,
                               documents: Dict[str, Optional[str]]) -> List[DynamicInfo]:
        """Save each non-empty legal document in ``documents``."""
        return [
            self.upsert(uow, entity_type, entity_id, info_type, documents[info_type])
            for info_type in LEGAL_INFO_TYPES
            if documents.get(info_type)
        ]
