"""
User Access Domain Service
"""

from clinichub.config.settings import settings
from clinichub.models.accounts import UserAccess
from clinichub.services.base import BaseService


class UserAccessService(BaseService):

    def __init__(self):
        super().__init__("UserAccessService")
        self.initialize()

    def grant_access(self, uow, user_id: int, scope_type: str, scope_id: int,
                     role: str = None) -> UserAccess:
        """Grant ``role`` on one entity; re-granting updates the existing row."""
        role = role or settings.owner_role
        access = (
            uow.session.query(UserAccess)
            .filter(
                UserAccess.user_id == user_id,
                UserAccess.scope_type == scope_type,
                UserAccess.scope_id == scope_id,
            )
            .first()
        )
        if access is None:
            access = UserAccess(user_id=user_id, scope_type=scope_type, scope_id=scope_id, role=role)
            uow.add(access)
        else:
            access.role = role
        uow.flush()
        return access
