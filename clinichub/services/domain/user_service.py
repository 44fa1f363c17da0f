"""
User Domain Service

Users are registered elsewhere; onboarding only resolves them.
"""

from typing import Optional

from clinichub.models.accounts import User
from clinichub.services.base import BaseService


class UserService(BaseService):

    def __init__(self):
        super().__init__("UserService")
        self.initialize()

    def get(self, uow, user_id: int) -> Optional[User]:
        return uow.session.get(User, user_id)

    def get_by_email(self, uow, email: str) -> Optional[User]:
        return uow.session.query(User).filter(User.email == email.strip().lower()).first()

    def resolve(self, uow, user_id: Optional[int] = None, email: Optional[str] = None) -> Optional[User]:
        """Look the user up by id, falling back to email."""
        user = self.get(uow, user_id) if user_id is not None else None
        if user is None and email:
            user = self.get_by_email(uow, email)
        return user
