from typing import Optional

from sqlalchemy import select

from marketplace.models.user import User
from marketplace.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    model = User
    resource_name = "User"

    def get_by_email(self, email: str) -> Optional[User]:
        return self.session.execute(
            select(User).where(User.email == email)
        ).scalar_one_or_none()
