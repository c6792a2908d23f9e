from dataclasses import dataclass
from typing import Optional

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLE_SYSTEM = "system"


@dataclass(frozen=True)
class Actor:
    """Verified caller identity handed in by the identity provider."""
    user_id: Optional[int]
    role: str = ROLE_USER

    @classmethod
    def user(cls, user_id: int) -> "Actor":
        return cls(user_id=user_id, role=ROLE_USER)

    @classmethod
    def admin(cls, user_id: int) -> "Actor":
        return cls(user_id=user_id, role=ROLE_ADMIN)

    @classmethod
    def system(cls) -> "Actor":
        return cls(user_id=None, role=ROLE_SYSTEM)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_system(self) -> bool:
        return self.role == ROLE_SYSTEM
