"""Authenticated principal supplied by the external auth layer."""

from pydantic import BaseModel, ConfigDict, Field

from core.utils.constants import ROLE_ADMIN, ROLE_SYSTEM, ROLE_USER, USER_ID_PATTERN


class Principal(BaseModel):
    """Identity acting on a request."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1, max_length=64, pattern=USER_ID_PATTERN)
    role: str = Field(default=ROLE_USER)

    @property
    def is_admin(self) -> bool:
        return self.role.lower() == ROLE_ADMIN

    @property
    def is_guest(self) -> bool:
        return self.role == ROLE_SYSTEM

    def can_manage(self, owner_id: str) -> bool:
        """Owners and admins may change or delete an image.

        The shared guest account owns every anonymous upload, so it never
        manages anything.
        """
        if self.is_guest:
            return False
        return self.is_admin or self.user_id == owner_id

    @classmethod
    def guest(cls, user_id: str) -> "Principal":
        return cls(user_id=user_id, role=ROLE_SYSTEM)
