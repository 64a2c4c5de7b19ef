from dataclasses import dataclass

from telehealth.models.enums import STAFF_ROLES, UserRole


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, passed explicitly into every service call."""

    user_id: int
    role: UserRole

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES
