"""Cached user representation for session caching."""
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from models.user import User


@dataclass
class CachedUser:
    """
    Lightweight user representation for session caching.

    Avoids ORM reconstruction complexity - just the public fields needed for
    auth checks and auth responses.

    IMPORTANT: When adding, removing, or renaming fields in this class, you MUST bump
    CACHE_SCHEMA_VERSION in core/session_cache.py. Old cached entries are then
    ignored and expire naturally via TTL.

    WARNING: Do NOT access ORM relationships like .assigned_classes on CachedUser.
    Those only exist on User ORM objects.
    """

    id: UUID
    campus_id: str
    name: str
    email: str
    role: str

    @classmethod
    def from_user(cls, user: "User") -> "CachedUser":
        """Build a snapshot from a User ORM object."""
        return cls(
            id=user.id,
            campus_id=user.campus_id,
            name=user.name,
            email=user.email,
            role=user.role,
        )

    def to_json_dict(self) -> dict[str, str]:
        """Return a JSON-serializable dict (UUID rendered as string)."""
        data = asdict(self)
        data["id"] = str(self.id)
        return data
