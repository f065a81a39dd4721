"""Small request validation helpers shared by the resource routers."""

from typing import Any, Optional

from bson import ObjectId
from beanie import PydanticObjectId

from utils.exceptions import Forbidden, InvalidInput


def to_object_id(value: str, name: str) -> PydanticObjectId:
    """Parse a path or query id, raising `InvalidInput` naming the parameter."""
    if not ObjectId.is_valid(value):
        raise InvalidInput(f"Invalid {name}")
    return PydanticObjectId(value)


def require_text(value: Optional[str], message: str) -> str:
    """Return `value` stripped, or raise `InvalidInput` if it is missing or blank."""
    if value is None or not value.strip():
        raise InvalidInput(message)
    return value.strip()


def ensure_owner(owner_id: Any, user: Any, message: str) -> None:
    """Raise `Forbidden` unless `user` owns the resource."""
    if str(owner_id) != str(user.id):
        raise Forbidden(message)
