"""Detached user representation shared by the store, the strategies and the cache."""
from pydantic import BaseModel, ConfigDict, TypeAdapter

from models.user import Gender


class UserRecord(BaseModel):
    """
    Plain user value passed across every boundary in place of ORM rows.

    Fields are intentionally optional: an incomplete user must be able to reach
    UserStore, which is the single place that rejects it (UserValidationError).

    Equality compares id, first_name, last_name and gender. Email is excluded,
    so a freshly saved user equals a fixture that also carries an email.

    When adding, removing, or renaming fields, bump CACHE_SCHEMA_VERSION in
    core/user_cache.py so entries serialized with the old shape are never read.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    first_name: str | None = None
    last_name: str | None = None
    gender: Gender | None = None
    email: str | None = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UserRecord):
            return NotImplemented
        return (
            self.id == other.id
            and self.first_name == other.first_name
            and self.last_name == other.last_name
            and self.gender == other.gender
        )

    def copy_without_id(self) -> "UserRecord":
        """Return a transient copy that the store will persist as a new user."""
        return self.model_copy(update={"id": None})


user_list_adapter: TypeAdapter[list[UserRecord]] = TypeAdapter(list[UserRecord])
