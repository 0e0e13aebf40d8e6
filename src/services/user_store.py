"""Durable storage for users, backed by async SQLAlchemy."""
import logging
from collections.abc import Iterable

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models.user import User
from schemas.user import UserRecord
from services.exceptions import NullInputError, UserValidationError

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("first_name", "last_name", "gender")


def validate_user(user: UserRecord | None) -> UserRecord:
    """
    Check a user before anything is written.

    Raises:
        NullInputError: If user is None.
        UserValidationError: If a required field is missing or blank.
    """
    if user is None:
        raise NullInputError("user")
    for field in REQUIRED_FIELDS:
        value = getattr(user, field)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise UserValidationError(field)
    return user


def _to_record(row: User) -> UserRecord:
    return UserRecord.model_validate(row)


class UserStore:
    """
    Entity store for users.

    Every operation opens its own session and transaction from the factory, so
    a single store can be shared by many concurrent workers. Returned values
    are detached UserRecord objects, never ORM rows.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def list_all(self, descending: bool = False) -> list[UserRecord]:
        """Return every user ordered by id (ascending unless descending=True)."""
        order = User.id.desc() if descending else User.id.asc()
        async with self._session_factory() as session:
            result = await session.execute(select(User).order_by(order))
            return [_to_record(row) for row in result.scalars()]

    async def list_ids(self) -> list[int]:
        """Return every user id in ascending order."""
        async with self._session_factory() as session:
            result = await session.execute(select(User.id).order_by(User.id))
            return list(result.scalars())

    async def count(self) -> int:
        """Return the number of stored users."""
        async with self._session_factory() as session:
            result = await session.execute(select(func.count()).select_from(User))
            return result.scalar_one()

    async def find_by_id(self, user_id: int | None) -> UserRecord | None:
        """Return the user with this id, or None when it does not exist."""
        if user_id is None:
            raise NullInputError("user_id")
        async with self._session_factory() as session:
            row = await session.get(User, user_id)
            return _to_record(row) if row is not None else None

    async def find_by_ids(self, user_ids: Iterable[int | None] | None) -> list[UserRecord]:
        """
        Return the users whose id is in user_ids.

        None entries, duplicates and unknown ids are ignored. Results are
        ordered by id.
        """
        if user_ids is None:
            raise NullInputError("user_ids")
        wanted = {user_id for user_id in user_ids if user_id is not None}
        if not wanted:
            return []
        async with self._session_factory() as session:
            result = await session.execute(
                select(User).where(User.id.in_(wanted)).order_by(User.id),
            )
            return [_to_record(row) for row in result.scalars()]

    async def save(self, user: UserRecord | None) -> UserRecord:
        """
        Persist a user and return it with its assigned id.

        A user that already carries an id is upserted (see update).

        Raises:
            NullInputError: If user is None.
            UserValidationError: If a required field is missing.
        """
        validate_user(user)
        async with self._session_factory() as session:
            async with session.begin():
                row = await self._upsert(session, user)
                saved = _to_record(row)
        logger.debug("user_saved user_id=%s", saved.id)
        return saved

    async def save_all(self, users: Iterable[UserRecord | None] | None) -> list[UserRecord]:
        """
        Persist several users in one transaction.

        All users are validated before anything is written: if any of them is
        None or invalid, none are persisted.
        """
        if users is None:
            raise NullInputError("users")
        batch = [validate_user(user) for user in users]
        async with self._session_factory() as session:
            async with session.begin():
                rows = [await self._upsert(session, user) for user in batch]
                saved = [_to_record(row) for row in rows]
        logger.debug("users_saved count=%s", len(saved))
        return saved

    async def update(self, user: UserRecord | None) -> UserRecord:
        """
        Upsert a user.

        When the id refers to an existing row, its fields are replaced and the
        id is kept. Otherwise the user is inserted and receives a new id.
        """
        return await self.save(user)

    async def delete_by_id(self, user_id: int | None) -> None:
        """Delete one user. Deleting an unknown id is a no-op."""
        if user_id is None:
            raise NullInputError("user_id")
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    delete(User)
                    .where(User.id == user_id)
                    .execution_options(synchronize_session=False),
                )
        logger.debug("user_deleted user_id=%s rows=%s", user_id, result.rowcount)

    async def delete_by_ids(self, user_ids: Iterable[int | None] | None) -> None:
        """Delete every user whose id is listed. None entries and unknown ids are skipped."""
        if user_ids is None:
            raise NullInputError("user_ids")
        wanted = {user_id for user_id in user_ids if user_id is not None}
        if not wanted:
            return
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    delete(User)
                    .where(User.id.in_(wanted))
                    .execution_options(synchronize_session=False),
                )
        logger.debug("users_deleted requested=%s rows=%s", len(wanted), result.rowcount)

    async def delete_all(self) -> None:
        """Delete every user."""
        async with self._session_factory() as session:
            async with session.begin():
                await session.execute(
                    delete(User).execution_options(synchronize_session=False),
                )
        logger.debug("users_deleted_all")

    async def _upsert(self, session: AsyncSession, user: UserRecord) -> User:
        """Merge into the existing row for user.id, or insert a new row."""
        row = await session.get(User, user.id) if user.id is not None else None
        if row is None:
            row = User(
                first_name=user.first_name,
                last_name=user.last_name,
                gender=str(user.gender),
                email=user.email,
            )
            session.add(row)
        else:
            row.first_name = user.first_name
            row.last_name = user.last_name
            row.gender = str(user.gender)
            row.email = user.email
        await session.flush()
        return row
