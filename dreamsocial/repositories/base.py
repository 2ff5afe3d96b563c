"""
Base repository with the query primitives relationship tables need.
All repositories should extend this class for database access.
"""
import enum
import logging
from typing import Generic, TypeVar, Type, Optional, List, Any, Dict

from sqlalchemy import select, delete, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import MultipleResultsFound, NoResultFound, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dreamsocial.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)

logger = logging.getLogger(__name__)


class LookupOutcome(str, enum.Enum):
    """Result of a "fetch exactly one row" lookup."""
    FOUND = "found"
    NOT_FOUND = "not_found"
    ERROR = "error"


class BaseRepository(Generic[ModelType]):
    """
    Base repository with common query operations.

    Filters are passed as column=value keyword arguments and combined with AND.
    Unknown column names raise AttributeError instead of being ignored, since
    a dropped filter on a delete would widen it.
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            db: Async database session
        """
        self.model = model
        self.db = db

    def _conditions(self, filters: Dict[str, Any]) -> List[Any]:
        return [getattr(self.model, key) == value for key, value in filters.items()]

    async def create(self, **kwargs) -> ModelType:
        """
        Insert a new record.

        Args:
            **kwargs: Model field values

        Returns:
            Created model instance

        Raises:
            IntegrityError: If a unique constraint rejects the row

        Example:
            ```python
            edge = await follow_repo.create(follower_id=a, following_id=b)
            ```
        """
        instance = self.model(**kwargs)
        self.db.add(instance)
        await self.db.flush()
        return instance

    async def insert_ignore_conflict(self, **values) -> None:
        """
        Insert a record, doing nothing if a unique constraint already holds it.

        Uses the dialect's native ``INSERT ... ON CONFLICT DO NOTHING``.

        Args:
            **values: Column values (including the primary key)
        """
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            stmt = postgresql.insert(self.model).values(**values).on_conflict_do_nothing()
        elif dialect == "sqlite":
            stmt = sqlite.insert(self.model).values(**values).on_conflict_do_nothing()
        else:
            raise NotImplementedError(f"Upsert is not supported on {dialect}")

        await self.db.execute(stmt)
        await self.db.flush()

    async def lookup_one(self, **filters) -> LookupOutcome:
        """
        Fetch exactly one matching row and report what happened.

        Args:
            **filters: Column equality filters

        Returns:
            FOUND if exactly one row matched, NOT_FOUND if none did, ERROR
            for anything else (several rows, driver or connection failure)
        """
        try:
            result = await self.db.execute(
                select(self.model.id).where(*self._conditions(filters))
            )
            result.scalar_one()
            return LookupOutcome.FOUND
        except NoResultFound:
            return LookupOutcome.NOT_FOUND
        except MultipleResultsFound:
            logger.warning(f"Expected one {self.model.__tablename__} row for {filters}, found several")
            return LookupOutcome.ERROR
        except SQLAlchemyError as e:
            logger.warning(f"Lookup on {self.model.__tablename__} failed for {filters}: {e}")
            return LookupOutcome.ERROR

    async def count(self, **filters) -> int:
        """
        Count records matching filters.

        Example:
            ```python
            followers = await follow_repo.count(following_id=user_id)
            ```
        """
        result = await self.db.execute(
            select(func.count()).select_from(self.model).where(*self._conditions(filters))
        )
        return result.scalar() or 0

    async def delete_where(self, *conditions: Any, **filters) -> int:
        """
        Delete every record matching the given conditions (hard delete).

        Args:
            *conditions: Extra SQLAlchemy boolean clauses (e.g. an or_())
            **filters: Column equality filters

        Returns:
            Number of rows removed (zero is not an error)
        """
        result = await self.db.execute(
            delete(self.model).where(*conditions, *self._conditions(filters))
        )
        await self.db.flush()
        return result.rowcount or 0

    async def filter_by(
        self,
        order_by: Optional[Any] = None,
        **filters
    ) -> List[ModelType]:
        """
        Filter records by conditions.

        Args:
            order_by: Optional SQLAlchemy order_by clause
            **filters: Column equality filters

        Returns:
            List of matching model instances
        """
        query = select(self.model).where(*self._conditions(filters))

        if order_by is not None:
            query = query.order_by(order_by)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_many(self, ids: List[str]) -> List[ModelType]:
        """
        Get multiple records by IDs in a single query.

        Args:
            ids: List of primary keys

        Returns:
            List of model instances (missing ids are skipped)
        """
        if not ids:
            return []

        result = await self.db.execute(
            select(self.model).where(self.model.id.in_(ids))
        )
        return list(result.scalars().all())
