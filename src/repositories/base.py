"""Base repository with common database operations."""

from typing import Any, Dict, Generic, Optional, TypeVar
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import DeclarativeBase

ModelType = TypeVar("ModelType", bound=DeclarativeBase)


class BaseRepository(Generic[ModelType]):
    """Base repository with common lookup and conversion helpers."""

    def __init__(self, session: AsyncSession, model: type[ModelType]):
        """
        Initialize repository.
        Args:
            session: Async database session
            model: SQLAlchemy model class
        """
        self.session = session
        self.model = model

    async def _get_entity(self, id: Any, **filters: Any) -> Optional[ModelType]:
        """Load one entity by primary key, refreshing any stale identity-map copy."""
        stmt = select(self.model).where(self.model.id == id)
        for column, value in filters.items():
            if value is not None:
                stmt = stmt.where(getattr(self.model, column) == value)
        result = await self.session.execute(
            stmt.execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @property
    def dialect_name(self) -> str:
        """Name of the SQL dialect behind the session (postgresql, sqlite...)."""
        return self.session.get_bind().dialect.name

    def _to_dict(self, entity: Optional[ModelType]) -> Optional[Dict[str, Any]]:
        """Convert SQLAlchemy model to dictionary."""
        if entity is None:
            return None
        return {
            column.name: getattr(entity, column.name)
            for column in entity.__table__.columns
        }
