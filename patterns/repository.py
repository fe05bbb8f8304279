"""Async repository pattern for database access.

Provides a generic base repository with whole-record CRUD and pagination.
Writes are full replacements: the caller hands over the complete set of
column values, never a partial patch, and every write stamps updated_at.

Example: BundleConfigurationRepository extending BaseRepository.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.models.base import Base, utcnow

# ---------------------------------------------------------------------------
# Type variable for model classes
# ---------------------------------------------------------------------------

ModelT = TypeVar("ModelT", bound=Base)

_IMMUTABLE_COLUMNS = ("id", "created_at")


# ---------------------------------------------------------------------------
# Base repository
# ---------------------------------------------------------------------------

class BaseRepository(Generic[ModelT]):
    """Generic async repository with CRUD + pagination.

    Subclass and set `model` to your SQLAlchemy model::

        class BundleConfigurationRepository(BaseRepository[BundleConfigurationRecord]):
            model = BundleConfigurationRecord

            async def get_for_product(self, product_id: int):
                stmt = select(self.model).where(self.model.product_id == product_id)
                result = await self.session.execute(stmt)
                return result.scalar_one_or_none()
    """

    model: type[ModelT]

    def __init__(self, session: AsyncSession):
        self.session = session

    # -- List with pagination --

    async def list_rows(
        self,
        page: int = 1,
        limit: int = 50,
        filters: dict[str, Any] | None = None,
    ) -> tuple[list[ModelT], int]:
        """List rows with pagination and optional equality filters.

        Returns (rows, total_count).
        """
        stmt = select(self.model)
        count_stmt = select(func.count()).select_from(self.model)

        if filters:
            for col_name, value in filters.items():
                if hasattr(self.model, col_name) and value is not None:
                    stmt = stmt.where(getattr(self.model, col_name) == value)
                    count_stmt = count_stmt.where(getattr(self.model, col_name) == value)

        offset = (page - 1) * limit
        stmt = stmt.order_by(self.model.id).offset(offset).limit(limit)

        result = await self.session.execute(stmt)
        rows = list(result.scalars().all())

        count_result = await self.session.execute(count_stmt)
        total = count_result.scalar() or 0

        return rows, total

    # -- Get by ID --

    async def get_row(self, item_id: Any) -> ModelT | None:
        """Get a single row by primary key."""
        return await self.session.get(self.model, item_id)

    # -- Create --

    async def create_row(self, data: dict[str, Any]) -> ModelT:
        """Insert a new row."""
        now = utcnow()
        row = self.model(**{"created_at": now, "updated_at": now, **data})
        self.session.add(row)
        await self.session.flush()
        return row

    # -- Replace --

    async def replace_row(self, item_id: Any, data: dict[str, Any]) -> ModelT | None:
        """Overwrite every mutable column of an existing row.

        Returns None if not found. Last write wins.
        """
        row = await self.get_row(item_id)
        if row is None:
            return None

        for key, value in data.items():
            if key in _IMMUTABLE_COLUMNS:
                continue
            setattr(row, key, value)
        if "updated_at" not in data:
            row.updated_at = utcnow()

        await self.session.flush()
        return row

    # -- Delete --

    async def delete_row(self, item_id: Any) -> bool:
        """Delete a row. Returns True if deleted, False if not found."""
        row = await self.get_row(item_id)
        if row is None:
            return False

        await self.session.delete(row)
        await self.session.flush()
        return True
