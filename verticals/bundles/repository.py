"""Bundle Configuration Store: async database access.

Extends BaseRepository with aggregate-level operations. Every write is a
whole-record replacement stamped with the modification time; concurrent
writers are not reconciled (last write wins). Enabled configurations are
integrity-checked before they are written, so a defective bundle cannot go
live.
"""

import logging

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_session
from patterns.repository import BaseRepository
from verticals.bundles.errors import ConfigurationInvalid
from verticals.bundles.models.db_models import BundleConfigurationRecord
from verticals.bundles.models.schemas import (
    BundleConfiguration,
    BundleConfigurationWrite,
)
from verticals.bundles.rules import check_configuration

logger = logging.getLogger(__name__)


class BundleConfigurationRepository(BaseRepository[BundleConfigurationRecord]):
    """Create/replace/read/delete of whole bundle configurations."""

    model = BundleConfigurationRecord

    async def _check_writable(
        self, configuration: BundleConfigurationWrite, configuration_id: str
    ) -> None:
        if configuration.is_enabled:
            check_configuration(configuration, configuration_id)

        if configuration.product_id is not None:
            stmt = select(BundleConfigurationRecord.id).where(
                BundleConfigurationRecord.product_id == configuration.product_id,
                BundleConfigurationRecord.id != configuration_id,
            )
            result = await self.session.execute(stmt)
            if result.scalar_one_or_none() is not None:
                raise ConfigurationInvalid(
                    f"Product {configuration.product_id} already has a bundle configuration",
                    configuration_id=configuration_id,
                )

    # -- Create --

    async def create(self, configuration: BundleConfigurationWrite) -> BundleConfiguration:
        """Store a new configuration; a full BundleConfiguration keeps its id."""
        if isinstance(configuration, BundleConfiguration):
            configuration_id = configuration.id
        else:
            configuration_id = BundleConfiguration().id

        await self._check_writable(configuration, configuration_id)
        row = await self.create_row(
            {"id": configuration_id, **BundleConfigurationRecord.columns_for(configuration)}
        )
        logger.info(
            "Bundle configuration created",
            extra={"configuration_id": row.id, "product_id": row.product_id},
        )
        return row.to_configuration()

    # -- Replace --

    async def replace(
        self, configuration_id: str, configuration: BundleConfigurationWrite
    ) -> BundleConfiguration | None:
        """Replace every editable field. Returns None if not found."""
        await self._check_writable(configuration, configuration_id)
        row = await self.replace_row(
            configuration_id, BundleConfigurationRecord.columns_for(configuration)
        )
        if row is None:
            return None
        logger.info(
            "Bundle configuration replaced",
            extra={"configuration_id": row.id, "enabled": row.is_enabled},
        )
        return row.to_configuration()

    # -- Reads --

    async def get(self, configuration_id: str) -> BundleConfiguration | None:
        row = await self.get_row(configuration_id)
        return row.to_configuration() if row else None

    async def get_for_product(self, product_id: int) -> BundleConfiguration | None:
        """Enabled configuration for a live product page, if any."""
        stmt = select(BundleConfigurationRecord).where(
            BundleConfigurationRecord.product_id == product_id,
            BundleConfigurationRecord.is_enabled.is_(True),
        )
        result = await self.session.execute(stmt)
        row = result.scalar_one_or_none()
        return row.to_configuration() if row else None

    async def list(
        self,
        page: int = 1,
        limit: int = 50,
        enabled_only: bool = False,
    ) -> tuple[list[BundleConfiguration], int]:
        filters = {"is_enabled": True} if enabled_only else None
        rows, total = await self.list_rows(page=page, limit=limit, filters=filters)
        return [row.to_configuration() for row in rows], total

    # -- Delete --

    async def delete(self, configuration_id: str) -> bool:
        deleted = await self.delete_row(configuration_id)
        if deleted:
            logger.info("Bundle configuration deleted", extra={"configuration_id": configuration_id})
        return deleted


# ---------------------------------------------------------------------------
# FastAPI dependency factory
# ---------------------------------------------------------------------------

def get_bundle_repository(
    session: AsyncSession = Depends(get_session),
) -> BundleConfigurationRepository:
    """FastAPI dependency for BundleConfigurationRepository."""
    return BundleConfigurationRepository(session)
