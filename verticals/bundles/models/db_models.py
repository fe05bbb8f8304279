"""SQLAlchemy model for the bundle configuration store.

One row per bundle product. The whole aggregate (pricing block and slot
list) lives in a single JSON document so a write can only ever replace both
together; product_id and is_enabled are copied into columns for lookups.
"""

from typing import Any

from sqlalchemy import JSON, Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from core.models.base import Base, TimestampMixin
from verticals.bundles.models.schemas import (
    BundleConfiguration,
    BundleConfigurationWrite,
)

_DOCUMENT_EXCLUDE = {"id", "created_at", "updated_at"}


class BundleConfigurationRecord(TimestampMixin, Base):
    """A persisted bundle configuration."""

    __tablename__ = "bundle_configurations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    product_id: Mapped[int | None] = mapped_column(
        Integer, unique=True, nullable=True, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    document: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    @staticmethod
    def columns_for(configuration: BundleConfigurationWrite) -> dict[str, Any]:
        """Column values for a whole-record write."""
        return {
            "product_id": configuration.product_id,
            "title": configuration.title,
            "is_enabled": configuration.is_enabled,
            "document": configuration.model_dump(mode="json", exclude=_DOCUMENT_EXCLUDE),
        }

    def to_configuration(self) -> BundleConfiguration:
        return BundleConfiguration.model_validate(
            {
                **self.document,
                "id": self.id,
                "created_at": self.created_at,
                "updated_at": self.updated_at,
            }
        )
