"""SQLAlchemy models for the LoRa adapter service."""

from datetime import datetime

from sqlalchemy import DateTime, Index, String
from sqlalchemy.orm import Mapped, declarative_base, mapped_column
from sqlalchemy.sql import func

Base = declarative_base()


class RouteMap(Base):
    """Route from an external LoRa identity to an internal identity.

    Rows are partitioned by namespace (thing or channel); external_id is
    unique within its namespace.
    """

    __tablename__ = "route_maps"

    namespace: Mapped[str] = mapped_column(String(16), primary_key=True)
    external_id: Mapped[str] = mapped_column(String(255), primary_key=True)  # device EUI or application ID
    internal_id: Mapped[str] = mapped_column(String(255), nullable=False)  # thing or channel ID

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=func.now(), onupdate=func.now()
    )

    # Removal is keyed by the internal identifier
    __table_args__ = (
        Index("idx_route_maps_internal", "namespace", "internal_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<RouteMap(namespace='{self.namespace}', external_id='{self.external_id}', "
            f"internal_id='{self.internal_id}')>"
        )
