import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.models.types import GUID


class InstallerService(Base):
    """Service offering: links an installer to a category they provide.

    is_primary is written by the profile update batch that inserts the rows;
    there is no database constraint limiting it to one row per installer.
    """

    __tablename__ = "installer_services"
    __table_args__ = (
        UniqueConstraint(
            "installer_profile_id", "service_category_id", name="uq_installer_service_category"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    installer_profile_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("installer_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    service_category_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("service_categories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    installer: Mapped["InstallerProfile"] = relationship(
        "InstallerProfile", back_populates="services", lazy="raise"
    )


class InstallerServiceArea(Base):
    """Service area: a city the installer works in."""

    __tablename__ = "installer_service_areas"
    __table_args__ = (
        UniqueConstraint("installer_profile_id", "city_id", name="uq_installer_service_area_city"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    installer_profile_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("installer_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    city_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("cities.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    installer: Mapped["InstallerProfile"] = relationship(
        "InstallerProfile", back_populates="service_areas", lazy="raise"
    )
