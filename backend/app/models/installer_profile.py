import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.models.types import GUID


class InstallerProfile(Base):
    __tablename__ = "installer_profiles"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    business_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    years_experience: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")
    # Gates public visibility: set once the owner saves profile details.
    profile_completed: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    # Optimistic-concurrency counter, bumped by every profile update. A writer
    # whose row changed underneath it gets StaleDataError at flush.
    version_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Average rating and review count are never stored here: they are
    # computed from live review rows (see app.services.review_stats).

    __mapper_args__ = {"version_id_col": version_id}

    user: Mapped["User"] = relationship("User", back_populates="installer_profile", lazy="raise")
    services: Mapped[list["InstallerService"]] = relationship(
        "InstallerService", back_populates="installer", lazy="raise", passive_deletes=True
    )
    service_areas: Mapped[list["InstallerServiceArea"]] = relationship(
        "InstallerServiceArea", back_populates="installer", lazy="raise", passive_deletes=True
    )
