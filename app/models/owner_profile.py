from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.ids import gen_id
from app.models.base import Base, AuditMixin


class OwnerProfile(AuditMixin, Base):
    __tablename__ = "owner_profiles"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("own"))

    # "individual" (developer party) | "platform" (brand profile curated by admins)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    # Trusted owners skip the manual review queue on publish
    is_trusted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
