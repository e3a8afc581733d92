from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func
from sqlalchemy.types import DateTime

from app.core.ids import gen_id
from app.models.base import Base, JSONType, utcnow


class ApprovalQueueEntry(Base):
    __tablename__ = "development_approval_queue"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("apq"))
    development_id: Mapped[str] = mapped_column(
        String, ForeignKey("developments.id", ondelete="CASCADE"), nullable=False, index=True
    )

    submission_type: Mapped[str] = mapped_column(String(20), nullable=False)  # new/update
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending", index=True)  # pending/approved/rejected

    # approved on submission via the trusted/admin fast-track
    auto_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    submitted_by: Mapped[str | None] = mapped_column(String, nullable=True)
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    # Resolution (the only fields written after insert)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewer_id: Mapped[str | None] = mapped_column(String, nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    review_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    compliance_checks: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
