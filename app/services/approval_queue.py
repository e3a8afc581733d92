from __future__ import annotations

from dataclasses import dataclass
from sqlalchemy import and_, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.approval_queue import ApprovalQueueEntry
from app.models.base import utcnow


@dataclass(frozen=True)
class QueueAnalytics:
    pending: int
    processed: int
    approved: int
    auto_approved: int
    manual_approved: int
    rejected: int
    approval_rate: float
    auto_approval_rate: float
    avg_review_seconds: float | None


async def has_prior_submission(db: AsyncSession, development_id: str) -> bool:
    res = await db.execute(
        select(func.count())
        .select_from(ApprovalQueueEntry)
        .where(ApprovalQueueEntry.development_id == development_id)
    )
    return (res.scalar_one() or 0) > 0


async def append_entry(
    db: AsyncSession,
    *,
    development_id: str,
    submitted_by: str | None,
    auto_approve: bool = False,
) -> ApprovalQueueEntry:
    """
    Record a publish submission. Fast-tracked submissions are written already
    resolved (`approved`, `auto_approved`), everything else waits as `pending`.
    """
    submission_type = "update" if await has_prior_submission(db, development_id) else "new"
    now = utcnow()
    entry = ApprovalQueueEntry(
        development_id=development_id,
        submission_type=submission_type,
        status="approved" if auto_approve else "pending",
        auto_approved=auto_approve,
        submitted_by=submitted_by,
        submitted_at=now,
        resolved_at=now if auto_approve else None,
        reviewer_id=submitted_by if auto_approve else None,
    )
    db.add(entry)
    await db.flush()
    return entry


async def latest_pending_entry(db: AsyncSession, development_id: str) -> ApprovalQueueEntry | None:
    res = await db.execute(
        select(ApprovalQueueEntry)
        .where(
            ApprovalQueueEntry.development_id == development_id,
            ApprovalQueueEntry.status == "pending",
        )
        .order_by(ApprovalQueueEntry.submitted_at.desc())
        .limit(1)
    )
    return res.scalars().first()


def resolve_entry(
    entry: ApprovalQueueEntry,
    *,
    status: str,
    reviewer_id: str | None,
    reason: str | None = None,
    review_notes: str | None = None,
    compliance_checks: dict | None = None,
) -> None:
    # only the resolution fields are ever written after insert
    entry.status = status
    entry.resolved_at = utcnow()
    entry.reviewer_id = reviewer_id
    entry.reason = reason
    entry.review_notes = review_notes
    entry.compliance_checks = compliance_checks


async def list_pending(db: AsyncSession, *, limit: int = 50, offset: int = 0) -> list[ApprovalQueueEntry]:
    res = await db.execute(
        select(ApprovalQueueEntry)
        .where(ApprovalQueueEntry.status == "pending")
        .order_by(ApprovalQueueEntry.submitted_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(res.scalars().all())


async def list_for_development(db: AsyncSession, development_id: str) -> list[ApprovalQueueEntry]:
    res = await db.execute(
        select(ApprovalQueueEntry)
        .where(ApprovalQueueEntry.development_id == development_id)
        .order_by(ApprovalQueueEntry.submitted_at)
    )
    return list(res.scalars().all())


async def delete_entries(db: AsyncSession, development_id: str) -> None:
    await db.execute(delete(ApprovalQueueEntry).where(ApprovalQueueEntry.development_id == development_id))


async def queue_analytics(db: AsyncSession) -> QueueAnalytics:
    counts = await db.execute(
        select(ApprovalQueueEntry.status, ApprovalQueueEntry.auto_approved, func.count())
        .group_by(ApprovalQueueEntry.status, ApprovalQueueEntry.auto_approved)
    )
    pending = rejected = auto = manual = 0
    for status, auto_approved, n in counts.all():
        if status == "pending":
            pending += n
        elif status == "rejected":
            rejected += n
        elif status == "approved" and auto_approved:
            auto += n
        elif status == "approved":
            manual += n

    # manual review time; computed in Python so it works on any backend
    reviewed = await db.execute(
        select(ApprovalQueueEntry.submitted_at, ApprovalQueueEntry.resolved_at).where(
            and_(
                ApprovalQueueEntry.status.in_(("approved", "rejected")),
                ApprovalQueueEntry.auto_approved.is_(False),
                ApprovalQueueEntry.resolved_at.is_not(None),
            )
        )
    )
    durations = [
        (resolved - submitted).total_seconds()
        for submitted, resolved in reviewed.all()
        if submitted is not None and resolved is not None
    ]

    approved = auto + manual
    processed = approved + rejected
    return QueueAnalytics(
        pending=pending,
        processed=processed,
        approved=approved,
        auto_approved=auto,
        manual_approved=manual,
        rejected=rejected,
        approval_rate=round(approved / processed, 4) if processed else 0.0,
        auto_approval_rate=round(auto / approved, 4) if approved else 0.0,
        avg_review_seconds=round(sum(durations) / len(durations), 1) if durations else None,
    )
