"""
Development aggregate service.

Orchestrates create / update / publish / approve / reject / delete against a
development and its unit types, enforcing ownership and the approval state
machine:

    draft -> pending -> approved | rejected
    rejected -> draft                  (on edit)
    draft | rejected -> approved       (trusted owner or platform admin)

Only this layer raises typed errors, and only at action boundaries; saving a
draft is as permissive as the normalizer allows.
"""
from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.canonical.v1.development import MediaItemV1
from app.canonical.v1.owner import Individual, Owner
from app.core.errors import ConflictError, Forbidden, NotFound, PreconditionFailed, ValidationError
from app.core.ids import gen_id
from app.models.approval_queue import ApprovalQueueEntry
from app.models.base import utcnow
from app.models.development import Development
from app.models.unit_type import UnitType
from app.services import approval_queue
from app.services.audit import audit
from app.services.auth import Actor
from app.services.location_resolver import ADDRESS_FIELDS, LocationResolver
from app.services.normalizer import normalize
from app.services.owners import is_trusted, require_owner_profile
from app.services.readiness import Profile, ReadinessInput, ReadinessResult, score
from app.services.unit_types import (
    commit_media_ids,
    delete_unit_types,
    load_unit_types,
    quantize_money,
    recompute_price_ranges,
    replace_unit_types,
)

log = logging.getLogger(__name__)


_MONEY_FIELDS = ("monthly_levy_from", "rates_from", "price_from")
_UPPER_BOUND_FIELDS = ("monthly_levy_to", "rates_to", "price_to")
# columns that are NOT NULL: an explicit blank keeps the stored value
_NON_NULLABLE = {"transaction_type", "show_house_address", "transfer_costs_included"}
_LIST_FIELDS = {"amenities", "highlights", "features"}
# replaced wholesale, handled separately from the field-level merge
_COLLECTIONS = {"unit_types", "media"}

EDITABLE_STATES = ("draft", "rejected")


def _stale_write_is_conflict(method):
    """Turn a lost version race (row updated since it was read) into a ConflictError."""
    @functools.wraps(method)
    async def wrapper(self, actor, development_id, *args, **kwargs):
        try:
            return await method(self, actor, development_id, *args, **kwargs)
        except StaleDataError as e:
            raise await self._stale_conflict(development_id) from e
    return wrapper


@dataclass(frozen=True)
class SaveResult:
    development: Development
    unit_types: list[UnitType]
    readiness: ReadinessResult
    errors: list[dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class PublishResult:
    development: Development
    unit_types: list[UnitType]
    entry: ApprovalQueueEntry
    readiness: ReadinessResult
    auto_approved: bool


@dataclass(frozen=True)
class DevelopmentView:
    development: Development
    unit_types: list[UnitType]


class DevelopmentService:
    def __init__(self, db: AsyncSession, *, location_resolver: LocationResolver | None = None):
        self.db = db
        self.location_resolver = location_resolver

    # --- helpers -------------------------------------------------------

    async def _load(self, development_id: str) -> Development:
        dev = (
            await self.db.execute(select(Development).where(Development.id == development_id))
        ).scalar_one_or_none()
        if dev is None:
            raise NotFound(f"Development '{development_id}' not found", detail={"developmentId": development_id})
        return dev

    @staticmethod
    def _authorize(actor: Actor, dev: Development) -> None:
        if actor.is_admin or actor.owns(dev.owner):
            return
        raise Forbidden(
            "Not allowed to act on this development",
            detail={"developmentId": dev.id, "ownerKind": dev.owner.kind},
        )

    @staticmethod
    def _require_admin(actor: Actor, action: str) -> None:
        if not actor.is_admin:
            raise Forbidden(f"Platform admin role required to {action}", detail={"requiredRole": "platform_admin"})

    @staticmethod
    def _require_state(dev: Development, allowed: tuple[str, ...], action: str) -> None:
        if dev.approval_status not in allowed:
            raise PreconditionFailed(
                f"Cannot {action} a development in '{dev.approval_status}' state",
                detail={"currentStatus": dev.approval_status, "requiredStatus": list(allowed)},
            )

    @staticmethod
    def _assign(dev: Development, payload: dict[str, Any]) -> None:
        for key, value in payload.items():
            if key in _COLLECTIONS:
                continue
            if key in _LIST_FIELDS:
                value = list(value or [])
            elif key in _NON_NULLABLE and value is None:
                continue
            elif key in _MONEY_FIELDS:
                value = quantize_money(value)
            elif key in _UPPER_BOUND_FIELDS:
                value = quantize_money(value) or None
            setattr(dev, key, value)

        if "media" in payload:
            dev.media = _single_hero(commit_media_ids(payload["media"] or []))

    async def _resolve_location(self, dev: Development, payload: dict[str, Any]) -> None:
        if self.location_resolver is None or not any(k in payload for k in ADDRESS_FIELDS):
            return
        fields = {k: getattr(dev, k) for k in ADDRESS_FIELDS}
        dev.location_id = await self.location_resolver.resolve(fields)

    def _refresh_readiness(self, dev: Development, units: list[UnitType]) -> ReadinessResult:
        result = score(ReadinessInput.from_development(dev, units), "draft")
        dev.readiness_score = result.score
        return result

    @staticmethod
    def _reopen_if_rejected(dev: Development) -> None:
        if dev.approval_status == "rejected":
            log.info("development %s: rejected -> draft (edited)", dev.id)
            dev.approval_status = "draft"

    def _check_version(self, dev: Development, expected_version: int | None) -> None:
        if expected_version is not None and expected_version != dev.version:
            log.error(
                "stale write on development %s: expected version %s, stored %s",
                dev.id, expected_version, dev.version,
            )
            raise ConflictError(
                "Development was modified by another request",
                detail={"expectedVersion": expected_version, "currentVersion": dev.version},
            )

    async def _stale_conflict(self, development_id: str) -> ConflictError:
        await self.db.rollback()
        current = (
            await self.db.execute(select(Development.version).where(Development.id == development_id))
        ).scalar_one_or_none()
        log.error("concurrent write on development %s lost (stored version %s)", development_id, current)
        return ConflictError(
            "Development was modified by another request",
            detail={"developmentId": development_id, "currentVersion": current},
        )

    # --- commands ------------------------------------------------------

    async def create(self, actor: Actor, owner: Owner, raw: dict[str, Any]) -> SaveResult:
        if not actor.is_admin and not actor.owns(owner):
            raise Forbidden(
                "Developers may only create developments for their own profile",
                detail={"ownerKind": owner.kind, "ownerId": owner.id},
            )
        await require_owner_profile(self.db, owner)

        result = normalize(raw)
        payload = result.payload

        dev = Development(
            id=gen_id("dev"),
            approval_status="draft",
            is_published=False,
            transaction_type="for_sale",
            amenities=[],
            highlights=[],
            features=[],
            media=[],
            created_by=actor.api_key_id,
            updated_by=actor.api_key_id,
        )
        dev.owner = owner
        self._assign(dev, payload)
        await self._resolve_location(dev, payload)
        self.db.add(dev)
        await self.db.flush()

        if "unit_types" in payload:
            units = await replace_unit_types(self.db, dev, payload["unit_types"], actor_id=actor.api_key_id)
        else:
            units = []
            recompute_price_ranges(dev, units)

        readiness = self._refresh_readiness(dev, units)
        await audit(
            self.db,
            actor=actor,
            owner_id=owner.id,
            action="development.create",
            target_type="development",
            target_id=dev.id,
            detail={"readiness": readiness.score, "normalizationErrors": len(result.errors)},
        )
        await self.db.flush()
        log.info("development %s created for %s %s (readiness %s)", dev.id, owner.kind, owner.id, readiness.score)
        return SaveResult(dev, units, readiness, result.errors)

    @_stale_write_is_conflict
    async def update(
        self,
        actor: Actor,
        development_id: str,
        raw: dict[str, Any],
        expected_version: int | None = None,
    ) -> SaveResult:
        dev = await self._load(development_id)
        self._authorize(actor, dev)
        self._check_version(dev, expected_version)

        result = normalize(raw)
        payload = result.payload

        self._assign(dev, payload)
        await self._resolve_location(dev, payload)

        if "unit_types" in payload:
            units = await replace_unit_types(self.db, dev, payload["unit_types"], actor_id=actor.api_key_id)
        else:
            units = await load_unit_types(self.db, dev.id)
            recompute_price_ranges(dev, units)

        self._reopen_if_rejected(dev)
        dev.updated_by = actor.api_key_id
        readiness = self._refresh_readiness(dev, units)

        await audit(
            self.db,
            actor=actor,
            owner_id=dev.owner.id,
            action="development.update",
            target_type="development",
            target_id=dev.id,
            detail={"fields": sorted(payload), "readiness": readiness.score},
        )
        await self.db.flush()
        return SaveResult(dev, units, readiness, result.errors)

    @_stale_write_is_conflict
    async def publish(self, actor: Actor, development_id: str) -> PublishResult:
        dev = await self._load(development_id)
        self._authorize(actor, dev)
        self._require_state(dev, EDITABLE_STATES, "publish")

        units = await load_unit_types(self.db, dev.id)
        readiness = score(ReadinessInput.from_development(dev, units), "publish")
        if not readiness.can_publish:
            sections = ", ".join(readiness.missing) or "required checks"
            raise PreconditionFailed(
                f"Readiness {readiness.score}% (need {readiness.threshold}%), missing: {sections}",
                detail=readiness.to_dict(),
            )

        fast_track = actor.is_admin or await is_trusted(self.db, dev.owner)
        entry = await approval_queue.append_entry(
            self.db,
            development_id=dev.id,
            submitted_by=actor.api_key_id,
            auto_approve=fast_track,
        )

        previous = dev.approval_status
        if fast_track:
            _mark_approved(dev)
        else:
            dev.approval_status = "pending"
            dev.is_published = False
        dev.rejection_reason = None
        dev.updated_by = actor.api_key_id

        await audit(
            self.db,
            actor=actor,
            owner_id=dev.owner.id,
            action="development.publish",
            target_type="development",
            target_id=dev.id,
            detail={
                "from": previous,
                "to": dev.approval_status,
                "submissionType": entry.submission_type,
                "autoApproved": fast_track,
                "readiness": readiness.score,
            },
        )
        await self.db.flush()
        log.info("development %s: %s -> %s (%s submission)", dev.id, previous, dev.approval_status, entry.submission_type)
        return PublishResult(dev, units, entry, readiness, fast_track)

    @_stale_write_is_conflict
    async def approve(
        self,
        actor: Actor,
        development_id: str,
        compliance_checks: dict | None = None,
        notes: str | None = None,
    ) -> DevelopmentView:
        self._require_admin(actor, "approve")
        dev = await self._load(development_id)
        self._require_state(dev, ("pending",), "approve")

        entry = await approval_queue.latest_pending_entry(self.db, dev.id)
        if entry is not None:
            approval_queue.resolve_entry(
                entry,
                status="approved",
                reviewer_id=actor.api_key_id,
                review_notes=notes,
                compliance_checks=compliance_checks,
            )
        _mark_approved(dev)
        dev.updated_by = actor.api_key_id

        await audit(
            self.db,
            actor=actor,
            owner_id=dev.owner.id,
            action="development.approve",
            target_type="development",
            target_id=dev.id,
            detail={"entryId": entry.id if entry else None, "notes": notes},
        )
        await self.db.flush()
        log.info("development %s: pending -> approved by %s", dev.id, actor.api_key_id)
        return DevelopmentView(dev, await load_unit_types(self.db, dev.id))

    @_stale_write_is_conflict
    async def reject(self, actor: Actor, development_id: str, reason: str | None) -> DevelopmentView:
        self._require_admin(actor, "reject")
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError(
                "A rejection reason is required",
                detail={"errors": [{"field": "reason", "message": "required", "type": "missing"}]},
            )
        dev = await self._load(development_id)
        self._require_state(dev, ("pending",), "reject")

        entry = await approval_queue.latest_pending_entry(self.db, dev.id)
        if entry is not None:
            approval_queue.resolve_entry(entry, status="rejected", reviewer_id=actor.api_key_id, reason=reason)
        dev.approval_status = "rejected"
        dev.is_published = False
        dev.rejection_reason = reason
        dev.updated_by = actor.api_key_id

        await audit(
            self.db,
            actor=actor,
            owner_id=dev.owner.id,
            action="development.reject",
            target_type="development",
            target_id=dev.id,
            detail={"entryId": entry.id if entry else None, "reason": reason},
        )
        await self.db.flush()
        log.info("development %s: pending -> rejected by %s", dev.id, actor.api_key_id)
        return DevelopmentView(dev, await load_unit_types(self.db, dev.id))

    @_stale_write_is_conflict
    async def delete(self, actor: Actor, development_id: str) -> None:
        dev = await self._load(development_id)
        self._authorize(actor, dev)

        owner_id = dev.owner.id
        await delete_unit_types(self.db, dev.id)
        await approval_queue.delete_entries(self.db, dev.id)
        await self.db.delete(dev)

        await audit(
            self.db,
            actor=actor,
            owner_id=owner_id,
            action="development.delete",
            target_type="development",
            target_id=development_id,
        )
        await self.db.flush()
        log.info("development %s deleted", development_id)

    # --- reads ---------------------------------------------------------

    async def get(self, actor: Actor, development_id: str) -> DevelopmentView:
        dev = await self._load(development_id)
        self._authorize(actor, dev)
        return DevelopmentView(dev, await load_unit_types(self.db, dev.id))

    async def list_for_owner(self, actor: Actor, owner: Owner | None = None) -> list[Development]:
        """Developers always see their own; admins see everything, or one owner's when given."""
        if not actor.is_admin:
            if actor.owner is None:
                return []
            owner = actor.owner

        stmt = select(Development).order_by(Development.updated_at.desc())
        if owner is not None:
            column = Development.developer_id if isinstance(owner, Individual) else Development.brand_profile_id
            stmt = stmt.where(column == owner.id)
        return list((await self.db.execute(stmt)).scalars().all())

    async def readiness(self, actor: Actor, development_id: str, profile: Profile = "publish") -> ReadinessResult:
        view = await self.get(actor, development_id)
        return score(ReadinessInput.from_development(view.development, view.unit_types), profile)

    # --- media (commit phase of the upload protocol) -------------------

    async def _save_media(self, actor: Actor, dev: Development, media: list[dict[str, Any]], action: str, detail: dict) -> SaveResult:
        dev.media = [dict(m, order=i) for i, m in enumerate(media)]
        self._reopen_if_rejected(dev)
        dev.updated_by = actor.api_key_id
        units = await load_unit_types(self.db, dev.id)
        readiness = self._refresh_readiness(dev, units)
        await audit(
            self.db,
            actor=actor,
            owner_id=dev.owner.id,
            action=action,
            target_type="development",
            target_id=dev.id,
            detail=detail,
        )
        await self.db.flush()
        return SaveResult(dev, units, readiness)

    @_stale_write_is_conflict
    async def commit_media(self, actor: Actor, development_id: str, item: dict[str, Any]) -> SaveResult:
        """Append a stored-object reference returned by the media store."""
        try:
            media = MediaItemV1.model_validate(item).model_dump()
        except PydanticValidationError as e:
            raise ValidationError(
                "Invalid media reference",
                detail={"errors": [
                    {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"], "type": err["type"]}
                    for err in e.errors(include_url=False)
                ]},
            ) from e

        dev = await self._load(development_id)
        self._authorize(actor, dev)

        media["id"] = media.get("id") or gen_id("med")
        if any(m.get("id") == media["id"] for m in dev.media or []):
            raise ConflictError(f"Media '{media['id']}' already committed", detail={"mediaId": media["id"]})

        items = [dict(m) for m in dev.media or []]
        if media["category"] == "hero":
            items = [_demote(m) for m in items]
        items.append(media)
        return await self._save_media(actor, dev, items, "development.media.commit", {"mediaId": media["id"]})

    @_stale_write_is_conflict
    async def set_hero_media(self, actor: Actor, development_id: str, media_id: str) -> SaveResult:
        dev = await self._load(development_id)
        self._authorize(actor, dev)
        items = [dict(m) for m in dev.media or []]
        target = next((m for m in items if m.get("id") == media_id), None)
        if target is None:
            raise NotFound(f"Media '{media_id}' not found", detail={"mediaId": media_id})
        if target.get("type", "image") != "image":
            raise ValidationError(
                "Only images can be the hero",
                detail={"errors": [{"field": "mediaId", "message": "not an image", "type": "media_type"}]},
            )

        items = [_demote(m) if m is not target else dict(m, category="hero") for m in items]
        return await self._save_media(actor, dev, items, "development.media.hero", {"mediaId": media_id})

    @_stale_write_is_conflict
    async def remove_media(self, actor: Actor, development_id: str, media_id: str) -> SaveResult:
        dev = await self._load(development_id)
        self._authorize(actor, dev)
        items = [dict(m) for m in dev.media or []]
        remaining = [m for m in items if m.get("id") != media_id]
        if len(remaining) == len(items):
            raise NotFound(f"Media '{media_id}' not found", detail={"mediaId": media_id})
        return await self._save_media(actor, dev, remaining, "development.media.remove", {"mediaId": media_id})


def _mark_approved(dev: Development) -> None:
    dev.approval_status = "approved"
    dev.is_published = True
    dev.published_at = utcnow()


def _demote(item: dict[str, Any]) -> dict[str, Any]:
    if item.get("category") == "hero":
        return dict(item, category="gallery")
    return dict(item)


def _single_hero(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    # the first hero wins; any further hero images become gallery images
    seen = False
    out = []
    for item in items:
        if item.get("category") == "hero":
            if seen:
                item = _demote(item)
            seen = True
        out.append(item)
    return out

