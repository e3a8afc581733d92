from sqlalchemy import func, select

import pytest

from app.canonical.v1.owner import Individual
from app.core.errors import ConflictError, Forbidden, NotFound, PreconditionFailed, ValidationError
from app.models.approval_queue import ApprovalQueueEntry
from app.models.audit_log import AuditLog
from app.models.development import Development
from app.services import approval_queue
from app.services.developments import DevelopmentService


SUNSET = {
    "name": "Sunset Heights",
    "city": "Cape Town",
    "province": "Western Cape",
    "developmentType": "residential",
    "unitTypes": [{"name": "2 Bed", "bedrooms": 2, "bathrooms": 1, "basePriceFrom": 1500000}],
    "media": [],
}

READY = {
    "amenities": ["Pool", "Gym", "Clubhouse"],
    "media": [{"url": "https://cdn.example.com/hero.jpg", "category": "hero"}],
}


async def _count(db_session, model) -> int:
    return (await db_session.execute(select(func.count()).select_from(model))).scalar_one()


async def _ready_draft(svc, actor):
    created = await svc.create(actor, actor.owner, dict(SUNSET))
    await svc.update(actor, created.development.id, READY)
    return created.development


async def test_create_saves_a_draft_with_derived_prices(db_session, developer):
    svc = DevelopmentService(db_session)
    result = await svc.create(developer, developer.owner, dict(SUNSET))

    dev = result.development
    assert dev.approval_status == "draft"
    assert dev.is_published is False
    assert dev.owner == developer.owner
    assert str(dev.price_from) == "1500000.00"
    assert [u.name for u in result.unit_types] == ["2 Bed"]
    assert result.errors == []
    assert 0 < result.readiness.score < 90
    assert dev.readiness_score == result.readiness.score


async def test_create_keeps_valid_fields_and_reports_invalid_ones(db_session, developer):
    svc = DevelopmentService(db_session)
    result = await svc.create(developer, developer.owner, {"name": "Sunset Heights", "developmentType": "castle"})
    assert result.development.name == "Sunset Heights"
    assert result.development.development_type is None
    assert [e["field"] for e in result.errors] == ["developmentType"]


async def test_create_for_someone_else_is_forbidden_before_any_write(db_session, developer, other_developer):
    svc = DevelopmentService(db_session)
    with pytest.raises(Forbidden):
        await svc.create(developer, other_developer.owner, dict(SUNSET))
    assert await _count(db_session, Development) == 0


async def test_create_for_unknown_owner_is_not_found(db_session, platform_admin):
    svc = DevelopmentService(db_session)
    with pytest.raises(NotFound):
        await svc.create(platform_admin, Individual("own_missing"), dict(SUNSET))
    assert await _count(db_session, Development) == 0


async def test_admin_creates_for_brand_profile(db_session, platform_admin, brand_profile):
    svc = DevelopmentService(db_session)
    result = await svc.create(platform_admin, brand_profile, dict(SUNSET))
    assert result.development.brand_profile_id == brand_profile.id
    assert result.development.developer_id is None


async def test_publish_not_ready_reports_missing_sections(db_session, developer):
    svc = DevelopmentService(db_session)
    created = await svc.create(developer, developer.owner, dict(SUNSET))

    with pytest.raises(PreconditionFailed) as exc:
        await svc.publish(developer, created.development.id)

    detail = exc.value.detail
    assert set(detail["missing"]) == {"media", "amenities"}
    assert detail["canPublish"] is False
    assert created.development.approval_status == "draft"
    assert await _count(db_session, ApprovalQueueEntry) == 0


async def test_publish_by_regular_owner_goes_to_review(db_session, developer):
    svc = DevelopmentService(db_session)
    dev = await _ready_draft(svc, developer)

    result = await svc.publish(developer, dev.id)
    assert result.auto_approved is False
    assert result.readiness.score >= 90
    assert dev.approval_status == "pending"
    assert dev.is_published is False
    assert result.entry.status == "pending"
    assert result.entry.submission_type == "new"


async def test_publish_by_trusted_owner_is_fast_tracked(db_session, trusted_developer):
    svc = DevelopmentService(db_session)
    dev = await _ready_draft(svc, trusted_developer)

    result = await svc.publish(trusted_developer, dev.id)
    assert result.auto_approved is True
    assert dev.approval_status == "approved"
    assert dev.is_published is True
    assert dev.published_at is not None
    assert result.entry.status == "approved"
    assert result.entry.auto_approved is True


async def test_state_machine_guards(db_session, developer, platform_admin):
    svc = DevelopmentService(db_session)
    dev = await _ready_draft(svc, developer)

    with pytest.raises(PreconditionFailed):
        await svc.approve(platform_admin, dev.id)

    await svc.publish(developer, dev.id)
    with pytest.raises(PreconditionFailed) as exc:
        await svc.publish(developer, dev.id)
    assert exc.value.detail["currentStatus"] == "pending"

    await svc.approve(platform_admin, dev.id, {"zoning": True}, "looks good")
    assert dev.approval_status == "approved"
    assert dev.is_published is True

    with pytest.raises(PreconditionFailed):
        await svc.publish(developer, dev.id)
    with pytest.raises(PreconditionFailed):
        await svc.reject(platform_admin, dev.id, "too late")


async def test_only_admins_review(db_session, developer):
    svc = DevelopmentService(db_session)
    dev = await _ready_draft(svc, developer)
    await svc.publish(developer, dev.id)

    with pytest.raises(Forbidden):
        await svc.approve(developer, dev.id)
    with pytest.raises(Forbidden):
        await svc.reject(developer, dev.id, "self review")


async def test_reject_needs_a_reason_and_edit_reopens(db_session, developer, platform_admin):
    svc = DevelopmentService(db_session)
    dev = await _ready_draft(svc, developer)
    await svc.publish(developer, dev.id)

    with pytest.raises(ValidationError):
        await svc.reject(platform_admin, dev.id, "   ")

    await svc.reject(platform_admin, dev.id, "Hero image is a stock photo")
    assert dev.approval_status == "rejected"
    assert dev.rejection_reason == "Hero image is a stock photo"

    await svc.update(developer, dev.id, {"tagline": "Real photos now"})
    assert dev.approval_status == "draft"

    result = await svc.publish(developer, dev.id)
    assert result.entry.submission_type == "update"
    assert dev.rejection_reason is None


async def test_rejected_can_be_published_again_directly(db_session, developer, platform_admin):
    svc = DevelopmentService(db_session)
    dev = await _ready_draft(svc, developer)
    await svc.publish(developer, dev.id)
    await svc.reject(platform_admin, dev.id, "fix pricing")

    result = await svc.publish(developer, dev.id)
    assert dev.approval_status == "pending"
    entries = await approval_queue.list_for_development(db_session, dev.id)
    assert [e.status for e in entries] == ["rejected", "pending"]
    assert result.entry.submission_type == "update"


async def test_admin_publish_is_fast_tracked(db_session, developer, platform_admin):
    svc = DevelopmentService(db_session)
    dev = await _ready_draft(svc, developer)
    result = await svc.publish(platform_admin, dev.id)
    assert result.auto_approved is True
    assert dev.is_published is True


async def test_other_developers_cannot_touch_a_development(db_session, developer, other_developer):
    svc = DevelopmentService(db_session)
    created = await svc.create(developer, developer.owner, dict(SUNSET))
    dev_id = created.development.id

    with pytest.raises(Forbidden):
        await svc.get(other_developer, dev_id)
    with pytest.raises(Forbidden):
        await svc.update(other_developer, dev_id, {"name": "Mine now"})
    with pytest.raises(Forbidden):
        await svc.delete(other_developer, dev_id)
    assert created.development.name == "Sunset Heights"


async def test_update_merges_fields_and_keeps_units_when_absent(db_session, developer):
    svc = DevelopmentService(db_session)
    created = await svc.create(developer, developer.owner, dict(SUNSET))

    result = await svc.update(developer, created.development.id, {"tagline": "Sea views", "transactionType": ""})
    assert result.development.tagline == "Sea views"
    assert result.development.name == "Sunset Heights"
    assert result.development.transaction_type == "for_sale"
    assert [u.name for u in result.unit_types] == ["2 Bed"]


async def test_update_with_stale_version_conflicts(db_session, developer):
    svc = DevelopmentService(db_session)
    created = await svc.create(developer, developer.owner, dict(SUNSET))
    dev = created.development
    seen = dev.version

    await svc.update(developer, dev.id, {"tagline": "first"}, expected_version=seen)
    assert dev.version > seen

    with pytest.raises(ConflictError) as exc:
        await svc.update(developer, dev.id, {"tagline": "second"}, expected_version=seen)
    assert exc.value.detail["currentVersion"] == dev.version
    assert dev.tagline == "first"


async def test_delete_removes_units_and_submissions(db_session, developer):
    svc = DevelopmentService(db_session)
    dev = await _ready_draft(svc, developer)
    await svc.publish(developer, dev.id)

    await svc.delete(developer, dev.id)
    assert await _count(db_session, Development) == 0
    assert await _count(db_session, ApprovalQueueEntry) == 0
    with pytest.raises(NotFound):
        await svc.get(developer, dev.id)


async def test_list_for_owner_scopes_developers(db_session, developer, other_developer, platform_admin):
    svc = DevelopmentService(db_session)
    await svc.create(developer, developer.owner, {"name": "Mine"})
    await svc.create(other_developer, other_developer.owner, {"name": "Theirs"})

    assert [d.name for d in await svc.list_for_owner(developer)] == ["Mine"]
    # a developer's filter never widens their view
    assert [d.name for d in await svc.list_for_owner(developer, other_developer.owner)] == ["Mine"]
    assert len(await svc.list_for_owner(platform_admin)) == 2
    assert [d.name for d in await svc.list_for_owner(platform_admin, other_developer.owner)] == ["Theirs"]


async def test_media_commit_and_hero_swap(db_session, developer):
    svc = DevelopmentService(db_session)
    created = await svc.create(developer, developer.owner, dict(SUNSET))
    dev_id = created.development.id

    await svc.commit_media(developer, dev_id, {"url": "https://cdn.example.com/a.jpg", "category": "hero"})
    result = await svc.commit_media(developer, dev_id, {"id": "med_b", "url": "https://cdn.example.com/b.jpg"})
    first_id = result.development.media[0]["id"]

    result = await svc.set_hero_media(developer, dev_id, "med_b")
    categories = {m["id"]: m["category"] for m in result.development.media}
    assert categories == {first_id: "gallery", "med_b": "hero"}

    with pytest.raises(ConflictError):
        await svc.commit_media(developer, dev_id, {"id": "med_b", "url": "https://cdn.example.com/c.jpg"})
    with pytest.raises(ValidationError):
        await svc.commit_media(developer, dev_id, {"url": "not a url"})
    with pytest.raises(NotFound):
        await svc.set_hero_media(developer, dev_id, "med_missing")

    result = await svc.remove_media(developer, dev_id, first_id)
    assert [(m["id"], m["order"]) for m in result.development.media] == [("med_b", 0)]


async def test_only_one_hero_survives_a_wizard_save(db_session, developer):
    svc = DevelopmentService(db_session)
    result = await svc.create(developer, developer.owner, {
        "name": "Sunset Heights",
        "media": [
            {"url": "https://cdn.example.com/a.jpg", "category": "hero"},
            {"url": "https://cdn.example.com/b.jpg", "category": "hero"},
        ],
    })
    assert [m["category"] for m in result.development.media] == ["hero", "gallery"]


async def test_actions_are_audited(db_session, developer):
    svc = DevelopmentService(db_session)
    dev = await _ready_draft(svc, developer)
    await svc.publish(developer, dev.id)

    actions = (await db_session.execute(select(AuditLog.action))).scalars().all()
    assert sorted(actions) == ["development.create", "development.publish", "development.update"]


async def test_queue_analytics(db_session, developer, trusted_developer, platform_admin):
    svc = DevelopmentService(db_session)
    reviewed = await _ready_draft(svc, developer)
    waiting = await _ready_draft(svc, developer)
    fast = await _ready_draft(svc, trusted_developer)

    await svc.publish(developer, reviewed.id)
    await svc.reject(platform_admin, reviewed.id, "missing floorplans")
    await svc.publish(developer, waiting.id)
    await svc.publish(trusted_developer, fast.id)

    stats = await approval_queue.queue_analytics(db_session)
    assert stats.pending == 1
    assert stats.rejected == 1
    assert stats.auto_approved == 1
    assert stats.processed == 2
    assert stats.approval_rate == 0.5
    assert stats.auto_approval_rate == 1.0
    assert stats.avg_review_seconds is not None

    pending = await approval_queue.list_pending(db_session)
    assert [e.development_id for e in pending] == [waiting.id]


async def test_oversized_price_is_reported_and_the_draft_still_saves(db_session, developer):
    svc = DevelopmentService(db_session)
    result = await svc.create(developer, developer.owner, {
        "name": "Big",
        "unitTypes": [{"name": "Penthouse", "basePriceFrom": "1e30"}],
    })
    assert [e["field"] for e in result.errors] == ["unitTypes.0.basePriceFrom"]
    assert result.development.approval_status == "draft"
    assert [u.name for u in result.unit_types] == ["Penthouse"]
    assert result.unit_types[0].base_price_from is None
    assert result.development.price_from is None
