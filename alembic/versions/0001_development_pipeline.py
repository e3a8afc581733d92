from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_development_pipeline"
down_revision = None
branch_labels = None
depends_on = None


def _jsonb(default: str):
    return dict(
        type_=postgresql.JSONB(astext_type=sa.Text()),
        server_default=sa.text(f"'{default}'::jsonb"),
    )


def _audit_columns():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("created_by", sa.String(), nullable=True),
        sa.Column("updated_by", sa.String(), nullable=True),
    ]


def upgrade():
    op.create_table(
        "owner_profiles",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("is_trusted", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_audit_columns(),
    )

    op.create_table(
        "api_keys",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("role", sa.String(length=50), nullable=False),
        sa.Column("owner_id", sa.String(), sa.ForeignKey("owner_profiles.id"), nullable=True),
        sa.Column("key_prefix", sa.String(length=16), nullable=False),
        sa.Column("key_hash", sa.Text(), nullable=False, unique=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("rotated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_api_keys_key_prefix", "api_keys", ["key_prefix"])

    op.create_table(
        "developments",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("developer_id", sa.String(), sa.ForeignKey("owner_profiles.id"), nullable=True),
        sa.Column("brand_profile_id", sa.String(), sa.ForeignKey("owner_profiles.id"), nullable=True),

        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("tagline", sa.String(length=255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("development_type", sa.String(length=30), nullable=True),
        sa.Column("transaction_type", sa.String(length=20), nullable=False, server_default="for_sale"),
        sa.Column("marketing_status", sa.String(length=30), nullable=True),
        sa.Column("construction_phase", sa.String(length=30), nullable=True),
        sa.Column("nature", sa.String(length=30), nullable=True),
        sa.Column("ownership_type", sa.String(length=30), nullable=True),
        sa.Column("completion_date", sa.Date(), nullable=True),

        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("suburb", sa.String(length=100), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=True),
        sa.Column("province", sa.String(length=100), nullable=True),
        sa.Column("postal_code", sa.String(length=20), nullable=True),
        sa.Column("latitude", sa.Numeric(10, 7), nullable=True),
        sa.Column("longitude", sa.Numeric(10, 7), nullable=True),
        sa.Column("location_id", sa.String(length=80), nullable=True),
        sa.Column("show_house_address", sa.Boolean(), nullable=False, server_default=sa.true()),

        sa.Column("amenities", nullable=False, **_jsonb("[]")),
        sa.Column("highlights", nullable=False, **_jsonb("[]")),
        sa.Column("features", nullable=False, **_jsonb("[]")),
        sa.Column("media", nullable=False, **_jsonb("[]")),

        sa.Column("monthly_levy_from", sa.Numeric(15, 2), nullable=True),
        sa.Column("monthly_levy_to", sa.Numeric(15, 2), nullable=True),
        sa.Column("rates_from", sa.Numeric(15, 2), nullable=True),
        sa.Column("rates_to", sa.Numeric(15, 2), nullable=True),
        sa.Column("transfer_costs_included", sa.Boolean(), nullable=False, server_default=sa.false()),

        sa.Column("price_from", sa.Numeric(15, 2), nullable=True),
        sa.Column("price_to", sa.Numeric(15, 2), nullable=True),
        sa.Column("monthly_rent_from", sa.Numeric(15, 2), nullable=True),
        sa.Column("monthly_rent_to", sa.Numeric(15, 2), nullable=True),
        sa.Column("starting_bid_from", sa.Numeric(15, 2), nullable=True),
        sa.Column("reserve_price_from", sa.Numeric(15, 2), nullable=True),
        sa.Column("auction_start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("auction_end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_units", sa.Integer(), nullable=True),
        sa.Column("available_units", sa.Integer(), nullable=True),

        sa.Column("approval_status", sa.String(length=20), nullable=False, server_default="draft"),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("readiness_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),

        *_audit_columns(),

        sa.CheckConstraint(
            "(developer_id IS NULL) <> (brand_profile_id IS NULL)",
            name="ck_development_single_owner",
        ),
        sa.CheckConstraint(
            "(is_published AND approval_status = 'approved') OR (NOT is_published AND approval_status <> 'approved')",
            name="ck_development_published_iff_approved",
        ),
    )
    op.create_index("ix_developments_developer_id", "developments", ["developer_id"])
    op.create_index("ix_developments_brand_profile_id", "developments", ["brand_profile_id"])
    op.create_index("ix_developments_approval_status", "developments", ["approval_status"])

    op.create_table(
        "unit_types",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("development_id", sa.String(), sa.ForeignKey("developments.id", ondelete="CASCADE"), nullable=False),

        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("label", sa.String(length=255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("bedrooms", sa.Integer(), nullable=True),
        sa.Column("bathrooms", sa.Numeric(3, 1), nullable=True),
        sa.Column("unit_size", sa.Integer(), nullable=True),
        sa.Column("yard_size", sa.Integer(), nullable=True),

        sa.Column("base_price_from", sa.Numeric(15, 2), nullable=True),
        sa.Column("base_price_to", sa.Numeric(15, 2), nullable=True),
        sa.Column("monthly_rent_from", sa.Numeric(15, 2), nullable=True),
        sa.Column("monthly_rent_to", sa.Numeric(15, 2), nullable=True),
        sa.Column("starting_bid", sa.Numeric(15, 2), nullable=True),
        sa.Column("reserve_price", sa.Numeric(15, 2), nullable=True),
        sa.Column("auction_start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("auction_end_date", sa.DateTime(timezone=True), nullable=True),

        sa.Column("parking_kind", sa.String(length=20), nullable=False, server_default="none"),
        sa.Column("parking_bays", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("garage_layout", sa.String(length=20), nullable=True),
        sa.Column("legacy_parking", sa.String(length=30), nullable=False, server_default="none"),
        sa.Column("legacy_parking_type", sa.String(length=20), nullable=True),

        sa.Column("features", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("finishes", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("media", nullable=False, **_jsonb("[]")),

        sa.Column("total_units", sa.Integer(), nullable=True),
        sa.Column("available_units", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),

        *_audit_columns(),
    )
    op.create_index("ix_unit_types_development_id", "unit_types", ["development_id"])

    op.create_table(
        "development_approval_queue",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("development_id", sa.String(), sa.ForeignKey("developments.id", ondelete="CASCADE"), nullable=False),
        sa.Column("submission_type", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("auto_approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("submitted_by", sa.String(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewer_id", sa.String(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("review_notes", sa.Text(), nullable=True),
        sa.Column("compliance_checks", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    )
    op.create_index(
        "ix_development_approval_queue_development_id", "development_approval_queue", ["development_id"]
    )
    op.create_index("ix_development_approval_queue_status", "development_approval_queue", ["status"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("owner_id", sa.String(), nullable=True),
        sa.Column("actor_api_key_id", sa.String(), nullable=True),
        sa.Column("action", sa.String(length=120), nullable=False),
        sa.Column("target_type", sa.String(length=120), nullable=True),
        sa.Column("target_id", sa.String(length=200), nullable=True),
        sa.Column("detail", nullable=False, **_jsonb("{}")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        "idempotency_keys",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("actor_api_key_id", sa.String(), sa.ForeignKey("api_keys.id"), nullable=False),
        sa.Column("key", sa.String(length=200), nullable=False),
        sa.Column("request_hash", sa.String(length=80), nullable=False),
        sa.Column("response", nullable=False, **_jsonb("{}")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("actor_api_key_id", "key", name="uq_idempotency_actor_key"),
    )


def downgrade():
    op.drop_table("idempotency_keys")
    op.drop_table("audit_logs")
    op.drop_index("ix_development_approval_queue_status", table_name="development_approval_queue")
    op.drop_index("ix_development_approval_queue_development_id", table_name="development_approval_queue")
    op.drop_table("development_approval_queue")
    op.drop_index("ix_unit_types_development_id", table_name="unit_types")
    op.drop_table("unit_types")
    op.drop_index("ix_developments_approval_status", table_name="developments")
    op.drop_index("ix_developments_brand_profile_id", table_name="developments")
    op.drop_index("ix_developments_developer_id", table_name="developments")
    op.drop_table("developments")
    op.drop_index("ix_api_keys_key_prefix", table_name="api_keys")
    op.drop_table("api_keys")
    op.drop_table("owner_profiles")
