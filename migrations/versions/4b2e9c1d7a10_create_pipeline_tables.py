"""Create deal pipeline tables.

uq_votes_deal_lp and uq_introduction_requests_vote are the conflict targets
for the vote and introduction-request upserts.
"""

from __future__ import annotations

import logging

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "4b2e9c1d7a10"
down_revision = None
branch_labels = None
depends_on = None

logger = logging.getLogger(__name__)

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "deals",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("company_name", sa.String(length=255), nullable=False),
        sa.Column("company_url", sa.String(length=1024), nullable=True),
        sa.Column("company_description_short", sa.String(length=255), nullable=True),
        sa.Column("industry", sa.String(length=255), nullable=False),
        sa.Column("stage", sa.String(length=64), nullable=False, server_default="sourcing"),
        sa.Column("deal_size", sa.Float(), nullable=True),
        sa.Column("valuation", sa.Float(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("partner_excitement_note", sa.Text(), nullable=True),
        sa.Column("why_good_fit", sa.Text(), nullable=True),
        sa.Column("pitch_deck_url", sa.String(length=1024), nullable=True),
        sa.Column("website_url", sa.String(length=1024), nullable=True),
        sa.Column("funding_round", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="active"),
        sa.Column("survey_deadline", sa.Date(), nullable=True),
        sa.Column("created_by", sa.String(length=255), nullable=True),
        sa.Column("founders_location", sa.String(length=255), nullable=True),
        sa.Column("company_base_location", sa.String(length=255), nullable=True),
        sa.Column("demo_url", sa.String(length=1024), nullable=True),
        sa.Column("working_duration", sa.Text(), nullable=True),
        sa.Column("has_revenue", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("revenue_amount", sa.Float(), nullable=True),
        sa.Column("traction_progress", sa.Text(), nullable=True),
        sa.Column("user_traction", sa.Text(), nullable=True),
        sa.Column("founder_motivation", sa.Text(), nullable=True),
        sa.Column("competition_differentiation", sa.Text(), nullable=True),
        sa.Column("raising_amount", sa.Float(), nullable=True),
        sa.Column("safe_or_equity", sa.String(length=64), nullable=True),
        sa.Column("confirmed_amount", sa.Float(), nullable=True),
        sa.Column("lead_investor", sa.String(length=255), nullable=True),
        sa.Column("co_investors", JSON_TYPE, nullable=True),
        sa.Column("contract_link", sa.String(length=1024), nullable=True),
        sa.Column("sourcing_meeting_booked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("partner_review_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("close_date", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_deals"),
    )
    op.create_index("ix_deals_status_created", "deals", ["status", "created_at"])
    op.create_index("ix_deals_stage", "deals", ["stage"])

    op.create_table(
        "founders",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("deal_id", sa.Uuid(as_uuid=True), sa.ForeignKey("deals.id"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("linkedin_url", sa.String(length=1024), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("avatar_url", sa.String(length=1024), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_founders"),
    )
    op.create_index("ix_founders_deal_id", "founders", ["deal_id"])

    op.create_table(
        "limited_partners",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("company", sa.String(length=255), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=64), nullable=True),
        sa.Column("linkedin_url", sa.String(length=1024), nullable=True),
        sa.Column("avatar_url", sa.String(length=1024), nullable=True),
        sa.Column("investment_amount", sa.Float(), nullable=False),
        sa.Column("commitment_date", sa.Date(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("partner_type", sa.String(length=32), nullable=False),
        sa.Column("expertise_areas", JSON_TYPE, nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_limited_partners"),
    )
    op.create_index("ix_limited_partners_email", "limited_partners", ["email"])

    op.create_table(
        "votes",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("deal_id", sa.Uuid(as_uuid=True), sa.ForeignKey("deals.id"), nullable=False),
        sa.Column(
            "lp_id", sa.Uuid(as_uuid=True), sa.ForeignKey("limited_partners.id"), nullable=False
        ),
        sa.Column("conviction_level", sa.Integer(), nullable=True),
        sa.Column("review_status", sa.String(length=32), nullable=True),
        sa.Column("strong_no", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.Column("has_pain_point", sa.Boolean(), nullable=True),
        sa.Column("pain_point_level", sa.String(length=64), nullable=True),
        sa.Column("solution_feedback", sa.Text(), nullable=True),
        sa.Column("pilot_customer_interest", sa.Boolean(), nullable=True),
        sa.Column("pilot_customer_response", sa.String(length=64), nullable=True),
        sa.Column("pilot_customer_feedback", sa.Text(), nullable=True),
        sa.Column("would_buy", sa.Boolean(), nullable=True),
        sa.Column("buying_interest_response", sa.String(length=64), nullable=True),
        sa.Column("buying_interest_feedback", sa.Text(), nullable=True),
        sa.Column("price_feedback", sa.Text(), nullable=True),
        sa.Column("additional_notes", sa.Text(), nullable=True),
        sa.Column("founder_specific_notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_votes"),
        sa.UniqueConstraint("deal_id", "lp_id", name="uq_votes_deal_lp"),
    )
    op.create_index("ix_votes_deal_id", "votes", ["deal_id"])
    op.create_index("ix_votes_lp_id", "votes", ["lp_id"])

    op.create_table(
        "introduction_requests",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("vote_id", sa.Uuid(as_uuid=True), sa.ForeignKey("votes.id"), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="pending"),
        sa.Column("intro_message", sa.Text(), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("declined_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_introduction_requests"),
        sa.UniqueConstraint("vote_id", name="uq_introduction_requests_vote"),
    )
    logger.info("pipeline.migration.applied", extra={"revision": revision})


def downgrade() -> None:
    op.drop_table("introduction_requests")
    op.drop_index("ix_votes_lp_id", table_name="votes")
    op.drop_index("ix_votes_deal_id", table_name="votes")
    op.drop_table("votes")
    op.drop_index("ix_limited_partners_email", table_name="limited_partners")
    op.drop_table("limited_partners")
    op.drop_index("ix_founders_deal_id", table_name="founders")
    op.drop_table("founders")
    op.drop_index("ix_deals_stage", table_name="deals")
    op.drop_index("ix_deals_status_created", table_name="deals")
    op.drop_table("deals")
