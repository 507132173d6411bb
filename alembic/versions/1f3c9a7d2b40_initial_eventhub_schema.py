"""initial_eventhub_schema"""

revision = '1f3c9a7d2b40'
down_revision = None
branch_labels = None
depends_on = None

from alembic import op
import sqlalchemy as sa


def upgrade() -> None:
    op.create_table(
        "app_user",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("password_reset_requested", sa.Boolean(), nullable=True),
        sa.Column("first_name", sa.String(length=150), nullable=True),
        sa.Column("last_name", sa.String(length=150), nullable=True),
        sa.Column("participant_type", sa.String(length=32), nullable=True),
        sa.Column("college_name", sa.String(length=255), nullable=True),
        sa.Column("contact_number", sa.String(length=30), nullable=True),
        sa.Column("areas_of_interest", sa.JSON(), nullable=True),
        sa.Column("organizer_name", sa.String(length=255), nullable=True),
        sa.Column("category", sa.String(length=100), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("contact_email", sa.String(length=255), nullable=True),
        sa.Column("discord_webhook", sa.String(length=500), nullable=True),
        sa.Column("is_approved", sa.Boolean(), nullable=True),
        sa.Column("created_on", sa.DateTime(), nullable=True),
        sa.Column("updated_on", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_app_user_id", "app_user", ["id"])
    op.create_index("ix_app_user_email", "app_user", ["email"], unique=True)

    op.create_table(
        "organizer_follow",
        sa.Column("participant_id", sa.Integer(), sa.ForeignKey("app_user.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("organizer_id", sa.Integer(), sa.ForeignKey("app_user.id", ondelete="CASCADE"), primary_key=True),
    )

    op.create_table(
        "event",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("organizer_id", sa.Integer(), sa.ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False),
        sa.Column("event_name", sa.String(length=255), nullable=False),
        sa.Column("event_description", sa.Text(), nullable=False),
        sa.Column("event_type", sa.String(length=32), nullable=False),
        sa.Column("eligibility", sa.String(length=32), nullable=True),
        sa.Column("event_tags", sa.JSON(), nullable=True),
        sa.Column("venue", sa.String(length=255), nullable=True),
        sa.Column("registration_deadline", sa.DateTime(), nullable=False),
        sa.Column("event_start_date", sa.DateTime(), nullable=False),
        sa.Column("event_end_date", sa.DateTime(), nullable=False),
        sa.Column("registration_limit", sa.Integer(), nullable=True),
        sa.Column("registration_fee", sa.Numeric(10, 2), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=True),
        sa.Column("custom_form", sa.JSON(), nullable=True),
        sa.Column("form_locked", sa.Boolean(), nullable=True),
        sa.Column("item_name", sa.String(length=255), nullable=True),
        sa.Column("purchase_limit_per_participant", sa.Integer(), nullable=True),
        sa.Column("total_registrations", sa.Integer(), nullable=True),
        sa.Column("total_revenue", sa.Numeric(12, 2), nullable=True),
        sa.Column("total_attendance", sa.Integer(), nullable=True),
        sa.Column("views", sa.Integer(), nullable=True),
        sa.Column("last_view_reset", sa.DateTime(), nullable=True),
        sa.Column("created_on", sa.DateTime(), nullable=True),
        sa.Column("updated_on", sa.DateTime(), nullable=True),
        sa.CheckConstraint("registration_limit >= 0", name="ck_event_limit_non_negative"),
        sa.CheckConstraint("registration_fee >= 0", name="ck_event_fee_non_negative"),
        sa.CheckConstraint("total_registrations >= 0", name="ck_event_registrations_non_negative"),
    )
    op.create_index("ix_event_id", "event", ["id"])
    op.create_index("ix_event_organizer_id", "event", ["organizer_id"])
    op.create_index("ix_event_status", "event", ["status"])
    op.create_index("ix_event_created_on", "event", ["created_on"])
    op.create_index("ix_event_type_status_start", "event", ["event_type", "status", "event_start_date"])

    op.create_table(
        "merchandise_variant",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("event.id", ondelete="CASCADE"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=True),
        sa.Column("size", sa.String(length=50), nullable=True),
        sa.Column("color", sa.String(length=50), nullable=True),
        sa.Column("stock_quantity", sa.Integer(), nullable=True),
        sa.Column("sold", sa.Integer(), nullable=True),
        sa.UniqueConstraint("event_id", "size", "color", name="uq_variant_per_event"),
        sa.CheckConstraint("stock_quantity >= 0", name="ck_variant_stock_non_negative"),
        sa.CheckConstraint("sold >= 0", name="ck_variant_sold_non_negative"),
    )
    op.create_index("ix_merchandise_variant_event_id", "merchandise_variant", ["event_id"])

    op.create_table(
        "registration",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("ticket_id", sa.String(length=64), nullable=False),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("event.id", ondelete="CASCADE"), nullable=False),
        sa.Column("participant_id", sa.Integer(), sa.ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False),
        sa.Column("registration_type", sa.String(length=32), nullable=False),
        sa.Column("form_responses", sa.JSON(), nullable=True),
        sa.Column("variant_size", sa.String(length=50), nullable=True),
        sa.Column("variant_color", sa.String(length=50), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=True),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("payment_status", sa.String(length=32), nullable=True),
        sa.Column("payment_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("payment_date", sa.DateTime(), nullable=True),
        sa.Column("payment_proof", sa.String(length=500), nullable=True),
        sa.Column("payment_approval_status", sa.String(length=32), nullable=True),
        sa.Column("payment_rejection_reason", sa.String(length=500), nullable=True),
        sa.Column("registration_status", sa.String(length=32), nullable=True),
        sa.Column("attended", sa.Boolean(), nullable=True),
        sa.Column("attendance_marked_at", sa.DateTime(), nullable=True),
        sa.Column("manual_override", sa.Boolean(), nullable=True),
        sa.Column("override_reason", sa.String(length=500), nullable=True),
        sa.Column("qr_code", sa.Text(), nullable=True),
        sa.Column("email_sent", sa.Boolean(), nullable=True),
        sa.Column("created_on", sa.DateTime(), nullable=True),
        sa.Column("updated_on", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_registration_id", "registration", ["id"])
    op.create_index("ix_registration_ticket_id", "registration", ["ticket_id"], unique=True)
    op.create_index("ix_registration_participant_event", "registration", ["participant_id", "event_id"])
    op.create_index("ix_registration_event_status", "registration", ["event_id", "registration_status"])
    op.create_index(
        "uq_registration_active_normal",
        "registration",
        ["event_id", "participant_id"],
        unique=True,
        postgresql_where=sa.text("registration_status = 'registered' AND registration_type = 'normal'"),
    )

    op.create_table(
        "attendance_log_entry",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("registration_id", sa.Integer(), sa.ForeignKey("registration.id", ondelete="CASCADE"), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=True),
        sa.Column("scanned_by_id", sa.Integer(), sa.ForeignKey("app_user.id", ondelete="SET NULL"), nullable=True),
        sa.Column("type", sa.String(length=32), nullable=True),
        sa.Column("notes", sa.String(length=500), nullable=True),
    )
    op.create_index("ix_attendance_log_entry_registration_id", "attendance_log_entry", ["registration_id"])

    op.create_table(
        "forum_message",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("event.id", ondelete="CASCADE"), nullable=False),
        sa.Column("author_id", sa.Integer(), sa.ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False),
        sa.Column("author_role", sa.String(length=32), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("parent_id", sa.Integer(), sa.ForeignKey("forum_message.id", ondelete="CASCADE"), nullable=True),
        sa.Column("is_pinned", sa.Boolean(), nullable=True),
        sa.Column("is_announcement", sa.Boolean(), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), nullable=True),
        sa.Column("deleted_by_id", sa.Integer(), sa.ForeignKey("app_user.id", ondelete="SET NULL"), nullable=True),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("created_on", sa.DateTime(), nullable=True),
        sa.Column("updated_on", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_forum_message_id", "forum_message", ["id"])
    op.create_index("ix_forum_message_parent_id", "forum_message", ["parent_id"])
    op.create_index("ix_forum_message_event_created", "forum_message", ["event_id", "created_on"])
    op.create_index("ix_forum_message_event_pinned", "forum_message", ["event_id", "is_pinned", "created_on"])

    op.create_table(
        "forum_reaction",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("message_id", sa.Integer(), sa.ForeignKey("forum_message.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("created_on", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("message_id", "user_id", name="uq_forum_reaction_per_user"),
    )

    op.create_table(
        "feedback",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("event.id", ondelete="CASCADE"), nullable=False),
        sa.Column("participant_id", sa.Integer(), sa.ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.String(length=1000), nullable=False),
        sa.Column("created_on", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("event_id", "participant_id", name="uq_feedback_per_participant"),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_feedback_rating_range"),
    )
    op.create_index("ix_feedback_id", "feedback", ["id"])
    op.create_index("ix_feedback_event_rating", "feedback", ["event_id", "rating"])

    op.create_table(
        "password_reset_request",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("organizer_id", sa.Integer(), sa.ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False),
        sa.Column("reason", sa.String(length=500), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=True),
        sa.Column("admin_comment", sa.String(length=500), nullable=True),
        sa.Column("temporary_password", sa.String(length=64), nullable=True),
        sa.Column("processed_by_id", sa.Integer(), sa.ForeignKey("app_user.id", ondelete="SET NULL"), nullable=True),
        sa.Column("processed_at", sa.DateTime(), nullable=True),
        sa.Column("created_on", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_password_reset_request_id", "password_reset_request", ["id"])
    op.create_index("ix_password_reset_request_organizer_id", "password_reset_request", ["organizer_id"])
    op.create_index("ix_password_reset_request_status", "password_reset_request", ["status"])
    op.create_index(
        "uq_reset_request_one_pending",
        "password_reset_request",
        ["organizer_id"],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
    )


def downgrade() -> None:
    op.drop_table("password_reset_request")
    op.drop_table("feedback")
    op.drop_table("forum_reaction")
    op.drop_table("forum_message")
    op.drop_table("attendance_log_entry")
    op.drop_table("registration")
    op.drop_table("merchandise_variant")
    op.drop_table("event")
    op.drop_table("organizer_follow")
    op.drop_table("app_user")
