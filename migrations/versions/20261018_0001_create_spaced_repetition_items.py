"""Create spaced repetition items and their review history."""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261018_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "spaced_repetition_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("owner_id", sa.String(length=128), nullable=False),
        sa.Column("original_content", sa.Text(), nullable=False),
        sa.Column("answer_content", sa.Text(), nullable=True),
        sa.Column("study_plan_id", sa.String(length=64), nullable=True),
        sa.Column("task_id", sa.String(length=64), nullable=True),
        sa.Column("last_reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("next_review_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("current_interval", sa.Integer(), server_default=sa.text("1"), nullable=False),
        sa.Column("ease_factor", sa.Float(), server_default=sa.text("2.5"), nullable=False),
        sa.Column("repetitions", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("lapses", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("source", sa.String(length=16), server_default=sa.text("'manual'"), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("version", sa.Integer(), server_default=sa.text("1"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            server_onupdate=sa.func.now(),
            nullable=False,
        ),
        sa.CheckConstraint("current_interval >= 1", name="ck_spaced_repetition_items_interval_min"),
        sa.CheckConstraint("ease_factor >= 1.3", name="ck_spaced_repetition_items_ease_min"),
        sa.CheckConstraint(
            "source IN ('manual', 'syllabus', 'task', 'note')",
            name="ck_spaced_repetition_items_source",
        ),
    )
    op.create_index("ix_spaced_repetition_items_owner_id", "spaced_repetition_items", ["owner_id"])
    op.create_index("ix_spaced_repetition_items_study_plan_id", "spaced_repetition_items", ["study_plan_id"])
    op.create_index("ix_spaced_repetition_items_task_id", "spaced_repetition_items", ["task_id"])
    op.create_index(
        "ix_spaced_repetition_items_owner_id_next_review_at",
        "spaced_repetition_items",
        ("owner_id", "next_review_at"),
    )

    op.create_table(
        "item_reviews",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("quality", sa.Integer(), nullable=False),
        sa.Column("interval", sa.Integer(), nullable=False),
        sa.Column("ease_factor", sa.Float(), nullable=False),
        sa.Column(
            "reviewed_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ("item_id",),
            ("spaced_repetition_items.id",),
            name="fk_item_reviews_item_id",
            ondelete="CASCADE",
        ),
        sa.CheckConstraint("quality BETWEEN 0 AND 5", name="ck_item_reviews_quality_range"),
    )
    op.create_index("ix_item_reviews_item_id", "item_reviews", ("item_id",))


def downgrade() -> None:
    op.drop_index("ix_item_reviews_item_id", table_name="item_reviews")
    op.drop_table("item_reviews")
    op.drop_index("ix_spaced_repetition_items_owner_id_next_review_at", table_name="spaced_repetition_items")
    op.drop_index("ix_spaced_repetition_items_task_id", table_name="spaced_repetition_items")
    op.drop_index("ix_spaced_repetition_items_study_plan_id", table_name="spaced_repetition_items")
    op.drop_index("ix_spaced_repetition_items_owner_id", table_name="spaced_repetition_items")
    op.drop_table("spaced_repetition_items")
