"""Initial schema - labels, studios, actors, scenes, markers, images, cross references.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa

revision = "001"
down_revision = None
branch_labels = None
depends_on = None

KINDS = ("actor", "label", "scene", "marker", "image", "studio", "movie", "cross_reference")


def _entity_columns():
    return [
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(512), nullable=False, index=True),
        sa.Column("added_on", sa.BigInteger(), nullable=False),
    ]


def _rateable_columns():
    return [
        sa.Column("rating", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("favorite", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("bookmark", sa.BigInteger(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "labels",
        *_entity_columns(),
        sa.Column("aliases", sa.JSON(), nullable=False),
    )

    op.create_table(
        "studios",
        *_entity_columns(),
        *_rateable_columns(),
        sa.Column("aliases", sa.JSON(), nullable=False),
    )

    op.create_table(
        "actors",
        *_entity_columns(),
        *_rateable_columns(),
        sa.Column("aliases", sa.JSON(), nullable=False),
        sa.Column("born_on", sa.BigInteger(), nullable=True),
        sa.Column("nationality", sa.String(8), nullable=True),
    )

    op.create_table(
        "scenes",
        *_entity_columns(),
        *_rateable_columns(),
        sa.Column("path", sa.String(1024), nullable=True),
        sa.Column("release_date", sa.BigInteger(), nullable=True),
        sa.Column("duration", sa.Float(), nullable=True),
        sa.Column("size", sa.BigInteger(), nullable=True),
        sa.Column("studio", sa.String(64), nullable=True, index=True),
    )

    op.create_table(
        "markers",
        *_entity_columns(),
        *_rateable_columns(),
        sa.Column("scene", sa.String(64), nullable=False, index=True),
        sa.Column("time", sa.Integer(), nullable=False),
        sa.Column("thumbnail", sa.String(64), nullable=True),
        sa.Column("custom_fields", sa.JSON(), nullable=False),
    )

    op.create_table(
        "images",
        *_entity_columns(),
        *_rateable_columns(),
        sa.Column("path", sa.String(1024), nullable=True),
        sa.Column("scene", sa.String(64), nullable=True, index=True),
    )

    kind = sa.Enum(*KINDS, name="entitykind", native_enum=False)
    op.create_table(
        "cross_references",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("from_id", sa.String(64), nullable=False),
        sa.Column("from_kind", kind, nullable=False),
        sa.Column("to_id", sa.String(64), nullable=False),
        sa.Column("to_kind", kind, nullable=False),
        sa.UniqueConstraint("from_id", "to_id", name="uq_cross_references_from_to"),
    )
    op.create_index("ix_cross_references_from_kind", "cross_references", ["from_id", "to_kind"])
    op.create_index("ix_cross_references_to", "cross_references", ["to_id"])


def downgrade() -> None:
    op.drop_index("ix_cross_references_to", table_name="cross_references")
    op.drop_index("ix_cross_references_from_kind", table_name="cross_references")
    op.drop_table("cross_references")
    op.drop_table("images")
    op.drop_table("markers")
    op.drop_table("scenes")
    op.drop_table("actors")
    op.drop_table("studios")
    op.drop_table("labels")
