"""Run analysis documents and their embeddings."""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "20261018_01"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "run_analysis_documents",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("document_id", sa.String(length=36), nullable=False, unique=True),
        sa.Column("activity_ids", sa.Text(), nullable=False),
        sa.Column("query_text", sa.Text(), nullable=False),
        sa.Column("analysis_content", sa.Text(), nullable=False),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("total_runs", sa.Integer(), nullable=True),
        sa.Column("total_distance_km", sa.Float(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index("ix_run_analysis_documents_document_id", "run_analysis_documents", ["document_id"], unique=True)
    op.create_index("ix_run_analysis_documents_created_at", "run_analysis_documents", ["created_at"])

    op.create_table(
        "analysis_embeddings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("record_id", sa.String(length=36), nullable=False, unique=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("embedding", sa.JSON(), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index("ix_analysis_embeddings_record_id", "analysis_embeddings", ["record_id"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_analysis_embeddings_record_id", table_name="analysis_embeddings")
    op.drop_table("analysis_embeddings")
    op.drop_index("ix_run_analysis_documents_created_at", table_name="run_analysis_documents")
    op.drop_index("ix_run_analysis_documents_document_id", table_name="run_analysis_documents")
    op.drop_table("run_analysis_documents")
