"""Database module for Parent Copilot.

This module defines the SQLAlchemy document table and engine setup used by
the SQL-backed document store. Each row holds one entity as a JSON document.
"""

from sqlalchemy import create_engine, Column, String, DateTime, JSON, Index
from sqlalchemy.orm import declarative_base

from config import settings

# SQLAlchemy Base
Base = declarative_base()


class Document(Base):
    """One persisted entity.

    The full entity lives in ``data`` with camelCase keys, exactly as it is
    returned by the API. ``child_id`` mirrors ``data['childId']`` so that
    per-child lookups can use an index.
    """

    __tablename__ = "documents"

    collection = Column(String, primary_key=True, doc="Collection key, e.g. 'reminders'")
    id = Column(String, primary_key=True, doc="Entity ID (UUID)")
    child_id = Column(String, nullable=True, doc="Owning child, when the entity has one")
    data = Column(JSON, nullable=False, default=dict, doc="Entity document")

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        doc="When the document was inserted (timezone-aware)"
    )

    __table_args__ = (
        Index('idx_collection_child', 'collection', 'child_id'),
        Index('idx_collection_created', 'collection', 'created_at'),
    )

    def __repr__(self):
        """String representation"""
        return f"<Document(collection={self.collection}, id={self.id}, child={self.child_id})>"


# Database Engine Setup
engine = create_engine(
    settings.DATABASE_URL,
    connect_args={"check_same_thread": False} if "sqlite" in settings.DATABASE_URL else {},
    echo=False  # Set to True for SQL debugging
)


def init_db(bind=None):
    """Create all tables on the given engine (defaults to the configured one)."""
    Base.metadata.create_all(bind=bind or engine)
