from sqlalchemy import Column, String, DateTime, Index
from models.base import Base, BigIntPK, utcnow


class Contact(Base):
    """
    Canonical contact records loaded by the pipeline.

    Design Decisions:
    - email is the natural key; the unique index backs the upsert
    - last_request_id points at the run that last wrote the row
    - rows are only ever inserted or overwritten, never partially updated
    """
    __tablename__ = "contacts"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)

    # Natural key
    email = Column(String(320), nullable=False)

    # Canonical fields
    first_name = Column(String(200), nullable=False)
    last_name = Column(String(200), nullable=False)
    phone = Column(String(64), nullable=True)

    # Lineage
    source_endpoint = Column(String(2048), nullable=True)
    last_request_id = Column(String(64), nullable=True, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_contacts_email", "email", unique=True),
    )
