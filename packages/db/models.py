"""
SQLAlchemy ORM models for case persistence.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone as dt_timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, relationship


def _uuid():
    return uuid.uuid4().hex


def utcnow():
    return datetime.now(dt_timezone.utc)


class Base(DeclarativeBase):
    pass


class CaseRow(Base):
    __tablename__ = "cases"

    id = Column(String(120), primary_key=True, default=_uuid)
    name = Column(String(200), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    documents = relationship(
        "DocumentRow",
        back_populates="case",
        cascade="all, delete-orphan",
        order_by="DocumentRow.position",
    )


class DocumentRow(Base):
    __tablename__ = "documents"

    id = Column(String(120), primary_key=True, default=_uuid)
    case_id = Column(String(120), ForeignKey("cases.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)  # upload order within the case
    name = Column(String(500), nullable=False)
    mime_type = Column(String(200), nullable=False)
    size = Column(Integer, nullable=False, default=0)
    uploaded_at = Column(DateTime(timezone=True), default=utcnow)
    status = Column(String(40), nullable=False, default="QUEUED")
    prose = Column(Text, nullable=True)
    entries_json = Column(JSON, nullable=True)
    error_message = Column(Text, nullable=True)
    warnings_json = Column(JSON, nullable=True)

    case = relationship("CaseRow", back_populates="documents")
