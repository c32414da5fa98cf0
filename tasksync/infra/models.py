from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, String, Text, func

from .db import Base


class TaskModel(Base):
    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    assigned_to = Column(String(320), nullable=False)
    assigned_date = Column(DateTime(timezone=True), nullable=False)
    due_date = Column(DateTime(timezone=True), nullable=True)
    completed = Column(Boolean, nullable=False, default=False)
    status = Column(String(20), nullable=False, default="not_started")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)
    created_by = Column(String(64), nullable=False)
