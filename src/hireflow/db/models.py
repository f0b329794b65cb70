from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from hireflow.db.base import Base, TimestampMixin


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    phone: Mapped[str] = mapped_column(String(40), default="", nullable=False)


class ApplicationSessionRecord(TimestampMixin, Base):
    __tablename__ = "application_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    approval_token: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    job_url: Mapped[str] = mapped_column(String(2000), nullable=False)
    platform: Mapped[str] = mapped_column(String(80), default="", nullable=False)
    job_title: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    company: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    status: Mapped[str] = mapped_column(String(40), default="created", nullable=False, index=True)
    requires_login: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_logged_in: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    filled_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    fill_summary_json: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    submit_attempted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    submission_result: Mapped[str] = mapped_column(String(40), default="", nullable=False)
    error: Mapped[str] = mapped_column(Text, default="", nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class ApplicationLog(TimestampMixin, Base):
    __tablename__ = "application_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    session_id: Mapped[str] = mapped_column(
        ForeignKey("application_sessions.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    job_url: Mapped[str] = mapped_column(String(2000), nullable=False)
    job_title: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    company: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    platform: Mapped[str] = mapped_column(String(80), default="", nullable=False)
    status: Mapped[str] = mapped_column(String(40), nullable=False)
    submission_result: Mapped[str] = mapped_column(String(40), default="", nullable=False)
    error: Mapped[str] = mapped_column(Text, default="", nullable=False)
    details_json: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
