from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from hireflow.db.models import ApplicationLog, ApplicationSessionRecord, User


class Repository:
    def __init__(self, session: Session):
        self.session = session

    def get_or_create_user(self, *, email: str, name: str = "", phone: str = "") -> User:
        user = self.session.scalar(select(User).where(User.email == email))
        if user is None:
            user = User(email=email, name=name, phone=phone)
            self.session.add(user)
        else:
            user.name = name or user.name
            user.phone = phone or user.phone

        self.session.commit()
        self.session.refresh(user)
        return user

    def create_session_record(self, **values: Any) -> ApplicationSessionRecord:
        record = ApplicationSessionRecord(**values)
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        return record

    def update_session_record(self, session_id: str, **values: Any) -> ApplicationSessionRecord:
        record = self.session.get(ApplicationSessionRecord, session_id)
        if record is None:
            raise ValueError(f"session record {session_id} not found")

        for key, value in values.items():
            setattr(record, key, value)
        self.session.commit()
        self.session.refresh(record)
        return record

    def get_session_record(self, session_id: str) -> ApplicationSessionRecord | None:
        return self.session.get(ApplicationSessionRecord, session_id)

    def get_session_record_by_token(self, token: str) -> ApplicationSessionRecord | None:
        return self.session.scalar(
            select(ApplicationSessionRecord).where(ApplicationSessionRecord.approval_token == token)
        )

    def list_session_records(self, limit: int = 50, status: str | None = None) -> list[ApplicationSessionRecord]:
        statement = select(ApplicationSessionRecord)
        if status:
            statement = statement.where(ApplicationSessionRecord.status == status)
        statement = statement.order_by(ApplicationSessionRecord.created_at.desc()).limit(limit)
        return list(self.session.scalars(statement).all())

    def append_application_log(self, **values: Any) -> ApplicationLog:
        log = ApplicationLog(**values)
        self.session.add(log)
        self.session.commit()
        self.session.refresh(log)
        return log

    def list_application_logs(self, limit: int = 50, session_id: str | None = None) -> list[ApplicationLog]:
        statement = select(ApplicationLog)
        if session_id:
            statement = statement.where(ApplicationLog.session_id == session_id)
        statement = statement.order_by(ApplicationLog.id.desc()).limit(limit)
        return list(self.session.scalars(statement).all())

    def count_application_logs(self, session_id: str) -> int:
        statement = select(func.count(ApplicationLog.id)).where(ApplicationLog.session_id == session_id)
        return int(self.session.scalar(statement) or 0)
