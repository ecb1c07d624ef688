from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select

from src.vaxtrack.domain.models.child import Child
from src.vaxtrack.domain.models.user import User
from src.vaxtrack.infra.db.models import ChildORM, UserORM
from src.vaxtrack.infra.db.repositories import ChildRepository, UserRepository
from src.vaxtrack.infra.db.session import SessionFactory


class SqlUserRepository(UserRepository):
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def get(self, user_id: UUID) -> Optional[User]:
        session = self._session_factory()
        try:
            orm = session.get(UserORM, user_id)
            return orm.to_domain() if orm is not None else None
        finally:
            session.close()

    def get_by_subject(self, subject: str) -> Optional[User]:
        session = self._session_factory()
        try:
            orm = session.scalars(select(UserORM).where(UserORM.auth_subject == subject)).first()
            return orm.to_domain() if orm is not None else None
        finally:
            session.close()

    def get_by_email(self, email: str) -> Optional[User]:
        session = self._session_factory()
        try:
            orm = session.scalars(select(UserORM).where(func.lower(UserORM.email) == email.lower())).first()
            return orm.to_domain() if orm is not None else None
        finally:
            session.close()

    def save(self, user: User) -> None:
        """Insert or update a User."""

        session = self._session_factory()
        try:
            existing = session.get(UserORM, user.id)
            if existing is None:
                session.add(UserORM.from_domain(user))
            else:
                existing.apply(user)
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


class SqlChildRepository(ChildRepository):
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def get(self, child_id: UUID) -> Optional[Child]:
        session = self._session_factory()
        try:
            orm = session.get(ChildORM, child_id)
            return orm.to_domain() if orm is not None else None
        finally:
            session.close()

    def list_by_parent(self, parent_id: UUID, *, active_only: bool = True) -> List[Child]:
        session = self._session_factory()
        try:
            stmt = select(ChildORM).where(ChildORM.parent_id == parent_id)
            if active_only:
                stmt = stmt.where(ChildORM.is_active.is_(True))
            stmt = stmt.order_by(ChildORM.created_at.desc())
            return [orm.to_domain() for orm in session.scalars(stmt)]
        finally:
            session.close()

    def save(self, child: Child) -> None:
        session = self._session_factory()
        try:
            existing = session.get(ChildORM, child.id)
            if existing is None:
                session.add(ChildORM.from_domain(child))
            else:
                existing.apply(child)
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
