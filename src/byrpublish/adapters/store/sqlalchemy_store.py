"""
SQLAlchemy implementation of StagingStorePort.

Each public method runs in its own session and commits before returning,
so domain objects handed back are detached snapshots.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy import create_engine, delete, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker
from sqlalchemy.pool import StaticPool

from byrpublish.core.domain.entities import (
    GitHubInstallation,
    RepositoryBinding,
    StagedChange,
    User,
)
from byrpublish.core.domain.enums import ChangeStatus
from byrpublish.core.exceptions import RecordNotFoundError, StoreError
from byrpublish.core.ports.staging_store import StagingStorePort

from .models import (
    Base,
    FileChangeRow,
    GitHubInstallationRow,
    RepositoryBindingRow,
    UserRow,
    utcnow,
)


_INSTALLATION_FIELDS = ("account_login", "account_type", "repository_name", "is_suspended")


def _to_user(row: UserRow) -> User:
    return User(
        id=row.id,
        github_user_id=row.github_user_id,
        username=row.username,
        access_token=row.access_token or "",
    )


def _to_installation(row: GitHubInstallationRow) -> GitHubInstallation:
    return GitHubInstallation(
        id=row.id,
        installation_id=row.installation_id,
        account_login=row.account_login,
        account_type=row.account_type,
        repository_name=row.repository_name,
        is_suspended=bool(row.is_suspended),
    )


def _to_change(row: FileChangeRow) -> StagedChange:
    return StagedChange(
        id=row.id,
        user_id=row.user_id,
        md5_hash=row.md5_hash,
        filename=row.filename,
        status=ChangeStatus.from_string(row.status),
        content=row.content or "",
        previous_content=row.previous_content,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlAlchemyStagingStore(StagingStorePort):
    """Relational store backed by any SQLAlchemy engine."""

    def __init__(self, engine: Engine, clock: Callable[[], datetime] = utcnow):
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        self._clock = clock
        self.logger = logging.getLogger("SqlAlchemyStagingStore")

    def create_schema(self) -> None:
        Base.metadata.create_all(self.engine)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise StoreError("Database operation failed", cause=e) from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    def upsert_user(self, github_user_id: int, username: str, access_token: str) -> User:
        with self._session() as session:
            row = session.scalar(select(UserRow).where(UserRow.github_user_id == github_user_id))
            if row is None:
                row = UserRow(github_user_id=github_user_id, username=username)
                session.add(row)
            row.username = username
            row.access_token = access_token
            session.flush()
            return _to_user(row)

    def get_user(self, user_id: int) -> User | None:
        with self._session() as session:
            row = session.get(UserRow, user_id)
            return _to_user(row) if row else None

    def get_user_by_username(self, username: str) -> User | None:
        with self._session() as session:
            row = session.scalar(select(UserRow).where(UserRow.username == username))
            return _to_user(row) if row else None

    # -------------------------------------------------------------------------
    # Installations
    # -------------------------------------------------------------------------

    def upsert_installation(self, installation: GitHubInstallation) -> GitHubInstallation:
        with self._session() as session:
            row = session.scalar(
                select(GitHubInstallationRow).where(
                    GitHubInstallationRow.installation_id == installation.installation_id
                )
            )
            if row is None:
                row = GitHubInstallationRow(installation_id=installation.installation_id)
                session.add(row)
            row.account_login = installation.account_login
            row.account_type = installation.account_type
            row.repository_name = installation.repository_name
            row.is_suspended = installation.is_suspended
            session.flush()
            return _to_installation(row)

    def get_installation(self, installation_id: int) -> GitHubInstallation | None:
        with self._session() as session:
            row = self._installation_row(session, installation_id)
            return _to_installation(row) if row else None

    def update_installation(self, installation_id: int, **fields: object) -> GitHubInstallation:
        unknown = set(fields) - set(_INSTALLATION_FIELDS)
        if unknown:
            raise ValueError(f"Unknown installation fields: {sorted(unknown)}")

        with self._session() as session:
            row = self._installation_row(session, installation_id)
            if row is None:
                raise RecordNotFoundError(
                    f"Installation {installation_id} not found", key=installation_id
                )
            for name, value in fields.items():
                setattr(row, name, value)
            session.flush()
            return _to_installation(row)

    def delete_installation(self, installation_id: int) -> None:
        with self._session() as session:
            row = self._installation_row(session, installation_id)
            if row is None:
                raise RecordNotFoundError(
                    f"Installation {installation_id} not found", key=installation_id
                )
            session.delete(row)

    def find_installations_for_repositories(
        self, full_names: Iterable[str]
    ) -> list[GitHubInstallation]:
        wanted = {name.lower() for name in full_names}
        if not wanted:
            return []
        with self._session() as session:
            rows = session.scalars(
                select(GitHubInstallationRow)
                .where(GitHubInstallationRow.is_suspended.is_(False))
                .where(GitHubInstallationRow.repository_name.is_not(None))
                .order_by(GitHubInstallationRow.id)
            ).all()
            return [
                _to_installation(row)
                for row in rows
                if f"{row.account_login}/{row.repository_name}".lower() in wanted
            ]

    @staticmethod
    def _installation_row(session: Session, installation_id: int) -> GitHubInstallationRow | None:
        return session.scalar(
            select(GitHubInstallationRow).where(
                GitHubInstallationRow.installation_id == installation_id
            )
        )

    # -------------------------------------------------------------------------
    # Bindings
    # -------------------------------------------------------------------------

    def get_binding(self, user_id: int) -> RepositoryBinding | None:
        with self._session() as session:
            row = session.scalar(
                select(RepositoryBindingRow)
                .options(selectinload(RepositoryBindingRow.installation))
                .where(RepositoryBindingRow.user_id == user_id)
                .order_by(RepositoryBindingRow.id.desc())
            )
            if row is None:
                return None
            return RepositoryBinding(
                id=row.id,
                user_id=row.user_id,
                installation=_to_installation(row.installation),
                created_at=row.created_at,
            )

    def replace_binding(self, user_id: int, installation_id: int) -> RepositoryBinding:
        with self._session() as session:
            installation = self._installation_row(session, installation_id)
            if installation is None:
                raise RecordNotFoundError(
                    f"Installation {installation_id} not found", key=installation_id
                )
            session.execute(delete(RepositoryBindingRow).where(RepositoryBindingRow.user_id == user_id))
            row = RepositoryBindingRow(
                user_id=user_id, installation_id=installation.id, created_at=self._clock()
            )
            session.add(row)
            session.flush()
            self.logger.info(f"Bound user {user_id} to installation {installation_id}")
            return RepositoryBinding(
                id=row.id,
                user_id=user_id,
                installation=_to_installation(installation),
                created_at=row.created_at,
            )

    def delete_bindings_for_installation(self, installation_id: int) -> int:
        with self._session() as session:
            installation = self._installation_row(session, installation_id)
            if installation is None:
                return 0
            result = session.execute(
                delete(RepositoryBindingRow).where(
                    RepositoryBindingRow.installation_id == installation.id
                )
            )
            return result.rowcount or 0

    # -------------------------------------------------------------------------
    # Staged changes
    # -------------------------------------------------------------------------

    def list_changes(self, user_id: int) -> list[StagedChange]:
        with self._session() as session:
            rows = session.scalars(
                select(FileChangeRow)
                .where(FileChangeRow.user_id == user_id)
                .order_by(FileChangeRow.updated_at.desc(), FileChangeRow.id.desc())
            ).all()
            return [_to_change(row) for row in rows]

    def get_change(self, user_id: int, record_id: str) -> StagedChange | None:
        with self._session() as session:
            row = self._change_row(session, user_id, record_id)
            return _to_change(row) if row else None

    def save_change(self, change: StagedChange) -> StagedChange:
        now = self._clock()
        with self._session() as session:
            row = self._change_row(session, change.user_id, change.md5_hash)
            if row is None:
                row = FileChangeRow(
                    user_id=change.user_id,
                    md5_hash=change.md5_hash,
                    created_at=now,
                )
                session.add(row)
            row.filename = change.filename
            row.status = change.status.value
            row.content = change.content
            row.previous_content = change.previous_content
            row.updated_at = now
            session.flush()
            return _to_change(row)

    def delete_change(self, user_id: int, record_id: str) -> bool:
        with self._session() as session:
            result = session.execute(
                delete(FileChangeRow)
                .where(FileChangeRow.user_id == user_id)
                .where(FileChangeRow.md5_hash == record_id)
            )
            return bool(result.rowcount)

    def delete_all_changes(self, user_id: int) -> int:
        with self._session() as session:
            result = session.execute(delete(FileChangeRow).where(FileChangeRow.user_id == user_id))
            count = result.rowcount or 0
        self.logger.info(f"Cleared {count} staged changes for user {user_id}")
        return count

    @staticmethod
    def _change_row(session: Session, user_id: int, record_id: str) -> FileChangeRow | None:
        return session.scalar(
            select(FileChangeRow)
            .where(FileChangeRow.user_id == user_id)
            .where(FileChangeRow.md5_hash == record_id)
        )


def create_store(database_url: str, echo: bool = False, create_schema: bool = True) -> SqlAlchemyStagingStore:
    """
    Build a store for ``database_url`` and create missing tables.

    In-memory SQLite shares one connection across threads so every session
    sees the same database.
    """
    options: dict[str, object] = {"echo": echo, "future": True}
    if database_url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            options["poolclass"] = StaticPool

    store = SqlAlchemyStagingStore(create_engine(database_url, **options))
    if create_schema:
        store.create_schema()
    return store
