"""SQLAlchemy models for the byrpublish database schema."""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship


Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRow(Base):
    """Contributors who signed in with GitHub."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    github_user_id = Column(Integer, nullable=False, unique=True)
    username = Column(String(255), nullable=False)
    access_token = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    bindings = relationship("RepositoryBindingRow", back_populates="user", cascade="all, delete-orphan")
    file_changes = relationship("FileChangeRow", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username})>"


class GitHubInstallationRow(Base):
    """GitHub App installations, one per account."""

    __tablename__ = "github_installations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    installation_id = Column(Integer, nullable=False, unique=True)
    account_login = Column(String(255), nullable=False)
    account_type = Column(String(32), nullable=False, default="User")
    repository_name = Column(String(255), nullable=True)  # the detected archive fork
    is_suspended = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    bindings = relationship(
        "RepositoryBindingRow", back_populates="installation", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return (
            f"<GitHubInstallation(installation_id={self.installation_id}, "
            f"account={self.account_login}, repo={self.repository_name})>"
        )


class RepositoryBindingRow(Base):
    """Which installation (and so which fork) a user publishes through."""

    __tablename__ = "repository_bindings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    installation_id = Column(Integer, ForeignKey("github_installations.id"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    user = relationship("UserRow", back_populates="bindings")
    installation = relationship("GitHubInstallationRow", back_populates="bindings")

    def __repr__(self):
        return f"<RepositoryBinding(user_id={self.user_id}, installation_id={self.installation_id})>"


class FileChangeRow(Base):
    """Staged, unpublished edits. One row per user and record."""

    __tablename__ = "file_changes"
    __table_args__ = (UniqueConstraint("user_id", "md5_hash", name="uq_file_changes_user_md5"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    filename = Column(String(255), nullable=False)
    md5_hash = Column(String(32), nullable=False)
    status = Column(String(16), nullable=False)  # created, modified, deleted
    content = Column(Text, nullable=False, default="")
    previous_content = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    user = relationship("UserRow", back_populates="file_changes")

    def __repr__(self):
        return f"<FileChange(user_id={self.user_id}, md5={self.md5_hash}, status={self.status})>"


Index("idx_file_changes_user_updated", FileChangeRow.user_id, FileChangeRow.updated_at)
Index("idx_bindings_user", RepositoryBindingRow.user_id)
