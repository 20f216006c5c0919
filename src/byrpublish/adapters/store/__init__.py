"""
Store Adapter - SQLAlchemy persistence for users, installations, bindings
and staged changes.
"""

from .models import (
    Base,
    FileChangeRow,
    GitHubInstallationRow,
    RepositoryBindingRow,
    UserRow,
)
from .sqlalchemy_store import SqlAlchemyStagingStore, create_store


__all__ = [
    "Base",
    "FileChangeRow",
    "GitHubInstallationRow",
    "RepositoryBindingRow",
    "SqlAlchemyStagingStore",
    "UserRow",
    "create_store",
]
