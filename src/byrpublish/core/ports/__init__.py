"""
Ports - Abstract interfaces for external dependencies.

Ports define the contracts that adapters must implement.
This enables dependency inversion and easy testing.
"""

from .config_provider import (
    AppConfig,
    ArchiveConfig,
    ConfigProviderPort,
    GitHubConfig,
    ServerConfig,
    StoreConfig,
    UploadConfig,
)
from .github import (
    BranchInfo,
    GitHubPort,
    GitHubUserInfo,
    PullRequestInfo,
    RepositoryInfo,
    TreeEntry,
)
from .metadata_feed import MetadataFeedPort, MetadataSnapshot
from .staging_store import StagingStorePort


__all__ = [
    "AppConfig",
    "ArchiveConfig",
    "BranchInfo",
    "ConfigProviderPort",
    "GitHubConfig",
    "GitHubPort",
    "GitHubUserInfo",
    "MetadataFeedPort",
    "MetadataSnapshot",
    "PullRequestInfo",
    "RepositoryInfo",
    "ServerConfig",
    "StagingStorePort",
    "StoreConfig",
    "TreeEntry",
    "UploadConfig",
]
