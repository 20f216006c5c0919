"""
GitHub Adapter - REST client, OAuth exchange and GitHubPort implementation.
"""

from .adapter import GitHubAdapter
from .client import GitHubApiClient, GitHubOAuthClient


__all__ = ["GitHubAdapter", "GitHubApiClient", "GitHubOAuthClient"]
