"""
GitHub API Client - Low-level HTTP client for the GitHub REST API.

This handles the raw HTTP communication with GitHub.
The GitHubAdapter uses this to implement the GitHubPort.

GitHub REST API documentation:
https://docs.github.com/en/rest
"""

import logging
from typing import Any

import requests
from requests.adapters import HTTPAdapter

from byrpublish.core.exceptions import (
    AccessDeniedError,
    AuthenticationError,
    RateLimitError,
    RemoteError,
    ResourceNotFoundError,
    TransientError,
    ValidationFailedError,
)


class GitHubApiClient:
    """
    Low-level GitHub REST API client.

    Handles authentication, request/response and error mapping. Requests
    are not retried: a transient failure is raised to the caller as
    TransientError.
    """

    API_VERSION = "2022-11-28"
    DEFAULT_BASE_URL = "https://api.github.com"
    REPOS_PER_PAGE = 100

    # Connection pool settings
    DEFAULT_POOL_CONNECTIONS = 10
    DEFAULT_POOL_MAXSIZE = 10
    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        token: str | None = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """
        Initialize the GitHub client.

        Args:
            token: OAuth or installation token; None for anonymous calls
            base_url: API root (GitHub Enterprise uses https://host/api/v3)
            timeout: Per-request socket timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.logger = logging.getLogger("GitHubApiClient")

        self.headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": self.API_VERSION,
        }
        if token:
            self.headers["Authorization"] = f"Bearer {token}"

        self._session = requests.Session()
        self._session.headers.update(self.headers)

        adapter = HTTPAdapter(
            pool_connections=self.DEFAULT_POOL_CONNECTIONS,
            pool_maxsize=self.DEFAULT_POOL_MAXSIZE,
        )
        self._session.mount("https://", adapter)
        self._session.mount("http://", adapter)

    # -------------------------------------------------------------------------
    # Core Request Methods
    # -------------------------------------------------------------------------

    def request(
        self,
        method: str,
        endpoint: str,
        **kwargs: Any,
    ) -> dict[str, Any] | list[Any]:
        """
        Make a request to the GitHub API.

        Args:
            method: HTTP method
            endpoint: API path (e.g. '/user') or an absolute URL
            **kwargs: Additional arguments for requests

        Returns:
            JSON response (dict or list)

        Raises:
            RemoteError: On API or network errors
        """
        if endpoint.startswith("http"):
            url = endpoint
        else:
            url = f"{self.base_url}/{endpoint.lstrip('/')}"

        kwargs.setdefault("timeout", self.timeout)

        try:
            response = self._session.request(method, url, **kwargs)
        except requests.exceptions.Timeout as e:
            raise TransientError(f"GitHub request timed out: {method} {endpoint}", endpoint, e)
        except requests.exceptions.ConnectionError as e:
            raise TransientError(f"Connection to GitHub failed: {method} {endpoint}", endpoint, e)

        self.logger.debug(f"{method} {endpoint} -> {response.status_code}")
        return self._handle_response(response, endpoint)

    def get(self, endpoint: str, **kwargs: Any) -> dict[str, Any] | list[Any]:
        """Perform a GET request."""
        return self.request("GET", endpoint, **kwargs)

    def post(
        self,
        endpoint: str,
        json: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> dict[str, Any] | list[Any]:
        """Perform a POST request."""
        return self.request("POST", endpoint, json=json, **kwargs)

    def patch(
        self,
        endpoint: str,
        json: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> dict[str, Any] | list[Any]:
        """Perform a PATCH request."""
        return self.request("PATCH", endpoint, json=json, **kwargs)

    # -------------------------------------------------------------------------
    # Response Handling
    # -------------------------------------------------------------------------

    def _handle_response(
        self, response: requests.Response, endpoint: str
    ) -> dict[str, Any] | list[Any]:
        """Handle API response and convert errors to typed exceptions."""
        if response.ok:
            if response.text:
                try:
                    json_data = response.json()
                    if isinstance(json_data, (dict, list)):
                        return json_data
                    return {}
                except ValueError:
                    return {}
            return {}

        status = response.status_code
        error_body = response.text[:500] if response.text else ""

        if status == 401:
            raise AuthenticationError("GitHub authentication failed. Sign in again.", endpoint)

        if status == 403:
            if response.headers.get("X-RateLimit-Remaining") == "0":
                raise RateLimitError(
                    f"GitHub rate limit exceeded for {endpoint}",
                    retry_after=self._retry_after(response),
                    resource=endpoint,
                )
            raise AccessDeniedError(
                f"Permission denied for {endpoint}. Check the app installation.", endpoint
            )

        if status == 404:
            raise ResourceNotFoundError(f"Not found: {endpoint}", endpoint)

        if status == 422:
            raise ValidationFailedError(f"GitHub rejected {endpoint}: {error_body}", endpoint)

        if status == 429:
            raise RateLimitError(
                f"GitHub rate limit exceeded for {endpoint}",
                retry_after=self._retry_after(response),
                resource=endpoint,
            )

        if status >= 500:
            raise TransientError(f"GitHub server error {status} for {endpoint}", endpoint)

        raise RemoteError(f"GitHub API error {status}: {error_body}", endpoint)

    @staticmethod
    def _retry_after(response: requests.Response) -> int | None:
        value = response.headers.get("Retry-After")
        if value and value.isdigit():
            return int(value)
        return None

    # -------------------------------------------------------------------------
    # Users & Repositories
    # -------------------------------------------------------------------------

    def get_authenticated_user(self) -> dict[str, Any]:
        """Get the user the token belongs to."""
        result = self.get("/user")
        return result if isinstance(result, dict) else {}

    def list_user_repositories(self) -> list[dict[str, Any]]:
        """List the user's repositories, following pages until a short one."""
        repos: list[dict[str, Any]] = []
        page = 1
        while True:
            result = self.get(
                "/user/repos",
                params={"per_page": self.REPOS_PER_PAGE, "sort": "updated", "page": page},
            )
            batch = result if isinstance(result, list) else []
            repos.extend(batch)
            if len(batch) < self.REPOS_PER_PAGE:
                return repos
            page += 1

    def get_repository(self, full_name: str) -> dict[str, Any]:
        result = self.get(f"/repos/{full_name}")
        return result if isinstance(result, dict) else {}

    # -------------------------------------------------------------------------
    # Branches & Refs
    # -------------------------------------------------------------------------

    def get_branch(self, owner: str, repo: str, branch: str) -> dict[str, Any]:
        result = self.get(f"/repos/{owner}/{repo}/branches/{branch}")
        return result if isinstance(result, dict) else {}

    def update_ref(
        self, owner: str, repo: str, ref: str, sha: str, force: bool = False
    ) -> dict[str, Any]:
        result = self.patch(
            f"/repos/{owner}/{repo}/git/refs/{ref}", json={"sha": sha, "force": force}
        )
        return result if isinstance(result, dict) else {}

    def create_ref(self, owner: str, repo: str, ref: str, sha: str) -> dict[str, Any]:
        result = self.post(f"/repos/{owner}/{repo}/git/refs", json={"ref": ref, "sha": sha})
        return result if isinstance(result, dict) else {}

    # -------------------------------------------------------------------------
    # Git Data
    # -------------------------------------------------------------------------

    def create_blob(self, owner: str, repo: str, content: str, encoding: str) -> dict[str, Any]:
        result = self.post(
            f"/repos/{owner}/{repo}/git/blobs", json={"content": content, "encoding": encoding}
        )
        return result if isinstance(result, dict) else {}

    def create_tree(
        self, owner: str, repo: str, base_tree: str, tree: list[dict[str, Any]]
    ) -> dict[str, Any]:
        result = self.post(
            f"/repos/{owner}/{repo}/git/trees", json={"base_tree": base_tree, "tree": tree}
        )
        return result if isinstance(result, dict) else {}

    def create_commit(
        self, owner: str, repo: str, message: str, tree: str, parents: list[str]
    ) -> dict[str, Any]:
        result = self.post(
            f"/repos/{owner}/{repo}/git/commits",
            json={"message": message, "tree": tree, "parents": parents},
        )
        return result if isinstance(result, dict) else {}

    # -------------------------------------------------------------------------
    # Pull Requests
    # -------------------------------------------------------------------------

    def create_pull_request(
        self, owner: str, repo: str, title: str, body: str, head: str, base: str
    ) -> dict[str, Any]:
        result = self.post(
            f"/repos/{owner}/{repo}/pulls",
            json={"title": title, "body": body, "head": head, "base": base},
        )
        return result if isinstance(result, dict) else {}

    # -------------------------------------------------------------------------
    # Resource Cleanup
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Close the client and release connection pool resources."""
        self._session.close()
        self.logger.debug("Closed HTTP session")

    def __enter__(self) -> "GitHubApiClient":
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: Any,
    ) -> None:
        self.close()


class GitHubOAuthClient:
    """Exchanges an OAuth authorization code for a user access token."""

    DEFAULT_TOKEN_URL = "https://github.com/login/oauth/access_token"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_url: str = DEFAULT_TOKEN_URL,
        timeout: float = GitHubApiClient.DEFAULT_TIMEOUT,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = token_url
        self.timeout = timeout
        self.logger = logging.getLogger("GitHubOAuthClient")
        self._session = requests.Session()
        self._session.headers.update({"Accept": "application/json"})

    def exchange_code(self, code: str, redirect_uri: str | None = None) -> str:
        """
        Exchange an authorization code for an access token.

        Raises:
            AuthenticationError: If GitHub rejects the code.
            TransientError: On network failure.
        """
        data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "code": code,
        }
        if redirect_uri:
            data["redirect_uri"] = redirect_uri

        try:
            response = self._session.post(self.token_url, data=data, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise TransientError("Failed to reach GitHub OAuth endpoint", self.token_url, e)

        if not response.ok:
            raise AuthenticationError(
                f"OAuth token exchange failed with HTTP {response.status_code}", self.token_url
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise AuthenticationError("OAuth token response was not JSON", self.token_url, e)

        if not isinstance(payload, dict):
            payload = {}
        token = payload.get("access_token")
        if not token:
            reason = payload.get("error_description") or payload.get("error") or "no token"
            raise AuthenticationError(f"OAuth token exchange failed: {reason}", self.token_url)

        self.logger.info("Exchanged OAuth code for access token")
        return str(token)

    def close(self) -> None:
        self._session.close()
