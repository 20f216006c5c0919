"""
Tests for GitHubApiClient and GitHubOAuthClient.

Tests REST calls with mocked HTTP responses.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from byrpublish.adapters.github.client import GitHubApiClient, GitHubOAuthClient
from byrpublish.core.exceptions import (
    AccessDeniedError,
    AuthenticationError,
    RateLimitError,
    RemoteError,
    ResourceNotFoundError,
    TransientError,
    ValidationFailedError,
)


def make_response(status_code=200, json_data=None, headers=None, text=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.headers = headers or {}
    response.json.return_value = json_data if json_data is not None else {}
    response.text = text if text is not None else ("{}" if json_data is None else "x")
    return response


@pytest.fixture
def mock_session():
    """Create a mock requests session."""
    with patch("byrpublish.adapters.github.client.requests.Session") as mock:
        session_instance = MagicMock()
        mock.return_value = session_instance
        yield session_instance


@pytest.fixture
def github_client(mock_session):
    """Create GitHubApiClient with mocked session."""
    return GitHubApiClient(token="gho_test", base_url="https://api.github.com/", timeout=10)


# =============================================================================
# Setup
# =============================================================================


class TestClientSetup:
    """Tests for client construction."""

    def test_auth_headers(self, github_client):
        """Token is sent as a bearer token with the API version."""
        assert github_client.headers["Authorization"] == "Bearer gho_test"
        assert github_client.headers["X-GitHub-Api-Version"] == "2022-11-28"
        assert github_client.base_url == "https://api.github.com"

    def test_anonymous(self, mock_session):
        """No token means no Authorization header."""
        client = GitHubApiClient()
        assert "Authorization" not in client.headers

    def test_context_manager_closes_session(self, mock_session):
        """Leaving the context closes the session."""
        with GitHubApiClient(token="t"):
            pass
        mock_session.close.assert_called_once()


# =============================================================================
# Requests and errors
# =============================================================================


class TestRequests:
    """Tests for request plumbing and error mapping."""

    def test_get_builds_url_and_timeout(self, github_client, mock_session):
        """Endpoints are joined to the base URL and get the default timeout."""
        mock_session.request.return_value = make_response(json_data={"login": "octocat"})

        result = github_client.get("/user")

        assert result == {"login": "octocat"}
        mock_session.request.assert_called_once_with(
            "GET", "https://api.github.com/user", timeout=10
        )

    def test_empty_body(self, github_client, mock_session):
        """Empty successful bodies decode to {}."""
        mock_session.request.return_value = make_response(204, text="")
        assert github_client.patch("/x", json={}) == {}

    @pytest.mark.parametrize(
        "status,headers,exc_type",
        [
            (401, {}, AuthenticationError),
            (403, {}, AccessDeniedError),
            (403, {"X-RateLimit-Remaining": "0", "Retry-After": "60"}, RateLimitError),
            (404, {}, ResourceNotFoundError),
            (422, {}, ValidationFailedError),
            (429, {"Retry-After": "5"}, RateLimitError),
            (500, {}, TransientError),
            (502, {}, TransientError),
            (418, {}, RemoteError),
        ],
    )
    def test_status_mapping(self, github_client, mock_session, status, headers, exc_type):
        """HTTP failures map to typed errors."""
        mock_session.request.return_value = make_response(status, headers=headers, text="err")
        with pytest.raises(exc_type) as exc_info:
            github_client.get("/repos/a/b")
        assert exc_info.value.resource == "/repos/a/b"

    def test_rate_limit_retry_after(self, github_client, mock_session):
        """Retry-After is parsed into the error."""
        mock_session.request.return_value = make_response(429, headers={"Retry-After": "5"})
        with pytest.raises(RateLimitError) as exc_info:
            github_client.get("/user")
        assert exc_info.value.retry_after == 5

    def test_timeout_is_transient(self, github_client, mock_session):
        """Timeouts are raised, never retried."""
        mock_session.request.side_effect = requests.exceptions.Timeout()
        with pytest.raises(TransientError, match="timed out"):
            github_client.get("/user")
        assert mock_session.request.call_count == 1

    def test_connection_error_is_transient(self, github_client, mock_session):
        """Connection failures are transient errors."""
        mock_session.request.side_effect = requests.exceptions.ConnectionError()
        with pytest.raises(TransientError, match="Connection to GitHub failed"):
            github_client.get("/user")


# =============================================================================
# Endpoints
# =============================================================================


class TestEndpoints:
    """Tests for the endpoint wrappers."""

    def test_list_user_repositories_paginates(self, github_client, mock_session):
        """Pages are fetched until a short one."""
        full_page = [{"full_name": f"o/r{i}"} for i in range(100)]
        last_page = [{"full_name": "o/last"}]
        mock_session.request.side_effect = [
            make_response(json_data=full_page),
            make_response(json_data=last_page),
        ]

        repos = github_client.list_user_repositories()

        assert len(repos) == 101
        second_call = mock_session.request.call_args_list[1]
        assert second_call.kwargs["params"] == {"per_page": 100, "sort": "updated", "page": 2}

    def test_update_ref_force(self, github_client, mock_session):
        """Ref updates PATCH git/refs with force."""
        mock_session.request.return_value = make_response(json_data={"ref": "refs/heads/master"})
        github_client.update_ref("octocat", "byrdocs-archive", "heads/master", "abc", force=True)

        method, url = mock_session.request.call_args.args
        assert method == "PATCH"
        assert url.endswith("/repos/octocat/byrdocs-archive/git/refs/heads/master")
        assert mock_session.request.call_args.kwargs["json"] == {"sha": "abc", "force": True}

    def test_create_pull_request(self, github_client, mock_session):
        """Pull requests are POSTed with head and base."""
        mock_session.request.return_value = make_response(201, json_data={"number": 3})
        github_client.create_pull_request("byrdocs", "byrdocs-archive", "t", "b", "me:br", "master")

        kwargs = mock_session.request.call_args.kwargs
        assert kwargs["json"] == {"title": "t", "body": "b", "head": "me:br", "base": "master"}


# =============================================================================
# OAuth
# =============================================================================


class TestOAuthClient:
    """Tests for the OAuth code exchange."""

    @pytest.fixture
    def oauth(self, mock_session):
        return GitHubOAuthClient("cid", "secret", timeout=5)

    def test_exchange_code(self, oauth, mock_session):
        """A good response yields the access token."""
        mock_session.post.return_value = make_response(json_data={"access_token": "gho_new"})

        assert oauth.exchange_code("code123", "https://app/callback") == "gho_new"

        data = mock_session.post.call_args.kwargs["data"]
        assert data == {
            "client_id": "cid",
            "client_secret": "secret",
            "code": "code123",
            "redirect_uri": "https://app/callback",
        }
        mock_session.headers.update.assert_called_with({"Accept": "application/json"})

    def test_error_payload(self, oauth, mock_session):
        """GitHub reports bad codes in a 200 body."""
        mock_session.post.return_value = make_response(
            json_data={"error": "bad_verification_code", "error_description": "The code is incorrect"}
        )
        with pytest.raises(AuthenticationError, match="The code is incorrect"):
            oauth.exchange_code("bad")

    def test_http_failure(self, oauth, mock_session):
        """Non-2xx responses are authentication failures."""
        mock_session.post.return_value = make_response(500)
        with pytest.raises(AuthenticationError, match="HTTP 500"):
            oauth.exchange_code("x")

    def test_network_failure(self, oauth, mock_session):
        """Network errors are transient."""
        mock_session.post.side_effect = requests.exceptions.ConnectionError()
        with pytest.raises(TransientError):
            oauth.exchange_code("x")
