"""
GitHub App webhook receiver.

GitHub notifies us when the app is installed, uninstalled, suspended, or
when repositories are added to or removed from an installation. Each
installation remembers at most one repository: the user's fork of the
archive, which is what they can later bind and publish from.

Requests are trusted only after their X-Hub-Signature-256 header matches an
HMAC-SHA256 of the raw body keyed with the webhook secret.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any
from urllib.parse import urlparse

from byrpublish.core.domain.entities import GitHubInstallation
from byrpublish.core.exceptions import PublishError, RecordNotFoundError, SignatureError
from byrpublish.core.ports.github import GitHubPort
from byrpublish.core.ports.staging_store import StagingStorePort


SIGNATURE_HEADER = "X-Hub-Signature-256"
SIGNATURE_PREFIX = "sha256="


def compute_signature(body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(body: bytes, header: str | None, secret: str) -> bool:
    """Constant-time check of ``header`` against the body's HMAC-SHA256."""
    if not header or not secret or not header.startswith(SIGNATURE_PREFIX):
        return False
    return hmac.compare_digest(compute_signature(body, secret), header)


def require_signature(body: bytes, header: str | None, secret: str) -> None:
    """
    Raises:
        SignatureError: If the header is missing or does not match.
    """
    if not header:
        raise SignatureError("No signature provided")
    if not verify_signature(body, header, secret):
        raise SignatureError("Invalid signature")


# =============================================================================
# Fork detection
# =============================================================================


def _repository_entries(value: Any) -> list[dict[str, Any]]:
    """The mapping entries of a repository list from an event payload."""
    if not isinstance(value, list):
        return []
    return [entry for entry in value if isinstance(entry, dict)]


class ForkDetector:
    """Finds which of a set of repositories is a fork of the archive."""

    def __init__(self, github: GitHubPort, upstream_full_name: str = "byrdocs/byrdocs-archive"):
        self.github = github
        self.upstream_full_name = upstream_full_name
        self.upstream_name = upstream_full_name.split("/")[-1]
        self.logger = logging.getLogger("ForkDetector")

    def is_archive_fork(self, full_name: str) -> bool:
        """True if ``full_name`` is a direct fork of the archive. Lookup errors count as no."""
        try:
            repo = self.github.get_repository(full_name)
        except PublishError as e:
            self.logger.warning(f"Failed to fetch repo details for {full_name}: {e}")
            return False
        is_fork = repo.fork and repo.parent_full_name == self.upstream_full_name
        if is_fork:
            self.logger.info(f"{full_name} is a fork of {self.upstream_full_name}")
        return is_fork

    async def _first_fork(self, candidates: list[dict[str, Any]]) -> str | None:
        results = await asyncio.gather(
            *(asyncio.to_thread(self.is_archive_fork, repo["full_name"]) for repo in candidates)
        )
        for repo, is_fork in zip(candidates, results):
            if is_fork:
                return str(repo["name"])
        return None

    async def find_archive_fork_async(self, repositories: Iterable[dict[str, Any]] | None) -> str | None:
        public = [
            repo
            for repo in _repository_entries(repositories)
            if not repo.get("private") and repo.get("full_name") and repo.get("name")
        ]
        if not public:
            return None

        named = [r for r in public if r["name"] == self.upstream_name]
        others = [r for r in public if r["name"] != self.upstream_name]
        self.logger.debug(f"Checking {len(named)} named and {len(others)} other repositories")

        found = await self._first_fork(named) if named else None
        if found is None and others:
            found = await self._first_fork(others)
        return found

    def find_archive_fork(self, repositories: Iterable[dict[str, Any]] | None) -> str | None:
        """
        Name of the archive fork among ``repositories``, or None.

        Repositories named like the archive are checked first, all in
        parallel; the rest are checked only if none of those is a fork.
        """
        return asyncio.run(self.find_archive_fork_async(repositories))


# =============================================================================
# Event handling
# =============================================================================


class WebhookHandler:
    """Applies installation events to the store."""

    def __init__(self, store: StagingStorePort, fork_detector: ForkDetector):
        self.store = store
        self.fork_detector = fork_detector
        self.logger = logging.getLogger("WebhookHandler")

    def handle(self, payload: dict[str, Any]) -> str:
        """
        Apply one event. Returns "processed", "ignored" (no installation or
        nothing to do) or "unhandled" (unknown action).
        """
        action = str(payload.get("action") or "")
        installation = payload.get("installation")
        handlers = {
            "created": self._on_created,
            "added": self._on_added,
            "removed": self._on_removed,
            "suspend": self._on_suspend,
            "unsuspend": self._on_unsuspend,
            "deleted": self._on_deleted,
        }
        handler = handlers.get(action)
        if handler is None:
            self.logger.info(f"Unhandled webhook action: {action}")
            return "unhandled"
        installation_id = self._installation_id(installation)
        if installation_id is None:
            self.logger.warning(f"Ignoring {action} event without a valid installation id")
            return "ignored"
        return handler(installation_id, installation, payload)

    @staticmethod
    def _installation_id(installation: Any) -> int | None:
        if not isinstance(installation, dict):
            return None
        value = installation.get("id")
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.isdigit():
            return int(value)
        return None

    @staticmethod
    def _account(installation: dict[str, Any]) -> tuple[str, str]:
        account = installation.get("account")
        if not isinstance(account, dict):
            account = {}
        return (
            str(account.get("login") or ""),
            str(account.get("type") or "User"),
        )

    def _on_created(
        self, installation_id: int, installation: dict[str, Any], payload: dict[str, Any]
    ) -> str:
        login, account_type = self._account(installation)
        repository_name = self.fork_detector.find_archive_fork(payload.get("repositories"))
        self.store.upsert_installation(
            GitHubInstallation(
                installation_id=installation_id,
                account_login=login,
                account_type=account_type,
                repository_name=repository_name,
                is_suspended=False,
            )
        )
        if repository_name:
            self.logger.info(f"Installation {installation_id} created for {login} with fork {repository_name}")
        else:
            self.logger.info(f"Installation {installation_id} created for {login} (no fork found)")
        return "processed"

    def _on_added(
        self, installation_id: int, installation: dict[str, Any], payload: dict[str, Any]
    ) -> str:
        login, account_type = self._account(installation)
        current = self.store.get_installation(installation_id)
        if current is not None and current.repository_name:
            self.logger.info(
                f"Installation {installation_id} already has {current.repository_name}, skipping added event"
            )
            return "ignored"

        repository_name = self.fork_detector.find_archive_fork(payload.get("repositories_added"))
        if not repository_name:
            return "ignored"

        self.store.upsert_installation(
            GitHubInstallation(
                installation_id=installation_id,
                account_login=login,
                account_type=account_type,
                repository_name=repository_name,
                is_suspended=current.is_suspended if current else False,
            )
        )
        self.logger.info(f"Fork {repository_name} added to installation {installation_id}")
        return "processed"

    def _on_removed(
        self, installation_id: int, installation: dict[str, Any], payload: dict[str, Any]
    ) -> str:
        current = self.store.get_installation(installation_id)
        if current is None or not current.repository_name:
            self.logger.info(f"Installation {installation_id} has no repository, skipping removed event")
            return "ignored"

        removed = {str(r.get("name")) for r in _repository_entries(payload.get("repositories_removed"))}
        if current.repository_name not in removed:
            return "ignored"

        count = self.store.delete_bindings_for_installation(installation_id)
        self.store.update_installation(installation_id, repository_name=None)
        self.logger.info(
            f"Repository {current.repository_name} removed from installation {installation_id}; "
            f"deleted {count} bindings"
        )
        return "processed"

    def _set_suspended(self, installation_id: int, suspended: bool) -> None:
        try:
            self.store.update_installation(installation_id, is_suspended=suspended)
        except RecordNotFoundError:
            self.logger.info(f"Installation {installation_id} not found")
            return
        self.logger.info(f"Installation {installation_id} {'suspended' if suspended else 'unsuspended'}")

    def _on_suspend(
        self, installation_id: int, installation: dict[str, Any], payload: dict[str, Any]
    ) -> str:
        self._set_suspended(installation_id, True)
        return "processed"

    def _on_unsuspend(
        self, installation_id: int, installation: dict[str, Any], payload: dict[str, Any]
    ) -> str:
        self._set_suspended(installation_id, False)
        return "processed"

    def _on_deleted(
        self, installation_id: int, installation: dict[str, Any], payload: dict[str, Any]
    ) -> str:
        self.store.delete_bindings_for_installation(installation_id)
        try:
            self.store.delete_installation(installation_id)
        except RecordNotFoundError:
            self.logger.info(f"Installation {installation_id} not found for deletion")
            return "processed"
        self.logger.info(f"Installation {installation_id} deleted")
        return "processed"


# =============================================================================
# HTTP
# =============================================================================


def process_request(
    handler: WebhookHandler, secret: str, body: bytes, signature: str | None
) -> tuple[int, dict[str, Any]]:
    """Verify and apply one webhook delivery; returns (HTTP status, JSON body)."""
    logger = logging.getLogger("WebhookServer")
    if not secret:
        logger.error("Webhook secret not configured")
        return 500, {"error": "Webhook secret not configured"}

    try:
        require_signature(body, signature, secret)
    except SignatureError as e:
        return 401, {"error": e.message}

    try:
        payload = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return 400, {"error": "Invalid JSON payload"}
    if not isinstance(payload, dict):
        return 400, {"error": "Invalid JSON payload"}

    action = payload.get("action")
    logger.info(f"GitHub webhook action: {action}")
    try:
        outcome = handler.handle(payload)
    except PublishError as e:
        logger.error(f"GitHub webhook error: {e}")
        return 500, {"error": "Failed to process webhook"}
    return 200, {"message": "Webhook processed successfully", "action": action, "outcome": outcome}


class WebhookServer:
    """Small threaded HTTP server exposing the webhook endpoint."""

    def __init__(
        self,
        handler: WebhookHandler,
        secret: str,
        host: str = "127.0.0.1",
        port: int = 8787,
        path: str = "/api/github/webhook",
    ):
        self.handler = handler
        self.secret = secret
        self.path = path
        self.logger = logging.getLogger("WebhookServer")
        self.httpd = ThreadingHTTPServer((host, port), self._request_handler())

    @property
    def address(self) -> tuple[str, int]:
        host, port = self.httpd.server_address[:2]
        return str(host), int(port)

    def _request_handler(self) -> type[BaseHTTPRequestHandler]:
        server = self

        class RequestHandler(BaseHTTPRequestHandler):
            def _send_json(self, payload: dict[str, Any], status: int = 200) -> None:
                data = json.dumps(payload, ensure_ascii=False).encode("utf-8")
                self.send_response(status)
                self.send_header("Content-Type", "application/json; charset=utf-8")
                self.send_header("Content-Length", str(len(data)))
                self.end_headers()
                self.wfile.write(data)

            def do_GET(self) -> None:
                if urlparse(self.path).path != server.path:
                    self._send_json({"error": "Not found"}, 404)
                    return
                self._send_json(
                    {
                        "message": "GitHub webhook endpoint is active",
                        "timestamp": datetime.now(timezone.utc).isoformat(),
                    }
                )

            def do_POST(self) -> None:
                if urlparse(self.path).path != server.path:
                    self._send_json({"error": "Not found"}, 404)
                    return
                length = int(self.headers.get("Content-Length", "0"))
                body = self.rfile.read(length) if length > 0 else b""
                status, payload = process_request(
                    server.handler, server.secret, body, self.headers.get(SIGNATURE_HEADER)
                )
                self._send_json(payload, status)

            def log_message(self, format: str, *args: Any) -> None:
                server.logger.debug(format % args)

        return RequestHandler

    def serve_forever(self) -> None:
        host, port = self.address
        self.logger.info(f"Listening on http://{host}:{port}{self.path}")
        self.httpd.serve_forever()

    def shutdown(self) -> None:
        self.httpd.shutdown()
        self.httpd.server_close()
