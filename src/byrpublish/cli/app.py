"""
CLI App - Main entry point for the byrpublish command line tool.
"""

from __future__ import annotations

import argparse
import logging
import sys
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

from byrpublish import __version__
from byrpublish.adapters.cache import MemoryCache
from byrpublish.adapters.config import EnvironmentConfigProvider
from byrpublish.adapters.feed import CachedMetadataFeed, HttpMetadataFeed
from byrpublish.adapters.github import GitHubAdapter, GitHubOAuthClient
from byrpublish.adapters.parsers import parse
from byrpublish.adapters.store import SqlAlchemyStagingStore, create_store
from byrpublish.adapters.upload import ArchiveUploader
from byrpublish.application import (
    AuthService,
    BindingService,
    ForkDetector,
    PublishOrchestrator,
    StagingService,
    WebhookHandler,
    WebhookServer,
)
from byrpublish.application.publish import (
    display_name,
    generate_diff,
    generate_word_diff,
)
from byrpublish.core.domain.entities import MetadataRecord, User
from byrpublish.core.domain.enums import ChangeStatus
from byrpublish.core.exceptions import (
    FileExistsRemoteError,
    ParserError,
    PublishError,
    RecordValidationError,
    UploadCancelledError,
)
from byrpublish.core.ports.config_provider import AppConfig
from byrpublish.core.ports.github import GitHubPort
from byrpublish.core.validation import validate_record

from .exit_codes import ExitCode
from .output import Console, DiffFormatter


T = TypeVar("T")


def create_parser() -> argparse.ArgumentParser:
    """
    Create the command-line argument parser for byrpublish.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog="byrpublish",
        description="Stage and publish BYR Docs archive metadata as GitHub pull requests",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Sign in with the code GitHub redirected back with
  byrpublish login --code 1a2b3c4d

  # See staged changes and conflicts
  byrpublish status

  # Check a metadata file before staging it
  byrpublish validate 0123456789abcdef0123456789abcdef.yml

  # Stage a new record, or an edit of a published one
  byrpublish stage new book.yml
  byrpublish stage edit book.yml

  # Review one change
  byrpublish show 0123456789abcdef0123456789abcdef

  # Choose the fork to publish from, then open the pull request
  byrpublish bind --installation 12345678
  byrpublish publish
        """,
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", "-c", type=str, help="Path to config file")
    parser.add_argument("--database-url", type=str, help="SQLAlchemy database URL")
    parser.add_argument("--user", "-u", type=str, help="GitHub login to act as")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--quiet", "-q", action="store_true", help="Only print errors and results")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default="text",
        help="Log output format (default: text)",
    )
    parser.add_argument("--log-file", type=str, help="Also write logs to this file")

    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    login = sub.add_parser("login", help="Sign in with GitHub")
    creds = login.add_mutually_exclusive_group(required=True)
    creds.add_argument("--code", type=str, help="OAuth authorization code")
    creds.add_argument("--token", type=str, help="Existing GitHub access token")

    status = sub.add_parser("status", help="List staged changes and conflicts")
    status.add_argument("--all", action="store_true", help="Include unchanged records")

    show = sub.add_parser("show", help="Show the diff of one record")
    show.add_argument("id", help="Record id (file MD5)")
    show.add_argument("--word", action="store_true", help="Word-level diff")

    validate = sub.add_parser("validate", help="Validate a metadata file")
    validate.add_argument("file", help="Metadata YAML file")

    stage = sub.add_parser("stage", help="Stage a new record or an edit")
    stage.add_argument("mode", choices=["new", "edit"])
    stage.add_argument("file", help="Metadata YAML file")

    delete = sub.add_parser("delete", help="Stage deletion of a record")
    delete.add_argument("id", help="Record id (file MD5)")

    revert = sub.add_parser("revert", help="Discard staged changes")
    target = revert.add_mutually_exclusive_group(required=True)
    target.add_argument("id", nargs="?", help="Record id (file MD5)")
    target.add_argument("--all", action="store_true", help="Discard every staged change")

    bind = sub.add_parser("bind", help="Show or set the fork to publish from")
    bind.add_argument("--installation", type=int, help="Installation id to bind")

    publish = sub.add_parser("publish", help="Open a pull request with all staged changes")
    publish.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")

    upload = sub.add_parser("upload", help="Upload a file to the archive")
    upload.add_argument("file", help="PDF or ZIP file")

    webhook = sub.add_parser("webhook", help="Run the GitHub App webhook receiver")
    webhook.add_argument("--host", type=str, help="Bind address")
    webhook.add_argument("--port", type=int, help="Port")

    return parser


# =============================================================================
# Wiring
# =============================================================================


@dataclass
class Services:
    """Everything a command needs, built once from configuration."""

    config: AppConfig
    store: SqlAlchemyStagingStore
    staging: StagingService

    def github(self, token: str | None) -> GitHubPort:
        return GitHubAdapter(
            token=token, base_url=self.config.github.api_url, timeout=self.config.github.timeout
        )


def load_config(args: argparse.Namespace, console: Console) -> AppConfig | None:
    provider = EnvironmentConfigProvider(
        config_file=Path(args.config) if args.config else None,
        cli_overrides={
            "database_url": args.database_url,
            "username": args.user,
            "host": getattr(args, "host", None),
            "port": getattr(args, "port", None),
        },
    )
    errors = provider.validate()
    if errors:
        console.config_errors(errors)
        return None
    config = provider.load()
    console.debug(f"Configuration loaded from {provider.name}")
    return config


def build_services(config: AppConfig) -> Services:
    store = create_store(config.store.database_url, echo=config.store.echo)
    feed = CachedMetadataFeed(
        HttpMetadataFeed(url=config.archive.metadata_url, timeout=config.github.timeout),
        MemoryCache(default_ttl=config.archive.cache_ttl),
        ttl=config.archive.cache_ttl,
    )
    return Services(config=config, store=store, staging=StagingService(store, feed))


def current_user(services: Services, console: Console) -> User | None:
    username = services.config.username
    if not username:
        console.error("No user selected; pass --user or set BYRPUBLISH_USERNAME")
        return None
    user = services.store.get_user_by_username(username)
    if user is None:
        console.error(f"{username} has not signed in; run 'byrpublish login' first")
    return user


def read_record(path: str, console: Console) -> MetadataRecord | None:
    file = Path(path)
    if not file.is_file():
        console.error(f"File not found: {path}")
        return None
    try:
        return parse(file.read_text(encoding="utf-8"))
    except ParserError as e:
        console.error(f"{path}: {e.message}")
        return None


# =============================================================================
# Commands
# =============================================================================


def run_login(args: argparse.Namespace, services: Services, console: Console) -> int:
    github_config = services.config.github
    oauth = None
    if github_config.has_oauth():
        oauth = GitHubOAuthClient(
            github_config.client_id,
            github_config.client_secret,
            token_url=github_config.oauth_token_url,
            timeout=github_config.timeout,
        )
    auth = AuthService(services.store, services.github, oauth, github_config.redirect_uri)

    if args.code:
        if oauth is None:
            console.error("GitHub OAuth is not configured (GITHUB_CLIENT_ID/GITHUB_CLIENT_SECRET)")
            return ExitCode.CONFIG_ERROR
        user = auth.login_with_code(args.code)
    else:
        user = auth.login_with_token(args.token)

    console.success(f"Signed in as {user.username}")
    if services.config.username != user.username:
        console.info(f"Use --user {user.username} or set BYRPUBLISH_USERNAME={user.username}")
    return ExitCode.SUCCESS


def run_status(args: argparse.Namespace, services: Services, console: Console) -> int:
    user = current_user(services, console)
    if user is None:
        return ExitCode.AUTH_ERROR
    files = services.staging.reconciled_view(user)
    console.header(f"Staged changes for {user.username}")
    console.reconciled_files(files, show_unchanged=args.all)
    return ExitCode.SUCCESS


def run_show(args: argparse.Namespace, services: Services, console: Console) -> int:
    user = current_user(services, console)
    if user is None:
        return ExitCode.AUTH_ERROR
    file = services.staging.get_file(user, args.id)
    if file is None:
        console.error(f"No record {args.id}")
        return ExitCode.NOT_FOUND

    if file.status is ChangeStatus.CREATED:
        old, new = "", file.content
    elif file.status is ChangeStatus.DELETED:
        old, new = file.content, ""
    else:
        old, new = file.previous_content or file.content, file.content

    console.section(f"{file.filename}  {console.status_badge(file)}")
    if args.word:
        formatter = DiffFormatter(color=console.color)
        console.print(formatter.format_word_diff(generate_word_diff(old, new)), force=True)
    else:
        console.diff(generate_diff(old, new))
    return ExitCode.SUCCESS


def run_validate(args: argparse.Namespace, services: Services | None, console: Console) -> int:
    record = read_record(args.file, console)
    if record is None:
        return ExitCode.VALIDATION_ERROR
    errors = validate_record(record)
    if errors:
        console.field_errors(errors)
        return ExitCode.VALIDATION_ERROR
    console.success(f"{args.file} is a valid {record.kind.display_name}记录")
    return ExitCode.SUCCESS


def run_stage(args: argparse.Namespace, services: Services, console: Console) -> int:
    user = current_user(services, console)
    if user is None:
        return ExitCode.AUTH_ERROR
    record = read_record(args.file, console)
    if record is None:
        return ExitCode.VALIDATION_ERROR

    try:
        if args.mode == "new":
            change = services.staging.stage_creation(user, record)
        else:
            change = services.staging.stage_edit(user, record.id, record)
    except RecordValidationError as e:
        console.field_errors(e.errors)
        return ExitCode.VALIDATION_ERROR

    console.success(f"Staged {change.status.value}: {display_name(change)}")
    return ExitCode.SUCCESS


def run_delete(args: argparse.Namespace, services: Services, console: Console) -> int:
    user = current_user(services, console)
    if user is None:
        return ExitCode.AUTH_ERROR
    change = services.staging.stage_deletion(user, args.id)
    if change is None:
        console.success(f"Dropped local change {args.id}")
    else:
        console.success(f"Staged deletion: {display_name(change)}")
    return ExitCode.SUCCESS


def run_revert(args: argparse.Namespace, services: Services, console: Console) -> int:
    user = current_user(services, console)
    if user is None:
        return ExitCode.AUTH_ERROR
    if args.all:
        count = services.staging.revert_all(user)
        console.success(f"Reverted {count} change(s)")
    elif services.staging.revert(user, args.id):
        console.success(f"Reverted {args.id}")
    else:
        console.info(f"Nothing staged for {args.id}")
    return ExitCode.SUCCESS


def run_bind(args: argparse.Namespace, services: Services, console: Console) -> int:
    user = current_user(services, console)
    if user is None:
        return ExitCode.AUTH_ERROR
    binding_service = BindingService(services.store, services.github)

    if args.installation is not None:
        binding = binding_service.bind_repository(user, args.installation)
        console.success(f"Bound {binding.installation.repository_full_name}")
        return ExitCode.SUCCESS

    page = binding_service.load_binding_page(user)
    console.section("Current repository")
    if page.current is None:
        console.info("No repository bound")
    else:
        console.item(page.current.installation.repository_full_name or page.current.owner, "ok")

    console.section("Available repositories")
    if not page.available:
        console.info(
            f"No fork of {services.config.archive.upstream_full_name} with the app installed"
        )
    else:
        console.table(
            ["Repository", "Installation"],
            [[a.full_name, str(a.installation_id)] for a in page.available],
        )
    return ExitCode.SUCCESS


def run_publish(args: argparse.Namespace, services: Services, console: Console) -> int:
    user = current_user(services, console)
    if user is None:
        return ExitCode.AUTH_ERROR

    changes = services.staging.list_changes(user)
    if not changes:
        console.info("没有文件变更需要提交")
        return ExitCode.SUCCESS

    console.header("Publish")
    for change in changes:
        console.item(f"{change.status.verb} {display_name(change)}")
    conflicts = [f for f in services.staging.reconciled_view(user) if f.has_conflict]
    if conflicts:
        console.warning(f"{len(conflicts)} change(s) conflict with the archive")
    if not args.yes and not console.confirm(f"Open a pull request with {len(changes)} change(s)?"):
        return ExitCode.CANCELLED

    orchestrator = PublishOrchestrator(services.store, services.github, services.config.archive)
    result = orchestrator.publish(user, progress_callback=console.publish_progress)
    console.publish_result(result)

    if result.success:
        return ExitCode.SUCCESS
    if result.binding_required:
        return ExitCode.BINDING_REQUIRED
    return ExitCode.PUBLISH_ERROR


def run_cancellable(func: Callable[[], T], cancel: threading.Event, poll_interval: float = 0.2) -> T:
    """
    Run ``func`` in a worker thread while the main thread waits for Ctrl-C.

    On Ctrl-C ``cancel`` is set and the worker is waited for, so it can
    clean up and raise its own cancellation error.
    """
    with ThreadPoolExecutor(max_workers=1) as pool:
        future = pool.submit(func)
        try:
            while True:
                try:
                    return future.result(timeout=poll_interval)
                except FutureTimeoutError:
                    continue
        except KeyboardInterrupt:
            cancel.set()
            return future.result()


def run_upload(args: argparse.Namespace, services: Services, console: Console) -> int:
    path = Path(args.file)
    if not path.is_file():
        console.error(f"File not found: {args.file}")
        return ExitCode.FILE_NOT_FOUND

    upload_config = services.config.upload
    uploader = ArchiveUploader(
        token=upload_config.token,
        credentials_url=upload_config.credentials_url,
        part_size=upload_config.part_size,
        allowed_extensions=upload_config.allowed_extensions,
    )
    cancel = threading.Event()

    def progress(done: int, total: int) -> None:
        if total:
            console.debug(f"Uploaded {done}/{total} bytes")

    try:
        result = run_cancellable(lambda: uploader.upload(path, cancel=cancel, progress=progress), cancel)
    except FileExistsRemoteError as e:
        console.warning(f"文件已存在: {e.key}")
        return ExitCode.ERROR
    except UploadCancelledError:
        console.warning("Upload cancelled")
        return ExitCode.CANCELLED

    console.success(f"Uploaded {result.key}")
    console.detail(f"id:  {result.md5}")
    console.detail(f"url: {result.url}")
    return ExitCode.SUCCESS


def run_webhook(args: argparse.Namespace, services: Services, console: Console) -> int:
    config = services.config
    if not config.github.webhook_secret:
        console.error("Webhook secret not configured (GITHUB_WEBHOOK_SECRET)")
        return ExitCode.CONFIG_ERROR

    detector = ForkDetector(
        services.github(config.github.app_token), config.archive.upstream_full_name
    )
    server = WebhookServer(
        WebhookHandler(services.store, detector),
        secret=config.github.webhook_secret,
        host=config.server.host,
        port=config.server.port,
        path=config.server.webhook_path,
    )
    host, port = server.address
    console.header("byrpublish webhook receiver")
    console.info(f"Listening on http://{host}:{port}{config.server.webhook_path}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.shutdown()
        console.info("Stopped")
    return ExitCode.SUCCESS


COMMANDS = {
    "login": run_login,
    "status": run_status,
    "show": run_show,
    "validate": run_validate,
    "stage": run_stage,
    "delete": run_delete,
    "revert": run_revert,
    "bind": run_bind,
    "publish": run_publish,
    "upload": run_upload,
    "webhook": run_webhook,
}


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the byrpublish CLI.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = create_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return ExitCode.ERROR

    from .logging import get_logger, setup_logging

    log_format = args.log_format
    setup_logging(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        log_format=log_format,
        log_file=args.log_file,
        static_fields={"service": "byrpublish"} if log_format == "json" else None,
    )

    console = Console(color=not args.no_color, verbose=args.verbose, quiet=args.quiet)
    handler = COMMANDS[args.command]
    log = get_logger("byrpublish.cli", command=args.command)
    log.debug("Running command")

    try:
        if args.command == "validate":
            return handler(args, None, console)

        config = load_config(args, console)
        if config is None:
            return ExitCode.CONFIG_ERROR
        return handler(args, build_services(config), console)

    except KeyboardInterrupt:
        console.print()
        console.warning("Interrupted by user")
        return ExitCode.SIGINT

    except PublishError as e:
        log.debug(f"Command failed: {e}", exc_info=True)
        console.error(str(e))
        return ExitCode.from_exception(e)


def run() -> None:
    """Entry point for the console script."""
    sys.exit(main())


if __name__ == "__main__":
    run()
