"""
Application Layer - use cases built on the core ports.

This layer contains:
- publish/: diffing, reconciliation, staging and the publish sequence
- auth: GitHub sign-in
- binding: choosing the fork to publish from
- webhook: GitHub App installation events
"""

from .auth import AuthService
from .binding import AvailableRepository, BindingPage, BindingService
from .publish import (
    PublishOrchestrator,
    PublishResult,
    PublishStep,
    PublishTarget,
    Reconciler,
    StagingService,
    generate_commit_message,
    reconcile,
)
from .webhook import ForkDetector, WebhookHandler, WebhookServer, verify_signature


__all__ = [
    "AuthService",
    "AvailableRepository",
    "BindingPage",
    "BindingService",
    "ForkDetector",
    "PublishOrchestrator",
    "PublishResult",
    "PublishStep",
    "PublishTarget",
    "Reconciler",
    "StagingService",
    "WebhookHandler",
    "WebhookServer",
    "generate_commit_message",
    "reconcile",
    "verify_signature",
]
