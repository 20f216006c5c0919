"""
Publishing - diffing, reconciliation, staging and the publish sequence.
"""

from .commit_message import CommitMessage, display_info, display_name, generate_commit_message
from .diff import (
    DiffLine,
    DiffLineType,
    DiffStats,
    WordDiffSegment,
    generate_diff,
    generate_word_diff,
)
from .orchestrator import (
    PublishOrchestrator,
    PublishResult,
    PublishStep,
    PublishTarget,
    branch_name,
)
from .reconcile import Reconciler, reconcile
from .staging import StagingService


__all__ = [
    "CommitMessage",
    "DiffLine",
    "DiffLineType",
    "DiffStats",
    "PublishOrchestrator",
    "PublishResult",
    "PublishStep",
    "PublishTarget",
    "Reconciler",
    "StagingService",
    "WordDiffSegment",
    "branch_name",
    "display_info",
    "display_name",
    "generate_commit_message",
    "generate_diff",
    "generate_word_diff",
    "reconcile",
]
