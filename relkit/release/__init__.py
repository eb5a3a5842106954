"""Release flow: versions, the branch state machine and the PR-window query."""

from relkit.release.errors import (
    InvalidRangeError,
    ReleaseError,
    ResolveError,
    TransitionError,
    VersionConflictError,
)
from relkit.release.history import CommitGraph, load_graph
from relkit.release.machine import ReleaseStateMachine
from relkit.release.model import ChecklistState, Commit, PullRequestId
from relkit.release.pr_parser import MergeEvent, MergeMessageParser
from relkit.release.resolver import format_pr_list, resolve_merged_between, resolve_refs
from relkit.release.semver import Version, parse_version

__all__ = [
    "ChecklistState",
    "Commit",
    "CommitGraph",
    "InvalidRangeError",
    "MergeEvent",
    "MergeMessageParser",
    "PullRequestId",
    "ReleaseError",
    "ReleaseStateMachine",
    "ResolveError",
    "TransitionError",
    "Version",
    "VersionConflictError",
    "format_pr_list",
    "load_graph",
    "parse_version",
    "resolve_merged_between",
    "resolve_refs",
]
