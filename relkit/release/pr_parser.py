"""Extract pull request merge events from commit messages.

The deploy flow records every PR integration in a commit message:

    Merge pull request #3 from acme/pr-3

and a cherry-picked copy of that merge keeps the same subject plus a trailer
written by `git cherry-pick -x`:

    (cherry picked from commit 0f3c...)

The parser turns such messages into typed MergeEvent values so the resolver
never deals with message formats directly.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from relkit.core.config import PullRequestConfig
from relkit.release.model import Commit, PullRequestId

__all__ = ["MergeEvent", "MergeMessageParser"]


@dataclass(frozen=True, slots=True)
class MergeEvent:
    """A commit that integrates a pull request.

    Attributes:
        pr: The pull request identifier
        branch: Source branch named in the message (e.g. "acme/pr-3")
        sha: The commit carrying the message
        cherry_picked_from: Original merge commit, when this is a copy
    """

    pr: PullRequestId
    branch: str
    sha: str
    cherry_picked_from: str | None = None

    @property
    def canonical_sha(self) -> str:
        """The merge commit this event stands for."""
        return self.cherry_picked_from or self.sha


class MergeMessageParser:
    """Pattern-based merge message parser.

    Merges whose source branch matches `exclude_branch_pattern` are not PR
    events: they fold a cherry-pick scratch branch into staging and carry no
    change of their own.
    """

    def __init__(
        self,
        *,
        merge_pattern: str,
        exclude_branch_pattern: str,
        cherry_pick_link_pattern: str,
    ) -> None:
        self._merge = re.compile(merge_pattern)
        self._exclude = re.compile(exclude_branch_pattern)
        self._link = re.compile(cherry_pick_link_pattern)

    @classmethod
    def from_config(cls, config: PullRequestConfig) -> MergeMessageParser:
        return cls(
            merge_pattern=config.merge_pattern,
            exclude_branch_pattern=config.exclude_branch_pattern,
            cherry_pick_link_pattern=config.cherry_pick_link_pattern,
        )

    def parse(self, commit: Commit) -> MergeEvent | None:
        m = self._merge.search(commit.subject)
        if m is None:
            return None

        branch = m.groupdict().get("branch") or ""
        if branch and self._exclude.search(branch):
            return None

        # search() takes the first trailer: the original, if a copy is copied again.
        link: str | None = None
        link_match = self._link.search(commit.message)
        if link_match is not None:
            has_sha = "sha" in self._link.groupindex
            link = link_match.group("sha") if has_sha else link_match.group(0)

        return MergeEvent(
            pr=PullRequestId(int(m.group("id"))),
            branch=branch,
            sha=commit.sha,
            cherry_picked_from=link,
        )
