"""In-memory commit graph and its loader from git.

The resolver works on a CommitGraph only. Tests build graphs by hand; the
CLI and the harness load them from a repository with `load_graph`.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from relkit.core.result import Err, Ok, Result
from relkit.git.repository import Repository, RepositoryOperationError
from relkit.release.model import Commit

__all__ = ["CommitGraph", "load_graph"]

_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
_LOG_FORMAT = f"%H{_FIELD_SEP}%P{_FIELD_SEP}%B{_RECORD_SEP}"


def _empty_commits() -> dict[str, Commit]:
    return {}


@dataclass(frozen=True)
class CommitGraph:
    """Commits keyed by sha; parents outside the graph are ignored."""

    commits: Mapping[str, Commit] = field(default_factory=_empty_commits)

    @classmethod
    def from_commits(cls, commits: Iterable[Commit]) -> CommitGraph:
        return cls({c.sha: c for c in commits})

    def __contains__(self, sha: object) -> bool:
        return sha in self.commits

    def __len__(self) -> int:
        return len(self.commits)

    def get(self, sha: str) -> Commit | None:
        return self.commits.get(sha)

    def expand(self, sha: str) -> str:
        """Full sha for an abbreviated one; unchanged if unknown or ambiguous."""
        if sha in self.commits:
            return sha
        matches = [s for s in self.commits if s.startswith(sha)]
        return matches[0] if len(matches) == 1 else sha

    def parents(self, sha: str) -> tuple[str, ...]:
        commit = self.commits.get(sha)
        if commit is None:
            return ()
        return tuple(p for p in commit.parents if p in self.commits)

    def ancestors(self, sha: str) -> set[str]:
        """sha and every commit reachable from it."""
        if sha not in self.commits:
            return set()
        seen = {sha}
        stack = [sha]
        while stack:
            for parent in self.parents(stack.pop()):
                if parent not in seen:
                    seen.add(parent)
                    stack.append(parent)
        return seen

    def topo_order(self, tip: str, subset: set[str]) -> list[str]:
        """Order subset newest-first, starting from tip.

        A commit is emitted only after all of its children in subset. When a
        merge releases several parents, the side branch is walked before the
        first-parent line, as `git log --topo-order` does.
        """
        pending: dict[str, int] = {sha: 0 for sha in subset}
        for sha in subset:
            for parent in self.parents(sha):
                if parent in pending:
                    pending[parent] += 1

        order: list[str] = []
        # Other childless commits of subset are emitted after the tip's line.
        stack = sorted(sha for sha, n in pending.items() if n == 0 and sha != tip)
        if pending.get(tip) == 0:
            stack.append(tip)
        while stack:
            sha = stack.pop()
            order.append(sha)
            for parent in self.parents(sha):
                if parent not in pending:
                    continue
                pending[parent] -= 1
                if pending[parent] == 0:
                    stack.append(parent)
        return order


def _parse_log(output: str) -> list[Commit]:
    commits: list[Commit] = []
    for record in output.split(_RECORD_SEP):
        record = record.lstrip("\n")
        if not record.strip():
            continue
        parts = record.split(_FIELD_SEP, 2)
        if len(parts) != 3:
            continue
        sha, parents, message = parts
        commits.append(
            Commit(
                sha=sha.strip(),
                parents=tuple(parents.split()),
                message=message.rstrip("\n"),
            )
        )
    return commits


def load_graph(
    repo: Repository, refs: list[str]
) -> Result[CommitGraph, RepositoryOperationError]:
    """Load every commit reachable from refs."""
    shas: list[str] = []
    for ref in refs:
        resolved = repo.rev_parse(ref)
        if isinstance(resolved, Err):
            return resolved
        shas.append(resolved.value)

    output = repo.log(shas, _LOG_FORMAT)
    if isinstance(output, Err):
        return output
    return Ok(CommitGraph.from_commits(_parse_log(output.value)))
