"""Deploy-window PR resolution.

Answers "which pull requests are new between version A and version B" on a
main/staging/production topology where staging may carry cherry-picked PRs
that main only ships later.

Both sides of the window are inspected:

- upper-only commits (reachable from upper, not from lower) hold the
  candidate merge events;
- lower-only commits exist when lower sits on a staging line that main never
  merged back. Any PR merged there already shipped with lower, so its
  main-line merge inside the window is not new.

Events are matched by their canonical merge commit (the `-x` link of a
cherry-pick), never by file content. A revert and a later re-apply therefore
stay two separate PRs.
"""

from __future__ import annotations

from relkit.core.config import RelkitConfig
from relkit.core.result import Err, Ok, Result
from relkit.git.repository import Repository
from relkit.release.errors import InvalidRangeError, ResolveError
from relkit.release.history import CommitGraph, load_graph
from relkit.release.model import PullRequestId
from relkit.release.pr_parser import MergeEvent, MergeMessageParser

__all__ = ["format_pr_list", "resolve_merged_between", "resolve_refs"]


def _events(
    graph: CommitGraph, shas: list[str], parser: MergeMessageParser
) -> list[MergeEvent]:
    events: list[MergeEvent] = []
    for sha in shas:
        commit = graph.get(sha)
        if commit is None:
            continue
        event = parser.parse(commit)
        if event is not None:
            events.append(event)
    return events


def resolve_merged_between(
    graph: CommitGraph,
    lower: str,
    upper: str,
    parser: MergeMessageParser,
) -> Result[list[PullRequestId], InvalidRangeError]:
    """PRs newly merged in the window lower -> upper, newest first.

    Args:
        graph: History containing both commits
        lower: sha of the older release
        upper: sha of the newer release
        parser: Merge message parser

    Returns:
        Ok(ids) in newest-first order, Err(InvalidRangeError) if the refs
        share no history or upper is behind lower.
    """
    for sha in (lower, upper):
        if sha not in graph:
            return Err(InvalidRangeError(lower, upper, f"commit {sha[:8]} is not in history"))

    if lower == upper:
        return Ok([])

    upper_set = graph.ancestors(upper)
    lower_set = graph.ancestors(lower)
    if not upper_set & lower_set:
        return Err(InvalidRangeError(lower, upper, "the refs share no history"))
    if upper in lower_set:
        return Err(InvalidRangeError(lower, upper, "upper is an ancestor of lower"))

    upper_only = upper_set - lower_set
    lower_only = lower_set - upper_set

    upper_events = _events(graph, graph.topo_order(upper, upper_only), parser)
    lower_events = _events(graph, sorted(lower_only), parser)

    # A legal diverged window only has PR copies below; each one's source
    # must be reachable from upper. Anything else means the refs are reversed.
    reachable = upper_set | {graph.expand(e.canonical_sha) for e in upper_events}
    upper_prs = {e.pr for e in upper_events}
    for event in lower_events:
        if graph.expand(event.canonical_sha) in reachable:
            continue
        if event.pr in upper_prs:
            continue
        return Err(
            InvalidRangeError(
                lower, upper, f"PR #{event.pr} is behind lower but not reachable from upper"
            )
        )

    shipped = {graph.expand(e.canonical_sha) for e in lower_events}
    # Cherry-picks made without -x can only be matched by PR number.
    shipped_unlinked = {e.pr for e in lower_events if e.cherry_picked_from is None}

    result: list[PullRequestId] = []
    seen: set[PullRequestId] = set()
    for event in upper_events:
        if graph.expand(event.canonical_sha) in shipped or event.pr in shipped_unlinked:
            continue
        if event.pr in seen:
            continue
        seen.add(event.pr)
        result.append(event.pr)
    return Ok(result)


def resolve_refs(
    repo: Repository,
    lower_ref: str,
    upper_ref: str,
    config: RelkitConfig,
) -> Result[list[PullRequestId], ResolveError]:
    """Resolve two refs (tags, branches or shas) in repo and run the query."""
    lower = repo.rev_parse(lower_ref)
    if isinstance(lower, Err):
        return lower
    upper = repo.rev_parse(upper_ref)
    if isinstance(upper, Err):
        return upper

    graph = load_graph(repo, [upper.value, lower.value])
    if isinstance(graph, Err):
        return graph

    parser = MergeMessageParser.from_config(config.pull_requests)
    result = resolve_merged_between(graph.value, lower.value, upper.value, parser)
    if isinstance(result, Err):
        e = result.error
        return Err(InvalidRangeError(lower_ref, upper_ref, e.message))
    return result


def format_pr_list(prs: list[PullRequestId]) -> str:
    """Render ids the way deploy tooling prints them: `[ '3', '1' ]`."""
    if not prs:
        return "[]"
    return "[ " + ", ".join(f"'{pr}'" for pr in prs) + " ]"
