"""Scripted release scenarios.

Each scenario replays a slice of real deploy history: PRs merged while the
checklist is open or locked, cherry-picks to staging, production deploys,
and a revert that is later re-applied. After every milestone the PR-window
query is run against a fresh clone of the remote and compared with the list
deploy tooling must print.

Scenarios share one repository and run in order; each builds on the state
left by the previous one.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from relkit.core.config import RelkitConfig
from relkit.core.result import Err, Ok, Result
from relkit.git.repository import Repository
from relkit.harness.sandbox import Sandbox
from relkit.output.console import ConsoleProtocol
from relkit.release.machine import ReleaseStateMachine
from relkit.release.model import PullRequestId
from relkit.release.resolver import format_pr_list, resolve_refs

__all__ = [
    "AssertionFailure",
    "HasPretty",
    "SCENARIOS",
    "Scenario",
    "ScenarioContext",
]


class HasPretty(Protocol):
    def pretty(self) -> str: ...


@dataclass(frozen=True, slots=True)
class AssertionFailure:
    """A scenario check did not hold."""

    message: str
    expected: str | None = None
    actual: str | None = None

    def pretty(self) -> str:
        if self.expected is None and self.actual is None:
            return self.message
        return f"{self.message}: expected {self.expected}, got {self.actual}"


Step = Callable[[], Result[object, HasPretty]]


@dataclass
class ScenarioContext:
    sandbox: Sandbox
    machine: ReleaseStateMachine
    console: ConsoleProtocol
    config: RelkitConfig

    @property
    def repo(self) -> Repository:
        return self.machine.repo

    def run_steps(self, *steps: Step) -> Result[None, HasPretty]:
        """Run steps in order, stopping at the first failure."""
        for step in steps:
            result = step()
            if isinstance(result, Err):
                return Err(result.error)
        return Ok(None)

    def file_on(self, branch: str, path: str) -> str | None:
        """File content at branch's tip; None if the file does not exist there."""
        result = self.repo.show_file(branch, path)
        if isinstance(result, Err):
            return None
        return result.value

    def assert_prs_merged_between(
        self, lower: str, upper: str, expected: list[int]
    ) -> Result[None, HasPretty]:
        """Resolve lower..upper on a fresh clone and compare the printed list."""
        self.console.info(f"Checking PRs merged between {lower} and {upper}")
        checked_out = self.sandbox.checkout(self.sandbox.paths.verify)
        if isinstance(checked_out, Err):
            return checked_out

        resolved = resolve_refs(checked_out.value, lower, upper, self.config)
        if isinstance(resolved, Err):
            return resolved

        want = format_pr_list([PullRequestId(n) for n in expected])
        got = format_pr_list(resolved.value)
        if got != want:
            return Err(
                AssertionFailure(
                    f"wrong PR list for {lower}..{upper}", expected=want, actual=got
                )
            )
        self.console.success(f"{lower}..{upper} = {got}")
        return Ok(None)

    def assert_file(
        self, branch: str, path: str, expected: str | None, what: str
    ) -> Result[None, HasPretty]:
        """Check a file's stripped content on branch (None = must not exist)."""
        content = self.file_on(branch, path)
        actual = content.strip() if content is not None else None
        if actual != expected:
            return Err(AssertionFailure(what, expected=repr(expected), actual=repr(actual)))
        self.console.success(what)
        return Ok(None)


@dataclass(frozen=True, slots=True)
class Scenario:
    title: str
    run: Callable[[ScenarioContext], Result[None, HasPretty]]


def _changes(pr_id: int, path: str | None = None) -> dict[str, str]:
    return {path or f"PR{pr_id}.txt": f"Changes from PR #{pr_id}\n"}


def _wrapped(content: str | None) -> str:
    """Prepend and append a line around content, keeping its body."""
    body = (content or "").rstrip("\n")
    return f"Prepended content\n{body}\nAppended content\n"


def _simple_pr(ctx: ScenarioContext, pr_id: int) -> list[Step]:
    m = ctx.machine
    return [
        lambda: m.open_pr(pr_id, _changes(pr_id), f"Changes from PR #{pr_id}"),
        lambda: m.merge_pr(pr_id),
    ]


def _deploy_staging(ctx: ScenarioContext, bump: str = "patch") -> list[Step]:
    m = ctx.machine
    return [
        lambda: m.bump_version("minor" if bump == "minor" else "patch"),
        m.recreate_staging,
        m.tag_release,
    ]


def scenario_unlocked_merge(ctx: ScenarioContext) -> Result[None, HasPretty]:
    return ctx.run_steps(
        *_simple_pr(ctx, 1),
        *_deploy_staging(ctx),
        lambda: ctx.assert_prs_merged_between("1.0.0", "1.0.1", [1]),
    )


def scenario_locked_merge(ctx: ScenarioContext) -> Result[None, HasPretty]:
    return ctx.run_steps(
        ctx.machine.lock_checklist,
        *_simple_pr(ctx, 2),
    )


def scenario_locked_cherry_pick(ctx: ScenarioContext) -> Result[None, HasPretty]:
    m = ctx.machine
    return ctx.run_steps(
        lambda: m.open_pr(3, _changes(3), "Changes from PR #3"),
        lambda: m.cherry_pick_to_staging(3),
        m.tag_release,
        # checklist
        lambda: ctx.assert_prs_merged_between("1.0.0", "1.0.2", [3, 1]),
        # deploy comment
        lambda: ctx.assert_prs_merged_between("1.0.1", "1.0.2", [3]),
    )


def scenario_production_deploy(ctx: ScenarioContext) -> Result[None, HasPretty]:
    return ctx.run_steps(
        ctx.machine.recreate_production,
        lambda: ctx.assert_prs_merged_between("1.0.0", "1.0.2", [3, 1]),
    )


def scenario_new_checklist(ctx: ScenarioContext) -> Result[None, HasPretty]:
    return ctx.run_steps(
        *_deploy_staging(ctx, "minor"),
        lambda: ctx.assert_prs_merged_between("1.0.2", "1.1.0", [2]),
    )


def scenario_unlocked_merge_again(ctx: ScenarioContext) -> Result[None, HasPretty]:
    return ctx.run_steps(
        *_simple_pr(ctx, 5),
        *_deploy_staging(ctx),
        lambda: ctx.assert_prs_merged_between("1.0.2", "1.1.1", [5, 2]),
        lambda: ctx.assert_prs_merged_between("1.1.0", "1.1.1", [5]),
    )


def scenario_revert_and_reapply(ctx: ScenarioContext) -> Result[None, HasPretty]:
    m = ctx.machine
    main = ctx.config.branches.main
    staging = ctx.config.branches.staging
    return ctx.run_steps(
        lambda: m.open_pr(6, _changes(6, "myFile.txt"), "Add myFile.txt in PR #6"),
        lambda: m.merge_pr(6),
        *_deploy_staging(ctx),
        lambda: ctx.assert_prs_merged_between("1.0.2", "1.1.2", [6, 5, 2]),
        lambda: ctx.assert_prs_merged_between("1.1.1", "1.1.2", [6]),
        lambda: m.open_pr(
            7,
            {"myFile.txt": _wrapped(ctx.file_on(main, "myFile.txt"))},
            "Append and prepend content in myFile.txt",
        ),
        lambda: m.merge_pr(7),
        *_deploy_staging(ctx),
        lambda: ctx.assert_prs_merged_between("1.0.2", "1.1.3", [7, 6, 5, 2]),
        lambda: ctx.assert_prs_merged_between("1.1.2", "1.1.3", [7]),
        m.lock_checklist,
        lambda: m.open_pr(8, {"anotherFile.txt": "some content\n"}, "Create another file"),
        lambda: m.merge_pr(8),
        lambda: m.open_pr(9, {"myFile.txt": "some content\n"}, "Revert append and prepend"),
        lambda: m.cherry_pick_to_staging(9),
        m.tag_release,
        lambda: ctx.assert_file(
            staging, "myFile.txt", "some content", "Revert made it to staging"
        ),
        lambda: ctx.assert_file(
            staging, "anotherFile.txt", None, "Unrelated change not on staging yet"
        ),
        lambda: m.open_pr(
            10,
            {"myFile.txt": _wrapped(ctx.file_on(main, "myFile.txt"))},
            "Append and prepend content in myFile.txt",
        ),
        lambda: m.merge_pr(10),
        m.recreate_production,
        *_deploy_staging(ctx, "minor"),
        # production release body
        lambda: ctx.assert_prs_merged_between("1.0.2", "1.1.4", [9, 7, 6, 5, 2]),
        # new checklist
        lambda: ctx.assert_prs_merged_between("1.1.4", "1.2.0", [10, 8]),
    )


SCENARIOS: tuple[Scenario, ...] = (
    Scenario(
        "Scenario #1: Merge a pull request while the checklist is unlocked",
        scenario_unlocked_merge,
    ),
    Scenario(
        "Scenario #2: Merge a pull request with the checklist locked, but don't CP it",
        scenario_locked_merge,
    ),
    Scenario(
        "Scenario #3: Merge a pull request with the checklist locked and CP it to staging",
        scenario_locked_cherry_pick,
    ),
    Scenario(
        "Scenario #4A: Close the checklist and run the production deploy",
        scenario_production_deploy,
    ),
    Scenario(
        "Scenario #4B: Run the staging deploy and create a new checklist",
        scenario_new_checklist,
    ),
    Scenario(
        "Scenario #5: Merging another pull request when the checklist is unlocked",
        scenario_unlocked_merge_again,
    ),
    Scenario(
        "Scenario #6: Deploying a PR, then CPing a revert, then adding the same code "
        "back again before the next production deploy",
        scenario_revert_and_reapply,
    ),
)
