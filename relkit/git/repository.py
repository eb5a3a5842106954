"""Git repository driver.

`Repository` wraps the git primitives the release flow is built from: branch
create/switch/delete, commit, merge, cherry-pick, tag, push and force-push.
Every operation returns a Result; failures are RepositoryOperationError
values and are never retried here.

Usage:
    repo = Repository(Path("/tmp/sandbox/repo"))

    match repo.merge("pr-1", message="Merge pull request #1 from acme/pr-1"):
        case Ok(sha):
            print(f"merged as {sha[:8]}")
        case Err(e):
            print(f"merge failed: {e.pretty()}")
"""

from __future__ import annotations

import shutil
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Literal
from urllib.parse import urlsplit, urlunsplit

from relkit.core.result import Err, Ok, Result
from relkit.platform.process import ProcessError
from relkit.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0
_NETWORK_COMMANDS = frozenset({"clone", "fetch", "pull", "push", "ls-remote"})

# Never block on a credential prompt or an editor.
_GIT_ENV = {"GIT_TERMINAL_PROMPT": "0", "GIT_EDITOR": "true"}
_GIT_CONFIG = ["-c", "commit.gpgsign=false", "-c", "tag.gpgsign=false"]

__all__ = [
    "ConflictStrategy",
    "Repository",
    "RepositoryOperationError",
    "with_token",
]

ErrorKind = Literal["dirty", "conflict", "missing_ref", "command_failed", "remote_failed"]


@dataclass(frozen=True, slots=True)
class RepositoryOperationError:
    """Error from a repository operation.

    Attributes:
        kind: Failure family (dirty tree, conflict, missing ref, ...)
        command: The git subcommand that failed
        message: Error message
        hint: Raw git output or a suggestion, if any
    """

    kind: ErrorKind
    command: str
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message


class ConflictStrategy(StrEnum):
    """How merge/cherry-pick conflicts are resolved automatically.

    THEIRS prefers the incoming side (the commit being applied), OURS the
    branch being applied onto. NONE leaves conflicts unresolved, which makes
    the operation fail.
    """

    THEIRS = "theirs"
    OURS = "ours"
    NONE = "none"

    def as_args(self) -> list[str]:
        if self is ConflictStrategy.NONE:
            return []
        return [f"--strategy-option={self.value}"]


def with_token(url: str, token: str | None) -> str:
    """Embed a token into an HTTPS remote URL.

    Non-HTTPS URLs (local paths, ssh) and empty tokens are returned unchanged.
    """
    if not token:
        return url
    parts = urlsplit(url)
    if parts.scheme != "https" or not parts.hostname:
        return url
    netloc = f"{token}@{parts.hostname}"
    if parts.port:
        netloc += f":{parts.port}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


class Repository:
    """Working clone of the release repository.

    Attributes:
        path: Path to the working tree root
        remote: Name of the remote every push goes to
    """

    def __init__(self, path: Path, *, remote: str = "origin") -> None:
        self.path = path
        self.remote = remote

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    @classmethod
    def init(
        cls,
        path: Path,
        *,
        branch: str = "main",
        bare: bool = False,
        remote: str = "origin",
    ) -> Result[Repository, RepositoryOperationError]:
        """Create a new repository (optionally bare) at path."""
        path.mkdir(parents=True, exist_ok=True)
        args = ["init", f"--initial-branch={branch}"]
        if bare:
            args.append("--bare")
        result = run_process(
            ["git", *args, str(path)], cwd=path, env=_GIT_ENV, timeout=_GIT_TIMEOUT_SECONDS
        )
        if isinstance(result, Err):
            return Err(_wrap("init", result.error, message=f"git init failed: {path}"))
        return Ok(cls(path, remote=remote))

    @classmethod
    def clone(
        cls,
        url: str,
        dest: Path,
        *,
        remote: str = "origin",
    ) -> Result[Repository, RepositoryOperationError]:
        """Clone url into dest, replacing anything already at dest."""
        if dest.exists():
            shutil.rmtree(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        result = run_process(
            ["git", "clone", "--origin", remote, url, str(dest)],
            cwd=dest.parent,
            env=_GIT_ENV,
            timeout=_GIT_NETWORK_TIMEOUT_SECONDS,
        )
        if isinstance(result, Err):
            return Err(
                _wrap("clone", result.error, kind="remote_failed", message="git clone failed")
            )
        return Ok(cls(dest, remote=remote))

    def exists(self) -> bool:
        """True if path holds a non-bare working tree."""
        return (self.path / ".git").exists()

    def configure_identity(self, name: str, email: str) -> Result[None, RepositoryOperationError]:
        """Set the local author/committer identity used for new commits."""
        for key, value in (("user.name", name), ("user.email", email)):
            result = self._git("config", ["config", "--local", key, value])
            if isinstance(result, Err):
                return result
        return Ok(None)

    def add_remote(self, url: str) -> Result[None, RepositoryOperationError]:
        """Point this repository's remote at url (replacing it if present)."""
        existing = self._run(["remote"])
        if isinstance(existing, Ok) and self.remote in existing.value.split():
            result = self._git("remote", ["remote", "set-url", self.remote, url])
        else:
            result = self._git("remote", ["remote", "add", self.remote, url])
        return result.map(lambda _: None)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_clean(self) -> Result[bool, RepositoryOperationError]:
        """Check whether the working tree has no changes (untracked included)."""
        return self._git("status", ["status", "--porcelain"]).map(lambda out: out.strip() == "")

    def current_branch(self) -> str | None:
        """Get current branch name; None on detached HEAD or error."""
        result = self._run(["rev-parse", "--abbrev-ref", "HEAD"])
        match result:
            case Ok(stdout):
                branch = stdout.strip()
                return None if branch == "HEAD" else branch
            case Err(_):
                return None

    def rev_parse(self, ref: str) -> Result[str, RepositoryOperationError]:
        """Resolve ref to a full commit sha."""
        result = self._run(["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"])
        match result:
            case Ok(stdout):
                return Ok(stdout.strip())
            case Err(_):
                return Err(
                    RepositoryOperationError(
                        kind="missing_ref",
                        command="rev-parse",
                        message=f"unknown ref: {ref}",
                    )
                )

    def branch_exists(self, name: str) -> bool:
        """True if a local branch name exists (remote-tracking refs do not count)."""
        result = self._run(["rev-parse", "--verify", "--quiet", f"refs/heads/{name}"])
        return isinstance(result, Ok)

    def is_ancestor(self, ancestor: str, descendant: str) -> Result[bool, RepositoryOperationError]:
        """True if ancestor is reachable from descendant (or equal to it)."""
        for ref in (ancestor, descendant):
            resolved = self.rev_parse(ref)
            if isinstance(resolved, Err):
                return resolved
        result = self._run(["merge-base", "--is-ancestor", ancestor, descendant])
        match result:
            case Ok(_):
                return Ok(True)
            case Err(e) if e.returncode == 1:
                return Ok(False)
            case Err(e):
                return Err(_wrap("merge-base", e))

    def root_commit(self, ref: str = "HEAD") -> Result[str, RepositoryOperationError]:
        """First parentless commit reachable from ref."""
        result = self._git("rev-list", ["rev-list", "--max-parents=0", ref])
        match result:
            case Err(_):
                return result
            case Ok(stdout):
                roots = stdout.split()
                if not roots:
                    return Err(
                        RepositoryOperationError(
                            kind="missing_ref",
                            command="rev-list",
                            message=f"no root commit reachable from {ref}",
                        )
                    )
                return Ok(roots[-1])

    def show_file(self, ref: str, path: str) -> Result[str, RepositoryOperationError]:
        """Read a file's content at ref without touching the working tree."""
        result = self._run(["show", f"{ref}:{path}"])
        if isinstance(result, Err):
            return Err(
                _wrap(
                    "show",
                    result.error,
                    kind="missing_ref",
                    message=f"cannot read {path} at {ref}",
                )
            )
        return Ok(result.value)

    def read_file(self, path: str) -> str | None:
        """Read a file from the working tree; None if it does not exist."""
        target = self.path / path
        if not target.is_file():
            return None
        return target.read_text(encoding="utf-8")

    def tags(self) -> Result[list[str], RepositoryOperationError]:
        """List local tags.

        Returns:
            Ok(tag names) in git's sort order, which is not version order
        """
        return self._git("tag", ["tag", "--list"]).map(lambda out: out.split())

    def log(self, refs: list[str], fmt: str) -> Result[str, RepositoryOperationError]:
        """Raw `git log --format=fmt refs...` output over everything reachable."""
        return self._git("log", ["log", f"--format={fmt}", *refs, "--"])

    def remote_heads(self) -> Result[list[str], RepositoryOperationError]:
        """Branch names present on the remote."""
        return self._ls_remote("--heads", "refs/heads/")

    def remote_tags(self) -> Result[list[str], RepositoryOperationError]:
        """Tag names present on the remote (peeled entries skipped)."""
        return self._ls_remote("--tags", "refs/tags/")

    # ------------------------------------------------------------------
    # Branches
    # ------------------------------------------------------------------

    def switch(self, name: str) -> Result[None, RepositoryOperationError]:
        """Switch to an existing local branch."""
        guard = self._require_clean("switch")
        if isinstance(guard, Err):
            return guard
        if not self.branch_exists(name):
            return Err(
                RepositoryOperationError(
                    kind="missing_ref", command="switch", message=f"unknown branch: {name}"
                )
            )
        return self._git("switch", ["switch", name]).map(lambda _: None)

    def create_branch(
        self, name: str, start: str | None = None
    ) -> Result[None, RepositoryOperationError]:
        """Create a branch at start (default HEAD) and switch to it."""
        guard = self._require_clean("switch")
        if isinstance(guard, Err):
            return guard
        args = ["switch", "-c", name]
        if start is not None:
            resolved = self.rev_parse(start)
            if isinstance(resolved, Err):
                return resolved
            args.append(start)
        return self._git("switch", args).map(lambda _: None)

    def force_branch(self, name: str, start: str) -> Result[str, RepositoryOperationError]:
        """Point branch name at start, discarding its previous history.

        This is a snapshot copy, not a rebase. The branch must not be checked
        out.
        """
        resolved = self.rev_parse(start)
        if isinstance(resolved, Err):
            return resolved
        if self.current_branch() == name:
            return Err(
                RepositoryOperationError(
                    kind="command_failed",
                    command="branch",
                    message=f"cannot recreate the checked out branch: {name}",
                    hint="Switch to another branch first.",
                )
            )
        result = self._git("branch", ["branch", "--force", name, resolved.value])
        return result.map(lambda _: resolved.value)

    def track(self, name: str) -> Result[str, RepositoryOperationError]:
        """Create or reset local branch name from its remote-tracking branch."""
        return self.force_branch(name, f"refs/remotes/{self.remote}/{name}")

    def delete_branch(self, name: str, *, force: bool = False) -> Result[None, RepositoryOperationError]:
        """Delete a local branch (`-d`, or `-D` when force)."""
        if not self.branch_exists(name):
            return Err(
                RepositoryOperationError(
                    kind="missing_ref", command="branch", message=f"unknown branch: {name}"
                )
            )
        flag = "-D" if force else "-d"
        return self._git("branch", ["branch", flag, name]).map(lambda _: None)

    def reset_hard(self, ref: str) -> Result[str, RepositoryOperationError]:
        """Move the checked out branch and working tree to ref, dropping changes.

        Args:
            ref: Any commit-ish, e.g. `origin/main` or a sha

        Returns:
            Ok(sha) the branch now points at
        """
        resolved = self.rev_parse(ref)
        if isinstance(resolved, Err):
            return resolved
        result = self._git("reset", ["reset", "--hard", resolved.value])
        return result.map(lambda _: resolved.value)

    # ------------------------------------------------------------------
    # History-writing operations
    # ------------------------------------------------------------------

    def commit(
        self, files: Mapping[str, str], message: str
    ) -> Result[str, RepositoryOperationError]:
        """Write files (path -> full content), stage them and commit.

        Returns:
            Ok(sha) of the new commit
        """
        if not files:
            return Err(
                RepositoryOperationError(
                    kind="command_failed", command="commit", message="nothing to commit"
                )
            )
        for rel, content in files.items():
            target = self.path / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")

        add = self._git("add", ["add", "--", *files.keys()])
        if isinstance(add, Err):
            return add
        commit = self._git("commit", ["commit", "-m", message])
        if isinstance(commit, Err):
            return Err(
                RepositoryOperationError(
                    kind="command_failed",
                    command="commit",
                    message="git commit failed",
                    hint=commit.error.hint or "Configure user.name/user.email, then retry.",
                )
            )
        return self.rev_parse("HEAD")

    def merge(
        self,
        source: str,
        *,
        message: str,
        no_ff: bool = True,
        strategy: ConflictStrategy = ConflictStrategy.NONE,
    ) -> Result[str, RepositoryOperationError]:
        """Merge source into the current branch.

        With no_ff (the default) an explicit merge commit is always created.
        Unresolved conflicts abort the merge and return a `conflict` error.
        """
        guard = self._require_clean("merge")
        if isinstance(guard, Err):
            return guard
        resolved = self.rev_parse(source)
        if isinstance(resolved, Err):
            return resolved

        args = ["merge", *strategy.as_args(), "-m", message]
        if no_ff:
            args.append("--no-ff")
        args.append(source)

        result = self._run(args)
        if isinstance(result, Err):
            self._run(["merge", "--abort"])
            return Err(
                _wrap("merge", result.error, kind="conflict", message=f"merge of {source} failed")
            )
        return self.rev_parse("HEAD")

    def cherry_pick(
        self,
        commit: str,
        *,
        mainline: int | None = None,
        strategy: ConflictStrategy = ConflictStrategy.NONE,
    ) -> Result[str, RepositoryOperationError]:
        """Apply commit onto the current branch, recording its origin (`-x`).

        Args:
            commit: Commit to apply
            mainline: Parent number to diff against when commit is a merge
            strategy: Automatic conflict resolution policy

        Returns:
            Ok(sha) of the new commit
        """
        guard = self._require_clean("cherry-pick")
        if isinstance(guard, Err):
            return guard
        resolved = self.rev_parse(commit)
        if isinstance(resolved, Err):
            return resolved

        args = ["cherry-pick", "-x"]
        if mainline is not None:
            args += ["--mainline", str(mainline)]
        args += strategy.as_args()
        args.append(resolved.value)

        result = self._run(args)
        if isinstance(result, Err):
            self._run(["cherry-pick", "--abort"])
            return Err(
                _wrap(
                    "cherry-pick",
                    result.error,
                    kind="conflict",
                    message=f"cherry-pick of {resolved.value[:8]} failed",
                )
            )
        return self.rev_parse("HEAD")

    def tag(self, name: str, ref: str = "HEAD") -> Result[str, RepositoryOperationError]:
        """Create a lightweight tag; existing tags are never moved."""
        resolved = self.rev_parse(ref)
        if isinstance(resolved, Err):
            return resolved
        return self._git("tag", ["tag", name, resolved.value]).map(lambda _: name)

    # ------------------------------------------------------------------
    # Remote
    # ------------------------------------------------------------------

    def fetch(self, *, tags: bool = True) -> Result[None, RepositoryOperationError]:
        """Fetch from the remote, pruning deleted branches.

        Args:
            tags: Also fetch tags, overwriting local tags that moved remotely

        Returns:
            Ok(None), or Err with kind "remote_failed"
        """
        args = ["fetch", "--prune", self.remote]
        if tags:
            args[1:1] = ["--tags", "--force"]
        return self._git("fetch", args, network=True).map(lambda _: None)

    def push(self, branch: str) -> Result[None, RepositoryOperationError]:
        """Push a local branch to the same name on the remote (fast-forward only)."""
        return self._push([f"refs/heads/{branch}:refs/heads/{branch}"])

    def force_push(self, branch: str) -> Result[None, RepositoryOperationError]:
        """Push a local branch, replacing the remote branch whatever its history.

        Used for staging and production, which are recreated as snapshots.
        """
        return self._push([f"refs/heads/{branch}:refs/heads/{branch}"], flags=("--force",))

    def push_tag(self, tag: str) -> Result[None, RepositoryOperationError]:
        """Push one tag. Fails if the remote already has a different tag of that name."""
        return self._push([f"refs/tags/{tag}:refs/tags/{tag}"])

    def delete_remote_branch(self, branch: str) -> Result[None, RepositoryOperationError]:
        """Delete a branch on the remote; the local branch is left alone."""
        return self._push([f":refs/heads/{branch}"], flags=("--force",))

    def delete_remote_tags(self, tags: list[str]) -> Result[None, RepositoryOperationError]:
        """Delete tags on the remote in one push. An empty list is a no-op."""
        if not tags:
            return Ok(None)
        return self._push([f"refs/tags/{t}" for t in tags], flags=("--delete",))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _push(
        self, refspecs: list[str], *, flags: tuple[str, ...] = ()
    ) -> Result[None, RepositoryOperationError]:
        result = self._run(["push", *flags, self.remote, *refspecs])
        if isinstance(result, Err):
            return Err(_wrap("push", result.error, kind="remote_failed", message="git push failed"))
        return Ok(None)

    def _ls_remote(self, flag: str, prefix: str) -> Result[list[str], RepositoryOperationError]:
        result = self._git("ls-remote", ["ls-remote", flag, self.remote], network=True)
        if isinstance(result, Err):
            return result
        names: list[str] = []
        for line in result.value.splitlines():
            parts = line.split("\t", 1)
            if len(parts) != 2 or not parts[1].startswith(prefix):
                continue
            name = parts[1][len(prefix) :]
            if name.endswith("^{}"):
                continue
            names.append(name)
        return Ok(names)

    def _require_clean(self, command: str) -> Result[None, RepositoryOperationError]:
        clean = self.is_clean()
        if isinstance(clean, Err):
            return clean
        if not clean.value:
            return Err(
                RepositoryOperationError(
                    kind="dirty",
                    command=command,
                    message=f"working tree is dirty: {self.path}",
                    hint="Commit or discard local changes, or re-run from a reset.",
                )
            )
        return Ok(None)

    def _git(
        self, command: str, args: list[str], *, network: bool = False
    ) -> Result[str, RepositoryOperationError]:
        result = self._run(args)
        if isinstance(result, Err):
            kind: ErrorKind = "remote_failed" if network else "command_failed"
            return Err(_wrap(command, result.error, kind=kind))
        return Ok(result.value)

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        command = args[0] if args else ""
        timeout = (
            _GIT_NETWORK_TIMEOUT_SECONDS if command in _NETWORK_COMMANDS else _GIT_TIMEOUT_SECONDS
        )
        return run_process(
            ["git", "-C", str(self.path), *_GIT_CONFIG, *args],
            cwd=self.path,
            env=_GIT_ENV,
            timeout=timeout,
        )


def _wrap(
    command: str,
    error: ProcessError,
    *,
    kind: ErrorKind = "command_failed",
    message: str | None = None,
) -> RepositoryOperationError:
    if error.timed_out:
        kind = "remote_failed"
    return RepositoryOperationError(
        kind=kind,
        command=command,
        message=message or f"git {command} failed",
        hint=error.detail(),
    )
