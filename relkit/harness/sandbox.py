"""Disposable release repository for simulator runs.

The sandbox owns the shared remote. Without a configured remote URL it
creates a local bare repository seeded with one commit carrying the version
files; with a URL it rewinds that remote instead. Either way, `reset` leaves
the remote with main at the initial commit, staging and production pointing
at it, and no tags or other branches.
"""

from __future__ import annotations

import json
import os
import shutil
from dataclasses import dataclass
from pathlib import Path

from relkit.core.config import RelkitConfig
from relkit.core.result import Err, Ok, Result
from relkit.git.repository import Repository, RepositoryOperationError, with_token
from relkit.output.console import ConsoleProtocol, Style

__all__ = ["Sandbox", "SandboxPaths"]


@dataclass(frozen=True, slots=True)
class SandboxPaths:
    root: Path

    @property
    def remote(self) -> Path:
        return self.root / "remote.git"

    @property
    def seed(self) -> Path:
        return self.root / "seed"

    @property
    def reset(self) -> Path:
        return self.root / "reset"

    @property
    def clone(self) -> Path:
        return self.root / "repo"

    @property
    def verify(self) -> Path:
        return self.root / "verify"


class Sandbox:
    def __init__(
        self,
        *,
        work_dir: Path,
        config: RelkitConfig,
        console: ConsoleProtocol,
    ) -> None:
        self.paths = SandboxPaths(work_dir)
        self.config = config
        self._console = console

    @property
    def is_local(self) -> bool:
        return self.config.remote.url is None

    @property
    def remote_url(self) -> str:
        url = self.config.remote.url
        if url is None:
            return self.paths.remote.as_uri()
        return with_token(url, os.environ.get(self.config.remote.token_env))

    def reset(self) -> Result[str, RepositoryOperationError]:
        """Rewind the remote to its initial state; returns the initial sha."""
        self._console.info("Resetting remote repo to initial state...")
        branches = self.config.branches

        seeded: str | None = None
        if self.is_local:
            seed = self._seed_local_remote()
            if isinstance(seed, Err):
                return seed
            seeded = seed.value

        cloned = Repository.clone(self.remote_url, self.paths.reset, remote=self.config.remote.name)
        if isinstance(cloned, Err):
            return cloned
        repo = cloned.value
        ident = self.config.identity
        configured = repo.configure_identity(ident.bot_name, ident.bot_email)
        if isinstance(configured, Err):
            return configured

        initial = self.config.remote.initial_commit or seeded
        if initial is None:
            root = repo.root_commit(branches.main)
            if isinstance(root, Err):
                return root
            initial = root.value

        rewound = repo.reset_hard(initial)
        if isinstance(rewound, Err):
            return rewound
        pushed = repo.force_push(branches.main)
        if isinstance(pushed, Err):
            return pushed

        heads = repo.remote_heads()
        if isinstance(heads, Err):
            return heads
        for head in heads.value:
            if head == branches.main:
                continue
            deleted = repo.delete_remote_branch(head)
            if isinstance(deleted, Err):
                return deleted

        tags = repo.remote_tags()
        if isinstance(tags, Err):
            return tags
        dropped = repo.delete_remote_tags(tags.value)
        if isinstance(dropped, Err):
            return dropped

        for branch in (branches.staging, branches.production):
            created = repo.force_branch(branch, branches.main)
            if isinstance(created, Err):
                return created
            pushed = repo.force_push(branch)
            if isinstance(pushed, Err):
                return pushed

        shutil.rmtree(self.paths.reset, ignore_errors=True)
        self._console.success("Reset remote repo to initial state!")
        return Ok(initial)

    def checkout(self, dest: Path | None = None) -> Result[Repository, RepositoryOperationError]:
        """Fresh clone of the remote with local staging/production branches."""
        target = dest or self.paths.clone
        self._console.info(f"Checking out repo at {target}")
        cloned = Repository.clone(self.remote_url, target, remote=self.config.remote.name)
        if isinstance(cloned, Err):
            return cloned
        repo = cloned.value

        ident = self.config.identity
        configured = repo.configure_identity(ident.bot_name, ident.bot_email)
        if isinstance(configured, Err):
            return configured
        for branch in (self.config.branches.staging, self.config.branches.production):
            tracked = repo.track(branch)
            if isinstance(tracked, Err):
                return tracked

        self._console.success(f"Checked out repo at {target}!")
        return Ok(repo)

    def teardown(self) -> None:
        """Delete every directory the sandbox created."""
        self._console.print(f"Removing sandbox at {self.paths.root}", Style.DIM)
        owned = [self.paths.clone, self.paths.verify, self.paths.reset, self.paths.seed]
        if self.is_local:
            owned.append(self.paths.remote)
        for path in owned:
            shutil.rmtree(path, ignore_errors=True)

    def _seed_local_remote(self) -> Result[str, RepositoryOperationError]:
        """Create the bare remote with a single initial commit on main."""
        main = self.config.branches.main
        for path in (self.paths.remote, self.paths.seed):
            if path.exists():
                shutil.rmtree(path)

        bare = Repository.init(self.paths.remote, branch=main, bare=True)
        if isinstance(bare, Err):
            return bare
        created = Repository.init(self.paths.seed, branch=main, remote=self.config.remote.name)
        if isinstance(created, Err):
            return created
        seed = created.value

        ident = self.config.identity
        configured = seed.configure_identity(ident.bot_name, ident.bot_email)
        if isinstance(configured, Err):
            return configured

        manifest = {"name": "release-sandbox", "version": self.config.version.initial}
        files = {path: json.dumps(manifest, indent=2) + "\n" for path in self.config.version.files}
        files["README.md"] = "# release sandbox\n"
        sha = seed.commit(files, "Initial commit")
        if isinstance(sha, Err):
            return sha

        linked = seed.add_remote(self.paths.remote.as_uri())
        if isinstance(linked, Err):
            return linked
        pushed = seed.push(main)
        if isinstance(pushed, Err):
            return pushed

        shutil.rmtree(self.paths.seed, ignore_errors=True)
        return sha
