"""Release state machine over the main/staging/production topology.

main receives every PR merge and every version bump. staging and production
are never merged into incrementally: they are recreated wholesale from their
upstream branch (main -> staging -> production). The only exception is the
cherry-pick flow, which layers a single PR plus its version bump on top of
the current staging.

Every transition pushes its result before returning, and every failure is
final: the caller is expected to abort and re-run from a reset.
"""

from __future__ import annotations

from collections.abc import Mapping

from relkit.core.config import RelkitConfig
from relkit.core.result import Err, Ok, Result
from relkit.git.repository import ConflictStrategy, Repository
from relkit.output.console import ConsoleProtocol
from relkit.release.errors import ReleaseError, TransitionError, VersionConflictError
from relkit.release.model import ChecklistState, VersionBump
from relkit.release.semver import Version, release_versions
from relkit.release.version_file import read_version, render_version_file

__all__ = ["ReleaseStateMachine"]


class ReleaseStateMachine:
    """Drives a working clone through the deploy flow.

    Attributes:
        repo: Working clone whose remote is the shared release repository
        config: Branch names, message conventions and identities
        state: Current checklist state
    """

    def __init__(
        self,
        *,
        repo: Repository,
        config: RelkitConfig,
        console: ConsoleProtocol,
        state: ChecklistState = ChecklistState.UNLOCKED,
    ) -> None:
        self.repo = repo
        self.config = config
        self.state = state
        self._console = console
        self._branches = config.branches

    # ------------------------------------------------------------------
    # Checklist
    # ------------------------------------------------------------------

    def lock_checklist(self) -> Result[None, ReleaseError]:
        """Close the checklist: main stops flowing to staging."""
        if self.state is ChecklistState.LOCKED:
            return Err(
                TransitionError(self.state, "lock_checklist", "the checklist is already locked")
            )
        self.state = ChecklistState.LOCKED
        self._console.info("Checklist locked")
        return Ok(None)

    # ------------------------------------------------------------------
    # Pull requests
    # ------------------------------------------------------------------

    def open_pr(
        self, pr_id: int, files: Mapping[str, str], message: str
    ) -> Result[str, ReleaseError]:
        """Create branch pr-{id} off main with one commit authored by a human."""
        branch = self._branches.pr_branch(pr_id)
        self._console.info(f"Creating PR #{pr_id}...")

        identity = self._as_human()
        if isinstance(identity, Err):
            return identity
        switched = self.repo.switch(self._branches.main)
        if isinstance(switched, Err):
            return switched
        created = self.repo.create_branch(branch)
        if isinstance(created, Err):
            return created
        sha = self.repo.commit(files, message)
        if isinstance(sha, Err):
            return sha

        self._console.success(f"Created PR #{pr_id} in branch {branch}")
        return sha

    def merge_pr(self, pr_id: int) -> Result[str, ReleaseError]:
        """Merge pr-{id} into main with an explicit merge commit.

        Legal in every state. Returns the merge commit sha.
        """
        main = self._branches.main
        branch = self._branches.pr_branch(pr_id)
        self._console.info(f"Merging PR #{pr_id} to {main}")

        switched = self.repo.switch(main)
        if isinstance(switched, Err):
            return switched
        merged = self.repo.merge(
            branch, message=self.config.pull_requests.merge_message(pr_id, branch)
        )
        if isinstance(merged, Err):
            return merged
        pushed = self.repo.push(main)
        if isinstance(pushed, Err):
            return pushed
        deleted = self.repo.delete_branch(branch)
        if isinstance(deleted, Err):
            return deleted

        self._console.success(f"Merged PR #{pr_id} to {main}")
        return merged

    def cherry_pick_to_staging(
        self, pr_id: int, *, cherry_pick_pr_id: int | None = None
    ) -> Result[str, ReleaseError]:
        """Expedite one PR to staging without recreating it.

        The PR is merged to main and a patch bump follows. Both commits are
        cherry-picked (with `-x`) onto a scratch branch cut from staging, and
        the scratch branch is merged into staging. The scratch merge is
        recorded as its own PR, numbered cherry_pick_pr_id (default id + 1).

        Returns:
            Ok(sha) of the new staging tip
        """
        staging = self._branches.staging
        scratch = self._branches.cherry_pick_scratch
        self._console.info(f"Cherry-picking PR #{pr_id} to {staging}...")

        merge_sha = self.merge_pr(pr_id)
        if isinstance(merge_sha, Err):
            return merge_sha
        bumped = self.bump_version("patch")
        if isinstance(bumped, Err):
            return bumped
        bump_sha = self.repo.rev_parse(self._branches.main)
        if isinstance(bump_sha, Err):
            return bump_sha

        identity = self._as_bot()
        if isinstance(identity, Err):
            return identity
        switched = self.repo.switch(staging)
        if isinstance(switched, Err):
            return switched
        created = self.repo.create_branch(scratch)
        if isinstance(created, Err):
            return created

        strategy = ConflictStrategy(self.config.cherry_pick.conflict_strategy)
        picked = self.repo.cherry_pick(merge_sha.value, mainline=1, strategy=strategy)
        if isinstance(picked, Err):
            return picked
        picked = self.repo.cherry_pick(bump_sha.value)
        if isinstance(picked, Err):
            return picked

        switched = self.repo.switch(staging)
        if isinstance(switched, Err):
            return switched
        cp_id = cherry_pick_pr_id if cherry_pick_pr_id is not None else pr_id + 1
        merged = self.repo.merge(
            scratch, message=self.config.pull_requests.merge_message(cp_id, scratch)
        )
        if isinstance(merged, Err):
            return merged
        deleted = self.repo.delete_branch(scratch)
        if isinstance(deleted, Err):
            return deleted
        pushed = self.repo.push(staging)
        if isinstance(pushed, Err):
            return pushed

        self._console.info(f"Merged PR #{cp_id} into {staging}")
        self._console.success(f"Successfully cherry-picked PR #{pr_id} to {staging}!")
        return merged

    # ------------------------------------------------------------------
    # Versions
    # ------------------------------------------------------------------

    def current_version(self, branch: str | None = None) -> Result[Version, ReleaseError]:
        """Version recorded in the first version file at branch's tip."""
        ref = branch or self._branches.main
        return read_version(self.repo, ref, self.config.version.files[0])

    def bump_version(self, kind: VersionBump) -> Result[Version, ReleaseError]:
        """Commit a version bump on main and push it."""
        main = self._branches.main
        self._console.info("Bumping version...")

        identity = self._as_bot()
        if isinstance(identity, Err):
            return identity
        switched = self.repo.switch(main)
        if isinstance(switched, Err):
            return switched
        current = self.current_version(main)
        if isinstance(current, Err):
            return current

        new = current.value.bump(kind)
        tags = self.repo.tags()
        if isinstance(tags, Err):
            return tags
        released = release_versions(tags.value)
        if released and released[-1] >= new:
            return Err(
                VersionConflictError(
                    version=str(new),
                    message=f"already released up to {released[-1]}",
                )
            )

        files: dict[str, str] = {}
        for path in self.config.version.files:
            content = self.repo.show_file(main, path)
            if isinstance(content, Err):
                return content
            rendered = render_version_file(content.value, new, path=path)
            if isinstance(rendered, Err):
                return rendered
            files[path] = rendered.value

        committed = self.repo.commit(files, f"Update version to {new}")
        if isinstance(committed, Err):
            return committed
        pushed = self.repo.push(main)
        if isinstance(pushed, Err):
            return pushed

        self._console.success(f"Version bumped to {new} on {main}")
        return Ok(new)

    def tag_release(self, branch: str | None = None) -> Result[str, ReleaseError]:
        """Tag branch's tip (default staging) with its version and push the tag."""
        target = branch or self._branches.staging
        self._console.info(f"Tagging new version from the {target} branch...")

        identity = self._as_bot()
        if isinstance(identity, Err):
            return identity
        switched = self.repo.switch(target)
        if isinstance(switched, Err):
            return switched
        version = self.current_version(target)
        if isinstance(version, Err):
            return version

        tag = version.value.to_tag()
        tags = self.repo.tags()
        if isinstance(tags, Err):
            return tags
        if tag in tags.value:
            return Err(VersionConflictError(version=tag, message="tag already exists"))
        released = release_versions(tags.value)
        if released and released[-1] > version.value:
            return Err(
                VersionConflictError(
                    version=tag, message=f"older than the latest release {released[-1]}"
                )
            )

        created = self.repo.tag(tag, target)
        if isinstance(created, Err):
            return created
        pushed = self.repo.push_tag(tag)
        if isinstance(pushed, Err):
            return pushed

        self._console.success(f"Created new tag {tag}")
        return Ok(tag)

    # ------------------------------------------------------------------
    # Branch recreation
    # ------------------------------------------------------------------

    def recreate_staging(self) -> Result[str, ReleaseError]:
        """Reset staging to an exact copy of main (checklist must be unlocked)."""
        if self.state is ChecklistState.LOCKED:
            return Err(
                TransitionError(
                    self.state,
                    "recreate_staging",
                    "cherry-pick PRs to staging until production is deployed",
                )
            )
        return self._recreate(self._branches.staging, self._branches.main)

    def recreate_production(self) -> Result[str, ReleaseError]:
        """Reset production to staging; this closes the release and unlocks."""
        sha = self._recreate(self._branches.production, self._branches.staging)
        if isinstance(sha, Err):
            return sha
        self.state = ChecklistState.UNLOCKED
        return sha

    def _recreate(self, target: str, source: str) -> Result[str, ReleaseError]:
        self._console.info(f"Recreating {target} from {source}...")
        switched = self.repo.switch(source)
        if isinstance(switched, Err):
            return switched
        sha = self.repo.force_branch(target, source)
        if isinstance(sha, Err):
            return sha
        pushed = self.repo.force_push(target)
        if isinstance(pushed, Err):
            return pushed
        self._console.success(f"Recreated {target} from {source}!")
        return sha

    # ------------------------------------------------------------------
    # Identities
    # ------------------------------------------------------------------

    def _as_human(self) -> Result[None, ReleaseError]:
        ident = self.config.identity
        result = self.repo.configure_identity(ident.human_name, ident.human_email)
        if isinstance(result, Err):
            return result
        return Ok(None)

    def _as_bot(self) -> Result[None, ReleaseError]:
        ident = self.config.identity
        result = self.repo.configure_identity(ident.bot_name, ident.bot_email)
        if isinstance(result, Err):
            return result
        return Ok(None)
