"""Tests for git/repository.py."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from relkit.core.result import Err, Ok
from relkit.git.repository import (
    ConflictStrategy,
    Repository,
    RepositoryOperationError,
    with_token,
)

needs_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not available")


def _git(cwd: Path, *args: str) -> str:
    return subprocess.run(
        ["git", *args], cwd=cwd, check=True, capture_output=True, text=True
    ).stdout.strip()


def _remote_and_clone(tmp_path: Path) -> tuple[Path, Repository]:
    """Bare remote with one commit on main, plus a working clone."""
    remote = tmp_path / "remote.git"
    seed = tmp_path / "seed"
    assert isinstance(Repository.init(remote, bare=True), Ok)
    created = Repository.init(seed)
    assert isinstance(created, Ok)
    repo = created.value
    assert isinstance(repo.configure_identity("test", "test@test.com"), Ok)
    assert isinstance(repo.commit({"README.md": "hello\n"}, "Initial commit"), Ok)
    assert isinstance(repo.add_remote(remote.as_uri()), Ok)
    assert isinstance(repo.push("main"), Ok)

    cloned = Repository.clone(remote.as_uri(), tmp_path / "clone")
    assert isinstance(cloned, Ok)
    clone = cloned.value
    assert isinstance(clone.configure_identity("test", "test@test.com"), Ok)
    return remote, clone


# =============================================================================
# Pure helpers
# =============================================================================


class TestWithToken:
    def test_https_gets_token(self) -> None:
        assert (
            with_token("https://github.com/acme/app.git", "tok")
            == "https://tok@github.com/acme/app.git"
        )

    def test_port_is_kept(self) -> None:
        assert with_token("https://git.local:8443/r.git", "t") == "https://t@git.local:8443/r.git"

    def test_no_token(self) -> None:
        assert with_token("https://github.com/acme/app.git", None) == (
            "https://github.com/acme/app.git"
        )
        assert with_token("https://github.com/acme/app.git", "") == (
            "https://github.com/acme/app.git"
        )

    def test_non_https_unchanged(self) -> None:
        assert with_token("file:///tmp/remote.git", "tok") == "file:///tmp/remote.git"
        assert with_token("git@github.com:acme/app.git", "tok") == "git@github.com:acme/app.git"


class TestConflictStrategy:
    def test_args(self) -> None:
        assert ConflictStrategy.THEIRS.as_args() == ["--strategy-option=theirs"]
        assert ConflictStrategy.OURS.as_args() == ["--strategy-option=ours"]
        assert ConflictStrategy.NONE.as_args() == []

    def test_from_config_value(self) -> None:
        assert ConflictStrategy("theirs") is ConflictStrategy.THEIRS


class TestRepositoryOperationError:
    def test_pretty(self) -> None:
        error = RepositoryOperationError(kind="conflict", command="merge", message="failed")
        assert error.pretty() == "failed"
        error = RepositoryOperationError(
            kind="dirty", command="switch", message="dirty", hint="commit first"
        )
        assert error.pretty() == "dirty (hint: commit first)"


# =============================================================================
# Real git
# =============================================================================


@needs_git
class TestQueries:
    def test_rev_parse(self, tmp_path: Path) -> None:
        _, repo = _remote_and_clone(tmp_path)
        result = repo.rev_parse("main")
        assert isinstance(result, Ok)
        assert result.value == _git(repo.path, "rev-parse", "HEAD")

    def test_rev_parse_missing(self, tmp_path: Path) -> None:
        _, repo = _remote_and_clone(tmp_path)
        result = repo.rev_parse("no-such-tag")
        assert isinstance(result, Err)
        assert result.error.kind == "missing_ref"

    def test_current_branch_and_exists(self, tmp_path: Path) -> None:
        _, repo = _remote_and_clone(tmp_path)
        assert repo.exists()
        assert repo.current_branch() == "main"
        assert repo.branch_exists("main")
        assert not repo.branch_exists("staging")

    def test_show_file(self, tmp_path: Path) -> None:
        _, repo = _remote_and_clone(tmp_path)
        assert repo.show_file("main", "README.md") == Ok("hello\n")
        missing = repo.show_file("main", "nope.txt")
        assert isinstance(missing, Err)
        assert missing.error.kind == "missing_ref"

    def test_root_commit(self, tmp_path: Path) -> None:
        _, repo = _remote_and_clone(tmp_path)
        head = _git(repo.path, "rev-parse", "HEAD")
        assert isinstance(repo.commit({"a.txt": "a\n"}, "second"), Ok)
        assert repo.root_commit("main") == Ok(head)

    def test_is_ancestor(self, tmp_path: Path) -> None:
        _, repo = _remote_and_clone(tmp_path)
        first = _git(repo.path, "rev-parse", "HEAD")
        second = repo.commit({"a.txt": "a\n"}, "second")
        assert isinstance(second, Ok)
        assert repo.is_ancestor(first, second.value) == Ok(True)
        assert repo.is_ancestor(second.value, first) == Ok(False)


@needs_git
class TestBranches:
    def test_create_switch_delete(self, tmp_path: Path) -> None:
        _, repo = _remote_and_clone(tmp_path)
        assert isinstance(repo.create_branch("pr-1"), Ok)
        assert repo.current_branch() == "pr-1"
        assert isinstance(repo.switch("main"), Ok)
        assert isinstance(repo.delete_branch("pr-1"), Ok)
        assert not repo.branch_exists("pr-1")

    def test_switch_unknown(self, tmp_path: Path) -> None:
        _, repo = _remote_and_clone(tmp_path)
        result = repo.switch("nope")
        assert isinstance(result, Err)
        assert result.error.kind == "missing_ref"

    def test_switch_dirty_tree(self, tmp_path: Path) -> None:
        _, repo = _remote_and_clone(tmp_path)
        assert isinstance(repo.create_branch("other"), Ok)
        (repo.path / "README.md").write_text("edited\n", encoding="utf-8")
        result = repo.switch("main")
        assert isinstance(result, Err)
        assert result.error.kind == "dirty"

    def test_force_branch_is_snapshot(self, tmp_path: Path) -> None:
        _, repo = _remote_and_clone(tmp_path)
        assert isinstance(repo.create_branch("staging"), Ok)
        assert isinstance(repo.commit({"only-staging.txt": "x\n"}, "staging only"), Ok)
        assert isinstance(repo.switch("main"), Ok)

        result = repo.force_branch("staging", "main")
        assert isinstance(result, Ok)
        assert result.value == _git(repo.path, "rev-parse", "main")
        assert isinstance(repo.show_file("staging", "only-staging.txt"), Err)

    def test_force_branch_refuses_checked_out(self, tmp_path: Path) -> None:
        _, repo = _remote_and_clone(tmp_path)
        result = repo.force_branch("main", "HEAD")
        assert isinstance(result, Err)
        assert result.error.hint is not None


@needs_git
class TestHistoryWriting:
    def test_commit_returns_sha(self, tmp_path: Path) -> None:
        _, repo = _remote_and_clone(tmp_path)
        result = repo.commit({"dir/file.txt": "content\n"}, "Add file")
        assert isinstance(result, Ok)
        assert result.value == _git(repo.path, "rev-parse", "HEAD")
        assert repo.read_file("dir/file.txt") == "content\n"

    def test_commit_nothing(self, tmp_path: Path) -> None:
        _, repo = _remote_and_clone(tmp_path)
        assert isinstance(repo.commit({}, "empty"), Err)

    def test_merge_no_ff_creates_merge_commit(self, tmp_path: Path) -> None:
        _, repo = _remote_and_clone(tmp_path)
        assert isinstance(repo.create_branch("pr-1"), Ok)
        assert isinstance(repo.commit({"PR1.txt": "1\n"}, "Changes from PR #1"), Ok)
        assert isinstance(repo.switch("main"), Ok)

        result = repo.merge("pr-1", message="Merge pull request #1 from acme/pr-1")
        assert isinstance(result, Ok)
        parents = _git(repo.path, "rev-list", "--parents", "-n", "1", "HEAD").split()
        assert len(parents) == 3
        assert _git(repo.path, "log", "-1", "--format=%s") == "Merge pull request #1 from acme/pr-1"

    def test_merge_conflict_aborts(self, tmp_path: Path) -> None:
        _, repo = _remote_and_clone(tmp_path)
        assert isinstance(repo.create_branch("pr-1"), Ok)
        assert isinstance(repo.commit({"README.md": "pr side\n"}, "pr"), Ok)
        assert isinstance(repo.switch("main"), Ok)
        assert isinstance(repo.commit({"README.md": "main side\n"}, "main"), Ok)

        result = repo.merge("pr-1", message="Merge pull request #1 from acme/pr-1")
        assert isinstance(result, Err)
        assert result.error.kind == "conflict"
        assert repo.is_clean() == Ok(True)

    def test_cherry_pick_records_origin(self, tmp_path: Path) -> None:
        _, repo = _remote_and_clone(tmp_path)
        assert isinstance(repo.create_branch("staging"), Ok)
        assert isinstance(repo.switch("main"), Ok)
        picked_from = repo.commit({"fix.txt": "fix\n"}, "Fix")
        assert isinstance(picked_from, Ok)
        assert isinstance(repo.switch("staging"), Ok)

        result = repo.cherry_pick(picked_from.value)
        assert isinstance(result, Ok)
        body = _git(repo.path, "log", "-1", "--format=%B")
        assert f"(cherry picked from commit {picked_from.value})" in body

    def test_cherry_pick_merge_with_theirs(self, tmp_path: Path) -> None:
        """A merge commit is cherry-picked against its first parent."""
        _, repo = _remote_and_clone(tmp_path)
        assert isinstance(repo.create_branch("staging"), Ok)
        assert isinstance(repo.commit({"README.md": "staging side\n"}, "diverge"), Ok)
        assert isinstance(repo.switch("main"), Ok)
        assert isinstance(repo.create_branch("pr-3"), Ok)
        assert isinstance(repo.commit({"README.md": "pr side\n"}, "pr"), Ok)
        assert isinstance(repo.switch("main"), Ok)
        merge = repo.merge("pr-3", message="Merge pull request #3 from acme/pr-3")
        assert isinstance(merge, Ok)

        assert isinstance(repo.switch("staging"), Ok)
        result = repo.cherry_pick(merge.value, mainline=1, strategy=ConflictStrategy.THEIRS)
        assert isinstance(result, Ok)
        assert repo.read_file("README.md") == "pr side\n"

    def test_cherry_pick_conflict_aborts(self, tmp_path: Path) -> None:
        _, repo = _remote_and_clone(tmp_path)
        assert isinstance(repo.create_branch("staging"), Ok)
        assert isinstance(repo.commit({"README.md": "staging side\n"}, "diverge"), Ok)
        assert isinstance(repo.switch("main"), Ok)
        fix = repo.commit({"README.md": "main side\n"}, "fix")
        assert isinstance(fix, Ok)
        assert isinstance(repo.switch("staging"), Ok)

        result = repo.cherry_pick(fix.value)
        assert isinstance(result, Err)
        assert result.error.kind == "conflict"
        assert repo.is_clean() == Ok(True)

    def test_tag(self, tmp_path: Path) -> None:
        _, repo = _remote_and_clone(tmp_path)
        assert repo.tag("1.0.0", "main") == Ok("1.0.0")
        assert repo.tags() == Ok(["1.0.0"])
        assert isinstance(repo.tag("1.0.0", "main"), Err)


@needs_git
class TestRemote:
    def test_push_and_list_heads(self, tmp_path: Path) -> None:
        remote, repo = _remote_and_clone(tmp_path)
        assert isinstance(repo.create_branch("staging"), Ok)
        assert isinstance(repo.push("staging"), Ok)
        heads = repo.remote_heads()
        assert isinstance(heads, Ok)
        assert sorted(heads.value) == ["main", "staging"]
        assert _git(remote, "rev-parse", "staging") == _git(repo.path, "rev-parse", "staging")

    def test_force_push_rewrites(self, tmp_path: Path) -> None:
        remote, repo = _remote_and_clone(tmp_path)
        initial = _git(repo.path, "rev-parse", "HEAD")
        assert isinstance(repo.commit({"a.txt": "a\n"}, "a"), Ok)
        assert isinstance(repo.push("main"), Ok)
        assert isinstance(repo.reset_hard(initial), Ok)

        assert isinstance(repo.push("main"), Err)
        assert isinstance(repo.force_push("main"), Ok)
        assert _git(remote, "rev-parse", "main") == initial

    def test_tags_round_trip(self, tmp_path: Path) -> None:
        _, repo = _remote_and_clone(tmp_path)
        for name in ("1.0.0", "1.0.1"):
            assert isinstance(repo.tag(name), Ok)
            assert isinstance(repo.push_tag(name), Ok)
        tags = repo.remote_tags()
        assert isinstance(tags, Ok)
        assert sorted(tags.value) == ["1.0.0", "1.0.1"]

        assert isinstance(repo.delete_remote_tags(tags.value), Ok)
        assert repo.remote_tags() == Ok([])
        assert repo.delete_remote_tags([]) == Ok(None)

    def test_delete_remote_branch(self, tmp_path: Path) -> None:
        _, repo = _remote_and_clone(tmp_path)
        assert isinstance(repo.create_branch("pr-1"), Ok)
        assert isinstance(repo.push("pr-1"), Ok)
        assert isinstance(repo.delete_remote_branch("pr-1"), Ok)
        assert repo.remote_heads() == Ok(["main"])

    def test_fetch_and_track(self, tmp_path: Path) -> None:
        remote, repo = _remote_and_clone(tmp_path)
        other = Repository.clone(remote.as_uri(), tmp_path / "other")
        assert isinstance(other, Ok)
        assert isinstance(other.value.configure_identity("bot", "bot@example.com"), Ok)
        assert isinstance(other.value.create_branch("staging"), Ok)
        assert isinstance(other.value.push("staging"), Ok)

        assert isinstance(repo.fetch(), Ok)
        tracked = repo.track("staging")
        assert isinstance(tracked, Ok)
        assert tracked.value == _git(remote, "rev-parse", "staging")

    def test_unreachable_remote(self, tmp_path: Path) -> None:
        _, repo = _remote_and_clone(tmp_path)
        shutil.rmtree(tmp_path / "remote.git")
        result = repo.push("main")
        assert isinstance(result, Err)
        assert result.error.kind == "remote_failed"
