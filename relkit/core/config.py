"""Typed configuration loading and access.

relkit reads an optional `relkit.toml`. Every table is optional; missing keys
fall back to the defaults below, which reproduce the conventions of the
main/staging/production deploy flow.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, cast

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_str, get_str_list, get_table

__all__ = [
    "BranchConfig",
    "CherryPickConfig",
    "ConfigError",
    "IdentityConfig",
    "PullRequestConfig",
    "RelkitConfig",
    "RemoteConfig",
    "VersionConfig",
    "CONFIG_FILENAME",
    "load_config",
    "load_config_or_default",
]

CONFIG_FILENAME = "relkit.toml"

ConflictStrategyName = Literal["theirs", "ours", "none"]
_STRATEGIES: tuple[ConflictStrategyName, ...] = ("theirs", "ours", "none")

DEFAULT_SCRATCH_BRANCH = "cherry-pick-staging"
DEFAULT_MERGE_PATTERN = r"^Merge pull request #(?P<id>\d+) from (?P<branch>\S+)"
DEFAULT_EXCLUDE_BRANCH_PATTERN = r"cherry-pick-staging$"
DEFAULT_CHERRY_PICK_LINK_PATTERN = r"\(cherry picked from commit (?P<sha>[0-9a-f]{7,40})\)"


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None

    def pretty(self) -> str:
        if self.path is not None:
            return f"{self.message} ({self.path})"
        return self.message


@dataclass(frozen=True, slots=True)
class BranchConfig:
    """Long-lived and ephemeral branch names."""

    main: str = "main"
    staging: str = "staging"
    production: str = "production"
    pr_prefix: str = "pr-"
    cherry_pick_scratch: str = DEFAULT_SCRATCH_BRANCH

    def pr_branch(self, pr_id: int) -> str:
        return f"{self.pr_prefix}{pr_id}"


@dataclass(frozen=True, slots=True)
class PullRequestConfig:
    """How PR merge events are written to and read from commit messages."""

    owner: str = "acme"
    merge_pattern: str = DEFAULT_MERGE_PATTERN
    exclude_branch_pattern: str = DEFAULT_EXCLUDE_BRANCH_PATTERN
    cherry_pick_link_pattern: str = DEFAULT_CHERRY_PICK_LINK_PATTERN

    def merge_message(self, pr_id: int, branch: str) -> str:
        return f"Merge pull request #{pr_id} from {self.owner}/{branch}"


@dataclass(frozen=True, slots=True)
class VersionConfig:
    # JSON files carrying a top-level "version" key
    files: tuple[str, ...] = ("package.json",)
    initial: str = "1.0.0"


@dataclass(frozen=True, slots=True)
class CherryPickConfig:
    conflict_strategy: ConflictStrategyName = "theirs"


@dataclass(frozen=True, slots=True)
class IdentityConfig:
    """Git identities: humans author PRs, the bot bumps and tags."""

    human_name: str = "test"
    human_email: str = "test@test.com"
    bot_name: str = "release-bot"
    bot_email: str = "release-bot@example.com"


@dataclass(frozen=True, slots=True)
class RemoteConfig:
    name: str = "origin"
    url: str | None = None
    token_env: str = "GITHUB_TOKEN"
    initial_commit: str | None = None


def _exclude_pattern_for(scratch: str) -> str:
    """Default exclude pattern: merges from the scratch branch are not PRs."""
    if scratch == DEFAULT_SCRATCH_BRANCH:
        return DEFAULT_EXCLUDE_BRANCH_PATTERN
    return re.escape(scratch) + "$"


@dataclass(frozen=True, slots=True)
class RelkitConfig:
    """Main configuration container."""

    branches: BranchConfig = field(default_factory=BranchConfig)
    pull_requests: PullRequestConfig = field(default_factory=PullRequestConfig)
    version: VersionConfig = field(default_factory=VersionConfig)
    cherry_pick: CherryPickConfig = field(default_factory=CherryPickConfig)
    identity: IdentityConfig = field(default_factory=IdentityConfig)
    remote: RemoteConfig = field(default_factory=RemoteConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> RelkitConfig:
        """Create config from a parsed TOML mapping.

        Raises:
            ValueError: On an unknown conflict strategy, an invalid regex, or
                an exclude pattern that misses the cherry-pick scratch branch.
        """
        branches: StrDict = get_table(data, "branches") or {}
        prs: StrDict = get_table(data, "pull_requests") or {}
        version: StrDict = get_table(data, "version") or {}
        cherry_pick: StrDict = get_table(data, "cherry_pick") or {}
        identity: StrDict = get_table(data, "identity") or {}
        remote: StrDict = get_table(data, "remote") or {}

        b = BranchConfig()
        p = PullRequestConfig()
        v = VersionConfig()
        i = IdentityConfig()
        r = RemoteConfig()

        strategy = get_str(cherry_pick, "conflict_strategy") or "theirs"
        if strategy not in _STRATEGIES:
            raise ValueError(
                f"cherry_pick.conflict_strategy must be one of {', '.join(_STRATEGIES)}"
            )

        branch_config = BranchConfig(
            main=get_str(branches, "main") or b.main,
            staging=get_str(branches, "staging") or b.staging,
            production=get_str(branches, "production") or b.production,
            pr_prefix=get_str(branches, "pr_prefix") or b.pr_prefix,
            cherry_pick_scratch=get_str(branches, "cherry_pick_scratch")
            or b.cherry_pick_scratch,
        )
        scratch = branch_config.cherry_pick_scratch

        pull_requests = PullRequestConfig(
            owner=get_str(prs, "owner") or p.owner,
            merge_pattern=get_str(prs, "merge_pattern") or p.merge_pattern,
            exclude_branch_pattern=get_str(prs, "exclude_branch_pattern")
            or _exclude_pattern_for(scratch),
            cherry_pick_link_pattern=get_str(prs, "cherry_pick_link_pattern")
            or p.cherry_pick_link_pattern,
        )
        for pattern in (
            pull_requests.merge_pattern,
            pull_requests.exclude_branch_pattern,
            pull_requests.cherry_pick_link_pattern,
        ):
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"invalid pattern {pattern!r}: {e}") from e
        if "id" not in re.compile(pull_requests.merge_pattern).groupindex:
            raise ValueError("pull_requests.merge_pattern needs an (?P<id>...) group")
        if not re.search(
            pull_requests.exclude_branch_pattern, f"{pull_requests.owner}/{scratch}"
        ):
            raise ValueError(
                f"pull_requests.exclude_branch_pattern does not match the "
                f"cherry-pick scratch branch {scratch!r}"
            )

        files = get_str_list(version, "files")

        return cls(
            branches=branch_config,
            pull_requests=pull_requests,
            version=VersionConfig(
                files=tuple(files) if files else v.files,
                initial=get_str(version, "initial") or v.initial,
            ),
            cherry_pick=CherryPickConfig(
                conflict_strategy=cast(ConflictStrategyName, strategy),
            ),
            identity=IdentityConfig(
                human_name=get_str(identity, "human_name") or i.human_name,
                human_email=get_str(identity, "human_email") or i.human_email,
                bot_name=get_str(identity, "bot_name") or i.bot_name,
                bot_email=get_str(identity, "bot_email") or i.bot_email,
            ),
            remote=RemoteConfig(
                name=get_str(remote, "name") or r.name,
                url=get_str(remote, "url"),
                token_env=get_str(remote, "token_env") or r.token_env,
                initial_commit=get_str(remote, "initial_commit"),
            ),
        )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and syntax errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[RelkitConfig, ConfigError]:
    """Load and validate configuration from a TOML file.

    Args:
        path: Path to relkit.toml

    Returns:
        Ok(RelkitConfig) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(RelkitConfig.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config: {e}", path=path))


def load_config_or_default(path: Path | None) -> Result[RelkitConfig, ConfigError]:
    """Load config if the file exists, else return defaults.

    An explicitly broken file is still an error.
    """
    if path is None or not path.exists():
        return Ok(RelkitConfig())
    return load_config(path)
