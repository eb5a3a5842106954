"""Read and rewrite JSON version files (package.json style)."""

from __future__ import annotations

import json

from relkit.core.result import Err, Ok, Result
from relkit.core.structured import StrDict, as_str_dict
from relkit.git.repository import Repository
from relkit.release.errors import ReleaseError, VersionConflictError
from relkit.release.semver import Version, parse_version


def _load_object(content: str, path: str) -> Result[StrDict, VersionConflictError]:
    try:
        data = as_str_dict(json.loads(content))
    except json.JSONDecodeError as e:
        return Err(VersionConflictError(version="?", message=f"{path} is not valid JSON: {e}"))
    if data is None:
        return Err(VersionConflictError(version="?", message=f"{path} must hold a JSON object"))
    return Ok(data)


def parse_version_file(content: str, *, path: str) -> Result[Version, VersionConflictError]:
    loaded = _load_object(content, path)
    if isinstance(loaded, Err):
        return loaded

    raw = loaded.value.get("version")
    version = parse_version(raw) if isinstance(raw, str) else None
    if version is None:
        return Err(
            VersionConflictError(
                version=str(raw), message=f"{path} has no MAJOR.MINOR.PATCH version"
            )
        )
    return Ok(version)


def render_version_file(
    content: str, version: Version, *, path: str
) -> Result[str, VersionConflictError]:
    """Return content with its version replaced, key order preserved.

    Lockfiles also carry the root package version under packages[""].
    """
    loaded = _load_object(content, path)
    if isinstance(loaded, Err):
        return loaded

    data = loaded.value
    data["version"] = str(version)
    packages = as_str_dict(data.get("packages"))
    if packages is not None:
        root = as_str_dict(packages.get(""))
        if root is not None and "version" in root:
            root["version"] = str(version)
    return Ok(json.dumps(data, indent=2) + "\n")


def read_version(repo: Repository, ref: str, path: str) -> Result[Version, ReleaseError]:
    """Version recorded in path at ref."""
    content = repo.show_file(ref, path)
    if isinstance(content, Err):
        return content
    return parse_version_file(content.value, path=path)
