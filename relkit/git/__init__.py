"""Git driver.

    from relkit.git import Repository

    repo = Repository(Path("/path/to/clone"))
    sha = repo.rev_parse("1.0.2")
"""

from relkit.git.repository import (
    ConflictStrategy,
    Repository,
    RepositoryOperationError,
    with_token,
)

__all__ = [
    "ConflictStrategy",
    "Repository",
    "RepositoryOperationError",
    "with_token",
]
