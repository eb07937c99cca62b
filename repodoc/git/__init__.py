"""Git access: shallow clone workspaces and committed-tree listing."""

from .client import GitClient, GitCommandError, GitTreeSource
from .workspace import Checkout, Workspace

__all__ = [
    "Checkout",
    "GitClient",
    "GitCommandError",
    "GitTreeSource",
    "Workspace",
]
