from dataclasses import dataclass
from pathlib import Path


@dataclass(eq=False)
class TreePromptError(Exception):
    """Base exception for errors in the tree_prompt package."""


@dataclass(eq=False)
class TraversalError(TreePromptError):
    """Raised when the directory tree under the root cannot be walked."""

    path: Path
    reason: OSError
    message: str = "Cannot walk directory."

    def __str__(self) -> str:
        return f"{self.message} {self.path}: {self.reason}"
