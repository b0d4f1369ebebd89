"""Local storage module for WOLRAM.

Git automation that commits each completed job to the local repository.
"""

from local_storage.git_manager import GitError, GitManager

__all__ = ["GitError", "GitManager"]
