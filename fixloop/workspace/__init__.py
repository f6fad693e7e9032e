"""
Default working-tree collaborators.

- LocalFileSystem: file reader/writer rooted at a project directory
- CommandTestExecutor: runs the project's test command and tracks regressions
"""

from fixloop.workspace.files import LocalFileSystem
from fixloop.workspace.runner import CommandTestExecutor

__all__ = ["CommandTestExecutor", "LocalFileSystem"]
