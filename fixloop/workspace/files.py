"""Local file system reader/writer rooted at a project directory."""

import logging
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)


class LocalFileSystem:
    """Reads and writes project files relative to ``root``.

    Paths reported by stack traces may be absolute or relative; both resolve
    under ``root``, and anything resolving outside it is refused.

    Example:
        >>> fs = LocalFileSystem("/path/to/project")
        >>> engine.set_executors(file_reader=fs.read, file_writer=fs.write)
    """

    def __init__(self, root: Union[str, Path] = ".", encoding: str = "utf-8"):
        self.root = Path(root).resolve()
        self.encoding = encoding

    def resolve(self, path: str) -> Path:
        """Resolve ``path`` under the root.

        Raises:
            PermissionError: If the path escapes the root
        """
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.root / candidate
        resolved = candidate.resolve()
        if resolved != self.root and self.root not in resolved.parents:
            raise PermissionError(f"{path} is outside the project root {self.root}")
        return resolved

    def read(self, path: str) -> str:
        # newline="" leaves CRLF endings untouched
        with open(self.resolve(path), "r", encoding=self.encoding, newline="") as f:
            return f.read()

    def write(self, path: str, content: str) -> None:
        target = self.resolve(path)
        if not target.exists():
            raise FileNotFoundError(f"Refusing to create new file {target}")
        with open(target, "w", encoding=self.encoding, newline="") as f:
            f.write(content)
        logger.debug(f"Wrote {len(content)} chars to {target}")
