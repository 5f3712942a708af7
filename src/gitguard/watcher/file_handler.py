"""
Watchdog handler that forwards new files to the event batcher.

The observer calls the handler from its own thread; the batcher lives on the
asyncio loop, so every event is handed over with ``call_soon_threadsafe``.
"""

import asyncio
from pathlib import Path
from typing import Callable, Optional, Union

from watchdog.events import FileSystemEvent, FileSystemEventHandler

from gitguard.utils import get_logger

logger = get_logger(__name__)

GIT_DIR = ".git"


class CreatedFileHandler(FileSystemEventHandler):
    """
    Watches for created or moved-in files under a project root.
    """

    def __init__(self, root: Union[str, Path], on_file_created: Callable[[str], object],
                 loop: Optional[asyncio.AbstractEventLoop] = None):
        """
        Initialize the handler.

        Args:
            root: Project root that relative paths are computed against
            on_file_created: Receives the root-relative path of each new file
            loop: Loop that owns ``on_file_created``; called inline when None
        """
        super().__init__()
        self.root = Path(root).resolve()
        self.on_file_created = on_file_created
        self.loop = loop

    def relative_path(self, path: Union[str, bytes]) -> Optional[str]:
        """Root-relative path, or None for paths outside the root or in .git"""
        if isinstance(path, bytes):
            path = path.decode()
        try:
            relative = Path(path).resolve().relative_to(self.root)
        except ValueError:
            return None
        if not relative.parts or relative.parts[0] == GIT_DIR:
            return None
        return relative.as_posix()

    def _dispatch(self, path: Union[str, bytes]):
        relative = self.relative_path(path)
        if relative is None:
            return
        logger.trace(f"File created: {relative}")
        if self.loop is None:
            self.on_file_created(relative)
        elif not self.loop.is_closed():
            self.loop.call_soon_threadsafe(self.on_file_created, relative)

    def on_created(self, event: FileSystemEvent):
        """Handle file creation."""
        if event.is_directory:
            return
        self._dispatch(event.src_path)

    def on_moved(self, event: FileSystemEvent):
        """Handle a file moved or renamed into place."""
        if event.is_directory:
            return
        dest_path = getattr(event, "dest_path", None)
        if dest_path:
            self._dispatch(dest_path)
