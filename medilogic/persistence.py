"""
Fact File Persistence
Reads and atomically rewrites the knowledge base fact file.
"""

import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Optional, Union

from .errors import PersistenceError

logger = logging.getLogger(__name__)

_BOM = "\ufeff"

# mkstemp creates 0600 files; the fact file is world-readable
FILE_MODE = 0o644


class FactFile:
    """
    Storage location of the fact text.

    Writes go to a temporary file in the same directory which is then
    renamed over the target, so readers and crashes only ever see the old
    or the new contents.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._write_lock = threading.Lock()

    def read(self) -> Optional[str]:
        """
        Return the stored fact text, or None when nothing is stored yet.

        A leading UTF-8 byte-order mark is dropped.

        Raises:
            PersistenceError: The file exists but cannot be read
        """
        if not self.path.is_file():
            logger.info(f"No fact file at {self.path}")
            return None

        try:
            text = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise PersistenceError(f"Cannot read fact file {self.path}: {e}", str(self.path)) from e

        if text.startswith(_BOM):
            text = text[len(_BOM):]
        return text

    def write(self, text: str) -> None:
        """
        Replace the stored fact text atomically.

        Raises:
            PersistenceError: Any step of write, flush or rename failed;
                the previous file is left untouched
        """
        with self._write_lock:
            tmp_name = None
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(
                    prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
                )
                with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
                    f.write(text)
                    f.flush()
                    os.fsync(f.fileno())
                os.chmod(tmp_name, FILE_MODE)
                os.replace(tmp_name, self.path)
                tmp_name = None
            except (OSError, UnicodeError) as e:
                logger.error(f"Failed to write fact file {self.path}: {e}")
                raise PersistenceError(f"Cannot write fact file {self.path}: {e}", str(self.path)) from e
            finally:
                if tmp_name is not None and os.path.exists(tmp_name):
                    os.remove(tmp_name)

        logger.info(f"Wrote {len(text)} characters to {self.path}")
