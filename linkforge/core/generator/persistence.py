"""Writing generated files to disk."""

import logging
import os
from typing import Union

from ..errors import PersistenceError

logger = logging.getLogger(__name__)


class FilePersistService:
    """Writes files; a file that already holds the same bytes is left alone."""

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def write_file(self, content: Union[str, bytes], path: str) -> bool:
        """Write ``content`` to ``path``.

        Text is encoded with ``self.encoding``; bytes are written as given.

        Returns:
            True if the file was written, False if it already held ``content``

        Raises:
            PersistenceError: If the file or its directory cannot be written
        """
        data = content.encode(self.encoding) if isinstance(content, str) else content
        try:
            if os.path.isfile(path):
                with open(path, "rb") as f:
                    if f.read() == data:
                        logger.debug(f"Unchanged: {path}")
                        return False
            directory = os.path.dirname(path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(path, "wb") as f:
                f.write(data)
        except OSError as e:
            raise PersistenceError(path, str(e)) from e

        logger.info(f"Wrote {path}")
        return True
