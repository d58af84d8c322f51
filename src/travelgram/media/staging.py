"""Local staging of inbound uploads before they are relayed to the binary store."""

import asyncio
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from .storage import generate_stored_name

logger = logging.getLogger(__name__)


@dataclass
class StagedFile:
    path: Path
    original_name: str
    content_type: str
    size: int


class StagingArea:
    """Ephemeral directory holding uploads under random hex names."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def ensure(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    async def stage(
        self,
        source: BinaryIO,
        original_name: str,
        content_type: str,
    ) -> StagedFile:
        """Copy ``source`` into the staging directory."""
        self.ensure()
        path = self.directory / generate_stored_name(original_name)

        def _copy() -> int:
            with open(path, "wb") as target:
                shutil.copyfileobj(source, target)
            return path.stat().st_size

        try:
            size = await asyncio.to_thread(_copy)
        except OSError:
            self.discard(path)
            raise

        logger.debug(f"Staged upload {original_name!r} at {path} ({size} bytes)")
        return StagedFile(
            path=path,
            original_name=original_name,
            content_type=content_type,
            size=size,
        )

    @staticmethod
    def discard(path: str | Path) -> None:
        """Remove a staged file. Missing files are ignored."""
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove staged file {path}: {e}")
