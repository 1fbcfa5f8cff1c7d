"""Static file copying for Folio.

Every file under the content root that is not a document source and not
internal (no path component starting with "_" or ".") is copied to the same
relative location in the output directory, unchanged.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from .errors import FilesystemError
from .utils import is_content_file

logger = logging.getLogger(__name__)


class StaticFileCopier:
    """Copies static files from the content root into the output tree.

    Attributes:
        site_dir: Content root.
        output_dir: Build output directory.
    """

    def __init__(self, site_dir: Path, output_dir: Path):
        self.site_dir = site_dir
        self.output_dir = output_dir

    def iter_static_files(self) -> list[Path]:
        files: list[Path] = []
        for path in sorted(self.site_dir.rglob("*")):
            if path.is_dir():
                continue
            rel = path.relative_to(self.site_dir)
            if any(part.startswith(("_", ".")) for part in rel.parts):
                continue
            if is_content_file(path):
                continue
            files.append(path)
        return files

    def run(self) -> list[str]:
        """Copy all static files.

        Returns:
            Output-relative paths of the copied files.

        Raises:
            FilesystemError: If a copy fails; remaining files are not copied.
        """
        copied: list[str] = []
        for source in self.iter_static_files():
            rel = source.relative_to(self.site_dir)
            dest = self.output_dir / rel
            try:
                dest.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(source, dest)
            except OSError as exc:
                raise FilesystemError(
                    rel.as_posix(), f"Could not copy static file: {exc}", exc, source
                ) from exc
            copied.append(rel.as_posix())
        if copied:
            logger.debug("Copied %d static files", len(copied))
        return copied
