"""Rename-and-file step: move or copy documents under their catalog identity."""

from __future__ import annotations

import logging
import shutil
from enum import Enum
from pathlib import Path

from models import BibliographicRecord

LOGGER = logging.getLogger(__name__)

_DROPPED_CHARS = str.maketrans({",": None, ".": None, "'": None, "|": None, "-": None, " ": "_", ":": "-"})


class TransferMode(str, Enum):
    MOVE = "move"
    COPY = "copy"
    DRY_RUN = "dry_run"


def clean_name(name: str) -> str:
    """Make a title or author safe to embed in a filename."""
    return name.translate(_DROPPED_CHARS).replace("/", "_")


def target_filename(record: BibliographicRecord) -> str:
    """Build ``{isbn}_{title}_{author}`` keeping the source file's extension."""
    suffix = Path(record.filepath).suffix
    return f"{record.isbn}_{clean_name(record.title)}_{clean_name(record.author)}{suffix}"


class FileOrganizer:
    """Places recorded files into output_dir according to mode."""

    def __init__(self, output_dir: str | Path, mode: TransferMode = TransferMode.COPY) -> None:
        self.output_dir = Path(output_dir)
        self.mode = mode

    def organize(self, record: BibliographicRecord) -> Path:
        """Transfer record.filepath and return the destination path."""
        source = Path(record.filepath)
        target = self.output_dir / target_filename(record)

        if self.mode is TransferMode.DRY_RUN:
            LOGGER.info("[dry-run] Would place %s at %s", source, target)
            return target

        self.output_dir.mkdir(parents=True, exist_ok=True)
        # Creating the target exclusively claims the name, so two workers can never share it.
        try:
            reserved = open(target, "xb")
        except FileExistsError:
            raise FileExistsError(f"Refusing to overwrite {target}") from None

        try:
            if self.mode is TransferMode.MOVE:
                reserved.close()
                shutil.move(str(source), str(target))
            else:
                with reserved, source.open("rb") as src:
                    shutil.copyfileobj(src, reserved)
                shutil.copystat(source, target)
        except BaseException:
            reserved.close()
            target.unlink(missing_ok=True)
            raise

        LOGGER.info("%s %s to %s", "Moved" if self.mode is TransferMode.MOVE else "Copied", source, target)
        return target
