"""
Vault module for the note daemon.

Reads and writes the Markdown files that are the source of truth for the index.
Note ids and paths are vault-relative POSIX paths, e.g. "journal/2025-03-15.md".
"""

import os
from pathlib import Path
from typing import Protocol

import aiofiles
import structlog

from .models import Note
from .utils import VaultError, date_from_stem, validate_path_within_vault

logger = structlog.get_logger(__name__)


class Vault(Protocol):
    root: Path

    def list_note_paths(self) -> list[str]: ...
    async def read_note(self, path: str) -> Note: ...
    async def write_note(self, path: str, content: str) -> None: ...
    def exists(self, path: str) -> bool: ...


class FileSystemVault:
    """Vault backed by a directory tree of .md files on the local filesystem."""

    def __init__(self, root: Path):
        self.root = Path(root).expanduser()

    def resolve(self, path: str) -> Path:
        """Absolute location of a vault-relative path.

        Raises:
            PathValidationError: If the path escapes the vault root
        """
        return validate_path_within_vault(path, self.root)

    def exists(self, path: str) -> bool:
        return self.resolve(path).is_file()

    def list_note_paths(self) -> list[str]:
        """Return every Markdown note in the vault, sorted, skipping hidden folders."""
        if not self.root.is_dir():
            raise VaultError(f"vault root {self.root} is not a directory")

        paths: list[str] = []
        try:
            for note_file in self.root.rglob("*.md"):
                rel_path = note_file.relative_to(self.root)
                if any(part.startswith(".") for part in rel_path.parts):
                    continue
                if not note_file.is_file():
                    continue
                paths.append(rel_path.as_posix())
        except OSError as e:
            raise VaultError(f"failed to list notes under {self.root}: {e}") from e

        paths.sort()
        return paths

    async def read_note(self, path: str) -> Note:
        """Load a note; the title is the filename stem and the date comes from it too."""
        note_file = self.resolve(path)
        try:
            async with aiofiles.open(note_file, encoding="utf-8") as f:
                content = await f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise VaultError(f"failed to read {path}: {e}") from e

        rel_path = note_file.relative_to(self.root.resolve()).as_posix()
        stem = note_file.stem
        return Note(
            id=rel_path,
            path=rel_path,
            title=stem,
            date=date_from_stem(stem),
            content=content,
        )

    async def write_note(self, path: str, content: str) -> None:
        """Write a note through a sibling temp file so readers never see half a file."""
        note_file = self.resolve(path)
        tmp_file = note_file.with_name(note_file.name + ".tmp")
        try:
            note_file.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(tmp_file, mode="w", encoding="utf-8") as f:
                await f.write(content)
            os.replace(tmp_file, note_file)
        except OSError as e:
            tmp_file.unlink(missing_ok=True)
            logger.error("note_write_failed", path=path, error=str(e))
            raise VaultError(f"failed to write {path}: {e}") from e

        logger.info("note_written", path=path, size=len(content))
