"""
Index manager for the note daemon.

Bridges the vault and the index store: reads notes, parses them and applies the
results.
"""

import time

import structlog

from .index import IndexStore
from .models import ParsedNote, ReindexResult
from .parser import MarkdownParser, NoteParser
from .vault import Vault

logger = structlog.get_logger(__name__)


class IndexManager:
    """Keeps an IndexStore in step with the notes in a Vault."""

    def __init__(self, vault: Vault, store: IndexStore, parser: NoteParser | None = None):
        self.vault = vault
        self.store = store
        self.parser = parser or MarkdownParser()

    async def full_reindex(self) -> ReindexResult:
        """Re-parse every note in the vault.

        Every note is read and parsed before anything is applied, so a read
        failure aborts the reindex and leaves the index exactly as it was.
        Notes that are indexed but no longer exist in the vault are removed.
        """
        start_time = time.time()

        paths = self.vault.list_note_paths()
        parsed_notes: list[ParsedNote] = []
        for path in paths:
            note = await self.vault.read_note(path)
            parsed_notes.append(self.parser.parse(note))

        seen = set()
        for parsed in parsed_notes:
            self.store.upsert_parsed_note(parsed)
            seen.add(parsed.note.id)

        stale = [meta.id for meta in self.store.list_notes() if meta.id not in seen]
        for note_id in stale:
            self.store.remove_note(note_id)

        duration_ms = round((time.time() - start_time) * 1000, 2)
        result = ReindexResult(
            notes_indexed=len(parsed_notes),
            notes_removed=len(stale),
            duration_ms=duration_ms,
        )
        logger.info(
            "vault_reindexed",
            note_count=result.notes_indexed,
            removed=result.notes_removed,
            duration_ms=result.duration_ms,
        )
        return result

    async def reindex_note_path(self, path: str) -> ParsedNote:
        """Read, parse and upsert a single note."""
        note = await self.vault.read_note(path)
        parsed = self.parser.parse(note)
        self.store.upsert_parsed_note(parsed)
        logger.debug("note_reindexed", path=path, tasks=len(parsed.tasks))
        return parsed
