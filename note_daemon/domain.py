"""
Domain operations for the note daemon.

Composes the index manager and store into the operations exposed over JSON-RPC:
task queries, tag lookups, date-range views, weekly summaries and the daily
note lifecycle.
"""

from collections import Counter
from datetime import date
from pathlib import PurePosixPath

import structlog

from .config import DAILY_NOTE_TEMPLATE, Settings, settings as default_settings
from .manager import IndexManager
from .models import (
    DateRange,
    Note,
    NoteId,
    NoteMeta,
    ReindexResult,
    TagResult,
    Task,
    TaskDetail,
    TaskFilter,
    TaskId,
    WeeklySummary,
)
from .utils import IndexConsistencyError, NoteNotFoundError, format_date, validate_content_size

logger = structlog.get_logger(__name__)

TOP_TAGS_LIMIT = 10


class Domain:
    """User-facing operations over the indexed vault."""

    def __init__(self, manager: IndexManager, config: Settings | None = None):
        self.manager = manager
        self.config = config or default_settings

    @property
    def store(self):
        return self.manager.store

    @property
    def vault(self):
        return self.manager.vault

    async def reindex_all(self) -> ReindexResult:
        return await self.manager.full_reindex()

    def list_tasks(self, task_filter: TaskFilter) -> list[Task]:
        return self.store.list_tasks(task_filter)

    def task_detail(self, task_id: TaskId) -> TaskDetail | None:
        """The task plus its mentions and referencing log entries, or None."""
        task = self.store.get_task(task_id)
        if task is None:
            return None
        return TaskDetail(
            task=task,
            mentions=self.store.get_mentions_for_task(task_id),
            log_entries=self.store.get_log_entries_for_task(task_id),
        )

    def items_for_tag(self, tag: str) -> TagResult:
        return self.store.items_for_tag(tag)

    def notes_in_range(self, date_range: DateRange) -> list[NoteMeta]:
        return self.store.list_notes_by_date(date_range)

    def list_tags(self) -> list[str]:
        return self.store.list_tags()

    def read_note(self, note_id: NoteId) -> Note | None:
        return self.store.get_note(note_id)

    async def write_note(self, note_id: NoteId, content: str) -> Note:
        """Replace an indexed note's text and return the re-parsed note.

        Raises:
            NoteNotFoundError: If the note is not indexed
            ContentValidationError: If content exceeds the configured size limit
            IndexConsistencyError: If the note vanished from the index after the write
        """
        note = self.store.get_note(note_id)
        if note is None:
            raise NoteNotFoundError(note_id)
        validate_content_size(content, self.config.max_content_size)

        await self.vault.write_note(note.path, content)
        await self.manager.reindex_note_path(note.path)

        refreshed = self.store.get_note(note_id)
        if refreshed is None:
            raise IndexConsistencyError(f"note {note_id} unavailable after write")
        return refreshed

    async def open_daily(self, day: date) -> Note:
        """Get or create the daily note for a date.

        An already indexed note dated `day` wins. Otherwise the canonical
        <YYYY-MM-DD>.md file is created from the template when missing, then
        indexed.
        """
        for meta in self.store.list_notes_by_date(DateRange(start=day, end=day)):
            existing = self.store.get_note(meta.id)
            if existing is not None:
                return existing

        name = f"{format_date(day)}.md"
        folder = self.config.daily_notes_folder.strip("/")
        path = str(PurePosixPath(folder) / name) if folder else name

        if not self.vault.exists(path):
            await self.vault.write_note(path, DAILY_NOTE_TEMPLATE.format(date=format_date(day)))
            logger.info("daily_note_created", path=path)

        parsed = await self.manager.reindex_note_path(path)
        note = self.store.get_note(parsed.note.id)
        if note is None:
            raise IndexConsistencyError(f"note {parsed.note.id} unavailable after creation")
        return note

    def weekly_summary(self, date_range: DateRange) -> WeeklySummary:
        """Tasks created and closed within the range, notes dated in it, and top tags.

        Top tags are counted over every indexed task, not just the range.
        """
        all_tasks = self.store.list_tasks(TaskFilter())

        new_tasks = [task for task in all_tasks if task.created_at.date() in date_range]
        completed_tasks = [
            task for task in all_tasks
            if task.closed_at is not None and task.closed_at.date() in date_range
        ]

        tag_counts: Counter[str] = Counter()
        for task in all_tasks:
            tag_counts.update(task.tags)
        # sorted() is stable, so equal counts keep first-seen order
        top_tags = sorted(tag_counts.items(), key=lambda item: item[1], reverse=True)

        return WeeklySummary(
            new_tasks=new_tasks,
            completed_tasks=completed_tasks,
            notes=self.store.list_notes_by_date(date_range),
            top_tags=top_tags[:TOP_TAGS_LIMIT],
        )
