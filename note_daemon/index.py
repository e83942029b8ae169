"""
In-memory index module for the note daemon.

Contains the IndexStore protocol and InMemoryIndexStore, which keeps every
record derived from the vault under id-keyed tables plus the reverse indices
used by queries (tag -> tasks, tag -> log entries, task -> referencing log
entries, task -> mentions, and note -> owned tasks, log entries and mentioned
tasks).
"""

from typing import Protocol

import structlog

from .models import (
    DateRange,
    LogEntry,
    LogEntryId,
    Note,
    NoteId,
    NoteMeta,
    ParsedNote,
    Task,
    TagResult,
    TaskFilter,
    TaskId,
    TaskMention,
)

logger = structlog.get_logger(__name__)


class IndexStore(Protocol):
    def upsert_parsed_note(self, parsed: ParsedNote) -> None: ...
    def remove_note(self, note_id: NoteId) -> None: ...
    def get_task(self, task_id: TaskId) -> Task | None: ...
    def get_note(self, note_id: NoteId) -> Note | None: ...
    def list_tasks(self, task_filter: TaskFilter) -> list[Task]: ...
    def get_log_entries_for_task(self, task_id: TaskId) -> list[LogEntry]: ...
    def get_mentions_for_task(self, task_id: TaskId) -> list[TaskMention]: ...
    def list_notes_by_date(self, date_range: DateRange) -> list[NoteMeta]: ...
    def list_notes(self) -> list[NoteMeta]: ...
    def list_tags(self) -> list[str]: ...
    def items_for_tag(self, tag: str) -> TagResult: ...


def _discard(index: dict[str, list[str]], key: str, member: str) -> None:
    """Drop every occurrence of member from index[key], pruning empty buckets."""
    members = index.get(key)
    if members is None:
        return
    remaining = [m for m in members if m != member]
    if remaining:
        index[key] = remaining
    else:
        del index[key]


class InMemoryIndexStore:
    """Dict-backed index of everything parsed from the vault.

    All methods are synchronous and never yield to the event loop, so an
    upsert or removal is observed by other coroutines either completely or
    not at all.
    """

    def __init__(self):
        self._notes: dict[NoteId, NoteMeta] = {}
        self._note_content: dict[NoteId, Note] = {}
        self._tasks: dict[TaskId, Task] = {}
        self._log_entries: dict[LogEntryId, LogEntry] = {}
        self._mentions_by_task: dict[TaskId, list[TaskMention]] = {}
        self._tags_to_tasks: dict[str, list[TaskId]] = {}
        self._tags_to_log_entries: dict[str, list[LogEntryId]] = {}
        self._task_refs_by_task: dict[TaskId, list[LogEntryId]] = {}
        self._note_to_task_ids: dict[NoteId, list[TaskId]] = {}
        self._note_to_log_entry_ids: dict[NoteId, list[LogEntryId]] = {}
        self._note_to_mention_task_ids: dict[NoteId, list[TaskId]] = {}

    def __len__(self) -> int:
        return len(self._notes)

    def __contains__(self, note_id: NoteId) -> bool:
        return note_id in self._notes

    # ---------- mutation ----------

    def upsert_parsed_note(self, parsed: ParsedNote) -> None:
        """Insert or replace a parsed note and everything derived from it."""
        note = parsed.note
        self.remove_note(note.id)

        self._notes[note.id] = note.meta()
        self._note_content[note.id] = note

        task_ids: list[TaskId] = []
        for task in parsed.tasks:
            if task.id in self._tasks:
                self._evict_task(task.id)
            for tag in dict.fromkeys(task.tags):
                self._tags_to_tasks.setdefault(tag, []).append(task.id)
            self._tasks[task.id] = task
            if task.id not in task_ids:
                task_ids.append(task.id)
        if task_ids:
            self._note_to_task_ids[note.id] = task_ids

        entry_ids: list[LogEntryId] = []
        for entry in parsed.log_entries:
            for tag in dict.fromkeys(entry.tags):
                self._tags_to_log_entries.setdefault(tag, []).append(entry.id)
            for task_id in dict.fromkeys(entry.task_ids):
                self._task_refs_by_task.setdefault(task_id, []).append(entry.id)
            self._log_entries[entry.id] = entry
            entry_ids.append(entry.id)
        if entry_ids:
            self._note_to_log_entry_ids[note.id] = entry_ids

        mentioned: list[TaskId] = []
        for mention in parsed.mentions:
            self._mentions_by_task.setdefault(mention.task_id, []).append(mention)
            if mention.task_id not in mentioned:
                mentioned.append(mention.task_id)
        if mentioned:
            self._note_to_mention_task_ids[note.id] = mentioned

        logger.debug(
            "note_indexed",
            note_id=note.id,
            tasks=len(parsed.tasks),
            log_entries=len(parsed.log_entries),
            mentions=len(parsed.mentions),
        )

    def remove_note(self, note_id: NoteId) -> None:
        """Remove a note and cascade to its tasks, log entries and mentions.

        Unknown ids are ignored.
        """
        self._notes.pop(note_id, None)
        self._note_content.pop(note_id, None)

        for task_id in self._note_to_task_ids.pop(note_id, []):
            self._remove_task(task_id)
        for entry_id in self._note_to_log_entry_ids.pop(note_id, []):
            self._remove_log_entry(entry_id)

        for task_id in self._note_to_mention_task_ids.pop(note_id, []):
            self._remove_mentions(task_id, note_id)

    def _evict_task(self, task_id: TaskId) -> None:
        """Drop a task that is about to be replaced by one from another note."""
        owner = self._tasks[task_id].source_note_id
        if owner is not None and owner in self._note_to_task_ids:
            _discard(self._note_to_task_ids, owner, task_id)
        self._remove_task(task_id)
        logger.debug("task_replaced", task_id=task_id, previous_note_id=owner)

    def _remove_task(self, task_id: TaskId) -> None:
        task = self._tasks.pop(task_id, None)
        if task is None:
            return
        for tag in task.tags:
            _discard(self._tags_to_tasks, tag, task_id)

    def _remove_mentions(self, task_id: TaskId, note_id: NoteId) -> None:
        remaining = [m for m in self._mentions_by_task.get(task_id, []) if m.note_id != note_id]
        if remaining:
            self._mentions_by_task[task_id] = remaining
        else:
            self._mentions_by_task.pop(task_id, None)

    def _remove_log_entry(self, entry_id: LogEntryId) -> None:
        entry = self._log_entries.pop(entry_id, None)
        if entry is None:
            return
        for tag in entry.tags:
            _discard(self._tags_to_log_entries, tag, entry_id)
        for task_id in entry.task_ids:
            _discard(self._task_refs_by_task, task_id, entry_id)

    # ---------- queries ----------

    def get_task(self, task_id: TaskId) -> Task | None:
        return self._tasks.get(task_id)

    def get_note(self, note_id: NoteId) -> Note | None:
        return self._note_content.get(note_id)

    def list_tasks(self, task_filter: TaskFilter) -> list[Task]:
        """Return every task matching all of the filter's set predicates."""
        search = task_filter.text_search.lower() if task_filter.text_search else None
        since = task_filter.touched_since

        results: list[Task] = []
        for task in self._tasks.values():
            if task_filter.status is not None and task.status != task_filter.status:
                continue

            if task_filter.tags and not set(task_filter.tags).issubset(task.tags):
                continue

            if search is not None:
                in_title = search in task.title.lower()
                in_description = bool(task.description_md) and search in task.description_md.lower()
                if not (in_title or in_description):
                    continue

            if since is not None:
                touched = task.updated_at.date() >= since
                closed = task.closed_at is not None and task.closed_at.date() >= since
                if not (touched or closed):
                    continue

            results.append(task)
        return results

    def get_log_entries_for_task(self, task_id: TaskId) -> list[LogEntry]:
        return [
            self._log_entries[entry_id]
            for entry_id in self._task_refs_by_task.get(task_id, [])
            if entry_id in self._log_entries
        ]

    def get_mentions_for_task(self, task_id: TaskId) -> list[TaskMention]:
        return list(self._mentions_by_task.get(task_id, []))

    def list_notes_by_date(self, date_range: DateRange) -> list[NoteMeta]:
        """Dated notes within the inclusive range, oldest first."""
        notes = [
            meta for meta in self._notes.values()
            if meta.date is not None and meta.date in date_range
        ]
        notes.sort(key=lambda meta: meta.date)
        return notes

    def list_notes(self) -> list[NoteMeta]:
        return sorted(self._notes.values(), key=lambda meta: meta.path)

    def list_tags(self) -> list[str]:
        return sorted(set(self._tags_to_tasks) | set(self._tags_to_log_entries))

    def items_for_tag(self, tag: str) -> TagResult:
        tasks = [
            self._tasks[task_id]
            for task_id in self._tags_to_tasks.get(tag, [])
            if task_id in self._tasks
        ]
        log_entries = [
            self._log_entries[entry_id]
            for entry_id in self._tags_to_log_entries.get(tag, [])
            if entry_id in self._log_entries
        ]
        return TagResult(tag=tag, tasks=tasks, log_entries=log_entries)
