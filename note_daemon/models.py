"""
Pydantic models for the note daemon.

Contains the note, task and log entry records produced by the parser, the
projections returned by queries, and the filter/range inputs they accept.
"""

import datetime as dt
from enum import Enum

from pydantic import BaseModel, Field

# Identifiers are plain strings with value semantics.
NoteId = str
TaskId = str
LogEntryId = str


class TaskStatus(str, Enum):
    """Lifecycle state of a task."""

    OPEN = "Open"
    IN_PROGRESS = "InProgress"
    DONE = "Done"
    BLOCKED = "Blocked"


class Note(BaseModel):
    """A Markdown note loaded from the vault."""

    id: NoteId
    path: str
    title: str
    date: dt.date | None = None
    content: str

    def meta(self) -> "NoteMeta":
        return NoteMeta(id=self.id, path=self.path, title=self.title, date=self.date)


class NoteMeta(BaseModel):
    """Lightweight projection of a note for list views."""

    id: NoteId
    path: str
    title: str
    date: dt.date | None = None


class Task(BaseModel):
    """A checkbox task captured from a note's Tasks section."""

    id: TaskId
    title: str
    status: TaskStatus = TaskStatus.OPEN
    created_at: dt.datetime
    updated_at: dt.datetime
    closed_at: dt.datetime | None = None
    tags: list[str] = Field(default_factory=list)
    description_md: str | None = None
    source_note_id: NoteId | None = None


class LogEntry(BaseModel):
    """A list item captured from a note's Log section."""

    id: LogEntryId
    note_id: NoteId
    line_number: int
    timestamp: str | None = None
    content_md: str
    tags: list[str] = Field(default_factory=list)
    task_ids: list[TaskId] = Field(default_factory=list)


class TaskMention(BaseModel):
    """Backlink from a log entry to a task it references."""

    task_id: TaskId
    note_id: NoteId
    log_entry_id: LogEntryId | None = None
    excerpt: str


class ParsedNote(BaseModel):
    """Everything the parser derived from a single note."""

    note: Note
    tasks: list[Task] = Field(default_factory=list)
    log_entries: list[LogEntry] = Field(default_factory=list)
    mentions: list[TaskMention] = Field(default_factory=list)


class TaskFilter(BaseModel):
    """Predicates for task listing. Unset fields impose no constraint."""

    status: TaskStatus | None = None
    tags: list[str] = Field(default_factory=list)
    text_search: str | None = None
    touched_since: dt.date | None = None


class DateRange(BaseModel):
    """Inclusive calendar date range."""

    start: dt.date
    end: dt.date

    def __contains__(self, day: dt.date) -> bool:
        return self.start <= day <= self.end


class TagResult(BaseModel):
    """All tasks and log entries carrying a tag."""

    tag: str
    tasks: list[Task] = Field(default_factory=list)
    log_entries: list[LogEntry] = Field(default_factory=list)


class TaskDetail(BaseModel):
    """A task together with its backlinks."""

    task: Task
    mentions: list[TaskMention] = Field(default_factory=list)
    log_entries: list[LogEntry] = Field(default_factory=list)


class WeeklySummary(BaseModel):
    """Activity summary for a date window."""

    new_tasks: list[Task] = Field(default_factory=list)
    completed_tasks: list[Task] = Field(default_factory=list)
    notes: list[NoteMeta] = Field(default_factory=list)
    top_tags: list[tuple[str, int]] = Field(default_factory=list)


class ReindexResult(BaseModel):
    """Outcome of a full vault reindex."""

    notes_indexed: int
    notes_removed: int = 0
    duration_ms: float = 0.0
