"""
Markdown parser for the note daemon.

Turns a note's raw text into tasks, log entries and task mentions. Parsing is
pure and total: text that does not match a recognized shape is simply not
captured.

Recognized layout:

    ## Tasks
    - [ ] [T-101] Draft the proposal #work
      continued on an indented line
    - [x] [T-102] Ship it

    ## Log
    - 09:10 Talked about [T-101] #meeting
"""

from datetime import datetime
from enum import Enum
from typing import Protocol

from .models import LogEntry, Note, ParsedNote, Task, TaskMention, TaskStatus
from .utils import HEADING_PREFIX, TASK_LINE_PATTERN, TASK_REF_PATTERN, TIME_PREFIX_PATTERN

MAX_EXCERPT = 120
ELLIPSIS = "…"


class Section(Enum):
    TASKS = "tasks"
    LOG = "log"
    OTHER = "other"


class NoteParser(Protocol):
    def parse(self, note: Note) -> ParsedNote: ...


class MarkdownParser:
    """Regex-based scanner for the Tasks and Log sections of a note."""

    def parse(self, note: Note, now: datetime | None = None) -> ParsedNote:
        return parse_note(note, now=now)


def parse_note(note: Note, now: datetime | None = None) -> ParsedNote:
    """Parse a note into its derived records.

    Args:
        note: The note to parse
        now: Timestamp applied to every task; defaults to the current time

    Returns:
        ParsedNote carrying the note plus its tasks, log entries and mentions
    """
    if now is None:
        now = datetime.now()

    tasks: list[Task] = []
    log_entries: list[LogEntry] = []
    mentions: list[TaskMention] = []

    section = Section.OTHER
    lines = note.content.splitlines()
    idx = 0
    while idx < len(lines):
        raw_line = lines[idx]
        line_number = idx + 1
        idx += 1

        trimmed = raw_line.strip()
        heading = raw_line.lstrip()
        if heading.startswith(HEADING_PREFIX):
            section = _section_for(heading[len(HEADING_PREFIX):])
            continue

        if section is Section.TASKS:
            match = TASK_LINE_PATTERN.match(trimmed)
            if not match:
                continue
            continuation, idx = collect_continuation(lines, idx)
            rest = combine_with_continuation(match.group("rest"), continuation)
            tasks.append(_build_task(note, match.group("mark"), match.group("id"), rest, now))

        elif section is Section.LOG:
            if not raw_line.lstrip().startswith("- "):
                continue
            continuation, idx = collect_continuation(lines, idx)
            entry, entry_mentions = _build_log_entry(note, raw_line, line_number, continuation)
            log_entries.append(entry)
            mentions.extend(entry_mentions)

    return ParsedNote(note=note, tasks=tasks, log_entries=log_entries, mentions=mentions)


def _section_for(heading: str) -> Section:
    name = heading.strip().lower()
    if name == "tasks":
        return Section.TASKS
    if name == "log":
        return Section.LOG
    return Section.OTHER


def _build_task(note: Note, mark: str, task_id: str, rest: str, now: datetime) -> Task:
    done = mark.lower() == "x"
    title, tags = split_title_and_tags(rest)
    return Task(
        id=task_id,
        title=title,
        status=TaskStatus.DONE if done else TaskStatus.OPEN,
        created_at=now,
        updated_at=now,
        closed_at=now if done else None,
        tags=tags,
        source_note_id=note.id,
    )


def _build_log_entry(
    note: Note,
    raw_line: str,
    line_number: int,
    continuation: list[str],
) -> tuple[LogEntry, list[TaskMention]]:
    match = TIME_PREFIX_PATTERN.match(raw_line)
    if match:
        timestamp = match.group("time")
        remainder = match.group("rest").strip()
    else:
        timestamp = None
        remainder = raw_line.lstrip()[2:].strip()

    combined = combine_with_continuation(remainder, continuation)
    content, tags = split_title_and_tags(combined)
    entry_id = f"{note.id}:{line_number}"
    excerpt = build_excerpt(combined)

    task_ids = TASK_REF_PATTERN.findall(combined)
    mentions = [
        TaskMention(task_id=task_id, note_id=note.id, log_entry_id=entry_id, excerpt=excerpt)
        for task_id in task_ids
    ]
    entry = LogEntry(
        id=entry_id,
        note_id=note.id,
        line_number=line_number,
        timestamp=timestamp,
        content_md=content,
        tags=tags,
        task_ids=task_ids,
    )
    return entry, mentions


def collect_continuation(lines: list[str], start: int) -> tuple[list[str], int]:
    """Gather indented lines that continue the list item ending before `start`.

    Stops before a heading, a new list item, a blank line, or the first
    non-indented line. Returns the trimmed continuation lines and the index
    of the first line that was not consumed.
    """
    extras: list[str] = []
    idx = start
    while idx < len(lines):
        next_line = lines[idx]
        stripped = next_line.lstrip()
        if stripped.startswith(HEADING_PREFIX) or stripped.startswith("- ") or not next_line.strip():
            break
        if not next_line.startswith((" ", "\t")):
            break
        extras.append(next_line.strip())
        idx += 1
    return extras, idx


def combine_with_continuation(base: str, continuation: list[str]) -> str:
    combined = base.strip()
    for extra in continuation:
        if combined:
            combined += "\n"
        combined += extra.strip()
    return combined


def split_title_and_tags(text: str) -> tuple[str, list[str]]:
    """Split a fragment into its tag-free text and its #tags.

    Tags keep their order of appearance, duplicates included. A fragment made
    only of tags keeps its trimmed original text as the title.
    """
    title_parts: list[str] = []
    tags: list[str] = []
    for token in text.split():
        if token.startswith("#") and len(token) > 1:
            tags.append(token[1:])
        else:
            title_parts.append(token)

    if not title_parts:
        return text.strip(), tags
    return " ".join(title_parts), tags


def build_excerpt(content: str) -> str:
    if len(content) <= MAX_EXCERPT:
        return content
    return content[:MAX_EXCERPT] + ELLIPSIS
