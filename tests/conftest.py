"""
Pytest configuration and fixtures for note daemon tests.
"""

from datetime import datetime
from pathlib import Path

import pytest

# Fixed parse time so task timestamps are deterministic.
NOW = datetime(2025, 3, 10, 9, 0)


@pytest.fixture
def temp_vault(tmp_path: Path):
    """Create a temporary vault with test notes."""
    vault_path = tmp_path / "vault"
    vault_path.mkdir()

    (vault_path / "projects").mkdir()
    (vault_path / ".obsidian").mkdir()

    # Note 1: Daily note with tasks, a continuation line and log entries
    (vault_path / "2025-03-10.md").write_text("""# 2025-03-10

## Tasks
- [ ] [T-101] Draft the proposal #work #writing
  include budget section
- [x] [T-102] Book flights #travel

## Log
- 09:10 Kickoff call about [T-101] #meeting
- Reviewed notes for [T-102]
""", encoding="utf-8")

    # Note 2: Daily note with only a log
    (vault_path / "2025-03-12.md").write_text("""# 2025-03-12

## Log
- 2:30 pm Pairing on [T-201] #work
""", encoding="utf-8")

    # Note 3: Undated project note; the Notes section is not captured
    (vault_path / "projects" / "Alpha.md").write_text("""# Alpha

## Tasks
- [ ] [T-201] Set up CI #work

## Notes
- [ ] [T-999] not a task outside the Tasks section
""", encoding="utf-8")

    # Note 4: Hidden folder (should be skipped)
    (vault_path / ".obsidian" / "workspace.md").write_text("""## Tasks
- [ ] [T-500] hidden
""", encoding="utf-8")

    # Non-markdown file (should be skipped)
    (vault_path / "attachment.txt").write_text("ignored", encoding="utf-8")

    yield vault_path


@pytest.fixture
def vault(temp_vault):
    """Create a FileSystemVault over the temp vault."""
    from note_daemon.vault import FileSystemVault
    return FileSystemVault(temp_vault)


@pytest.fixture
def store():
    from note_daemon.index import InMemoryIndexStore
    return InMemoryIndexStore()


@pytest.fixture
def manager(vault, store):
    from note_daemon.manager import IndexManager
    return IndexManager(vault, store)


@pytest.fixture
def config(temp_vault):
    from note_daemon.config import Settings
    return Settings(vault_path=temp_vault, daily_notes_folder="", max_content_size=1024 * 1024)


@pytest.fixture
async def domain(manager, config):
    """Domain over the temp vault, fully indexed."""
    from note_daemon.domain import Domain

    domain = Domain(manager, config)
    await domain.reindex_all()
    return domain
