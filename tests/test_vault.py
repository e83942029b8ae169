"""
Tests for the filesystem vault and path helpers.
"""

from datetime import date

import pytest


# ============== Tests for FileSystemVault ==============

class TestFileSystemVault:
    """Tests for listing, reading and writing notes."""

    def test_list_note_paths(self, vault):
        """Test listing is sorted and skips hidden folders and other files."""
        assert vault.list_note_paths() == ["2025-03-10.md", "2025-03-12.md", "projects/Alpha.md"]

    async def test_read_note(self, vault):
        """Test a dated note gets its id, title and date from the path."""
        note = await vault.read_note("2025-03-10.md")

        assert note.id == "2025-03-10.md"
        assert note.path == "2025-03-10.md"
        assert note.title == "2025-03-10"
        assert note.date == date(2025, 3, 10)
        assert "## Tasks" in note.content

    async def test_read_undated_note(self, vault):
        note = await vault.read_note("projects/Alpha.md")

        assert note.id == "projects/Alpha.md"
        assert note.title == "Alpha"
        assert note.date is None

    async def test_read_missing_note(self, vault):
        from note_daemon.utils import VaultError

        with pytest.raises(VaultError):
            await vault.read_note("missing.md")

    async def test_write_note_creates_folders(self, vault, temp_vault):
        """Test writing creates parent folders and leaves no temp file behind."""
        await vault.write_note("journal/2025-04-01.md", "# hello\n")

        target = temp_vault / "journal" / "2025-04-01.md"
        assert target.read_text(encoding="utf-8") == "# hello\n"
        assert list((temp_vault / "journal").iterdir()) == [target]

    async def test_write_note_replaces_content(self, vault, temp_vault):
        await vault.write_note("projects/Alpha.md", "new body\n")

        assert (temp_vault / "projects" / "Alpha.md").read_text(encoding="utf-8") == "new body\n"

    async def test_write_keeps_unrelated_tmp_sibling(self, vault, temp_vault):
        """Test the temp file used for the write never clobbers a user's .tmp file."""
        sibling = temp_vault / "projects" / "Alpha.tmp"
        sibling.write_text("keep me", encoding="utf-8")

        await vault.write_note("projects/Alpha.md", "new body\n")

        assert sibling.read_text(encoding="utf-8") == "keep me"
        assert sorted(p.name for p in (temp_vault / "projects").iterdir()) == ["Alpha.md", "Alpha.tmp"]

    async def test_write_rejects_traversal(self, vault, temp_vault):
        """Test writes cannot escape the vault root."""
        from note_daemon.utils import PathValidationError

        with pytest.raises(PathValidationError):
            await vault.write_note("../escape.md", "nope")

        assert not (temp_vault.parent / "escape.md").exists()

    def test_exists(self, vault):
        assert vault.exists("projects/Alpha.md") is True
        assert vault.exists("projects/Beta.md") is False


# ============== Tests for helpers ==============

class TestPathValidation:
    """Tests for validate_path_within_vault()."""

    def test_accepts_nested_path(self, temp_vault):
        from note_daemon.utils import validate_path_within_vault

        result = validate_path_within_vault("projects/Alpha.md", temp_vault)
        assert result == (temp_vault / "projects" / "Alpha.md").resolve()

    def test_rejects_parent_traversal(self, temp_vault):
        from note_daemon.utils import validate_path_within_vault, PathValidationError

        with pytest.raises(PathValidationError, match="Path escapes vault directory"):
            validate_path_within_vault("projects/../../etc/passwd", temp_vault)

    def test_rejects_absolute_paths(self, temp_vault):
        from note_daemon.utils import validate_path_within_vault, PathValidationError

        with pytest.raises(PathValidationError, match="Absolute paths are not allowed"):
            validate_path_within_vault("/etc/passwd", temp_vault)

    def test_rejects_empty_path(self, temp_vault):
        from note_daemon.utils import validate_path_within_vault, PathValidationError

        with pytest.raises(PathValidationError, match="Path cannot be empty"):
            validate_path_within_vault("  ", temp_vault)


class TestDateHelpers:
    """Tests for date parsing helpers."""

    def test_date_from_stem(self):
        from note_daemon.utils import date_from_stem

        assert date_from_stem("2025-03-15") == date(2025, 3, 15)
        assert date_from_stem("25-03-15") == date(2025, 3, 15)
        assert date_from_stem("Alpha") is None
        assert date_from_stem("2025-13-01") is None

    def test_parse_date(self):
        from note_daemon.utils import parse_date, format_date

        assert parse_date("2025-03-15") == date(2025, 3, 15)
        assert format_date(date(2025, 3, 5)) == "2025-03-05"

    def test_parse_date_invalid(self):
        from note_daemon.utils import parse_date, DateParseError

        with pytest.raises(DateParseError, match="invalid date"):
            parse_date("15/03/2025")

    def test_content_size_limit(self):
        from note_daemon.utils import validate_content_size, ContentValidationError

        assert validate_content_size("ok", 10) == "ok"
        with pytest.raises(ContentValidationError):
            validate_content_size("x" * 11, 10)
