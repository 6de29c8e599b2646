"""
Unit tests for duplicate name resolution.
Tests drivecore/storage/naming.py
"""
import pytest

from drivecore.core.errors import NameResolutionExhaustedError
from drivecore.models import FileRecord, FolderRecord
from drivecore.storage.naming import DuplicateNameResolver, split_name

from conftest import OWNER_ID, OTHER_OWNER_ID


def _add_file(db, name, folder_id=None, owner_id=OWNER_ID, is_deleted=False):
    file = FileRecord(
        owner_id=owner_id,
        folder_id=folder_id,
        blob_key=f"key-{name}",
        name=name,
        size=1,
        media_type="text/plain",
        is_deleted=is_deleted,
    )
    db.add(file)
    db.flush()
    return file


@pytest.mark.unit
class TestSplitName:
    """Test base/extension splitting."""

    @pytest.mark.parametrize("name,expected", [
        ("report.pdf", ("report", ".pdf")),
        ("archive.tar.gz", ("archive.tar", ".gz")),
        ("README", ("README", "")),
        (".env", (".env", "")),
        ("notes.", ("notes", ".")),
    ])
    def test_split(self, name, expected):
        assert split_name(name) == expected


@pytest.mark.unit
class TestDuplicateNameResolver:
    """Test name resolution within a folder scope."""

    def test_free_name_unchanged(self, db):
        resolver = DuplicateNameResolver(db)
        assert resolver.resolve(OWNER_ID, None, "report.pdf") == "report.pdf"

    def test_single_collision(self, db):
        _add_file(db, "report.pdf")
        resolver = DuplicateNameResolver(db)
        assert resolver.resolve(OWNER_ID, None, "report.pdf") == "report (1).pdf"

    def test_skips_taken_suffixes(self, db):
        _add_file(db, "report.pdf")
        _add_file(db, "report (1).pdf")
        _add_file(db, "report (2).pdf")
        resolver = DuplicateNameResolver(db)
        assert resolver.resolve(OWNER_ID, None, "report.pdf") == "report (3).pdf"

    def test_name_without_extension(self, db):
        _add_file(db, "Makefile")
        resolver = DuplicateNameResolver(db)
        assert resolver.resolve(OWNER_ID, None, "Makefile") == "Makefile (1)"

    def test_exhausted_after_99_suffixes(self, db):
        _add_file(db, "a.txt")
        for n in range(1, 100):
            _add_file(db, f"a ({n}).txt")
        resolver = DuplicateNameResolver(db)

        with pytest.raises(NameResolutionExhaustedError):
            resolver.resolve(OWNER_ID, None, "a.txt")

    def test_deleted_files_do_not_collide(self, db):
        _add_file(db, "report.pdf", is_deleted=True)
        resolver = DuplicateNameResolver(db)
        assert resolver.resolve(OWNER_ID, None, "report.pdf") == "report.pdf"

    def test_scope_is_per_folder_and_owner(self, db):
        folder = FolderRecord(owner_id=OWNER_ID, name="Docs")
        db.add(folder)
        db.flush()
        _add_file(db, "report.pdf", folder_id=folder.id)
        _add_file(db, "report.pdf", owner_id=OTHER_OWNER_ID)
        resolver = DuplicateNameResolver(db)

        assert resolver.resolve(OWNER_ID, None, "report.pdf") == "report.pdf"
        assert resolver.resolve(OWNER_ID, folder.id, "report.pdf") == "report (1).pdf"

    def test_excluded_file_does_not_collide_with_itself(self, db):
        file = _add_file(db, "report.pdf")
        resolver = DuplicateNameResolver(db)
        assert resolver.resolve(OWNER_ID, None, "report.pdf", exclude_file_id=file.id) == "report.pdf"

    def test_custom_attempt_limit(self, db):
        _add_file(db, "a.txt")
        _add_file(db, "a (1).txt")
        resolver = DuplicateNameResolver(db, max_attempts=2)

        with pytest.raises(NameResolutionExhaustedError):
            resolver.resolve(OWNER_ID, None, "a.txt")
