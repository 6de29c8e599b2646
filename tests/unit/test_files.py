"""
Unit tests for file queries and transfer URLs.
Tests drivecore/storage/files.py
"""
from datetime import datetime, timedelta

import pytest

from drivecore.core.errors import ForbiddenError, NotFoundError
from drivecore.schemas import FilePage, TransferURL
from drivecore.storage.files import FileService, Page
from drivecore.storage.folders import FolderService
from drivecore.storage.gateway import PresignedURL

from conftest import OWNER_ID, OTHER_OWNER_ID


def _presigned(method, key):
    created = datetime(2026, 1, 1, 12, 0, 0)
    return PresignedURL(
        url=f"https://minio.local/bucket/{key}?sig=abc",
        object_name=key,
        bucket_name="bucket",
        method=method,
        expires_in_seconds=3600,
        created_at=created,
        expires_at=created + timedelta(hours=1),
    )


@pytest.fixture
def files(db, gateway, lifecycle):
    return FileService(db, gateway, versions=lifecycle.versions)


@pytest.fixture
def folders(db, gateway, clock, lifecycle):
    return FolderService(db, gateway, clock=clock, lifecycle=lifecycle)


@pytest.mark.unit
class TestPage:
    """Test the Page result object."""

    def test_page_count(self):
        page = Page(total=45, page=2, page_size=20)
        assert page.pages == 3
        assert page.has_next

    def test_empty_page(self):
        page = Page(total=0, page=1, page_size=20)
        assert page.pages == 0
        assert not page.has_next


@pytest.mark.unit
class TestListByOwner:
    """Test folder listings."""

    def test_root_listing_newest_first(self, files, upload):
        upload("a.txt", 1)
        upload("b.txt", 1)
        upload("c.txt", 1)

        page = files.list_by_owner(OWNER_ID)

        assert page.total == 3
        assert [f.name for f in page.items] == ["c.txt", "b.txt", "a.txt"]

    def test_listing_is_scoped_to_folder(self, files, folders, upload):
        docs = folders.create_folder(OWNER_ID, "Docs")
        upload("root.txt", 1)
        upload("inside.txt", 1, folder_id=docs.id)

        assert [f.name for f in files.list_by_owner(OWNER_ID).items] == ["root.txt"]
        assert [f.name for f in files.list_by_owner(OWNER_ID, docs.id).items] == ["inside.txt"]

    def test_listing_excludes_deleted(self, files, lifecycle, upload):
        keep = upload("keep.txt", 1)
        gone = upload("gone.txt", 1)
        lifecycle.delete(gone.id, OWNER_ID)

        page = files.list_by_owner(OWNER_ID)

        assert [f.id for f in page.items] == [keep.id]

    def test_pagination(self, files, upload):
        for n in range(5):
            upload(f"file-{n}.txt", 1)

        page = files.list_by_owner(OWNER_ID, page=2, page_size=2)

        assert page.total == 5
        assert page.pages == 3
        assert [f.name for f in page.items] == ["file-2.txt", "file-1.txt"]

    @pytest.mark.parametrize("page,page_size", [(0, 20), (1, 0), (1, 101)])
    def test_invalid_paging(self, files, page, page_size):
        with pytest.raises(ValueError):
            files.list_by_owner(OWNER_ID, page=page, page_size=page_size)

    def test_page_serializes(self, files, upload):
        upload("a.txt", 7)
        page = files.list_by_owner(OWNER_ID)

        out = FilePage.model_validate(page)

        assert out.total == 1
        assert out.items[0].name == "a.txt"
        assert out.items[0].size == 7


@pytest.mark.unit
class TestSearch:
    """Test name and media type search."""

    def test_search_by_name_case_insensitive(self, files, upload):
        upload("Quarterly Report.pdf", 1)
        upload("notes.txt", 1, media_type="text/plain")

        page = files.search(OWNER_ID, "REPORT")

        assert [f.name for f in page.items] == ["Quarterly Report.pdf"]

    def test_search_by_media_type(self, files, upload):
        upload("photo.jpg", 1, media_type="image/jpeg")
        upload("notes.txt", 1, media_type="text/plain")

        page = files.search(OWNER_ID, "image/")

        assert [f.name for f in page.items] == ["photo.jpg"]

    def test_search_spans_folders_unless_scoped(self, files, folders, upload):
        docs = folders.create_folder(OWNER_ID, "Docs")
        upload("plan.txt", 1)
        upload("plan-b.txt", 1, folder_id=docs.id)

        assert files.search(OWNER_ID, "plan").total == 2
        assert files.search(OWNER_ID, "plan", folder_id=docs.id).total == 1

    def test_search_other_owner(self, files, upload):
        upload("plan.txt", 1)
        assert files.search(OTHER_OWNER_ID, "plan").total == 0


@pytest.mark.unit
class TestLookups:
    """Test single-file lookups and ownership."""

    def test_get_file(self, files, upload):
        file = upload("a.txt", 1)
        assert files.get_file(file.id).id == file.id

    def test_get_missing_file(self, files):
        with pytest.raises(NotFoundError):
            files.get_file("missing")

    def test_verify_ownership(self, files, upload):
        file = upload("a.txt", 1)
        assert files.verify_ownership(file.id, OWNER_ID) is file
        with pytest.raises(ForbiddenError):
            files.verify_ownership(file.id, OTHER_OWNER_ID)

    def test_get_versions_of_deleted_file(self, files, lifecycle, upload):
        file = upload("a.txt", 1)
        lifecycle.delete(file.id, OWNER_ID)

        with pytest.raises(NotFoundError):
            files.get_versions(file.id)

    def test_get_versions(self, files, upload):
        file = upload("a.txt", 1)
        upload("a.txt", 2)

        assert [v.version_number for v in files.get_versions(file.id)] == [2, 1]


@pytest.mark.unit
class TestTransferURLs:
    """Test upload tickets and download URLs."""

    def test_issue_upload_url(self, files, gateway):
        gateway.issue_upload_url.return_value = _presigned("PUT", "generated-1-report.pdf")

        ticket = files.issue_upload_url("report.pdf", OWNER_ID)

        gateway.generate_key.assert_called_once_with("report.pdf")
        gateway.issue_upload_url.assert_called_once_with("generated-1-report.pdf")
        assert ticket.key == "generated-1-report.pdf"
        assert ticket.url.startswith("https://minio.local/")
        assert ticket.expires_in == 3600

    def test_issue_download_url(self, files, gateway, upload):
        file = upload("report.pdf", 1)
        gateway.issue_download_url.return_value = _presigned("GET", file.blob_key)

        url = files.issue_download_url(file.id, OWNER_ID)

        gateway.issue_download_url.assert_called_once_with(file.blob_key, filename="report.pdf")
        assert TransferURL.model_validate(url).method == "GET"

    def test_download_requires_ownership(self, files, gateway, upload):
        file = upload("report.pdf", 1)

        with pytest.raises(ForbiddenError):
            files.issue_download_url(file.id, OTHER_OWNER_ID)
        gateway.issue_download_url.assert_not_called()

    def test_issue_version_download_url(self, files, gateway, upload):
        file = upload("report.pdf", 1)
        v1 = file.versions[0]
        upload("report.pdf", 2)

        files.issue_version_download_url(file.id, v1.id, OWNER_ID)

        gateway.issue_download_url.assert_called_once_with("upload-1-report.pdf", filename="report.pdf")

    def test_version_download_unknown_version(self, files, upload):
        file = upload("report.pdf", 1)
        with pytest.raises(NotFoundError):
            files.issue_version_download_url(file.id, "missing", OWNER_ID)
