"""
Unit tests for storage quota accounting.
Tests drivecore/storage/quota.py
"""
import pytest

from drivecore.core.errors import NotFoundError, QuotaExceededError
from drivecore.models import FileRecord, UserQuota
from drivecore.storage.quota import QuotaCheck, StorageAccountant

from conftest import OWNER_ID, OTHER_OWNER_ID


@pytest.mark.unit
class TestQuotaCheck:
    """Test the QuotaCheck decision object."""

    def test_allowed_up_to_ceiling(self):
        check = QuotaCheck(owner_id=OWNER_ID, quota_bytes=1000, used_bytes=900, incoming_bytes=100)
        assert check.allowed
        assert check.would_use_bytes == 1000

    def test_rejected_above_ceiling(self):
        check = QuotaCheck(owner_id=OWNER_ID, quota_bytes=1000, used_bytes=900, incoming_bytes=150)
        assert not check.allowed

    def test_shrinking_always_allowed(self):
        """Test a negative delta passes even when already over quota."""
        check = QuotaCheck(owner_id=OWNER_ID, quota_bytes=1000, used_bytes=1200, incoming_bytes=-50)
        assert check.allowed

    def test_warning_threshold(self):
        check = QuotaCheck(owner_id=OWNER_ID, quota_bytes=1000, used_bytes=800, incoming_bytes=0)
        assert check.usage_percentage == 80.0
        assert check.is_warning

    def test_zero_quota_percentage(self):
        check = QuotaCheck(owner_id=OWNER_ID, quota_bytes=0, used_bytes=0, incoming_bytes=0)
        assert check.usage_percentage == 0.0


@pytest.mark.unit
class TestStorageAccountant:
    """Test quota rows, usage adjustment and enforcement."""

    def test_set_quota_creates_row(self, db, accountant):
        quota = accountant.set_quota(OWNER_ID, 5000)
        db.commit()

        stored = db.get(UserQuota, OWNER_ID)
        assert stored is quota
        assert stored.quota_bytes == 5000
        assert stored.used_bytes == 0

    def test_set_quota_rejects_negative(self, accountant):
        with pytest.raises(ValueError):
            accountant.set_quota(OWNER_ID, -1)

    def test_get_quota_missing_owner(self, accountant):
        with pytest.raises(NotFoundError):
            accountant.get_quota("nobody")

    def test_scenario_quota_rejection_leaves_usage(self, db, accountant, lifecycle, upload):
        """Test ceiling 1000, used 900, upload 150: rejected and usage unchanged."""
        accountant.set_quota(OWNER_ID, 1000)
        db.commit()
        upload("big.bin", 900)

        with pytest.raises(QuotaExceededError) as exc_info:
            upload("extra.bin", 150)

        assert exc_info.value.used_bytes == 900
        assert exc_info.value.quota_bytes == 1000
        assert "Storage quota exceeded" in exc_info.value.message
        assert db.get(UserQuota, OWNER_ID).used_bytes == 900
        assert db.query(FileRecord).count() == 1

    def test_adjust_usage_floors_at_zero(self, db, accountant, quota):
        assert accountant.adjust_usage(OWNER_ID, 300) == 300
        assert accountant.adjust_usage(OWNER_ID, -1000) == 0

    def test_adjust_usage_without_quota_row(self, accountant):
        assert accountant.adjust_usage(OTHER_OWNER_ID, 100) == 0

    def test_calculate_usage_ignores_deleted_files(self, db, accountant, lifecycle, upload):
        upload("a.txt", 100)
        doomed = upload("b.txt", 250)
        lifecycle.delete(doomed.id, OWNER_ID)

        assert accountant.calculate_usage(OWNER_ID) == 100

    def test_reconcile_usage_rewrites_cached_counter(self, db, accountant, upload):
        upload("a.txt", 400)
        db.get(UserQuota, OWNER_ID).used_bytes = 9999
        db.commit()

        quota = accountant.reconcile_usage(OWNER_ID)

        assert quota.used_bytes == 400

    def test_usage_report(self, db, accountant, upload):
        accountant.set_quota(OWNER_ID, 1000)
        db.commit()
        upload("a.txt", 850)

        report = accountant.get_usage_report(OWNER_ID)

        assert report["used_bytes"] == 850
        assert report["cached_used_bytes"] == 850
        assert report["available_bytes"] == 150
        assert report["usage_percentage"] == 85.0
        assert report["is_warning"] is True
        assert report["is_exceeded"] is False

    def test_custom_warning_threshold(self, db, accountant, upload):
        upload("a.txt", 6000)

        assert accountant.get_usage_report(OWNER_ID)["is_warning"] is False
        strict = StorageAccountant(db, warning_threshold=0.5)
        assert strict.get_usage_report(OWNER_ID)["is_warning"] is True


@pytest.mark.unit
class TestQuotaMetrics:
    """Test quota metrics are recorded."""

    def test_rejection_counter(self, db, accountant, quota):
        from prometheus_client import REGISTRY
        before = REGISTRY.get_sample_value("drive_quota_rejections_total") or 0.0

        with pytest.raises(QuotaExceededError):
            accountant.enforce_quota(OWNER_ID, 20_000)

        assert REGISTRY.get_sample_value("drive_quota_rejections_total") == before + 1

    def test_usage_gauge(self, accountant, quota):
        from prometheus_client import REGISTRY
        accountant.adjust_usage(OWNER_ID, 1234)

        assert REGISTRY.get_sample_value("drive_storage_used_bytes", {"owner_id": OWNER_ID}) == 1234
