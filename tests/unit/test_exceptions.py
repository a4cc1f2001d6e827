"""
Tests for glue_sync.exceptions module.
"""

from glue_sync.exceptions import (
    GlueSyncError,
    NotificationError,
    RemoteConnectionError,
    RemoteError,
    TranslationError,
)


class TestExceptions:
    """Test error formatting and hierarchy."""

    def test_message_only(self):
        assert str(GlueSyncError("boom")) == "boom"

    def test_details_and_cause(self):
        cause = ConnectionResetError("reset")
        error = GlueSyncError("failed", details={"attempt": 2}, cause=cause)

        assert str(error) == "failed [attempt=2] (caused by: reset)"
        assert error.cause is cause

    def test_translation_error_table(self):
        error = TranslationError("no columns", table="sales.orders")

        assert error.table == "sales.orders"
        assert error.details == {"table": "sales.orders"}

    def test_translation_error_leaves_caller_details(self):
        details = {"event": "ADD_PARTITION"}
        error = TranslationError("bad partition", table="sales.orders", details=details)

        assert details == {"event": "ADD_PARTITION"}
        assert str(error) == "bad partition [event=ADD_PARTITION, table=sales.orders]"

    def test_notification_error_details(self):
        error = NotificationError("rejected", status_code=403, response_body="invalid_token")
        assert "status_code=403" in str(error)

    def test_hierarchy(self):
        assert issubclass(RemoteConnectionError, RemoteError)
        assert issubclass(RemoteError, GlueSyncError)
