"""
Unit tests for the request dispatcher.
"""
import io
import logging
from unittest.mock import MagicMock, patch

import pytest

from rpmgate.gateway.dispatcher import GatewayResponse, RequestDispatcher
from rpmgate.refresh.coordinator import RefreshCoordinator, RefreshOutcome


class TestDispatch:
    """Test method routing and status mapping."""

    def setup_method(self):
        self.coordinator = MagicMock(spec=RefreshCoordinator)

    def make_dispatcher(self, store):
        return RequestDispatcher(store, self.coordinator)

    def test_get_has_no_side_effects(self, store, repo_root):
        result = self.make_dispatcher(store).dispatch("GET", "/anything/at/all")

        assert result.status_code == 200
        assert result.status == "ok"
        assert list(repo_root.iterdir()) == []
        self.coordinator.refresh.assert_not_called()

    @pytest.mark.parametrize("method", ["DELETE", "PATCH", "HEAD", "OPTIONS", "TRACE"])
    def test_other_methods_not_allowed(self, store, repo_root, method):
        result = self.make_dispatcher(store).dispatch(method, "/acme/pkg.rpm", io.BytesIO(b"x"))

        assert result.status_code == 405
        assert list(repo_root.iterdir()) == []

    def test_method_is_case_insensitive(self, store):
        assert self.make_dispatcher(store).dispatch("get", "/").status_code == 200

    def test_put_writes_artifact(self, store, repo_root):
        result = self.make_dispatcher(store).dispatch("PUT", "/acme/pkg-1.0.rpm", io.BytesIO(b"B"))

        assert result.status_code == 200
        assert result.repository == "acme"
        assert result.file == "pkg-1.0.rpm"
        assert result.bytes_written == 1
        assert (repo_root / "acme" / "rpms" / "pkg-1.0.rpm").read_bytes() == b"B"

    def test_put_wrong_extension(self, store, repo_root):
        result = self.make_dispatcher(store).dispatch("PUT", "/acme/pkg-1.0.tar", io.BytesIO(b"B"))

        assert result.status_code == 400
        assert "pkg-1.0.tar" in result.detail
        assert list(repo_root.iterdir()) == []

    @pytest.mark.parametrize("target", ["/acme", "/", "/a/b/c.rpm", "*"])
    def test_put_bad_path(self, store, repo_root, target):
        result = self.make_dispatcher(store).dispatch("PUT", target, io.BytesIO(b"B"))

        assert result.status_code == 400
        assert list(repo_root.iterdir()) == []

    def test_put_config_error(self, store, repo_root):
        (repo_root / "acme").write_text("x")

        result = self.make_dispatcher(store).dispatch("PUT", "/acme/pkg.rpm", io.BytesIO(b"B"))

        assert result.status_code == 500
        assert "must refer to a directory" in result.detail

    def test_put_write_failure(self, store):
        dispatcher = self.make_dispatcher(store)

        with patch.object(store, "write_upload", side_effect=OSError("disk full")):
            result = dispatcher.dispatch("PUT", "/acme/pkg.rpm", io.BytesIO(b"B"))

        assert result.status_code == 500

    def test_put_without_body(self, store):
        result = self.make_dispatcher(store).dispatch("PUT", "/acme/pkg.rpm")

        assert result.status_code == 500

    def test_post_success(self, store):
        self.coordinator.refresh.return_value = RefreshOutcome(success=True, repo_name="acme", returncode=0)

        result = self.make_dispatcher(store).dispatch("POST", "/acme")

        assert result.status_code == 200
        assert result.repository == "acme"
        self.coordinator.refresh.assert_called_once_with("acme")

    def test_post_ignores_file_name(self, store):
        """A refresh always targets the whole repository."""
        self.coordinator.refresh.return_value = RefreshOutcome(success=True, repo_name="acme", returncode=0)

        result = self.make_dispatcher(store).dispatch("POST", "/acme/whatever.txt")

        assert result.status_code == 200
        self.coordinator.refresh.assert_called_once_with("acme")

    def test_post_indexer_failure(self, store):
        self.coordinator.refresh.return_value = RefreshOutcome(
            success=False, repo_name="acme", returncode=1, error="Indexer exited with code 1"
        )

        result = self.make_dispatcher(store).dispatch("POST", "/acme")

        assert result.status_code == 500
        assert "code 1" in result.detail

    def test_post_bad_path(self, store):
        result = self.make_dispatcher(store).dispatch("POST", "/")

        assert result.status_code == 400
        self.coordinator.refresh.assert_not_called()

    def test_unexpected_error_becomes_500(self, store):
        self.coordinator.refresh.side_effect = RuntimeError("boom")

        result = self.make_dispatcher(store).dispatch("POST", "/acme")

        assert result.status_code == 500
        assert result.status == "error"

    def test_target_is_quoted_in_logs(self, store, caplog):
        """Control characters in a target cannot start a new log line."""
        target = "/acme/pkg.tar\r\nINFO forged entry"

        with caplog.at_level(logging.WARNING, logger="rpmgate.gateway.dispatcher"):
            result = self.make_dispatcher(store).dispatch("PUT", target, io.BytesIO(b"B"))

        assert result.status_code == 400
        messages = [record.getMessage() for record in caplog.records]
        assert messages
        assert all("\n" not in message and "\r" not in message for message in messages)
        assert any(repr(target) in message for message in messages)


class TestGatewayResponse:
    """Test response helpers."""

    def test_ok(self):
        response = GatewayResponse.ok(repository="acme")

        assert response.status_code == 200
        assert response.status == "ok"
        assert response.detail is None

    def test_error(self):
        response = GatewayResponse.error(400, "Invalid path specified")

        assert response.status_code == 400
        assert response.status == "error"
        assert response.detail == "Invalid path specified"
