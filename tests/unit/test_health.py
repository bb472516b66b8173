"""Tests for health check endpoints."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from certificate_set_operator import health
from certificate_set_operator.health import create_combined_wsgi_app, mark_not_ready, mark_ready


def _environ(path: str) -> dict:
    return {
        "REQUEST_METHOD": "GET",
        "PATH_INFO": path,
        "SCRIPT_NAME": "",
        "SERVER_NAME": "localhost",
        "SERVER_PORT": "8080",
        "wsgi.url_scheme": "http",
        "wsgi.input": MagicMock(),
        "QUERY_STRING": "",
    }


class TestCombinedWsgiApp:
    """Test cases for the combined metrics and health app."""

    @pytest.fixture(autouse=True)
    def reset_readiness(self):
        mark_not_ready()
        yield
        mark_not_ready()

    def test_healthz(self):
        app = create_combined_wsgi_app()
        start_response = MagicMock()

        body = b"".join(app(_environ("/healthz"), start_response))

        assert b'"status":"ok"' in body
        assert "200" in start_response.call_args[0][0]

    def test_readyz_before_startup(self):
        app = create_combined_wsgi_app()
        start_response = MagicMock()

        body = b"".join(app(_environ("/readyz"), start_response))

        assert b'"status":"starting"' in body
        assert "503" in start_response.call_args[0][0]

    def test_readyz_after_startup(self):
        mark_ready()
        app = create_combined_wsgi_app()
        start_response = MagicMock()

        body = b"".join(app(_environ("/readyz"), start_response))

        assert b'"status":"ready"' in body
        assert "200" in start_response.call_args[0][0]

    def test_metrics_delegated_to_prometheus(self):
        app = create_combined_wsgi_app()
        start_response = MagicMock()

        body = b"".join(app(_environ("/metrics"), start_response))

        assert b"certificate_set_operator_reconcile_total" in body


class TestStartMetricsServer:
    """Test start_metrics_server."""

    @patch("certificate_set_operator.health.make_server")
    def test_serves_from_daemon_thread(self, mock_make_server):
        server = MagicMock()
        mock_make_server.return_value = server

        thread = health.start_metrics_server(9100)
        thread.join(timeout=1)

        assert mock_make_server.call_args[0][:2] == ("", 9100)
        assert thread.daemon is True
        server.serve_forever.assert_called_once()
