"""Tests for the monitoring module."""

import unittest
from unittest.mock import patch

from stackoverflow_mcp.monitoring.metrics import PrometheusExporter, RequestTimer


class TestPrometheusExporter(unittest.TestCase):
    """Test cases for the PrometheusExporter class."""

    def setUp(self):
        """Set up test environment."""
        self.exporter = PrometheusExporter()

    def test_init(self):
        """Test initialization of metrics."""
        self.assertEqual(self.exporter.port, 8000)
        self.assertFalse(self.exporter.server_started)

    def test_start_server(self):
        """Test starting the Prometheus server."""
        with patch("stackoverflow_mcp.monitoring.metrics.start_http_server") as mock_start_server:
            self.exporter.start_server()
            self.exporter.start_server()

            mock_start_server.assert_called_once_with(8000)
            self.assertTrue(self.exporter.server_started)

    def test_start_server_port_in_use(self):
        """A failing bind is logged, not raised."""
        with patch(
            "stackoverflow_mcp.monitoring.metrics.start_http_server",
            side_effect=OSError("Address already in use"),
        ):
            self.exporter.start_server()

        self.assertFalse(self.exporter.server_started)

    def test_record_api_call(self):
        """Test recording API calls."""
        with patch("stackoverflow_mcp.monitoring.metrics.API_CALLS") as mock_counter:
            self.exporter.record_api_call("search")

            mock_counter.labels.assert_called_once_with(operation="search")
            mock_counter.labels.return_value.inc.assert_called_once()

    def test_record_api_error(self):
        """Test recording API errors."""
        with patch("stackoverflow_mcp.monitoring.metrics.API_ERRORS") as mock_counter:
            self.exporter.record_api_error("throttle_violation")

            mock_counter.labels.assert_called_once_with(error_type="throttle_violation")
            mock_counter.labels.return_value.inc.assert_called_once()

    def test_record_throttle(self):
        with patch("stackoverflow_mcp.monitoring.metrics.THROTTLE_EVENTS") as mock_counter:
            self.exporter.record_throttle("local")

            mock_counter.labels.assert_called_once_with(kind="local")
            mock_counter.labels.return_value.inc.assert_called_once()

    def test_record_policy_rejection(self):
        with patch("stackoverflow_mcp.monitoring.metrics.POLICY_REJECTIONS") as mock_counter:
            self.exporter.record_policy_rejection("post_question")

            mock_counter.labels.assert_called_once_with(tool="post_question")

    def test_record_tool_call(self):
        with patch("stackoverflow_mcp.monitoring.metrics.TOOL_CALLS") as mock_counter:
            self.exporter.record_tool_call("thumbs_up", "PolicyRejected")

            mock_counter.labels.assert_called_once_with(tool="thumbs_up", outcome="PolicyRejected")

    def test_set_quota_remaining(self):
        """Test setting the quota gauge."""
        with patch("stackoverflow_mcp.monitoring.metrics.QUOTA_REMAINING") as mock_gauge:
            self.exporter.set_quota_remaining(9876)

            mock_gauge.set.assert_called_once_with(9876)

    def test_time_request(self):
        """Test timing a request."""
        with patch("stackoverflow_mcp.monitoring.metrics.REQUEST_DURATION") as mock_histogram:
            timer = self.exporter.time_request()
            self.assertIsInstance(timer, RequestTimer)

            with timer:
                pass

            mock_histogram.observe.assert_called_once()
            self.assertGreaterEqual(mock_histogram.observe.call_args.args[0], 0)


if __name__ == "__main__":
    unittest.main()
