"""
Tests for observability/__init__.py - combined setup.
"""
from unittest.mock import patch

import config as config_module
from config import Config
from observability import LoggingConfig, TracingConfig, setup_observability


class TestSetupObservability:
    """Tests for setup_observability()."""

    def test_defaults_come_from_config(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "staging")
        monkeypatch.setattr(config_module, "_config", Config())

        with patch("observability.setup_logging") as setup_logging, \
                patch("observability.setup_tracing") as setup_tracing:
            setup_observability()

        assert setup_logging.call_args.args[0].environment == "staging"
        assert setup_tracing.call_args.args[0].environment == "staging"

    def test_service_name_override_leaves_config_untouched(self):
        logging_config = LoggingConfig(service_name="base")
        tracing_config = TracingConfig(service_name="base")

        with patch("observability.setup_logging") as setup_logging, \
                patch("observability.setup_tracing") as setup_tracing:
            setup_observability("orders", logging_config, tracing_config)

        assert setup_logging.call_args.args[0].service_name == "orders"
        assert setup_tracing.call_args.args[0].service_name == "orders"
        assert logging_config.service_name == "base"
