"""Tests for structlog setup."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from trust_escrow.logging_config import deal_context, get_logger, setup_logging


@pytest.fixture
def reset_logging():
    yield
    package_logger = logging.getLogger("trust_escrow")
    package_logger.handlers.clear()
    package_logger.propagate = True
    structlog.reset_defaults()


class TestSetupLogging:
    def test_json_events_carry_context(self, reset_logging, capsys) -> None:
        setup_logging(log_level="DEBUG", json_logs=True)
        get_logger("trust_escrow.tests").info("deal.transition_blocked", deal_id="deal-001")

        line = capsys.readouterr().out.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "deal.transition_blocked"
        assert record["deal_id"] == "deal-001"
        assert record["level"] == "info"
        assert record["logger"] == "trust_escrow.tests"
        assert "timestamp" in record

    def test_level_filters_events(self, reset_logging, capsys) -> None:
        setup_logging(log_level="WARNING", json_logs=True)
        get_logger("trust_escrow.tests").info("payout.settled")
        assert capsys.readouterr().out == ""

    def test_only_package_logger_is_configured(self, reset_logging) -> None:
        root_handlers = list(logging.getLogger().handlers)
        setup_logging()
        assert logging.getLogger().handlers == root_handlers
        assert logging.getLogger("trust_escrow").propagate is False

    def test_deal_context_binds_deal_id(self, reset_logging, capsys) -> None:
        setup_logging(log_level="INFO", json_logs=True)
        logger = get_logger("trust_escrow.tests")
        with deal_context("deal-042"):
            logger.info("payout.settled", seller_payout=9_500)
        logger.info("escrow.delivered")

        inside, outside = (json.loads(line) for line in capsys.readouterr().out.splitlines())
        assert inside["deal_id"] == "deal-042"
        assert inside["seller_payout"] == 9_500
        assert "deal_id" not in outside
