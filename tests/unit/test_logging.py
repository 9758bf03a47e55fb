"""Testes do filtro de correlation_id."""

from __future__ import annotations

import logging

from onboarding_agent.observability import middleware
from onboarding_agent.observability.logging import (
    CorrelationIdFilter,
    correlation_id_var,
    get_correlation_id,
)


def _record() -> logging.LogRecord:
    return logging.LogRecord("onboarding_agent.test", logging.INFO, __file__, 1, "msg", None, None)


def test_filter_uses_current_correlation_id():
    token = correlation_id_var.set("abc-123")
    try:
        record = _record()
        CorrelationIdFilter("onboarding_agent").filter(record)
    finally:
        correlation_id_var.reset(token)

    assert record.correlation_id == "abc-123"
    assert record.service == "onboarding_agent"
    assert get_correlation_id() == ""


def test_filter_keeps_explicit_correlation_id():
    record = _record()
    record.correlation_id = "explicit"

    CorrelationIdFilter("onboarding_agent").filter(record)

    assert record.correlation_id == "explicit"


def test_middleware_shares_logging_context():
    assert middleware.get_correlation_id is get_correlation_id
    assert middleware._request_logger.name == "onboarding_agent.requests"
