"""Tests for exception types and logging configuration.

Verifies that validation failures surface as SignalRec exceptions, that
recoverable problems are logged instead of raised, and that the JSON log
formatter emits structured records.
"""

import json
import logging
import sys

import pytest

from signalrec.exceptions import (
    ConfigError,
    InvalidProductError,
    InvalidProfileError,
    ScorerWeightsError,
    SignalRecError,
)
from signalrec.logging_config import JSONFormatter, setup_logging
from signalrec.recommender.utils import coerce_catalog


def test_exception_hierarchy():
    """Test that every error derives from SignalRecError."""
    for error_type in (InvalidProfileError, InvalidProductError, ConfigError, ScorerWeightsError):
        assert issubclass(error_type, SignalRecError)
    assert issubclass(InvalidProfileError, ValueError)
    assert issubclass(InvalidProductError, ValueError)


def test_invalid_profile_error_details():
    """Test the message and details of InvalidProfileError."""
    error = InvalidProfileError("u1", ["price range min (5) exceeds max (1)"])

    assert "u1" in error.message
    assert error.details["user_id"] == "u1"
    assert error.details["errors"] == ["price range min (5) exceeds max (1)"]
    assert str(error) == error.message


def test_scorer_weights_error_details():
    """Test that the weights path is kept only when given."""
    assert ScorerWeightsError("bad").details == {}
    assert ScorerWeightsError("bad", "/tmp/w.joblib").details == {"weights_path": "/tmp/w.joblib"}


def test_invalid_catalog_entry_is_logged(caplog):
    """Test that skipped catalog entries are logged with the product id."""
    with caplog.at_level(logging.WARNING):
        products = coerce_catalog([{"id": "broken", "price": -3, "popularity": 0.1, "rating": 1}])

    assert products == []
    records = [r for r in caplog.records if r.getMessage() == "Skipping invalid catalog entry"]
    assert len(records) == 1
    assert records[0].product_id == "broken"


def test_json_formatter_includes_extra_fields():
    """Test that the JSON formatter merges extra fields into the record."""
    record = logging.LogRecord(
        name="signalrec.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Hybrid recommendations generated",
        args=(),
        exc_info=None,
    )
    record.user_id = "u1"
    record.num_recommendations = 3

    payload = json.loads(JSONFormatter().format(record))

    assert payload["message"] == "Hybrid recommendations generated"
    assert payload["level"] == "INFO"
    assert payload["user_id"] == "u1"
    assert payload["num_recommendations"] == 3
    assert "timestamp" in payload


def test_json_formatter_includes_exception():
    """Test that exception info is rendered into the payload."""
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        exc_info = sys.exc_info()

    record = logging.LogRecord("signalrec.test", logging.ERROR, __file__, 1, "failed", (), exc_info)
    payload = json.loads(JSONFormatter().format(record))
    assert "RuntimeError: boom" in payload["exception"]


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


def test_setup_logging_json(restore_root_logger, capsys):
    """Test that setup_logging installs a JSON handler at the given level."""
    setup_logging("DEBUG", json_format=True)
    logging.getLogger("signalrec.test").debug("hello", extra={"algorithm": "hybrid"})

    line = capsys.readouterr().out.strip().splitlines()[-1]
    payload = json.loads(line)
    assert payload["message"] == "hello"
    assert payload["algorithm"] == "hybrid"
    assert logging.getLogger().level == logging.DEBUG
