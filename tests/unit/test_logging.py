import logging
from core.exceptions import BatchWriteError
from core.logging import ErrorContextFormatter


def _record(level, **extra):
    record = logging.LogRecord("ingestion.limiter", level, __file__, 1, "Failed to save batch", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_error_context_is_appended_to_errors():
    error = BatchWriteError("Failed to save batch", context={"batch_number": 2})
    formatter = ErrorContextFormatter("%(levelname)s | %(message)s")

    line = formatter.format(_record(logging.ERROR, error_context=error.to_dict()))

    assert line == "ERROR | Failed to save batch | error_type=BatchWriteError"


def test_plain_records_are_unchanged():
    formatter = ErrorContextFormatter("%(levelname)s | %(message)s")

    assert formatter.format(_record(logging.INFO)) == "INFO | Failed to save batch"
