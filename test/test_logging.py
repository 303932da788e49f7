"""
Structured logging tests

Run: python -m pytest test/test_logging.py -v
"""

import contextvars
import logging
import os
import sys
import pytest

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from sdk.logging import configureLogging, getLogger, setServiceContext
from sdk.logging.logger import StructuredFormatter


def makeRecord(msg="hello", **fields):
    record = logging.LogRecord("codereg.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in fields.items():
        setattr(record, key, value)
    return record


def formatFresh(formatter, record):
    """Format with no service identity set"""
    return contextvars.Context().run(formatter.format, record)


class Emitter:
    def __init__(self):
        self.log = getLogger()


class TestStructuredFormatter:

    def test_fields_appended(self):
        formatter = StructuredFormatter('%(levelname)s - %(message)s')
        line = formatFresh(formatter, makeRecord(codeId=1, chainId="chain-A"))
        assert line == "INFO - hello [codeId=1, chainId=chain-A]"

    def test_plain_message_unchanged(self):
        formatter = StructuredFormatter('%(message)s')
        record = makeRecord()
        assert formatFresh(formatter, record) == "hello"
        assert record.msg == "hello"

    def test_utc_timestamp(self):
        formatter = StructuredFormatter('%(asctime)s', utc=True)
        record = makeRecord()
        record.created = 0
        record.msecs = 0
        assert formatFresh(formatter, record) == "1970-01-01 00:00:00,000"


class TestServiceContext:

    def test_identity_follows_record_fields(self):
        formatter = StructuredFormatter('%(message)s')

        def formatWithIdentity():
            setServiceContext('codereg', 'node-1')
            return formatter.format(makeRecord(codeId=1))

        line = contextvars.Context().run(formatWithIdentity)
        assert line == "hello [codeId=1, service=codereg, node=node-1]"

    def test_identity_alone(self):
        formatter = StructuredFormatter('%(message)s')

        def formatWithIdentity():
            setServiceContext('codereg', 'node-1')
            return formatter.format(makeRecord())

        assert contextvars.Context().run(formatWithIdentity) == "hello [service=codereg, node=node-1]"

    def test_identity_scoped_to_context(self):
        formatter = StructuredFormatter('%(message)s')
        contextvars.Context().run(setServiceContext, 'codereg', 'node-1')
        assert formatFresh(formatter, makeRecord()) == "hello"


class TestGetLogger:

    def test_name_detected_from_class(self, tmp_path):
        configureLogging(logDir=str(tmp_path), console=False)
        assert Emitter().log.name.endswith('test_logging.Emitter')

    def test_structured_fields_reach_file(self, tmp_path):
        configureLogging(logDir=str(tmp_path), console=False)
        log = getLogger('loggingtest.writer', separateFile=True)
        log.info("[Test] Registered", codeId=7)
        for handler in log.handlers:
            handler.flush()

        content = (tmp_path / 'loggingtest.writer.log').read_text(encoding='utf-8')
        assert "[Test] Registered [codeId=7" in content
        assert " - INFO - " in content

    def test_wrapping_is_idempotent(self, tmp_path):
        configureLogging(logDir=str(tmp_path), console=False)
        first = getLogger('loggingtest.same')
        second = getLogger('loggingtest.same')
        assert first is second
        assert len(first.handlers) == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
