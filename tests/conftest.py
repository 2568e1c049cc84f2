import pytest

from sqltrace.internal import logger
from sqltrace.testing import DummyTracer


@pytest.fixture
def tracer():
    tracer = DummyTracer()
    yield tracer
    tracer.pop()


@pytest.fixture(autouse=True)
def reset_log_buckets():
    # rate limiting state is global, keep it from leaking between tests
    logger._buckets.clear()
    yield
    logger._buckets.clear()
