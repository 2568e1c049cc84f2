import contextlib
import unittest

import mock

from sqltrace.settings import config
from sqltrace.testing import DummyTracer


@contextlib.contextmanager
def override_global_config(values):
    """
    Temporarily override the global configuration::

        >>> with override_global_config(dict(strict_dsn=True)):
            # Your test
    """
    with contextlib.ExitStack() as stack:
        for key, value in values.items():
            stack.enter_context(mock.patch.object(config, key, value))
        yield


class BaseTestCase(unittest.TestCase):
    """
    BaseTestCase extends ``unittest.TestCase`` to provide some useful helpers/assertions


    Example::

        from tests.utils import BaseTestCase


        class MyTestCase(BaseTestCase):
            def test_case(self):
                with self.override_global_config(dict(service="orders-db")):
                    pass
    """

    override_global_config = staticmethod(override_global_config)


class TracerTestCase(BaseTestCase):
    """
    TracerTestCase is a base test case for when you need access to a dummy tracer and its written spans
    """

    def setUp(self):
        """Before each test case, setup a dummy tracer to use"""
        self.tracer = DummyTracer()
        super(TracerTestCase, self).setUp()

    def tearDown(self):
        """After each test case, drop whatever the dummy tracer still holds"""
        super(TracerTestCase, self).tearDown()
        self.tracer.pop()
        self.tracer.writer.pop()

    def pop_spans(self):
        return self.tracer.pop_written()

    def pop_traces(self):
        return self.tracer.pop_written_traces()
