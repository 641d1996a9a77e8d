import logging

import pytest

from seqarrange.geometry import Polygon
from seqarrange.logging_utils import apply_debug_logging, debug_log_call

LOGGER_NAME = "seqarrange.tests.logging"


def _double(value):
    return value * 2


class _Doubler:
    def double(self, value):
        return value * 2


def _namespace():
    _double.__module__ = LOGGER_NAME
    _Doubler.__module__ = LOGGER_NAME
    _Doubler.__dict__["double"].__module__ = LOGGER_NAME
    return {"__name__": LOGGER_NAME, "double": _double, "Doubler": _Doubler, "skipped": _double}


def test_module_functions_log_entry_and_exit(caplog):
    namespace = _namespace()
    apply_debug_logging(namespace, logger=logging.getLogger(LOGGER_NAME), skip=["skipped"])

    with caplog.at_level(logging.DEBUG, logger=LOGGER_NAME):
        assert namespace["double"](21) == 42

    assert "Entering double (args=[21])" in caplog.text
    assert "Exiting double -> 42" in caplog.text
    assert namespace["skipped"] is _double


def test_class_methods_are_wrapped(caplog):
    namespace = _namespace()
    apply_debug_logging(namespace, logger=logging.getLogger(LOGGER_NAME))

    with caplog.at_level(logging.DEBUG, logger=LOGGER_NAME):
        assert namespace["Doubler"]().double(3) == 6

    assert "Entering Doubler.double" in caplog.text
    assert "Exiting Doubler.double -> 6" in caplog.text


def test_polygons_are_summarized(caplog):
    logger = logging.getLogger(LOGGER_NAME)
    identity = debug_log_call(logger, name="identity")(lambda polygon: polygon)
    square = Polygon(((0, 0), (10, 0), (10, 10), (0, 10)))

    with caplog.at_level(logging.DEBUG, logger=LOGGER_NAME):
        identity(square)

    assert "Polygon(n=4, box=[0,0..10,10])" in caplog.text


def test_exceptions_propagate(caplog):
    def failing():
        raise ValueError("boom")

    wrapped = debug_log_call(logging.getLogger(LOGGER_NAME), name="failing")(failing)

    with caplog.at_level(logging.DEBUG, logger=LOGGER_NAME):
        with pytest.raises(ValueError):
            wrapped()

    assert "Exception in failing" in caplog.text
