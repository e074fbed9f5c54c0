import logging

import pytest

from tests.resources import RecordingSink, RecordingTransport


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests with no background thread")
    config.addinivalue_line(
        "markers", "integration: tests that run the dispatcher's background loop"
    )
    config.addinivalue_line("markers", "slow: tests that wait on real timers")


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture(autouse=True)
def _debug_logging(caplog):
    caplog.set_level(logging.DEBUG, logger="analytics")
