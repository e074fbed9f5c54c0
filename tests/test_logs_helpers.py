import logging

import pytest

from analytics.logs_helpers import REDACTED, log_call, short_repr


class Service:
    @log_call(show_result=True)
    def add(self, a, b=0):
        return a + b

    @log_call(show_args=False)
    def fail(self):
        raise RuntimeError("boom")

    @log_call()
    def connect(self, endpoint, secret=None):
        return endpoint


def messages(caplog):
    return [record.getMessage() for record in caplog.records]


@pytest.mark.unit
class TestLogCall:
    def test_logs_arguments_and_result(self, caplog):
        caplog.set_level(logging.DEBUG, logger=__name__)

        assert Service().add(1, b=2) == 3

        assert any(
            m.startswith("-> Service.add(") and m.endswith("1, b=2)")
            for m in messages(caplog)
        )
        assert any(m.startswith("<- Service.add => 3 (") for m in messages(caplog))

    def test_logs_and_reraises_failures(self, caplog):
        caplog.set_level(logging.DEBUG, logger=__name__)

        with pytest.raises(RuntimeError):
            Service().fail()

        assert "-> Service.fail" in messages(caplog)
        assert any(
            record.levelno == logging.ERROR
            and "Service.fail failed" in record.getMessage()
            for record in caplog.records
        )

    def test_redacts_sensitive_keyword_arguments(self, caplog):
        caplog.set_level(logging.DEBUG, logger=__name__)

        Service().connect("https://example.com", secret="top-secret")

        logged = "\n".join(messages(caplog))
        assert "top-secret" not in logged
        assert f"secret={REDACTED}" in logged

    def test_silent_above_debug(self, caplog):
        caplog.set_level(logging.INFO, logger=__name__)

        Service().add(1)

        assert messages(caplog) == []


@pytest.mark.unit
class TestShortRepr:
    def test_short_values_untouched(self):
        assert short_repr("abc") == "'abc'"

    def test_long_values_are_cut(self):
        text = short_repr("x" * 500, limit=20)

        assert len(text) == 20
        assert text.endswith("...")
