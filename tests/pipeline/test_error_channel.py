"""Tests for ErrorChannel and StageError."""

from holdingpen.pipeline.errors import ErrorChannel, StageError


class TestErrorChannel:
    """First error wins; later ones are dropped without blocking."""

    def test_first_error_wins(self):
        channel = ErrorChannel("test")
        first = RuntimeError("first")
        second = RuntimeError("second")

        assert channel.report(first) is True
        assert channel.report(second) is False
        assert channel.dropped == 1
        assert channel.poll() is first
        assert channel.poll() is None

    def test_slot_reopens_after_poll(self):
        channel = ErrorChannel("test")
        first = RuntimeError("first")
        later = RuntimeError("later")

        channel.report(first)
        channel.poll()
        assert channel.report(later) is True
        assert channel.poll() is later
        assert channel.first_error is first

    def test_wait_times_out(self):
        assert ErrorChannel("test").wait(timeout=0.01) is None


class TestStageError:

    def test_context_in_message(self):
        error = StageError("can't download", context="bucket:some/key.mxf")
        assert str(error) == "can't download [bucket:some/key.mxf]"

    def test_without_context(self):
        assert str(StageError("plain")) == "plain"
