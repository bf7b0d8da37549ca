"""
Tests for di/sync.py - the synchronous container.
"""
import pytest

from core.errors import UndeclaredServiceError
from di import SyncContainer, resolver


class TestSyncResolution:
    """Tests for make() without an event loop."""

    def test_make_returns_instance(self, sync_container):
        sync_container.bind("svc", lambda c: "value")

        assert sync_container.make("svc") == "value"

    def test_singleton_constructed_once(self, sync_container, counting_factory):
        sync_container.singleton("a", counting_factory)

        first = sync_container.make("a")
        second = sync_container.make("a")

        assert first is second
        assert counting_factory.calls == 1

    def test_transient_constructed_every_time(self, sync_container, counting_factory):
        sync_container.bind("t", counting_factory)

        sync_container.make("t")
        sync_container.make("t")

        assert counting_factory.calls == 2

    def test_undeclared(self, sync_container):
        with pytest.raises(UndeclaredServiceError):
            sync_container.make("missing")

    def test_failed_singleton_retries(self, sync_container):
        attempts = []

        def flaky(c):
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("not yet")
            return "ok"

        sync_container.singleton("a", flaky)

        with pytest.raises(RuntimeError):
            sync_container.make("a")
        assert sync_container.make("a") == "ok"

    def test_resolver(self, sync_container):
        sync_container.singleton("a", lambda c: "a")
        app = resolver(sync_container)

        assert app() is sync_container
        assert app("a") == "a"


class TestSyncWatchers:
    """Watchers run inline on the synchronous container."""

    def test_after_resolving(self, sync_container, recorder):
        sync_container.singleton("a", lambda c: "a")
        sync_container.singleton("b", lambda c: "b")
        sync_container.after_resolving(["a", "b"], recorder)

        sync_container.make("a")
        assert recorder.calls == []

        sync_container.make("b")
        assert recorder.calls[0][0] == {"a": "a", "b": "b"}

    def test_on_ready_fires_inside_bind(self, sync_container, recorder):
        sync_container.on_ready(["a", "b"], recorder)

        sync_container.singleton("a", lambda c: "a")
        assert recorder.calls == []

        sync_container.singleton("b", lambda c: "b")
        assert recorder.calls[0][0] == {"a": "a", "b": "b"}

        sync_container.singleton("b", lambda c: "b2")
        assert len(recorder.calls) == 1

    def test_on_ready_when_already_bound(self, sync_container, recorder):
        sync_container.bind("a", lambda c: "a")

        sync_container.on_ready(["a"], recorder)

        assert recorder.calls[0][0] == {"a": "a"}

    def test_callback_failure_surfaces_from_bind(self, sync_container):
        def callback(services, c):
            raise RuntimeError("callback failed")

        sync_container.on_ready(["a"], callback)

        with pytest.raises(RuntimeError, match="callback failed"):
            sync_container.singleton("a", lambda c: "a")

        assert sync_container.is_bound("a")

    def test_wait_for_done_when_bound(self, sync_container):
        sync_container.singleton("a", lambda c: "a")

        future = sync_container.wait_for(["a"])

        assert future.done()
        assert future.result() == {"a": "a"}

    def test_wait_for_completes_on_bind(self, sync_container):
        future = sync_container.wait_for(["a", "b"])
        sync_container.singleton("a", lambda c: "a")
        assert not future.done()

        sync_container.singleton("b", lambda c: "b")

        assert future.result() == {"a": "a", "b": "b"}

    def test_wait_for_carries_factory_error(self, sync_container):
        future = sync_container.wait_for(["a"])

        def broken(c):
            raise ValueError("broken")

        sync_container.bind("a", broken)

        assert isinstance(future.exception(), ValueError)

    def test_cancelled_wait_for_is_skipped(self, sync_container, counting_factory):
        future = sync_container.wait_for(["a"])
        future.cancel()

        sync_container.singleton("a", counting_factory)

        assert future.cancelled()
        assert counting_factory.calls == 0

    def test_nested_resolution_inside_callback(self, sync_container, recorder):
        def resolve_b(services, c):
            c.make("b")

        sync_container.singleton("b", lambda c: "b")
        sync_container.after_resolving(["a"], resolve_b)
        sync_container.after_resolving(["a", "b"], recorder)
        sync_container.singleton("a", lambda c: "a")

        sync_container.make("a")

        assert len(recorder.calls) == 1
        assert recorder.calls[0][0] == {"a": "a", "b": "b"}


def test_sync_container_is_independent_of_event_loop():
    container = SyncContainer()
    container.singleton("a", lambda c: "a")

    assert container.make("a") == "a"
