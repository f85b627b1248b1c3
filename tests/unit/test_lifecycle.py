"""Unit tests for the model lifecycle."""

import threading

import pytest

from whisper_stt.core.lifecycle import LifecycleState, ServiceLifecycle
from whisper_stt.exceptions import ModelLoadError, ModelNotReadyError


@pytest.fixture
def lifecycle(test_settings, stub_model):
    return ServiceLifecycle(test_settings.model, lambda path: stub_model, grace_period=0.2)


class TestLoad:
    """Test model loading."""

    def test_initial_state(self, lifecycle):
        assert lifecycle.state is LifecycleState.UNINITIALIZED
        assert not lifecycle.is_ready
        assert lifecycle.model is None
        assert lifecycle.supported_languages() == frozenset()

    def test_load_success(self, lifecycle, stub_model):
        """Test that a successful load makes the service ready."""
        model = lifecycle.load()

        assert model is stub_model
        assert lifecycle.state is LifecycleState.READY
        assert lifecycle.is_ready
        assert lifecycle.load_time is not None
        assert lifecycle.supported_languages() == frozenset({"en", "de", "fr"})

    def test_loader_receives_model_path(self, test_settings, stub_model):
        """Test that the loader is called with the derived path."""
        seen = []

        def loader(path):
            seen.append(path)
            return stub_model

        ServiceLifecycle(test_settings.model, loader).load()
        assert seen == [test_settings.model.path]

    def test_missing_model_file(self, test_settings):
        """Test that a missing file fails without calling the loader."""
        test_settings.model.path.unlink()
        called = []
        lifecycle = ServiceLifecycle(test_settings.model, lambda path: called.append(path))

        with pytest.raises(ModelLoadError) as exc_info:
            lifecycle.load()

        assert exc_info.value.model_path == str(test_settings.model.path)
        assert "not found" in exc_info.value.reason
        assert called == []
        assert lifecycle.state is LifecycleState.STOPPED
        assert not lifecycle.is_ready

    def test_loader_exception_is_wrapped(self, test_settings):
        """Test that engine load failures surface as ModelLoadError."""
        def loader(path):
            raise RuntimeError("corrupt model")

        lifecycle = ServiceLifecycle(test_settings.model, loader)

        with pytest.raises(ModelLoadError) as exc_info:
            lifecycle.load()
        assert exc_info.value.reason == "corrupt model"
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_double_load_is_refused(self, lifecycle):
        lifecycle.load()
        with pytest.raises(ModelLoadError):
            lifecycle.load()

    def test_not_ready_while_loading(self, test_settings, stub_model):
        """Test that borrowing during load is refused."""
        observed = {}

        def loader(path):
            observed["ready"] = lifecycle.is_ready
            observed["state"] = lifecycle.state
            with pytest.raises(ModelNotReadyError):
                with lifecycle.borrow():
                    pass
            return stub_model

        lifecycle = ServiceLifecycle(test_settings.model, loader)
        lifecycle.load()

        assert observed == {"ready": False, "state": LifecycleState.LOADING}


class TestBorrow:
    """Test borrowing the shared model."""

    def test_borrow_before_load(self, lifecycle):
        with pytest.raises(ModelNotReadyError) as exc_info:
            with lifecycle.borrow():
                pass
        assert exc_info.value.status_code == 503

    def test_borrow_counts_in_flight(self, lifecycle, stub_model):
        """Test that borrowed calls are counted until released."""
        lifecycle.load()

        with lifecycle.borrow() as model:
            assert model is stub_model
            assert lifecycle.in_flight == 1
            with lifecycle.borrow():
                assert lifecycle.in_flight == 2
        assert lifecycle.in_flight == 0

    def test_borrow_released_on_error(self, lifecycle):
        lifecycle.load()

        with pytest.raises(ValueError):
            with lifecycle.borrow():
                raise ValueError("engine blew up")
        assert lifecycle.in_flight == 0

    def test_borrow_allowed_while_draining(self, lifecycle):
        """Test that draining still serves calls already admitted by the server."""
        lifecycle.load()
        lifecycle.begin_drain()

        assert lifecycle.state is LifecycleState.DRAINING
        assert not lifecycle.is_ready
        with lifecycle.borrow():
            assert lifecycle.in_flight == 1

    def test_borrow_after_close(self, lifecycle):
        lifecycle.load()
        lifecycle.close()

        with pytest.raises(ModelNotReadyError):
            with lifecycle.borrow():
                pass


class TestShutdown:
    """Test draining and release."""

    def test_begin_drain_only_from_ready(self, lifecycle):
        lifecycle.begin_drain()
        assert lifecycle.state is LifecycleState.UNINITIALIZED

    def test_wait_idle_when_idle(self, lifecycle):
        lifecycle.load()
        lifecycle.begin_drain()
        assert lifecycle.wait_idle() is True

    def test_wait_idle_times_out(self, lifecycle):
        """Test that a stuck call makes wait_idle give up."""
        lifecycle.load()

        with lifecycle.borrow():
            lifecycle.begin_drain()
            assert lifecycle.wait_idle(timeout=0.05) is False

    def test_wait_idle_wakes_on_release(self, lifecycle):
        """Test that wait_idle returns once the last call finishes."""
        lifecycle.load()
        entered = threading.Event()
        release = threading.Event()

        def worker():
            with lifecycle.borrow():
                entered.set()
                release.wait(timeout=5)

        thread = threading.Thread(target=worker)
        thread.start()
        entered.wait(timeout=5)
        lifecycle.begin_drain()
        release.set()

        assert lifecycle.wait_idle(timeout=5) is True
        thread.join(timeout=5)

    def test_close_releases_idle_model(self, lifecycle, stub_model):
        lifecycle.load()
        lifecycle.begin_drain()
        lifecycle.close()

        assert stub_model.closed
        assert lifecycle.model is None
        assert lifecycle.state is LifecycleState.STOPPED

    def test_close_keeps_model_with_calls_in_flight(self, lifecycle, stub_model):
        """Test that the model is not released under a running call."""
        lifecycle.load()

        with lifecycle.borrow():
            lifecycle.begin_drain()
            lifecycle.close()
            assert not stub_model.closed
            assert lifecycle.state is LifecycleState.STOPPED

        assert not stub_model.closed

    def test_close_is_idempotent(self, lifecycle, stub_model):
        lifecycle.load()
        lifecycle.close()
        lifecycle.close()
        assert stub_model.closed

    def test_close_without_load(self, lifecycle, stub_model):
        lifecycle.close()
        assert lifecycle.state is LifecycleState.STOPPED
        assert not stub_model.closed
