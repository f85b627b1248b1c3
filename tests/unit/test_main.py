"""Unit tests for application assembly and the startup/shutdown sequence."""

import signal
from pathlib import Path
from types import SimpleNamespace

import pytest
import uvicorn

from whisper_stt import dependencies
from whisper_stt.core.lifecycle import LifecycleState
from whisper_stt.engine import faster_whisper
from whisper_stt.main import DrainingServer, create_app, default_model_loader, lifespan


@pytest.mark.asyncio
async def test_lifespan_loads_then_releases(test_app, stub_model):
    """Test that the model is ready inside the lifespan and released after."""
    lifecycle = test_app.state.lifecycle

    async with lifespan(test_app):
        assert lifecycle.is_ready
        assert not stub_model.closed

    assert stub_model.closed
    assert lifecycle.state is LifecycleState.STOPPED


@pytest.mark.asyncio
async def test_lifespan_keeps_model_with_stuck_request(test_app, stub_model):
    """Test that shutdown gives up on a request that outlives the grace period."""
    lifecycle = test_app.state.lifecycle
    lifecycle.grace_period = 0.05

    async with lifespan(test_app):
        held = lifecycle.borrow()
        held.__enter__()

    assert lifecycle.state is LifecycleState.STOPPED
    assert not stub_model.closed
    held.__exit__(None, None, None)


def test_handle_exit_starts_draining(test_app):
    """Test that a stop signal marks the lifecycle as draining."""
    lifecycle = test_app.state.lifecycle
    lifecycle.load()
    server = DrainingServer(uvicorn.Config(test_app), lifecycle)

    server.handle_exit(signal.SIGTERM, None)

    assert server.should_exit
    assert lifecycle.state is LifecycleState.DRAINING


def test_default_model_loader_uses_settings(test_settings):
    loader = default_model_loader(test_settings.model)

    assert loader.func is faster_whisper.load_model
    assert loader.keywords == {
        "device": "auto",
        "compute_type": "default",
        "cpu_threads": 4,
    }


def test_docs_disabled_in_production(test_settings, stub_model):
    test_settings.environment = "production"
    app = create_app(settings=test_settings, model_loader=lambda path: stub_model)
    assert app.docs_url is None


def test_app_state(test_app, test_settings):
    assert test_app.state.settings is test_settings
    assert test_app.state.lifecycle.config.path == Path(test_settings.model.path)
    assert test_app.state.transcriber.model_name == "base.en"


def test_routes_get_settings_from_app_state(test_app, test_settings):
    """Test that the settings dependency hands out the app's own instance."""
    request = SimpleNamespace(app=test_app)

    assert dependencies.get_settings(request) is test_settings
    assert dependencies.get_lifecycle(request) is test_app.state.lifecycle
    assert dependencies.get_transcriber(request) is test_app.state.transcriber
