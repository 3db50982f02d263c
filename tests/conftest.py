"""Shared test fixtures."""

import logging
import sys
import tempfile
from pathlib import Path

import pytest
import structlog


@pytest.fixture(autouse=True)
def stderr_logging():
    """Route structlog events to stderr, as the CLI does, keeping stdout clean.

    The stream is looked up per call so capture fixtures see it.
    """
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
        logger_factory=lambda *args: structlog.PrintLogger(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
    yield
    structlog.reset_defaults()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as d:
        yield Path(d)


@pytest.fixture
def pid_path(temp_dir, monkeypatch):
    """Point the agent's lock file into the temp directory."""
    path = temp_dir / "agent.pid"
    monkeypatch.setenv("VARNISH_AGENT_PID_FILE", str(path))
    return path


class RecordingPlugin:
    """Plugin that records every lifecycle call into a shared list."""

    def __init__(self, name, events, worker=None, fail_in=None):
        self.name = name
        self.events = events
        self.worker = worker
        self.fail_in = fail_in

    def allocate(self, core):
        self.events.append(("allocate", self.name, core.resolved, core.config.port))

    def init(self, core):
        self.events.append(("init", self.name, core.resolved, core.config.port))
        if self.fail_in == "init":
            raise RuntimeError(f"{self.name} init failed")

    def start(self, core, name):
        self.events.append(("start", name))
        if self.fail_in == "start":
            raise RuntimeError(f"{name} start failed")
        if self.worker is not None:
            core.plugins[name].spawn_worker(self.worker)
        return None


@pytest.fixture
def events():
    return []


@pytest.fixture
def make_specs(events):
    """Build (name, factory) specs for recording plugins."""

    def _make(names, **per_plugin):
        specs = []
        for name in names:
            kwargs = per_plugin.get(name, {})
            specs.append((name, lambda n=name, kw=kwargs: RecordingPlugin(n, events, **kw)))
        return specs

    return _make
