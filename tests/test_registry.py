"""Tests for the plugin registry."""

import threading

import pytest

from varnish_agent.plugins import Plugin, PluginRegistry, PluginState


class TestPluginRegistry:
    """Test registration and ordered traversal."""

    def test_register_in_order(self):
        """N registrations give N allocated records in insertion order."""
        registry = PluginRegistry()
        names = ["pingd", "logd", "vadmin", "httpd", "echo"]

        for name in names:
            registry.register(name)

        assert len(registry) == 5
        assert [p.name for p in registry] == names
        assert all(p.state is PluginState.ALLOCATED for p in registry)

    def test_register_returns_record(self):
        """register() returns the stored record."""
        registry = PluginRegistry()
        handler = object()

        plugin = registry.register("httpd", handler)

        assert registry["httpd"] is plugin
        assert registry.get("httpd") is plugin
        assert plugin.handler is handler

    def test_duplicate_name(self):
        """Names are unique."""
        registry = PluginRegistry()
        registry.register("httpd")

        with pytest.raises(ValueError):
            registry.register("httpd")

    def test_get_unknown(self):
        registry = PluginRegistry()

        assert registry.get("nope") is None
        assert "nope" not in registry

    def test_list_plugins(self):
        registry = PluginRegistry()
        registry.register("vlog")

        assert registry.list_plugins() == [
            {"name": "vlog", "state": "allocated", "worker": False}
        ]


class TestPluginWorker:
    """Test worker handles on plugin records."""

    def test_spawn_worker_records_handle(self):
        """spawn_worker starts a thread and keeps its handle."""
        plugin = Plugin("pingd")
        done = threading.Event()

        thread = plugin.spawn_worker(done.set)
        thread.join(timeout=5)

        assert plugin.worker is thread
        assert done.is_set()
        assert plugin.failed is False

    def test_worker_exception_captured(self):
        """Errors escaping the worker are stored on the record."""
        plugin = Plugin("vlog")

        def boom():
            raise OSError("log pipe closed")

        plugin.spawn_worker(boom).join(timeout=5)

        assert plugin.failed is True
        assert isinstance(plugin.error, OSError)
        assert plugin.to_dict()["error"] == "log pipe closed"

    def test_single_worker(self):
        """A plugin owns at most one worker."""
        plugin = Plugin("httpd")
        plugin.spawn_worker(lambda: None).join(timeout=5)

        with pytest.raises(RuntimeError):
            plugin.spawn_worker(lambda: None)

    def test_attach_worker(self):
        plugin = Plugin("vadmin")
        thread = threading.Thread(target=lambda: None)

        plugin.attach_worker(thread)

        assert plugin.worker is thread
        with pytest.raises(RuntimeError):
            plugin.attach_worker(threading.Thread(target=lambda: None))

    def test_with_workers(self):
        registry = PluginRegistry()
        registry.register("a")
        registry.register("b").spawn_worker(lambda: None).join(timeout=5)

        assert [p.name for p in registry.with_workers()] == ["b"]

    def test_fail_marks_state(self):
        plugin = Plugin("ban")

        plugin.fail(ValueError("bad"))

        assert plugin.state is PluginState.FAILED
        assert plugin.failed is True
