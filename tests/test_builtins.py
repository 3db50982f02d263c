"""Tests for the built-in plugins and their HTTP endpoints."""

import os

import pytest
from fastapi.testclient import TestClient

from varnish_agent.builtins import DECLARED_PLUGINS, get_httpd
from varnish_agent.builtins import httpd as httpd_module
from varnish_agent.lifecycle import Supervisor
from varnish_agent.plugins import PluginState


@pytest.fixture
def html_dir(temp_dir):
    path = temp_dir / "html"
    path.mkdir()
    (path / "index.html").write_text("<h1>agent</h1>")
    return path


def _initialized(argv):
    supervisor = Supervisor(DECLARED_PLUGINS)
    supervisor.allocate()
    supervisor.parse(argv)
    supervisor.initialize()
    return supervisor


@pytest.fixture
def supervisor(html_dir):
    return _initialized(["-d", "-n", "edge1", "-H", str(html_dir)])


@pytest.fixture
def client(supervisor):
    return TestClient(get_httpd(supervisor.core).app)


class TestDeclaredPlugins:
    """Test the fixed plugin set."""

    def test_declared_order(self):
        assert [name for name, _ in DECLARED_PLUGINS] == [
            "pingd", "logd", "vadmin", "httpd", "echo", "status",
            "vcl", "html", "params", "ban", "varnishstat", "vlog",
        ]

    def test_httpd_registers_bind_flag(self, supervisor):
        """httpd adds -b while being allocated."""
        assert "-b" in supervisor.core.options
        assert supervisor.core.config.option("http_bind") == "0.0.0.0"

    def test_all_initialized(self, supervisor):
        assert all(p.state is PluginState.INITIALIZED for p in supervisor.core.plugins)


class TestHttpd:
    """Test the HTTP plugin."""

    def test_bind_and_port(self, html_dir):
        supervisor = _initialized(["-d", "-c", "9000", "-b", "127.0.0.1"])
        httpd = get_httpd(supervisor.core)

        assert httpd.host == "127.0.0.1"
        assert httpd.port == 9000

    def test_invalid_port_fails_httpd(self):
        """A non-numeric port fails httpd and its dependents fall back."""
        supervisor = _initialized(["-d", "-c", "http"])

        assert supervisor.core.plugins["httpd"].state is PluginState.FAILED
        assert get_httpd(supervisor.core) is None
        assert supervisor.core.plugins["echo"].state is PluginState.INITIALIZED

    def test_start_serves_in_worker(self, supervisor, monkeypatch):
        """start() runs the server in the plugin's worker thread."""
        served = []

        class FakeServer:
            def __init__(self, config):
                self.config = config

            def run(self):
                served.append((self.config.host, self.config.port))

        monkeypatch.setattr(httpd_module.uvicorn, "Server", FakeServer)
        plugin = supervisor.core.plugins["httpd"]

        result = plugin.handler.start(supervisor.core, "httpd")
        plugin.worker.join(timeout=5)

        assert result is None
        assert served == [("0.0.0.0", 6085)]

    def test_help_lists_urls(self, client):
        response = client.get("/help")

        assert response.status_code == 200
        paths = [u["path"] for u in response.json()["urls"]]
        assert "/echo" in paths
        assert "/status" in paths
        assert "/html/" in paths

    def test_404_for_unknown_route(self, client):
        assert client.get("/nonexistent").status_code == 404

    def test_add_route_before_init(self):
        with pytest.raises(RuntimeError):
            httpd_module.HttpdPlugin().add_route("/x", lambda: None)


class TestEcho:
    """Test /echo."""

    def test_echoes_body(self, client):
        response = client.post("/echo", content=b"ban req.url ~ /", headers={"content-type": "text/plain"})

        assert response.status_code == 200
        assert response.content == b"ban req.url ~ /"

    def test_get_not_allowed(self, client):
        assert client.get("/echo").status_code == 405


class TestStatus:
    """Test /status."""

    def test_reports_agent_state(self, client):
        response = client.get("/status")

        assert response.status_code == 200
        data = response.json()
        assert data["pid"] == os.getpid()
        assert data["name"] == "edge1"
        assert data["port"] == "6085"
        assert "version" in data
        assert [p["name"] for p in data["plugins"]] == [name for name, _ in DECLARED_PLUGINS]
        assert all(p["state"] == "initialized" for p in data["plugins"])


class TestHtml:
    """Test static UI assets."""

    def test_serves_files(self, client):
        response = client.get("/html/index.html")

        assert response.status_code == 200
        assert "<h1>agent</h1>" in response.text

    def test_root_redirects(self, client):
        response = client.get("/", follow_redirects=False)

        assert response.status_code in (302, 307)
        assert response.headers["location"] == "/html/"

    def test_missing_dir_only_warns(self, temp_dir):
        supervisor = _initialized(["-d", "-H", str(temp_dir / "missing")])
        client = TestClient(get_httpd(supervisor.core).app)

        assert supervisor.core.plugins["html"].state is PluginState.INITIALIZED
        assert client.get("/html/index.html").status_code == 404
