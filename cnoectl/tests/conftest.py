import subprocess
import tempfile

import pytest

from cnoectl.settings import parse_settings


class FakeRunner:
    """Records commands instead of running them.

    ``handlers`` maps the first two words of a command to a callable that
    receives the command and kwargs and returns stdout, or raises.
    """

    def __init__(self):
        self.calls = []
        self.handlers = {}

    def on(self, prefix, handler):
        self.handlers[tuple(prefix)] = handler

    def __call__(self, cmd, **kwargs):
        cmd = list(cmd)
        self.calls.append((cmd, kwargs))
        stdout = ""
        for prefix, handler in self.handlers.items():
            if tuple(cmd[:len(prefix)]) == prefix:
                stdout = handler(cmd, **kwargs) or ""
                break
        return subprocess.CompletedProcess(cmd, 0, stdout=stdout, stderr="")

    def commands(self):
        return [cmd for cmd, _ in self.calls]


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def make_settings():
    def _make(**overrides):
        data = {"cluster_name": "cnoe-ref-impl", "region": "us-west-2", "domain": "example.com"}
        data.update(overrides)
        return parse_settings(data)
    return _make


@pytest.fixture
def tmp_tempdir(tmp_path, monkeypatch):
    """Point tempfile at an isolated directory so leaked files are visible."""
    scratch = tmp_path / "scratch"
    scratch.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(scratch))
    return scratch


@pytest.fixture
def kubeconfig_text():
    return (
        "apiVersion: v1\n"
        "kind: Config\n"
        "clusters:\n"
        "- cluster:\n"
        "    server: https://localhost:6443\n"
        "  name: k0s\n"
        "contexts:\n"
        "- context:\n"
        "    cluster: k0s\n"
        "    user: admin\n"
        "  name: k0s\n"
        "current-context: k0s\n"
    )
