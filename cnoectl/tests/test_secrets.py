import json
import os

import pytest

from cnoectl.errors import DirectoryMissing, InputDataError, MissingField, NoInputFiles, SecretWriteFailed
from cnoectl.modules.secrets import (
    SecretPayload,
    build_config_payload,
    build_github_app_payload,
    build_stores,
    push_payload,
    staged_payload,
    sync_secrets,
)
from cnoectl.modules.stores import KubernetesSecretStore
from cnoectl.settings import load_settings


class MemoryStore:
    label = "memory"

    def __init__(self):
        self.entries = {}
        self.staged_paths = []

    def upsert(self, name, body, staged_path):
        self.staged_paths.append(staged_path)
        self.entries[name] = json.loads(body)


class BrokenStore:
    label = "broken"

    def upsert(self, name, body, staged_path):
        raise SecretWriteFailed(f"cannot write {name}")


@pytest.fixture
def private_dir(tmp_path):
    directory = tmp_path / "private"
    directory.mkdir()
    (directory / "b.yaml").write_text("appId: 12345\nprivateKey: |\n  -----BEGIN KEY-----\n  abc\n")
    (directory / "a.yaml").write_text("url: https://github.com/cnoe-io\nwebhookSecret: s3cr3t\n")
    (directory / "notes.txt").write_text("ignored")
    (directory / ".draft.yaml").write_text("hidden: true\n")
    (directory / "nested").mkdir()
    (directory / "nested" / "c.yaml").write_text("ignored: true\n")
    return directory


def test_github_app_payload(private_dir):
    payload = build_github_app_payload(private_dir)
    decoded = json.loads(payload.to_json())

    assert payload.name == "github-app"
    assert list(decoded) == ["a", "b"]
    assert decoded["a"] == {"url": "https://github.com/cnoe-io", "webhookSecret": "s3cr3t"}
    assert decoded["b"]["appId"] == 12345
    assert decoded["b"]["privateKey"] == "-----BEGIN KEY-----\nabc\n"


def test_missing_directory(tmp_path):
    with pytest.raises(DirectoryMissing):
        build_github_app_payload(tmp_path / "private")


def test_empty_directory_writes_nothing(tmp_path, make_settings):
    (tmp_path / "private").mkdir()
    store = MemoryStore()

    with pytest.raises(NoInputFiles) as exc:
        sync_secrets(make_settings(), [store], private_dir=tmp_path / "private")

    assert isinstance(exc.value, InputDataError)
    assert store.entries == {}


def test_invalid_yaml_is_input_error(tmp_path):
    directory = tmp_path / "private"
    directory.mkdir()
    (directory / "bad.yaml").write_text("key: [unterminated\n")
    with pytest.raises(InputDataError):
        build_github_app_payload(directory)


def test_config_payload_is_full_document(make_settings):
    settings = make_settings(tags={"env": "dev"}, secrets={"use_aws": False})
    payload = build_config_payload(settings)
    assert payload.name == "config"
    assert payload.data == {
        "cluster_name": "cnoe-ref-impl",
        "region": "us-west-2",
        "domain": "example.com",
        "tags": {"env": "dev"},
        "secrets": {"use_aws": False},
    }


def test_staged_payload_removed_even_on_error(tmp_tempdir):
    payload = SecretPayload("config", {"a": 1})
    with pytest.raises(RuntimeError):
        with staged_payload(payload) as path:
            assert json.load(open(path)) == {"a": 1}
            assert oct(os.stat(path).st_mode & 0o777) == oct(0o600)
            raise RuntimeError("push failed")
    assert list(tmp_tempdir.iterdir()) == []


def test_sync_is_idempotent(private_dir, make_settings, tmp_tempdir):
    store = MemoryStore()
    settings = make_settings()

    sync_secrets(settings, [store], private_dir=private_dir)
    sync_secrets(settings, [store], private_dir=private_dir)

    assert sorted(store.entries) == ["config", "github-app"]
    assert list(tmp_tempdir.iterdir()) == []


def test_failing_store_does_not_block_others(private_dir, make_settings, tmp_tempdir):
    good = MemoryStore()

    report = sync_secrets(make_settings(), [BrokenStore(), good], private_dir=private_dir)

    assert not report.ok
    assert [(name, store) for name, store, _ in report.failures] == [
        ("github-app", "broken"), ("config", "broken"),
    ]
    assert report.written == [("github-app", "memory"), ("config", "memory")]
    assert sorted(good.entries) == ["config", "github-app"]
    assert list(tmp_tempdir.iterdir()) == []


def test_push_payload_shares_one_staged_file(tmp_tempdir):
    first, second = MemoryStore(), MemoryStore()
    report = push_payload(SecretPayload("config", {"x": 1}), [first, second])
    assert report.ok
    assert first.staged_paths == second.staged_paths
    assert not os.path.exists(first.staged_paths[0])


def test_kubernetes_secret_contains_payload_json(private_dir, make_settings, runner, tmp_tempdir):
    settings = make_settings(secrets={"use_aws": False, "use_k8s": True})
    staged = {}

    def render(cmd, **kwargs):
        if "apply" in cmd:
            return ""
        name = cmd[cmd.index("generic") + 1]
        source = next(arg for arg in cmd if arg.startswith("--from-file=secret.json="))
        staged[name] = json.load(open(source.split("=", 2)[2]))
        return f"kind: Secret\nmetadata:\n  name: {name}\n"

    runner.on(["kubectl", "--kubeconfig"], render)
    stores = build_stores(settings, kubeconfig="/tmp/kubeconfig")
    for store in stores:
        store.runner = runner

    report = sync_secrets(settings, stores, private_dir=private_dir)

    assert report.ok
    assert [type(s) for s in stores] == [KubernetesSecretStore]
    assert staged["cnoe-ref-impl-github-app"] == {
        "a": {"url": "https://github.com/cnoe-io", "webhookSecret": "s3cr3t"},
        "b": {"appId": 12345, "privateKey": "-----BEGIN KEY-----\nabc\n"},
    }
    assert staged["cnoe-ref-impl-config"] == settings.document()
    assert list(tmp_tempdir.iterdir()) == []


def test_build_stores_requires_kubeconfig_for_k8s(make_settings):
    with pytest.raises(ValueError):
        build_stores(make_settings())


def test_build_stores_none_enabled(make_settings):
    assert build_stores(make_settings(secrets={"use_k8s": False})) == []


def test_build_stores_requires_region_for_aws(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text("secrets:\n  use_aws: true\n  use_k8s: false\n")
    with pytest.raises(MissingField):
        build_stores(load_settings(config))


def test_secrets_only_document_syncs_to_kubernetes(tmp_path, runner, tmp_tempdir):
    config = tmp_path / "config.yaml"
    config.write_text("secrets:\n  use_aws: false\n  use_k8s: true\n")
    directory = tmp_path / "private"
    directory.mkdir()
    (directory / "a.yaml").write_text("appId: 1\n")
    (directory / "b.yaml").write_text("clientId: abc\n")
    settings = load_settings(config)
    staged = {}

    def render(cmd, **kwargs):
        if "apply" in cmd:
            return ""
        source = next(arg for arg in cmd if arg.startswith("--from-file=secret.json="))
        staged[cmd[cmd.index("generic") + 1]] = json.load(open(source.split("=", 2)[2]))
        return "kind: Secret\n"

    runner.on(["kubectl", "--kubeconfig"], render)
    stores = build_stores(settings, kubeconfig="/tmp/kubeconfig")
    stores[0].runner = runner

    report = sync_secrets(settings, stores, private_dir=directory)

    assert report.ok
    assert staged["cnoe-ref-impl-github-app"] == {"a": {"appId": 1}, "b": {"clientId": "abc"}}
    assert list(tmp_tempdir.iterdir()) == []
