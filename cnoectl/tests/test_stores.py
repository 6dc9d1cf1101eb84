import subprocess

import pytest
from botocore.exceptions import ClientError

from cnoectl.errors import SecretWriteFailed
from cnoectl.modules.stores import AwsSecretStore, KubernetesSecretStore


def client_error(code, operation):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class FakeSecretsManager:
    """Just enough of the secretsmanager client to exercise upserts."""

    def __init__(self, fail_update=False):
        self.secrets = {}
        self.calls = []
        self.fail_update = fail_update

    def create_secret(self, Name, SecretString, Description, Tags):
        self.calls.append("create_secret")
        if Name in self.secrets:
            raise client_error("ResourceExistsException", "CreateSecret")
        self.secrets[Name] = {"SecretString": SecretString, "Tags": Tags, "Description": Description}

    def update_secret(self, SecretId, SecretString):
        self.calls.append("update_secret")
        if self.fail_update or SecretId not in self.secrets:
            raise client_error("AccessDeniedException", "UpdateSecret")
        self.secrets[SecretId]["SecretString"] = SecretString

    def describe_secret(self, SecretId):
        if SecretId not in self.secrets:
            raise client_error("ResourceNotFoundException", "DescribeSecret")
        return {"ARN": f"arn:aws:secretsmanager:us-west-2:123456789012:secret:{SecretId}"}


def test_aws_create_with_tags():
    client = FakeSecretsManager()
    store = AwsSecretStore("us-west-2", tags=(("env", "dev"), ("team", "platform")), client=client)

    store.upsert("config", '{"a": 1}', "/unused")

    secret = client.secrets["cnoe-ref-impl/config"]
    assert secret["SecretString"] == '{"a": 1}'
    assert secret["Tags"] == [{"Key": "env", "Value": "dev"}, {"Key": "team", "Value": "platform"}]
    assert "config" in secret["Description"]
    assert client.calls == ["create_secret"]


def test_aws_upsert_is_idempotent():
    client = FakeSecretsManager()
    store = AwsSecretStore("us-west-2", client=client)

    store.upsert("github-app", '{"v": 1}', "/unused")
    store.upsert("github-app", '{"v": 2}', "/unused")

    assert list(client.secrets) == ["cnoe-ref-impl/github-app"]
    assert client.secrets["cnoe-ref-impl/github-app"]["SecretString"] == '{"v": 2}'
    assert client.calls == ["create_secret", "create_secret", "update_secret"]


def test_aws_update_failure_raises():
    client = FakeSecretsManager(fail_update=True)
    store = AwsSecretStore("us-west-2", client=client)
    store.upsert("config", "{}", "/unused")

    with pytest.raises(SecretWriteFailed):
        store.upsert("config", '{"changed": true}', "/unused")


def test_aws_describe_arn_missing_returns_none():
    store = AwsSecretStore("us-west-2", client=FakeSecretsManager())
    assert store.describe_arn("cnoe-ref-impl/absent") is None


def test_kubernetes_render_then_apply(runner):
    manifest = "apiVersion: v1\nkind: Secret\n"
    runner.on(["kubectl", "--kubeconfig"], lambda cmd, **kw: "" if "apply" in cmd else manifest)
    store = KubernetesSecretStore("/tmp/kc.yaml", runner=runner)

    store.upsert("config", "{}", "/tmp/config-staged.json")

    (render, render_kwargs), (apply, apply_kwargs) = runner.calls
    assert render == [
        "kubectl", "--kubeconfig", "/tmp/kc.yaml", "-n", "default",
        "create", "secret", "generic", "cnoe-ref-impl-config",
        "--from-file=secret.json=/tmp/config-staged.json",
        "--dry-run=client", "-o", "yaml",
    ]
    assert render_kwargs["log_output"] is False
    assert apply == ["kubectl", "--kubeconfig", "/tmp/kc.yaml", "apply", "-f", "-"]
    assert apply_kwargs["input"] == manifest


def test_kubernetes_apply_failure(runner):
    def fail(cmd, **kwargs):
        raise subprocess.CalledProcessError(1, cmd, stderr="forbidden")

    runner.on(["kubectl", "--kubeconfig"], fail)
    store = KubernetesSecretStore("/tmp/kc.yaml", namespace="platform", runner=runner)

    with pytest.raises(SecretWriteFailed):
        store.upsert("github-app", "{}", "/tmp/staged.json")
