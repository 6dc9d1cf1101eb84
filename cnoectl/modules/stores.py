"""Secret store backends: AWS Secrets Manager and Kubernetes Secrets."""
import logging
import subprocess
from typing import Any, Callable, List, Optional, Protocol, Sequence, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..config import Config
from ..errors import SecretWriteFailed
from ..utils.shell import run_command

logger = logging.getLogger("cnoectl.stores")


class SecretStore(Protocol):
    label: str

    def upsert(self, name: str, body: str, staged_path: str) -> None:
        """Create the secret ``name`` or update it in place."""


class AwsSecretStore:
    """Secrets under ``<prefix>/<name>`` in AWS Secrets Manager."""

    label = "AWS Secrets Manager"

    def __init__(self, region: str, tags: Sequence[Tuple[str, str]] = (),
                 prefix: str = None, client: Any = None):
        self.region = region
        self.tags = tags
        self.prefix = prefix or Config.SECRET_NAME_PREFIX
        self.client = client or boto3.session.Session(region_name=region).client("secretsmanager")

    def secret_id(self, name: str) -> str:
        return f"{self.prefix}/{name}"

    def aws_tags(self) -> List[dict]:
        return [{"Key": key, "Value": value} for key, value in self.tags]

    def upsert(self, name: str, body: str, staged_path: str) -> None:
        secret_id = self.secret_id(name)
        try:
            self.client.create_secret(
                Name=secret_id,
                SecretString=body,
                Description=f"Secret created for {name} of CNOE AWS Reference Implementation",
                Tags=self.aws_tags(),
            )
            logger.info(f"✅ AWS Secret '{secret_id}' created successfully!")
        except (ClientError, BotoCoreError) as create_error:
            logger.info("🔄 AWS Secret exists, updating...")
            logger.debug(f"create_secret failed for {secret_id}: {create_error}")
            try:
                self.client.update_secret(SecretId=secret_id, SecretString=body)
            except (ClientError, BotoCoreError) as e:
                raise SecretWriteFailed(f"❌ Failed to create/update AWS secret {secret_id}: {e}") from e
            logger.info(f"✅ AWS Secret '{secret_id}' updated successfully!")

        arn = self.describe_arn(secret_id)
        if arn:
            logger.info(f"🔐 Secret ARN: {arn}")

    def describe_arn(self, secret_id: str) -> Optional[str]:
        try:
            return self.client.describe_secret(SecretId=secret_id).get("ARN")
        except (ClientError, BotoCoreError) as e:
            logger.debug(f"describe_secret failed for {secret_id}: {e}")
            return None


class KubernetesSecretStore:
    """Opaque secrets named ``<prefix>-<name>`` holding a single ``secret.json`` key.

    The manifest is rendered client-side and applied, so repeated runs converge.
    """

    label = "Kubernetes"

    def __init__(self, kubeconfig: str, namespace: str = None, prefix: str = None,
                 runner: Callable[..., subprocess.CompletedProcess] = run_command):
        self.kubeconfig = kubeconfig
        self.namespace = namespace or Config.SECRET_NAMESPACE
        self.prefix = prefix or Config.SECRET_NAME_PREFIX
        self.runner = runner

    def secret_name(self, name: str) -> str:
        return f"{self.prefix}-{name}"

    def upsert(self, name: str, body: str, staged_path: str) -> None:
        secret_name = self.secret_name(name)
        logger.info(f"📥 Creating/updating Kubernetes Secret {secret_name}...")
        try:
            manifest = self.runner([
                "kubectl", "--kubeconfig", self.kubeconfig, "-n", self.namespace,
                "create", "secret", "generic", secret_name,
                f"--from-file=secret.json={staged_path}",
                "--dry-run=client", "-o", "yaml",
            ], capture_output=True, log_output=False).stdout
            self.runner([
                "kubectl", "--kubeconfig", self.kubeconfig, "apply", "-f", "-",
            ], input=manifest, capture_output=True)
        except (subprocess.CalledProcessError, OSError) as e:
            raise SecretWriteFailed(f"❌ Failed to apply Kubernetes secret {secret_name}: {e}") from e
        logger.info(f"✅ Kubernetes Secret {secret_name} applied to cluster")
