"""Kubeconfig acquisition for k0s (local or over SSH) and EKS clusters."""
import logging
import os
import shutil
import socket
import subprocess
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, Optional

import yaml

from ..config import Config
from ..errors import (
    CredentialSourceUnavailable,
    GenerationFailed,
    ProviderUnavailable,
    RemoteFetchFailed,
)
from ..settings import Settings
from ..utils.shell import run_command
from .ssh import fetch_remote_file

logger = logging.getLogger("cnoectl.kubeconfig")

LOCAL_HOST_ALIASES = ("localhost", "127.0.0.1")


class Strategy(str, Enum):
    """Where the kubeconfig comes from."""
    LOCAL = 'local'
    SSH = 'ssh'
    EKS = 'eks'


@dataclass(frozen=True)
class KubeconfigMaterial:
    path: str
    strategy: Strategy
    transient: bool = False


def short_hostname() -> str:
    return socket.gethostname().split(".")[0]


def select_strategy(settings: Settings, hostname: Optional[str] = None) -> Strategy:
    """Pick exactly one kubeconfig source from the distro and host settings."""
    if not settings.is_k0s:
        return Strategy.EKS

    k0s = settings.k0s
    host = k0s.control_plane_host.strip().lower()
    if hostname is None:
        hostname = short_hostname()

    if k0s.use_local or not host or host in LOCAL_HOST_ALIASES or host == hostname.lower():
        return Strategy.LOCAL
    return Strategy.SSH


def _new_temp_file() -> str:
    fd, path = tempfile.mkstemp(prefix="kubeconfig-", suffix=".yaml")
    os.close(fd)
    os.chmod(path, 0o600)
    return path


def _is_transient_location(path: str) -> bool:
    tmp_root = os.path.realpath(tempfile.gettempdir())
    return os.path.realpath(path).startswith(tmp_root + os.sep)


def release(material: Optional[KubeconfigMaterial]) -> None:
    """Delete a kubeconfig written by this process to the temp directory."""
    if material is None or not material.transient:
        return
    if not _is_transient_location(material.path):
        logger.warning(f"Skipping cleanup of non-temp kubeconfig: {material.path}")
        return
    try:
        os.remove(material.path)
        logger.debug(f"🧹 Removed temporary kubeconfig {material.path}")
    except FileNotFoundError:
        pass


def rewrite_server(path: str, endpoint: str) -> bool:
    """Point every cluster entry in the kubeconfig at ``endpoint``.

    Best-effort: returns False and leaves the file untouched on failure.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        clusters = data.get("clusters") or []
        for entry in clusters:
            entry.setdefault("cluster", {})["server"] = endpoint
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
        return True
    except (OSError, yaml.YAMLError, AttributeError, TypeError) as e:
        logger.warning(f"⚠️  Could not rewrite server address in {path}: {e}")
        return False


class KubeconfigProvider:
    """Produces a validated kubeconfig file for the configured cluster.

    The external effects (subprocess, SSH, PATH lookup, hostname) are
    injectable so the strategy logic can be exercised without a cluster.
    """

    def __init__(
        self,
        settings: Settings,
        runner: Callable[..., subprocess.CompletedProcess] = run_command,
        fetch_remote: Callable[..., str] = fetch_remote_file,
        which: Callable[[str], Optional[str]] = shutil.which,
        hostname: Optional[str] = None,
        admin_conf: Optional[str] = None,
    ):
        self.settings = settings
        self.runner = runner
        self.fetch_remote = fetch_remote
        self.which = which
        self.hostname = hostname
        self.admin_conf = admin_conf or Config.K0S_ADMIN_CONF

    @property
    def strategy(self) -> Strategy:
        return select_strategy(self.settings, self.hostname)

    def acquire(self) -> KubeconfigMaterial:
        strategy = self.strategy
        if strategy is Strategy.LOCAL:
            material = self._from_local()
        elif strategy is Strategy.SSH:
            material = self._from_ssh()
        else:
            material = self._from_eks()

        endpoint = self.settings.k0s.api_endpoint
        if self.settings.is_k0s and endpoint and material.transient:
            if rewrite_server(material.path, endpoint):
                logger.info(f"🔁 Kubeconfig server set to {endpoint}")

        logger.info(f"✅ Kubeconfig ready at {material.path} ({strategy.value})")
        return material

    def copy_local(self) -> KubeconfigMaterial:
        """Copy the local admin.conf into a transient file owned by this user."""
        if not os.path.isfile(self.admin_conf):
            raise CredentialSourceUnavailable(f"❌ {self.admin_conf} not found on this host")
        content = self._read_local()
        return self._materialize(content, Strategy.LOCAL, CredentialSourceUnavailable,
                                 f"❌ {self.admin_conf} is empty")

    def _from_local(self) -> KubeconfigMaterial:
        logger.info(f"📍 Reading admin.conf locally from {self.admin_conf}")
        if not os.path.isfile(self.admin_conf):
            raise CredentialSourceUnavailable(f"❌ {self.admin_conf} not found on this host")

        needs_copy = bool(self.settings.k0s.api_endpoint) or not os.access(self.admin_conf, os.R_OK)
        if not needs_copy:
            if os.path.getsize(self.admin_conf) == 0:
                raise CredentialSourceUnavailable(f"❌ {self.admin_conf} is empty")
            return KubeconfigMaterial(self.admin_conf, Strategy.LOCAL, transient=False)
        return self.copy_local()

    def _read_local(self) -> str:
        if os.access(self.admin_conf, os.R_OK):
            with open(self.admin_conf, "r", encoding="utf-8") as f:
                return f.read()
        try:
            result = self.runner(["sudo", "cat", self.admin_conf],
                                 capture_output=True, log_output=False)
        except (subprocess.CalledProcessError, OSError) as e:
            raise CredentialSourceUnavailable(f"❌ Cannot read {self.admin_conf}: {e}") from e
        return result.stdout or ""

    def _from_ssh(self) -> KubeconfigMaterial:
        k0s = self.settings.k0s
        logger.info(f"🔐 Fetching admin.conf from {k0s.control_plane_host}")
        try:
            content = self.fetch_remote(
                k0s.control_plane_host,
                self.admin_conf,
                username=k0s.ssh_user or "root",
                key_path=k0s.ssh_key_path or None,
            )
        except Exception as e:
            # paramiko raises a wide family of socket and auth errors
            raise RemoteFetchFailed(
                f"❌ Failed to retrieve kubeconfig from {k0s.control_plane_host}: {e}"
            ) from e
        return self._materialize(content, Strategy.SSH, RemoteFetchFailed,
                                 "❌ Failed to retrieve kubeconfig from k0s")

    def _from_eks(self) -> KubeconfigMaterial:
        self.settings.require("cluster_name", "region")
        if self.which("aws") is None:
            raise ProviderUnavailable("❌ aws CLI not found. Cannot fetch EKS kubeconfig.")

        logger.info(f"🔑 Generating temporary kubeconfig for EKS cluster {self.settings.cluster_name}...")
        path = _new_temp_file()
        try:
            self.runner([
                "aws", "eks", "update-kubeconfig",
                "--region", self.settings.region,
                "--name", self.settings.cluster_name,
                "--kubeconfig", path,
            ], capture_output=True)
        except (subprocess.CalledProcessError, OSError) as e:
            os.remove(path)
            raise GenerationFailed(
                f"❌ aws eks update-kubeconfig failed for {self.settings.cluster_name}: {e}"
            ) from e

        if os.path.getsize(path) == 0:
            os.remove(path)
            raise GenerationFailed("❌ aws eks update-kubeconfig produced an empty kubeconfig")
        return KubeconfigMaterial(path, Strategy.EKS, transient=True)

    def _materialize(self, content: str, strategy: Strategy, error, message: str) -> KubeconfigMaterial:
        if not content or not content.strip():
            raise error(message)
        path = _new_temp_file()
        try:
            with open(path, "w", encoding="utf-8") as f:
                f.write(content)
        except OSError:
            os.remove(path)
            raise
        return KubeconfigMaterial(path, strategy, transient=True)


@contextmanager
def kubeconfig_session(settings: Settings,
                       provider: Optional[KubeconfigProvider] = None) -> Iterator[KubeconfigMaterial]:
    """Acquire a kubeconfig for the duration of the block, then clean it up."""
    provider = provider or KubeconfigProvider(settings)
    material = provider.acquire()
    try:
        yield material
    finally:
        release(material)


@contextmanager
def secrets_kubeconfig(settings: Settings,
                       provider: Optional[KubeconfigProvider] = None) -> Iterator[KubeconfigMaterial]:
    """Kubeconfig for secret sync: a local admin.conf wins over the configured strategy."""
    provider = provider or KubeconfigProvider(settings)
    if os.path.isfile(provider.admin_conf):
        logger.info(f"📍 Preparing local kubeconfig from {provider.admin_conf}")
        material = provider.copy_local()
        try:
            yield material
        finally:
            release(material)
        return

    logger.info("🔑 Fetching kubeconfig for the configured cluster")
    with kubeconfig_session(settings, provider) as material:
        yield material
