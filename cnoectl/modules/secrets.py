"""Assemble the reference implementation secrets and push them to the enabled stores."""
import json
import logging
import os
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

import yaml

from ..config import Config
from ..errors import DirectoryMissing, InputDataError, NoInputFiles, SecretWriteError
from ..settings import Settings
from .stores import AwsSecretStore, KubernetesSecretStore, SecretStore

logger = logging.getLogger("cnoectl.secrets")

GITHUB_APP = "github-app"
CONFIG = "config"
PAYLOAD_EXTENSION = ".yaml"


@dataclass(frozen=True)
class SecretPayload:
    name: str
    data: Dict[str, Any]

    def to_json(self) -> str:
        return json.dumps(self.data, indent=2, default=str)


@dataclass
class SyncReport:
    """Outcome of a sync run; one entry per (payload, store) attempt."""
    written: List[Tuple[str, str]] = field(default_factory=list)
    failures: List[Tuple[str, str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def build_github_app_payload(private_dir: Union[str, Path]) -> SecretPayload:
    """Merge every ``*.yaml`` directly under ``private_dir`` into one payload keyed by file stem.

    Raises:
        DirectoryMissing: If ``private_dir`` does not exist
        NoInputFiles: If it holds no matching documents
        InputDataError: If a document is not valid YAML
    """
    private_dir = Path(private_dir)
    if not private_dir.is_dir():
        raise DirectoryMissing(f"❌ Directory {private_dir} does not exist")

    logger.info(f"📂 Reading files from: {private_dir}")
    data: Dict[str, Any] = {}
    for path in sorted(private_dir.glob(f"*{PAYLOAD_EXTENSION}")):
        # shell globs do not match hidden files
        if path.name.startswith(".") or not path.is_file():
            continue
        logger.info(f"  📄 Adding: {path.stem}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                data[path.stem] = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise InputDataError(f"❌ Invalid YAML in {path}: {e}") from e

    if not data:
        raise NoInputFiles(f"❌ No files found in {private_dir}")
    return SecretPayload(GITHUB_APP, data)


def build_config_payload(settings: Settings) -> SecretPayload:
    return SecretPayload(CONFIG, settings.document())


@contextmanager
def staged_payload(payload: SecretPayload) -> Iterator[str]:
    """Write the plaintext payload to a private temp file that is always removed."""
    fd, path = tempfile.mkstemp(prefix=f"{payload.name}-", suffix=".json")
    try:
        os.chmod(path, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload.to_json())
        yield path
    finally:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass


def push_payload(payload: SecretPayload, stores: Sequence[SecretStore],
                 report: Optional[SyncReport] = None) -> SyncReport:
    """Upsert one payload into every store.

    A failing store is recorded and skipped; the remaining stores are still
    written and nothing already written is rolled back.
    """
    report = report if report is not None else SyncReport()
    logger.info(f"🚀 Processing Secret for {payload.name}...")
    body = payload.to_json()
    with staged_payload(payload) as path:
        for store in stores:
            try:
                store.upsert(payload.name, body, path)
                report.written.append((payload.name, store.label))
            except SecretWriteError as e:
                logger.error(str(e))
                report.failures.append((payload.name, store.label, str(e)))
    return report


def build_stores(settings: Settings, kubeconfig: Optional[str] = None) -> List[SecretStore]:
    stores: List[SecretStore] = []
    if settings.secrets.use_aws:
        settings.require("region")
        stores.append(AwsSecretStore(settings.region, tags=settings.tags))
    if settings.secrets.use_k8s:
        if not kubeconfig:
            raise ValueError("A kubeconfig is required when secrets.use_k8s is enabled")
        stores.append(KubernetesSecretStore(kubeconfig))
    return stores


def build_payloads(settings: Settings,
                   private_dir: Union[str, Path, None] = None) -> List[SecretPayload]:
    """Assemble the github-app and config payloads without touching any store."""
    logger.info("🔐 Starting secret creation process...")
    return [build_github_app_payload(private_dir or Config.PRIVATE_DIR), build_config_payload(settings)]


def sync_secrets(settings: Settings, stores: Sequence[SecretStore],
                 private_dir: Union[str, Path, None] = None,
                 payloads: Optional[Sequence[SecretPayload]] = None) -> SyncReport:
    """Push the github-app and config payloads to ``stores``.

    Both payloads are assembled before the first write, so input errors
    never leave a store half updated. Pass ``payloads`` to reuse ones
    already built by :func:`build_payloads`.
    """
    if payloads is None:
        payloads = build_payloads(settings, private_dir)

    if not stores:
        logger.warning("⚠️  Both secrets.use_aws and secrets.use_k8s are disabled; nothing to write")

    report = SyncReport()
    for payload in payloads:
        push_payload(payload, stores, report)
    return report
