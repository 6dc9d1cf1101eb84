"""Loader for the reference implementation's config.yaml."""
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml
from jsonschema import validate, ValidationError

from .errors import ConfigurationError, MissingField, MissingFile

logger = logging.getLogger("cnoectl.settings")

CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "cluster_name": {"type": ["string", "null"]},
        "region": {"type": ["string", "null"]},
        "domain": {"type": ["string", "null"]},
        "path_routing": {"type": ["boolean", "string", "null"]},
        "auto_mode": {"type": ["boolean", "string", "null"]},
        "k8s_distro": {"type": ["string", "null"]},
        "k0s": {
            "type": ["object", "null"],
            "properties": {
                "control_plane_host": {"type": ["string", "null"]},
                "ssh_user": {"type": ["string", "null"]},
                "ssh_key_path": {"type": ["string", "null"]},
                "api_endpoint": {"type": ["string", "null"]},
                "use_local": {"type": ["boolean", "string", "null"]},
            },
        },
        "tags": {
            "type": ["object", "null"],
            "additionalProperties": {"type": ["string", "number", "boolean"]},
        },
        "secrets": {
            "type": ["object", "null"],
            "properties": {
                "use_aws": {"type": ["boolean", "string", "null"]},
                "use_k8s": {"type": ["boolean", "string", "null"]},
            },
        },
    },
}

@dataclass(frozen=True)
class K0sSettings:
    control_plane_host: str = ""
    ssh_user: str = "root"
    ssh_key_path: str = ""
    api_endpoint: str = ""
    use_local: bool = False


@dataclass(frozen=True)
class SecretsSettings:
    use_aws: bool = False
    use_k8s: bool = True


@dataclass(frozen=True)
class Settings:
    """Typed view of config.yaml, immutable for the duration of a run."""
    cluster_name: str = ""
    region: str = ""
    domain: str = ""
    path_routing: bool = False
    auto_mode: bool = False
    k8s_distro: str = "eks"
    k0s: K0sSettings = field(default_factory=K0sSettings)
    tags: Tuple[Tuple[str, str], ...] = ()
    secrets: SecretsSettings = field(default_factory=SecretsSettings)
    source: Optional[str] = None
    document_json: str = field(default="{}", repr=False)

    @property
    def appset_name(self) -> str:
        return "addons-appset-pr" if self.path_routing else "addons-appset"

    @property
    def root_application(self) -> str:
        return f"{self.appset_name}-{self.cluster_name}"

    @property
    def is_k0s(self) -> bool:
        return self.k8s_distro == "k0s"

    def require(self, *names: str) -> None:
        """Raise MissingField unless every named top-level field is set."""
        missing = [name for name in names if not getattr(self, name)]
        if missing:
            raise MissingField(f"❌ Missing required configuration: {', '.join(missing)}")

    def document(self) -> Dict[str, Any]:
        """Return a fresh copy of the full configuration document."""
        return json.loads(self.document_json)


def _unset(value: Any) -> bool:
    # yq -r renders missing keys and nulls as "null"
    return value is None or value == "" or value == "null"


def _str(value: Any, default: str = "") -> str:
    return default if _unset(value) else str(value)


def _bool(value: Any, default: bool) -> bool:
    if _unset(value):
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"


def parse_settings(data: Dict[str, Any], source: str = None) -> Settings:
    """Build Settings from an already parsed configuration mapping."""
    if not isinstance(data, dict):
        raise ConfigurationError(f"❌ Configuration in {source or '<memory>'} must be a mapping")

    try:
        validate(instance=data, schema=CONFIG_SCHEMA)
    except ValidationError as ve:
        raise ConfigurationError(f"❌ Invalid configuration: {ve.message}") from ve

    k0s = data.get("k0s") or {}
    secrets = data.get("secrets") or {}
    tags = data.get("tags") or {}

    return Settings(
        cluster_name=_str(data.get("cluster_name")),
        region=_str(data.get("region")),
        domain=_str(data.get("domain")),
        path_routing=_bool(data.get("path_routing"), False),
        auto_mode=_bool(data.get("auto_mode"), False),
        k8s_distro=_str(data.get("k8s_distro"), "eks"),
        k0s=K0sSettings(
            control_plane_host=_str(k0s.get("control_plane_host")),
            ssh_user=_str(k0s.get("ssh_user"), "root"),
            ssh_key_path=_str(k0s.get("ssh_key_path")),
            api_endpoint=_str(k0s.get("api_endpoint")),
            use_local=_bool(k0s.get("use_local"), False),
        ),
        tags=tuple((str(k), str(v)) for k, v in tags.items()),
        secrets=SecretsSettings(
            use_aws=_bool(secrets.get("use_aws"), False),
            use_k8s=_bool(secrets.get("use_k8s"), True),
        ),
        source=source,
        document_json=json.dumps(data, default=str),
    )


def load_settings(path: Union[str, Path]) -> Settings:
    """Read and validate the configuration document at ``path``.

    Raises:
        MissingFile: If the document does not exist
        ConfigurationError: If the document is not valid YAML or fails validation
    """
    path = Path(path)
    if not path.is_file():
        raise MissingFile(f"❌ File {path} does not exist")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"❌ Invalid YAML in {path}: {e}") from e

    settings = parse_settings(data if data is not None else {}, source=str(path))
    logger.debug(f"Loaded configuration for cluster {settings.cluster_name} from {path}")
    return settings
