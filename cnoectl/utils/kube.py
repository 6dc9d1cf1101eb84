from pathlib import Path
from typing import Union

from kubernetes import config
from kubernetes.client import ApiClient


def api_client(kubeconfig: Union[str, Path]) -> ApiClient:
    """
    Build a Kubernetes ApiClient bound to the given kubeconfig file.
    The process-wide default configuration is left untouched.
    """
    resolved = Path(kubeconfig).expanduser()
    if not resolved.exists():
        raise FileNotFoundError(f"❌ Kubeconfig not found: {resolved}")
    return config.new_client_from_config(config_file=str(resolved))
