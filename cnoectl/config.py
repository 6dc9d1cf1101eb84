"""Runtime configuration for the cnoectl application."""
import os
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()

_REPO_ROOT = os.getenv("REPO_ROOT", os.getcwd())


class Config:
    """Runtime configuration with sensible defaults."""

    # Layout
    REPO_ROOT: str = _REPO_ROOT
    CONFIG_FILE: str = os.getenv("CONFIG_FILE", os.path.join(_REPO_ROOT, "config.yaml"))
    PRIVATE_DIR: str = os.getenv("PRIVATE_DIR", os.path.join(_REPO_ROOT, "private"))
    APPSET_CHART: str = os.getenv(
        "APPSET_CHART", os.path.join(_REPO_ROOT, "packages", "appset-chart")
    )

    # Secrets
    SECRET_NAME_PREFIX: str = os.getenv("SECRET_NAME_PREFIX", "cnoe-ref-impl")
    SECRET_NAMESPACE: str = os.getenv("SECRET_NAMESPACE", "default")

    # Cluster
    ARGOCD_NAMESPACE: str = os.getenv("ARGOCD_NAMESPACE", "argocd")
    K0S_ADMIN_CONF: str = os.getenv("K0S_ADMIN_CONF", "/var/lib/k0s/pki/admin.conf")
    CRD_GROUPS: tuple = tuple(
        g.strip() for g in os.getenv(
            "CRD_GROUPS",
            "argoproj.io,cert-manager.io,external-secrets.io,crossplane.io,keycloak.org",
        ).split(",") if g.strip()
    )

    # Timeouts (in seconds)
    SSH_TIMEOUT: int = int(os.getenv("SSH_TIMEOUT", "30"))
    ROOT_APP_TIMEOUT: int = int(os.getenv("ROOT_APP_TIMEOUT", "900"))  # 15 minutes
    APP_COUNT_TIMEOUT: int = int(os.getenv("APP_COUNT_TIMEOUT", "600"))  # 10 minutes
    APP_COUNT_INTERVAL: int = int(os.getenv("APP_COUNT_INTERVAL", "30"))
    APP_POLL_INTERVAL: int = int(os.getenv("APP_POLL_INTERVAL", "10"))
    # kubectl treats a negative --timeout as one week
    ALL_APPS_TIMEOUT: int = int(os.getenv("ALL_APPS_TIMEOUT", str(7 * 24 * 3600)))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_FORMAT: str = os.getenv(
        "LOG_FORMAT",
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # Security
    REDACT_KEYS: tuple = ("api_key", "password", "secret", "token", "private_key", "client_secret")
