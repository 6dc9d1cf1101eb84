"""EKS cluster creation through eksctl or terraform."""
import json
import logging
import os
import shutil
import subprocess
import tempfile
from enum import Enum
from pathlib import Path
from string import Template
from typing import Callable, Dict, Optional

from ..config import Config
from ..errors import MissingFile, ProviderUnavailable
from ..settings import Settings
from ..utils.shell import run_command

logger = logging.getLogger("cnoectl.cluster")


class Tool(str, Enum):
    EKSCTL = 'eksctl'
    TERRAFORM = 'terraform'


class ClusterMode(str, Enum):
    AUTO = 'auto'
    STANDARD = 'standard'


def eksctl_config_path(mode: ClusterMode, repo_root: str = None) -> Path:
    name = "cluster-config-auto.yaml" if mode is ClusterMode.AUTO else "cluster-config.yaml"
    return Path(repo_root or Config.REPO_ROOT) / "cluster" / "eksctl" / name


def terraform_dir(repo_root: str = None) -> Path:
    return Path(repo_root or Config.REPO_ROOT) / "cluster" / "terraform"


def template_vars(settings: Settings, mode: ClusterMode) -> Dict[str, str]:
    return {
        "CLUSTER_NAME": settings.cluster_name,
        "AWS_REGION": settings.region,
        "DOMAIN_NAME": settings.domain,
        "AUTO_MODE": "true" if mode is ClusterMode.AUTO else "false",
    }


def render_eksctl_config(template_path: Path, settings: Settings, mode: ClusterMode) -> str:
    """Fill ``$VAR`` placeholders in an eksctl ClusterConfig template."""
    if not template_path.is_file():
        raise MissingFile(f"❌ File {template_path} does not exist")
    with open(template_path, "r", encoding="utf-8") as f:
        return Template(f.read()).safe_substitute(template_vars(settings, mode))


def create_cluster(
    settings: Settings,
    tool: Tool,
    mode: ClusterMode,
    runner: Callable[..., subprocess.CompletedProcess] = run_command,
    which: Callable[[str], Optional[str]] = shutil.which,
    repo_root: str = None,
) -> None:
    """Create the EKS cluster with the selected tool and node mode."""
    settings.require("cluster_name", "region")
    if which(tool.value) is None:
        raise ProviderUnavailable(f"❌ {tool.value} command is not installed. Please install it to continue.")

    logger.info(f"🚀 Creating {mode.value} cluster {settings.cluster_name} in {settings.region} with {tool.value}")

    if tool is Tool.EKSCTL:
        rendered = render_eksctl_config(eksctl_config_path(mode, repo_root), settings, mode)
        fd, path = tempfile.mkstemp(prefix="eksctl-", suffix=".yaml")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(rendered)
            runner(["eksctl", "create", "cluster", "-f", path])
        finally:
            os.remove(path)
    else:
        tf_dir = terraform_dir(repo_root)
        if not tf_dir.is_dir():
            raise MissingFile(f"❌ Directory {tf_dir} does not exist")
        runner(["terraform", f"-chdir={tf_dir}", "init"])
        runner([
            "terraform", f"-chdir={tf_dir}", "apply", "-auto-approve",
            "-var", f"cluster_name={settings.cluster_name}",
            "-var", f"region={settings.region}",
            "-var", f"auto_mode={'true' if mode is ClusterMode.AUTO else 'false'}",
            "-var", f"tags={json.dumps(dict(settings.tags))}",
        ])

    logger.info(f"✅ Cluster {settings.cluster_name} created.")
