"""Phase dispatcher: banner, confirmation prompts, then delegation."""
import logging
import os
import re
from enum import Enum
from typing import Callable, Dict, Optional, TypeVar

import boto3
import typer
import yaml
from botocore.exceptions import BotoCoreError, ClientError

from ..config import Config
from ..errors import InvalidChoice
from ..settings import Settings
from ..utils import redact_sensitive_data
from ..utils.shell import require_tools
from . import addons, cluster, secrets
from .kubeconfig import kubeconfig_session, secrets_kubeconfig

logger = logging.getLogger("cnoectl.phases")

T = TypeVar("T")
Ask = Callable[..., str]

_YES = re.compile(r"^[Yy][Ee][Ss]$")


class Phase(str, Enum):
    CREATE_CLUSTER = 'create-cluster'
    INSTALL = 'install'
    UNINSTALL = 'uninstall'
    CRD_UNINSTALL = 'crd-uninstall'
    CREATE_UPDATE_SECRETS = 'create-update-secrets'


def default_ask(text: str) -> str:
    return typer.prompt(text, default="", show_default=False)


def aws_account_id(region: str) -> str:
    try:
        sts = boto3.session.Session(region_name=region or None).client("sts")
        return sts.get_caller_identity()["Account"]
    except (BotoCoreError, ClientError) as e:
        logger.debug(f"Could not resolve AWS account: {e}")
        return "N/A"


def show_banner(settings: Settings, account_id: Optional[str] = None) -> None:
    typer.secho("✨ ========================================== ✨", fg=typer.colors.YELLOW, bold=True)
    typer.secho("📦       CNOE AWS Reference Implementation    📦", fg=typer.colors.CYAN, bold=True)
    typer.secho("✨ ========================================== ✨\n", fg=typer.colors.YELLOW, bold=True)
    typer.secho("🎯 Targets:", fg=typer.colors.MAGENTA, bold=True)
    typer.echo(f"🔶 AWS account number: {account_id or aws_account_id(settings.region)}")
    typer.echo(f"🔶 AWS profile (if set): {os.getenv('AWS_PROFILE', 'None')}")
    typer.echo(f"🔶 AWS region: {settings.region}")
    typer.echo(f"🔶 Kubernetes cluster: {settings.cluster_name}")


def confirm(question: str, ask: Ask = default_ask) -> bool:
    """Only a literal yes (any case) counts as consent."""
    typer.secho(f"\n❓ {question}", bold=True)
    return bool(_YES.match(ask("(yes/no)").strip()))


def choose(question: str, options: Dict[str, T], labels: Dict[str, str], ask: Ask = default_ask) -> T:
    typer.secho(f"\n❓ {question}", fg=typer.colors.YELLOW, bold=True)
    for key, label in labels.items():
        typer.secho(f"{key}) {label}", fg=typer.colors.CYAN)
    answer = ask(f"Enter your choice ({' or '.join(options)})").strip()
    if answer not in options:
        raise InvalidChoice(f"❌ Invalid choice. Please select {' or '.join(options)}.")
    typer.secho(f"✅ Selected: {labels[answer]}", fg=typer.colors.GREEN)
    return options[answer]


def _cancelled(what: str) -> int:
    logger.warning(f"⚠️  {what} cancelled.")
    return 0


def run_create_cluster(settings: Settings, ask: Ask = default_ask) -> int:
    tool = choose(
        "Which tool would you like to use for cluster creation?",
        {"1": cluster.Tool.EKSCTL, "2": cluster.Tool.TERRAFORM},
        {"1": "eksctl (YAML-based configuration)", "2": "terraform (Infrastructure as Code)"},
        ask,
    )
    mode = choose(
        "Which type of EKS cluster would you like to create?",
        {"1": cluster.ClusterMode.AUTO, "2": cluster.ClusterMode.STANDARD},
        {"1": "Auto Mode cluster (Recommended for new users)",
         "2": "Non-Auto Mode cluster (Managed Node Groups)"},
        ask,
    )
    if not confirm("Are you sure you want to create the EKS cluster?", ask):
        return _cancelled("Cluster creation")
    cluster.create_cluster(settings, tool, mode)
    return 0


def run_install(settings: Settings, ask: Ask = default_ask) -> int:
    typer.secho("📋 Configuration Details:", fg=typer.colors.CYAN)
    typer.secho("-" * 52, fg=typer.colors.YELLOW)
    typer.echo(yaml.safe_dump(redact_sensitive_data(settings.document()), sort_keys=False).rstrip())
    typer.secho("-" * 52, fg=typer.colors.YELLOW)
    if not confirm("Are you sure you want to continue with installation?", ask):
        return _cancelled("Installation")
    require_tools(("kubectl", "helm"))
    with kubeconfig_session(settings) as material:
        addons.install(settings, material.path)
    return 0


def run_uninstall(settings: Settings, ask: Ask = default_ask) -> int:
    typer.secho("\n⚠️  WARNING: This will remove all deployed resources!", fg=typer.colors.RED, bold=True)
    if not confirm("Are you sure you want to continue with uninstallation?", ask):
        return _cancelled("Uninstallation")
    require_tools(("kubectl", "helm"))
    with kubeconfig_session(settings) as material:
        addons.uninstall(settings, material.path)
    return 0


def run_crd_uninstall(settings: Settings, ask: Ask = default_ask) -> int:
    typer.secho("\n⚠️  WARNING: This will remove all CRDs created by reference implementation!",
                fg=typer.colors.RED, bold=True)
    if not confirm("Are you sure you want to continue with uninstallation?", ask):
        return _cancelled("CRD Uninstallation")
    require_tools(("kubectl",))
    with kubeconfig_session(settings) as material:
        addons.uninstall_crds(material.path)
    return 0


def run_create_update_secrets(settings: Settings, ask: Ask = default_ask,
                              private_dir: Optional[str] = None) -> int:
    prefix = Config.SECRET_NAME_PREFIX
    typer.secho(f"🔐 Secret names: {prefix}/config & {prefix}/github-app", fg=typer.colors.CYAN)
    typer.secho("\n⚠️  WARNING: This will update the secrets if already they exists!!",
                fg=typer.colors.RED, bold=True)
    if not confirm("Are you sure you want to continue?", ask):
        return _cancelled("Secret creation")

    payloads = secrets.build_payloads(settings, private_dir)
    if settings.secrets.use_k8s:
        require_tools(("kubectl",))
        with secrets_kubeconfig(settings) as material:
            stores = secrets.build_stores(settings, material.path)
            report = secrets.sync_secrets(settings, stores, payloads=payloads)
    else:
        report = secrets.sync_secrets(settings, secrets.build_stores(settings), payloads=payloads)

    if not report.ok:
        for name, store, _ in report.failures:
            logger.error(f"❌ {name} was not written to {store}")
        return 1
    logger.info("🎉 Process completed successfully! 🎉")
    return 0


HANDLERS: Dict[Phase, Callable[..., int]] = {
    Phase.CREATE_CLUSTER: run_create_cluster,
    Phase.INSTALL: run_install,
    Phase.UNINSTALL: run_uninstall,
    Phase.CRD_UNINSTALL: run_crd_uninstall,
    Phase.CREATE_UPDATE_SECRETS: run_create_update_secrets,
}


def dispatch(phase: Phase, settings: Settings, ask: Ask = default_ask, banner: bool = True) -> int:
    """Run one phase and return the process exit code."""
    if banner:
        show_banner(settings)
    return HANDLERS[Phase(phase)](settings, ask=ask)
