"""Install and remove the Argo CD based add-on stack."""
import logging
import subprocess
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from kubernetes import client
from kubernetes.client.rest import ApiException

from ..config import Config
from ..errors import MissingFile
from ..settings import Settings
from ..utils.kube import api_client
from ..utils.shell import run_command
from .argocd import ArgoApplications
from .readiness import ReadinessWaiter

logger = logging.getLogger("cnoectl.addons")

ARGOCD_RELEASE = "argocd"
ARGO_HELM_REPO = ("argo", "https://argoproj.github.io/argo-helm")

Runner = Callable[..., subprocess.CompletedProcess]


def appset_values(settings: Settings) -> Dict[str, str]:
    return {
        "clusterName": settings.cluster_name,
        "region": settings.region,
        "domain": settings.domain,
        "pathRouting": "true" if settings.path_routing else "false",
        "autoMode": "true" if settings.auto_mode else "false",
    }


def install_helm_chart(
    release_name: str,
    chart: str,
    namespace: str,
    kubeconfig: str,
    repo: Optional[tuple] = None,
    values: Optional[Dict[str, str]] = None,
    wait: bool = True,
    timeout: str = "600s",
    runner: Runner = run_command,
) -> None:
    logger.info(f"🚀 Installing Helm release '{release_name}' in namespace '{namespace}'")

    if repo:
        repo_name, repo_url = repo
        runner(["helm", "repo", "add", repo_name, repo_url, "--force-update"])
        runner(["helm", "repo", "update", repo_name])

    cmd = [
        "helm", "upgrade", "--install", release_name, chart,
        "--namespace", namespace, "--create-namespace",
        "--kubeconfig", kubeconfig,
    ]
    if wait:
        cmd += ["--wait", "--timeout", timeout]
    for key, value in (values or {}).items():
        cmd += ["--set-string", f"{key}={value}"]

    runner(cmd)
    logger.info(f"✅ Helm release '{release_name}' installed successfully.")


def install(
    settings: Settings,
    kubeconfig: str,
    runner: Runner = run_command,
    waiter: Optional[ReadinessWaiter] = None,
    chart_path: Optional[str] = None,
) -> None:
    """Install Argo CD and the add-ons ApplicationSet, then wait for every app to be healthy."""
    settings.require("cluster_name")
    chart = Path(chart_path or Config.APPSET_CHART)
    if not chart.is_dir():
        raise MissingFile(f"❌ AppSet chart {chart} does not exist")

    namespace = Config.ARGOCD_NAMESPACE
    install_helm_chart(
        release_name=ARGOCD_RELEASE,
        chart="argo/argo-cd",
        namespace=namespace,
        kubeconfig=kubeconfig,
        repo=ARGO_HELM_REPO,
        runner=runner,
    )
    install_helm_chart(
        release_name=settings.appset_name,
        chart=str(chart),
        namespace=namespace,
        kubeconfig=kubeconfig,
        values=appset_values(settings),
        wait=False,
        runner=runner,
    )

    if waiter is None:
        waiter = ReadinessWaiter(ArgoApplications(api_client(kubeconfig), namespace))
    waiter.wait_for_apps(settings.root_application)
    logger.info("🎉 Installation completed successfully!")


def uninstall(
    settings: Settings,
    kubeconfig: str,
    applications: Optional[ArgoApplications] = None,
    runner: Runner = run_command,
) -> None:
    """Remove ApplicationSets, Applications and the Helm releases that created them."""
    applications = applications or ArgoApplications(api_client(kubeconfig))

    if applications.delete(settings.root_application):
        logger.info(f"🗑️ Deleted application {settings.root_application}")

    for plural in ("applicationsets", "applications"):
        for item in applications.list(plural=plural):
            name = item.get("metadata", {}).get("name")
            if name and applications.delete(name, plural=plural):
                logger.info(f"🗑️ Deleted {plural[:-1]} {name}")

    for release in (settings.appset_name, ARGOCD_RELEASE):
        result = runner([
            "helm", "uninstall", release,
            "--namespace", applications.namespace,
            "--kubeconfig", kubeconfig,
        ], check=False, capture_output=True)
        if result.returncode != 0:
            logger.warning(f"⚠️  helm uninstall {release} failed: {(result.stderr or '').strip()}")
        else:
            logger.info(f"🧹 Helm release {release} removed")

    logger.info("✅ Uninstallation complete.")


def matching_crds(crds: Iterable, groups: Iterable[str]) -> List[str]:
    groups = tuple(groups)
    names = []
    for crd in crds:
        group = crd.spec.group or ""
        if any(group == g or group.endswith("." + g) for g in groups):
            names.append(crd.metadata.name)
    return names


def uninstall_crds(
    kubeconfig: str,
    groups: Optional[Iterable[str]] = None,
    api: Optional[client.ApiextensionsV1Api] = None,
) -> List[str]:
    """Delete CRDs belonging to the reference implementation's API groups."""
    api = api or client.ApiextensionsV1Api(api_client(kubeconfig))
    groups = tuple(groups or Config.CRD_GROUPS)

    names = matching_crds(api.list_custom_resource_definition().items, groups)
    if not names:
        logger.info("🔍 No matching CRDs found")

    deleted = []
    for name in names:
        try:
            api.delete_custom_resource_definition(name)
            deleted.append(name)
            logger.info(f"🗑️ Deleted CRD {name}")
        except ApiException as e:
            if e.status != 404:
                raise
    logger.info(f"✅ Removed {len(deleted)} CRDs")
    return deleted
