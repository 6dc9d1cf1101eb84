from typing import Any, Dict, List

from kubernetes import client
from kubernetes.client.rest import ApiException

from ..config import Config

GROUP = "argoproj.io"
VERSION = "v1alpha1"


def health_status(app: Dict[str, Any]) -> str:
    return app.get("status", {}).get("health", {}).get("status", "unknown")


class ArgoApplications:
    """Argo CD Application and ApplicationSet objects in one namespace."""

    def __init__(self, api_client: client.ApiClient, namespace: str = None):
        self.api = client.CustomObjectsApi(api_client)
        self.namespace = namespace or Config.ARGOCD_NAMESPACE

    def get(self, name: str) -> Dict[str, Any]:
        return self.api.get_namespaced_custom_object(
            group=GROUP,
            version=VERSION,
            namespace=self.namespace,
            plural="applications",
            name=name
        )

    def list(self, plural: str = "applications") -> List[Dict[str, Any]]:
        result = self.api.list_namespaced_custom_object(
            group=GROUP,
            version=VERSION,
            namespace=self.namespace,
            plural=plural
        )
        return result.get("items", [])

    def delete(self, name: str, plural: str = "applications") -> bool:
        """Delete one object; returns False when it was already gone."""
        try:
            self.api.delete_namespaced_custom_object(
                group=GROUP,
                version=VERSION,
                namespace=self.namespace,
                plural=plural,
                name=name
            )
            return True
        except ApiException as e:
            if e.status == 404:
                return False
            raise
