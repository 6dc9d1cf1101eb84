"""
Cluster, credential and secret management modules.
"""
from .kubeconfig import KubeconfigProvider, kubeconfig_session
from .readiness import ReadinessWaiter
from .secrets import sync_secrets

__all__ = [
    'KubeconfigProvider',
    'kubeconfig_session',
    'ReadinessWaiter',
    'sync_secrets',
]
