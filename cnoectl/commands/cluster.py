from cnoectl.commands import run_phase
from cnoectl.modules.phases import Phase


def create_cluster_cmd():
    """Create the EKS cluster with eksctl or terraform."""
    run_phase(Phase.CREATE_CLUSTER)
