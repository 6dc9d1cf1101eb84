from cnoectl.commands import run_phase
from cnoectl.modules.phases import Phase


def install_cmd():
    """Install Argo CD and the add-ons ApplicationSet, then wait for healthy apps."""
    run_phase(Phase.INSTALL)


def uninstall_cmd():
    """Remove all deployed applications and Helm releases."""
    run_phase(Phase.UNINSTALL)


def crd_uninstall_cmd():
    """Remove the CRDs created by the reference implementation."""
    run_phase(Phase.CRD_UNINSTALL)
