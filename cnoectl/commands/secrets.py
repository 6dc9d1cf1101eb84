from cnoectl.commands import run_phase
from cnoectl.modules.phases import Phase


def create_update_secrets_cmd():
    """Create or update the github-app and config secrets."""
    run_phase(Phase.CREATE_UPDATE_SECRETS)
