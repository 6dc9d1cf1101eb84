import logging
import sys

import typer

from cnoectl.commands import addons, cluster, run, secrets
from cnoectl.config import Config

app = typer.Typer(help="CNOE AWS Reference Implementation bootstrap CLI.")

debug_mode = False


# Configure logging
def setup_logging(debug_mode: bool = False):
    """Configure logging based on debug mode."""
    log_level = logging.DEBUG if debug_mode else Config.LOG_LEVEL
    logging.basicConfig(
        level=log_level,
        format=Config.LOG_FORMAT,
        handlers=[
            logging.StreamHandler()
        ],
        force=True,
    )
    # Disable debug logging for noisy libraries
    if not debug_mode:
        for noisy in ('paramiko', 'urllib3', 'botocore', 'boto3', 'kubernetes'):
            logging.getLogger(noisy).setLevel(logging.WARNING)


app.command("create-cluster")(cluster.create_cluster_cmd)
app.command("install")(addons.install_cmd)
app.command("uninstall")(addons.uninstall_cmd)
app.command("crd-uninstall")(addons.crd_uninstall_cmd)
app.command("create-update-secrets")(secrets.create_update_secrets_cmd)
app.command("run")(run.run_cmd)


# Global options callback
@app.callback()
def main(
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
):
    """CNOE AWS Reference Implementation bootstrap CLI."""
    global debug_mode
    debug_mode = debug
    setup_logging(debug)
    if debug:
        logging.debug("Debug mode enabled")


if __name__ == "__main__":
    try:
        app()
    except Exception as e:
        if debug_mode:
            import traceback
            logging.error(f"Unhandled exception: {e}\n{traceback.format_exc()}")
        else:
            logging.error(f"Error: {e}")
        sys.exit(1)
