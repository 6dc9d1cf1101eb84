import logging
import os
import subprocess

import typer
from kubernetes.client.rest import ApiException
from kubernetes.config import ConfigException
from urllib3.exceptions import HTTPError

from cnoectl.config import Config
from cnoectl.errors import CnoectlError
from cnoectl.modules.phases import Phase, default_ask, dispatch
from cnoectl.settings import load_settings

logger = logging.getLogger("cnoectl")


def config_path() -> str:
    """Location of config.yaml, taken from CONFIG_FILE at call time."""
    return os.getenv("CONFIG_FILE", Config.CONFIG_FILE)


def run_phase(phase: Phase) -> None:
    """Load settings, run ``phase`` and exit with its status."""
    try:
        settings = load_settings(config_path())
        code = dispatch(phase, settings, ask=default_ask)
    except CnoectlError as e:
        logger.error(str(e))
        raise typer.Exit(code=e.exit_code)
    except subprocess.CalledProcessError as e:
        cmd = e.cmd if isinstance(e.cmd, str) else ' '.join(e.cmd)
        logger.error(f"❌ Command failed: {cmd} (exit code: {e.returncode})")
        raise typer.Exit(code=1)
    except ApiException as e:
        logger.error(f"❌ Kubernetes API error: {e.status} {e.reason}")
        raise typer.Exit(code=1)
    except (ConfigException, HTTPError, OSError) as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(code=1)
    if code:
        raise typer.Exit(code=code)
