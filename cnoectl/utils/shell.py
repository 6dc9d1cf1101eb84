"""Thin wrapper around subprocess used for every external CLI call."""
import logging
import shutil
import subprocess
from pathlib import Path
from typing import Iterable, Optional, Sequence

from ..errors import MissingTool

logger = logging.getLogger("cnoectl.shell")


def run_command(
    cmd: Sequence[str],
    *,
    check: bool = True,
    capture_output: bool = False,
    input: Optional[str] = None,
    cwd: Optional[Path] = None,
    log_output: bool = True,
) -> subprocess.CompletedProcess:
    """Run ``cmd`` and return the completed process.

    ``log_output`` must be False for commands whose stdout carries secret material.
    """
    cmd_str = ' '.join(cmd)
    logger.debug(f"💻 Running: {cmd_str}")
    try:
        result = subprocess.run(
            list(cmd),
            check=check,
            text=True,
            input=input,
            cwd=cwd,
            stdout=subprocess.PIPE if capture_output else None,
            stderr=subprocess.PIPE if capture_output else None,
        )
        if capture_output and log_output:
            logger.debug(f"🟢 Output:\n{result.stdout}")
        return result
    except subprocess.CalledProcessError as e:
        msg = f"❌ Command failed: {cmd_str} (exit code: {e.returncode})"
        if capture_output:
            msg += f"\nStderr:\n{e.stderr}"
        logger.debug(msg)
        raise


def require_tools(tools: Iterable[str]) -> None:
    """Raise MissingTool for the first binary not found on PATH."""
    for tool in tools:
        if shutil.which(tool) is None:
            raise MissingTool(f"❌ {tool} command is not installed. Please install it to continue.")
