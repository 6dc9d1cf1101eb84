"""
SSH access to remote k0s control-plane hosts using paramiko.
"""
import logging
import os
import shlex
from typing import Optional, Tuple

import paramiko

from ..config import Config

logger = logging.getLogger("cnoectl.ssh")


class SSHConnection:
    """Single SSH session to a remote host.

    Host keys are accepted without verification, matching
    ``ssh -o StrictHostKeyChecking=no``.
    """

    def __init__(self, host: str, username: str = "root", key_path: str = None,
                 port: int = 22, timeout: int = None):
        self.host = host
        self.username = username
        self.key_path = os.path.expanduser(key_path) if key_path else None
        self.port = port
        self.timeout = timeout or Config.SSH_TIMEOUT
        self.client: Optional[paramiko.SSHClient] = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def connect(self) -> None:
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        logger.debug(f"Connecting to {self.username}@{self.host}:{self.port}")
        client.connect(
            hostname=self.host,
            port=self.port,
            username=self.username,
            key_filename=self.key_path,
            timeout=self.timeout,
            # Fall back to the agent and default keys only when no key is given
            allow_agent=self.key_path is None,
            look_for_keys=self.key_path is None,
        )
        self.client = client

    def execute(self, command: str) -> Tuple[int, str, str]:
        """Run ``command`` and return (exit_status, stdout, stderr)."""
        if self.client is None:
            raise RuntimeError(f"SSH connection to {self.host} is not open")
        _, stdout, stderr = self.client.exec_command(command, timeout=self.timeout)
        exit_status = stdout.channel.recv_exit_status()
        return (
            exit_status,
            stdout.read().decode("utf-8", errors="replace"),
            stderr.read().decode("utf-8", errors="replace"),
        )

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
            self.client = None


def fetch_remote_file(host: str, path: str, username: str = "root",
                      key_path: str = None, sudo: bool = True) -> str:
    """Return the content of ``path`` on ``host``; empty string when nothing was read.

    Connection and authentication errors propagate to the caller.
    """
    command = f"cat {shlex.quote(path)}"
    if sudo:
        command = f"sudo {command}"
    with SSHConnection(host, username=username, key_path=key_path) as conn:
        exit_status, stdout, stderr = conn.execute(command)
    if exit_status != 0:
        logger.warning(f"⚠️  '{command}' on {host} exited with {exit_status}: {stderr.strip()}")
    return stdout
