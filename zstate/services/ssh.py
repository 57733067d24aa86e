"""SSH command runner using Paramiko."""
import io
import socket
from typing import Optional

import paramiko

from zstate.core.config import AgentConfig
from zstate.core.executor import RunResult
from zstate.core.logger import get_logger

logger = get_logger(__name__)

KEY_CLASSES = (paramiko.Ed25519Key, paramiko.RSAKey, paramiko.ECDSAKey)


def load_private_key(key_path: Optional[str] = None, key_data: Optional[str] = None,
                     passphrase: Optional[str] = None) -> Optional[paramiko.PKey]:
    """Load an SSH private key, trying Ed25519, RSA, and ECDSA formats.

    Args:
        key_path: Path to private key file
        key_data: Private key data as string
        passphrase: Passphrase for encrypted keys

    Returns:
        paramiko key object or None when neither source was given
    """
    if not key_path and not key_data:
        return None

    for key_class in KEY_CLASSES:
        try:
            if key_path:
                return key_class.from_private_key_file(key_path, password=passphrase)
            return key_class.from_private_key(io.StringIO(key_data), password=passphrase)
        except paramiko.SSHException as e:
            logger.debug(f"{key_class.__name__} parse failed: {e}")
            continue

    raise paramiko.SSHException("Failed to load key as any known type (Ed25519, RSA, ECDSA)")


class SSHRunner:
    """Runs commands on one remote host over a single Paramiko connection.

    The connection is opened lazily on the first command and closed by close()
    or by leaving the context manager.
    """

    def __init__(self, host: str, username: Optional[str] = None, port: int = 22,
                 password: Optional[str] = None, key_path: Optional[str] = None,
                 key_data: Optional[str] = None, key_passphrase: Optional[str] = None,
                 connect_timeout: float = 30):
        self.host = host
        self.username = username
        self.port = port
        self.password = password
        self.key_path = key_path
        self.key_data = key_data
        self.key_passphrase = key_passphrase
        self.connect_timeout = connect_timeout
        self.client: Optional[paramiko.SSHClient] = None

    @classmethod
    def from_config(cls, config: AgentConfig) -> "SSHRunner":
        return cls(
            host=config.host,
            username=config.user,
            port=config.port,
            password=config.password,
            key_path=config.key_path,
            key_data=config.key,
            key_passphrase=config.key_passphrase,
        )

    def connect(self) -> paramiko.SSHClient:
        if self.client is not None:
            return self.client

        pkey = load_private_key(self.key_path, self.key_data, self.key_passphrase)
        client = paramiko.SSHClient()
        client.load_system_host_keys()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        logger.debug(f"Connecting to {self.username or ''}@{self.host}:{self.port}")
        client.connect(
            hostname=self.host,
            port=self.port,
            username=self.username,
            password=self.password,
            pkey=pkey,
            passphrase=self.key_passphrase,
            timeout=self.connect_timeout,
            allow_agent=pkey is None and self.password is None,
            look_for_keys=pkey is None and self.password is None,
        )
        self.client = client
        return client

    def run(self, command: str, timeout: float) -> RunResult:
        try:
            client = self.connect()
            _, stdout, stderr = client.exec_command(command, timeout=timeout)
            out = stdout.read().decode("utf-8", errors="replace")
            err = stderr.read().decode("utf-8", errors="replace")
        except socket.timeout:
            return RunResult(completed=False)
        except (paramiko.SSHException, OSError) as e:
            return RunResult(completed=False, error=e)
        return RunResult(stdout=out, stderr=err)

    def close(self):
        if self.client:
            self.client.close()
            self.client = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
