"""zstate runtime configuration and settings."""
import os
from dataclasses import dataclass
from typing import Optional

LOCAL_HOSTS = ("local", "localhost")


@dataclass
class AgentConfig:
    """Connection and runtime configuration for one remote host.

    Attributes:
        host: Remote host to manage ("local" runs commands on this machine)
        port: SSH port (default: 22)
        user: SSH user name
        password: SSH password, if password authentication is used
        key: Inline private key material
        key_path: Path to a private key file
        key_passphrase: Passphrase for an encrypted private key
        command_prefix: Prepended to every remote command, e.g. "sudo"
        state_file: Where the CLI persists reconciled records
        default_property_mode: Property mode for records that don't set one
    """

    host: str = "localhost"
    port: int = 22
    user: Optional[str] = None
    password: Optional[str] = None
    key: Optional[str] = None
    key_path: Optional[str] = None
    key_passphrase: Optional[str] = None
    command_prefix: str = ""
    state_file: str = ".zstate/state.json"
    default_property_mode: str = "defined"

    @property
    def is_local(self) -> bool:
        return self.host in LOCAL_HOSTS and not self.user

    @classmethod
    def from_env(cls) -> "AgentConfig":
        """Create config from environment variables.

        Environment variables:
            ZSTATE_HOST, ZSTATE_PORT, ZSTATE_USER, ZSTATE_PASSWORD, ZSTATE_KEY,
            ZSTATE_KEY_PATH, ZSTATE_KEY_PASSPHRASE, ZSTATE_COMMAND_PREFIX,
            ZSTATE_STATE_FILE, ZSTATE_PROPERTY_MODE

        Returns:
            AgentConfig instance with values from environment or defaults
        """
        return cls(
            host=os.getenv("ZSTATE_HOST", cls.host),
            port=int(os.getenv("ZSTATE_PORT", cls.port)),
            user=os.getenv("ZSTATE_USER") or None,
            password=os.getenv("ZSTATE_PASSWORD") or None,
            key=os.getenv("ZSTATE_KEY") or None,
            key_path=os.getenv("ZSTATE_KEY_PATH") or None,
            key_passphrase=os.getenv("ZSTATE_KEY_PASSPHRASE") or None,
            command_prefix=os.getenv("ZSTATE_COMMAND_PREFIX", cls.command_prefix),
            state_file=os.getenv("ZSTATE_STATE_FILE", cls.state_file),
            default_property_mode=os.getenv("ZSTATE_PROPERTY_MODE", cls.default_property_mode),
        )


_config: Optional[AgentConfig] = None


def get_config() -> AgentConfig:
    """Get the global zstate configuration (created from the environment on first use)."""
    global _config
    if _config is None:
        _config = AgentConfig.from_env()
    return _config


def set_config(config: AgentConfig):
    """Set the global zstate configuration."""
    global _config
    _config = config
