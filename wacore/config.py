"""
wacore Configuration Management

Handles loading and validation of client configuration from a TOML file.

Example config.toml:
    log_level = "INFO"

    [auth]
    qr_auth = true
    session_path = "./wa_session"

    [connection]
    retry_count = 5
    retry_delay = 5.0

    [webhooks]
    url = "https://example.com/hook"
    events = ["message.new"]
    secret = "s3cret"
"""

from pathlib import Path
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field

try:
    import toml
    HAS_TOML = True
except ImportError:
    HAS_TOML = False

from .net.transport import DEFAULT_URL, DEFAULT_ORIGIN, DEFAULT_USER_AGENT
from .auth.pairing import validate_phone_number


# Default configuration path
DEFAULT_CONFIG_PATH = Path("./wacore.toml")

# Default session directory
DEFAULT_SESSION_PATH = Path("./wa_session")


@dataclass
class AuthConfig:
    """Authentication configuration."""
    qr_auth: bool = True
    pairing_code: bool = False
    phone_number: Optional[str] = None
    session_path: Path = field(default_factory=lambda: DEFAULT_SESSION_PATH)
    auto_save: bool = True
    qr_timeout: float = 60.0  # seconds
    qr_refresh_interval: float = 20.0  # seconds
    pairing_timeout: float = 60.0  # seconds


@dataclass
class ConnectionConfig:
    """Transport and reconnect configuration."""
    url: str = DEFAULT_URL
    origin: str = DEFAULT_ORIGIN
    user_agent: str = DEFAULT_USER_AGENT
    browser_name: str = "wacore"
    retry_count: int = 5
    retry_delay: float = 5.0  # seconds, multiplied by the attempt number
    keep_alive: bool = True
    keep_alive_interval: float = 30.0  # seconds
    timeout: float = 30.0  # seconds, transport open
    encrypt_outbound: bool = False


@dataclass
class FeatureConfig:
    """Feature switches for command operations."""
    messaging: bool = True
    media: bool = True
    groups: bool = True
    status: bool = True
    webhooks: bool = False


@dataclass
class WebhookConfig:
    """Webhook delivery configuration."""
    url: Optional[str] = None
    events: List[str] = field(default_factory=list)
    secret: Optional[str] = None
    timeout: float = 10.0  # seconds


@dataclass
class Config:
    """
    Complete client configuration.
    """
    auth: AuthConfig = field(default_factory=AuthConfig)
    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    features: FeatureConfig = field(default_factory=FeatureConfig)
    webhooks: WebhookConfig = field(default_factory=WebhookConfig)

    # Paths
    config_path: Path = field(default_factory=lambda: DEFAULT_CONFIG_PATH)

    # Logging
    log_level: str = "INFO"

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> 'Config':
        """
        Load configuration from file.

        A missing file, or a missing toml package, yields the defaults.

        Args:
            config_path: Path to config file (default: ./wacore.toml)

        Returns:
            Loaded configuration

        Raises:
            ValueError: If the file exists but is not valid TOML
        """
        path = Path(config_path or DEFAULT_CONFIG_PATH)
        config = cls()
        config.config_path = path

        if not path.exists() or not HAS_TOML:
            return config

        try:
            data = toml.load(path)
        except toml.TomlDecodeError as e:
            raise ValueError(f"Invalid config file {path}: {e}") from e

        config._apply_dict(data)
        return config

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        config = cls()
        config._apply_dict(data)
        return config

    def _apply_dict(self, data: Dict[str, Any]) -> None:
        """Apply dictionary data to config."""
        if "log_level" in data:
            self.log_level = str(data["log_level"]).upper()

        # Auth config
        if "auth" in data:
            a = data["auth"]
            if "qr_auth" in a:
                self.auth.qr_auth = bool(a["qr_auth"])
            if "pairing_code" in a:
                self.auth.pairing_code = bool(a["pairing_code"])
            if "phone_number" in a:
                self.auth.phone_number = str(a["phone_number"])
            if "session_path" in a:
                self.auth.session_path = Path(a["session_path"])
            if "auto_save" in a:
                self.auth.auto_save = bool(a["auto_save"])
            if "qr_timeout" in a:
                self.auth.qr_timeout = float(a["qr_timeout"])
            if "qr_refresh_interval" in a:
                self.auth.qr_refresh_interval = float(a["qr_refresh_interval"])
            if "pairing_timeout" in a:
                self.auth.pairing_timeout = float(a["pairing_timeout"])

        # Connection config
        if "connection" in data:
            c = data["connection"]
            for name in ("url", "origin", "user_agent", "browser_name"):
                if name in c:
                    setattr(self.connection, name, str(c[name]))
            if "retry_count" in c:
                self.connection.retry_count = int(c["retry_count"])
            if "retry_delay" in c:
                self.connection.retry_delay = float(c["retry_delay"])
            if "keep_alive" in c:
                self.connection.keep_alive = bool(c["keep_alive"])
            if "keep_alive_interval" in c:
                self.connection.keep_alive_interval = float(c["keep_alive_interval"])
            if "timeout" in c:
                self.connection.timeout = float(c["timeout"])
            if "encrypt_outbound" in c:
                self.connection.encrypt_outbound = bool(c["encrypt_outbound"])

        # Feature switches
        if "features" in data:
            f = data["features"]
            for name in ("messaging", "media", "groups", "status", "webhooks"):
                if name in f:
                    setattr(self.features, name, bool(f[name]))

        # Webhooks
        if "webhooks" in data:
            w = data["webhooks"]
            if "url" in w:
                self.webhooks.url = str(w["url"])
            if "events" in w:
                self.webhooks.events = [str(e) for e in w["events"]]
            if "secret" in w:
                self.webhooks.secret = str(w["secret"])
            if "timeout" in w:
                self.webhooks.timeout = float(w["timeout"])

    def validate(self) -> None:
        """
        Validate configuration.

        Raises:
            ValueError: If configuration is invalid
        """
        if not self.auth.qr_auth and not self.auth.pairing_code:
            raise ValueError("At least one of qr_auth / pairing_code must be enabled")

        if self.auth.phone_number:
            validate_phone_number(self.auth.phone_number)

        if self.auth.qr_timeout <= 0:
            raise ValueError(f"Invalid QR timeout: {self.auth.qr_timeout}")

        if self.auth.qr_refresh_interval <= 0:
            raise ValueError(f"Invalid QR refresh interval: {self.auth.qr_refresh_interval}")

        if self.auth.pairing_timeout <= 0:
            raise ValueError(f"Invalid pairing timeout: {self.auth.pairing_timeout}")

        if self.connection.retry_count < 0:
            raise ValueError(f"Invalid retry count: {self.connection.retry_count}")

        if self.connection.retry_delay < 0:
            raise ValueError(f"Invalid retry delay: {self.connection.retry_delay}")

        if self.connection.keep_alive_interval <= 0:
            raise ValueError(f"Invalid keep-alive interval: {self.connection.keep_alive_interval}")

        if self.connection.timeout <= 0:
            raise ValueError(f"Invalid open timeout: {self.connection.timeout}")

        if not self.connection.url.startswith(("ws://", "wss://")):
            raise ValueError(f"Invalid WebSocket URL: {self.connection.url}")

        if self.features.webhooks and not self.webhooks.url:
            raise ValueError("Webhooks enabled but no webhook URL configured")

        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {self.log_level}")
