"""
Configuration management for the CXA bridge.

This module loads serial, HTTP, authentication and policy settings from a
TOML file. Command line flags are applied on top by the entry point.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from cxabridge.amplifier.listener import (
    DEFAULT_RETRY_INITIAL_SECONDS,
    DEFAULT_RETRY_MAX_SECONDS,
    FramePolicy,
)
from cxabridge.amplifier.transport import DEFAULT_BAUDRATE

logger = logging.getLogger(__name__)

# Path to the config directory
CONFIG_DIR = Path(__file__).parent
DEFAULT_CONFIG_PATH = CONFIG_DIR / "bridge.toml"


@dataclass
class SerialConfig:
    """Serial link settings."""

    port: str = "/dev/ttyUSB0"
    baudrate: int = DEFAULT_BAUDRATE


@dataclass
class HttpConfig:
    """HTTP listener settings."""

    host: str = "0.0.0.0"
    port: int = 8080


@dataclass
class AuthConfig:
    """HTTP Basic credentials. Authentication is off when username is empty."""

    username: str = ""
    password: str = ""

    @property
    def enabled(self) -> bool:
        return bool(self.username)


@dataclass
class PolicyConfig:
    """Behavioural choices for state handling and error recovery."""

    gate_on_power: bool = True
    frame_policy: FramePolicy = FramePolicy.LOG
    retry_initial: float = DEFAULT_RETRY_INITIAL_SECONDS
    retry_max: float = DEFAULT_RETRY_MAX_SECONDS
    query_versions: bool = True


@dataclass
class BridgeConfig:
    """Loaded bridge configuration."""

    serial: SerialConfig = field(default_factory=SerialConfig)
    http: HttpConfig = field(default_factory=HttpConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)


def _parse_frame_policy(value: object) -> FramePolicy:
    try:
        return FramePolicy(str(value).lower())
    except ValueError:
        logger.warning("Unknown frame_policy %r, using %s", value, FramePolicy.LOG.value)
        return FramePolicy.LOG


def _parse_bool(name: str, value: object, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    logger.warning("Expected true/false for %s, got %r, using %s", name, value, default)
    return default


def parse_config(data: dict[str, Any]) -> BridgeConfig:
    """
    Build a BridgeConfig from parsed TOML data.

    Missing sections and keys keep their defaults.
    """
    serial_data = data.get("serial", {})
    http_data = data.get("http", {})
    auth_data = data.get("auth", {})
    policy_data = data.get("policy", {})

    serial = SerialConfig(
        port=str(serial_data.get("port", SerialConfig.port)),
        baudrate=int(serial_data.get("baudrate", SerialConfig.baudrate)),
    )
    http = HttpConfig(
        host=str(http_data.get("host", HttpConfig.host)),
        port=int(http_data.get("port", HttpConfig.port)),
    )
    auth = AuthConfig(
        username=str(auth_data.get("username", "")),
        password=str(auth_data.get("password", "")),
    )
    policy = PolicyConfig(
        gate_on_power=_parse_bool("gate_on_power", policy_data.get("gate_on_power", True), True),
        frame_policy=_parse_frame_policy(policy_data.get("frame_policy", FramePolicy.LOG.value)),
        retry_initial=float(policy_data.get("retry_initial", DEFAULT_RETRY_INITIAL_SECONDS)),
        retry_max=float(policy_data.get("retry_max", DEFAULT_RETRY_MAX_SECONDS)),
        query_versions=_parse_bool("query_versions", policy_data.get("query_versions", True), True),
    )

    return BridgeConfig(serial=serial, http=http, auth=auth, policy=policy)


def load_config(config_path: Path | None = None) -> BridgeConfig:
    """
    Load bridge configuration from a TOML file.

    Args:
        config_path: Path to the TOML file. If None, uses bridge.toml next
            to this module.

    Returns:
        Loaded BridgeConfig instance.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    logger.debug("Loading bridge config from %s", config_path)

    with config_path.open("rb") as f:
        data = tomllib.load(f)

    return parse_config(data)
