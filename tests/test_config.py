"""
Tests for configuration loading and command line overrides.
"""

from pathlib import Path

from cxabridge.__main__ import build_config, parse_args
from cxabridge.amplifier.listener import FramePolicy
from cxabridge.config import BridgeConfig, load_config, parse_config


class TestLoadConfig:
    """Tests for TOML loading."""

    def test_default_file(self) -> None:
        """The bundled bridge.toml matches the dataclass defaults."""
        assert load_config() == BridgeConfig()

    def test_defaults(self) -> None:
        config = BridgeConfig()

        assert config.serial.port == "/dev/ttyUSB0"
        assert config.serial.baudrate == 9600
        assert config.http.port == 8080
        assert not config.auth.enabled
        assert config.policy.gate_on_power is True
        assert config.policy.frame_policy is FramePolicy.LOG

    def test_custom_file(self, tmp_path: Path) -> None:
        path = tmp_path / "bridge.toml"
        path.write_text(
            """
[serial]
port = "/dev/ttyAMA0"

[http]
port = 9090

[auth]
username = "admin"
password = "secret"

[policy]
gate_on_power = false
frame_policy = "fatal"
retry_max = 5
"""
        )

        config = load_config(path)

        assert config.serial.port == "/dev/ttyAMA0"
        assert config.serial.baudrate == 9600
        assert config.http.host == "0.0.0.0"
        assert config.http.port == 9090
        assert config.auth.enabled
        assert config.policy.gate_on_power is False
        assert config.policy.frame_policy is FramePolicy.FATAL
        assert config.policy.retry_max == 5.0

    def test_unknown_frame_policy_falls_back(self) -> None:
        config = parse_config({"policy": {"frame_policy": "explode"}})

        assert config.policy.frame_policy is FramePolicy.LOG

    def test_string_boolean_falls_back(self, caplog) -> None:
        """A quoted "false" is not a boolean and keeps the default."""
        config = parse_config({"policy": {"gate_on_power": "false", "query_versions": 0}})

        assert config.policy.gate_on_power is True
        assert config.policy.query_versions is True
        assert "gate_on_power" in caplog.text
        assert "query_versions" in caplog.text

    def test_boolean_false_is_kept(self) -> None:
        config = parse_config({"policy": {"gate_on_power": False, "query_versions": False}})

        assert config.policy.gate_on_power is False
        assert config.policy.query_versions is False

    def test_empty_data(self) -> None:
        assert parse_config({}) == BridgeConfig()


class TestCommandLine:
    """Tests for command line overrides."""

    def test_no_flags_uses_file(self) -> None:
        config = build_config(parse_args([]))

        assert config == BridgeConfig()

    def test_flags_override_file(self) -> None:
        args = parse_args(
            ["--port", "/dev/ttyS1", "--http-port", "8000", "--user", "admin", "--pwd", "pw"]
        )

        config = build_config(args)

        assert config.serial.port == "/dev/ttyS1"
        assert config.http.port == 8000
        assert config.auth.username == "admin"
        assert config.auth.password == "pw"

    def test_config_flag(self, tmp_path: Path) -> None:
        path = tmp_path / "custom.toml"
        path.write_text('[http]\nhost = "127.0.0.1"\n')

        config = build_config(parse_args(["--config", str(path)]))

        assert config.http.host == "127.0.0.1"
