from __future__ import annotations

from pathlib import Path
from uuid import UUID

import pytest

from standgateway.core.config_loader import load_config
from standgateway.core.errors import ConfigLoadError, ConfigValidationError
from standgateway.core.model import DEFAULT_TARGET_NAME, SERIAL_PORT_SERVICE_ID


def _write_config(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


@pytest.fixture(autouse=True)
def _isolated_xdg(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))


def test_load_packaged_defaults() -> None:
    loaded = load_config()
    assert loaded.config.target_name == DEFAULT_TARGET_NAME
    assert loaded.config.service_uuid == SERIAL_PORT_SERVICE_ID
    assert loaded.config.channel is None
    assert loaded.config.connect_timeout_s is None
    assert loaded.config.wait_timeout_s == 30.0
    assert len(loaded.sources) == 1
    assert loaded.warnings == ()


def test_user_config_overrides_defaults(tmp_path: Path) -> None:
    _write_config(
        tmp_path / "cfg" / "standgateway" / "config.yaml",
        """
target_name: BenchController
channel: 2
connect_timeout_s: 7.5
""",
    )

    loaded = load_config()
    assert loaded.config.target_name == "BenchController"
    assert loaded.config.channel == 2
    assert loaded.config.connect_timeout_s == 7.5
    assert loaded.config.service_uuid == SERIAL_PORT_SERVICE_ID
    assert loaded.sources[-1].endswith("config.yaml")


def test_explicit_path_replaces_user_config(tmp_path: Path) -> None:
    _write_config(tmp_path / "cfg" / "standgateway" / "config.yaml", "target_name: FromUser\n")
    explicit = tmp_path / "explicit.yml"
    _write_config(explicit, "target_name: FromFlag\n")

    loaded = load_config(explicit)
    assert loaded.config.target_name == "FromFlag"
    assert str(explicit) in loaded.sources


def test_empty_user_file_keeps_defaults(tmp_path: Path) -> None:
    _write_config(tmp_path / "cfg" / "standgateway" / "config.yml", "")

    loaded = load_config()
    assert loaded.config.target_name == DEFAULT_TARGET_NAME
    assert len(loaded.sources) == 2


def test_short_uuid_expands_with_warning(tmp_path: Path) -> None:
    _write_config(tmp_path / "cfg" / "standgateway" / "config.yaml", 'service_uuid: "110E"\n')

    loaded = load_config()
    assert loaded.config.service_uuid == UUID("0000110e-0000-1000-8000-00805f9b34fb")
    assert any("not the serial port profile" in w for w in loaded.warnings)


def test_short_spp_uuid_is_accepted_without_warning(tmp_path: Path) -> None:
    _write_config(tmp_path / "cfg" / "standgateway" / "config.yaml", 'service_uuid: "1101"\n')

    loaded = load_config()
    assert loaded.config.service_uuid == SERIAL_PORT_SERVICE_ID
    assert loaded.warnings == ()


def test_invalid_uuid_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path / "cfg" / "standgateway" / "config.yaml", 'service_uuid: "not-a-uuid"\n')

    with pytest.raises(ConfigValidationError):
        load_config()


def test_unknown_key_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path / "cfg" / "standgateway" / "config.yaml", "retries: 3\n")

    with pytest.raises(ConfigValidationError) as exc:
        load_config()
    assert "Schema validation failed" in str(exc.value)


def test_out_of_range_channel_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path / "cfg" / "standgateway" / "config.yaml", "channel: 31\n")

    with pytest.raises(ConfigValidationError) as exc:
        load_config()
    assert "(channel)" in str(exc.value)


def test_empty_target_name_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path / "cfg" / "standgateway" / "config.yaml", 'target_name: ""\n')

    with pytest.raises(ConfigValidationError):
        load_config()


def test_duplicate_yaml_keys_rejected(tmp_path: Path) -> None:
    _write_config(
        tmp_path / "cfg" / "standgateway" / "config.yaml",
        """
target_name: One
target_name: Two
""",
    )

    with pytest.raises(ConfigValidationError):
        load_config()


def test_non_mapping_root_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path / "cfg" / "standgateway" / "config.yaml", "- StandController\n")

    with pytest.raises(ConfigValidationError):
        load_config()


def test_invalid_yaml_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path / "cfg" / "standgateway" / "config.yaml", "target_name: [unclosed\n")

    with pytest.raises(ConfigValidationError):
        load_config()


def test_missing_explicit_file_raises_load_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError):
        load_config(tmp_path / "missing.yaml")
