"""Unit tests for configuration management."""

from pathlib import Path

import pytest
import yaml

from docwatch.config import (
    ConfigError,
    ConfigManager,
    DocwatchConfig,
    resolve_with_precedence,
    split_key,
)
from docwatch.config.resolver import parse_env_overrides


def _fresh_manager(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ConfigManager:
    monkeypatch.setenv("HOME", str(tmp_path))
    return ConfigManager(env={})


def test_defaults_match_documented_values() -> None:
    config = DocwatchConfig()

    assert config.cache.existence_ttl_seconds == 30
    assert config.cache.cleanup_max_age_seconds == 3600
    assert config.scan.interval_seconds == 30
    assert config.discovery.extension == ".xml"
    assert config.discovery.index_files[0] == "index.txt"
    assert config.discovery.manifest_name == "chapters.json"
    assert len(config.discovery.pattern_prefixes) == 12
    assert len(config.discovery.common_names) == 20
    assert config.fingerprint.algorithm == "rolling"


def test_load_without_file_uses_defaults(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)

    config = manager.load()

    assert manager.config_path == tmp_path / ".docwatch" / "config.yaml"
    assert config == DocwatchConfig()
    assert not manager.config_path.exists()
    assert manager.read_text() == ""


def test_save_writes_only_non_default_sections(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)

    manager.save(
        {
            "scan": {"interval_seconds": 90},
            "discovery": {"max_probes": 50, "extension": ".xml"},
            "cache": {"existence_ttl_seconds": 30},
        }
    )

    text = manager.read_text()
    assert text.startswith("# docwatch configuration file")
    assert "# Last updated:" in text
    assert "# Options controlling how candidate documents are discovered." in text
    assert "# Periodic scan behavior." in text
    assert yaml.safe_load(text) == {
        "discovery": {"max_probes": 50},
        "scan": {"interval_seconds": 90.0},
    }


def test_save_rejects_invalid_values_without_touching_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.save({"scan": {"interval_seconds": 90}})
    before = manager.read_text()

    with pytest.raises(ConfigError):
        manager.save({"scan": {"interval_seconds": -1}})

    assert manager.read_text() == before


def test_resolve_with_precedence_respects_order(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.save({"scan": {"interval_seconds": 90}, "discovery": {"max_probes": 50}})

    env = {"DOCWATCH__SCAN__INTERVAL_SECONDS": "45", "UNRELATED": "1"}
    cli = {"discovery.max_probes": 10}

    config = manager.load(cli_overrides=cli, env_overrides=env)

    assert config.scan.interval_seconds == pytest.approx(45)
    # CLI overrides take precedence over the file
    assert config.discovery.max_probes == 10

    assert manager.load(include_env=False).scan.interval_seconds == pytest.approx(90)


def test_set_value_parses_yaml_and_merges(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)

    manager.set_value("discovery.strategies", "[manifest, index]")
    config = manager.set_value("transport.user_agent", "docwatch-ci")

    assert config.discovery.strategies == ["manifest", "index"]
    assert config.transport.user_agent == "docwatch-ci"
    assert manager.load_file_overrides() == {
        "discovery": {"strategies": ["manifest", "index"]},
        "transport": {"user_agent": "docwatch-ci"},
    }


def test_set_value_back_to_default_drops_entry(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.set_value("scan.interval_seconds", "12")

    manager.set_value("scan.interval_seconds", "30")

    assert manager.load_file_overrides() == {}


@pytest.mark.parametrize(
    ("key", "message"),
    [
        ("interval_seconds", "must look like SECTION.SETTING"),
        ("scan.interval_seconds.extra", "must look like SECTION.SETTING"),
        ("llm.model", "Unknown section 'llm'"),
        ("scan.cadence", "Unknown setting 'cadence' in section 'scan'"),
    ],
)
def test_split_key_rejects_unknown_keys(key: str, message: str) -> None:
    with pytest.raises(ConfigError, match=message):
        split_key(key)


def test_set_value_unknown_setting_leaves_file_absent(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)

    with pytest.raises(ConfigError):
        manager.set_value("scan.cadence", "5")

    assert not manager.config_path.exists()


def test_reset_single_section_and_everything(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.save(
        {
            "scan": {"interval_seconds": 90},
            "discovery": {"max_probes": 50},
            "fingerprint": {"algorithm": "sha256"},
        }
    )

    assert manager.reset("scan") == ["scan"]
    assert manager.reset("scan") == []
    assert set(manager.load_file_overrides()) == {"discovery", "fingerprint"}

    assert manager.reset() == ["discovery", "fingerprint"]
    assert manager.load(include_env=False) == DocwatchConfig()

    with pytest.raises(ConfigError):
        manager.reset("llm")


def test_env_overrides_are_listed_by_dotted_key() -> None:
    manager = ConfigManager(
        config_path=Path("/nonexistent/config.yaml"),
        env={
            "DOCWATCH__SCAN__INTERVAL_SECONDS": "5",
            "DOCWATCH__DISCOVERY__STRATEGIES": "[index]",
            "HOME": "/tmp",
        },
    )

    assert manager.env_overrides() == {
        "scan.interval_seconds": 5,
        "discovery.strategies": ["index"],
    }


def test_env_overrides_parse_yaml_values() -> None:
    overrides = parse_env_overrides(
        {
            "DOCWATCH__DISCOVERY__STRATEGIES": "[index, manifest]",
            "DOCWATCH__FINGERPRINT__ALGORITHM": "sha256",
        }
    )

    config = resolve_with_precedence(defaults=DocwatchConfig(), env_overrides=overrides)

    assert config.discovery.strategies == ["index", "manifest"]
    assert config.fingerprint.algorithm == "sha256"


@pytest.mark.parametrize(
    "content",
    ["- not-a-mapping", "scan: [unterminated"],
)
def test_malformed_file_raises_config_error(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, content: str
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.config_path.parent.mkdir(parents=True)
    manager.config_path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError):
        manager.load()


@pytest.mark.parametrize(
    "overrides",
    [
        {"discovery": {"max_probes": "lots"}},
        {"discovery": {"strategies": ["crawl"]}},
        {"discovery": {"strategies": []}},
        {"discovery": {"strategies": ["index", "pattern", "index"]}},
        {"discovery": {"extension": "xml"}},
        {"discovery": {"extension": "."}},
        {"scan": {"interval_seconds": 0}},
        {"unknown_section": {}},
    ],
)
def test_resolve_with_precedence_invalid_value_raises(overrides: dict) -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(defaults=DocwatchConfig(), file_overrides=overrides)


def test_duplicate_strategies_error_names_the_duplicate() -> None:
    with pytest.raises(ConfigError, match="strategies listed more than once: index"):
        resolve_with_precedence(
            defaults=DocwatchConfig(),
            file_overrides={"discovery": {"strategies": ["index", "manifest", "index"]}},
        )
