import json

import pytest

from address_match.base_data import load_tables
from address_match.config import Config, apply_env_overrides, load_config, validate_config
from address_match.errors import ConfigError


def write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestLoadConfig:
    def test_defaults_fill_missing_keys(self, tmp_path):
        cfg = load_config(write_json(tmp_path / "c.json", {"workers": 2, "weights": {"unit": 0.3}}))
        assert cfg.workers == 2
        assert cfg.chunk_size == 500
        assert cfg.weights == {"street_name": 0.7, "suffix": 0.2, "unit": 0.3}
        assert cfg.thresholds == {"fuzzy": 0.6}
        assert cfg.tier_scores == {"exact": 1.0, "normalized": 0.85}
        assert cfg.address_columns == ["address"]

    @pytest.mark.parametrize("raw", [
        {"workers": 0},
        {"chunk_size": 0},
        {"address_columns": []},
        {"weights": {"street_name": -1}},
        {"weights": {"street_name": 0, "suffix": 0, "unit": 0}},
        {"thresholds": {"fuzzy": 1.5}},
        {"tier_scores": {"normalized": -0.1}},
    ])
    def test_invalid_values(self, tmp_path, raw):
        with pytest.raises(ConfigError):
            load_config(write_json(tmp_path / "c.json", raw))

    def test_config_error_is_value_error(self):
        with pytest.raises(ValueError):
            validate_config(Config(workers=-1))


class TestEnvOverrides:
    def test_overrides(self):
        cfg = apply_env_overrides(Config(), {
            "ADDRESS_MATCH_WORKERS": "8",
            "ADDRESS_MATCH_CHUNK_SIZE": "10",
            "ADDRESS_MATCH_FUZZY_THRESHOLD": "0.75",
        })
        assert (cfg.workers, cfg.chunk_size, cfg.thresholds["fuzzy"]) == (8, 10, 0.75)

    def test_no_overrides_returns_same_config(self):
        cfg = Config()
        assert apply_env_overrides(cfg, {}) is cfg

    def test_invalid_override(self):
        with pytest.raises(ConfigError):
            apply_env_overrides(Config(), {"ADDRESS_MATCH_FUZZY_THRESHOLD": "2"})


class TestTables:
    def test_extra_aliases_are_merged(self, tmp_path):
        write_json(tmp_path / "alias_suffix.json", {"Center": ["Ctr"], "Avenue": ["Avnue"]})
        tables = load_tables(tmp_path)
        assert tables.canonical_suffix("ctr") == "Center"
        assert tables.canonical_suffix("Avnue") == "Avenue"
        assert tables.canonical_suffix("Ave") == "Avenue"

    def test_builtin_tables(self):
        tables = load_tables()
        assert tables.canonical_directional("n.") == "North"
        assert tables.canonical_unit("APT") == "Apartment"
        assert tables.is_state("or")
        assert not tables.is_suffix("Main")
