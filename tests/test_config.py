"""
Tests for src/drift_config.py - defaults, dict overlay, YAML loading.
"""

import sys, os
import pytest
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from drift_config import (
    InspectConfig,
    DEFAULT_WEIGHTS,
    DEFAULT_RESET_PHRASES,
    DEFAULT_CONFIG_PATH,
    config_from_dict,
    load_config,
)


class TestDefaults:
    def test_values(self):
        config = InspectConfig()
        assert config.weights == {
            "preference_forgotten": 15,
            "repetition_cluster": 10,
            "session_reset": 20,
            "contradiction": 10,
        }
        assert config.similarity_threshold == 0.65
        assert config.signature_length == 8
        assert config.snippet_limit == 5
        assert config.preference_min_gap == 5
        assert config.memory_top_n == 10
        assert config.max_messages is None

    def test_instances_do_not_share_mutables(self):
        a, b = InspectConfig(), InspectConfig()
        a.weights["session_reset"] = 99
        a.reset_phrases.append("poof")
        assert b.weights == DEFAULT_WEIGHTS
        assert b.reset_phrases == DEFAULT_RESET_PHRASES


class TestConfigFromDict:
    def test_weights_merge_per_key(self):
        config = config_from_dict({"weights": {"session_reset": 50, "tone_shift": 5}})
        assert config.weights["session_reset"] == 50
        assert config.weights["tone_shift"] == 5
        assert config.weights["repetition_cluster"] == 10

    def test_unknown_keys_ignored(self):
        config = config_from_dict({"colour": "blue", "snippet_limit": 3})
        assert config.snippet_limit == 3
        assert not hasattr(config, "colour")

    @pytest.mark.parametrize("data", [
        {"similarity_threshold": "high"},
        {"signature_length": 8.5},
        {"snippet_limit": True},
        {"weights": ["a"]},
        {"weights": {"session_reset": "lots"}},
        {"reset_phrases": "start over"},
    ])
    def test_bad_types_raise(self, data):
        with pytest.raises(ValueError):
            config_from_dict(data)

    def test_base_not_mutated(self):
        base = InspectConfig()
        config_from_dict({"weights": {"session_reset": 1}}, base)
        assert base.weights["session_reset"] == 20

    def test_empty(self):
        assert config_from_dict({}) == InspectConfig()
        assert config_from_dict(None) == InspectConfig()


class TestLoadConfig:
    def test_bundled_file_matches_defaults(self):
        assert DEFAULT_CONFIG_PATH.exists()
        assert load_config() == InspectConfig()

    def test_yaml_override(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("similarity_threshold: 0.8\nweights:\n  contradiction: 30\n",
                        encoding="utf-8")
        config = load_config(str(path))
        assert config.similarity_threshold == 0.8
        assert config.weights["contradiction"] == 30
        assert config.weights["session_reset"] == 20

    def test_empty_file_is_defaults(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(str(path)) == InspectConfig()

    def test_missing_explicit_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "nope.yaml"))

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_config(str(path))
