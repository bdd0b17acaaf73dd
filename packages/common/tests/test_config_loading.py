"""Tests for configuration loading and variable substitution."""

import json

import pytest

from gradeledger_common.config import VariableSubstitution, load_config
from gradeledger_common.exceptions import ConfigurationError


class TestVariableSubstitution:

    def test_lone_reference_is_type_converted(self, monkeypatch):
        monkeypatch.setenv("SYNC_TIMEOUT", "45")
        assert VariableSubstitution().substitute("${SYNC_TIMEOUT}") == 45

    def test_default_used_when_unset(self, monkeypatch):
        monkeypatch.delenv("SYNC_PAGE_LIMIT", raising=False)
        subst = VariableSubstitution()
        assert subst.substitute("${SYNC_PAGE_LIMIT:100}") == 100
        assert subst.substitute("${SYNC_PAGE_LIMIT:-50}") == 50

    def test_embedded_reference_stays_string(self, monkeypatch):
        monkeypatch.setenv("API_HOST", "grading.example.com")
        value = VariableSubstitution().substitute("https://${API_HOST}/api")
        assert value == "https://grading.example.com/api"

    def test_missing_required_variable_raises(self, monkeypatch):
        monkeypatch.delenv("MISSING_VAR", raising=False)
        with pytest.raises(ConfigurationError) as exc_info:
            VariableSubstitution().substitute({"url": "${MISSING_VAR}"})
        assert exc_info.value.context["variable"] == "MISSING_VAR"

    def test_nested_structures(self, monkeypatch):
        monkeypatch.setenv("DEVICE", "device_1")
        result = VariableSubstitution().substitute(
            {"identity": {"device_id": "${DEVICE}"}, "keys": ["${DEVICE}-a"]}
        )
        assert result == {"identity": {"device_id": "device_1"}, "keys": ["device_1-a"]}


class TestLoadConfig:

    def test_load_yaml(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GRADELEDGER_URL", "http://localhost:3000")
        path = tmp_path / "settings.yaml"
        path.write_text("base_url: ${GRADELEDGER_URL}\npage_limit: 20\n")

        assert load_config(path) == {"base_url": "http://localhost:3000", "page_limit": 20}

    def test_load_json(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"timeout": 10}))

        assert load_config(str(path)) == {"timeout": 10}

    def test_empty_yaml_is_empty_mapping(self, tmp_path):
        path = tmp_path / "empty.yml"
        path.write_text("")
        assert load_config(path) == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(tmp_path / "nope.yaml")

    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "settings.ini"
        path.write_text("[x]")
        with pytest.raises(ConfigurationError, match="Unsupported"):
            load_config(path)

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_config(path)
