# File: fusionplanner/tests/test_config_loader.py
# Version: v0.1.0
"""
Parameter file loader/saver and environment settings.
"""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from fusionplanner.app.config import config_fusion
from fusionplanner.app.core.config import Settings
from fusionplanner.app.core.fusion.parameters import Algorithm, OptimizationParams


@pytest.fixture
def current_file(tmp_path, monkeypatch):
    path = tmp_path / "fusion_params.json"
    monkeypatch.setattr(config_fusion, "CURRENT_FILE", path)
    return path


def test_default_file_validates():
    params = config_fusion.load_default_params()
    raw = json.loads(config_fusion.DEFAULT_FILE.read_text(encoding="utf-8"))
    assert isinstance(params, OptimizationParams)
    assert params.effectiveFragments == raw["effectiveFragments"]
    assert params.algorithm == Algorithm(raw["algorithm"])


def test_current_falls_back_to_defaults(current_file):
    assert config_fusion.load_current_params() == config_fusion.load_default_params()
    assert config_fusion.load_current_params(fallback_to_default=False) == OptimizationParams()


def test_ensure_current_exists_creates_once(current_file):
    created, params = config_fusion.ensure_current_exists()
    assert created
    assert current_file.exists()
    created_again, params_again = config_fusion.ensure_current_exists()
    assert not created_again
    assert params_again == params


def test_save_then_load(current_file):
    params = OptimizationParams(effectiveFragments=7, randomSeed=99)
    config_fusion.save_current_params(params)
    assert json.loads(current_file.read_text(encoding="utf-8"))["effectiveFragments"] == 7
    assert config_fusion.load_current_params() == params
    assert not current_file.with_suffix(".json.tmp").exists()


def test_invalid_file_raises(current_file):
    current_file.write_text(json.dumps({"effectiveFragments": 0}), encoding="utf-8")
    with pytest.raises(ValidationError):
        config_fusion.load_current_params()


def test_settings_read_prefixed_environment(monkeypatch):
    monkeypatch.setenv("FUSION_BB_MAX_NODES", "1234")
    monkeypatch.setenv("FUSION_CACHE_ENABLED", "false")
    s = Settings()
    assert s.BB_MAX_NODES == 1234
    assert s.CACHE_ENABLED is False
