"""Unit tests for agent_trust.config — configuration models and JSON loading."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from agent_trust.config import AgentTrustConfig, PermissionConfig, SecurityConfig, load_config


class TestSecurityConfigDefaults:
    def test_thresholds(self) -> None:
        config = SecurityConfig()
        assert config.history_limit == 100
        assert config.multi_account_threshold == pytest.approx(0.7)
        assert config.sync_threshold_seconds == pytest.approx(5.0)
        assert config.phishing_min_messages == 3
        assert config.impersonation_similarity == pytest.approx(0.8)
        assert config.incident_window_hours == pytest.approx(24.0)

    def test_zero_history_limit_rejected(self) -> None:
        with pytest.raises(ValueError):
            SecurityConfig(history_limit=0)


class TestPermissionConfigDefaults:
    def test_thresholds(self) -> None:
        config = PermissionConfig()
        assert config.decision_ttl_ms == 300_000
        assert config.max_cached_decisions == 10_000
        assert config.trust_access_threshold == pytest.approx(80.0)
        assert config.elevation_trust_threshold == pytest.approx(70.0)
        assert config.default_elevation_seconds == 300

    def test_privileged_roles(self) -> None:
        assert PermissionConfig().privileged_roles == frozenset({"OWNER", "ADMIN"})


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        config = load_config(tmp_path / "absent.json")
        assert config == AgentTrustConfig()

    def test_partial_file_overrides(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text(
            json.dumps(
                {
                    "security": {"history_limit": 25},
                    "permissions": {"privileged_roles": ["OWNER"]},
                    "external_calls": {"max_retries": 0},
                }
            ),
            encoding="utf-8",
        )
        config = load_config(path)
        assert config.security.history_limit == 25
        assert config.permissions.privileged_roles == frozenset({"OWNER"})
        assert config.external_calls.max_retries == 0
        assert config.trust.cache_ttl_seconds == pytest.approx(300.0)

    def test_invalid_json_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text("{broken", encoding="utf-8")
        with pytest.raises(ValueError, match="not valid JSON"):
            load_config(path)

    def test_invalid_values_raise(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"trust": {"recency_bias": 3}}), encoding="utf-8")
        with pytest.raises(ValueError, match="is invalid"):
            load_config(path)

    def test_weights_not_summing_to_one_raise(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text(
            json.dumps({"trust": {"dimension_weights": {"reliability": 0.5}}}),
            encoding="utf-8",
        )
        with pytest.raises(ValueError, match="sum to 1.0"):
            load_config(path)
