from __future__ import annotations
import sys
from pathlib import Path

import pytest

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from auditai.providers.model_policy import ModelCapabilities


def write_yaml(p: Path, text: str) -> Path:
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(text.strip() + "\n", encoding="utf-8")
    return p


def test_default_table_only_knows_the_25_family():
    caps = ModelCapabilities.default()
    assert caps.supports_thinking("gemini-2.5-pro")
    assert caps.supports_thinking("models/gemini-2.5-flash")
    assert not caps.supports_thinking("gemini-3-pro-preview")
    assert not caps.supports_thinking("gemini-2.0-flash")
    assert not caps.supports_thinking("")


def test_first_match_wins(tmp_path: Path):
    # Second rule would enable, but the first matching rule disables
    policy_file = write_yaml(
        tmp_path / "providers" / "google.yaml",
        """
        rules:
          - when_model_matches: "lite"
            supports_thinking: false
          - when_model_matches: "gemini-2\\\\.5"
            supports_thinking: true
        """,
    )
    caps = ModelCapabilities.load(policy_file)
    assert not caps.supports_thinking("gemini-2.5-flash-lite")
    assert caps.supports_thinking("gemini-2.5-pro")


def test_unmatched_model_defaults_to_no_thinking(tmp_path: Path):
    policy_file = write_yaml(
        tmp_path / "providers" / "google.yaml",
        """
        rules:
          - when_model_matches: "^other-family"
            supports_thinking: true
        """,
    )
    assert not ModelCapabilities.load(policy_file).supports_thinking("gemini-2.5-pro")


def test_empty_file_is_empty_table(tmp_path: Path):
    caps = ModelCapabilities.load(write_yaml(tmp_path / "google.yaml", "# nothing"))
    assert caps.rules == []


def test_non_boolean_flag_rejected():
    with pytest.raises(ValueError):
        ModelCapabilities.from_rules([{"when_model_matches": ".*", "supports_thinking": "yes"}])


def test_shipped_table_matches_builtin():
    shipped = Path(__file__).resolve().parents[2] / "config" / "providers" / "google.yaml"
    caps = ModelCapabilities.load(shipped)
    for model in ("gemini-2.5-pro", "gemini-3-pro-preview", "gemini-1.5-flash"):
        assert caps.supports_thinking(model) == ModelCapabilities.default().supports_thinking(model)
