from __future__ import annotations
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import yaml

# Built-in table, used when no capabilities file is configured
DEFAULT_RULES = [
    {"when_model_matches": r"gemini-2\.5", "supports_thinking": True},
]

@dataclass
class CapabilityRule:
    regex: re.Pattern
    supports_thinking: bool
    note: Optional[str] = None

@dataclass
class ModelCapabilities:
    """
    Model-name pattern -> capability table. First matching rule wins.
    Models matching no rule are assumed not to accept an extended reasoning budget.
    """
    rules: List[CapabilityRule]

    @classmethod
    def from_rules(cls, raw_rules) -> "ModelCapabilities":
        rules: List[CapabilityRule] = []
        for r in raw_rules or []:
            rx = re.compile(str(r["when_model_matches"]))
            supports = r.get("supports_thinking")
            if not isinstance(supports, bool):
                raise ValueError(f"'supports_thinking' must be a boolean in rule {r!r}")
            rules.append(CapabilityRule(regex=rx, supports_thinking=supports, note=r.get("note")))
        return cls(rules)

    @classmethod
    def load(cls, path: Path) -> "ModelCapabilities":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return cls.from_rules(data.get("rules", []))

    @classmethod
    def default(cls) -> "ModelCapabilities":
        return cls.from_rules(DEFAULT_RULES)

    def supports_thinking(self, model: str) -> bool:
        rule = next((r for r in self.rules if r.regex.search(model or "")), None)
        return rule.supports_thinking if rule else False
