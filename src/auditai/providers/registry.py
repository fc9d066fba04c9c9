from __future__ import annotations
from typing import Dict, Type, Callable
from importlib import import_module

class ProviderRegistry:
    _classes: Dict[str, Type] = {}

    @classmethod
    def register(cls, name: str) -> Callable[[Type], Type]:
        name = name.lower()
        def deco(klass: Type) -> Type:
            cls._classes[name] = klass
            return klass
        return deco

    @classmethod
    def get(cls, name) -> Type:
        # AIProvider members are str subclasses; use their value, not their repr
        key = str(getattr(name, "value", name)).lower()
        if key not in cls._classes:
            cls.ensure_imports()
        if key not in cls._classes:
            raise KeyError(f"Provider '{key}' not registered")
        return cls._classes[key]

    @classmethod
    def names(cls) -> list[str]:
        return sorted(cls._classes)

    @classmethod
    def ensure_imports(cls) -> None:
        """
        Import built-in adapters so their @register decorators run.
        """
        import_module("auditai.providers.gemini_adapter")
        import_module("auditai.providers.openai_compat")
