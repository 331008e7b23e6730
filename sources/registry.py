from __future__ import annotations

from typing import Any, Dict


_REGISTRY: Dict[str, Any] = {}


def register(kind: str, factory) -> None:
    _REGISTRY[kind] = factory


def get_extractor(kind: str):
    if kind not in _REGISTRY:
        raise KeyError(f"Unknown file kind: {kind}")
    return _REGISTRY[kind]()


def available_extractors() -> Dict[str, Any]:
    return dict(_REGISTRY)
