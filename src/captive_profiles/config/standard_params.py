"""Standard query-parameter vocabulary used for query-string mapping."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

DEFAULT_STANDARD_PARAMS = (
    "client_ip",
    "client_mac",
    "ap_mac",
    "ssid",
    "nas_id",
    "original_url",
)


class StandardParameterSet:
    """Editable list of canonical parameter names.

    Backed by an optional JSON file: ``load`` reads it, ``save`` writes it.
    Without a file the set lives only as long as the object.
    """

    def __init__(self, path: Optional[str] = None, params: Optional[Iterable[str]] = None) -> None:
        self._path = Path(path) if path else None
        self._params: list[str] = list(params) if params is not None else list(DEFAULT_STANDARD_PARAMS)

    @classmethod
    def load(cls, path: str) -> StandardParameterSet:
        """Read the vocabulary from ``path``; a missing file yields the defaults."""
        p = Path(path)
        if not p.exists():
            return cls(path)
        data = json.loads(p.read_text(encoding="utf-8"))
        if not isinstance(data, list) or not all(isinstance(x, str) for x in data):
            raise ValueError(f"Standard parameter file must hold a list of strings: {path}")
        return cls(path, data)

    def save(self) -> None:
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(self._params, indent=2), encoding="utf-8")
        logger.debug("Saved %d standard parameters to %s", len(self._params), self._path)

    @property
    def params(self) -> list[str]:
        return list(self._params)

    def __contains__(self, name: object) -> bool:
        return name in self._params

    def add(self, name: str) -> bool:
        """Append ``name`` unless blank or already present. Returns True if added."""
        name = name.strip()
        if not name or name in self._params:
            return False
        self._params.append(name)
        return True

    def remove(self, name: str) -> bool:
        if name not in self._params:
            return False
        self._params = [p for p in self._params if p != name]
        return True

    def replace(self, names: Iterable[str]) -> None:
        self._params = list(names)

    def reset(self) -> None:
        self._params = list(DEFAULT_STANDARD_PARAMS)
