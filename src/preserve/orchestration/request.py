"""
Preserve Request - what the caller asks a run to do.

A request names the loader, the root recipe, and optionally carries a
settings payload per plugin.  Settings values are opaque: each plugin
interprets its own entry and the core never looks inside.

Example:
    request = PreserveRequest(
        loader="fs",
        recipe="ipfs",
        settings={"fs": {"path": "./build"}, "ipfs": {"address": "..."}},
    )
    request.settings_for("ipfs")    # {"address": "..."}
    request.settings_for("unknown") # None
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from preserve.core.errors import InvalidRequestError


@dataclass(frozen=True)
class PreserveRequest:
    """
    Immutable preservation request.

    Attributes:
        loader: Name of the loader that acquires the target
        recipe: Name of the root recipe
        settings: Plugin name -> opaque settings (empty when absent)
    """

    loader: str
    recipe: str
    settings: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        for attr in ("loader", "recipe"):
            value = getattr(self, attr)
            if not isinstance(value, str) or not value.strip():
                raise InvalidRequestError(
                    f"Request {attr} must be a non-empty string (got {value!r})",
                    field=attr,
                )

        settings = self.settings
        if settings is None:
            settings = {}
        if not isinstance(settings, Mapping):
            raise InvalidRequestError(
                f"Request settings must be a mapping of plugin name to settings "
                f"(got {type(settings).__name__})",
                field="settings",
            )
        object.__setattr__(self, "settings", MappingProxyType(dict(settings)))

    def settings_for(self, name: str) -> Any:
        """Settings for plugin ``name``, or ``None`` if the request has none."""
        return self.settings.get(name)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PreserveRequest:
        """Build a request from a plain mapping (e.g. parsed YAML/JSON)."""
        if not isinstance(data, Mapping):
            raise InvalidRequestError(
                f"Request must be a mapping (got {type(data).__name__})"
            )
        unknown = set(data) - {"loader", "recipe", "settings"}
        if unknown:
            raise InvalidRequestError(
                f"Unknown request fields: {', '.join(sorted(unknown))}",
                field=sorted(unknown)[0],
            )
        for required in ("loader", "recipe"):
            if required not in data:
                raise InvalidRequestError(
                    f"Request is missing required field: {required}",
                    field=required,
                )
        return cls(
            loader=data["loader"],
            recipe=data["recipe"],
            settings=data.get("settings") or {},
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logging."""
        return {
            "loader": self.loader,
            "recipe": self.recipe,
            "settings": dict(self.settings),
        }


__all__ = ["PreserveRequest"]
