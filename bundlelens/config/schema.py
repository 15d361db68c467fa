from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# (json_key, attr_name, minimum)
_INT_FIELDS: tuple[tuple[str, str, int], ...] = (
    ("hashWorkers", "hash_workers", 1),
    ("topFilesCount", "top_files_count", 1),
    ("duplicateMinBytes", "duplicate_min_bytes", 0),
    ("binarySkipBytes", "binary_skip_bytes", 1),
    ("catalogSkipBytes", "catalog_skip_bytes", 1),
)

_MIN_TOOL_TIMEOUT = 0.1


def _get_int(data: dict[str, Any], json_key: str, default: int, minimum: int) -> int:
    return max(minimum, int(data.get(json_key, default)))


def _argv(value: Any, default: tuple[str, ...]) -> tuple[str, ...]:
    if value is None:
        return default
    if isinstance(value, str):
        return (value,)
    return tuple(str(part) for part in value)


@dataclass(slots=True)
class ToolCommands:
    """Argv prefixes of the external tools; query arguments are appended."""

    lipo: tuple[str, ...] = ("lipo",)
    otool: tuple[str, ...] = ("otool",)
    dsymutil: tuple[str, ...] = ("dsymutil",)
    strings: tuple[str, ...] = ("strings",)
    cartool: tuple[str, ...] = ("cartool",)
    assetutil: tuple[str, ...] | None = ("assetutil",)

    def to_dict(self) -> dict[str, Any]:
        return {
            "lipo": list(self.lipo),
            "otool": list(self.otool),
            "dsymutil": list(self.dsymutil),
            "strings": list(self.strings),
            "cartool": list(self.cartool),
            "assetutil": list(self.assetutil) if self.assetutil is not None else None,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any], defaults: ToolCommands) -> ToolCommands:
        assetutil_raw = payload.get("assetutil", defaults.assetutil)
        return cls(
            lipo=_argv(payload.get("lipo"), defaults.lipo),
            otool=_argv(payload.get("otool"), defaults.otool),
            dsymutil=_argv(payload.get("dsymutil"), defaults.dsymutil),
            strings=_argv(payload.get("strings"), defaults.strings),
            cartool=_argv(payload.get("cartool"), defaults.cartool),
            assetutil=_argv(assetutil_raw, ()) if assetutil_raw is not None else None,
        )


@dataclass(slots=True)
class AnalyzerConfig:
    hash_workers: int = 4
    top_files_count: int = 20
    duplicate_min_bytes: int = 1024
    tool_timeout_seconds: float = 10.0
    binary_skip_bytes: int = 200_000_000
    catalog_skip_bytes: int = 200_000_000
    tools: ToolCommands = field(default_factory=ToolCommands)

    def to_dict(self) -> dict[str, Any]:
        return {
            "hashWorkers": self.hash_workers,
            "topFilesCount": self.top_files_count,
            "duplicateMinBytes": self.duplicate_min_bytes,
            "toolTimeoutSeconds": self.tool_timeout_seconds,
            "binarySkipBytes": self.binary_skip_bytes,
            "catalogSkipBytes": self.catalog_skip_bytes,
            "tools": self.tools.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], defaults: AnalyzerConfig) -> AnalyzerConfig:
        timeout_raw = data.get("toolTimeoutSeconds", defaults.tool_timeout_seconds)

        tools_raw = data.get("tools")
        if tools_raw is not None:
            tools = ToolCommands.from_dict(tools_raw, defaults.tools)
        else:
            tools = defaults.tools

        int_kwargs: dict[str, int] = {}
        for json_key, attr, minimum in _INT_FIELDS:
            int_kwargs[attr] = _get_int(data, json_key, getattr(defaults, attr), minimum)

        return cls(
            tool_timeout_seconds=max(_MIN_TOOL_TIMEOUT, float(timeout_raw)),
            tools=tools,
            **int_kwargs,
        )
