from __future__ import annotations

import plistlib
import sys
from pathlib import Path
from typing import Any

from bundlelens.config.schema import AnalyzerConfig, ToolCommands
from bundlelens.models.bundle import Bundle, BundleManifest, FileEntry
from bundlelens.models.enums import FileCategory
from bundlelens.services.classifier import classify_path, is_compressed_path


def make_entry(path: str, size: int = 0, category: FileCategory | None = None, executable: str = "App") -> FileEntry:
    return FileEntry(
        path=path,
        size=size,
        category=category if category is not None else classify_path(path, executable),
        is_compressed=is_compressed_path(path),
    )


def make_manifest(**overrides: Any) -> BundleManifest:
    fields: dict[str, Any] = {
        "identifier": "com.example.app",
        "display_name": "Example",
        "executable_name": "App",
    }
    fields.update(overrides)
    return BundleManifest(**fields)


def make_bundle(files: list[FileEntry], root: str = "/bundle", manifest: BundleManifest | None = None) -> Bundle:
    return Bundle(
        root=root,
        manifest=manifest or make_manifest(),
        files=tuple(files),
        total_size=sum(entry.size for entry in files),
    )


def python_tool(code: str) -> tuple[str, ...]:
    """Argv prefix that runs *code* with this interpreter; tool args land in sys.argv[1:]."""
    return (sys.executable, "-c", code)


def echo_tool(output: str) -> tuple[str, ...]:
    return python_tool(f"import sys; sys.stdout.write({output!r})")


MISSING_TOOL: tuple[str, ...] = ("/nonexistent/bundlelens-test-tool",)


def offline_config(**overrides: Any) -> AnalyzerConfig:
    """Config whose external tools all fail to start."""
    tools = ToolCommands(
        lipo=MISSING_TOOL,
        otool=MISSING_TOOL,
        dsymutil=MISSING_TOOL,
        strings=MISSING_TOOL,
        cartool=MISSING_TOOL,
        assetutil=None,
    )
    fields: dict[str, Any] = {"hash_workers": 2, "tool_timeout_seconds": 2.0, "tools": tools}
    fields.update(overrides)
    return AnalyzerConfig(**fields)


def write_file(root: Path, rel: str, content: bytes = b"") -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


def write_bundle(root: Path, plist: dict[str, Any] | None = None, files: dict[str, bytes] | None = None) -> Path:
    """Create an extracted bundle directory with an Info.plist and the given files."""
    root.mkdir(parents=True, exist_ok=True)
    manifest = plist if plist is not None else {"CFBundleIdentifier": "com.example.app", "CFBundleExecutable": "App"}
    with open(root / "Info.plist", "wb") as f:
        plistlib.dump(manifest, f)
    for rel, content in (files or {"App": b"\xcf\xfa\xed\xfe" + b"\0" * 2048}).items():
        write_file(root, rel, content)
    return root


def sparse_file(path: Path, size: int) -> Path:
    with open(path, "wb") as f:
        f.truncate(size)
    return path
