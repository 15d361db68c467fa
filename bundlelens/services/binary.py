"""Executable profiling through bounded external-tool queries."""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor

from bundlelens.config.schema import AnalyzerConfig
from bundlelens.models.analysis import BinaryProfile
from bundlelens.services.tools import query_tool

log = logging.getLogger(__name__)

DEFAULT_ARCHITECTURES: tuple[str, ...] = ("arm64",)
UNKNOWN_ARCHITECTURES: tuple[str, ...] = ("unknown",)
LEGACY_ARCHITECTURES: frozenset[str] = frozenset({"i386", "x86_64"})
DEBUG_SYMBOL_RATIO = 0.4

# Checked in order; the first flag present in the binary's strings wins.
_OPTIMIZATION_FLAGS: tuple[str, ...] = ("-O3", "-O2", "-O1", "-Os", "-Oz")

_TEXT_SECTION_MIN_CHARS = 1000


def parse_architectures(output: str) -> tuple[str, ...]:
    """Parse ``lipo -info`` output.

    Fat:      "Architectures in the fat file: <path> are: arm64 armv7"
    Non-fat:  "Non-fat file: <path> is architecture: arm64"
    """
    if "are:" in output:
        archs = tuple(output.split("are:", 1)[1].split())
        if archs:
            return archs
    elif "is architecture:" in output:
        arch = output.split("is architecture:", 1)[1].strip()
        if arch:
            return (arch,)
    return UNKNOWN_ARCHITECTURES


def parse_dynamic(output: str) -> bool:
    return "@rpath" in output or "dylib" in output


def parse_debug_symbols(output: str) -> bool:
    return bool(output) and "error" not in output


def parse_optimized(output: str) -> bool:
    return len(output) > _TEXT_SECTION_MIN_CHARS


def parse_optimization_level(output: str) -> str:
    for flag in _OPTIMIZATION_FLAGS:
        if flag in output:
            return flag[1:]
    return "unknown"


def has_unused_architectures(architectures: tuple[str, ...]) -> bool:
    return len(architectures) > 2 or any(arch in LEGACY_ARCHITECTURES for arch in architectures)


def estimate_debug_symbols_size(size: int) -> int:
    return int(size * DEBUG_SYMBOL_RATIO)


def skipped_profile(path: str, size: int) -> BinaryProfile:
    return BinaryProfile(
        path=path,
        architectures=DEFAULT_ARCHITECTURES,
        is_dynamic=True,
        has_debug_symbols=False,
        size=size,
        skipped=True,
    )


def profile_executable(path: str, config: AnalyzerConfig) -> BinaryProfile:
    """Profile the executable at *path*.

    Binaries above ``config.binary_skip_bytes`` are not inspected.  Each of
    the five queries degrades to its own fallback, so this never raises for
    tool problems.
    """
    try:
        size = os.path.getsize(path)
    except OSError:
        log.debug("Cannot stat executable: %s", path)
        size = 0

    if size > config.binary_skip_bytes:
        log.info("Skipping large binary (%d bytes): %s", size, path)
        return skipped_profile(path, size)

    tools = config.tools
    timeout = config.tool_timeout_seconds
    with ThreadPoolExecutor(max_workers=5) as executor:
        archs_f = executor.submit(
            query_tool, [*tools.lipo, "-info", path], timeout, parse_architectures, DEFAULT_ARCHITECTURES
        )
        dynamic_f = executor.submit(query_tool, [*tools.otool, "-L", path], timeout, parse_dynamic, True)
        debug_f = executor.submit(
            query_tool, [*tools.dsymutil, "--dump-debug-map", path], timeout, parse_debug_symbols, False
        )
        optimized_f = executor.submit(query_tool, [*tools.otool, "-t", path], timeout, parse_optimized, False)
        level_f = executor.submit(
            query_tool, [*tools.strings, path], timeout, parse_optimization_level, "unknown"
        )
        architectures = archs_f.result()
        is_dynamic = dynamic_f.result()
        has_debug = debug_f.result()
        is_optimized = optimized_f.result()
        level = level_f.result()

    profile = BinaryProfile(
        path=path,
        architectures=architectures,
        is_dynamic=is_dynamic,
        has_debug_symbols=has_debug,
        size=size,
        is_optimized=is_optimized,
        has_unused_architectures=has_unused_architectures(architectures),
        estimated_debug_symbols_size=estimate_debug_symbols_size(size) if has_debug else 0,
        optimization_level=level,
    )
    log.info(
        "Binary %s: %s, optimized=%s, debug symbols=%s",
        os.path.basename(path),
        ", ".join(architectures),
        is_optimized,
        has_debug,
    )
    return profile
