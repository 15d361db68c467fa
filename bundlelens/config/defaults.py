from __future__ import annotations

import os

from bundlelens.config.schema import AnalyzerConfig, ToolCommands


def default_config() -> AnalyzerConfig:
    return AnalyzerConfig(
        hash_workers=os.cpu_count() or 4,
        tools=ToolCommands(),
    )
