from __future__ import annotations

from bundlelens.config.defaults import default_config
from bundlelens.config.schema import AnalyzerConfig, ToolCommands


class TestToDict:
    def test_keys_present(self) -> None:
        d = AnalyzerConfig().to_dict()
        expected_keys = {
            "hashWorkers",
            "topFilesCount",
            "duplicateMinBytes",
            "toolTimeoutSeconds",
            "binarySkipBytes",
            "catalogSkipBytes",
            "tools",
        }
        assert set(d.keys()) == expected_keys

    def test_tools_are_lists(self) -> None:
        d = ToolCommands().to_dict()
        assert d["lipo"] == ["lipo"]
        assert d["assetutil"] == ["assetutil"]

    def test_disabled_assetutil(self) -> None:
        assert ToolCommands(assetutil=None).to_dict()["assetutil"] is None


class TestFromDict:
    def test_empty_payload_keeps_defaults(self) -> None:
        defaults = default_config()
        cfg = AnalyzerConfig.from_dict({}, defaults)
        assert cfg == defaults

    def test_minimums_clamped(self) -> None:
        cfg = AnalyzerConfig.from_dict(
            {"hashWorkers": 0, "topFilesCount": -3, "duplicateMinBytes": -1, "toolTimeoutSeconds": 0},
            AnalyzerConfig(),
        )
        assert cfg.hash_workers == 1
        assert cfg.top_files_count == 1
        assert cfg.duplicate_min_bytes == 0
        assert cfg.tool_timeout_seconds == 0.1

    def test_string_tool_becomes_argv(self) -> None:
        tools = ToolCommands.from_dict({"strings": "gstrings"}, ToolCommands())
        assert tools.strings == ("gstrings",)

    def test_round_trip(self) -> None:
        cfg = AnalyzerConfig(hash_workers=3, catalog_skip_bytes=1000, tools=ToolCommands(cartool=("a", "b")))
        assert AnalyzerConfig.from_dict(cfg.to_dict(), AnalyzerConfig()) == cfg


def test_default_config_workers_positive() -> None:
    assert default_config().hash_workers >= 1
