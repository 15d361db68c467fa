from __future__ import annotations

import tempfile
from pathlib import Path

import pytest
from result import Err, Ok

import bundlelens.services.pipeline as pipeline
from bundlelens.models.analysis import CapabilityAnalysis, LocalizationAnalysis
from bundlelens.models.bundle import Bundle
from bundlelens.models.enums import CatalogErrorCode, CatalogStatus, FailureCode, IssueKind, RecommendationKind
from bundlelens.scan.loader import load_bundle
from bundlelens.services.pipeline import analyze_bundle
from tests.factories import make_bundle, make_entry, offline_config, write_bundle


def _disk_bundle(tmp_path: Path, files: dict[str, bytes] | None = None) -> Bundle:
    contents = {"App": b"\xcf\xfa\xed\xfe" + b"\0" * 2048}
    contents.update(files or {})
    root = write_bundle(tmp_path / "Example.app", files=contents)
    return load_bundle(str(root)).unwrap()


class TestValidation:
    def test_empty_bundle(self) -> None:
        result = analyze_bundle(make_bundle([]), offline_config())
        assert isinstance(result, Err)
        assert result.unwrap_err().code is FailureCode.EMPTY_BUNDLE

    def test_missing_executable(self) -> None:
        result = analyze_bundle(make_bundle([make_entry("icon.png", 10)]), offline_config())
        assert isinstance(result, Err)
        failure = result.unwrap_err()
        assert failure.code is FailureCode.EXECUTABLE_NOT_FOUND
        assert failure.path == "/bundle/App"


class TestProgress:
    def test_stage_order(self, tmp_path: Path) -> None:
        events: list[tuple[str, int]] = []
        result = analyze_bundle(_disk_bundle(tmp_path), offline_config(), lambda msg, pct: events.append((msg, pct)))
        assert isinstance(result, Ok)
        assert [pct for _, pct in events] == [10, 15, 25, 40, 45, 55, 85, 90, 95, 100]
        assert events[-1] == ("Analysis complete", 100)

    def test_catalog_progress(self, tmp_path: Path) -> None:
        bundle = _disk_bundle(tmp_path, {"A.car": b"\0" * 10, "B.car": b"\0" * 10})
        events: list[tuple[str, int]] = []
        analyze_bundle(bundle, offline_config(), lambda msg, pct: events.append((msg, pct)))
        messages = [msg for msg, _ in events]
        assert "Analyzing asset catalogs (1/2)" in messages
        assert "Analyzing asset catalogs (2/2)" in messages
        percents = [pct for _, pct in events]
        assert percents == sorted(percents)

    def test_failing_sink_is_ignored(self, tmp_path: Path) -> None:
        def sink(message: str, percent: int) -> None:
            raise RuntimeError("display went away")

        result = analyze_bundle(_disk_bundle(tmp_path), offline_config(), sink)
        assert isinstance(result, Ok)
        assert result.unwrap().issues == ()


class TestCancellation:
    def test_cancel_before_start(self, tmp_path: Path) -> None:
        events: list[int] = []
        result = analyze_bundle(
            _disk_bundle(tmp_path), offline_config(), lambda _msg, pct: events.append(pct), lambda: True
        )
        assert isinstance(result, Err)
        assert result.unwrap_err().code is FailureCode.CANCELLED
        assert events == []

    def test_cancel_between_stages(self, tmp_path: Path) -> None:
        calls = {"n": 0}

        def cancel() -> bool:
            calls["n"] += 1
            return calls["n"] > 3

        events: list[int] = []
        result = analyze_bundle(_disk_bundle(tmp_path), offline_config(), lambda _msg, pct: events.append(pct), cancel)
        assert isinstance(result, Err)
        assert result.unwrap_err().code is FailureCode.CANCELLED
        assert events == [10, 15, 25]


class TestIsolation:
    def test_binary_failure_uses_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        def explode(path: str, config: object) -> None:
            raise RuntimeError("lipo crashed")

        monkeypatch.setattr(pipeline, "profile_executable", explode)
        snapshot = analyze_bundle(_disk_bundle(tmp_path), offline_config()).unwrap()

        assert snapshot.binary.path == "App"
        assert snapshot.binary.architectures == ("arm64",)
        assert snapshot.binary.size == 2052
        assert snapshot.binary.skipped
        assert RecommendationKind.COMPILER_OPTIMIZATION not in {rec.kind for rec in snapshot.recommendations}
        (issue,) = snapshot.issues
        assert issue.kind is IssueKind.BINARY_ANALYSIS
        assert issue.reason == "lipo crashed"
        assert not issue.skipped

    def test_localization_failure_uses_empty_analysis(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        def explode(files: object) -> None:
            raise ValueError("bad pack")

        monkeypatch.setattr(pipeline, "analyze_localizations", explode)
        snapshot = analyze_bundle(_disk_bundle(tmp_path), offline_config()).unwrap()

        assert snapshot.localization == LocalizationAnalysis()
        assert [issue.kind for issue in snapshot.issues] == [IssueKind.LOCALIZATION_ANALYSIS]

    def test_capability_failure_uses_empty_analysis(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        def explode(manifest: object) -> None:
            raise KeyError("UIBackgroundModes")

        monkeypatch.setattr(pipeline, "analyze_capabilities", explode)
        snapshot = analyze_bundle(_disk_bundle(tmp_path), offline_config()).unwrap()

        assert snapshot.capabilities == CapabilityAnalysis()
        (issue,) = snapshot.issues
        assert issue.kind is IssueKind.CAPABILITY_ANALYSIS
        assert issue.path == "Info.plist"

    def test_skipped_binary_is_recorded(self, tmp_path: Path) -> None:
        snapshot = analyze_bundle(_disk_bundle(tmp_path), offline_config(binary_skip_bytes=100)).unwrap()
        assert snapshot.binary.skipped
        assert snapshot.binary.path == "App"
        (issue,) = snapshot.issues
        assert issue.kind is IssueKind.FILE_TOO_BIG
        assert issue.skipped

    def test_unreadable_catalog_is_recorded(self, tmp_path: Path) -> None:
        bundle = _disk_bundle(tmp_path, {"Assets.car": b"\0" * 64})
        snapshot = analyze_bundle(bundle, offline_config()).unwrap()

        (catalog,) = snapshot.asset_catalogs
        assert catalog.path == "Assets.car"
        assert catalog.status is CatalogStatus.FAILED
        assert catalog.error_code is CatalogErrorCode.NO_RENDITIONS
        (issue,) = snapshot.issues
        assert issue.kind is IssueKind.ASSET_ANALYSIS
        assert issue.path == "Assets.car"

    def test_vanished_catalog_is_failed(self, tmp_path: Path) -> None:
        bundle = _disk_bundle(tmp_path, {"Assets.car": b"\0" * 1000})
        (tmp_path / "Example.app" / "Assets.car").unlink()
        snapshot = analyze_bundle(bundle, offline_config()).unwrap()

        (catalog,) = snapshot.asset_catalogs
        assert catalog.path == "Assets.car"
        assert catalog.total_size == 1000
        assert catalog.status is CatalogStatus.FAILED
        assert catalog.error_code is not None
        assert catalog.optimization_potential == 0
        assert [issue.kind for issue in snapshot.issues] == [IssueKind.ASSET_ANALYSIS]

    def test_scratch_directories_removed(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        scratch = tmp_path / "scratch"
        scratch.mkdir()
        monkeypatch.setattr(tempfile, "tempdir", str(scratch))
        bundle = _disk_bundle(tmp_path, {"Assets.car": b"\0" * 64})
        analyze_bundle(bundle, offline_config())
        assert list(scratch.iterdir()) == []
