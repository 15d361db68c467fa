# Bundle -> AnalysisSnapshot orchestration.
#
# Stages run sequentially in a fixed order.  Before each one the pipeline
# checks cancel_check and reports progress (a planned percentage per stage).
#
# Failure model:
#   - Fatal problems (nothing to analyze, the manifest executable is not in
#     the bundle, cancellation) are returned as Err(AnalysisFailure).
#   - The binary, asset catalog, capability and localization stages are
#     isolated: an exception inside one of them is logged, replaced by that
#     stage's fallback value and recorded as an AnalysisIssue.  Skipped or
#     failed (but non-raising) binaries and catalogs are recorded as issues
#     too.
#   - Progress sink exceptions are logged and ignored.
#
# Every stage result is collected into locals and the frozen snapshot is
# assembled once, at the end, by build_snapshot.

from __future__ import annotations

import dataclasses
import logging
import time
from collections.abc import Iterable

from result import Err, Ok

from bundlelens.config.schema import AnalyzerConfig
from bundlelens.models.analysis import (
    AnalysisIssue,
    AnalysisResult,
    AnalysisSnapshot,
    BinaryProfile,
    BundleMetrics,
    CapabilityAnalysis,
    CatalogAnalysis,
    CategoryMetrics,
    DuplicateGroup,
    FileInfo,
    FrameworkInfo,
    LocalizationAnalysis,
    Recommendation,
)
from bundlelens.models.bundle import AnalysisFailure, Bundle, BundleManifest, CancelCheck, ProgressCallback
from bundlelens.models.enums import CatalogErrorCode, CatalogStatus, FailureCode, IssueKind
from bundlelens.services.assets import AssetCatalogAnalyzer, RenditionHashCache
from bundlelens.services.binary import DEFAULT_ARCHITECTURES, profile_executable
from bundlelens.services.capabilities import analyze_capabilities
from bundlelens.services.classifier import extension_of
from bundlelens.services.duplicates import find_duplicates
from bundlelens.services.localization import analyze_localizations
from bundlelens.services.optimizer import RecommendationInputs, generate_recommendations
from bundlelens.services.sizes import bundle_metrics, category_metrics, collect_frameworks, top_files

log = logging.getLogger(__name__)

# (stage message, planned percent)
STAGE_SIZES = ("Calculating file sizes", 10)
STAGE_TOP_FILES = ("Finding largest files", 15)
STAGE_DUPLICATES = ("Detecting duplicate files", 25)
STAGE_FRAMEWORKS = ("Analyzing frameworks", 40)
STAGE_BINARY = ("Analyzing executable", 45)
STAGE_ASSETS = ("Analyzing asset catalogs", 55)
STAGE_CAPABILITIES = ("Analyzing capabilities", 85)
STAGE_LOCALIZATION = ("Analyzing localizations", 90)
STAGE_RECOMMENDATIONS = ("Generating recommendations", 95)
STAGE_COMPLETE = ("Analysis complete", 100)

_ASSETS_END_PERCENT = 80


class _Cancelled(Exception):
    pass


class _Run:
    """Progress and cancellation plumbing for one pipeline run."""

    def __init__(self, progress_callback: ProgressCallback | None, cancel_check: CancelCheck | None) -> None:
        self._progress = progress_callback
        self._cancel = cancel_check

    def emit(self, message: str, percent: int) -> None:
        if self._progress is None:
            return
        try:
            self._progress(message, percent)
        except Exception:  # noqa: BLE001
            log.exception("Progress callback failed at %d%%", percent)

    def check(self, before: str) -> None:
        if self._cancel is not None and self._cancel():
            raise _Cancelled(before)

    def stage(self, stage: tuple[str, int]) -> None:
        self.check(stage[0])
        self.emit(*stage)


def build_snapshot(
    *,
    manifest: BundleManifest,
    total_size: int,
    compressed_size: int | None,
    metrics: BundleMetrics,
    category_metrics: Iterable[CategoryMetrics],
    top_files: Iterable[FileInfo],
    frameworks: Iterable[FrameworkInfo],
    duplicates: Iterable[DuplicateGroup],
    binary: BinaryProfile,
    asset_catalogs: Iterable[CatalogAnalysis],
    localization: LocalizationAnalysis,
    capabilities: CapabilityAnalysis,
    recommendations: Iterable[Recommendation],
    issues: Iterable[AnalysisIssue] = (),
    analyzed_at: float | None = None,
) -> AnalysisSnapshot:
    return AnalysisSnapshot(
        manifest=manifest,
        analyzed_at=time.time() if analyzed_at is None else analyzed_at,
        total_size=total_size,
        compressed_size=compressed_size,
        metrics=metrics,
        category_metrics=tuple(category_metrics),
        top_files=tuple(top_files),
        frameworks=tuple(frameworks),
        duplicates=tuple(duplicates),
        binary=binary,
        asset_catalogs=tuple(asset_catalogs),
        localization=localization,
        capabilities=capabilities,
        recommendations=tuple(recommendations),
        issues=tuple(issues),
    )


def fallback_binary_profile(path: str, size: int) -> BinaryProfile:
    # Never inspected, so no optimization verdict can be drawn from it.
    return BinaryProfile(
        path=path,
        architectures=DEFAULT_ARCHITECTURES,
        is_dynamic=True,
        has_debug_symbols=False,
        size=size,
        skipped=True,
    )


def _analyze_binary(bundle: Bundle, config: AnalyzerConfig, issues: list[AnalysisIssue]) -> BinaryProfile:
    rel = bundle.manifest.executable_name
    size = next((entry.size for entry in bundle.files if entry.path == rel), 0)
    try:
        profile = profile_executable(bundle.executable_path, config)
    except Exception as exc:  # noqa: BLE001
        log.exception("Binary analysis failed for %s", rel)
        issues.append(AnalysisIssue(IssueKind.BINARY_ANALYSIS, rel, str(exc)))
        return fallback_binary_profile(rel, size)

    if profile.skipped:
        issues.append(
            AnalysisIssue(IssueKind.FILE_TOO_BIG, rel, f"Binary of {profile.size} bytes was not inspected", skipped=True)
        )
    return dataclasses.replace(profile, path=rel)


def _catalog_issue(catalog: CatalogAnalysis) -> AnalysisIssue | None:
    if catalog.status is CatalogStatus.SKIPPED:
        return AnalysisIssue(
            IssueKind.FILE_TOO_BIG, catalog.path, f"Catalog of {catalog.total_size} bytes was not inspected", skipped=True
        )
    if catalog.status is CatalogStatus.FAILED:
        if catalog.error_code is CatalogErrorCode.TIMEOUT:
            return AnalysisIssue(IssueKind.TIMEOUT, catalog.path, "Catalog extraction timed out")
        return AnalysisIssue(IssueKind.ASSET_ANALYSIS, catalog.path, "No renditions could be read")
    return None


def _analyze_catalogs(
    bundle: Bundle, config: AnalyzerConfig, run: _Run, issues: list[AnalysisIssue]
) -> list[CatalogAnalysis]:
    catalogs = [entry for entry in bundle.files if extension_of(entry.path) == "car"]
    analyzer = AssetCatalogAnalyzer(config, RenditionHashCache())
    start_message, start_percent = STAGE_ASSETS
    span = _ASSETS_END_PERCENT - start_percent

    results: list[CatalogAnalysis] = []
    for index, entry in enumerate(catalogs):
        if index:
            run.check(entry.path)
        run.emit(f"{start_message} ({index + 1}/{len(catalogs)})", start_percent + index * span // len(catalogs))
        try:
            catalog = dataclasses.replace(analyzer.analyze(bundle.absolute(entry.path)), path=entry.path)
        except Exception as exc:  # noqa: BLE001
            log.exception("Asset catalog analysis failed for %s", entry.path)
            issues.append(AnalysisIssue(IssueKind.ASSET_ANALYSIS, entry.path, str(exc)))
            catalog = CatalogAnalysis(
                path=entry.path,
                total_size=entry.size,
                optimization_potential=0,
                status=CatalogStatus.FAILED,
                error_code=CatalogErrorCode.NO_RENDITIONS,
            )
        else:
            issue = _catalog_issue(catalog)
            if issue is not None:
                issues.append(issue)
        results.append(catalog)
    return results


def _analyze_capabilities(manifest: BundleManifest, issues: list[AnalysisIssue]) -> CapabilityAnalysis:
    try:
        return analyze_capabilities(manifest)
    except Exception as exc:  # noqa: BLE001
        log.exception("Capability analysis failed")
        issues.append(AnalysisIssue(IssueKind.CAPABILITY_ANALYSIS, "Info.plist", str(exc)))
        return CapabilityAnalysis()


def _analyze_localizations(bundle: Bundle, issues: list[AnalysisIssue]) -> LocalizationAnalysis:
    try:
        return analyze_localizations(bundle.files)
    except Exception as exc:  # noqa: BLE001
        log.exception("Localization analysis failed")
        issues.append(AnalysisIssue(IssueKind.LOCALIZATION_ANALYSIS, bundle.root, str(exc)))
        return LocalizationAnalysis()


def _validate(bundle: Bundle) -> AnalysisFailure | None:
    if not bundle.files:
        return AnalysisFailure(FailureCode.EMPTY_BUNDLE, bundle.root, "Bundle contains no files")
    executable = bundle.manifest.executable_name
    if not any(entry.path == executable for entry in bundle.files):
        return AnalysisFailure(
            FailureCode.EXECUTABLE_NOT_FOUND,
            bundle.absolute(executable),
            f"Executable {executable!r} is not in the bundle",
        )
    return None


def analyze_bundle(
    bundle: Bundle,
    config: AnalyzerConfig,
    progress_callback: ProgressCallback | None = None,
    cancel_check: CancelCheck | None = None,
) -> AnalysisResult:
    failure = _validate(bundle)
    if failure is not None:
        return Err(failure)

    run = _Run(progress_callback, cancel_check)
    try:
        snapshot = _analyze(bundle, config, run)
    except _Cancelled as exc:
        log.info("Analysis of %s cancelled before: %s", bundle.root, exc)
        return Err(AnalysisFailure(FailureCode.CANCELLED, bundle.root, "Analysis cancelled"))
    return Ok(snapshot)


def _analyze(bundle: Bundle, config: AnalyzerConfig, run: _Run) -> AnalysisSnapshot:
    files = bundle.files
    issues: list[AnalysisIssue] = []

    run.stage(STAGE_SIZES)
    by_category = category_metrics(files, bundle.total_size)
    metrics = bundle_metrics(bundle)

    run.stage(STAGE_TOP_FILES)
    largest = top_files(files, bundle.total_size, config.top_files_count)

    run.stage(STAGE_DUPLICATES)
    duplicates = find_duplicates(files, bundle.root, config.hash_workers, config.duplicate_min_bytes)

    run.stage(STAGE_FRAMEWORKS)
    frameworks = collect_frameworks(files)

    run.stage(STAGE_BINARY)
    binary = _analyze_binary(bundle, config, issues)

    run.stage(STAGE_ASSETS)
    catalogs = _analyze_catalogs(bundle, config, run, issues)

    run.stage(STAGE_CAPABILITIES)
    capabilities = _analyze_capabilities(bundle.manifest, issues)

    run.stage(STAGE_LOCALIZATION)
    localization = _analyze_localizations(bundle, issues)

    run.stage(STAGE_RECOMMENDATIONS)
    recommendations = generate_recommendations(
        RecommendationInputs(
            files=files,
            total_size=bundle.total_size,
            category_metrics=by_category,
            duplicates=duplicates,
            frameworks=frameworks,
            binary=binary,
            asset_catalogs=tuple(catalogs),
            localization=localization,
            capabilities=capabilities,
        )
    )

    snapshot = build_snapshot(
        manifest=bundle.manifest,
        total_size=bundle.total_size,
        compressed_size=bundle.compressed_size,
        metrics=metrics,
        category_metrics=by_category,
        top_files=largest,
        frameworks=frameworks,
        duplicates=duplicates,
        binary=binary,
        asset_catalogs=catalogs,
        localization=localization,
        capabilities=capabilities,
        recommendations=recommendations,
        issues=issues,
    )
    run.emit(*STAGE_COMPLETE)
    log.info(
        "Analyzed %s: %d files, %d recommendations, %d issues",
        bundle.manifest.identifier,
        len(files),
        len(recommendations),
        len(issues),
    )
    return snapshot
