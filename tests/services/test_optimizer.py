from __future__ import annotations

from typing import Any

from bundlelens.models.analysis import (
    AssetDuplicateGroup,
    AssetRendition,
    BinaryProfile,
    CapabilityAnalysis,
    CatalogAnalysis,
    DuplicateGroup,
    FrameworkInfo,
    LanguagePack,
    LocalizationAnalysis,
    Recommendation,
)
from bundlelens.models.bundle import FileEntry
from bundlelens.models.enums import CatalogStatus, RecommendationKind, Severity
from bundlelens.services.optimizer import MIB, RecommendationInputs, generate_recommendations, sort_recommendations
from bundlelens.services.sizes import category_metrics
from tests.factories import make_entry


def _inputs(files: list[FileEntry] | None = None, **overrides: Any) -> RecommendationInputs:
    entries = tuple(files or ())
    total = sum(f.size for f in entries)
    fields: dict[str, Any] = {
        "files": entries,
        "total_size": total,
        "category_metrics": category_metrics(entries, total),
        "duplicates": (),
        "frameworks": (),
        "binary": None,
        "asset_catalogs": (),
        "localization": None,
    }
    fields.update(overrides)
    return RecommendationInputs(**fields)


def _binary(**overrides: Any) -> BinaryProfile:
    fields: dict[str, Any] = {
        "path": "App",
        "architectures": ("arm64",),
        "is_dynamic": True,
        "has_debug_symbols": False,
        "size": 10 * MIB,
        "is_optimized": True,
        "optimization_level": "Os",
    }
    fields.update(overrides)
    return BinaryProfile(**fields)


def _kinds(recommendations: tuple[Recommendation, ...]) -> list[RecommendationKind]:
    return [rec.kind for rec in recommendations]


class TestSorting:
    def test_severity_then_savings(self) -> None:
        recs = [
            Recommendation(RecommendationKind.DUPLICATE_FILES, Severity.HIGH, 10 * MIB),
            Recommendation(RecommendationKind.LARGE_IMAGES, Severity.HIGH, 2 * MIB),
            Recommendation(RecommendationKind.APP_THINNING, Severity.MEDIUM, 50 * MIB),
        ]
        ordered = sort_recommendations(reversed(recs))
        assert [(r.severity, r.estimated_savings) for r in ordered] == [
            (Severity.HIGH, 10 * MIB),
            (Severity.HIGH, 2 * MIB),
            (Severity.MEDIUM, 50 * MIB),
        ]

    def test_missing_savings_counts_as_zero(self) -> None:
        recs = [
            Recommendation(RecommendationKind.APP_THINNING, Severity.LOW, None),
            Recommendation(RecommendationKind.LARGE_FILES, Severity.LOW, 1),
            Recommendation(RecommendationKind.CAPABILITY_REVIEW, Severity.CRITICAL, None),
        ]
        assert _kinds(sort_recommendations(recs)) == [
            RecommendationKind.CAPABILITY_REVIEW,
            RecommendationKind.LARGE_FILES,
            RecommendationKind.APP_THINNING,
        ]


def test_severity_rank_order() -> None:
    ranks = [sev.rank for sev in (Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW, Severity.INFO)]
    assert ranks == sorted(ranks, reverse=True)


def test_nothing_to_recommend() -> None:
    assert generate_recommendations(_inputs([make_entry("App", 1000)])) == ()


class TestDuplicateRule:
    def test_medium_below_threshold(self) -> None:
        group = DuplicateGroup("h", ("a.bin", "b.bin"), 2048, 2048)
        (rec,) = generate_recommendations(_inputs(duplicates=(group,)))
        assert rec.kind is RecommendationKind.DUPLICATE_FILES
        assert rec.severity is Severity.MEDIUM
        assert rec.estimated_savings == 2048
        assert rec.affected_paths == ("a.bin", "b.bin")

    def test_high_above_threshold(self) -> None:
        group = DuplicateGroup("h", ("a.bin", "b.bin"), 11 * MIB, 11 * MIB)
        (rec,) = generate_recommendations(_inputs(duplicates=(group,)))
        assert rec.severity is Severity.HIGH


class TestBinaryRules:
    def test_debug_symbols_and_architectures(self) -> None:
        binary = _binary(
            has_debug_symbols=True,
            estimated_debug_symbols_size=4 * MIB,
            architectures=("armv7", "arm64"),
            has_unused_architectures=True,
        )
        recs = generate_recommendations(_inputs(binary=binary))
        by_kind = {rec.kind: rec for rec in recs}
        assert by_kind[RecommendationKind.DEBUG_SYMBOLS].severity is Severity.MEDIUM
        assert by_kind[RecommendationKind.DEBUG_SYMBOLS].estimated_savings == 4 * MIB
        assert by_kind[RecommendationKind.UNUSED_ARCHITECTURES].estimated_savings == int(10 * MIB * 0.3)
        assert RecommendationKind.COMPILER_OPTIMIZATION not in by_kind

    def test_unoptimized_binary(self) -> None:
        (rec,) = generate_recommendations(_inputs(binary=_binary(is_optimized=False, optimization_level="unknown")))
        assert rec.kind is RecommendationKind.COMPILER_OPTIMIZATION
        assert rec.severity is Severity.HIGH
        assert rec.estimated_savings == int(10 * MIB * 0.25)

    def test_skipped_binary_not_judged(self) -> None:
        binary = _binary(is_optimized=False, optimization_level="unknown", skipped=True)
        assert generate_recommendations(_inputs(binary=binary)) == ()


class TestSizeRules:
    def test_large_images(self) -> None:
        files = [make_entry(f"img{i}.png", 11 * MIB) for i in range(5)]
        recs = generate_recommendations(_inputs(files))
        images = next(r for r in recs if r.kind is RecommendationKind.LARGE_IMAGES)
        assert images.severity is Severity.MEDIUM
        assert images.estimated_savings == int(55 * MIB * 0.3)
        assert len(images.affected_paths) == 5

    def test_large_files_and_thinning(self) -> None:
        files = [make_entry("movie.bin", 40 * MIB)]
        kinds = _kinds(generate_recommendations(_inputs(files)))
        assert RecommendationKind.LARGE_FILES in kinds
        assert RecommendationKind.APP_THINNING in kinds

    def test_on_demand_resources(self) -> None:
        files = [make_entry("intro.mp4", 12 * MIB)]
        recs = generate_recommendations(_inputs(files))
        odr = next(r for r in recs if r.kind is RecommendationKind.ON_DEMAND_RESOURCES)
        assert odr.estimated_savings == int(12 * MIB * 0.6)

    def test_uncompressed_text_assets(self) -> None:
        files = [make_entry("data.json", 20_000), make_entry("small.json", 100)]
        (rec,) = generate_recommendations(_inputs(files))
        assert rec.kind is RecommendationKind.UNCOMPRESSED_ASSETS
        assert rec.severity is Severity.LOW
        assert rec.affected_paths == ("data.json",)
        assert rec.estimated_savings == 12_000


class TestFrameworkRules:
    def test_large_third_party(self) -> None:
        frameworks = (
            FrameworkInfo("FirebaseCore", "Frameworks/FirebaseCore.framework", 12 * MIB, False),
            FrameworkInfo("UIKit", "Frameworks/UIKit.framework", 40 * MIB, True),
        )
        recs = generate_recommendations(_inputs(frameworks=frameworks))
        by_kind = {rec.kind: rec for rec in recs}
        assert by_kind[RecommendationKind.LARGE_FRAMEWORKS].affected_paths == ("Frameworks/FirebaseCore.framework",)
        assert by_kind[RecommendationKind.LARGE_FRAMEWORKS].estimated_savings is None
        assert by_kind[RecommendationKind.FRAMEWORK_ALTERNATIVES].estimated_savings == 10_485_760


class TestCatalogRules:
    def test_duplicates_and_unused(self) -> None:
        rendition = AssetRendition("a", "Image", "tablet", "1x", "0x0", "a.png", 100, "h")
        catalog = CatalogAnalysis(
            path="Assets.car",
            total_size=5000,
            optimization_potential=300,
            status=CatalogStatus.SUCCESS,
            renditions=(rendition,),
            duplicates=(AssetDuplicateGroup("a", (rendition, rendition), 200),),
            unused=(rendition,),
        )
        recs = generate_recommendations(_inputs(asset_catalogs=(catalog,)))
        by_kind = {rec.kind: rec for rec in recs}
        assert by_kind[RecommendationKind.ASSET_CATALOG_DUPLICATES].estimated_savings == 200
        assert by_kind[RecommendationKind.UNUSED_ASSETS].estimated_savings == 300
        assert RecommendationKind.ASSET_CATALOG_OPTIMIZATION not in by_kind


class TestLocalizationRules:
    def test_unused_languages(self) -> None:
        pack = LanguagePack("bg", "Bulgarian", 1, 100, 1, 0, files=("bg.lproj/Localizable.strings",))
        analysis = LocalizationAnalysis(languages=(pack,), total_size=100, unused_languages=("bg",))
        (rec,) = generate_recommendations(_inputs(localization=analysis))
        assert rec.kind is RecommendationKind.UNUSED_LANGUAGES
        assert rec.estimated_savings == 100
        assert rec.affected_paths == ("bg.lproj/Localizable.strings",)

    def test_language_count(self) -> None:
        packs = tuple(LanguagePack(f"l{i}", f"L{i}", 1, 100 - i, 1, 0) for i in range(25))
        analysis = LocalizationAnalysis(languages=packs, total_size=sum(p.size for p in packs))
        (rec,) = generate_recommendations(_inputs(localization=analysis))
        assert rec.kind is RecommendationKind.LANGUAGE_COUNT
        assert rec.severity is Severity.MEDIUM
        assert rec.estimated_savings == sum(p.size for p in packs[10:])


def test_capability_review() -> None:
    caps = CapabilityAnalysis(flagged_features=("Heavy Permission: Camera",), estimated_waste=2048)
    (rec,) = generate_recommendations(_inputs(capabilities=caps))
    assert rec.kind is RecommendationKind.CAPABILITY_REVIEW
    assert rec.severity is Severity.LOW
    assert rec.estimated_savings == 2048
