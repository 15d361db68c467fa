# Optimization rules -> ranked Recommendation list.
#
# Each rule looks at one slice of the analysis and emits at most one
# Recommendation carrying a kind, a severity, an estimated saving in bytes
# (None when the saving cannot be estimated) and the affected paths.
# Wording is not produced here; callers render text from kind and numbers.
#
# Rules run in a fixed order and the final list is sorted by severity rank
# descending, then by savings descending (None counts as 0).  The sort is
# stable, so rules with equal keys keep their emission order.

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from bundlelens.models.analysis import (
    BinaryProfile,
    CapabilityAnalysis,
    CatalogAnalysis,
    CategoryMetrics,
    DuplicateGroup,
    FrameworkInfo,
    LanguagePack,
    LocalizationAnalysis,
    Recommendation,
)
from bundlelens.models.bundle import FileEntry
from bundlelens.models.enums import FileCategory, RecommendationKind, Severity
from bundlelens.services.sizes import lproj_directory

MIB = 1_048_576

LEGACY_ARCHITECTURES: tuple[str, ...] = ("armv7", "i386", "x86_64")

# Lowercase name fragment -> bytes a lighter replacement typically saves.
FRAMEWORK_ALTERNATIVE_SAVINGS: tuple[tuple[str, int], ...] = (
    ("alamofire", 2_097_152),
    ("sdwebimage", 1_887_437),
    ("realm", 8_388_608),
    ("firebase", 10_485_760),
    ("lottie", 3_145_728),
)

_TEXT_ASSET_CATEGORIES: frozenset[FileCategory] = frozenset(
    {FileCategory.JSON, FileCategory.XML, FileCategory.PROPERTY_LIST}
)
_AFFECTED_LIMIT = 10
_LANGUAGE_FILES_LIMIT = 20
_LARGE_FILES_LIMIT = 20


@dataclass(slots=True, frozen=True)
class RecommendationInputs:
    files: tuple[FileEntry, ...]
    total_size: int
    category_metrics: tuple[CategoryMetrics, ...]
    duplicates: tuple[DuplicateGroup, ...]
    frameworks: tuple[FrameworkInfo, ...]
    binary: BinaryProfile | None
    asset_catalogs: tuple[CatalogAnalysis, ...]
    localization: LocalizationAnalysis | None
    capabilities: CapabilityAnalysis | None = None

    def category_size(self, category: FileCategory) -> int:
        return next((m.total_size for m in self.category_metrics if m.category is category), 0)


Rule = Callable[[RecommendationInputs], Iterable[Recommendation]]


def _high_if(condition: bool) -> Severity:
    return Severity.HIGH if condition else Severity.MEDIUM


def _duplicate_files(inputs: RecommendationInputs) -> Iterable[Recommendation]:
    if not inputs.duplicates:
        return
    waste = sum(group.wasted_space for group in inputs.duplicates)
    yield Recommendation(
        RecommendationKind.DUPLICATE_FILES,
        _high_if(waste > 10 * MIB),
        waste,
        tuple(path for group in inputs.duplicates for path in group.paths),
    )


def _large_images(inputs: RecommendationInputs) -> Iterable[Recommendation]:
    image_size = inputs.category_size(FileCategory.IMAGE)
    if image_size <= 50 * MIB:
        return
    large = [f.path for f in inputs.files if f.category is FileCategory.IMAGE and f.size > MIB]
    yield Recommendation(
        RecommendationKind.LARGE_IMAGES,
        _high_if(image_size > 100 * MIB),
        int(image_size * 0.3),
        tuple(large[:_AFFECTED_LIMIT]),
    )


def _binary_rules(inputs: RecommendationInputs) -> Iterable[Recommendation]:
    binary = inputs.binary
    if binary is None:
        return
    if binary.has_debug_symbols:
        estimate = binary.estimated_debug_symbols_size
        yield Recommendation(RecommendationKind.DEBUG_SYMBOLS, _high_if(estimate > 5 * MIB), estimate, (binary.path,))

    if binary.has_unused_architectures:
        legacy = [arch for arch in binary.architectures if arch in LEGACY_ARCHITECTURES]
        yield Recommendation(
            RecommendationKind.UNUSED_ARCHITECTURES,
            Severity.HIGH,
            int(binary.size * 0.3 * len(legacy)),
            (binary.path,),
        )

    # A skipped binary was never inspected, so "not optimized" means nothing.
    level = binary.optimization_level
    if not binary.skipped and (not binary.is_optimized or "O0" in level or "None" in level):
        yield Recommendation(
            RecommendationKind.COMPILER_OPTIMIZATION,
            Severity.HIGH,
            int(binary.size * 0.25),
            (binary.path,),
        )


def _large_frameworks(inputs: RecommendationInputs) -> Iterable[Recommendation]:
    large = [fw for fw in inputs.frameworks if fw.size > 10 * MIB and not fw.is_system]
    if not large:
        return
    total = sum(fw.size for fw in large)
    yield Recommendation(
        RecommendationKind.LARGE_FRAMEWORKS,
        _high_if(total > 50 * MIB),
        None,
        tuple(fw.path for fw in large),
    )


def _uncompressed_assets(inputs: RecommendationInputs) -> Iterable[Recommendation]:
    candidates = [
        f for f in inputs.files if f.category in _TEXT_ASSET_CATEGORIES and not f.is_compressed and f.size > 10_240
    ]
    if not candidates:
        return
    total = sum(f.size for f in candidates)
    yield Recommendation(
        RecommendationKind.UNCOMPRESSED_ASSETS,
        Severity.LOW,
        int(total * 0.6),
        tuple(f.path for f in candidates[:_AFFECTED_LIMIT]),
    )


def _redundant_localizations(inputs: RecommendationInputs) -> Iterable[Recommendation]:
    localization_files = [f for f in inputs.files if f.category is FileCategory.LOCALIZATION]
    directories = {d for d in (lproj_directory(f.path) for f in localization_files) if d is not None}
    if len(directories) <= 10:
        return
    size = sum(f.size for f in localization_files)
    yield Recommendation(RecommendationKind.REDUNDANT_LOCALIZATIONS, Severity.LOW, size // 2)


def _asset_catalog_rules(inputs: RecommendationInputs) -> Iterable[Recommendation]:
    catalogs = inputs.asset_catalogs

    with_duplicates = [c for c in catalogs if c.duplicates]
    if with_duplicates:
        waste = sum(group.wasted_space for c in with_duplicates for group in c.duplicates)
        yield Recommendation(
            RecommendationKind.ASSET_CATALOG_DUPLICATES,
            _high_if(waste > 5 * MIB),
            waste,
            tuple(c.path for c in with_duplicates),
        )

    with_unused = [c for c in catalogs if c.unused]
    if with_unused:
        yield Recommendation(
            RecommendationKind.UNUSED_ASSETS,
            Severity.MEDIUM,
            sum(c.optimization_potential for c in with_unused),
            tuple(c.path for c in with_unused),
        )

    large = [c for c in catalogs if c.total_size > 10 * MIB]
    if large:
        total = sum(c.total_size for c in large)
        yield Recommendation(
            RecommendationKind.ASSET_CATALOG_OPTIMIZATION,
            _high_if(total > 50 * MIB),
            int(total * 0.15),
            tuple(c.path for c in large),
        )


def _language_files(packs: Sequence[LanguagePack], limit: int) -> tuple[str, ...]:
    return tuple(path for pack in packs for path in pack.files)[:limit]


def _localization_rules(inputs: RecommendationInputs) -> Iterable[Recommendation]:
    analysis = inputs.localization
    if analysis is None:
        return

    if analysis.unused_languages:
        unused = [pack for pack in analysis.languages if pack.code in analysis.unused_languages]
        size = sum(pack.size for pack in unused)
        yield Recommendation(
            RecommendationKind.UNUSED_LANGUAGES,
            _high_if(size > 5 * MIB),
            size,
            tuple(path for pack in unused for path in pack.files),
        )

    if analysis.oversized_languages:
        oversized = [pack for pack in analysis.languages if pack.code in analysis.oversized_languages]
        size = sum(pack.size for pack in oversized)
        yield Recommendation(
            RecommendationKind.OVERSIZED_LANGUAGES,
            _high_if(size > 20 * MIB),
            int(size * 0.4),
            _language_files(oversized, _LANGUAGE_FILES_LIMIT),
        )

    if analysis.total_languages > 20:
        beyond_top = analysis.languages[10:]
        yield Recommendation(
            RecommendationKind.LANGUAGE_COUNT,
            _high_if(analysis.total_languages > 30),
            sum(pack.size for pack in beyond_top),
            _language_files(beyond_top, _LANGUAGE_FILES_LIMIT),
        )

    if analysis.total_size > 10 * MIB:
        yield Recommendation(
            RecommendationKind.LOCALIZATION_STRATEGY,
            _high_if(analysis.total_size > 50 * MIB),
            analysis.optimization_potential,
        )


def _framework_alternatives(inputs: RecommendationInputs) -> Iterable[Recommendation]:
    third_party = [fw for fw in inputs.frameworks if not fw.is_system]
    total = sum(fw.size for fw in third_party)
    if total <= 5 * MIB:
        return
    known = 0
    for fw in third_party:
        lowered = fw.name.lower()
        known += next((saving for fragment, saving in FRAMEWORK_ALTERNATIVE_SAVINGS if fragment in lowered), 0)
    yield Recommendation(
        RecommendationKind.FRAMEWORK_ALTERNATIVES,
        _high_if(total > 20 * MIB),
        max(known, int(total * 0.2)),
        tuple(fw.path for fw in third_party),
    )


def _on_demand_resources(inputs: RecommendationInputs) -> Iterable[Recommendation]:
    image_size = inputs.category_size(FileCategory.IMAGE)
    candidate = (
        inputs.category_size(FileCategory.VIDEO)
        + inputs.category_size(FileCategory.AUDIO)
        + (image_size // 2 if image_size > 48 * MIB else 0)
        + inputs.category_size(FileCategory.DOCUMENT)
    )
    if candidate > 10 * MIB:
        yield Recommendation(RecommendationKind.ON_DEMAND_RESOURCES, Severity.HIGH, int(candidate * 0.6))


def _app_thinning(inputs: RecommendationInputs) -> Iterable[Recommendation]:
    if inputs.total_size > 30 * MIB:
        yield Recommendation(RecommendationKind.APP_THINNING, Severity.MEDIUM, None)


def _large_files(inputs: RecommendationInputs) -> Iterable[Recommendation]:
    large = sorted((f for f in inputs.files if f.size > MIB), key=lambda f: f.size, reverse=True)
    large = large[:_LARGE_FILES_LIMIT]
    if not large:
        return
    total = sum(f.size for f in large)
    yield Recommendation(
        RecommendationKind.LARGE_FILES,
        _high_if(total > 50_000_000),
        int(total * 0.3),
        tuple(f.path for f in large),
    )


def _capability_review(inputs: RecommendationInputs) -> Iterable[Recommendation]:
    caps = inputs.capabilities
    if caps is not None and caps.flagged_features:
        yield Recommendation(RecommendationKind.CAPABILITY_REVIEW, Severity.LOW, caps.estimated_waste)


RULES: tuple[Rule, ...] = (
    _duplicate_files,
    _large_images,
    _binary_rules,
    _large_frameworks,
    _uncompressed_assets,
    _redundant_localizations,
    _asset_catalog_rules,
    _localization_rules,
    _framework_alternatives,
    _on_demand_resources,
    _app_thinning,
    _large_files,
    _capability_review,
)


def sort_recommendations(recommendations: Iterable[Recommendation]) -> tuple[Recommendation, ...]:
    return tuple(
        sorted(recommendations, key=lambda rec: (rec.severity.rank, rec.estimated_savings or 0), reverse=True)
    )


def generate_recommendations(inputs: RecommendationInputs) -> tuple[Recommendation, ...]:
    recommendations: list[Recommendation] = []
    for rule in RULES:
        recommendations.extend(rule(inputs))
    return sort_recommendations(recommendations)
