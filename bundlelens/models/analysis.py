from __future__ import annotations

from dataclasses import dataclass, field

from result import Result

from bundlelens.models.bundle import AnalysisFailure, BundleManifest
from bundlelens.models.enums import (
    CatalogErrorCode,
    CatalogStatus,
    FileCategory,
    IssueKind,
    LocalizationAdvice,
    RecommendationKind,
    Severity,
)


@dataclass(slots=True, frozen=True)
class FileInfo:
    path: str
    size: int
    category: FileCategory
    percentage: float


@dataclass(slots=True, frozen=True)
class CategoryMetrics:
    category: FileCategory
    total_size: int
    file_count: int
    percentage: float
    largest_file: FileInfo | None = None


@dataclass(slots=True, frozen=True)
class BundleMetrics:
    file_count: int
    directory_count: int
    executable_size: int
    resources_size: int
    frameworks_size: int
    localization_count: int
    supported_devices: tuple[str, ...]
    minimum_os: str | None


@dataclass(slots=True, frozen=True)
class FrameworkInfo:
    name: str
    path: str
    size: int
    is_system: bool


@dataclass(slots=True, frozen=True)
class DuplicateGroup:
    content_hash: str
    paths: tuple[str, ...]
    size: int
    wasted_space: int


@dataclass(slots=True, frozen=True)
class BinaryProfile:
    path: str
    architectures: tuple[str, ...]
    is_dynamic: bool
    has_debug_symbols: bool
    size: int
    is_optimized: bool = False
    has_unused_architectures: bool = False
    estimated_debug_symbols_size: int = 0
    optimization_level: str = "unknown"
    skipped: bool = False


@dataclass(slots=True, frozen=True)
class AssetRendition:
    name: str
    type: str
    idiom: str
    scale: str
    declared_size: str
    rendition_key: str
    size_on_disk: int = 0
    content_hash: str | None = None

    @property
    def metadata_key(self) -> tuple[str, str, str, str, int]:
        return (self.type, self.idiom, self.scale, self.declared_size, self.size_on_disk)


@dataclass(slots=True, frozen=True)
class AssetDuplicateGroup:
    label: str
    renditions: tuple[AssetRendition, ...]
    wasted_space: int


@dataclass(slots=True, frozen=True)
class CatalogAnalysis:
    path: str
    total_size: int
    optimization_potential: int
    status: CatalogStatus
    renditions: tuple[AssetRendition, ...] = ()
    duplicates: tuple[AssetDuplicateGroup, ...] = ()
    unused: tuple[AssetRendition, ...] = ()
    error_code: CatalogErrorCode | None = None


@dataclass(slots=True, frozen=True)
class LanguagePack:
    code: str
    name: str
    file_count: int
    size: int
    strings_file_count: int
    interface_file_count: int
    file_types: tuple[tuple[str, int], ...] = ()
    files: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class LocalizationAnalysis:
    languages: tuple[LanguagePack, ...] = ()
    total_size: int = 0
    total_files: int = 0
    unused_languages: tuple[str, ...] = ()
    oversized_languages: tuple[str, ...] = ()
    incomplete_languages: tuple[str, ...] = ()
    duplicate_content: tuple[str, ...] = ()
    optimization_potential: int = 0
    advice: tuple[LocalizationAdvice, ...] = ()

    @property
    def total_languages(self) -> int:
        return len(self.languages)

    def language(self, code: str) -> LanguagePack | None:
        return next((pack for pack in self.languages if pack.code == code), None)


@dataclass(slots=True, frozen=True)
class CapabilityAnalysis:
    background_modes: tuple[str, ...] = ()
    capabilities: tuple[str, ...] = ()
    permissions: tuple[str, ...] = ()
    privacy_keys: tuple[str, ...] = ()
    flagged_features: tuple[str, ...] = ()
    estimated_waste: int = 0


@dataclass(slots=True, frozen=True)
class Recommendation:
    kind: RecommendationKind
    severity: Severity
    estimated_savings: int | None
    affected_paths: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class AnalysisIssue:
    kind: IssueKind
    path: str
    reason: str
    skipped: bool = False

    @property
    def file_name(self) -> str:
        return self.path.rstrip("/").rsplit("/", 1)[-1]


@dataclass(slots=True, frozen=True)
class AnalysisSnapshot:
    manifest: BundleManifest
    analyzed_at: float
    total_size: int
    compressed_size: int | None
    metrics: BundleMetrics
    category_metrics: tuple[CategoryMetrics, ...]
    top_files: tuple[FileInfo, ...]
    frameworks: tuple[FrameworkInfo, ...]
    duplicates: tuple[DuplicateGroup, ...]
    binary: BinaryProfile
    asset_catalogs: tuple[CatalogAnalysis, ...]
    localization: LocalizationAnalysis
    capabilities: CapabilityAnalysis
    recommendations: tuple[Recommendation, ...]
    issues: tuple[AnalysisIssue, ...] = field(default_factory=tuple)

    @property
    def architectures(self) -> tuple[str, ...]:
        return self.binary.architectures

    def metrics_for(self, category: FileCategory) -> CategoryMetrics | None:
        return next((m for m in self.category_metrics if m.category is category), None)


AnalysisResult = Result[AnalysisSnapshot, AnalysisFailure]
