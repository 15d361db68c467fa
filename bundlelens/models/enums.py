from __future__ import annotations

from enum import Enum


class FileCategory(str, Enum):
    EXECUTABLE = "executable"
    FRAMEWORK = "framework"
    LIBRARY = "library"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    FONT = "font"
    LOCALIZATION = "localization"
    PROPERTY_LIST = "property_list"
    JSON = "json"
    XML = "xml"
    INTERFACE_BUILDER = "interface_builder"
    CORE_DATA = "core_data"
    CERTIFICATE = "certificate"
    PROVISIONING = "provisioning"
    SOURCE = "source"
    HEADER = "header"
    ARCHIVE = "archive"
    DOCUMENT = "document"
    OTHER = "other"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


# Declaration order is the ranking order: the first member outranks the rest.
class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @property
    def label(self) -> str:
        return self.value.title()


_SEVERITY_RANK: dict[Severity, int] = {sev: len(Severity) - i for i, sev in enumerate(Severity)}


class RecommendationKind(str, Enum):
    DUPLICATE_FILES = "duplicate_files"
    LARGE_IMAGES = "large_images"
    DEBUG_SYMBOLS = "debug_symbols"
    UNUSED_ARCHITECTURES = "unused_architectures"
    COMPILER_OPTIMIZATION = "compiler_optimization"
    LARGE_FRAMEWORKS = "large_frameworks"
    FRAMEWORK_ALTERNATIVES = "framework_alternatives"
    UNCOMPRESSED_ASSETS = "uncompressed_assets"
    REDUNDANT_LOCALIZATIONS = "redundant_localizations"
    UNUSED_LANGUAGES = "unused_languages"
    OVERSIZED_LANGUAGES = "oversized_languages"
    LANGUAGE_COUNT = "language_count"
    LOCALIZATION_STRATEGY = "localization_strategy"
    ASSET_CATALOG_DUPLICATES = "asset_catalog_duplicates"
    UNUSED_ASSETS = "unused_assets"
    ASSET_CATALOG_OPTIMIZATION = "asset_catalog_optimization"
    ON_DEMAND_RESOURCES = "on_demand_resources"
    APP_THINNING = "app_thinning"
    LARGE_FILES = "large_files"
    CAPABILITY_REVIEW = "capability_review"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").capitalize()


class CatalogStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class CatalogErrorCode(str, Enum):
    FILE_TOO_BIG = "file_too_big"
    NO_RENDITIONS = "no_renditions"
    TIMEOUT = "timeout"


class IssueKind(str, Enum):
    ASSET_ANALYSIS = "asset_analysis"
    BINARY_ANALYSIS = "binary_analysis"
    LOCALIZATION_ANALYSIS = "localization_analysis"
    CAPABILITY_ANALYSIS = "capability_analysis"
    FILE_TOO_BIG = "file_too_big"
    TIMEOUT = "timeout"


class LocalizationAdvice(str, Enum):
    REMOVE_UNUSED = "remove_unused"
    ON_DEMAND_LARGE_PACKS = "on_demand_large_packs"
    REDUCE_LANGUAGE_COUNT = "reduce_language_count"
    COMPRESS = "compress"
    CONVERT_INTERFACE_FILES = "convert_interface_files"


class FailureCode(str, Enum):
    NOT_FOUND = "not_found"
    NOT_DIRECTORY = "not_directory"
    MANIFEST_MISSING = "manifest_missing"
    MANIFEST_INVALID = "manifest_invalid"
    EMPTY_BUNDLE = "empty_bundle"
    EXECUTABLE_NOT_FOUND = "executable_not_found"
    CANCELLED = "cancelled"
