from __future__ import annotations

from collections.abc import Iterable, Sequence

from bundlelens.models.analysis import LanguagePack, LocalizationAnalysis
from bundlelens.models.bundle import FileEntry
from bundlelens.models.enums import FileCategory, LocalizationAdvice
from bundlelens.services.classifier import extension_of
from bundlelens.services.sizes import lproj_directory

LANGUAGE_NAMES: dict[str, str] = {
    "en": "English",
    "fr": "French",
    "es": "Spanish",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "ru": "Russian",
    "ja": "Japanese",
    "ko": "Korean",
    "zh-Hans": "Chinese (Simplified)",
    "zh-Hant": "Chinese (Traditional)",
    "ar": "Arabic",
    "hi": "Hindi",
    "th": "Thai",
    "vi": "Vietnamese",
    "tr": "Turkish",
    "pl": "Polish",
    "nl": "Dutch",
    "sv": "Swedish",
    "da": "Danish",
    "no": "Norwegian",
    "fi": "Finnish",
    "he": "Hebrew",
    "cs": "Czech",
    "sk": "Slovak",
    "hu": "Hungarian",
    "ro": "Romanian",
    "bg": "Bulgarian",
    "hr": "Croatian",
    "uk": "Ukrainian",
    "el": "Greek",
    "ca": "Catalan",
    "id": "Indonesian",
    "ms": "Malay",
    "Base": "Base (Development Language)",
}

# Markets where a small pack is likely shipped but not used (heuristic).
LOW_ADOPTION_LANGUAGES: frozenset[str] = frozenset(
    {"bg", "hr", "cs", "sk", "hu", "ro", "sl", "lv", "lt", "et", "mt", "ga", "cy", "is", "mk", "sq", "sr", "bs", "me"}
)

_FILE_TYPE_NAMES: dict[str, str] = {
    "strings": "Localizable Strings",
    "storyboard": "Storyboard",
    "xib": "XIB Interface",
    "stringsdict": "Strings Dictionary",
    "plist": "Property List",
    "json": "JSON",
    "xml": "XML",
}

UNUSED_MAX_BYTES = 51_200
OVERSIZED_MIN_BYTES = 5_242_880
COMPRESS_MIN_BYTES = 20_971_520
INCOMPLETE_RATIO = 0.7
OVERSIZED_SAVINGS_RATIO = 0.35
DUPLICATE_SAVINGS_RATIO = 0.5
_MANY_OVERSIZED = 5
_MANY_LANGUAGES = 30
_MANY_INTERFACE_FILES = 5


def language_name(code: str) -> str:
    return LANGUAGE_NAMES.get(code, code.upper())


def file_type_name(path: str) -> str:
    ext = extension_of(path)
    return _FILE_TYPE_NAMES.get(ext, f"{ext.upper()} File")


def _build_pack(code: str, files: Sequence[FileEntry]) -> LanguagePack:
    histogram: dict[str, int] = {}
    for entry in files:
        kind = file_type_name(entry.path)
        histogram[kind] = histogram.get(kind, 0) + 1
    return LanguagePack(
        code=code,
        name=language_name(code),
        file_count=len(files),
        size=sum(entry.size for entry in files),
        strings_file_count=sum(1 for entry in files if entry.path.endswith(".strings")),
        interface_file_count=sum(1 for entry in files if entry.path.endswith((".storyboard", ".xib"))),
        file_types=tuple(histogram.items()),
        files=tuple(entry.path for entry in files),
    )


def _unused(packs: Sequence[LanguagePack]) -> list[str]:
    return [p.code for p in packs if p.code in LOW_ADOPTION_LANGUAGES and p.size < UNUSED_MAX_BYTES]


def _reference_pack(packs: Sequence[LanguagePack]) -> LanguagePack | None:
    by_code = {p.code: p for p in packs}
    return by_code.get("Base") or by_code.get("en") or (packs[0] if packs else None)


def _incomplete(packs: Sequence[LanguagePack]) -> list[str]:
    reference = _reference_pack(packs)
    if reference is None:
        return []
    threshold = reference.file_count * INCOMPLETE_RATIO
    return [p.code for p in packs if p.code != reference.code and p.file_count < threshold]


def _duplicate_content(packs: Sequence[LanguagePack]) -> list[str]:
    """Later packs whose file count matches and size is within 10% of an earlier one."""
    flagged: list[str] = []
    for i, first in enumerate(packs):
        for second in packs[i + 1 :]:
            if first.file_count != second.file_count:
                continue
            if abs(first.size - second.size) < max(first.size, second.size) // 10 and second.code not in flagged:
                flagged.append(second.code)
    return flagged


def _potential(
    packs: Sequence[LanguagePack], unused: Sequence[str], oversized: Sequence[str], duplicates: Sequence[str]
) -> int:
    sizes = {p.code: p.size for p in packs}
    unused_set = set(unused)
    potential = sum(sizes[code] for code in unused)
    potential += sum(int(sizes[code] * OVERSIZED_SAVINGS_RATIO) for code in oversized if code not in unused_set)
    potential += sum(int(sizes[code] * DUPLICATE_SAVINGS_RATIO) for code in duplicates)
    return potential


def _advice(packs: Sequence[LanguagePack], unused: Sequence[str], oversized: Sequence[str]) -> list[LocalizationAdvice]:
    advice: list[LocalizationAdvice] = []
    if unused:
        advice.append(LocalizationAdvice.REMOVE_UNUSED)
    if len(oversized) > _MANY_OVERSIZED:
        advice.append(LocalizationAdvice.ON_DEMAND_LARGE_PACKS)
    if len(packs) > _MANY_LANGUAGES:
        advice.append(LocalizationAdvice.REDUCE_LANGUAGE_COUNT)
    if sum(p.size for p in packs) > COMPRESS_MIN_BYTES:
        advice.append(LocalizationAdvice.COMPRESS)
    if any(p.interface_file_count > _MANY_INTERFACE_FILES for p in packs):
        advice.append(LocalizationAdvice.CONVERT_INTERFACE_FILES)
    return advice


def analyze_localizations(files: Iterable[FileEntry]) -> LocalizationAnalysis:
    """Group localization files into language packs and flag wasteful ones.

    Only files inside a ``*.lproj`` directory belong to a pack; the pack code
    is the directory name without the suffix.  Unused, incomplete and
    duplicate-content flags are heuristics over sizes and file counts, not
    content comparisons.
    """
    localization_files = [entry for entry in files if entry.category is FileCategory.LOCALIZATION]

    grouped: dict[str, list[FileEntry]] = {}
    for entry in localization_files:
        lproj = lproj_directory(entry.path)
        if lproj is None:
            continue
        grouped.setdefault(lproj[: -len(".lproj")], []).append(entry)

    packs = [_build_pack(code, members) for code, members in grouped.items()]
    packs.sort(key=lambda p: p.size, reverse=True)

    unused = _unused(packs)
    oversized = [p.code for p in packs if p.size > OVERSIZED_MIN_BYTES]
    duplicates = _duplicate_content(packs)

    return LocalizationAnalysis(
        languages=tuple(packs),
        total_size=sum(p.size for p in packs),
        total_files=len(localization_files),
        unused_languages=tuple(unused),
        oversized_languages=tuple(oversized),
        incomplete_languages=tuple(_incomplete(packs)),
        duplicate_content=tuple(duplicates),
        optimization_potential=_potential(packs, unused, oversized, duplicates),
        advice=tuple(_advice(packs, unused, oversized)),
    )
