# Path -> FileCategory classification.
#
# Two tiers, checked in order:
#
#   1. Special-path rules, which look at path segments rather than the
#      extension: the bundle's main executable, "macho" segments,
#      extension-less files under a "payload" segment, anything inside a
#      "*.framework" directory, anything inside a "*.lproj" directory.
#
#   2. Extension lookup.  _CATEGORY_EXTENSIONS is the ordered source table;
#      it is flattened once at import into _EXTENSION_MAP so the per-file
#      cost is a single dict lookup.  When an extension appears under two
#      categories the earlier one wins (e.g. "pdf" is an image, not a
#      document).
#
# Matching is case-insensitive: the path is lowercased once per call.

from __future__ import annotations

from bundlelens.models.enums import FileCategory

_CATEGORY_EXTENSIONS: tuple[tuple[FileCategory, tuple[str, ...]], ...] = (
    (FileCategory.LIBRARY, ("dylib", "a")),
    (FileCategory.IMAGE, ("png", "jpg", "jpeg", "gif", "webp", "heic", "svg", "pdf", "ico", "car")),
    (FileCategory.VIDEO, ("mp4", "mov", "avi", "mkv", "m4v", "webm")),
    (FileCategory.AUDIO, ("mp3", "aac", "wav", "m4a", "flac", "ogg", "aiff", "caf")),
    (FileCategory.FONT, ("ttf", "otf", "ttc", "woff", "woff2")),
    (FileCategory.LOCALIZATION, ("strings", "stringsdict")),
    (FileCategory.PROPERTY_LIST, ("plist",)),
    (FileCategory.JSON, ("json",)),
    (FileCategory.XML, ("xml",)),
    (FileCategory.INTERFACE_BUILDER, ("storyboard", "storyboardc", "xib", "nib")),
    (FileCategory.CORE_DATA, ("momd", "mom", "sqlite", "xcdatamodel")),
    (FileCategory.CERTIFICATE, ("cer", "der", "p12", "pem")),
    (FileCategory.PROVISIONING, ("mobileprovision", "provisionprofile")),
    (FileCategory.SOURCE, ("swift", "m", "mm")),
    (FileCategory.HEADER, ("h", "hpp")),
    (FileCategory.ARCHIVE, ("zip", "gz", "tar", "bz2", "xz")),
    (FileCategory.DOCUMENT, ("txt", "md", "rtf", "html", "css", "js")),
)


def _build_extension_map() -> dict[str, FileCategory]:
    mapping: dict[str, FileCategory] = {}
    for category, extensions in _CATEGORY_EXTENSIONS:
        for ext in extensions:
            mapping.setdefault(ext, category)
    return mapping


_EXTENSION_MAP: dict[str, FileCategory] = _build_extension_map()

# Extensions whose payload is already compressed on disk.
COMPRESSED_EXTENSIONS: frozenset[str] = frozenset({"zip", "gz", "bz2", "xz", "tar", "car", "aar"})


def extension_of(path: str) -> str:
    """Return the lowercased extension of the last path segment ("" if none)."""
    base = path.rsplit("/", 1)[-1]
    dot = base.rfind(".")
    if dot <= 0:
        return ""
    return base[dot + 1 :].lower()


def classify_path(path: str, executable_name: str | None = None) -> FileCategory:
    """Map a bundle-relative *path* to its FileCategory.

    *executable_name* is the manifest's executable; the file at the bundle
    root carrying that name is the main executable regardless of extension.
    """
    normalized = path.strip("/")
    if executable_name and normalized == executable_name.strip("/"):
        return FileCategory.EXECUTABLE

    lpath = normalized.lower()
    segments = lpath.split("/")
    ext = extension_of(lpath)

    if "macho" in segments or (not ext and "payload" in segments):
        return FileCategory.EXECUTABLE

    # Directory markers: only the parent segments count, so a loose
    # "Foo.framework" file at the root still falls through to extensions.
    parents = segments[:-1]
    for segment in parents:
        if segment.endswith(".framework"):
            return FileCategory.FRAMEWORK
    for segment in parents:
        if segment.endswith(".lproj"):
            return FileCategory.LOCALIZATION

    return _EXTENSION_MAP.get(ext, FileCategory.OTHER)


def is_compressed_path(path: str) -> bool:
    return extension_of(path) in COMPRESSED_EXTENSIONS
