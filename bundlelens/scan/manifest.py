from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from result import Err, Ok, Result

from bundlelens.models.bundle import BundleManifest

_DEVICE_FAMILIES: tuple[tuple[int, str], ...] = ((1, "iPhone"), (2, "iPad"))


def _string(data: Mapping[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = data.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def _strings(value: Any) -> tuple[str, ...]:
    if isinstance(value, (list, tuple)):
        return tuple(str(item) for item in value)
    return ()


def _device_family(data: Mapping[str, Any]) -> tuple[str, ...]:
    family = data.get("UIDeviceFamily")
    if isinstance(family, int):
        family = [family]
    if not isinstance(family, (list, tuple)):
        return ()
    return tuple(name for code, name in _DEVICE_FAMILIES if code in family)


def _required_capabilities(value: Any) -> tuple[str, ...]:
    # Either an array of names or a dict of name -> required flag.
    if isinstance(value, Mapping):
        return tuple(str(key) for key, required in value.items() if required)
    return _strings(value)


def parse_manifest(data: Mapping[str, Any]) -> Result[BundleManifest, str]:
    """Build a typed manifest from a decoded ``Info.plist`` dictionary.

    Bundle identifier and executable name are required; everything else has
    a default.
    """
    identifier = _string(data, "CFBundleIdentifier")
    if identifier is None:
        return Err("Manifest has no CFBundleIdentifier.")
    executable = _string(data, "CFBundleExecutable")
    if executable is None:
        return Err("Manifest has no CFBundleExecutable.")

    family = _device_family(data)
    required = _required_capabilities(data.get("UIRequiredDeviceCapabilities"))

    devices = list(family)
    if "watch-companion" in required:
        devices.append("Apple Watch")

    platforms = _strings(data.get("CFBundleSupportedPlatforms")) or family or ("iOS",)

    return Ok(
        BundleManifest(
            identifier=identifier,
            display_name=_string(data, "CFBundleName", "CFBundleDisplayName") or executable,
            executable_name=executable,
            version=_string(data, "CFBundleVersion") or "1.0",
            short_version=_string(data, "CFBundleShortVersionString") or "1.0",
            minimum_os=_string(data, "MinimumOSVersion"),
            supported_devices=tuple(devices) or ("Universal",),
            supported_platforms=platforms,
            background_modes=_strings(data.get("UIBackgroundModes")),
            required_capabilities=required,
            usage_description_keys=frozenset(
                key for key in data if key.startswith("NS") and key.endswith("UsageDescription")
            ),
        )
    )
