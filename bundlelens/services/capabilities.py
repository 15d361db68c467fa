from __future__ import annotations

from bundlelens.models.analysis import CapabilityAnalysis
from bundlelens.models.bundle import BundleManifest

# Usage-description key -> permission label, in reporting order.
PERMISSION_LABELS: dict[str, str] = {
    "NSCameraUsageDescription": "Camera",
    "NSMicrophoneUsageDescription": "Microphone",
    "NSLocationWhenInUseUsageDescription": "Location (When In Use)",
    "NSLocationAlwaysAndWhenInUseUsageDescription": "Location (Always)",
    "NSPhotoLibraryUsageDescription": "Photo Library",
    "NSPhotoLibraryAddUsageDescription": "Photo Library (Add)",
    "NSContactsUsageDescription": "Contacts",
    "NSCalendarsUsageDescription": "Calendars",
    "NSRemindersUsageDescription": "Reminders",
    "NSMotionUsageDescription": "Motion & Fitness",
    "NSHealthShareUsageDescription": "Health (Read)",
    "NSHealthUpdateUsageDescription": "Health (Write)",
    "NSBluetoothAlwaysUsageDescription": "Bluetooth",
    "NSBluetoothPeripheralUsageDescription": "Bluetooth Peripheral",
    "NSLocalNetworkUsageDescription": "Local Network",
    "NSNearbyInteractionUsageDescription": "Nearby Interaction",
    "NSSpeechRecognitionUsageDescription": "Speech Recognition",
    "NSAppleMusicUsageDescription": "Apple Music",
    "NSFaceIDUsageDescription": "Face ID",
    "NSUserTrackingUsageDescription": "App Tracking Transparency",
}

# (capability, usage keys any of which implies it)
_IMPLIED_CAPABILITIES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("location-services", ("NSLocationWhenInUseUsageDescription", "NSLocationAlwaysAndWhenInUseUsageDescription")),
    ("camera", ("NSCameraUsageDescription",)),
    ("microphone", ("NSMicrophoneUsageDescription",)),
    ("photo-library", ("NSPhotoLibraryUsageDescription",)),
)

SUSPICIOUS_BACKGROUND_MODES: frozenset[str] = frozenset(
    {"background-app-refresh", "background-processing", "remote-notification"}
)

HEAVY_PERMISSIONS: frozenset[str] = frozenset(
    {
        "Location (Always)",
        "Camera",
        "Microphone",
        "Photo Library",
        "Contacts",
        "Health (Write)",
        "App Tracking Transparency",
    }
)

BACKGROUND_MODE_WASTE = 512
FLAGGED_FEATURE_WASTE = 2048


def analyze_capabilities(manifest: BundleManifest) -> CapabilityAnalysis:
    """Summarize declared background modes, capabilities and permissions.

    The waste estimate is a fixed cost per background mode and per flagged
    feature, not a measured size.
    """
    keys = manifest.usage_description_keys

    capabilities = [f"required: {cap}" for cap in manifest.required_capabilities]
    capabilities.extend(name for name, implied_by in _IMPLIED_CAPABILITIES if any(k in keys for k in implied_by))

    permissions = [label for key, label in PERMISSION_LABELS.items() if key in keys]

    flagged = [f"Background Mode: {mode}" for mode in manifest.background_modes if mode in SUSPICIOUS_BACKGROUND_MODES]
    flagged.extend(f"Heavy Permission: {label}" for label in permissions if label in HEAVY_PERMISSIONS)

    return CapabilityAnalysis(
        background_modes=manifest.background_modes,
        capabilities=tuple(capabilities),
        permissions=tuple(permissions),
        privacy_keys=tuple(sorted(keys)),
        flagged_features=tuple(flagged),
        estimated_waste=BACKGROUND_MODE_WASTE * len(manifest.background_modes) + FLAGGED_FEATURE_WASTE * len(flagged),
    )
