"""
Release metadata shared by both distribution packages.

A single VersionRecord feeds the overlay package's module.prop and installer
scripts as well as the emulator package's meta.json, so the version string,
version code and minimum API level cannot drift between the two outputs.
"""

from dataclasses import MISSING, dataclass, fields
from typing import Dict, List, Mapping

# aarch64 API levels shipped by current NDKs as aarch64-linux-android<N>-clang
MIN_SUPPORTED_API = 21
MAX_SUPPORTED_API = 36

DEFAULT_UPDATE_JSON = (
    "https://raw.githubusercontent.com/v3kt0r-87/Mesa-Turnip-Builder/refs/heads/stable/update.json"
)


class VersionRecordError(Exception):
    """Raised when release metadata is incomplete or malformed."""

    pass


@dataclass(frozen=True)
class VersionRecord:
    """Authoritative release metadata.

    Attributes:
        name: Human readable driver name
        version: Release version string (e.g. '25.1.5')
        version_code: Monotonically increasing integer version code
        min_api: Minimum Android API level, also the NDK target API level
        author: Package author
        description: One-line package description
        module_id: Overlay module identifier
        vendor: Driver vendor shown by emulators
        update_json: Update-manifest URL for the on-device installer
        bundle_prefix: Prefix used for the distribution bundle file names
    """

    name: str
    version: str
    version_code: int
    min_api: int
    author: str
    description: str
    module_id: str = "turnip-mesa"
    vendor: str = "Mesa3D"
    update_json: str = DEFAULT_UPDATE_JSON
    bundle_prefix: str = "Turnip"

    REQUIRED_TEXT_FIELDS = (
        "name",
        "version",
        "author",
        "description",
        "module_id",
        "vendor",
        "update_json",
        "bundle_prefix",
    )

    def validate(self) -> None:
        """Check that every field needed by the package templates is usable.

        Raises:
            VersionRecordError: If any field is missing or out of range
        """
        problems: List[str] = []

        for name in self.REQUIRED_TEXT_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                problems.append(f"'{name}' is empty")
            elif "\n" in value:
                problems.append(f"'{name}' must be a single line")

        if not isinstance(self.version_code, int) or self.version_code <= 0:
            problems.append(f"'version_code' must be a positive integer, got {self.version_code!r}")

        if not isinstance(self.min_api, int) or not (
            MIN_SUPPORTED_API <= self.min_api <= MAX_SUPPORTED_API
        ):
            problems.append(
                f"'min_api' must be an integer between {MIN_SUPPORTED_API} and "
                f"{MAX_SUPPORTED_API}, got {self.min_api!r}"
            )

        if problems:
            raise VersionRecordError("Invalid release metadata: " + "; ".join(problems))

    @classmethod
    def from_mapping(cls, data: Mapping[str, str]) -> "VersionRecord":
        """Build a record from string values (e.g. an INI section).

        Args:
            data: Mapping of field name to string value

        Returns:
            VersionRecord (not yet validated)

        Raises:
            VersionRecordError: If a required field is absent or an integer
                field cannot be parsed
        """
        known = {f.name for f in fields(cls)}
        values: Dict[str, object] = {k: v for k, v in data.items() if k in known}

        missing = [
            f.name for f in fields(cls)
            if f.name not in values and f.default is MISSING
        ]
        if missing:
            raise VersionRecordError(f"Missing release fields: {', '.join(sorted(missing))}")

        for int_field in ("version_code", "min_api"):
            raw = values[int_field]
            try:
                values[int_field] = int(str(raw).strip())
            except ValueError as e:
                raise VersionRecordError(f"'{int_field}' is not an integer: {raw!r}") from e

        return cls(**values)  # type: ignore[arg-type]

    @property
    def overlay_bundle_name(self) -> str:
        return f"{self.bundle_prefix}-{self.version}-MAGISK-KSU.zip"

    @property
    def emulator_bundle_name(self) -> str:
        return f"{self.bundle_prefix}-{self.version}-EMULATOR.zip"
