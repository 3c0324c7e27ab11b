"""Patch manifest loader — declare a plugin.xml patch run in YAML.

Follows the ${var} path resolution of pluginpatch.common.

Patch manifest schema:
  paths:
    build: "build"
  destination: "${build}/patchedPluginXmlFiles"   # optional
  sources:
    - "src/main/resources/META-INF/plugin.xml"
  plugin:
    id: "org.example.plugin"
    version: "1.0.0"
    description: "<p>Example</p>"
    change_notes: "<ul><li>Initial</li></ul>"
    since_build: "211"
    until_build: "213.*"
    platform_version: "213.5744.223"   # fills since/until when absent
  use_cdata: true
"""

from pathlib import Path

import yaml

from .common import build_range, resolve_path_vars
from .patcher import DEFAULT_DESTINATION, PatchSpec


VALID_PLUGIN_FIELDS = {
    "id", "version", "description", "change_notes",
    "since_build", "until_build", "platform_version",
}


def _optional_str(plugin: dict, key: str) -> str | None:
    """Return plugin[key] as text, or None when absent.

    YAML reads 211 as int, which converts back losslessly. Floats and
    booleans do not: 1.10 loads as 1.1, so they must be quoted.
    """
    value = plugin.get(key)
    if value is None:
        return None
    if isinstance(value, (bool, float)):
        raise ValueError(
            f"Plugin field '{key}': quote numeric values, "
            f"got {value!r} (YAML {type(value).__name__})"
        )
    if not isinstance(value, (str, int)):
        raise ValueError(f"Plugin field '{key}': must be a string, got {value!r}")
    return str(value)


def load_patch_manifest(manifest_path: str | Path) -> PatchSpec:
    """Load and validate a patch manifest.

    Processing pipeline:
      1. Parse YAML.
      2. Resolve ${path} variables in destination and sources.
      3. Validate plugin fields, coercing values to strings.
      4. Fill since/until build from platform_version where not given.

    Args:
        manifest_path: Path to the YAML patch manifest.

    Returns:
        PatchSpec ready for patch_all.

    Raises:
        ValueError: Missing/invalid fields.
    """
    with open(manifest_path) as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        raise ValueError("Patch manifest: top level must be a mapping")
    if "sources" not in raw:
        raise ValueError("Patch manifest: missing required 'sources' field")

    paths = raw.get("paths") or {}

    sources_raw = raw["sources"] or []
    if not isinstance(sources_raw, list):
        raise ValueError("Patch manifest: 'sources' must be a list of paths")

    sources = []
    seen = set()
    for i, entry in enumerate(sources_raw):
        if not isinstance(entry, str) or not entry.strip():
            raise ValueError(f"Source {i}: must be a non-empty path string")
        resolved = resolve_path_vars(entry, paths)
        if resolved in seen:
            raise ValueError(f"Duplicate source: '{resolved}'")
        seen.add(resolved)
        sources.append(Path(resolved))

    destination = resolve_path_vars(
        str(raw.get("destination") or DEFAULT_DESTINATION), paths,
    )

    plugin = raw.get("plugin") or {}
    if not isinstance(plugin, dict):
        raise ValueError("Patch manifest: 'plugin' must be a mapping")
    unknown = set(plugin) - VALID_PLUGIN_FIELDS
    if unknown:
        raise ValueError(
            f"Patch manifest: unknown plugin field(s) {sorted(unknown)}. "
            f"Valid: {sorted(VALID_PLUGIN_FIELDS)}"
        )

    since_build = _optional_str(plugin, "since_build")
    until_build = _optional_str(plugin, "until_build")
    platform_version = _optional_str(plugin, "platform_version")
    if platform_version is not None:
        default_since, default_until = build_range(platform_version)
        since_build = since_build or default_since
        until_build = until_build or default_until

    use_cdata = raw.get("use_cdata", True)
    if not isinstance(use_cdata, bool):
        raise ValueError(
            f"Patch manifest: 'use_cdata' must be true or false, got {use_cdata!r}"
        )

    return PatchSpec(
        destination_dir=Path(destination),
        source_files=sources,
        description=_optional_str(plugin, "description"),
        since_build=since_build,
        until_build=until_build,
        version=_optional_str(plugin, "version"),
        change_notes=_optional_str(plugin, "change_notes"),
        plugin_id=_optional_str(plugin, "id"),
        use_cdata=use_cdata,
    )


def validate_patch_sources(spec: PatchSpec) -> None:
    """Check that every source descriptor exists on disk.

    Raises:
        FileNotFoundError: If a source file is missing.
    """
    for source in spec.source_files:
        if not Path(source).is_file():
            raise FileNotFoundError(f"Source plugin.xml not found: {source}")
