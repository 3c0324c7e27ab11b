"""pluginpatch.common — shared utilities for patch runs.

Contains: path variable resolution, since/until build derivation from a
platform build number, and plugin.xml discovery in resource directories.
"""

import re
from pathlib import Path


PLUGIN_XML_RELATIVE_PATH = Path("META-INF") / "plugin.xml"


# ── Path utilities ─────────────────────────────────────────────────

def resolve_path_vars(text: str, paths: dict[str, str]) -> str:
    """Replace ${name} variables in a string using the paths dict."""
    def _replace(match):
        key = match.group(1)
        if key not in paths:
            raise ValueError(f"Unknown path variable: ${{{key}}}")
        return str(paths[key])
    return re.sub(r"\$\{(\w+)\}", _replace, text)


# ── Build numbers ──────────────────────────────────────────────────

def build_range(platform_version: str) -> tuple[str, str]:
    """Derive (since-build, until-build) from a platform build number.

    '213.5744.223' -> ('213.5744', '213.*'). A product code prefix such
    as 'IC-' is ignored. A bare branch '213' gives ('213', '213.*').
    """
    build = platform_version.strip()
    if "-" in build:
        build = build.split("-", 1)[1]
    parts = build.split(".")
    branch = parts[0]
    if not branch.isdigit() or not all(parts):
        raise ValueError(
            f"Invalid platform version: '{platform_version}'. "
            "Expected Branch.Build.Fix, e.g. 213.5744.223"
        )
    since = ".".join(parts[:2])
    return since, f"{branch}.*"


# ── Discovery ──────────────────────────────────────────────────────

def discover_plugin_xml_files(resource_dirs: list[str | Path]) -> list[Path]:
    """Return existing META-INF/plugin.xml files under the given directories.

    Order follows resource_dirs; a file reachable twice is listed once.
    """
    found = []
    seen = set()
    for resource_dir in resource_dirs:
        candidate = Path(resource_dir) / PLUGIN_XML_RELATIVE_PATH
        if not candidate.is_file():
            continue
        key = candidate.resolve()
        if key in seen:
            continue
        seen.add(key)
        found.append(candidate)
    return found
