"""CLI for plugin.xml patching from flags or a YAML patch manifest.

Usage:
    # Values on the command line
    pluginpatch patch src/main/resources/META-INF/plugin.xml \
        --destination build/patchedPluginXmlFiles \
        --version 1.0.0 --since-build 211 --until-build '213.*'

    # Values from a patch manifest, flags override
    pluginpatch patch --manifest patch.yaml
    pluginpatch patch --manifest patch.yaml --version 1.0.1
"""

import argparse
import dataclasses
import sys
from pathlib import Path

from .common import build_range
from .patch_manifest import load_patch_manifest, validate_patch_sources
from .patcher import DEFAULT_DESTINATION, PatchSpec, patch_all


# Flags that override the PatchSpec field of the same name.
_OVERRIDES = (
    "description", "change_notes", "version", "plugin_id",
    "since_build", "until_build",
)


def _parse_args(args=None):
    parser = argparse.ArgumentParser(
        prog="pluginpatch patch",
        description="Patch plugin.xml files with build values.",
    )
    parser.add_argument(
        "sources", nargs="*", default=[],
        help="plugin.xml files to patch (override the manifest's sources)",
    )
    parser.add_argument(
        "--manifest", default=None,
        help="Path to a YAML patch manifest",
    )
    parser.add_argument(
        "--destination", default=None,
        help=f"Output directory (default: {DEFAULT_DESTINATION})",
    )
    parser.add_argument("--since-build", default=None, help="Set idea-version since-build")
    parser.add_argument("--until-build", default=None, help="Set idea-version until-build")
    parser.add_argument(
        "--platform-version", default=None,
        help="Derive since/until build from a build number, e.g. 213.5744.223",
    )
    parser.add_argument("--version", default=None, help="Set <version>")
    parser.add_argument("--description", default=None, help="Set <description>")
    parser.add_argument("--change-notes", default=None, help="Set <change-notes>")
    parser.add_argument("--plugin-id", default=None, help="Set <id>")
    parser.add_argument(
        "--no-cdata", action="store_true",
        help="Write description and change-notes as plain text, not CDATA",
    )
    return parser.parse_args(args)


def _build_spec(parsed) -> PatchSpec:
    if parsed.manifest is not None:
        spec = load_patch_manifest(parsed.manifest)
    else:
        spec = PatchSpec()

    # CLI values override manifest values.
    changes = {}
    if parsed.sources:
        # A source given twice would be patched and reported twice.
        changes["source_files"] = list(dict.fromkeys(Path(s) for s in parsed.sources))
    if parsed.destination is not None:
        changes["destination_dir"] = Path(parsed.destination)
    for name in _OVERRIDES:
        value = getattr(parsed, name)
        if value is not None:
            changes[name] = value
    if parsed.no_cdata:
        changes["use_cdata"] = False

    if parsed.platform_version is not None:
        since, until = build_range(parsed.platform_version)
        if parsed.since_build is None:
            changes["since_build"] = since
        if parsed.until_build is None:
            changes["until_build"] = until

    return dataclasses.replace(spec, **changes)


def main(args=None):
    parsed = _parse_args(args)
    spec = _build_spec(parsed)

    if not spec.source_files:
        print("No plugin.xml files to patch, skipping")
        return

    try:
        validate_patch_sources(spec)
        print(f"Patching {len(spec.source_files)} plugin.xml file(s) into {spec.destination_dir}")
        report = patch_all(spec)
    except (ValueError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    for source, out_path in zip(spec.source_files, report.output_files):
        print(f"  PATCH  {out_path}")
        for warning in report.warnings:
            if warning.file == Path(source):
                print(f"  WARN   {warning.message}")
    print(f"Done: {len(report.output_files)} file(s) in {spec.destination_dir}")


if __name__ == "__main__":
    main()
