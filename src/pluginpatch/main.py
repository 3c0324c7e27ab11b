"""Subcommand dispatcher for pluginpatch.

Usage:
    pluginpatch patch      plugin.xml --version 1.0.0 --destination out/
    pluginpatch patch      --manifest patch.yaml
    pluginpatch discover   src/main/resources ...
"""

import argparse
import sys


def _discover_main(args=None):
    from .common import discover_plugin_xml_files

    parser = argparse.ArgumentParser(
        prog="pluginpatch discover",
        description="List META-INF/plugin.xml files under resource directories.",
    )
    parser.add_argument("resource_dirs", nargs="+", help="Resource directories to search")
    parsed = parser.parse_args(args)

    for path in discover_plugin_xml_files(parsed.resource_dirs):
        print(path)


def main(args=None):
    parser = argparse.ArgumentParser(
        prog="pluginpatch",
        description="Patch IDE plugin.xml descriptors with build values.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # Register subcommands. Each delegates to its own main().
    subparsers.add_parser("patch", help="Patch plugin.xml files into a destination directory")
    subparsers.add_parser("discover", help="Find plugin.xml files in resource directories")

    # Parse only the subcommand name, pass the rest to the subcommand's parser.
    parsed, remaining = parser.parse_known_args(args)

    if parsed.command is None:
        parser.print_help()
        sys.exit(1)

    if parsed.command == "patch":
        from .patch_cli import main as patch_main
        patch_main(remaining)
    elif parsed.command == "discover":
        _discover_main(remaining)


if __name__ == "__main__":
    main()
