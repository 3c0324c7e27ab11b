"""Shared test fixtures for pluginpatch tests."""

import pytest


PLUGIN_XML = """<idea-plugin>
    <id>org.example.plugin</id>
    <name>Example</name>
    <version/>
    <vendor>Example Corp</vendor>
</idea-plugin>
"""


@pytest.fixture
def plugin_xml(tmp_path):
    """Write a minimal plugin.xml with an empty <version/> and no <idea-version>.

    Shared across test_patcher.py, test_patch_cli.py and test_patch_manifest.py.
    """
    src_dir = tmp_path / "src" / "META-INF"
    src_dir.mkdir(parents=True)
    out = src_dir / "plugin.xml"
    out.write_text(PLUGIN_XML)
    return out


@pytest.fixture
def write_xml(tmp_path):
    """Return a helper that writes XML text to tmp_path/<name> and returns the path."""
    def _write(name, content):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return path
    return _write
