"""Tests for the patch subcommand CLI.

Uses the shared plugin_xml fixture from conftest.py.
"""

import pytest
import yaml


class TestPatchCliFlags:
    def test_patches_into_destination(self, plugin_xml, tmp_path, capsys):
        from pluginpatch.patch_cli import main

        out_dir = tmp_path / "out"
        main([
            str(plugin_xml), "--destination", str(out_dir),
            "--version", "1.0.0", "--since-build", "211", "--until-build", "213.*",
        ])
        text = (out_dir / "plugin.xml").read_text()
        assert "<version>1.0.0</version>" in text
        assert '<idea-version since-build="211" until-build="213.*" />' in text
        assert "PATCH" in capsys.readouterr().out

    def test_platform_version_derives_range(self, plugin_xml, tmp_path):
        from pluginpatch.patch_cli import main

        out_dir = tmp_path / "out"
        main([str(plugin_xml), "--destination", str(out_dir), "--platform-version", "213.5744.223"])
        text = (out_dir / "plugin.xml").read_text()
        assert '<idea-version since-build="213.5744" until-build="213.*" />' in text

    def test_explicit_since_build_wins_over_platform_version(self, plugin_xml, tmp_path):
        from pluginpatch.patch_cli import main

        out_dir = tmp_path / "out"
        main([
            str(plugin_xml), "--destination", str(out_dir),
            "--platform-version", "213.5744.223", "--since-build", "211",
        ])
        text = (out_dir / "plugin.xml").read_text()
        assert '<idea-version since-build="211" until-build="213.*" />' in text

    def test_no_cdata(self, plugin_xml, tmp_path):
        from pluginpatch.patch_cli import main

        out_dir = tmp_path / "out"
        main([str(plugin_xml), "--destination", str(out_dir), "--description", "<p>x</p>", "--no-cdata"])
        text = (out_dir / "plugin.xml").read_text()
        assert "<description>&lt;p&gt;x&lt;/p&gt;</description>" in text

    def test_prints_overwrite_warnings(self, plugin_xml, tmp_path, capsys):
        from pluginpatch.patch_cli import main

        main([str(plugin_xml), "--destination", str(tmp_path / "out"), "--plugin-id", "org.other"])
        out = capsys.readouterr().out
        assert "WARN" in out
        assert "'id[org.example.plugin]' tag will be set to 'org.other'" in out

    def test_no_sources_skips(self, tmp_path, capsys, monkeypatch):
        from pluginpatch.patch_cli import main

        monkeypatch.chdir(tmp_path)
        main(["--version", "1.0.0"])
        assert "skipping" in capsys.readouterr().out
        assert not (tmp_path / "patchedPluginXmlFiles").exists()

    def test_missing_source_exits(self, tmp_path, capsys):
        from pluginpatch.patch_cli import main

        with pytest.raises(SystemExit) as exc_info:
            main([str(tmp_path / "missing.xml"), "--destination", str(tmp_path / "out")])
        assert exc_info.value.code == 1
        assert "not found" in capsys.readouterr().err

    def test_malformed_source_exits(self, tmp_path, capsys):
        from pluginpatch.patch_cli import main

        bad = tmp_path / "plugin.xml"
        bad.write_text("<idea-plugin>")
        with pytest.raises(SystemExit) as exc_info:
            main([str(bad), "--destination", str(tmp_path / "out"), "--version", "1.0.0"])
        assert exc_info.value.code == 1
        assert "Malformed" in capsys.readouterr().err

    def test_destination_in_source_dir_exits(self, plugin_xml, capsys):
        from pluginpatch.patch_cli import main

        original = plugin_xml.read_bytes()
        with pytest.raises(SystemExit) as exc_info:
            main([str(plugin_xml), "--destination", str(plugin_xml.parent), "--version", "9.9"])
        assert exc_info.value.code == 1
        assert plugin_xml.read_bytes() == original

    def test_repeated_source_warns_once(self, plugin_xml, tmp_path, capsys):
        from pluginpatch.patch_cli import main

        main([
            str(plugin_xml), str(plugin_xml),
            "--destination", str(tmp_path / "out"), "--plugin-id", "org.other",
        ])
        out = capsys.readouterr().out
        assert out.count("WARN") == 1
        assert out.count("PATCH ") == 1


class TestPatchCliManifest:
    def _manifest(self, tmp_path, plugin_xml, **plugin):
        manifest = tmp_path / "patch.yaml"
        manifest.write_text(yaml.dump({
            "paths": {"build": str(tmp_path / "build")},
            "destination": "${build}/patched",
            "sources": [str(plugin_xml)],
            "plugin": plugin,
        }))
        return manifest

    def test_patches_from_manifest(self, plugin_xml, tmp_path):
        from pluginpatch.patch_cli import main

        manifest = self._manifest(tmp_path, plugin_xml, version="1.0.0")
        main(["--manifest", str(manifest)])
        text = (tmp_path / "build" / "patched" / "plugin.xml").read_text()
        assert "<version>1.0.0</version>" in text

    def test_flags_override_manifest(self, plugin_xml, tmp_path):
        from pluginpatch.patch_cli import main

        manifest = self._manifest(tmp_path, plugin_xml, version="1.0.0")
        out_dir = tmp_path / "elsewhere"
        main(["--manifest", str(manifest), "--version", "1.0.1", "--destination", str(out_dir)])
        text = (out_dir / "plugin.xml").read_text()
        assert "<version>1.0.1</version>" in text
        assert not (tmp_path / "build" / "patched").exists()

    def test_sources_override_manifest(self, plugin_xml, tmp_path):
        from pluginpatch.patch_cli import main

        other = tmp_path / "other" / "plugin.xml"
        other.parent.mkdir()
        other.write_text("<idea-plugin><name>Other</name></idea-plugin>")
        manifest = self._manifest(tmp_path, plugin_xml, version="1.0.0")
        main(["--manifest", str(manifest), str(other)])
        text = (tmp_path / "build" / "patched" / "plugin.xml").read_text()
        assert "<name>Other</name>" in text
