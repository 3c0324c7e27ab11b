"""pluginpatch — build-time patching of IDE plugin descriptors.

Injects version range bounds, description, version, change notes and
plugin id into plugin.xml files, writing patched copies to a
destination directory. Patch runs can be declared in YAML manifests.
"""
