"""Patch plugin.xml descriptors with values supplied by the build.

Each source descriptor is parsed into a fresh lxml tree, patched in a
fixed order (since-build, until-build, description, change-notes,
version, id) and written under the destination directory with the same
file name. Sources are never modified in place.

Overwriting a value that is already present is not an error: the new
value always wins and a PatchWarning is recorded for the caller.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path

from lxml import etree


PLUGIN_ROOT_TAG = "idea-plugin"

DEFAULT_VERSION = "unspecified"

DEFAULT_DESTINATION = "patchedPluginXmlFiles"

CDATA_TAGS = {"description", "change-notes"}

XML_DECLARATION = b'<?xml version="1.0" encoding="UTF-8"?>\n'

# Sections whose bytes are copied verbatim by the empty-element formatter.
_VERBATIM_OR_EMPTY_END = re.compile(
    rb"(<!\[CDATA\[.*?\]\]>|<!--.*?-->|<\?.*?\?>|<!DOCTYPE[^\[>]*\[.*?\]\s*>)"
    rb"|(?<![\s/])/>",
    re.DOTALL,
)


class MalformedManifestError(ValueError):
    """A source descriptor is not well-formed XML."""

    def __init__(self, path, reason):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Malformed plugin descriptor {path}: {reason}")


# ── Data model ─────────────────────────────────────────────────────


@dataclass
class PatchSpec:
    """Values for a single patch run.

    None or "" for any optional field means the field is left untouched.
    A version equal to default_version_sentinel counts as not provided.
    """

    destination_dir: Path = Path(DEFAULT_DESTINATION)
    source_files: list[Path] = field(default_factory=list)
    description: str | None = None
    since_build: str | None = None
    until_build: str | None = None
    version: str | None = None
    change_notes: str | None = None
    plugin_id: str | None = None
    use_cdata: bool = True
    default_version_sentinel: str = DEFAULT_VERSION


@dataclass(frozen=True)
class PatchWarning:
    """An existing value that was overwritten during patching."""

    file: Path | None
    tag: str
    attribute: str | None
    existing: str
    new: str

    @property
    def message(self) -> str:
        if self.attribute is None:
            return (
                f"Patching plugin.xml: value of '{self.tag}[{self.existing}]' "
                f"tag will be set to '{self.new}'"
            )
        return (
            f"Patching plugin.xml: attribute '{self.attribute}=[{self.existing}]' "
            f"of '{self.tag}' tag will be set to '{self.new}'"
        )

    def __str__(self):
        if self.file is None:
            return self.message
        return f"{self.file}: {self.message}"


@dataclass
class PatchReport:
    """Outcome of patch_all: written files and overwrite warnings, in order."""

    output_files: list[Path] = field(default_factory=list)
    warnings: list[PatchWarning] = field(default_factory=list)


# ── Reading and writing ────────────────────────────────────────────


def _parser() -> etree.XMLParser:
    # Keep CDATA sections from the source; never fetch external entities.
    return etree.XMLParser(
        strip_cdata=False, resolve_entities=False, no_network=True,
    )


def load_document(path: str | Path) -> etree._ElementTree:
    """Parse a plugin descriptor from disk.

    Raises:
        MalformedManifestError: The file is not well-formed XML.
        FileNotFoundError: The file does not exist.
    """
    with open(path, "rb") as f:
        try:
            return etree.parse(f, _parser())
        except etree.XMLSyntaxError as e:
            raise MalformedManifestError(path, e) from e


def serialize_document(document: etree._ElementTree) -> bytes:
    """Serialize a tree to UTF-8 bytes with an XML declaration.

    The DOCTYPE and source whitespace are kept. Empty elements are
    written as <tag attr="v" />.
    """
    body = etree.tostring(document, encoding="UTF-8", xml_declaration=False)
    body = _VERBATIM_OR_EMPTY_END.sub(lambda m: m.group(1) or b" />", body)
    if not body.endswith(b"\n"):
        body += b"\n"
    return XML_DECLARATION + body


def write_document(document: etree._ElementTree, path: str | Path) -> None:
    """Write a tree to path, overwriting any existing file."""
    Path(path).write_bytes(serialize_document(document))


# ── Patch operations ───────────────────────────────────────────────


def _plugin_root(document):
    """Return the root element if it is <idea-plugin>, else None."""
    root = document.getroot()
    if root.tag != PLUGIN_ROOT_TAG:
        return None
    return root


def _direct_text(element) -> str:
    """Text directly inside element, CDATA included, child elements excluded."""
    return "".join([element.text or ""] + [child.tail or "" for child in element])


def _insert_first(root, element) -> None:
    # Reuse the root's leading indentation so following siblings stay aligned.
    if root.text is not None and not root.text.strip():
        element.tail = root.text
    root.insert(0, element)


def patch_tag(
    document: etree._ElementTree,
    name: str,
    content: str,
    use_cdata: bool = True,
    source: Path | None = None,
) -> list[PatchWarning]:
    """Set the content of the <name> child of <idea-plugin>.

    An existing <name> element has its whole content replaced. A missing
    one is created as the first child of the root. Content of
    <description> and <change-notes> is wrapped in CDATA when use_cdata
    is set; every other tag gets plain text.

    Args:
        document: Parsed descriptor, mutated in place.
        name: Child tag name.
        content: New content. Empty means no-op.
        use_cdata: Wrap description/change-notes content in CDATA.
        source: Source file, recorded on warnings.

    Returns:
        Warnings for a non-empty value that was overwritten.
    """
    if not content:
        return []
    root = _plugin_root(document)
    if root is None:
        return []

    warnings = []
    tag = root.find(name)
    if tag is not None:
        existing = _direct_text(tag)
        if existing:
            warnings.append(PatchWarning(source, name, None, existing, content))
        for child in list(tag):
            tag.remove(child)
    else:
        tag = etree.Element(name)
        _insert_first(root, tag)

    if use_cdata and name in CDATA_TAGS:
        tag.text = etree.CDATA(content)
    else:
        tag.text = content
    return warnings


def patch_attribute(
    document: etree._ElementTree,
    tag_name: str,
    attribute_name: str,
    attribute_value: str,
    source: Path | None = None,
) -> list[PatchWarning]:
    """Set attribute_name on the <tag_name> child of <idea-plugin>.

    A missing <tag_name> element is created as the first child of the root.

    Returns:
        Warnings for a non-empty attribute value that was overwritten.
    """
    if not attribute_value:
        return []
    root = _plugin_root(document)
    if root is None:
        return []

    warnings = []
    tag = root.find(tag_name)
    if tag is not None:
        existing = tag.get(attribute_name)
        if existing:
            warnings.append(
                PatchWarning(source, tag_name, attribute_name, existing, attribute_value)
            )
        tag.set(attribute_name, attribute_value)
    else:
        tag = etree.Element(tag_name)
        tag.set(attribute_name, attribute_value)
        _insert_first(root, tag)
    return warnings


def patch_document(
    document: etree._ElementTree,
    spec: PatchSpec,
    source: Path | None = None,
) -> list[PatchWarning]:
    """Apply every configured value of spec to an already parsed tree."""
    warnings = []
    if spec.since_build:
        warnings += patch_attribute(
            document, "idea-version", "since-build", spec.since_build, source,
        )
    if spec.until_build:
        warnings += patch_attribute(
            document, "idea-version", "until-build", spec.until_build, source,
        )
    if spec.description:
        warnings += patch_tag(
            document, "description", spec.description, spec.use_cdata, source,
        )
    if spec.change_notes:
        warnings += patch_tag(
            document, "change-notes", spec.change_notes, spec.use_cdata, source,
        )
    if spec.version and spec.version != spec.default_version_sentinel:
        warnings += patch_tag(
            document, "version", spec.version, spec.use_cdata, source,
        )
    if spec.plugin_id:
        warnings += patch_tag(document, "id", spec.plugin_id, spec.use_cdata, source)
    return warnings


def patch_all(spec: PatchSpec) -> PatchReport:
    """Patch every source descriptor of spec into spec.destination_dir.

    An empty source list skips the run: nothing is created or written.
    The first malformed descriptor aborts the batch; files before it have
    already been written.

    Raises:
        MalformedManifestError: A source is not well-formed XML.
        ValueError: A destination file would be the source file itself.
        OSError: A source is unreadable or the destination is not writable.
    """
    report = PatchReport()
    if not spec.source_files:
        return report

    out_dir = Path(spec.destination_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    for source in spec.source_files:
        source = Path(source)
        out_path = out_dir / source.name
        if out_path.resolve() == source.resolve():
            raise ValueError(
                f"Destination {out_path} is the source file itself; "
                "choose a destination outside the source directory"
            )

        document = load_document(source)
        report.warnings += patch_document(document, spec, source)
        write_document(document, out_path)
        report.output_files.append(out_path)

    return report
