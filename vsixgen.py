"""VSIX descriptor build-artifact generator.

Turns the declarative descriptors of a Visual Studio extension into build
artifacts:

  * constant tables (C# or Python source) generated from the package manifest
    (source.extension.vsixmanifest) and one or more command tables (.vsct);
  * a derived copy of the manifest with <ProjectTemplate>/<ItemTemplate>
    content entries injected for template folders discovered by the build.
    The source manifest is never modified.

Usage:
    vsixgen generate --manifest source.extension.vsixmanifest \\
        --vsct Commands.vsct --namespace MyExtension --output obj/Vsix.g.cs
    vsixgen inject --source source.extension.vsixmanifest \\
        --output obj/source.extension.vsixmanifest --project-templates
"""

import argparse
import ast
import copy
import keyword
import logging
import os
import re
import tempfile
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from lxml import etree

logger = logging.getLogger("vsixgen")

VSIX_NAMESPACE = "http://schemas.microsoft.com/developer/vsx-schema/2011"
VSCT_NAMESPACE = "http://schemas.microsoft.com/VisualStudio/2005-10-18/CommandTable"
VSIX_NS = {"vsix": VSIX_NAMESPACE}
VSCT_NS = {"vsct": VSCT_NAMESPACE}

DEFAULT_PROJECT_TEMPLATES_PATH = "ProjectTemplates"
DEFAULT_ITEM_TEMPLATES_PATH = "ItemTemplates"
DEFAULT_INFO_CLASS = "VsixInfo"
LANGUAGES = ("csharp", "python")


# ===--- Error contracts ---=== #


DIAGNOSTIC_IDS: dict[str, str] = {
    "FILE_NOT_FOUND": "VSIXSDK020",
    "INVALID_DESCRIPTOR_STRUCTURE": "VSIXSDK021",
    "MALFORMED_XML": "VSIXSDK022",
    "AMBIGUOUS_PATH": "VSIXSDK023",
    "MISSING_REQUIRED_FIELD": "VSIXSDK024",
    "DUPLICATE_GROUP_NAME": "VSIXSDK030",
    "DUPLICATE_ID_NAME": "VSIXSDK031",
    "INVALID_GUID_FORMAT": "VSIXSDK032",
    "INVALID_ID_VALUE": "VSIXSDK033",
    "INVALID_IDENTIFIER": "VSIXSDK040",
    "ESCAPING_FAILURE": "VSIXSDK041",
    "IO_FAILURE": "VSIXSDK050",
    "UNEXPECTED_FAILURE": "VSIXSDK099",
}
"""Stable diagnostic id per failure class.

Build tooling matches on these ids, so existing entries must never be
renumbered. VSIXSDK020/021 predate the others and keep their values."""

VALID_ERROR_CODES = frozenset(DIAGNOSTIC_IDS)
VALID_CONFIG_ERROR_CODES = {
    "MISSING_INPUT",
    "INVALID_IDENTIFIER",
}


class VsixGenError(Exception):
    """A fatal pipeline failure with a stable code and the offending file."""

    def __init__(
        self,
        code: str,
        message: str,
        path: Path | None = None,
        suggestion: str | None = None,
    ):
        if code not in VALID_ERROR_CODES:
            raise ValueError(f"Unknown error code: {code}")
        super().__init__(message)
        self.code = code
        self.message = message
        self.path = path
        self.suggestion = suggestion

    @property
    def diagnostic_id(self) -> str:
        return DIAGNOSTIC_IDS[self.code]


class ConfigError(Exception):
    def __init__(self, code: str, message: str, suggestion: str | None = None):
        if code not in VALID_CONFIG_ERROR_CODES:
            raise ValueError(f"Unknown config error code: {code}")
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion


# ===--- Diagnostics ---=== #


@dataclass(frozen=True)
class Diagnostic:
    """One entry of a task's diagnostic log.

    Attributes:
        level: logging level. ERROR entries are failures and always carry a
            code; INFO entries are normal progress; DEBUG entries are
            low-importance notices such as "entry already exists".
        message: Human-readable text, naming the file where relevant.
        code: Failure class from VALID_ERROR_CODES, None for non-failures.
        path: File the diagnostic refers to, if any.
    """

    level: int
    message: str
    code: str | None = None
    path: Path | None = None

    @property
    def diagnostic_id(self) -> str | None:
        return DIAGNOSTIC_IDS[self.code] if self.code else None

    def __str__(self) -> str:
        if self.code:
            return f"{self.diagnostic_id} [{self.code}]: {self.message}"
        return self.message


@dataclass(frozen=True)
class TaskResult:
    success: bool
    diagnostics: tuple[Diagnostic, ...]

    @property
    def errors(self) -> tuple[Diagnostic, ...]:
        return tuple(d for d in self.diagnostics if d.level >= logging.ERROR)

    @property
    def error_codes(self) -> tuple[str, ...]:
        return tuple(d.code for d in self.errors if d.code)

    @property
    def messages(self) -> tuple[str, ...]:
        return tuple(d.message for d in self.diagnostics)


class DiagnosticLog:
    """Ordered diagnostics for one task invocation, mirrored to the logger."""

    def __init__(self):
        self._entries: list[Diagnostic] = []

    def add(
        self,
        level: int,
        message: str,
        code: str | None = None,
        path: Path | None = None,
    ) -> Diagnostic:
        diagnostic = Diagnostic(level=level, message=message, code=code, path=path)
        self._entries.append(diagnostic)
        logger.log(level, "%s", diagnostic)
        return diagnostic

    def error(self, code: str, message: str, path: Path | None = None) -> Diagnostic:
        if code not in VALID_ERROR_CODES:
            raise ValueError(f"Unknown error code: {code}")
        return self.add(logging.ERROR, message, code=code, path=path)

    def from_error(self, err: VsixGenError) -> Diagnostic:
        return self.error(err.code, err.message, path=err.path)

    def info(self, message: str, path: Path | None = None) -> Diagnostic:
        return self.add(logging.INFO, message, path=path)

    def debug(self, message: str, path: Path | None = None) -> Diagnostic:
        return self.add(logging.DEBUG, message, path=path)

    @property
    def entries(self) -> tuple[Diagnostic, ...]:
        return tuple(self._entries)

    @property
    def has_errors(self) -> bool:
        return any(d.level >= logging.ERROR for d in self._entries)

    def result(self) -> TaskResult:
        return TaskResult(success=not self.has_errors, diagnostics=self.entries)


# ===--- Descriptor document model ---=== #


_PROLOG_RE = re.compile(rb"^(?:\xef\xbb\xbf)?(?:<\?xml[^>]*\?>)?\s*")
_EPILOG_RE = re.compile(rb"\s*$")
_MARKUP_RE = re.compile(
    rb"<!--.*?-->"
    rb"|<!\[CDATA\[.*?\]\]>"
    rb"|<\?.*?\?>"
    rb"|<!DOCTYPE(?:[^\[>]|\[.*?\])*>"
    rb"|</(?P<end>[^\s>]+)\s*>"
    rb"|<(?P<start>[^\s/>!?]+)(?:\"[^\"]*\"|'[^']*'|[^'\">])*>",
    re.DOTALL,
)
_EMPTY_TAG_CLOSE_RE = re.compile(rb"\s*/>$")


class DescriptorDocument:
    """A parsed descriptor together with the exact bytes it was read from.

    An unmodified document saves its source bytes verbatim. Elements added
    with append_child are recorded so a save can splice them into the
    source bytes and leave every other byte as it was.
    """

    def __init__(self, path: Path, tree: etree._ElementTree, source_bytes: bytes):
        self.path = path
        self.tree = tree
        self.source_bytes = source_bytes
        self.modified = False
        self.appended: list[tuple[etree._Element, etree._Element]] = []

    @property
    def root(self) -> etree._Element:
        return self.tree.getroot()


def _make_parser() -> etree.XMLParser:
    return etree.XMLParser(
        remove_blank_text=False,
        remove_comments=False,
        remove_pis=False,
        resolve_entities=False,
        no_network=True,
    )


def _document_path(node: etree._Element) -> Path | None:
    url = node.getroottree().docinfo.URL
    return Path(url) if url else None


def load_document(path: Path) -> DescriptorDocument:
    """Parse a descriptor file into a DescriptorDocument.

    Raises:
        VsixGenError: FILE_NOT_FOUND if path is not an existing file,
            IO_FAILURE if it cannot be read, MALFORMED_XML if it is not
            well-formed XML.
    """
    path = Path(path)
    if not path.is_file():
        raise VsixGenError("FILE_NOT_FOUND", f"Descriptor not found: {path}", path=path)
    try:
        raw = path.read_bytes()
    except OSError as err:
        raise VsixGenError("IO_FAILURE", f"Cannot read {path}: {err}", path=path) from err
    try:
        root = etree.fromstring(raw, _make_parser(), base_url=str(path))
    except etree.XMLSyntaxError as err:
        raise VsixGenError(
            "MALFORMED_XML", f"Malformed XML in {path}: {err}", path=path
        ) from err
    return DescriptorDocument(path, root.getroottree(), raw)


def find_single(
    context: DescriptorDocument | etree._Element,
    path: str,
    namespaces: dict[str, str],
) -> etree._Element | None:
    """Return the one element matching an XPath, or None when nothing matches.

    Args:
        context: Document (for absolute paths) or element (for relative paths).
        path: XPath expression selecting elements, e.g. "/vsix:PackageManifest".
        namespaces: Prefix -> namespace URI map used by the expression.

    Raises:
        VsixGenError: AMBIGUOUS_PATH when more than one element matches.
        ValueError: If the expression is invalid or does not select nodes.
    """
    if isinstance(context, DescriptorDocument):
        target = context.tree
        file_path = context.path
    else:
        target = context
        file_path = _document_path(context)
    try:
        matches = target.xpath(path, namespaces=namespaces)
    except etree.XPathError as err:
        raise ValueError(f"Invalid lookup path {path!r}: {err}") from err
    if not isinstance(matches, list):
        raise ValueError(f"Lookup path {path!r} does not select elements")
    if len(matches) > 1:
        raise VsixGenError(
            "AMBIGUOUS_PATH",
            f"{path} matches {len(matches)} elements in {file_path}; expected at most one",
            path=file_path,
        )
    return matches[0] if matches else None


def create_element(
    document: DescriptorDocument,
    local_name: str,
    namespace_uri: str,
    attributes: dict[str, str] | None = None,
) -> etree._Element:
    """Create a detached namespaced element for later append_child.

    Once appended, the element serializes with the prefix already in scope
    for namespace_uri (unprefixed under a default namespace declaration).
    """
    return document.root.makeelement(
        etree.QName(namespace_uri, local_name).text, attrib=attributes or {}
    )


def append_child(
    document: DescriptorDocument, parent: etree._Element, child: etree._Element
) -> None:
    parent.append(child)
    document.appended.append((parent, child))
    document.modified = True


def _uses_crlf(raw: bytes) -> bool:
    return b"\r\n" in raw and raw.count(b"\n") == raw.count(b"\r\n")


@dataclass
class _TagSpan:
    name: bytes
    start: int
    start_end: int
    end: int | None = None


def _scan_tags(raw: bytes) -> list[_TagSpan] | None:
    """Locate every element's tags in raw, in document order.

    Returns None when the markup cannot be matched up, e.g. for UTF-16
    sources or unbalanced tags.
    """
    spans: list[_TagSpan] = []
    stack: list[_TagSpan] = []
    for match in _MARKUP_RE.finditer(raw):
        if match.group("start"):
            span = _TagSpan(match.group("start"), match.start(), match.end())
            spans.append(span)
            if not match.group(0).endswith(b"/>"):
                stack.append(span)
        elif match.group("end"):
            if not stack or stack[-1].name != match.group("end"):
                return None
            stack.pop().end = match.start()
    if stack:
        return None
    return spans


def _render_children(
    parent: etree._Element, children: list[etree._Element], encoding: str, empty_close: bytes
) -> bytes:
    # The holder repeats the parent's in-scope namespaces, so the children
    # serialize with the prefixes they resolve to at their insertion point.
    holder = etree.Element(parent.tag, nsmap=parent.nsmap)
    for child in children:
        holder.append(copy.deepcopy(child))
    serialized = etree.tostring(holder, encoding=encoding, xml_declaration=False)
    inner = serialized[serialized.index(b">") + 1 : serialized.rindex(b"</")]
    return inner.replace(b"/>", empty_close)


def _splice_appended(document: DescriptorDocument, encoding: str) -> bytes | None:
    """Insert appended elements into the source bytes.

    Returns None when the source cannot be spliced and must be serialized
    as a whole.
    """
    raw = document.source_bytes
    if not document.appended:
        return None
    spans = _scan_tags(raw)
    if spans is None:
        return None

    added = {child for _parent, child in document.appended}

    def is_added(element: etree._Element) -> bool:
        return element in added or any(a in added for a in element.iterancestors())

    originals = [el for el in document.root.iter(etree.Element) if not is_added(el)]
    if len(originals) != len(spans):
        return None
    span_of = dict(zip(originals, spans))

    grouped: dict[etree._Element, list[etree._Element]] = {}
    for parent, child in document.appended:
        if not is_added(parent):
            grouped.setdefault(parent, []).append(child)

    empty_close = b" />" if b" />" in raw else b"/>"
    edits: list[tuple[int, int, bytes]] = []
    for parent, children in grouped.items():
        span = span_of[parent]
        inner = _render_children(parent, children, encoding, empty_close)
        if span.end is not None:
            edits.append((span.end, span.end, inner))
        else:
            start_tag = _EMPTY_TAG_CLOSE_RE.sub(b">", raw[span.start : span.start_end])
            edits.append(
                (span.start, span.start_end, start_tag + inner + b"</" + span.name + b">")
            )

    output = raw
    for begin, end, replacement in sorted(edits, reverse=True):
        output = output[:begin] + replacement + output[end:]
    return output


def serialize_document(document: DescriptorDocument) -> bytes:
    """Return the bytes save_document would write.

    Unmodified documents return their source bytes unchanged. Appended
    elements are spliced into the source bytes before their parent's end
    tag. Anything else is serialized by lxml, then wrapped in the source's
    own XML declaration and trailing whitespace, with CRLF line endings
    restored when the source used them throughout.
    """
    raw = document.source_bytes
    if not document.modified:
        return raw

    encoding = document.tree.docinfo.encoding or "UTF-8"
    spliced = _splice_appended(document, encoding)
    if spliced is not None:
        return spliced

    prolog = _PROLOG_RE.match(raw).group(0)
    if b"<?xml" not in prolog and raw.startswith((b"\xff\xfe", b"\xfe\xff")):
        # UTF-16 source: the byte-level prolog is not recoverable.
        return etree.tostring(document.tree, encoding=encoding, xml_declaration=True)

    body = etree.tostring(document.tree, encoding=encoding, xml_declaration=False)
    body = body.strip()
    if _uses_crlf(raw):
        body = body.replace(b"\n", b"\r\n")
    epilog = _EPILOG_RE.search(raw).group(0)
    return prolog + body + epilog


def write_artifact(path: Path, content: bytes) -> Path:
    """Write content to path atomically, creating parent directories.

    The bytes go to a temporary file next to the destination which then
    replaces it, so the destination is either fully written or untouched.

    Raises:
        VsixGenError: IO_FAILURE if the directory or file cannot be written.
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(content)
            os.chmod(tmp_name, 0o644)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as err:
        raise VsixGenError("IO_FAILURE", f"Cannot write {path}: {err}", path=path) from err
    return path


def save_document(document: DescriptorDocument, path: Path) -> Path:
    return write_artifact(path, serialize_document(document))


# ===--- Manifest metadata ---=== #


@dataclass(frozen=True)
class ManifestMetadata:
    """Scalar fields of the manifest <Metadata> block, as written in the source.

    Values are the XML text after entity decoding, untrimmed. Optional
    fields are "" when absent; is_preview is False unless <Preview> is "true".
    """

    id: str
    version: str
    display_name: str
    language: str = ""
    publisher: str = ""
    description: str = ""
    more_info: str = ""
    license: str = ""
    getting_started_guide: str = ""
    release_notes: str = ""
    icon: str = ""
    preview_image: str = ""
    tags: str = ""
    is_preview: bool = False


METADATA_CONSTANTS: tuple[tuple[str, str], ...] = (
    ("Id", "id"),
    ("Version", "version"),
    ("Language", "language"),
    ("Publisher", "publisher"),
    ("DisplayName", "display_name"),
    ("Description", "description"),
    ("MoreInfo", "more_info"),
    ("License", "license"),
    ("GettingStartedGuide", "getting_started_guide"),
    ("ReleaseNotes", "release_notes"),
    ("Icon", "icon"),
    ("PreviewImage", "preview_image"),
    ("Tags", "tags"),
    ("IsPreview", "is_preview"),
)
"""Emitted constant name -> ManifestMetadata field, in emission order."""
INFO_MEMBER_NAMES = frozenset(constant for constant, _field in METADATA_CONSTANTS)

_IDENTITY_ATTRIBUTES = (
    ("Id", "id"),
    ("Version", "version"),
    ("Language", "language"),
    ("Publisher", "publisher"),
)
_METADATA_ELEMENTS = (
    ("DisplayName", "display_name"),
    ("Description", "description"),
    ("MoreInfo", "more_info"),
    ("License", "license"),
    ("GettingStartedGuide", "getting_started_guide"),
    ("ReleaseNotes", "release_notes"),
    ("Icon", "icon"),
    ("PreviewImage", "preview_image"),
    ("Tags", "tags"),
)
_REQUIRED_METADATA = (
    ("id", "Identity/@Id"),
    ("version", "Identity/@Version"),
    ("display_name", "DisplayName"),
)


def _string_value(element: etree._Element) -> str:
    # XPath string-value: all descendant text, comments and PIs excluded.
    return str(element.xpath("string()"))

def extract_manifest_metadata(document: DescriptorDocument) -> ManifestMetadata:
    """Read the <Metadata> block of a VSIX manifest.

    Raises:
        VsixGenError: INVALID_DESCRIPTOR_STRUCTURE if PackageManifest or
            Metadata is absent, MISSING_REQUIRED_FIELD if Id, Version or
            DisplayName is missing or empty, AMBIGUOUS_PATH if an element
            that may appear once appears more than once.
    """
    manifest = find_single(document, "/vsix:PackageManifest", VSIX_NS)
    if manifest is None:
        raise VsixGenError(
            "INVALID_DESCRIPTOR_STRUCTURE",
            f"Invalid manifest {document.path}: PackageManifest element not found",
            path=document.path,
        )
    metadata = find_single(manifest, "vsix:Metadata", VSIX_NS)
    if metadata is None:
        raise VsixGenError(
            "INVALID_DESCRIPTOR_STRUCTURE",
            f"Invalid manifest {document.path}: Metadata element not found",
            path=document.path,
        )

    values: dict[str, str] = {}
    identity = find_single(metadata, "vsix:Identity", VSIX_NS)
    for attribute, field_name in _IDENTITY_ATTRIBUTES:
        values[field_name] = identity.get(attribute, "") if identity is not None else ""
    for element_name, field_name in _METADATA_ELEMENTS:
        element = find_single(metadata, f"vsix:{element_name}", VSIX_NS)
        values[field_name] = _string_value(element) if element is not None else ""

    for field_name, label in _REQUIRED_METADATA:
        if not values[field_name]:
            raise VsixGenError(
                "MISSING_REQUIRED_FIELD",
                f"Manifest {document.path} is missing required field {label}",
                path=document.path,
            )

    preview = find_single(metadata, "vsix:Preview", VSIX_NS)
    is_preview = preview is not None and _string_value(preview).strip().lower() == "true"
    return ManifestMetadata(**values, is_preview=is_preview)


def load_manifest_metadata(path: Path) -> ManifestMetadata:
    return extract_manifest_metadata(load_document(path))


# ===--- Command tables ---=== #


_GUID_RE = re.compile(
    r"^(\{)?[0-9A-Fa-f]{8}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{12}(?(1)\})$"
)
_ID_LITERAL_RE = re.compile(r"^(?:0[xX][0-9A-Fa-f]+|-?[0-9]+)$")
INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


@dataclass(frozen=True)
class GuidValue:
    """A 128-bit GUID plus the text it was declared with.

    braced_upper is the canonical rendering. source_text is kept verbatim so
    a non-canonical declaration (lower case, no braces) is not lost.
    """

    value: uuid.UUID
    source_text: str | None = None

    @property
    def braced_upper(self) -> str:
        return "{" + str(self.value).upper() + "}"

    @property
    def dashed_lower(self) -> str:
        return str(self.value)

    @property
    def has_alternate_form(self) -> bool:
        return self.source_text is not None and self.source_text != self.braced_upper


@dataclass(frozen=True)
class IdSymbol:
    name: str
    value: int
    literal: str

    @property
    def is_hex(self) -> bool:
        return self.literal.strip()[:2].lower() == "0x"


@dataclass(frozen=True)
class GuidGroup:
    name: str
    guid: GuidValue
    ids: tuple[IdSymbol, ...] = ()
    source: Path | None = None


@dataclass(frozen=True)
class CommandTableModel:
    groups: tuple[GuidGroup, ...]
    sources: tuple[Path, ...] = ()

    def group(self, name: str) -> GuidGroup | None:
        for group in self.groups:
            if group.name == name:
                return group
        return None


def _location(path: Path | None) -> str:
    return f" in {path}" if path is not None else ""


def parse_guid(text: str, path: Path | None = None) -> GuidValue:
    stripped = text.strip()
    if not _GUID_RE.match(stripped):
        raise VsixGenError(
            "INVALID_GUID_FORMAT",
            f"Invalid GUID value {text!r}{_location(path)}",
            path=path,
            suggestion="Use the registry form {xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx}.",
        )
    return GuidValue(uuid.UUID(stripped.strip("{}")), source_text=text)


def parse_id_value(text: str, path: Path | None = None) -> int:
    """Parse an IDSymbol literal: 0x-prefixed hex or plain decimal."""
    stripped = text.strip()
    if not _ID_LITERAL_RE.match(stripped):
        raise VsixGenError(
            "INVALID_ID_VALUE",
            f"Invalid IDSymbol value {text!r}{_location(path)}",
            path=path,
            suggestion="Write IDs as hex (0x0100) or decimal (256).",
        )
    if stripped[:2].lower() == "0x":
        value = int(stripped[2:], 16)
    else:
        value = int(stripped, 10)
    if not INT32_MIN <= value <= INT32_MAX:
        raise VsixGenError(
            "INVALID_ID_VALUE",
            f"IDSymbol value {text!r}{_location(path)} does not fit in a 32-bit integer",
            path=path,
        )
    return value


def _required_attribute(
    element: etree._Element, attribute: str, owner: str, path: Path | None
) -> str:
    value = element.get(attribute)
    if value is None or not value.strip():
        raise VsixGenError(
            "INVALID_DESCRIPTOR_STRUCTURE",
            f"{owner} in {path} has no {attribute} attribute",
            path=path,
        )
    return value


def _parse_guid_symbol(element: etree._Element, path: Path | None) -> GuidGroup:
    name = _required_attribute(element, "name", "GuidSymbol", path)
    guid = parse_guid(_required_attribute(element, "value", f"GuidSymbol {name}", path), path)

    ids: list[IdSymbol] = []
    seen: set[str] = set()
    for id_element in element.iterfind("vsct:IDSymbol", VSCT_NS):
        id_name = _required_attribute(id_element, "name", f"IDSymbol in {name}", path)
        literal = _required_attribute(id_element, "value", f"IDSymbol {name}.{id_name}", path)
        if id_name in seen:
            raise VsixGenError(
                "DUPLICATE_ID_NAME",
                f"IDSymbol {id_name} is declared twice in GuidSymbol {name} ({path})",
                path=path,
            )
        seen.add(id_name)
        ids.append(IdSymbol(id_name, parse_id_value(literal, path), literal))
    return GuidGroup(name=name, guid=guid, ids=tuple(ids), source=path)


def parse_command_table_document(document: DescriptorDocument) -> CommandTableModel:
    """Extract the GuidSymbol groups of one .vsct document, in source order.

    A document without a <Symbols> section has no groups.

    Raises:
        VsixGenError: INVALID_DESCRIPTOR_STRUCTURE (no CommandTable root, or
            a symbol without name/value), INVALID_GUID_FORMAT,
            INVALID_ID_VALUE, DUPLICATE_GROUP_NAME, DUPLICATE_ID_NAME.
    """
    root = find_single(document, "/vsct:CommandTable", VSCT_NS)
    if root is None:
        raise VsixGenError(
            "INVALID_DESCRIPTOR_STRUCTURE",
            f"Invalid command table {document.path}: CommandTable element not found",
            path=document.path,
        )
    symbols = find_single(root, "vsct:Symbols", VSCT_NS)
    if symbols is None:
        return CommandTableModel(groups=(), sources=(document.path,))

    groups: list[GuidGroup] = []
    seen: set[str] = set()
    for element in symbols.iterfind("vsct:GuidSymbol", VSCT_NS):
        group = _parse_guid_symbol(element, document.path)
        if group.name in seen:
            raise VsixGenError(
                "DUPLICATE_GROUP_NAME",
                f"GuidSymbol {group.name} is declared twice in {document.path}",
                path=document.path,
            )
        seen.add(group.name)
        groups.append(group)
    return CommandTableModel(groups=tuple(groups), sources=(document.path,))


def merge_command_tables(tables: Sequence[CommandTableModel]) -> CommandTableModel:
    """Fold partial command tables into one, in the order given.

    A group name declared by two tables fails the whole merge; neither
    declaration wins.
    """
    groups: list[GuidGroup] = []
    owners: dict[str, Path | None] = {}
    for table in tables:
        for group in table.groups:
            if group.name in owners:
                raise VsixGenError(
                    "DUPLICATE_GROUP_NAME",
                    f"GuidSymbol {group.name} is declared in both "
                    f"{owners[group.name]} and {group.source}",
                    path=group.source,
                )
            owners[group.name] = group.source
            groups.append(group)
    sources = tuple(source for table in tables for source in table.sources)
    return CommandTableModel(groups=tuple(groups), sources=sources)


def extract_command_table(paths: Sequence[Path]) -> CommandTableModel:
    if not paths:
        raise ValueError("extract_command_table requires at least one path")
    partials = [parse_command_table_document(load_document(path)) for path in paths]
    return merge_command_tables(partials)


# ===--- Identifiers and literals ---=== #


_CSHARP_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
CSHARP_KEYWORDS = frozenset(
    """
    abstract as base bool break byte case catch char checked class const
    continue decimal default delegate do double else enum event explicit
    extern false finally fixed float for foreach goto if implicit in int
    interface internal is lock long namespace new null object operator out
    override params private protected public readonly ref return sbyte
    sealed short sizeof stackalloc static string struct switch this throw
    true try typeof uint ulong unchecked unsafe ushort using virtual void
    volatile while
    """.split()
)
PYTHON_RESERVED_NAMES = frozenset({"uuid", "Final"})
"""Names the generated Python module needs unshadowed inside class bodies."""

LANGUAGE_LABELS = {"csharp": "C#", "python": "Python"}

_SIMPLE_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}
_CSHARP_ESCAPES = {
    "\\": "\\",
    '"': '"',
    "'": "'",
    "0": "\0",
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
}
_LINE_BREAK_CHARS = frozenset({"\x85", "\u2028", "\u2029"})


def is_identifier(name: str, language: str) -> bool:
    if language == "python":
        return (
            name.isidentifier()
            and not keyword.iskeyword(name)
            and name not in PYTHON_RESERVED_NAMES
        )
    return bool(_CSHARP_IDENTIFIER_RE.match(name)) and name not in CSHARP_KEYWORDS


def validate_identifier(
    name: str, language: str, owner: str, path: Path | None = None
) -> str:
    if not is_identifier(name, language):
        raise VsixGenError(
            "INVALID_IDENTIFIER",
            f"{owner} {name!r} is not a usable {LANGUAGE_LABELS[language]} identifier",
            path=path,
        )
    return name


def decode_csharp_literal(literal: str) -> str:
    """Return the value a C# compiler gives a regular string literal.

    Supports the simple escapes and \\uXXXX. Raises ValueError for anything
    a regular literal cannot contain (raw quotes or line breaks, unknown
    escapes).
    """
    if len(literal) < 2 or literal[0] != '"' or literal[-1] != '"':
        raise ValueError(f"Not a C# string literal: {literal!r}")
    body = literal[1:-1]
    out: list[str] = []
    i = 0
    while i < len(body):
        char = body[i]
        if char != "\\":
            if char in '"\r\n' or char in _LINE_BREAK_CHARS:
                raise ValueError(f"Unescaped {char!r} in C# string literal")
            out.append(char)
            i += 1
            continue
        marker = body[i + 1 : i + 2]
        if marker in _CSHARP_ESCAPES:
            out.append(_CSHARP_ESCAPES[marker])
            i += 2
        elif marker == "u":
            digits = body[i + 2 : i + 6]
            if len(digits) != 4 or not all(c in "0123456789abcdefABCDEF" for c in digits):
                raise ValueError(f"Malformed \\u escape in C# string literal: {literal!r}")
            out.append(chr(int(digits, 16)))
            i += 6
        else:
            raise ValueError(f"Unsupported escape \\{marker} in C# string literal")
    return "".join(out)


def decode_string_literal(literal: str, language: str) -> str:
    if language == "python":
        value = ast.literal_eval(literal)
        if not isinstance(value, str):
            raise ValueError(f"Not a Python string literal: {literal!r}")
        return value
    return decode_csharp_literal(literal)


def escape_string_literal(
    text: str, language: str, owner: str = "value", path: Path | None = None
) -> str:
    """Render text as a double-quoted string literal of the target language.

    The literal is decoded again and compared with text; the emitted
    constant therefore always evaluates to the exact source characters.

    Raises:
        VsixGenError: ESCAPING_FAILURE if text cannot be represented, e.g. an
            unpaired surrogate in C# source.
    """
    parts = ['"']
    for char in text:
        code = ord(char)
        if char in _SIMPLE_ESCAPES:
            parts.append(_SIMPLE_ESCAPES[char])
        elif 0xD800 <= code <= 0xDFFF:
            if language == "csharp":
                raise VsixGenError(
                    "ESCAPING_FAILURE",
                    f"{owner} contains unpaired surrogate U+{code:04X}, "
                    "which cannot be written to UTF-8 C# source",
                    path=path,
                )
            parts.append(f"\\u{code:04x}")
        elif code < 0x20 or code == 0x7F or char in _LINE_BREAK_CHARS:
            parts.append(f"\\u{code:04x}")
        else:
            parts.append(char)
    parts.append('"')
    literal = "".join(parts)

    try:
        round_trip = decode_string_literal(literal, language)
    except (ValueError, SyntaxError) as err:
        raise VsixGenError(
            "ESCAPING_FAILURE", f"{owner} cannot be escaped losslessly: {err}", path=path
        ) from err
    if round_trip != text:
        raise VsixGenError(
            "ESCAPING_FAILURE", f"{owner} does not survive escaping unchanged", path=path
        )
    return literal


def format_id_literal(symbol: IdSymbol) -> str:
    if symbol.is_hex:
        return f"0x{symbol.value:04X}"
    return str(symbol.value)


# ===--- Constant table emitter ---=== #


@dataclass(frozen=True)
class EmitOptions:
    """Rendering choices for emit_constants.

    Attributes:
        language: "csharp" or "python".
        namespace: C# namespace to wrap the classes in. None emits them in
            the global namespace. Ignored for Python.
        info_class: Class name for the manifest constants.
        table_class: Class name for the command-table constants.
        source_names: Descriptor file names listed in the header comment.
            Names only, never absolute paths, so output is machine-independent.
    """

    language: str = "csharp"
    namespace: str | None = None
    info_class: str = DEFAULT_INFO_CLASS
    table_class: str = "CommandsVsct"
    source_names: tuple[str, ...] = ()


def check_table_members(table: CommandTableModel, options: EmitOptions) -> None:
    """Reject group and ID names that would produce clashing members.

    A group with IDs becomes a nested class named after the group; a group
    without IDs becomes the members <name>String and <name>. Inside a nested
    class the names GuidString, Guid and the class's own name are taken.
    """
    language = options.language
    taken: dict[str, str] = {options.table_class: options.table_class}
    for group in table.groups:
        validate_identifier(group.name, language, "GuidSymbol", group.source)
        members = (group.name,) if group.ids else (f"{group.name}String", group.name)
        for member in members:
            if member in taken:
                raise VsixGenError(
                    "DUPLICATE_GROUP_NAME",
                    f"Generated member {member} for GuidSymbol {group.name} "
                    f"collides with {taken[member]}",
                    path=group.source,
                )
            taken[member] = group.name

        reserved = {"GuidString", "Guid", group.name}
        for symbol in group.ids:
            validate_identifier(symbol.name, language, f"IDSymbol in {group.name}", group.source)
            if symbol.name in reserved:
                raise VsixGenError(
                    "DUPLICATE_ID_NAME",
                    f"IDSymbol {symbol.name} in GuidSymbol {group.name} collides "
                    "with a generated member",
                    path=group.source,
                )


def _source_line(options: EmitOptions) -> str:
    if not options.source_names:
        return "Generated by vsixgen."
    return f"Generated by vsixgen from {', '.join(options.source_names)}."


def _csharp_info_class(metadata: ManifestMetadata, options: EmitOptions) -> list[str]:
    lines = [
        "/// <summary>",
        "/// Values from the VSIX manifest.",
        "/// </summary>",
        f"internal static class {options.info_class}",
        "{",
    ]
    for constant, field_name in METADATA_CONSTANTS:
        value = getattr(metadata, field_name)
        if isinstance(value, bool):
            lines.append(f"    public const bool {constant} = {'true' if value else 'false'};")
        else:
            literal = escape_string_literal(value, "csharp", f"Manifest {constant}")
            lines.append(f"    public const string {constant} = {literal};")
    lines.append("}")
    return lines


def _csharp_guid_members(
    string_name: str, guid_name: str, guid: GuidValue, indent: str
) -> list[str]:
    lines: list[str] = []
    if guid.has_alternate_form:
        lines.append(f"{indent}// Declared as {guid.source_text.strip()}")
    lines.append(f'{indent}public const string {string_name} = "{guid.braced_upper}";')
    lines.append(
        f"{indent}public static readonly global::System.Guid {guid_name} = "
        f'new global::System.Guid("{guid.dashed_lower}");'
    )
    return lines


def _csharp_table_class(table: CommandTableModel, options: EmitOptions) -> list[str]:
    lines = [
        "/// <summary>",
        "/// Symbols from the VSCT command tables.",
        "/// </summary>",
        f"internal static class {options.table_class}",
        "{",
    ]
    for index, group in enumerate(table.groups):
        if index:
            lines.append("")
        if not group.ids:
            lines.extend(
                _csharp_guid_members(f"{group.name}String", group.name, group.guid, "    ")
            )
            continue
        lines.append(f"    internal static class {group.name}")
        lines.append("    {")
        lines.extend(_csharp_guid_members("GuidString", "Guid", group.guid, "        "))
        for symbol in group.ids:
            lines.append(f"        public const int {symbol.name} = {format_id_literal(symbol)};")
        lines.append("    }")
    lines.append("}")
    return lines


def render_csharp(
    metadata: ManifestMetadata | None,
    table: CommandTableModel | None,
    options: EmitOptions,
) -> list[str]:
    lines = [
        "// <auto-generated>",
        f"//     {_source_line(options)}",
        "//     Changes to this file will be lost when the code is regenerated.",
        "// </auto-generated>",
        "",
    ]
    blocks: list[list[str]] = []
    if metadata is not None:
        blocks.append(_csharp_info_class(metadata, options))
    if table is not None:
        blocks.append(_csharp_table_class(table, options))

    indent = ""
    if options.namespace:
        lines.extend([f"namespace {options.namespace}", "{"])
        indent = "    "
    for index, block in enumerate(blocks):
        if index:
            lines.append("")
        lines.extend(f"{indent}{line}" if line else "" for line in block)
    if options.namespace:
        lines.append("}")
    return lines


def _python_info_class(metadata: ManifestMetadata, options: EmitOptions) -> list[str]:
    lines = [
        f"class {options.info_class}:",
        '    """Values from the VSIX manifest."""',
        "",
    ]
    for constant, field_name in METADATA_CONSTANTS:
        value = getattr(metadata, field_name)
        if isinstance(value, bool):
            lines.append(f"    {constant}: Final = {value}")
        else:
            literal = escape_string_literal(value, "python", f"Manifest {constant}")
            lines.append(f"    {constant}: Final = {literal}")
    return lines


def _python_guid_members(
    string_name: str, guid_name: str, guid: GuidValue, indent: str
) -> list[str]:
    lines: list[str] = []
    if guid.has_alternate_form:
        lines.append(f"{indent}# Declared as {guid.source_text.strip()}")
    lines.append(f'{indent}{string_name}: Final = "{guid.braced_upper}"')
    lines.append(f'{indent}{guid_name}: Final = uuid.UUID("{guid.dashed_lower}")')
    return lines


def _python_table_class(table: CommandTableModel, options: EmitOptions) -> list[str]:
    lines = [
        f"class {options.table_class}:",
        '    """Symbols from the VSCT command tables."""',
    ]
    for group in table.groups:
        lines.append("")
        if not group.ids:
            lines.extend(
                _python_guid_members(f"{group.name}String", group.name, group.guid, "    ")
            )
            continue
        lines.append(f"    class {group.name}:")
        lines.extend(_python_guid_members("GuidString", "Guid", group.guid, "        "))
        for symbol in group.ids:
            lines.append(f"        {symbol.name}: Final = {format_id_literal(symbol)}")
    return lines


def render_python(
    metadata: ManifestMetadata | None,
    table: CommandTableModel | None,
    options: EmitOptions,
) -> list[str]:
    lines = [
        f"# {_source_line(options)}",
        "# Changes to this file will be lost when the code is regenerated.",
        "",
    ]
    if table is not None:
        lines.append("import uuid")
    lines.append("from typing import Final")

    blocks: list[list[str]] = []
    if metadata is not None:
        blocks.append(_python_info_class(metadata, options))
    if table is not None:
        blocks.append(_python_table_class(table, options))
    for block in blocks:
        lines.extend(["", ""])
        lines.extend(block)
    return lines


_RENDERERS = {
    "csharp": render_csharp,
    "python": render_python,
}


def emit_constants(
    metadata: ManifestMetadata | None,
    table: CommandTableModel | None,
    options: EmitOptions,
) -> bytes:
    """Render the constant table source for the given models.

    Pure and deterministic: identical inputs give byte-identical output.
    Groups and IDs keep their extraction order; manifest constants follow
    METADATA_CONSTANTS.

    Args:
        metadata: Manifest fields, or None to emit no info class.
        table: Merged command table, or None to emit no table class.
        options: Target language, namespace and class names.

    Returns:
        UTF-8 encoded source with a trailing newline.

    Raises:
        ValueError: If both models are None or the language is unknown.
        VsixGenError: INVALID_IDENTIFIER, DUPLICATE_GROUP_NAME,
            DUPLICATE_ID_NAME or ESCAPING_FAILURE.
    """
    if metadata is None and table is None:
        raise ValueError("emit_constants needs manifest metadata, a command table, or both")
    if options.language not in _RENDERERS:
        raise ValueError(f"Unknown language: {options.language}")

    if metadata is not None:
        validate_identifier(options.info_class, options.language, "Info class name")
        if options.info_class in INFO_MEMBER_NAMES:
            raise VsixGenError(
                "INVALID_IDENTIFIER",
                f"Info class name {options.info_class} collides with its own constant "
                f"{options.info_class}",
            )
    if table is not None:
        validate_identifier(options.table_class, options.language, "Table class name")
        check_table_members(table, options)
    if metadata is not None and table is not None and options.info_class == options.table_class:
        raise VsixGenError(
            "INVALID_IDENTIFIER",
            f"Info class and table class are both named {options.info_class}",
        )

    lines = _RENDERERS[options.language](metadata, table, options)
    return ("\n".join(lines) + "\n").encode("utf-8")


def write_constants(path: Path, content: bytes) -> Path:
    return write_artifact(path, content)


# ===--- Manifest content injection ---=== #


@dataclass(frozen=True)
class ContentInjectionRequest:
    """Inputs for one manifest content injection run.

    Attributes:
        source_manifest: Manifest to read. Never written.
        output_manifest: Where the derived manifest is written.
        has_project_templates: Project templates were discovered.
        has_item_templates: Item templates were discovered.
        project_templates_path: Path attribute for <ProjectTemplate>.
        item_templates_path: Path attribute for <ItemTemplate>.
    """

    source_manifest: Path
    output_manifest: Path
    has_project_templates: bool = False
    has_item_templates: bool = False
    project_templates_path: str = DEFAULT_PROJECT_TEMPLATES_PATH
    item_templates_path: str = DEFAULT_ITEM_TEMPLATES_PATH


_TEMPLATE_ENTRIES = (
    ("ProjectTemplate", "has_project_templates", "project_templates_path"),
    ("ItemTemplate", "has_item_templates", "item_templates_path"),
)


def _inject_template_entry(
    document: DescriptorDocument,
    content: etree._Element,
    local_name: str,
    folder: str,
    log: DiagnosticLog,
) -> None:
    existing = find_single(content, f"vsix:{local_name}", VSIX_NS)
    if existing is not None:
        log.debug(f"{local_name} entry already exists, skipping injection")
        return
    entry = create_element(document, local_name, VSIX_NAMESPACE, {"Path": folder})
    append_child(document, content, entry)
    log.info(f"Added {local_name} entry with Path='{folder}'")


def inject_manifest_content(request: ContentInjectionRequest) -> TaskResult:
    """Write a derived manifest with template content entries present once.

    Loads the source manifest, makes sure /PackageManifest/Content holds one
    <ProjectTemplate> and/or <ItemTemplate> for each discovery flag that is
    set, and saves the result to the output path. Existing entries are left
    alone, so running on its own output changes nothing. Entries are only
    ever added. The output is written even when nothing changed.

    Failures are returned as ERROR diagnostics, never raised, and leave the
    output path untouched.

    Args:
        request: Source/output paths, discovery flags and folder names.

    Returns:
        TaskResult with success=False and a FILE_NOT_FOUND, MALFORMED_XML,
        INVALID_DESCRIPTOR_STRUCTURE, AMBIGUOUS_PATH, IO_FAILURE or
        UNEXPECTED_FAILURE diagnostic on failure.
    """
    log = DiagnosticLog()
    source = Path(request.source_manifest)
    output = Path(request.output_manifest)
    try:
        if not source.is_file():
            log.error("FILE_NOT_FOUND", f"Source manifest not found: {source}", path=source)
            return log.result()

        document = load_document(source)
        manifest = find_single(document, "/vsix:PackageManifest", VSIX_NS)
        if manifest is None:
            log.error(
                "INVALID_DESCRIPTOR_STRUCTURE",
                f"Invalid manifest {source}: PackageManifest element not found",
                path=source,
            )
            return log.result()

        content = find_single(document, "/vsix:PackageManifest/vsix:Content", VSIX_NS)
        if content is None and (request.has_project_templates or request.has_item_templates):
            content = create_element(document, "Content", VSIX_NAMESPACE)
            append_child(document, manifest, content)
            log.info("Created Content element in manifest")

        if content is not None:
            for local_name, flag, folder_field in _TEMPLATE_ENTRIES:
                if getattr(request, flag):
                    _inject_template_entry(
                        document, content, local_name, getattr(request, folder_field), log
                    )

        save_document(document, output)
        if document.modified:
            log.info(f"Injected template Content entries into manifest: {output}")
        else:
            log.info(f"No template Content injection needed, copied manifest to: {output}")
    except VsixGenError as err:
        log.from_error(err)
    except Exception as err:
        log.error(
            "UNEXPECTED_FAILURE",
            f"Unexpected failure injecting content into {source}: {err!r}",
            path=source,
        )
    return log.result()


def run_inject(request: ContentInjectionRequest) -> TaskResult:
    return inject_manifest_content(request)


# ===--- Constant generation task ---=== #


@dataclass(frozen=True)
class GenerateRequest:
    """Inputs for one constant-table generation run.

    At least one of manifest and vsct must be given. table_class defaults
    to the first command table's file stem + "Vsct" (Commands.vsct ->
    CommandsVsct).
    """

    output: Path
    manifest: Path | None = None
    vsct: tuple[Path, ...] = ()
    language: str = "csharp"
    namespace: str | None = None
    info_class: str = DEFAULT_INFO_CLASS
    table_class: str | None = None


def default_table_class(vsct_path: Path) -> str:
    stem = re.sub(r"\W", "_", Path(vsct_path).stem)
    if not stem or stem[0].isdigit():
        stem = f"_{stem}"
    return f"{stem}Vsct"


def build_emit_options(request: GenerateRequest) -> EmitOptions:
    table_class = request.table_class
    if table_class is None:
        table_class = default_table_class(request.vsct[0]) if request.vsct else "CommandsVsct"
    source_names: list[str] = []
    if request.manifest is not None:
        source_names.append(Path(request.manifest).name)
    source_names.extend(Path(p).name for p in request.vsct)
    return EmitOptions(
        language=request.language,
        namespace=request.namespace,
        info_class=request.info_class,
        table_class=table_class,
        source_names=tuple(source_names),
    )


def run_generate(request: GenerateRequest) -> TaskResult:
    """Extract manifest metadata and command tables, then write constants.

    Nothing is written unless every stage succeeds.
    """
    log = DiagnosticLog()
    try:
        metadata = None
        if request.manifest is not None:
            metadata = load_manifest_metadata(request.manifest)
            log.info(f"Manifest: {metadata.id} {metadata.version}")

        table = None
        if request.vsct:
            table = extract_command_table(request.vsct)
            id_count = sum(len(group.ids) for group in table.groups)
            log.info(
                f"Command tables: {len(table.groups)} GuidSymbols, {id_count} IDSymbols "
                f"from {len(request.vsct)} file(s)"
            )
            for group in table.groups:
                if group.guid.has_alternate_form:
                    log.debug(
                        f"GuidSymbol {group.name} declared as {group.guid.source_text!r}, "
                        f"emitted as {group.guid.braced_upper}"
                    )

        content = emit_constants(metadata, table, build_emit_options(request))
        write_constants(request.output, content)
        log.info(f"Generated constants: {request.output}")
    except VsixGenError as err:
        log.from_error(err)
    except Exception as err:
        log.error("UNEXPECTED_FAILURE", f"Unexpected failure generating constants: {err!r}")
    return log.result()


# ===--- CLI config contracts ---=== #


def build_argument_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-v", "--verbose", action="store_true", default=False)

    parser = argparse.ArgumentParser(
        prog="vsixgen", description="Generate VSIX build artifacts from extension descriptors"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    generate = commands.add_parser(
        "generate", parents=[common], help="Generate constant tables"
    )
    generate.add_argument("--manifest", type=Path, default=None)
    generate.add_argument("--vsct", type=Path, action="append", default=None)
    generate.add_argument("--output", type=Path, required=True)
    generate.add_argument("--language", choices=LANGUAGES, default="csharp")
    generate.add_argument("--namespace", type=str, default=None)
    generate.add_argument("--info-class", type=str, default=DEFAULT_INFO_CLASS)
    generate.add_argument("--table-class", type=str, default=None)

    inject = commands.add_parser(
        "inject", parents=[common], help="Inject template content into a manifest copy"
    )
    inject.add_argument("--source", type=Path, required=True)
    inject.add_argument("--output", type=Path, required=True)
    inject.add_argument("--project-templates", action="store_true", default=False)
    inject.add_argument("--item-templates", action="store_true", default=False)
    inject.add_argument(
        "--project-templates-path", type=str, default=DEFAULT_PROJECT_TEMPLATES_PATH
    )
    inject.add_argument("--item-templates-path", type=str, default=DEFAULT_ITEM_TEMPLATES_PATH)

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = build_argument_parser()
    return parser.parse_args(argv)


def _require_identifier(value: str, flag: str, language: str) -> str:
    if is_identifier(value, language):
        return value
    raise ConfigError(
        "INVALID_IDENTIFIER",
        f"{flag} value {value!r} is not a valid {LANGUAGE_LABELS[language]} identifier",
        "Use letters, digits and underscores, not starting with a digit.",
    )


def validate_config(
    args: argparse.Namespace,
) -> GenerateRequest | ContentInjectionRequest:
    if args.command == "inject":
        for flag, value in (
            ("--project-templates-path", args.project_templates_path),
            ("--item-templates-path", args.item_templates_path),
        ):
            if not value.strip():
                raise ConfigError(
                    "MISSING_INPUT",
                    f"{flag} must not be empty.",
                    "Omit the flag to use the default folder name.",
                )
        return ContentInjectionRequest(
            source_manifest=args.source,
            output_manifest=args.output,
            has_project_templates=args.project_templates,
            has_item_templates=args.item_templates,
            project_templates_path=args.project_templates_path,
            item_templates_path=args.item_templates_path,
        )

    vsct = tuple(args.vsct or ())
    if args.manifest is None and not vsct:
        raise ConfigError(
            "MISSING_INPUT",
            "generate requires --manifest, --vsct, or both.",
            "Pass the VSIX manifest with --manifest and/or command tables with --vsct.",
        )

    language = args.language
    if args.namespace is not None:
        for part in args.namespace.split("."):
            _require_identifier(part, "--namespace", "csharp")
    _require_identifier(args.info_class, "--info-class", language)
    if args.info_class in INFO_MEMBER_NAMES:
        raise ConfigError(
            "INVALID_IDENTIFIER",
            f"--info-class value {args.info_class!r} is also the name of one of its constants",
            "Pick a class name other than the manifest field names (Id, Version, ...).",
        )
    if args.table_class is not None:
        _require_identifier(args.table_class, "--table-class", language)

    return GenerateRequest(
        output=args.output,
        manifest=args.manifest,
        vsct=vsct,
        language=language,
        namespace=args.namespace,
        info_class=args.info_class,
        table_class=args.table_class,
    )


def build_config(
    argv: list[str] | None = None,
) -> GenerateRequest | ContentInjectionRequest:
    args = parse_args(argv)
    return validate_config(args)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )


# ===--- Main ---=== #


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    try:
        config = validate_config(args)
    except ConfigError as err:
        print(f"Config error [{err.code}]: {err.message}")
        if err.suggestion:
            print(f"Hint: {err.suggestion}")
        raise SystemExit(1) from err

    configure_logging(args.verbose)
    if isinstance(config, GenerateRequest):
        result = run_generate(config)
    else:
        result = run_inject(config)
    if not result.success:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
