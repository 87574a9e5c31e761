"""
Index-addressed markup tree.

The lxml element tree is flattened into an arena: a tuple of immutable nodes
that refer to their parent and children by index. Nodes keep the line their
start tag was read from. Attribute names in the Android namespace are stored
by local name (``name``, ``exported``); attributes in other namespaces keep
Clark notation (``{uri}local``).
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from lxml import etree

from ...core.exceptions import MalformedManifestError

ANDROID_NS = "http://schemas.android.com/apk/res/android"
TOOLS_NS = "http://schemas.android.com/tools"

# Compiled (AXML) manifests start with the RES_XML_TYPE chunk header
_BINARY_XML_MAGIC = b"\x03\x00\x08\x00"


@dataclass(frozen=True)
class MarkupNode:
    """One element of the document."""

    index: int
    tag: str
    attributes: Mapping[str, str]
    parent: int | None
    children: tuple[int, ...]
    line: int

    def get(self, name: str, default: str | None = None) -> str | None:
        return self.attributes.get(name, default)


class MarkupDocument:
    """Arena of nodes; index 0 is the document element."""

    def __init__(self, nodes: tuple[MarkupNode, ...]) -> None:
        if not nodes:
            raise ValueError("a document has at least one element")
        self.nodes = nodes

    @property
    def root(self) -> MarkupNode:
        return self.nodes[0]

    def node(self, index: int) -> MarkupNode:
        return self.nodes[index]

    def parent(self, node: MarkupNode) -> MarkupNode | None:
        return None if node.parent is None else self.nodes[node.parent]

    def children(self, node: MarkupNode, *tags: str) -> Iterator[MarkupNode]:
        """Direct children in document order, optionally restricted to ``tags``."""
        for index in node.children:
            child = self.nodes[index]
            if not tags or child.tag in tags:
                yield child

    def first_child(self, node: MarkupNode, tag: str) -> MarkupNode | None:
        return next(self.children(node, tag), None)

    def iter(self, *tags: str) -> Iterator[MarkupNode]:
        """All nodes in document order (pre-order), optionally filtered by tag."""
        for node in self.nodes:
            if not tags or node.tag in tags:
                yield node

    def __len__(self) -> int:
        return len(self.nodes)


def _attribute_name(qualified: str) -> str:
    if qualified.startswith("{"):
        namespace, _, local = qualified[1:].partition("}")
        if namespace == ANDROID_NS:
            return local
    return qualified


def build_document(root: etree._Element) -> MarkupDocument:
    """Flatten an lxml element tree into a :class:`MarkupDocument`."""
    tags: list[str] = []
    attributes: list[Mapping[str, str]] = []
    parents: list[int | None] = []
    lines: list[int] = []
    children: list[list[int]] = []

    # Explicit stack keeps deep documents clear of the recursion limit
    stack: list[tuple[etree._Element, int | None]] = [(root, None)]
    while stack:
        element, parent = stack.pop()
        index = len(tags)
        tags.append(etree.QName(element).localname)
        attributes.append(
            MappingProxyType({_attribute_name(k): v for k, v in element.attrib.items()})
        )
        parents.append(parent)
        lines.append(element.sourceline or 0)
        children.append([])
        if parent is not None:
            children[parent].append(index)
        # Comments and processing instructions have a non-string tag
        elements = [child for child in element if isinstance(child.tag, str)]
        stack.extend((child, index) for child in reversed(elements))

    nodes = tuple(
        MarkupNode(
            index=i,
            tag=tags[i],
            attributes=attributes[i],
            parent=parents[i],
            children=tuple(children[i]),
            line=lines[i],
        )
        for i in range(len(tags))
    )
    return MarkupDocument(nodes)


def parse_markup(content: bytes, source: str = "<memory>") -> MarkupDocument:
    """Parse XML bytes into a position-tracking arena.

    Args:
        content: Raw file content. Bytes, so the XML declaration's encoding
            is honoured.
        source: Path used in error messages.

    Returns:
        MarkupDocument: The flattened document.

    Raises:
        MalformedManifestError: On binary manifests, empty input, or XML
            syntax errors (with the offending line and column).
    """
    if content.startswith(_BINARY_XML_MAGIC):
        raise MalformedManifestError(
            message="compiled binary manifest; decode the APK (e.g. apktool d) first",
            path=source,
        )
    if not content.strip():
        raise MalformedManifestError(message="empty document", path=source)

    parser = etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        remove_comments=True,
        remove_pis=True,
    )
    try:
        root = etree.fromstring(content, parser=parser)
    except etree.XMLSyntaxError as e:
        line, column = e.position if e.position else (e.lineno, None)
        raise MalformedManifestError(
            message=e.msg or "XML syntax error",
            path=source,
            line=line,
            column=column,
            cause=e,
        ) from e

    return build_document(root)
