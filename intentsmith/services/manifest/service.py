"""
Manifest Parser Service.

Turns AndroidManifest.xml content into a ManifestRecord: package identity,
sharedUserId, declared custom permissions and every application component
with its intent filters and source line.
"""

from __future__ import annotations

import time
from pathlib import Path

from ...core.exceptions import MalformedManifestError
from ...core.logging import get_logger
from ...core.types import RunWarning, ServiceResult, WarningScope
from ...models.manifest import (
    ComponentKind,
    ComponentRecord,
    DataSpec,
    ExportedState,
    IntentFilter,
    ManifestRecord,
    qualify_class_name,
)
from ...models.permission import PermissionInfo, ProtectionLevel
from .markup import TOOLS_NS, MarkupDocument, MarkupNode, parse_markup

logger = get_logger(__name__)

COMPONENT_TAGS: dict[str, ComponentKind] = {
    "activity": ComponentKind.ACTIVITY,
    "activity-alias": ComponentKind.ACTIVITY,
    "service": ComponentKind.SERVICE,
    "receiver": ComponentKind.RECEIVER,
    "provider": ComponentKind.PROVIDER,
}

_DATA_ATTRIBUTES = {
    "scheme": "scheme",
    "host": "host",
    "port": "port",
    "path": "path",
    "pathPrefix": "path_prefix",
    "pathPattern": "path_pattern",
    "mimeType": "mime_type",
}

_TOOLS_NODE = f"{{{TOOLS_NS}}}node"


class ManifestParser:
    """Stateless parser; one instance may serve concurrent parses."""

    def parse(self, content: bytes, path: Path) -> ManifestRecord:
        """Parse manifest bytes.

        Args:
            content: Raw manifest content.
            path: Path recorded on the result and used in errors.

        Returns:
            ManifestRecord: The frozen record.

        Raises:
            MalformedManifestError: On syntax errors, a non-manifest root
                element, or a missing package attribute.
        """
        document = parse_markup(content, source=str(path))
        root = document.root

        if root.tag != "manifest":
            raise MalformedManifestError(
                message=f"root element is <{root.tag}>, expected <manifest>",
                path=str(path),
                line=root.line,
            )

        package = (root.get("package") or "").strip()
        if not package:
            raise MalformedManifestError(
                message="missing required 'package' attribute on <manifest>",
                path=str(path),
                line=root.line,
            )

        shared_user_id = root.get("sharedUserId") or None
        declared = self._declared_permissions(document, package)
        components = self._components(document, package, path)

        return ManifestRecord(
            package=package,
            shared_user_id=shared_user_id,
            path=path,
            components=tuple(components),
            declared_permissions=tuple(declared),
        )

    def load(self, path: Path) -> ServiceResult[ManifestRecord]:
        """Read and parse one manifest file, converting failures into a result.

        Args:
            path: Manifest file path.

        Returns:
            ServiceResult[ManifestRecord]: ``ok`` with the record, or ``fail``
                with a file-scoped warning. Never raises for per-file problems.
        """
        start_time = time.perf_counter()
        try:
            content = path.read_bytes()
            record = self.parse(content, path)
        except OSError as e:
            logger.warning("Cannot read manifest", path=str(path), error=str(e))
            warning = RunWarning.from_error(WarningScope.FILE, str(path), e)
            return ServiceResult.fail(str(e), warnings=[warning])
        except MalformedManifestError as e:
            logger.warning(
                "Skipping malformed manifest",
                path=str(path),
                line=e.line,
                column=e.column,
                error=e.message,
            )
            warning = RunWarning.from_error(WarningScope.FILE, str(path), e)
            return ServiceResult.fail(str(e), warnings=[warning])

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(
            "Parsed manifest",
            path=str(path),
            package=record.package,
            components=len(record.components),
            duration_ms=duration_ms,
        )
        result = ServiceResult.ok(record, package=record.package)
        result.duration_ms = duration_ms
        return result

    def _declared_permissions(self, document: MarkupDocument, package: str) -> list[PermissionInfo]:
        declared = []
        for node in document.children(document.root, "permission"):
            name = node.get("name")
            if not name:
                continue
            # protectionLevel defaults to normal when omitted
            level = ProtectionLevel.parse(node.get("protectionLevel") or "normal")
            declared.append(PermissionInfo(name=qualify_class_name(name, package), level=level))
        return declared

    def _components(self, document: MarkupDocument, package: str, path: Path) -> list[ComponentRecord]:
        components = []
        for application in document.children(document.root, "application"):
            for node in document.children(application, *COMPONENT_TAGS):
                if node.get(_TOOLS_NODE) in ("remove", "removeAll"):
                    continue
                component = self._component(document, node, package, path)
                if component is not None:
                    components.append(component)
        return components

    def _component(
        self,
        document: MarkupDocument,
        node: MarkupNode,
        package: str,
        path: Path,
    ) -> ComponentRecord | None:
        raw_name = node.get("name")
        if not raw_name:
            logger.debug("Component without a name", path=str(path), line=node.line, tag=node.tag)
            return None

        intent_filters = tuple(
            self._intent_filter(document, f) for f in document.children(node, "intent-filter")
        )
        target = node.get("targetActivity")
        authorities = tuple(
            a.strip() for a in (node.get("authorities") or "").split(";") if a.strip()
        )

        return ComponentRecord(
            kind=COMPONENT_TAGS[node.tag],
            name=qualify_class_name(raw_name, package),
            package=package,
            exported=ExportedState.from_attribute(node.get("exported")),
            permission=node.get("permission") or None,
            read_permission=node.get("readPermission") or None,
            write_permission=node.get("writePermission") or None,
            enabled=(node.get("enabled") or "true").strip().lower() != "false",
            line=node.line,
            intent_filters=intent_filters,
            authorities=authorities,
            target_activity=qualify_class_name(target, package) if target else None,
            manifest_path=path,
            declaration=_render_start_tag(node),
        )

    def _intent_filter(self, document: MarkupDocument, node: MarkupNode) -> IntentFilter:
        actions = []
        categories = []
        data = []
        for child in document.children(node, "action", "category", "data"):
            if child.tag == "data":
                values = {
                    field: child.get(attr)
                    for attr, field in _DATA_ATTRIBUTES.items()
                    if child.get(attr)
                }
                if values:
                    data.append(DataSpec(**values))
                continue
            name = child.get("name")
            if not name:
                continue
            if child.tag == "action":
                actions.append(name)
            else:
                categories.append(name)

        return IntentFilter(
            actions=tuple(actions),
            categories=tuple(categories),
            data=tuple(data),
            line=node.line,
        )


def _render_start_tag(node: MarkupNode) -> str:
    parts = [node.tag]
    for key, value in node.attributes.items():
        if not key.startswith("{"):
            parts.append(f"{key}={value}")
    return "<" + " ".join(parts) + ">"
