"""Detectors for XML views, HTML bootstrap pages and manifest.json descriptors.

Markup elements and manifest entries carry no semantic information of their
own. The detectors look names up in the API catalog directly.
"""

import re
from typing import Iterator, Optional, Tuple

from ui5lint_symbols import ValueType

from ..manifest import ManifestEntry
from ..markup import Anchor, MarkupAttribute, MarkupElement
from ..models import Severity
from .base import Confidence, DetectionContext, Finding, ResolutionPolicy, RuleDefinition, Trigger

BOOTSTRAP_SCRIPT_ID = "sap-ui-bootstrap"
BOOTSTRAP_SCRIPT_NAMES = ("sap-ui-core.js", "sap-ui-custom.js", "sap-ui-core-nojQuery.js")

# Descriptor settings whose views and targets load synchronously unless 'async' is true
ASYNC_SETTINGS = ("sap.ui5/rootView", "sap.ui5/routing/config")

_MODEL_TYPE = re.compile(r"sap\.ui5/models/[^/]*/type")
_LIBRARY_NAME = re.compile(rb"[^,\s]+")


def bootstrap_script(element: MarkupElement) -> bool:
    """The script tag that loads the framework core"""
    if element.namespace is not None or element.local_name != "script":
        return False
    id_attribute = element.attribute("id")
    if id_attribute is not None and id_attribute.value == BOOTSTRAP_SCRIPT_ID:
        return True
    src = element.attribute("src")
    return src is not None and src.value.split("?")[0].endswith(BOOTSTRAP_SCRIPT_NAMES)


def detect_deprecated_markup(ctx: DetectionContext) -> Iterator[Finding]:
    """Deprecated controls and control properties in views, deprecated bootstrap parameters in pages"""
    element: MarkupElement = ctx.node
    if bootstrap_script(element):
        for attribute in element.attributes:
            setting = ctx.catalog.bootstrap.get(attribute.name)
            if setting is not None:
                yield Finding(
                    node=attribute,
                    message=f"Use of deprecated bootstrap parameter '{attribute.name}'. {setting.deprecated}",
                    details=setting.details,
                )
        return

    class_name = element.class_name
    declaration = ctx.catalog.lookup(class_name) if class_name else None
    if declaration is None:
        return
    if declaration.is_deprecated:
        yield Finding(
            node=element,
            message=f"Use of deprecated {declaration.kind} '{class_name}'. {declaration.deprecated}",
            details=declaration.details,
        )
    value = ValueType(path=class_name, instance=True)
    for attribute in element.attributes:
        if attribute.namespace is not None:
            continue
        member = ctx.catalog.lookup_member(value, attribute.local_name)
        if member is not None and member.is_deprecated:
            yield Finding(
                node=attribute,
                message=(
                    f"Use of deprecated {member.kind} '{attribute.local_name}' of class '{class_name}'. "
                    f"{member.deprecated}"
                ),
                details=member.details,
            )


def detect_deprecated_manifest_setting(ctx: DetectionContext) -> Iterator[Finding]:
    """Deprecated descriptor settings, and models of a deprecated class"""
    entry: ManifestEntry = ctx.node
    setting = ctx.catalog.manifest.get(entry.path)
    if setting is not None:
        yield Finding(
            node=entry,
            message=f"Use of deprecated manifest setting '{entry.path}'. {setting.deprecated}",
            details=setting.details,
        )

    if _MODEL_TYPE.fullmatch(entry.path) and isinstance(entry.value, str):
        declaration = ctx.catalog.lookup(entry.value)
        if declaration is not None and declaration.is_deprecated:
            yield Finding(
                node=Anchor(entry.value_start),
                message=f"Use of deprecated {declaration.kind} '{entry.value}'. {declaration.deprecated}",
                details=declaration.details,
            )


def detect_bootstrap_sync_loading(ctx: DetectionContext) -> Iterator[Finding]:
    element: MarkupElement = ctx.node
    if not bootstrap_script(element):
        return
    option = element.attribute("data-sap-ui-async")
    if option is not None and option.value.strip().lower() == "true":
        return
    yield Finding(
        node=option or element,
        params={"name": "sap-ui-bootstrap"},
        message="The framework is bootstrapped without 'data-sap-ui-async=\"true\"' and loads synchronously",
        details="Add 'data-sap-ui-async=\"true\"' to the bootstrap script tag.",
    )


def detect_manifest_sync_loading(ctx: DetectionContext) -> Iterator[Finding]:
    """Root view and routing configuration without ``async: true``.

    An explicit ``false`` is certain. A missing flag is uncertain: a component
    implementing the asynchronous content creation interface loads
    asynchronously regardless.
    """
    entry: ManifestEntry = ctx.node
    details = "Set 'async' to true so views and routing targets are loaded asynchronously."
    if entry.key == "async" and entry.path.rpartition("/")[0] in ASYNC_SETTINGS:
        if entry.value is False:
            yield Finding(
                node=entry,
                params={"name": entry.path},
                message=f"Synchronous loading configured by '{entry.path}'",
                details=details,
            )
        return

    if entry.path not in ASYNC_SETTINGS:
        return
    if isinstance(entry.value, dict) and "async" in entry.value:
        return
    yield Finding(
        node=entry,
        params={"name": entry.path},
        confidence=Confidence.UNCERTAIN,
        message=f"'{entry.path}' does not set 'async: true' and may be loaded synchronously",
        details=details,
    )


def _deprecated_library(ctx: DetectionContext, anchor, name: str) -> Optional[Finding]:
    setting = ctx.catalog.libraries.get(name)
    if setting is None:
        return None
    return Finding(
        node=anchor,
        params={"library": name},
        message=f"Use of deprecated library '{name}'. {setting.deprecated}",
        details=setting.details,
    )


def detect_deprecated_manifest_library(ctx: DetectionContext) -> Iterator[Finding]:
    """Library dependencies declared in ``sap.ui5/dependencies/libs``"""
    entry: ManifestEntry = ctx.node
    segments = entry.segments
    if len(segments) != 4 or segments[:3] != ["sap.ui5", "dependencies", "libs"]:
        return
    finding = _deprecated_library(ctx, entry, entry.key)
    if finding is not None:
        yield finding


def _listed_libraries(attribute: MarkupAttribute) -> Iterator[Tuple[Anchor, str]]:
    if b"&" in attribute.raw_value:
        for name in re.findall(r"[^,\s]+", attribute.value):
            yield Anchor(attribute.value_start), name
        return
    for match in _LIBRARY_NAME.finditer(attribute.raw_value):
        yield Anchor(attribute.value_start + match.start()), match.group(0).decode("utf-8", errors="replace")


def detect_deprecated_bootstrap_library(ctx: DetectionContext) -> Iterator[Finding]:
    """Libraries preloaded through ``data-sap-ui-libs``"""
    element: MarkupElement = ctx.node
    if not bootstrap_script(element):
        return
    libs = element.attribute("data-sap-ui-libs")
    if libs is None:
        return
    for anchor, name in _listed_libraries(libs):
        finding = _deprecated_library(ctx, anchor, name)
        if finding is not None:
            yield finding


NO_DEPRECATED_LIBRARY = RuleDefinition(
    rule_id="no-deprecated-library",
    name="Deprecated library",
    severity=Severity.ERROR,
    message_template="Use of deprecated library '{library}'",
    triggers=frozenset({Trigger.MARKUP_ELEMENT, Trigger.MANIFEST_ENTRY}),
    policy=ResolutionPolicy.REQUIRE_CERTAINTY,
    details_template="The library '{library}' is not part of the next major version of the framework.",
    description="Reports deprecated libraries declared in manifest dependencies or preloaded by the bootstrap.",
    detectors={
        Trigger.MARKUP_ELEMENT: detect_deprecated_bootstrap_library,
        Trigger.MANIFEST_ENTRY: detect_deprecated_manifest_library,
    },
)
