"""Synchronous loading and blocking request detection."""

from typing import Iterator, Optional

from tree_sitter import Node
from ui5lint_tree_sitter import ASTWalker, JSPatterns

from ..models import Severity
from .base import Confidence, DetectionContext, Finding, ResolutionPolicy, RuleDefinition, Trigger
from .markup_rules import detect_bootstrap_sync_loading, detect_manifest_sync_loading


def _async_option(call: Node, source: bytes) -> Optional[bool]:
    """Value of a literal ``async: true|false`` option passed to the call, if any"""
    for arg in JSPatterns.call_arguments(call):
        value = JSPatterns.object_property(arg, "async", source)
        if value is not None and JSPatterns.is_boolean_literal(value):
            return value.type == "true"
    return None


def detect_sync_loading(ctx: DetectionContext) -> Iterator[Finding]:
    """Calls of APIs declared as synchronous, and calls passing ``async: false``.

    A declared-sync API is certain. ``async: false`` on a call whose target the
    resolver could not classify is reported with lower confidence.
    """
    call = ctx.node
    callee = call.child_by_field_name("function")
    if callee is None:
        return
    anchor = callee.child_by_field_name("property") if callee.type == "member_expression" else callee
    anchor = anchor or callee
    name = JSPatterns.dotted_name(callee, ctx.source) or ASTWalker.get_text(callee, ctx.source)

    resolution = ctx.resolver.resolve(callee)
    declaration = resolution.declaration if resolution.is_typed else None
    async_option = _async_option(call, ctx.source)

    if declaration is not None and declaration.sync:
        if async_option is True:
            return
        yield Finding(node=anchor, params={"name": declaration.name})
        return

    if async_option is False:
        confidence = Confidence.CERTAIN if resolution.is_typed else Confidence.UNCERTAIN
        yield Finding(node=anchor, params={"name": name}, confidence=confidence)


NO_SYNC_LOADING = RuleDefinition(
    rule_id="no-sync-loading",
    name="Synchronous loading",
    severity=Severity.ERROR,
    message_template="Synchronous loading or request in call to '{name}'",
    triggers=frozenset({Trigger.CALL, Trigger.MARKUP_ELEMENT, Trigger.MANIFEST_ENTRY}),
    policy=ResolutionPolicy.REPORT_UNCERTAIN,
    uncertain_severity=Severity.WARNING,
    details_template=(
        "Synchronous requests block the browser's main thread and are not supported in the next major version. "
        "Use the asynchronous variant of '{name}'."
    ),
    description=(
        "Reports synchronous module loading, requests made with 'async: false', "
        "synchronous bootstrap and synchronous root view or routing configuration."
    ),
    detector=detect_sync_loading,
    detectors={
        Trigger.MARKUP_ELEMENT: detect_bootstrap_sync_loading,
        Trigger.MANIFEST_ENTRY: detect_manifest_sync_loading,
    },
)
