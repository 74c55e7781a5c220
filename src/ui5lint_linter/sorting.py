"""Presentation order of lint messages.

The order is a reporting concern: analyzers append in traversal order, and
the reporting boundary sorts once with the order configured for the run.
"""

from enum import Enum
from typing import Iterable, List

from .models import LintMessage, LintResult


class MessageOrder(str, Enum):
    FATAL_LAST = "fatal-last"  # ascending severity, fatal messages at the bottom
    FATAL_FIRST = "fatal-first"  # fatal messages on top, then errors before warnings


def _sort_key(message: LintMessage, order: MessageOrder):
    line = message.line or 0
    column = message.column or 0
    if order is MessageOrder.FATAL_FIRST:
        return (not message.fatal, -int(message.severity), line, column)
    return (message.fatal, int(message.severity), line, column)


def sort_messages(messages: Iterable[LintMessage], order: MessageOrder = MessageOrder.FATAL_LAST) -> List[LintMessage]:
    """Stable sort by fatal state, severity, line, column. Idempotent."""
    return sorted(messages, key=lambda m: _sort_key(m, order))


def finalize_results(results: Iterable[LintResult], order: MessageOrder = MessageOrder.FATAL_LAST) -> List[LintResult]:
    """Sort results by path and each result's messages for display"""
    finalized = sorted(results, key=lambda r: r.file_path)
    for result in finalized:
        result.messages = sort_messages(result.messages, order)
    return finalized
