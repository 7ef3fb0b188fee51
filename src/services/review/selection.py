"""Acceptance rules for the node a user asks to have reviewed."""

from __future__ import annotations

from collections.abc import Sequence

from services.review.exceptions import InvalidSelectionError
from services.review.models import ACCEPTED_NODE_KINDS, SelectedNode, Selection


def validate_selection(file_key: str, nodes: Sequence[SelectedNode]) -> Selection:
    """Accept exactly one frame, component, or instance.

    Rules apply in order: empty, then more than one member, then kind.
    """
    if not nodes:
        raise InvalidSelectionError("no_selection")
    if len(nodes) > 1:
        raise InvalidSelectionError("multiple_selection")
    node = nodes[0]
    if node.kind.upper() not in ACCEPTED_NODE_KINDS:
        raise InvalidSelectionError("unsupported_kind")
    return Selection(file_key=file_key, node=node)
