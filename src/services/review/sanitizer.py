"""Normalize model output into plain text suitable for a design comment.

Comments render as plain text, so inline Markdown decoration (emphasis, code
spans, block quotes) shows up as noise. Headings and `-` bullets read fine as
plain text and are kept.
"""

from __future__ import annotations

import re


# A `*` bullet, possibly behind quote markers, becomes a `-` bullet before all
# asterisks are stripped.
_STAR_BULLET = re.compile(r"^([^\S\n]*(?:>[^\S\n]*)*)\*[^\S\n]+", re.MULTILINE)
_DECORATION = re.compile(r"[*`]")
_QUOTE_PREFIX = re.compile(r"^[^\S\n]*(?:>[^\S\n]*)+", re.MULTILINE)
_TRAILING_SPACE = re.compile(r"[^\S\n]+$", re.MULTILINE)
_BLANK_RUN = re.compile(r"\n{3,}")


def clean(raw_text: str) -> str:
    """Return `raw_text` stripped of decoration with at most one blank line in a row.

    The function is total and idempotent: ``clean(clean(x)) == clean(x)``.
    """
    text = raw_text.replace("\r\n", "\n").replace("\r", "\n")
    text = _STAR_BULLET.sub(r"\1- ", text)
    text = _DECORATION.sub("", text)
    text = _QUOTE_PREFIX.sub("", text)
    text = _TRAILING_SPACE.sub("", text)
    text = _BLANK_RUN.sub("\n\n", text)
    return text.strip()
