"""
Marker operations — inject and remove sentinel-delimited blocks.

Everything here works on an in-memory string; no I/O. Files are treated
as opaque text: anchors are literal substrings, never parsed syntax.

An injected block looks like::

    <anchor>
    // [MODGRAFT_MODULE:payments BEGIN]
    <code>
    // [MODGRAFT_MODULE:payments END]

    <rest of file>

Removal deletes the sentinels, everything between them and one adjacent
newline on each side, which restores the original buffer.
"""

from __future__ import annotations

import logging
import re

from modgraft.core.errors import (
    AlreadyInjectedError,
    AnchorNotFoundError,
    InjectedModuleNotFoundError,
)
from modgraft.core.models.markers import (
    DEFAULT_COMMENT,
    MarkerDetection,
    create_marker,
)

logger = logging.getLogger(__name__)


def has_module(content: str, module_name: str, *, comment: str = DEFAULT_COMMENT) -> bool:
    """True when both sentinels for ``module_name`` appear anywhere in ``content``.

    Ordering is not checked; use ``detect_markers`` for that.
    """
    marker = create_marker(module_name, comment)
    return marker.begin in content and marker.end in content


def detect_markers(
    content: str,
    module_name: str,
    *,
    comment: str = DEFAULT_COMMENT,
) -> MarkerDetection:
    """Locate the marked block for ``module_name``.

    Takes the first begin line and the first end line after it. A stray
    end line before the first begin, or a missing sentinel, is a corrupt
    block and reported as not found.
    """
    marker = create_marker(module_name, comment)
    lines = content.split("\n")

    begin_line: int | None = None
    for i, line in enumerate(lines):
        if marker.begin in line:
            begin_line = i
            break
        if marker.end in line:
            logger.debug("End marker for %s precedes begin (line %d)", module_name, i)
            return MarkerDetection(found=False)

    if begin_line is None:
        return MarkerDetection(found=False)

    for j in range(begin_line + 1, len(lines)):
        if marker.end in lines[j]:
            return MarkerDetection(
                found=True,
                begin_line=begin_line,
                end_line=j,
                inner_content="\n".join(lines[begin_line + 1:j]),
            )

    return MarkerDetection(found=False)


def inject_module(
    content: str,
    anchor: str,
    module_name: str,
    code: str,
    *,
    comment: str = DEFAULT_COMMENT,
) -> str:
    """Insert a marked block right after the first occurrence of ``anchor``.

    Raises:
        AlreadyInjectedError: Both sentinels are already present.
        AnchorNotFoundError: ``anchor`` is not a substring of ``content``.
    """
    if has_module(content, module_name, comment=comment):
        raise AlreadyInjectedError(module_name)

    idx = content.find(anchor)
    if idx == -1:
        raise AnchorNotFoundError(anchor)

    marker = create_marker(module_name, comment)
    block = f"\n{marker.begin}\n{code}\n{marker.end}\n"
    cut = idx + len(anchor)
    return content[:cut] + block + content[cut:]


def remove_module(content: str, module_name: str, *, comment: str = DEFAULT_COMMENT) -> str:
    """Delete the first marked block for ``module_name``.

    Raises:
        InjectedModuleNotFoundError: No begin…end span exists, i.e. the
            removal would leave ``content`` unchanged.
    """
    marker = create_marker(module_name, comment)
    pattern = re.compile(
        r"\n?" + re.escape(marker.begin) + r"[\s\S]*?" + re.escape(marker.end) + r"\n?"
    )
    result, count = pattern.subn("", content, count=1)
    if count == 0:
        raise InjectedModuleNotFoundError(module_name)
    return result
