"""
Diff engine — compare two rendered manifests.

Two tiers:
    1. Semantic diff (dyff) through a pluggable ``SemanticDiffer``.
       Optional: a missing or failing tool yields an empty string.
    2. Unified line diff (difflib).  Always available, deterministic,
       3 lines of context.

Both outputs empty means "no differences"; that is never an error.
"""

from __future__ import annotations

import difflib
import logging
import re

from chart_val.adapters.base import SemanticDiffer
from chart_val.core.cancel import CancelToken
from chart_val.core.errors import PipelineCancelled

logger = logging.getLogger(__name__)

CONTEXT_LINES = 3

# Fragments of dyff's ASCII-art banner.
_BANNER_MARKERS = (
    "_        __  __",
    "_| |_   _ / _|/ _|",
    "/ _' | | | | |_| |_",
    "| (_| | |_| |  _|  _|",
    "\\__,_|\\__, |_| |_|",
    "|___/",
)

_RETURNED_RE = re.compile(r"\breturned\s+\S+\s+differences?\b")
_ANSI_RE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")


def normalize_semantic_output(output: str, volatile: tuple[str, ...] = ()) -> str:
    """Strip run-specific noise from semantic differ output.

    Removes the banner, "returned N differences" annotations, colour
    codes and any line mentioning one of the *volatile* fragments
    (typically the temp directory the manifests were written to).
    Leading blank lines and trailing whitespace are trimmed.
    """
    cleaned: list[str] = []
    for line in _ANSI_RE.sub("", output).split("\n"):
        if any(fragment and fragment in line for fragment in volatile):
            continue
        if any(marker in line for marker in _BANNER_MARKERS):
            continue
        if _RETURNED_RE.search(line):
            continue
        if not cleaned and not line.strip():
            continue
        cleaned.append(line.rstrip())
    return "\n".join(cleaned).rstrip()


def _lines(text: str) -> list[str]:
    """Split on newlines, keeping terminators; the last line may lack one."""
    parts = text.split("\n")
    lines = [part + "\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


def unified_diff(base_label: str, head_label: str, base: bytes, head: bytes) -> str:
    """Line-based diff of two manifests, empty when they are identical."""
    base_lines = _lines(base.decode("utf-8", errors="replace"))
    head_lines = _lines(head.decode("utf-8", errors="replace"))

    out: list[str] = []
    for index, line in enumerate(
        difflib.unified_diff(
            base_lines,
            head_lines,
            fromfile=base_label,
            tofile=head_label,
            n=CONTEXT_LINES,
            lineterm="",
        )
    ):
        if index < 2 or line.startswith("@@"):
            out.append(line)
        elif line.endswith("\n"):
            out.append(line[:-1])
        else:
            out.append(line)
            out.append("\\ No newline at end of file")
    return "\n".join(out)


def preferred_diff(semantic_diff: str, unified_diff_text: str) -> str:
    """Semantic diff if present, else the unified diff, else ``""``."""
    return semantic_diff or unified_diff_text


class DiffEngine:
    """Compute ``(semantic_diff, unified_diff)`` for two manifests.

    Args:
        semantic: Optional semantic strategy.  ``None`` means the
            unified diff alone decides.
    """

    def __init__(self, semantic: SemanticDiffer | None = None):
        self._semantic = semantic

    def compute_diff(
        self,
        base_label: str,
        head_label: str,
        base: bytes,
        head: bytes,
        cancel: CancelToken | None = None,
    ) -> tuple[str, str]:
        """Return ``(semantic_diff, unified_diff)``, both empty when equal.

        Raises:
            PipelineCancelled: *cancel* was set while the semantic differ ran.
        """
        if base == head:
            return "", ""

        semantic = self._semantic_diff(base_label, head_label, base, head, cancel)
        unified = unified_diff(base_label, head_label, base, head)
        return semantic, unified

    def _semantic_diff(
        self,
        base_label: str,
        head_label: str,
        base: bytes,
        head: bytes,
        cancel: CancelToken | None,
    ) -> str:
        if self._semantic is None:
            return ""

        try:
            output, available = self._semantic.compute_semantic(base, head, cancel=cancel)
        except PipelineCancelled:
            raise
        except Exception as e:
            logger.debug("Semantic differ failed, using line diff only: %s", e)
            return ""

        if not available:
            logger.debug("Semantic differ unavailable, using line diff only")
            return ""

        cleaned = normalize_semantic_output(output)
        if not cleaned:
            return ""
        return f"--- {base_label}\n+++ {head_label}\n\n{cleaned}"
