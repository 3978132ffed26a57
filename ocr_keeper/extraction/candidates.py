"""Candidate derivation and match selection for recognized text.

Raw OCR output is cut into lines and then into tokens; the match rule
keeps the first token that starts or ends with the user's term.
"""

import re
from collections.abc import Iterable

from ocr_keeper.utils.config import DEFAULT_SEPARATORS, MatchMode
from ocr_keeper.utils.logger import get_logger

logger = get_logger(__name__)

_LINE_BREAK = re.compile(r"\r?\n")


def _separator_pattern(separators: Iterable[str]) -> re.Pattern[str] | None:
    """Compile a pattern matching any run of the given separators."""
    parts = sorted({s for s in separators if s}, key=len, reverse=True)
    if not parts:
        return None
    return re.compile("(?:" + "|".join(re.escape(p) for p in parts) + ")+")


def split_lines(raw_text: str) -> list[str]:
    """Split raw text on line breaks, trimming and dropping blank lines."""
    lines = (line.strip() for line in _LINE_BREAK.split(raw_text))
    return [line for line in lines if line]


def derive_candidates(
    raw_text: str,
    separators: Iterable[str] | None = None,
    split_tokens: bool = True,
) -> list[str]:
    """Derive the ordered candidate list from raw OCR text.

    Args:
        raw_text: Text as returned by the OCR engine.
        separators: Strings that split a line into tokens. Defaults to
            whitespace and common half/full-width punctuation.
        split_tokens: When false, whole lines are the candidates.

    Returns:
        Flat list of non-empty trimmed candidates in reading order.
    """
    lines = split_lines(raw_text)
    if not split_tokens:
        return lines

    pattern = _separator_pattern(
        DEFAULT_SEPARATORS if separators is None else separators
    )
    if pattern is None:
        return lines

    candidates: list[str] = []
    for line in lines:
        tokens = (token.strip() for token in pattern.split(line))
        candidates.extend(token for token in tokens if token)
    return candidates


def select_candidate(
    candidates: list[str], mode: MatchMode | str, term: str = ""
) -> str:
    """Pick the first candidate satisfying the match rule.

    Args:
        candidates: Candidates in scan order.
        mode: ``prefix`` keeps candidates starting with ``term``; anything
            else keeps candidates ending with it.
        term: Match term. Empty means take the first candidate.

    Returns:
        The selected candidate, or ``""`` when nothing qualifies.
    """
    if not term:
        return candidates[0] if candidates else ""

    if mode == MatchMode.PREFIX:
        match = next((c for c in candidates if c.startswith(term)), "")
    else:
        match = next((c for c in candidates if c.endswith(term)), "")

    if not match:
        logger.debug("No candidate matched %s term %r", mode, term)
    return match


def find_match(
    raw_text: str,
    mode: MatchMode | str = MatchMode.SUFFIX,
    term: str = "",
    separators: Iterable[str] | None = None,
    split_tokens: bool = True,
) -> str:
    """Reduce raw OCR text to the single string kept in a slot."""
    candidates = derive_candidates(raw_text, separators, split_tokens)
    return select_candidate(candidates, mode, term)
