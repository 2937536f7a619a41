"""Line unfolding and content-line splitting for ICS text."""

import logging
from typing import Dict, List, NamedTuple, Optional

logger = logging.getLogger(__name__)

FOLD_CHARS = (" ", "\t")


class ContentLine(NamedTuple):
    """One logical ``NAME;PARAM=VALUE:VALUE`` record."""

    name: str
    params: Dict[str, str]
    value: str

    def param(self, key: str, default: str = "") -> str:
        return self.params.get(key.upper(), default)


def unfold_lines(text: str) -> List[str]:
    """Split raw ICS text into logical lines, reversing line folding.

    A physical line starting with a single space or tab continues the previous
    logical line. Only that first whitespace character is removed; the rest is
    appended with no separator. CRLF, LF and bare CR terminators are accepted.

    Args:
        text: Raw document text

    Returns:
        Logical lines in document order. Empty physical lines are kept as empty
        strings so callers see the document shape unchanged.
    """
    physical = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    if physical and physical[-1] == "":
        # Trailing terminator, not an empty line
        physical.pop()

    logical: List[str] = []
    pieces: List[str] = []
    for line in physical:
        if line.startswith(FOLD_CHARS) and pieces:
            pieces.append(line[1:])
            continue
        if pieces:
            logical.append("".join(pieces))
        pieces = [line]

    if pieces:
        logical.append("".join(pieces))
    return logical


def _split_outside_quotes(text: str, separator: str) -> List[str]:
    parts: List[str] = []
    current: List[str] = []
    quoted = False
    for char in text:
        if char == '"':
            quoted = not quoted
        if char == separator and not quoted:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return parts


def _find_value_colon(line: str) -> int:
    quoted = False
    for position, char in enumerate(line):
        if char == '"':
            quoted = not quoted
        elif char == ":" and not quoted:
            return position
    return -1


def split_property(line: str) -> Optional[ContentLine]:
    """Split a logical line into name, parameters and value.

    The value starts after the first colon that is not inside a quoted
    parameter value, so ``mailto:`` URIs and times survive intact.

    Args:
        line: One unfolded line

    Returns:
        ContentLine with an upper-cased name and parameter keys, or None when
        the line has no colon at all
    """
    colon = _find_value_colon(line)
    if colon < 0:
        return None

    head, value = line[:colon], line[colon + 1 :]
    name, *raw_params = _split_outside_quotes(head, ";")

    params: Dict[str, str] = {}
    for raw in raw_params:
        key, sep, param_value = raw.partition("=")
        if not sep:
            logger.debug(f"Ignoring parameter without value: {raw!r}")
            continue
        params[key.strip().upper()] = param_value.strip().strip('"')

    return ContentLine(name.strip().upper(), params, value)
