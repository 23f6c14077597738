"""
Extract facts from the free-text output of external tools.

The extractors are pure and return an empty string when the expected token
is absent. Callers turn an empty value into an ExtractionError with
``require_value`` so the failure surfaces in the phase that produced it.
"""

import re

from subnetbox.commands.errors import ExtractionError


def extract_labeled_value(output: str, label: str) -> str:
    """
    Return the quoted value that follows a quoted ``label`` key.

    ``'"Gateway": "0xABCDEF"'`` with label ``Gateway`` yields ``0xABCDEF``.
    Returns ``""`` if no line carries the label.
    """
    pattern = re.compile(r'"' + re.escape(label) + r'"\s*:\s*"([^"]*)"')
    for line in output.splitlines():
        match = pattern.search(line)
        if match:
            return match.group(1)
    return ""


def extract_inline_token(output: str, marker: str) -> str:
    """
    Return the first whitespace-delimited token after ``marker`` on its line.

    ``"Created subnet with id: /r31337/t410f..."`` with marker ``with id:``
    yields ``/r31337/t410f...``.
    """
    pattern = re.compile(re.escape(marker) + r"\s*(\S+)")
    for line in output.splitlines():
        match = pattern.search(line)
        if match:
            return match.group(1)
    return ""


def extract_following_line(output: str, marker: str) -> str:
    """
    Return the line after the first line containing ``marker``, with all
    blanks removed.
    """
    lines = output.splitlines()
    for i, line in enumerate(lines):
        if marker in line and i + 1 < len(lines):
            return re.sub(r"[ \t]", "", lines[i + 1]).strip()
    return ""


def extract_subnet_id(output: str) -> str:
    return extract_inline_token(output, "with id:")


def peer_id_from_multiaddr(multiaddr: str) -> str:
    """Return the component after ``/p2p/`` or ``""`` when there is none."""
    _, sep, peer_id = multiaddr.rpartition("/p2p/")
    return peer_id if sep else ""


def require_value(value: str, label: str, phase: str) -> str:
    """Return ``value`` or raise ExtractionError when it is empty."""
    if not value:
        raise ExtractionError(
            f"Could not find '{label}' in {phase} output",
            label=label,
            phase=phase,
        )
    return value
