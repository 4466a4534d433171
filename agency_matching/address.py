"""Single-line display address from the referential's multi-line address."""

from __future__ import annotations

from typing import Iterable

ADDRESS_SEPARATOR = ", "


def normalize_address(address_lines: Iterable[str | None]) -> str:
    """
    Join the non-blank address lines with ", ".

    Empty or whitespace-only lines are dropped, not kept as empty segments:

        ["16 b RUE Gaston Romazzotti", "", "67120 MOLSHEIM"]
        → "16 b RUE Gaston Romazzotti, 67120 MOLSHEIM"
    """
    return ADDRESS_SEPARATOR.join(
        line for line in address_lines if line and line.strip()
    )
