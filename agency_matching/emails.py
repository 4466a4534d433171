"""
Immersion Facilitée — Agency email list merging

An agency carries two ordered email lists: counsellors (pre-validate
conventions) and validators (sign them off).  A referential contact email is
attached as a validator unless the agency already knows it in either role.
"""

from __future__ import annotations

from typing import NamedTuple, Sequence


class MergedEmails(NamedTuple):
    counsellor_emails: list[str]
    validator_emails: list[str]


def merge_validator_email(
    counsellor_emails: Sequence[str],
    validator_emails: Sequence[str],
    new_email: str | None,
) -> MergedEmails:
    """
    Append new_email to the validator emails unless it is already present.

    Returns new lists; the inputs are never mutated.  When new_email is
    missing or already listed as counsellor or validator, both lists come
    back unchanged (same values, fresh copies).
    """
    counsellors = list(counsellor_emails)
    validators = list(validator_emails)

    if not new_email or new_email in counsellors or new_email in validators:
        return MergedEmails(counsellors, validators)

    return MergedEmails(counsellors, validators + [new_email])
