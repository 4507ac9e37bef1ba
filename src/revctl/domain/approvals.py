"""Approval records: content-addressed, multi-valued, append-only.

Approvals are attached to the *content* object of a reviewed file rather
than to a commit, so they carry forward across rebase, amend, or reorder:
any later revision whose file bytes are identical is already approved.

Each note holds one approval per line::

    <reviewer> <scrutiny:!+> <timestamp> [comment]

Lines are kept as an ordered set. Merging two notes is a plain set union,
which makes it commutative and idempotent. Lines that do not parse are
preserved verbatim (they may be manual edits) but never counted.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from revctl.domain.scrutiny import format_marker, parse_marker

logger = logging.getLogger(__name__)


class Approval(BaseModel):
    """One reviewer's sign-off on one content object."""

    model_config = {"frozen": True}

    subject: str
    scrutiny: int = Field(ge=1)
    reviewer: str
    timestamp: str
    comment: str | None = None


def format_approval(approval: Approval) -> str:
    """Render an approval as a single note line."""
    parts = [approval.reviewer, format_marker(approval.scrutiny), approval.timestamp]
    if approval.comment:
        parts.append(" ".join(approval.comment.split()))
    return " ".join(parts)


def parse_approval_line(subject: str, line: str) -> Approval | None:
    """Parse one note line, or None if it is not an approval record."""
    fields = line.split(maxsplit=3)
    if len(fields) < 3:
        return None
    reviewer, marker, timestamp = fields[:3]
    try:
        scrutiny = parse_marker(marker)
    except ValueError:
        return None
    comment = fields[3] if len(fields) == 4 else None
    return Approval(
        subject=subject,
        scrutiny=scrutiny,
        reviewer=reviewer,
        timestamp=timestamp,
        comment=comment,
    )


def note_lines(text: str | None) -> set[str]:
    """The set of meaningful lines in a note."""
    if not text:
        return set()
    return {line.strip() for line in text.splitlines() if line.strip()}


def parse_approvals(subject: str, text: str | None) -> list[Approval]:
    """All well-formed approvals in a note, in line order."""
    approvals: list[Approval] = []
    for line in sorted(note_lines(text)):
        approval = parse_approval_line(subject, line)
        if approval is None:
            logger.debug("Ignoring unrecognised approval line on %s: %r", subject, line)
            continue
        approvals.append(approval)
    return approvals


def render_note(lines: set[str]) -> str:
    """Render a line set deterministically (sorted, newline-terminated)."""
    return "".join(f"{line}\n" for line in sorted(lines))


def merge_approval_notes(ours: str | None, theirs: str | None) -> str:
    """Union two approval notes; byte-identical records collapse."""
    return render_note(note_lines(ours) | note_lines(theirs))


def append_approval(existing: str | None, approval: Approval) -> str:
    """Add *approval* to an existing note without touching other records."""
    return render_note(note_lines(existing) | {format_approval(approval)})


def valid_reviewer(name: str) -> bool:
    """Whether *name* fits both an approval line and a rule's reviewer list.

    Both formats split on whitespace, and rule reviewer lists on commas.
    """
    return bool(name) and not any(ch.isspace() or ch == "," for ch in name)
