"""
Snapshot transfer codec for backup files and size-limited backends.

Export always writes one JSON document named after the local date and time.
Import accepts either one JSON document or newline-delimited JSON fragments;
each fragment is merged into the accumulating snapshot in file order.

Partial-commit caveat: a malformed fragment stops the import, but fragments
merged before it stay applied. :class:`ImportAbortedError` carries that
partial snapshot and the caller is expected to commit it.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from chatsync.core.exceptions import ImportAbortedError, ParseError
from chatsync.core.merge import MergeOutcome, MergePolicy, merge_app_state
from chatsync.core.snapshot.models import AppSnapshot, validate_snapshot

logger = logging.getLogger(__name__)

# Largest value written to a single key on size-limited backends
DEFAULT_CHUNK_SIZE = 1_000_000

# Characters that cannot appear in a backup filename
_UNSAFE_FILENAME_CHARS = ("/", ":")


@dataclass
class ExportResult:
    """A serialized snapshot and the filename to save it under."""

    filename: str
    content: str


@dataclass
class ImportResult:
    """Snapshot after an import and how much of the file was applied."""

    snapshot: AppSnapshot
    fragments_applied: int
    outcomes: dict[str, MergeOutcome] = field(default_factory=dict)


def split_chunks(value: str, size: int = DEFAULT_CHUNK_SIZE) -> list[str]:
    """
    Split ``value`` into pieces of at most ``size`` characters.

    An empty value yields a single empty chunk so the stored chunk count is
    never zero.

    Raises:
        ValueError: If ``size`` is not positive
    """
    if size <= 0:
        raise ValueError("chunk size must be positive")
    return [value[i : i + size] for i in range(0, len(value), size)] or [""]


def backup_filename(now: datetime | None = None) -> str:
    """
    Build ``Backup-<local date> <local time>.json`` with path-unsafe characters
    replaced by underscores.

    Example:
        >>> backup_filename(datetime(2026, 10, 19, 15, 4, 5))
        'Backup-10_19_26 15_04_05.json'
    """
    now = now or datetime.now()
    date_part = f"{now.strftime('%x')} {now.strftime('%X')}"
    for char in _UNSAFE_FILENAME_CHARS:
        date_part = date_part.replace(char, "_")
    return f"Backup-{date_part}.json"


def export_snapshot(snapshot: AppSnapshot, now: datetime | None = None) -> ExportResult:
    """Serialize a snapshot as a single JSON document."""
    return ExportResult(
        filename=backup_filename(now),
        content=json.dumps(snapshot, ensure_ascii=False),
    )


def write_backup(
    snapshot: AppSnapshot,
    directory: Path,
    now: datetime | None = None,
) -> Path:
    """
    Export ``snapshot`` into ``directory``.

    Returns:
        Path of the written backup file
    """
    result = export_snapshot(snapshot, now)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / result.filename
    path.write_text(result.content, encoding="utf-8")
    logger.info("Exported %d partitions to %s", len(snapshot), path)
    return path


def decode_fragments(text: str) -> Iterator[Any]:
    """
    Yield the decoded fragments of a backup file.

    A file that parses as one JSON document is a single fragment. Otherwise
    every non-blank line is parsed as its own fragment, lazily, so a bad line
    only surfaces once the fragments before it have been consumed.

    Raises:
        ParseError: If the file is empty or a line is not valid JSON
    """
    if not text.strip():
        raise ParseError("Backup file is empty")

    try:
        document = json.loads(text)
    except json.JSONDecodeError:
        pass
    else:
        yield document
        return

    for line_num, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            yield json.loads(line)
        except json.JSONDecodeError as e:
            raise ParseError(
                f"Line {line_num} is not valid JSON: {e.msg}",
                line_num=line_num,
                position=e.pos,
            ) from e


def import_snapshot(
    local: AppSnapshot,
    text: str,
    policy: MergePolicy | None = None,
) -> ImportResult:
    """
    Merge every fragment of a backup file into ``local``, in file order.

    Args:
        local: Snapshot to import into (not mutated)
        text: Backup file content
        policy: Merge policy applied to each fragment

    Returns:
        ImportResult with the merged snapshot

    Raises:
        ImportAbortedError: On the first malformed fragment; carries the
            snapshot with every earlier fragment already merged
    """
    snapshot = local
    applied = 0
    outcomes: dict[str, MergeOutcome] = {}

    try:
        for fragment in decode_fragments(text):
            remote = validate_snapshot(fragment, source=f"fragment {applied + 1}")
            report = merge_app_state(snapshot, remote, policy)
            snapshot = report.snapshot
            outcomes.update(report.outcomes)
            applied += 1
    except ParseError as e:
        logger.warning("Import stopped after %d fragments: %s", applied, e)
        raise ImportAbortedError(
            f"Import aborted after {applied} fragment(s): {e}",
            snapshot=snapshot,
            fragments_applied=applied,
            **e.context,
        ) from e

    logger.info("Imported %d fragment(s)", applied)
    return ImportResult(snapshot=snapshot, fragments_applied=applied, outcomes=outcomes)


__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "ExportResult",
    "ImportResult",
    "backup_filename",
    "decode_fragments",
    "export_snapshot",
    "import_snapshot",
    "split_chunks",
    "write_backup",
]
