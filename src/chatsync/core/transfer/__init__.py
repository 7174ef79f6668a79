"""
Backup import/export and payload chunking.

Example:
    >>> from chatsync.core.transfer import import_snapshot, write_backup
    >>> path = write_backup(store.read(), Path("backups"))
    >>> result = import_snapshot(store.read(), path.read_text())
    >>> store.write(result.snapshot)
"""

from chatsync.core.transfer.codec import (
    DEFAULT_CHUNK_SIZE,
    ExportResult,
    ImportResult,
    backup_filename,
    decode_fragments,
    export_snapshot,
    import_snapshot,
    split_chunks,
    write_backup,
)

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
