"""Export/import orchestration around the entry repository."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from loguru import logger

from .backup import BackupCodec, BackupFormatError
from .reconcile import ImportMode, reconcile_entries
from .repository import EntryRepository


class BackupBusyError(Exception):
    """Raised when an export or import is requested while one is in flight."""


@dataclass
class ImportResult:
    ok: bool
    mode: ImportMode
    total: int = 0
    imported: int = 0
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "mode": str(self.mode),
            "total": self.total,
            "imported": self.imported,
            "error": self.error,
        }


class BackupService:
    """Runs one export or import at a time against ``repository``.

    The latch is a plain flag checked before work starts, the same way a
    form disables its submit button while a save is outstanding.
    """

    def __init__(self, repository: EntryRepository, codec: BackupCodec | None = None) -> None:
        self.repository = repository
        self.codec = codec or BackupCodec(repository.blobs)
        self.is_exporting = False
        self.is_importing = False

    @property
    def busy(self) -> bool:
        return self.is_exporting or self.is_importing

    @contextmanager
    def _latch(self, name: str) -> Iterator[None]:
        if self.busy:
            raise BackupBusyError("another backup operation is in progress")
        setattr(self, name, True)
        try:
            yield
        finally:
            setattr(self, name, False)

    def export_artifact(self) -> bytes:
        with self._latch("is_exporting"):
            return self.codec.export_entries(self.repository.entries)

    def import_artifact(self, artifact: bytes, mode: ImportMode | str) -> ImportResult:
        mode = ImportMode(mode)
        with self._latch("is_importing"):
            try:
                transport = self.codec.decode_artifact(artifact)
            except BackupFormatError as e:
                logger.warning(f"Import failed: {e}")
                return ImportResult(ok=False, mode=mode, error=str(e))

            existing = self.repository.entries
            restored = reconcile_entries(
                transport,
                existing,
                mode,
                blobs=self.repository.blobs,
                codec=self.repository.codec,
            )
            self.repository.replace_all(restored)
            imported = len(restored) if mode is ImportMode.REPLACE else len(restored) - len(existing)
            logger.info(f"Imported {imported} of {len(transport)} entries ({mode})")
            return ImportResult(ok=True, mode=mode, total=len(transport), imported=imported)
