from __future__ import annotations

import zlib

import pytest

from storage_logger.blobs import BlobStore
from storage_logger.models import Entry
from storage_logger.reconcile import ImportMode
from storage_logger.repository import EntryRepository
from storage_logger.service import BackupBusyError, BackupService


def test_replace_import_swaps_collection(
    repository: EntryRepository, blobs: BlobStore, make_image
) -> None:
    service = BackupService(repository)
    repository.add(Entry(id="a", name="Widget", price=9.99), make_image())
    artifact = service.export_artifact()

    repository.remove("a")
    repository.add(Entry(id="z", name="Temporary"), make_image((0, 255, 0)))

    result = service.import_artifact(artifact, ImportMode.REPLACE)

    assert result.ok is True
    assert result.total == 1
    assert result.imported == 1
    assert [(e.id, e.name, e.price) for e in repository.entries] == [("a", "Widget", 9.99)]
    assert blobs.list() == [repository.get("a").image_ref]


def test_combine_import_counts_only_new_entries(repository: EntryRepository) -> None:
    service = BackupService(repository)
    repository.add(Entry(id="x", name="Original"))
    repository.add(Entry(id="y", name="Other"))
    artifact = service.export_artifact()
    repository.remove("y")

    result = service.import_artifact(artifact, "combine")

    assert result.ok is True
    assert result.mode is ImportMode.COMBINE
    assert result.total == 2
    assert result.imported == 1
    assert [e.id for e in repository.entries] == ["x", "y"]

    again = service.import_artifact(artifact, ImportMode.COMBINE)
    assert again.imported == 0
    assert len(repository) == 2


def test_corrupt_artifact_leaves_collection_untouched(
    repository: EntryRepository, blobs: BlobStore, make_image
) -> None:
    service = BackupService(repository)
    repository.add(Entry(id="a", name="Widget"), make_image())
    before = repository.entries
    files_before = blobs.list()

    for artifact in (b"garbage", zlib.compress(b"[{\"broken\": true}]")):
        result = service.import_artifact(artifact, ImportMode.REPLACE)
        assert result.ok is False
        assert result.error
        assert repository.entries == before
        assert blobs.list() == files_before


def test_busy_latch_refuses_overlapping_operations(repository: EntryRepository) -> None:
    service = BackupService(repository)
    artifact = service.export_artifact()
    assert service.busy is False

    service.is_importing = True
    with pytest.raises(BackupBusyError):
        service.export_artifact()
    with pytest.raises(BackupBusyError):
        service.import_artifact(artifact, ImportMode.COMBINE)

    service.is_importing = False
    assert service.import_artifact(artifact, ImportMode.COMBINE).ok is True
    assert service.busy is False


def test_invalid_mode_is_rejected(repository: EntryRepository) -> None:
    service = BackupService(repository)
    with pytest.raises(ValueError):
        service.import_artifact(service.export_artifact(), "merge")
