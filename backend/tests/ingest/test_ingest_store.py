"""Tests for DICOM header mapping and frame stores."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from pydicom.dataset import Dataset

from conftest import write_minimal_dicom
from ingest.dicom_mappings import frame_from_dataset
from ingest.store import DicomFileStore, MemoryFrameStore, identity_to_path
from session.errors import FetchError


def test_frame_from_dataset_maps_identity_fields():
    ds = Dataset()
    ds.StudyInstanceUID = "1.2.3"
    ds.SeriesInstanceUID = "1.2.3.4"
    ds.SOPInstanceUID = "1.2.3.4.5"
    ds.SeriesNumber = 7
    ds.InstanceNumber = 12
    ds.SeriesDescription = "FLAIR"

    frame = frame_from_dataset("file.dcm", ds)

    assert frame.image_identity == "file.dcm"
    assert frame.series_id == "1.2.3.4"
    assert frame.sop_instance_uid == "1.2.3.4.5"
    assert frame.series_number == 7
    assert frame.instance_number == 12
    assert frame.series_description == "FLAIR"
    assert frame.study_description is None


def test_frame_from_dataset_tolerates_absent_numbers():
    ds = Dataset()
    ds.SeriesInstanceUID = "1.2"
    ds.SOPInstanceUID = "1.2.1"

    frame = frame_from_dataset("x", ds)

    assert frame.series_number is None
    assert frame.instance_number is None
    assert frame.study_id == ""


@pytest.mark.parametrize("missing", ["SeriesInstanceUID", "SOPInstanceUID"])
def test_frame_without_required_uid_is_a_fetch_error(missing):
    ds = Dataset()
    ds.SeriesInstanceUID = "1.2"
    ds.SOPInstanceUID = "1.2.1"
    delattr(ds, missing)

    with pytest.raises(FetchError, match=missing) as excinfo:
        frame_from_dataset("broken.dcm", ds)
    assert excinfo.value.identity == "broken.dcm"


def test_identity_scheme_prefix_is_stripped():
    assert identity_to_path("dicomfile:/data/a.dcm") == Path("/data/a.dcm")
    assert identity_to_path("/data/a.dcm") == Path("/data/a.dcm")


def test_dicom_file_store_reads_and_caches(tmp_path: Path):
    path = write_minimal_dicom(tmp_path / "one.dcm", sop_uid="1.2.826.1", series_number=3, instance_number=4)
    store = DicomFileStore()

    async def fetch_twice():
        first = await store.fetch(str(path))
        second = await store.fetch(f"dicomfile:{path}")
        return first, second

    first, second = asyncio.run(fetch_twice())

    assert first.sop_instance_uid == "1.2.826.1"
    assert first.series_number == 3
    assert first.instance_number == 4
    assert first.series_description == "T1 AX"
    assert second.sop_instance_uid == first.sop_instance_uid
    assert len(store) == 2

    store.evict(str(path))
    assert len(store) == 1
    store.clear()
    assert len(store) == 0


def test_dicom_file_store_reports_unreadable_files(tmp_path: Path):
    store = DicomFileStore()
    missing = tmp_path / "nope.dcm"

    with pytest.raises(FetchError) as excinfo:
        asyncio.run(store.fetch(str(missing)))
    assert excinfo.value.identity == str(missing)


def test_memory_store_failures_and_unknown_identities(make_frame):
    store = MemoryFrameStore({"a": make_frame("S", 1)}, failures={"b": "bad header"})

    with pytest.raises(FetchError, match="bad header"):
        asyncio.run(store.fetch("b"))
    with pytest.raises(FetchError, match="Unknown identity"):
        asyncio.run(store.fetch("c"))
    assert store.in_flight == 0
