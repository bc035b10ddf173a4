"""Shared fixtures: frame factories and minimal DICOM files."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

import pydicom
import pytest
from pydicom.dataset import FileDataset, FileMetaDataset

from series.models import Frame


MR_IMAGE_STORAGE = "1.2.840.10008.5.1.4.1.1.4"


def build_frame(
    series_id: str,
    instance_number: Optional[int],
    *,
    series_number: Optional[int] = None,
    study_id: str = "1.2.3",
    sop_instance_uid: Optional[str] = None,
    identity: Optional[str] = None,
) -> Frame:
    sop = sop_instance_uid or f"{series_id}.{instance_number}"
    return Frame(
        image_identity=identity or f"mem:{sop}",
        study_id=study_id,
        series_id=series_id,
        sop_instance_uid=sop,
        series_number=series_number,
        instance_number=instance_number,
        series_description=f"Series {series_id}",
    )


@pytest.fixture
def make_frame() -> Callable[..., Frame]:
    return build_frame


def write_minimal_dicom(
    path: Path,
    *,
    sop_uid: str,
    series_uid: str = "1.2.3.4.5.6",
    study_uid: str = "1.2.3.4.5",
    series_number: Optional[int] = 1,
    instance_number: Optional[int] = 1,
    series_description: str = "T1 AX",
) -> Path:
    """Write a header-only MR instance to *path*."""

    file_meta = FileMetaDataset()
    file_meta.MediaStorageSOPClassUID = MR_IMAGE_STORAGE
    file_meta.MediaStorageSOPInstanceUID = sop_uid
    file_meta.TransferSyntaxUID = pydicom.uid.ExplicitVRLittleEndian

    ds = FileDataset(str(path), {}, file_meta=file_meta, preamble=b"\0" * 128)
    ds.PatientID = "TEST001"
    ds.StudyInstanceUID = study_uid
    ds.SeriesInstanceUID = series_uid
    ds.SOPInstanceUID = sop_uid
    ds.SOPClassUID = MR_IMAGE_STORAGE
    ds.Modality = "MR"
    ds.StudyDescription = "Brain"
    ds.SeriesDescription = series_description
    if series_number is not None:
        ds.SeriesNumber = series_number
    if instance_number is not None:
        ds.InstanceNumber = instance_number

    path.parent.mkdir(parents=True, exist_ok=True)
    ds.save_as(str(path), enforce_file_format=True)
    return path


@pytest.fixture
def dicom_study(tmp_path: Path) -> Path:
    """Two series on disk: series 2 with instances 2,1 and series 1 with instance 1."""

    root = tmp_path / "study"
    write_minimal_dicom(root / "b" / "img1.dcm", sop_uid="1.2.9.2.1", series_uid="1.2.9.2", series_number=2, instance_number=1)
    write_minimal_dicom(root / "a" / "img2.dcm", sop_uid="1.2.9.1.2", series_uid="1.2.9.1", series_number=1, instance_number=2)
    write_minimal_dicom(root / "a" / "img1.dcm", sop_uid="1.2.9.1.1", series_uid="1.2.9.1", series_number=1, instance_number=1)
    return root
