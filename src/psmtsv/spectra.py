"""
Spectra file descriptors and scan header lookup.

Percolator results carry no retention time, so it is looked up by scan
number in the spectra file. mzML and MGF files are read with pyteomics;
Thermo ``.raw`` files need vendor libraries and yield no scans.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional

from pyteomics import mgf, mzml

from .logger import get_logger
from .utils import period_tolerant_stem

logger = get_logger(__name__)


@dataclass(frozen=True)
class SpectraFileInfo:
    """A spectra file an identification can belong to."""
    full_file_path: str
    condition: str = ""
    biological_replicate: int = 0
    fraction: int = 0
    technical_replicate: int = 0

    @property
    def filename_without_extension(self) -> str:
        return period_tolerant_stem(self.full_file_path)

    @classmethod
    def from_paths(cls, paths) -> List['SpectraFileInfo']:
        return [cls(p) for p in paths]


@dataclass(frozen=True)
class ScanHeaderInfo:
    """Scan number and retention time (minutes) of one MS2 scan."""
    file_path: str
    file_name_without_extension: str
    scan_number: int
    retention_time: float


def _parse_scan_num(spec: dict, index: int) -> int:
    """Scan number from a native id, or the one-based spectrum index."""
    scan_id = spec.get('id', '')
    if 'scan=' in scan_id:
        return int(scan_id.split('scan=')[-1].split()[0])
    return index + 1


def _mzml_scan_headers(path: str) -> List[ScanHeaderInfo]:
    stem = period_tolerant_stem(path)
    headers = []
    with mzml.MzML(path) as reader:
        for index, spec in enumerate(reader):
            if spec.get('ms level', 2) == 1:
                continue
            rt = 0.0
            if 'scanList' in spec and 'scan' in spec['scanList']:
                rt_val = spec['scanList']['scan'][0].get('scan start time')
                if rt_val is not None:
                    rt = float(rt_val)
            headers.append(ScanHeaderInfo(path, stem, _parse_scan_num(spec, index), rt))
    return headers


def _mgf_scan_headers(path: str) -> List[ScanHeaderInfo]:
    stem = period_tolerant_stem(path)
    headers = []
    with mgf.MGF(path) as reader:
        for index, spec in enumerate(reader):
            params = spec.get('params', {})
            scan = params.get('scans')
            scan_number = int(str(scan).split('-')[0]) if scan is not None else index + 1
            rt = float(params.get('rtinseconds', 0.0)) / 60.0
            headers.append(ScanHeaderInfo(path, stem, scan_number, rt))
    return headers


def file_scan_header_info(path: str) -> List[ScanHeaderInfo]:
    """
    Read scan numbers and retention times of the MS2 scans in a spectra file.

    Args:
        path: mzML, MGF or raw file.

    Returns:
        One entry per MS2 scan; empty for unreadable formats.
    """
    ext = os.path.splitext(path)[1].lower()
    if ext == '.mzml':
        return _mzml_scan_headers(path)
    if ext == '.mgf':
        return _mgf_scan_headers(path)
    logger.warning("Cannot read scan headers from %s; %s files are not supported", path, ext)
    return []


def find_retention_time(headers: List[ScanHeaderInfo], file_name: str,
                        scan_number: int) -> Optional[float]:
    """Retention time of *scan_number* in the file named *file_name*."""
    stem = period_tolerant_stem(file_name)
    for header in headers:
        if header.scan_number == scan_number and period_tolerant_stem(header.file_name_without_extension) == stem:
            return header.retention_time
    return None
