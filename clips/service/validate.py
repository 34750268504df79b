"""
Request validation.

Turns raw query values into a PipelineJob, or raises before anything touches
the filesystem or starts a process.
"""

import math

from clips.service.config import get_download_dir
from clips.service.errors import InvalidRange, InvalidTime, MissingURL
from clips.service.job import PipelineJob


def parse_time(value, field):
    """
    Parse an optional trim bound in seconds.

    Args:
        value: Raw query value (str, number or None)
        field: 'start' or 'end', used in the error

    Returns:
        float or None: None when the value is absent or blank

    Raises:
        InvalidTime: If the value is not a finite number
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if value == '':
            return None

    try:
        seconds = float(value)
    except (TypeError, ValueError):
        raise InvalidTime(field, value)

    if not math.isfinite(seconds):
        raise InvalidTime(field, value)

    return seconds


def validate_request(url, start=None, end=None, download_dir=None):
    """
    Validate download parameters and create the job.

    Args:
        url: Media URL to fetch
        start: Optional trim start in seconds
        end: Optional trim end in seconds
        download_dir: Parent for the job directory (default from settings)

    Returns:
        PipelineJob in the VALIDATING stage

    Raises:
        MissingURL: If the URL is absent or blank
        InvalidTime: If start or end is not a finite number
        InvalidRange: If both bounds are given and start >= end
    """
    if url is None or not str(url).strip():
        raise MissingURL()

    trim_start = parse_time(start, 'start')
    trim_end = parse_time(end, 'end')

    if trim_start is not None and trim_end is not None and trim_start >= trim_end:
        raise InvalidRange(trim_start, trim_end)

    return PipelineJob(
        url=str(url).strip(),
        download_dir=download_dir if download_dir is not None else get_download_dir(),
        trim_start=trim_start,
        trim_end=trim_end,
    )
