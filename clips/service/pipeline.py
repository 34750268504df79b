"""
Pipeline orchestration.

Runs the acquisition and transform stages for a validated job, in order,
inside a bounded number of concurrent slots. Failures leave nothing behind
on disk.
"""

import logging
import threading

from clips.service.config import get_max_concurrent_jobs
from clips.service.download import acquire_source
from clips.service.errors import PipelineError
from clips.service.process import transform_source

log = logging.getLogger(__name__)

_slots_lock = threading.Lock()
_slots = None
_slots_size = None


def get_job_slots():
    """
    Get the semaphore that caps concurrent downloads/encodes.

    Rebuilt when DOWNLOADER_MAX_CONCURRENT_JOBS changes. Jobs already holding
    a slot release it on the semaphore they acquired.
    """
    global _slots, _slots_size

    size = get_max_concurrent_jobs()
    with _slots_lock:
        if _slots is None or _slots_size != size:
            _slots = threading.BoundedSemaphore(size)
            _slots_size = size
        return _slots


def job_logger(job):
    """Create a logger callable that tags messages with the job id"""
    job_log = logging.getLogger('clips.jobs')

    def logger(message):
        job_log.info('[%s] %s', job.job_id, message)

    return logger


def run_pipeline(job, logger=None):
    """
    Download and encode a validated job.

    Args:
        job: PipelineJob in the VALIDATING stage
        logger: Optional callable(str) for logging (default: job_logger)

    Returns:
        Path: The deliverable, ready to stream

    Raises:
        AcquisitionFailed: If the download stage fails
        TransformFailed: If the encode stage fails
        PipelineError: For any other unexpected failure
    """
    if logger is None:
        logger = job_logger(job)

    logger(f'Processing URL: {job.url}')
    try:
        with get_job_slots():
            job.advance(job.STAGE_ACQUIRING)
            acquire_source(job, logger=logger)

            logger('Download complete, ensuring correct format...')
            job.advance(job.STAGE_TRANSFORMING)
            transform_source(job, logger=logger)
    except PipelineError as e:
        log.error('Job %s failed while %s: %s', job.job_id, job.stage.lower(), e)
        _abort(job, logger)
        raise
    except Exception as e:
        log.exception('Job %s failed unexpectedly while %s', job.job_id, job.stage.lower())
        _abort(job, logger)
        raise PipelineError(f'Unexpected error: {e}') from e

    return job.deliverable_path


def _abort(job, logger):
    job.fail()
    job.release(logger=logger)
