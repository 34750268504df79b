"""
Delivery stage.

Streams the deliverable back as a file attachment and owns the job's temp
files until the response is closed.
"""

import logging
import threading

from django.http import StreamingHttpResponse
from django.utils.http import content_disposition_header

from clips.service.config import get_cleanup_delay, get_delivery_filename, get_stream_chunk_size
from clips.service.constants import DELIVERY_CONTENT_TYPE

log = logging.getLogger(__name__)


class DeliverableResponse(StreamingHttpResponse):
    """
    Streaming response for a finished job.

    The server calls close() once it is done with the response, whether the
    body was fully sent or the client went away. close() records an
    incomplete transfer and then schedules release of the job's files.
    """

    def __init__(self, job, filename=None, chunk_size=None, cleanup_delay=None, logger=None):
        self.job = job
        self.logger = logger
        self.chunk_size = chunk_size or get_stream_chunk_size()
        self.cleanup_delay = get_cleanup_delay() if cleanup_delay is None else cleanup_delay
        self.completed = False
        self._closed = False

        path = job.deliverable_path
        # Opened up front so a missing file fails before any byte is sent
        self._file = open(path, 'rb')
        size = path.stat().st_size

        super().__init__(self._stream(), content_type=DELIVERY_CONTENT_TYPE)
        self['Content-Length'] = str(size)
        self['Content-Disposition'] = content_disposition_header(
            True, filename or get_delivery_filename()
        )
        self['Cache-Control'] = 'no-store'

    def _stream(self):
        try:
            for chunk in iter(lambda: self._file.read(self.chunk_size), b''):
                yield chunk
            self.completed = True
        except OSError as e:
            log.error('Delivery of job %s failed while reading: %s', self.job.job_id, e)
        finally:
            self._file.close()

    def close(self):
        try:
            super().close()
        finally:
            if not self._closed:
                self._closed = True
                self._file.close()
                if not self.completed:
                    log.warning(
                        'Delivery of job %s did not complete (client disconnected '
                        'or transfer aborted)', self.job.job_id,
                    )
                schedule_cleanup(self.job, delay=self.cleanup_delay, logger=self.logger)


def deliver(job, logger=None):
    """
    Build the response that streams the job's deliverable.

    Args:
        job: PipelineJob in the TRANSFORMING stage
        logger: Optional callable(str) for logging

    Returns:
        DeliverableResponse
    """
    response = DeliverableResponse(job, logger=logger)
    job.advance(job.STAGE_DELIVERING)
    if logger:
        logger(f'Sending {job.deliverable_path.name} as {get_delivery_filename()}')
    return response


def schedule_cleanup(job, delay=0, logger=None):
    """
    Release the job's temp files now, or after delay seconds.

    Args:
        job: PipelineJob
        delay: Seconds to wait first (0 runs cleanup inline)
        logger: Optional callable(str) for logging

    Returns:
        threading.Timer or None: The pending timer when delayed
    """
    if not job.is_finished and job.stage != job.STAGE_CLEANING_UP:
        job.advance(job.STAGE_CLEANING_UP)

    if delay and delay > 0:
        timer = threading.Timer(delay, _finish_cleanup, args=(job, logger))
        timer.daemon = True
        timer.start()
        return timer

    _finish_cleanup(job, logger)
    return None


def _finish_cleanup(job, logger=None):
    job.release(logger=logger)
    if job.stage == job.STAGE_CLEANING_UP:
        job.advance(job.STAGE_DONE)
