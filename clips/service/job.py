"""
Pipeline job model.

A PipelineJob holds one request's parameters, its private working directory
and its current stage. Jobs live only as long as their request plus cleanup.
"""

import logging
import shutil
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from nanoid import generate

from clips.service.constants import (
    JOB_DIR_PREFIX,
    JOB_ID_ALPHABET,
    JOB_ID_SIZE,
    PROCESSED_FILENAME,
    SOURCE_FILENAME,
    TRIMMED_FILENAME,
)

log = logging.getLogger(__name__)


def new_job_id():
    """Generate a NanoID for a job"""
    return generate(JOB_ID_ALPHABET, size=JOB_ID_SIZE)


@dataclass
class PipelineJob:
    """One request travelling through validate, acquire, transform and deliver"""

    STAGE_VALIDATING = 'VALIDATING'
    STAGE_ACQUIRING = 'ACQUIRING'
    STAGE_TRANSFORMING = 'TRANSFORMING'
    STAGE_DELIVERING = 'DELIVERING'
    STAGE_CLEANING_UP = 'CLEANING_UP'
    STAGE_DONE = 'DONE'
    STAGE_FAILED = 'FAILED'

    STAGE_ORDER = (
        STAGE_VALIDATING,
        STAGE_ACQUIRING,
        STAGE_TRANSFORMING,
        STAGE_DELIVERING,
        STAGE_CLEANING_UP,
        STAGE_DONE,
    )
    TERMINAL_STAGES = (STAGE_DONE, STAGE_FAILED)

    url: str
    download_dir: Path
    trim_start: Optional[float] = None
    trim_end: Optional[float] = None
    job_id: str = field(default_factory=new_job_id)
    stage: str = STAGE_VALIDATING

    def __post_init__(self):
        self.download_dir = Path(self.download_dir)
        self._release_lock = threading.Lock()
        self._released = False

    @property
    def work_dir(self):
        return self.download_dir / f'{JOB_DIR_PREFIX}{self.job_id}'

    @property
    def source_path(self):
        return self.work_dir / SOURCE_FILENAME

    @property
    def is_trimmed(self):
        return self.trim_start is not None or self.trim_end is not None

    @property
    def deliverable_path(self):
        """The processed file, or the trimmed file when any trim bound is set"""
        if self.is_trimmed:
            return self.work_dir / TRIMMED_FILENAME
        return self.work_dir / PROCESSED_FILENAME

    @property
    def is_finished(self):
        return self.stage in self.TERMINAL_STAGES

    def advance(self, stage):
        """
        Move the job to a later stage.

        Stages only move forward. FAILED can be entered from any stage that is
        not terminal.

        Raises:
            ValueError: On an unknown stage or a backward/terminal transition
        """
        if self.is_finished:
            raise ValueError(f'Job {self.job_id} already finished ({self.stage})')

        if stage == self.STAGE_FAILED:
            self.stage = stage
            return

        if stage not in self.STAGE_ORDER:
            raise ValueError(f'Unknown stage: {stage}')

        if self.STAGE_ORDER.index(stage) <= self.STAGE_ORDER.index(self.stage):
            raise ValueError(f'Job {self.job_id} cannot move from {self.stage} to {stage}')

        self.stage = stage

    def fail(self):
        """Mark the job failed unless it already finished"""
        if not self.is_finished:
            self.stage = self.STAGE_FAILED

    def release(self, logger=None):
        """
        Delete the job's temp files and its working directory.

        Safe to call more than once and from several threads; only the first
        call does any work. Deletion errors are logged, never raised.

        Args:
            logger: Optional callable(str) for logging

        Returns:
            list: Paths that were removed
        """

        def log_message(message):
            if logger:
                logger(message)

        with self._release_lock:
            if self._released:
                return []
            self._released = True

        removed = []
        for path in self._owned_files():
            try:
                if path.exists():
                    path.unlink()
                    removed.append(path)
                    log_message(f'Removed {path.name}')
            except OSError as e:
                log.error('Cleanup of %s for job %s failed: %s', path, self.job_id, e)

        work_dir = self.work_dir
        try:
            if work_dir.is_dir():
                # yt-dlp may leave .part or per-format files behind
                shutil.rmtree(work_dir)
                removed.append(work_dir)
        except OSError as e:
            log.error('Cleanup of %s for job %s failed: %s', work_dir, self.job_id, e)

        return removed

    def _owned_files(self):
        seen = []
        for path in (self.source_path, self.deliverable_path):
            if path not in seen:
                seen.append(path)
        return seen
