"""
Acquisition stage.

Downloads the requested media into the job's working directory with yt-dlp,
run as a child process so it can be timed out and cannot block other jobs.
"""

import logging

from clips.service.config import (
    get_acquire_timeout,
    get_available_cookies_file,
    get_cookies_file,
    get_ffmpeg_location,
    get_ytdlp_command,
    get_ytdlp_extra_args,
)
from clips.service.constants import YTDLP_FORMAT, YTDLP_MERGE_FORMAT
from clips.service.errors import AcquisitionFailed
from clips.service.tools import run_tool

log = logging.getLogger(__name__)


def build_ytdlp_command(url, output_path, cookies_file=None, ffmpeg_location=None,
                        extra_args=None):
    """
    Build the yt-dlp argument list.

    Args:
        url: Source URL
        output_path: Exact path the merged file is written to
        cookies_file: Optional Netscape cookie file for authenticated sites
        ffmpeg_location: Optional ffmpeg path yt-dlp should merge with
        extra_args: Additional yt-dlp arguments from settings

    Returns:
        list: Command arguments, URL last after a '--' separator
    """
    cmd = get_ytdlp_command() + [
        '--no-playlist',
        '--no-mtime',
        '-f', YTDLP_FORMAT,
        '--merge-output-format', YTDLP_MERGE_FORMAT,
        '-o', str(output_path),
    ]

    if cookies_file:
        cmd += ['--cookies', str(cookies_file)]

    if ffmpeg_location:
        cmd += ['--ffmpeg-location', str(ffmpeg_location)]

    if extra_args:
        cmd += list(extra_args)

    # Anything after '--' is a URL, even if it starts with '-'
    cmd += ['--', url]
    return cmd


def acquire_source(job, logger=None):
    """
    Download the job's URL to job.source_path.

    Args:
        job: PipelineJob
        logger: Optional callable(str) for logging

    Returns:
        ToolInvocation for the yt-dlp run

    Raises:
        AcquisitionFailed: If yt-dlp cannot start, fails, times out, or exits
            cleanly without writing the source file
    """

    def log_message(message):
        if logger:
            logger(message)

    job.work_dir.mkdir(parents=True, exist_ok=True)

    cookies_file = get_available_cookies_file()
    if cookies_file:
        log_message(f'Using cookies file for authentication: {cookies_file}')
    else:
        log.warning(
            'Cookies file %s not found, downloading may fail for sites that require login.',
            get_cookies_file() or '(disabled)',
        )

    cmd = build_ytdlp_command(
        job.url,
        job.source_path,
        cookies_file=cookies_file,
        ffmpeg_location=get_ffmpeg_location(),
        extra_args=get_ytdlp_extra_args(),
    )

    log_message(f'Downloading with yt-dlp: {job.url}')
    invocation = run_tool(cmd, timeout=get_acquire_timeout(), logger=logger)

    if invocation.stdout or invocation.stderr:
        log.debug('yt-dlp output for job %s:\n%s%s', job.job_id, invocation.stdout,
                  invocation.stderr)

    if not invocation.ok:
        raise AcquisitionFailed(f'Download failed: {invocation.diagnostic()}', invocation)

    # yt-dlp can exit 0 without writing anything (e.g. nothing matched the format)
    if not job.source_path.exists():
        raise AcquisitionFailed('Download failed: File was not created.', invocation)

    log_message(f'Downloaded: {job.source_path.name} ({job.source_path.stat().st_size} bytes)')
    return invocation
