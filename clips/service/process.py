"""
Transform stage.

Re-encodes the downloaded source to the delivery profile with ffmpeg,
optionally trimming it to the requested window.
"""

from clips.service.config import get_encode_args, get_ffmpeg_binary, get_transform_timeout
from clips.service.errors import TransformFailed
from clips.service.tools import run_tool_streaming

# ffmpeg -progress keys worth reporting
PROGRESS_KEYS = ('out_time', 'speed', 'progress')


def format_seconds(value):
    """
    Format seconds for an ffmpeg time option.

    Millisecond precision, no exponent notation, no trailing zeros.

    Example:
        >>> format_seconds(10.0)
        '10'
        >>> format_seconds(1.25)
        '1.25'
    """
    text = f'{value:.3f}'.rstrip('0').rstrip('.')
    if text in ('', '-0'):
        return '0'
    return text


def build_ffmpeg_command(input_path, output_path, trim_start=None, trim_end=None,
                         encode_args=None, ffmpeg_binary='ffmpeg'):
    """
    Build the ffmpeg argument list.

    The start bound is an input-side seek (-ss before -i). The end bound is an
    output-side limit: after an input seek the output timeline starts at zero,
    so the limit becomes the duration end - start.

    Args:
        input_path: Source media file
        output_path: Deliverable to write
        trim_start: Optional start in seconds
        trim_end: Optional end in seconds (position in the source)
        encode_args: Encode profile arguments
        ffmpeg_binary: ffmpeg executable

    Returns:
        list: Command arguments
    """
    cmd = [ffmpeg_binary, '-hide_banner', '-nostdin', '-y']

    if trim_start is not None:
        cmd += ['-ss', format_seconds(trim_start)]

    cmd += ['-i', str(input_path)]

    if trim_end is not None:
        if trim_start is not None:
            cmd += ['-t', format_seconds(trim_end - trim_start)]
        else:
            cmd += ['-to', format_seconds(trim_end)]

    cmd += list(encode_args or [])
    cmd += ['-progress', 'pipe:1', '-nostats', str(output_path)]
    return cmd


def parse_progress_line(line):
    """
    Parse one 'key=value' line of ffmpeg -progress output.

    Returns:
        tuple or None: (key, value), or None for anything else
    """
    key, sep, value = line.strip().partition('=')
    if not sep or not key:
        return None
    return key, value.strip()


def transform_source(job, logger=None):
    """
    Encode job.source_path into job.deliverable_path.

    Args:
        job: PipelineJob
        logger: Optional callable(str) for logging

    Returns:
        ToolInvocation for the ffmpeg run

    Raises:
        TransformFailed: If ffmpeg cannot start, fails, times out, or exits
            cleanly without writing the deliverable
    """

    def log(message):
        if logger:
            logger(message)

    if job.trim_start is not None:
        log(f'Trimming from {format_seconds(job.trim_start)}s')
    if job.trim_end is not None:
        log(f'Trimming to {format_seconds(job.trim_end)}s')

    cmd = build_ffmpeg_command(
        job.source_path,
        job.deliverable_path,
        trim_start=job.trim_start,
        trim_end=job.trim_end,
        encode_args=get_encode_args(),
        ffmpeg_binary=get_ffmpeg_binary(),
    )

    progress = {}

    def on_progress(line):
        parsed = parse_progress_line(line)
        if not parsed:
            return
        key, value = parsed
        if key not in PROGRESS_KEYS:
            return
        progress[key] = value
        # ffmpeg ends each progress block with progress=continue|end
        if key == 'progress':
            log(f"Progress: time={progress.get('out_time', '?')} "
                f"speed={progress.get('speed', '?')} ({value})")

    log(f'Transcoding {job.source_path.name} to {job.deliverable_path.name}')
    invocation = run_tool_streaming(
        cmd,
        timeout=get_transform_timeout(),
        on_line=on_progress,
        logger=logger,
    )

    if not invocation.ok:
        log(f'ffmpeg stderr: {invocation.stderr}')
        raise TransformFailed(f'Processing failed: {invocation.diagnostic()}', invocation)

    if not job.deliverable_path.exists():
        raise TransformFailed('Processing failed: output file was not created.', invocation)

    log(f'Processing complete: {job.deliverable_path.stat().st_size} bytes')
    return invocation
