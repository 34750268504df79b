"""
Configuration adapter for the download pipeline.

Centralizes access to Django settings so the stages, the view and the
management commands all read the same values.
"""

import shlex
from pathlib import Path

from django.conf import settings


def get_download_dir():
    """Get the directory that holds per-job working directories"""
    return Path(settings.DOWNLOADER_DOWNLOAD_DIR)


def get_cookies_file():
    """
    Get the configured cookie store for yt-dlp.

    Returns:
        Path or None: None when cookies are disabled (empty setting)
    """
    cookies = settings.DOWNLOADER_COOKIES_FILE
    if not cookies:
        return None
    return Path(cookies)


def get_available_cookies_file():
    """
    Get the cookie store only if it is present right now.

    The file is looked up on every call so it can be added or rotated
    without a restart.

    Returns:
        Path or None
    """
    cookies = get_cookies_file()
    if cookies is not None and cookies.is_file():
        return cookies
    return None


def get_ytdlp_command():
    """
    Get the command that launches yt-dlp.

    Returns:
        list: Argument list (a string setting is split shell-style)
    """
    command = settings.DOWNLOADER_YTDLP_COMMAND
    if isinstance(command, str):
        return shlex.split(command)
    return list(command)


def get_ytdlp_extra_args():
    """Get additional yt-dlp arguments from settings as a list"""
    return parse_extra_args(settings.DOWNLOADER_YTDLP_EXTRA_ARGS)


def get_ffmpeg_binary():
    """Get the ffmpeg executable name or path"""
    return settings.DOWNLOADER_FFMPEG_BINARY


def get_ffmpeg_location():
    """
    Get the ffmpeg location to pass on to yt-dlp for merging.

    Returns:
        str or None: None when ffmpeg is expected on PATH
    """
    binary = get_ffmpeg_binary()
    if Path(binary).parent != Path('.'):
        return binary
    return None


def get_encode_args():
    """
    Get the fixed ffmpeg encode profile.

    Returns:
        list: ffmpeg arguments (codecs, preset, bitrates, container flags)
    """
    return parse_extra_args(settings.DOWNLOADER_FFMPEG_ARGS)


def get_acquire_timeout():
    """Seconds yt-dlp may run before the download is abandoned"""
    return settings.DOWNLOADER_ACQUIRE_TIMEOUT


def get_transform_timeout():
    """Seconds ffmpeg may run before the encode is abandoned"""
    return settings.DOWNLOADER_TRANSFORM_TIMEOUT


def get_max_concurrent_jobs():
    return max(1, int(settings.DOWNLOADER_MAX_CONCURRENT_JOBS))


def get_cleanup_delay():
    return max(0.0, float(settings.DOWNLOADER_CLEANUP_DELAY))


def get_stream_chunk_size():
    return max(1, int(settings.DOWNLOADER_STREAM_CHUNK_SIZE))


def get_delivery_filename():
    """Get the attachment file name sent to the caller"""
    return settings.DOWNLOADER_DELIVERY_FILENAME


def parse_extra_args(args_string):
    """
    Split an argument string from settings into a list.

    Args:
        args_string: Shell-style argument string, or an already split list

    Returns:
        list: Arguments

    Example:
        >>> parse_extra_args('--proxy "socks5://127.0.0.1:1080" --limit-rate 2M')
        ['--proxy', 'socks5://127.0.0.1:1080', '--limit-rate', '2M']
    """
    if not args_string:
        return []
    if isinstance(args_string, (list, tuple)):
        return [str(arg) for arg in args_string]
    return shlex.split(args_string)
