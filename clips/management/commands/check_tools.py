"""
Django management command to check the external tools and their configuration.

Usage:
    ./manage.py check_tools
"""

import subprocess

from django.core.management.base import BaseCommand
from yt_dlp.version import __version__ as ytdlp_library_version

from clips.service.config import (
    get_cookies_file,
    get_download_dir,
    get_ffmpeg_binary,
    get_max_concurrent_jobs,
    get_ytdlp_command,
)
from clips.service.tools import run_tool


class Command(BaseCommand):
    help = 'Check yt-dlp, ffmpeg, the download directory and the cookies file'

    def handle(self, *args, **options):
        self.stdout.write('\n=== Configuration ===\n')

        ytdlp_cmd = get_ytdlp_command()
        ffmpeg = get_ffmpeg_binary()
        download_dir = get_download_dir()
        cookies = get_cookies_file()

        self.stdout.write(f'DOWNLOADER_YTDLP_COMMAND: {subprocess.list2cmdline(ytdlp_cmd)}')
        self.stdout.write(f'DOWNLOADER_FFMPEG_BINARY: {ffmpeg}')
        self.stdout.write(f'DOWNLOADER_DOWNLOAD_DIR: {download_dir}')
        self.stdout.write(f"DOWNLOADER_COOKIES_FILE: {cookies or '(disabled)'}")
        self.stdout.write(f'DOWNLOADER_MAX_CONCURRENT_JOBS: {get_max_concurrent_jobs()}')

        self.stdout.write('\n=== Status ===\n')
        all_ok = True

        self.stdout.write(f'yt-dlp library: {ytdlp_library_version}')
        result = run_tool(ytdlp_cmd + ['--version'], timeout=30)
        if result.ok:
            self.stdout.write(self.style.SUCCESS(f'yt-dlp: {result.stdout.strip()}'))
        else:
            all_ok = False
            self.stdout.write(self.style.ERROR(f'yt-dlp: {result.diagnostic()}'))

        result = run_tool([ffmpeg, '-hide_banner', '-version'], timeout=30)
        if result.ok:
            first_line = result.stdout.strip().splitlines()[0] if result.stdout.strip() else 'ok'
            self.stdout.write(self.style.SUCCESS(f'ffmpeg: {first_line}'))
        else:
            all_ok = False
            self.stdout.write(self.style.ERROR(f'ffmpeg: {result.diagnostic()}'))

        try:
            download_dir.mkdir(parents=True, exist_ok=True)
            self.stdout.write(self.style.SUCCESS(f'Download directory: {download_dir} (exists)'))
        except OSError as e:
            all_ok = False
            self.stdout.write(self.style.ERROR(f'Download directory: {e}'))

        if cookies is None:
            self.stdout.write('Cookies: disabled')
        elif cookies.is_file():
            self.stdout.write(self.style.SUCCESS(f'Cookies: {cookies}'))
        else:
            self.stdout.write(self.style.WARNING(
                f'Cookies: {cookies} not found, downloads from sites that require login may fail'
            ))

        if all_ok:
            self.stdout.write(self.style.SUCCESS('\nReady to download.'))
        else:
            self.stdout.write(self.style.ERROR('\nSome tools are NOT available.'))
        self.stdout.write('')
