"""
Django management command to fetch a video from the command line.

Runs the same validate/download/encode pipeline as the /download endpoint
and copies the result to a local file instead of streaming it.
"""
import json
import shutil
import subprocess
from pathlib import Path

from django.core.management.base import BaseCommand, CommandError

from clips.service.config import (
    get_available_cookies_file,
    get_delivery_filename,
    get_encode_args,
    get_ffmpeg_binary,
    get_ffmpeg_location,
    get_ytdlp_extra_args,
)
from clips.service.download import build_ytdlp_command
from clips.service.errors import PipelineError, RequestValidationError
from clips.service.process import build_ffmpeg_command
from clips.service.pipeline import run_pipeline
from clips.service.validate import validate_request


class Command(BaseCommand):
    help = 'Download a video (optionally trimmed) and save it as MP4'

    def add_arguments(self, parser):
        parser.add_argument(
            'url',
            type=str,
            help='Page or media URL understood by yt-dlp'
        )
        parser.add_argument(
            '--start',
            type=str,
            default=None,
            help='Trim start in seconds'
        )
        parser.add_argument(
            '--end',
            type=str,
            default=None,
            help='Trim end in seconds'
        )
        parser.add_argument(
            '--output',
            type=str,
            default=None,
            help='Output file (default: ./downloaded_video.mp4)'
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Print the yt-dlp and ffmpeg commands without running them'
        )
        parser.add_argument(
            '--verbose',
            action='store_true',
            help='Enable verbose output'
        )
        parser.add_argument(
            '--json',
            action='store_true',
            help='Output result as JSON'
        )

    def handle(self, *args, **options):
        output_json = options['json']
        verbose = options['verbose']
        output_path = Path(options['output'] or get_delivery_filename())

        try:
            job = validate_request(options['url'], options['start'], options['end'])
        except RequestValidationError as e:
            raise CommandError(str(e))

        if options['dry_run']:
            ytdlp_cmd = build_ytdlp_command(
                job.url,
                job.source_path,
                cookies_file=get_available_cookies_file(),
                ffmpeg_location=get_ffmpeg_location(),
                extra_args=get_ytdlp_extra_args(),
            )
            ffmpeg_cmd = build_ffmpeg_command(
                job.source_path,
                job.deliverable_path,
                trim_start=job.trim_start,
                trim_end=job.trim_end,
                encode_args=get_encode_args(),
                ffmpeg_binary=get_ffmpeg_binary(),
            )
            if output_json:
                self.stdout.write(json.dumps({
                    'dry_run': True,
                    'url': job.url,
                    'ytdlp': ytdlp_cmd,
                    'ffmpeg': ffmpeg_cmd,
                    'output_path': str(output_path),
                }, indent=2))
            else:
                self.stdout.write(self.style.WARNING('DRY RUN MODE - Nothing will be downloaded'))
                self.stdout.write(f'yt-dlp: {subprocess.list2cmdline(ytdlp_cmd)}')
                self.stdout.write(f'ffmpeg: {subprocess.list2cmdline(ffmpeg_cmd)}')
                self.stdout.write(f'Output: {output_path}')
            return

        def logger(message):
            if verbose and not output_json:
                self.stdout.write(message)

        try:
            deliverable = run_pipeline(job, logger=logger)
        except PipelineError as e:
            if output_json:
                self.stdout.write(json.dumps({'success': False, 'error': str(e)}, indent=2))
            raise CommandError(f'Fetch failed: {e}')

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(deliverable, output_path)
        except OSError as e:
            job.fail()
            job.release(logger=logger)
            raise CommandError(f'Could not write {output_path}: {e}')

        job.advance(job.STAGE_CLEANING_UP)
        job.release(logger=logger)
        job.advance(job.STAGE_DONE)

        file_size = output_path.stat().st_size
        if output_json:
            self.stdout.write(json.dumps({
                'success': True,
                'url': job.url,
                'job_id': job.job_id,
                'trimmed': job.is_trimmed,
                'output_path': str(output_path),
                'file_size': file_size,
            }, indent=2))
        else:
            self.stdout.write(self.style.SUCCESS('✓ Fetch complete'))
            self.stdout.write(f'  URL: {job.url}')
            self.stdout.write(f'  Output: {output_path}')
            self.stdout.write(f'  Size: {file_size:,} bytes')
            self.stdout.write(f"  Trimmed: {'Yes' if job.is_trimmed else 'No'}")
