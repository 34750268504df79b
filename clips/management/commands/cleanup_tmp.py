"""
Management command to clean up abandoned job directories.

Finds and removes tmp-<job id> directories left in the download directory
by processes that were killed before they could clean up after themselves.
"""
from datetime import datetime, timedelta
import shutil

from django.core.management.base import BaseCommand

from clips.service.config import get_download_dir
from clips.service.constants import JOB_DIR_PREFIX


class Command(BaseCommand):
    help = 'Clean up abandoned tmp-<job id> directories from interrupted downloads'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be deleted without actually deleting'
        )
        parser.add_argument(
            '--max-age',
            type=int,
            default=60,
            help='Maximum age in minutes before a job directory is considered abandoned (default: 60)'
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        max_age_minutes = options['max_age']

        download_dir = get_download_dir()
        if not download_dir.exists():
            self.stdout.write(self.style.SUCCESS('No download directory, nothing to clean'))
            return

        tmp_dirs = [d for d in download_dir.glob(f'{JOB_DIR_PREFIX}*') if d.is_dir()]
        if not tmp_dirs:
            self.stdout.write(self.style.SUCCESS('No tmp directories found'))
            return

        # Directories still being written to by a running job are younger than max age
        now = datetime.now()
        max_age = timedelta(minutes=max_age_minutes)
        old_tmp_dirs = []
        for tmp_dir in tmp_dirs:
            age = now - datetime.fromtimestamp(tmp_dir.stat().st_mtime)
            if age > max_age:
                old_tmp_dirs.append((tmp_dir, age))

        if not old_tmp_dirs:
            self.stdout.write(self.style.SUCCESS(
                f"Found {len(tmp_dirs)} tmp director{'ies' if len(tmp_dirs) != 1 else 'y'}, "
                f'but none are older than {max_age_minutes} minutes'
            ))
            return

        self.stdout.write(
            f"\nFound {len(old_tmp_dirs)} abandoned tmp director{'ies' if len(old_tmp_dirs) != 1 else 'y'}:"
        )

        total_size = 0
        for tmp_dir, age in old_tmp_dirs:
            dir_size = sum(f.stat().st_size for f in tmp_dir.rglob('*') if f.is_file())
            total_size += dir_size
            age_str = str(age).split('.')[0]
            self.stdout.write(
                f'  {tmp_dir.name:30} | Age: {age_str:15} | Size: {dir_size / (1024 * 1024):6.1f} MB'
            )

        self.stdout.write(f'Total size: {total_size / (1024 * 1024):.1f} MB\n')

        if dry_run:
            self.stdout.write(self.style.WARNING(
                f"DRY RUN: Would delete {len(old_tmp_dirs)} director{'ies' if len(old_tmp_dirs) != 1 else 'y'}"
            ))
            return

        deleted_count = 0
        for tmp_dir, _age in old_tmp_dirs:
            try:
                shutil.rmtree(tmp_dir)
                self.stdout.write(self.style.SUCCESS(f'✓ Deleted: {tmp_dir.name}'))
                deleted_count += 1
            except OSError as e:
                self.stdout.write(self.style.ERROR(f'✗ Failed to delete {tmp_dir.name}: {e}'))

        self.stdout.write(self.style.SUCCESS(
            f"\n✓ Deleted {deleted_count} of {len(old_tmp_dirs)} tmp director{'ies' if deleted_count != 1 else 'y'}"
        ))
