"""
Tests for the management commands
"""
import json
import os
import subprocess
import tempfile
import time
from io import StringIO
from pathlib import Path
from unittest.mock import patch

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase, override_settings

from clips.service.tools import ToolInvocation


def fake_ytdlp(cmd, **kwargs):
    Path(cmd[cmd.index('-o') + 1]).write_bytes(b'raw download')
    return subprocess.CompletedProcess(cmd, 0, stdout='', stderr='')


def fake_ffmpeg(cmd, timeout=None, on_line=None, logger=None):
    Path(cmd[-1]).write_bytes(b'encoded video')
    return ToolInvocation(argv=cmd, returncode=0)


class CommandTestCase(TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.download_dir = Path(self.temp_dir.name) / 'downloads'
        self.download_dir.mkdir()
        self.settings_override = override_settings(
            DOWNLOADER_DOWNLOAD_DIR=str(self.download_dir),
            DOWNLOADER_COOKIES_FILE='',
            DOWNLOADER_YTDLP_COMMAND=['yt-dlp'],
            DOWNLOADER_YTDLP_EXTRA_ARGS='',
            DOWNLOADER_FFMPEG_BINARY='ffmpeg',
        )
        self.settings_override.enable()

    def tearDown(self):
        self.settings_override.disable()
        self.temp_dir.cleanup()


@patch('clips.service.process.run_tool_streaming', side_effect=fake_ffmpeg)
@patch('clips.service.tools.subprocess.run', side_effect=fake_ytdlp)
class FetchCommandTest(CommandTestCase):
    """Tests for ./manage.py fetch"""

    def test_fetch_writes_output(self, mock_run, mock_ffmpeg):
        output = Path(self.temp_dir.name) / 'out' / 'clip.mp4'
        out = StringIO()

        call_command('fetch', 'https://example.com/v', '--start', '1', '--end', '2',
                     '--output', str(output), stdout=out)

        self.assertEqual(output.read_bytes(), b'encoded video')
        self.assertIn('Fetch complete', out.getvalue())
        self.assertEqual(list(self.download_dir.glob('tmp-*')), [])

    def test_fetch_json(self, mock_run, mock_ffmpeg):
        output = Path(self.temp_dir.name) / 'clip.mp4'
        out = StringIO()

        call_command('fetch', 'https://example.com/v', '--output', str(output), '--json', stdout=out)

        result = json.loads(out.getvalue())
        self.assertTrue(result['success'])
        self.assertFalse(result['trimmed'])
        self.assertEqual(result['file_size'], len(b'encoded video'))

    def test_dry_run_runs_nothing(self, mock_run, mock_ffmpeg):
        out = StringIO()

        call_command('fetch', 'https://example.com/v', '--start', '5', '--dry-run', '--json', stdout=out)

        result = json.loads(out.getvalue())
        self.assertTrue(result['dry_run'])
        self.assertEqual(result['ytdlp'][-2:], ['--', 'https://example.com/v'])
        self.assertIn('-ss', result['ffmpeg'])
        self.assertTrue(result['ffmpeg'][-1].endswith('trimmed.mp4'))
        mock_run.assert_not_called()
        mock_ffmpeg.assert_not_called()
        self.assertEqual(list(self.download_dir.glob('tmp-*')), [])

    def test_invalid_range(self, mock_run, mock_ffmpeg):
        with self.assertRaises(CommandError) as ctx:
            call_command('fetch', 'https://example.com/v', '--start', '9', '--end', '3',
                         stdout=StringIO())
        self.assertIn('Start time must be less than end time.', str(ctx.exception))
        mock_run.assert_not_called()

    def test_pipeline_failure(self, mock_run, mock_ffmpeg):
        mock_run.side_effect = lambda cmd, **kwargs: subprocess.CompletedProcess(cmd, 1, '', 'ERROR')
        output = Path(self.temp_dir.name) / 'clip.mp4'

        with self.assertRaises(CommandError):
            call_command('fetch', 'https://example.com/v', '--output', str(output), stdout=StringIO())

        self.assertFalse(output.exists())
        self.assertEqual(list(self.download_dir.glob('tmp-*')), [])


class CleanupTmpCommandTest(CommandTestCase):
    """Tests for ./manage.py cleanup_tmp"""

    def make_job_dir(self, name, age_minutes):
        job_dir = self.download_dir / name
        job_dir.mkdir()
        (job_dir / 'original.mp4').write_bytes(b'x' * 1024)
        stamp = time.time() - age_minutes * 60
        os.utime(job_dir, (stamp, stamp))
        return job_dir

    def test_removes_only_old_dirs(self):
        old = self.make_job_dir('tmp-old', age_minutes=120)
        fresh = self.make_job_dir('tmp-fresh', age_minutes=1)
        out = StringIO()

        call_command('cleanup_tmp', stdout=out)

        self.assertFalse(old.exists())
        self.assertTrue(fresh.exists())
        self.assertIn('Deleted: tmp-old', out.getvalue())

    def test_dry_run_keeps_dirs(self):
        old = self.make_job_dir('tmp-old', age_minutes=120)
        out = StringIO()

        call_command('cleanup_tmp', '--dry-run', stdout=out)

        self.assertTrue(old.exists())
        self.assertIn('DRY RUN', out.getvalue())

    def test_max_age(self):
        job_dir = self.make_job_dir('tmp-recent', age_minutes=10)
        call_command('cleanup_tmp', '--max-age', '5', stdout=StringIO())
        self.assertFalse(job_dir.exists())

    def test_ignores_other_entries(self):
        other = self.download_dir / 'keep-me'
        other.mkdir()
        stamp = time.time() - 3 * 3600
        os.utime(other, (stamp, stamp))

        out = StringIO()
        call_command('cleanup_tmp', stdout=out)

        self.assertTrue(other.exists())
        self.assertIn('No tmp directories found', out.getvalue())


class CheckToolsCommandTest(CommandTestCase):
    """Tests for ./manage.py check_tools"""

    @patch('clips.management.commands.check_tools.run_tool')
    def test_all_tools_available(self, mock_run_tool):
        mock_run_tool.side_effect = [
            ToolInvocation(argv=['yt-dlp'], returncode=0, stdout='2024.08.06\n'),
            ToolInvocation(argv=['ffmpeg'], returncode=0, stdout='ffmpeg version 6.1\n'),
        ]
        out = StringIO()

        call_command('check_tools', stdout=out)

        output = out.getvalue()
        self.assertIn('yt-dlp: 2024.08.06', output)
        self.assertIn('ffmpeg: ffmpeg version 6.1', output)
        self.assertIn('Cookies: disabled', output)
        self.assertIn('Ready to download.', output)

    @patch('clips.management.commands.check_tools.run_tool')
    def test_missing_ffmpeg(self, mock_run_tool):
        mock_run_tool.side_effect = [
            ToolInvocation(argv=['yt-dlp'], returncode=0, stdout='2024.08.06\n'),
            ToolInvocation(argv=['ffmpeg'], error='No such file or directory'),
        ]
        out = StringIO()

        call_command('check_tools', stdout=out)

        output = out.getvalue()
        self.assertIn('could not start ffmpeg', output)
        self.assertIn('NOT available', output)

    @patch('clips.management.commands.check_tools.run_tool')
    def test_missing_cookies_file(self, mock_run_tool):
        mock_run_tool.return_value = ToolInvocation(argv=['tool'], returncode=0, stdout='ok\n')
        out = StringIO()

        with override_settings(DOWNLOADER_COOKIES_FILE='/nonexistent/cookies.txt'):
            call_command('check_tools', stdout=out)

        self.assertIn('/nonexistent/cookies.txt not found', out.getvalue())
