"""
Tests for the /download endpoint
"""
import subprocess
import tempfile
from pathlib import Path
from unittest.mock import patch

from django.test import Client, TestCase, override_settings
from django.urls import reverse

from clips.service.tools import ToolInvocation

ENCODED = b'encoded video bytes'


def fake_ytdlp(cmd, **kwargs):
    Path(cmd[cmd.index('-o') + 1]).write_bytes(b'raw download')
    return subprocess.CompletedProcess(cmd, 0, stdout='', stderr='')


def failing_ytdlp(cmd, **kwargs):
    return subprocess.CompletedProcess(cmd, 1, stdout='', stderr='ERROR: Unable to extract\n')


def fake_ffmpeg(cmd, timeout=None, on_line=None, logger=None):
    Path(cmd[-1]).write_bytes(ENCODED)
    return ToolInvocation(argv=cmd, returncode=0)


class DownloadViewTest(TestCase):
    """Tests for GET /download"""

    def setUp(self):
        self.client = Client()
        self.temp_dir = tempfile.TemporaryDirectory()
        self.download_dir = Path(self.temp_dir.name)
        self.settings_override = override_settings(
            DOWNLOADER_DOWNLOAD_DIR=self.temp_dir.name,
            DOWNLOADER_COOKIES_FILE='',
            DOWNLOADER_YTDLP_COMMAND=['yt-dlp'],
            DOWNLOADER_YTDLP_EXTRA_ARGS='',
            DOWNLOADER_FFMPEG_BINARY='ffmpeg',
            DOWNLOADER_CLEANUP_DELAY=0,
            DOWNLOADER_DELIVERY_FILENAME='downloaded_video.mp4',
        )
        self.settings_override.enable()

        self.run_patcher = patch('clips.service.tools.subprocess.run', side_effect=fake_ytdlp)
        self.mock_run = self.run_patcher.start()
        self.ffmpeg_patcher = patch(
            'clips.service.process.run_tool_streaming', side_effect=fake_ffmpeg
        )
        self.mock_ffmpeg = self.ffmpeg_patcher.start()

    def tearDown(self):
        self.ffmpeg_patcher.stop()
        self.run_patcher.stop()
        self.settings_override.disable()
        self.temp_dir.cleanup()

    def job_dirs(self):
        return list(self.download_dir.glob('tmp-*'))

    def test_missing_url(self):
        response = self.client.get(reverse('download'))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {'error': 'Please provide a video URL!'})
        self.mock_run.assert_not_called()

    def test_blank_url(self):
        response = self.client.get(reverse('download'), {'url': '   '})
        self.assertEqual(response.status_code, 400)
        self.mock_run.assert_not_called()

    def test_invalid_start(self):
        response = self.client.get(reverse('download'), {'url': 'https://example.com/v', 'start': 'abc'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {'error': 'Invalid start time provided.'})
        self.mock_run.assert_not_called()

    def test_invalid_end(self):
        response = self.client.get(reverse('download'), {'url': 'https://example.com/v', 'end': '1:30'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {'error': 'Invalid end time provided.'})

    def test_start_after_end(self):
        response = self.client.get(
            reverse('download'), {'url': 'https://example.com/v', 'start': '10', 'end': '5'}
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {'error': 'Start time must be less than end time.'})
        self.mock_run.assert_not_called()
        self.assertEqual(self.job_dirs(), [])

    def test_download_failure(self):
        self.mock_run.side_effect = failing_ytdlp

        response = self.client.get(reverse('download'), {'url': 'https://example.com/v'})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {'error': 'Failed to download and process video'})
        self.mock_ffmpeg.assert_not_called()
        self.assertEqual(self.job_dirs(), [])

    def test_encode_failure(self):
        self.mock_ffmpeg.side_effect = lambda cmd, **kwargs: ToolInvocation(argv=cmd, returncode=1)

        response = self.client.get(reverse('download'), {'url': 'https://example.com/v'})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {'error': 'Failed to download and process video'})
        self.assertEqual(self.job_dirs(), [])

    def test_success_streams_attachment(self):
        response = self.client.get(reverse('download'), {'url': 'https://example.com/v'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], 'video/mp4')
        self.assertEqual(
            response['Content-Disposition'], 'attachment; filename="downloaded_video.mp4"'
        )
        self.assertEqual(response['Content-Length'], str(len(ENCODED)))
        self.assertEqual(b''.join(response.streaming_content), ENCODED)

    def test_success_removes_temp_files(self):
        """Test that nothing is left on disk once the response has been sent"""
        response = self.client.get(reverse('download'), {'url': 'https://example.com/v'})
        b''.join(response.streaming_content)

        self.assertEqual(self.job_dirs(), [])

    def test_untrimmed_encodes_to_processed_file(self):
        response = self.client.get(reverse('download'), {'url': 'https://example.com/v'})
        b''.join(response.streaming_content)

        cmd = self.mock_ffmpeg.call_args.args[0]
        self.assertEqual(Path(cmd[-1]).name, 'processed.mp4')
        self.assertNotIn('-ss', cmd)

    def test_trimmed_encodes_to_trimmed_file(self):
        response = self.client.get(
            reverse('download'), {'url': 'https://example.com/v', 'start': '10', 'end': '20'}
        )
        b''.join(response.streaming_content)

        cmd = self.mock_ffmpeg.call_args.args[0]
        self.assertEqual(Path(cmd[-1]).name, 'trimmed.mp4')
        self.assertEqual(cmd[cmd.index('-ss') + 1], '10')
        self.assertEqual(cmd[cmd.index('-t') + 1], '10')

    def test_empty_trim_params_are_ignored(self):
        response = self.client.get(
            reverse('download'), {'url': 'https://example.com/v', 'start': '', 'end': ''}
        )
        self.assertEqual(response.status_code, 200)
        b''.join(response.streaming_content)

        cmd = self.mock_ffmpeg.call_args.args[0]
        self.assertEqual(Path(cmd[-1]).name, 'processed.mp4')

    def test_url_passed_as_single_argument(self):
        url = 'https://example.com/watch?v=1&list=2; rm -rf /'
        response = self.client.get(reverse('download'), {'url': url})
        b''.join(response.streaming_content)

        cmd = self.mock_run.call_args.args[0]
        self.assertEqual(cmd[-2:], ['--', url])

    def test_trailing_slash(self):
        response = self.client.get('/download/', {'url': 'https://example.com/v'})
        self.assertEqual(response.status_code, 200)
        b''.join(response.streaming_content)

    def test_post_not_allowed(self):
        response = self.client.post(reverse('download'), {'url': 'https://example.com/v'})
        self.assertEqual(response.status_code, 405)
        self.mock_run.assert_not_called()
