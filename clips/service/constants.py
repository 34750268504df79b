"""
Pipeline constants.

Fixed file names inside a job directory and the messages returned to callers.
"""

# Job working directories are named <prefix><job id>
JOB_DIR_PREFIX = 'tmp-'

SOURCE_FILENAME = 'original.mp4'
PROCESSED_FILENAME = 'processed.mp4'
TRIMMED_FILENAME = 'trimmed.mp4'

DELIVERY_CONTENT_TYPE = 'video/mp4'

# yt-dlp format selector: best video with best audio, else best single file
YTDLP_FORMAT = 'bv*+ba/b'
YTDLP_MERGE_FORMAT = 'mp4'

# Alphabet and length of generated job ids
JOB_ID_ALPHABET = 'ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789'
JOB_ID_SIZE = 21

MISSING_URL_MESSAGE = 'Please provide a video URL!'
INVALID_START_MESSAGE = 'Invalid start time provided.'
INVALID_END_MESSAGE = 'Invalid end time provided.'
INVALID_RANGE_MESSAGE = 'Start time must be less than end time.'
PIPELINE_FAILED_MESSAGE = 'Failed to download and process video'
