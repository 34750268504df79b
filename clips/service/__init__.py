"""
Service layer for the download pipeline.

Each stage (validate, acquire, transform, deliver) lives in its own module
and is independent of the HTTP view. These functions are used by:
- The /download view (clips/views.py)
- The CLI management commands (clips/management/commands/)
"""
