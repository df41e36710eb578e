"""
clipmill: batch media transcoding over FFmpeg.

Generates large numbers of independent transcoding tasks from source
libraries and runs them under a concurrency limit, one retry per task.
"""

__version__ = "0.1.0"
