"""
Data models for normalized comments and ingestion results.
"""

from .comment import CommentRecord, Page, RunResult

__all__ = ["CommentRecord", "Page", "RunResult"]
