"""
Fetching components: retrying requests, cursor pagination and comment collection.
"""

from .collector import CommentCollector
from .fetcher import ResilientFetcher
from .pagination import PageWalker

__all__ = ["CommentCollector", "PageWalker", "ResilientFetcher"]
