"""
YouTube comment scraper.

Collects every comment and reply of a video from the YouTube Data API, sends them
to a classification service and derives the dashboard views from the results.
"""

__version__ = "0.1.0"
