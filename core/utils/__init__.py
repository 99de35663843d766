"""
Core Utilities Package

This package contains utility functions and helpers used throughout the application.

Modules:
    - time: Day buckets and timestamp conversion
"""

from core.utils.time import day_bucket, day_bucket_ms, to_utc_datetime

__all__ = ["day_bucket", "day_bucket_ms", "to_utc_datetime"]
