"""Exceptions raised while turning stored exports back into records."""

from __future__ import annotations


class ReportFormatError(ValueError):
    """A serialised report, trade or balance sample is missing data."""
