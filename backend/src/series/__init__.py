"""Study/Series/Image hierarchy built from fetched frames."""

from .aggregator import SeriesAggregator
from .models import Frame, Series

__all__ = ["Frame", "Series", "SeriesAggregator"]
