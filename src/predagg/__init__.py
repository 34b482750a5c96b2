"""PredAgg - cross-venue prediction market aggregation, matching, and edge detection."""

__version__ = "0.1.0"
