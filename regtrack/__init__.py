"""Background operations for the regulation tracker: job dispatch, rate limiting, URL health."""

__version__ = "0.1.0"
