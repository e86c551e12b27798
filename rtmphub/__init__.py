"""Stream registry, session state, statistics and handler hooks for RTMP servers."""

__version__ = "0.5.0"