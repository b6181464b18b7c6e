"""metadata-tool: identify local media files and attach verified source metadata."""

__version__ = "0.1.0"
