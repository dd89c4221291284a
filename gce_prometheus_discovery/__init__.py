"""GCE service discovery daemon producing Prometheus file_sd target files."""

__version__ = "0.1.0"
