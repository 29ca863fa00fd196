"""Building blocks for gNMI telemetry collectors: path tree, paths, latency, metadata, errors."""

__version__ = "0.1.0"
__all__ = ["ctree", "errdiff", "errlist", "latency", "metadata", "path"]