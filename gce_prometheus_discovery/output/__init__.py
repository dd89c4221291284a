"""Output side: rendering and writing the Prometheus target file."""
