"""Console loop and local session service."""
