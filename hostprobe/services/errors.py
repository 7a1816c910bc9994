class ProbeSourceError(RuntimeError):
    """A mandatory kernel information source could not be read."""
