"""Base exception shared by all wasixcc errors."""


class WasixccError(Exception):
    """Base class for expected wasixcc failures."""

    pass
