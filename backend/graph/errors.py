"""Exceptions raised by the task graph engine."""


class GraphLoadError(ValueError):
    """Raised when a graph document cannot be parsed or validated.

    The store guarantees that its state is untouched whenever this is raised.
    """
