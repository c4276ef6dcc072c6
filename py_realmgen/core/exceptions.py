"""
Error taxonomy for world generation.

Configuration and degenerate-geometry errors abort a generation run;
invariant violations indicate a defect in the pipeline itself. A poor
random outcome (few alliances, a single culture) is never an error.
"""


class GenerationError(Exception):
    """Base class for every fatal generation condition."""


class ConfigurationError(GenerationError, ValueError):
    """Invalid request parameters (empty seed, non-positive dimensions)."""


class DegenerateGeometryError(GenerationError):
    """The terrain cannot support the requested partitioning (e.g. no land)."""


class InvariantViolationError(GenerationError):
    """A structural invariant (acyclic hierarchy, full coverage) was broken."""
