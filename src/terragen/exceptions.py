"""Custom exceptions for terrain content generation."""


class TerrainContentError(Exception):
    """Base exception for terrain content errors."""

    pass


class ConfigurationError(TerrainContentError, ValueError):
    """Raised when generator parameters are invalid or unsatisfiable."""

    pass


class OutOfBoundsError(TerrainContentError, IndexError):
    """Raised when a field is queried outside its lattice."""

    pass
