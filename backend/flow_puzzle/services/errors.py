"""
Flow Puzzle - Generation Errors

Only caller bugs are raised out of the generation core. Stuck attempts,
failed validation and exhausted uniqueness searches are reported through
return values.
"""


class ParameterError(ValueError):
    """Malformed generation parameters (width < 3, min > max, empty palette...)."""


class StuckAttempt(Exception):
    """A single primary-generator attempt ran into a dead end."""
