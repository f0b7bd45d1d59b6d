"""
Error types for the roof measurement engine

Only structurally invalid input raises. Degenerate geometry is dropped
quietly by the code that finds it.
"""


class RoofMeasureError(ValueError):
    """Base class for all measurement input errors"""


class InvalidGeometryError(RoofMeasureError):
    """Malformed coordinates, too few points, or an empty ring where one is required"""


class InvalidPitchError(RoofMeasureError):
    """Pitch text that cannot be parsed or a slope out of range"""


class InvalidMeasurementError(RoofMeasureError):
    """Negative, NaN or infinite area/length values"""


class ConfigurationError(RoofMeasureError):
    """Invalid configuration values"""


class StructureNotFoundError(RoofMeasureError, KeyError):
    """No structure or ridge line with the requested label"""

    def __init__(self, label: str, kind: str = "structure"):
        self.label = label
        self.kind = kind
        super().__init__(f"No {kind} with label '{label}'")

    def __str__(self) -> str:
        return f"No {self.kind} with label '{self.label}'"
