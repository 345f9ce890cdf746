"""
Error taxonomy for the portal map toolkit.

Coordinate-level problems (a single bad vertex) are filtered where they are
detected and never reach the caller. Structural problems (missing markup
delimiters, an unknown reference system) abort the current operation and are
raised as one of the types below.

Classes:
    PortalGeometryError: Base class for all toolkit errors
    InvalidCoordinateError: Non-finite or malformed numeric input
    MalformedMarkupError: Expected GML/KML delimiters are missing
    UnsupportedReferenceSystemError: Reference system outside the supported pair
    ReferenceSystemMismatchError: Points from different systems combined
"""


class PortalGeometryError(Exception):
    """Base class for errors raised by the toolkit."""


class InvalidCoordinateError(PortalGeometryError, ValueError):
    """Raised when a coordinate value is non-finite or cannot be parsed."""


class MalformedMarkupError(PortalGeometryError, ValueError):
    """Raised when GML or KML markup lacks the expected open/close markers."""


class UnsupportedReferenceSystemError(PortalGeometryError, ValueError):
    """Raised when a reference system token is not one of the supported systems."""

    def __init__(self, srs):
        self.srs = srs
        super().__init__(f"Unsupported reference system: {srs!r}")


class ReferenceSystemMismatchError(PortalGeometryError):
    """Raised when an operation mixes points tagged with different systems."""

    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Reference system mismatch: expected {expected}, got {actual}")
