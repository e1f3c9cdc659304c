"""
Custom Exceptions for Cloud/Shadow Masking.

Provides a hierarchy of exceptions for the failure modes of the masking
pipeline. All of them are raised synchronously, before any output is
produced. Numeric degeneracy in the terrain correction is deliberately
not represented here: it propagates as non-finite raster values.
"""


class MsscvmError(Exception):
    """
    Base exception for masking pipeline failures.

    Attributes:
        message: Human-readable error description
        details: Additional context about the failure
    """

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


class MissingMetadataError(MsscvmError):
    """
    Required scalar property is absent from the image.

    Raised when sun geometry or per-band calibration coefficients cannot
    be found in an image's properties.

    Attributes:
        property_name: Name of the missing property (or properties)
        available: Property names that were present
    """

    def __init__(self, property_name: str, available: list = None):
        message = f"Required property '{property_name}' is missing"
        details = {"property_name": property_name}
        if available is not None:
            details["available"] = sorted(available)
        super().__init__(message, details)
        self.property_name = property_name
        self.available = list(available or [])


class MissingBandError(MsscvmError):
    """
    Required band is missing from the image.

    Attributes:
        band_name: Name of the missing band
        expected_bands: List of all expected bands
        found_bands: List of bands that were found
    """

    def __init__(
        self,
        band_name: str,
        expected_bands: list = None,
        found_bands: list = None,
    ):
        message = f"Required band '{band_name}' is missing"
        details = {
            "band_name": band_name,
            "expected_bands": expected_bands or [],
            "found_bands": found_bands or [],
        }
        super().__init__(message, details)
        self.band_name = band_name
        self.expected_bands = expected_bands or []
        self.found_bands = found_bands or []


class AuxiliaryDataUnavailableError(MsscvmError):
    """
    An auxiliary raster (elevation, water extent) could not be read.

    Never skipped silently: without elevation the terrain correction is
    undefined, and without the water extent shadows would leak into water.

    Attributes:
        source: Name or path of the auxiliary source
        original_error: The underlying exception, if any
    """

    def __init__(self, source: str, original_error: Exception = None):
        message = f"Auxiliary data unavailable: {source}"
        if original_error:
            message = f"{message} - {str(original_error)}"
        details = {
            "source": source,
            "original_error": str(original_error) if original_error else None,
        }
        super().__init__(message, details)
        self.source = source
        self.original_error = original_error


class GridMismatchError(MsscvmError):
    """
    Array dimensions do not match the image grid.

    Attributes:
        expected_shape: Shape of the image grid (rows, cols)
        actual_shape: Shape that was supplied
        name: Band or layer name, if known
    """

    def __init__(self, expected_shape: tuple, actual_shape: tuple, name: str = None):
        message = "Array shape does not match the image grid"
        if name:
            message = f"Band '{name}' shape does not match the image grid"
        details = {
            "expected_shape": expected_shape,
            "actual_shape": actual_shape,
        }
        super().__init__(message, details)
        self.expected_shape = expected_shape
        self.actual_shape = actual_shape
        self.name = name
