"""Engine exceptions.

Clinical findings about biometry are never raised; they are returned as a
ValidationReport. The exceptions below cover programmer errors and
degenerate arithmetic, which the batch runner isolates per formula.
"""


class IOLCalcError(Exception):
    """Base class for calculation engine failures."""


class UnsupportedAlgorithm(IOLCalcError, ValueError):
    """Raised when a formula identifier is not in the registry."""

    def __init__(self, algorithm):
        self.algorithm = algorithm
        super().__init__(f"Unsupported algorithm: {algorithm}")


# Older name kept for callers that catch it explicitly.
InvalidAlgorithm = UnsupportedAlgorithm


class NumericDegeneracy(IOLCalcError, ArithmeticError):
    """Raised when a formula hits a near-zero denominator or a non-finite value."""

    def __init__(self, quantity: str, value: float, algorithm: str | None = None):
        self.quantity = quantity
        self.value = value
        self.algorithm = algorithm
        where = f" in {algorithm}" if algorithm else ""
        super().__init__(f"Degenerate {quantity} ({value!r}){where}")


class UnsupportedDevice(IOLCalcError, ValueError):
    """Raised when a device payload format is unknown."""

    def __init__(self, device_type: str):
        self.device_type = device_type
        super().__init__(f"Unsupported device type: {device_type}")
