"""
Exceptions raised by the CA

Every error is fatal for the running operation: nothing retries, nothing is
downgraded to a warning. Only the CLI turns them into an exit status.
"""

from pathlib import Path
from typing import Optional, Union


class VpnCaError(Exception):
    """
    Base class of every CA failure

    Args:
        message: Human readable cause
        step: Operation that failed (e.g. "write certificate")
        path: File involved, if any
        field: Input field involved, if any
    """

    kind = "VpnCaError"

    def __init__(
            self,
            message: str,
            step: Optional[str] = None,
            path: Optional[Union[str, Path]] = None,
            field: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.step = step
        self.path = Path(path) if path is not None else None
        self.field = field

    def __str__(self) -> str:
        where = self.path or self.field
        if where:
            return f"{self.message} ({where})"
        return self.message


class AlreadyExistsError(VpnCaError):
    """A key or certificate file is already present"""
    kind = "AlreadyExists"


class MalformedPemError(VpnCaError):
    """No PEM block could be found"""
    kind = "MalformedPem"


class WrongPemTypeError(VpnCaError):
    """The PEM block carries an unexpected label"""
    kind = "WrongPemType"


class CaNotInitializedError(VpnCaError):
    """ca.key or ca.crt is missing"""
    kind = "CaNotInitialized"


class CorruptCaStateError(VpnCaError):
    """ca.key or ca.crt cannot be decoded"""
    kind = "CorruptCaState"


class InvalidNameError(VpnCaError):
    """Rejected common name"""
    kind = "InvalidName"


class InvalidTimestampError(VpnCaError):
    """Requested expiration is not an RFC 3339 timestamp"""
    kind = "InvalidTimestamp"


class NotInFutureError(VpnCaError):
    """Requested expiration is not strictly after now"""
    kind = "NotInFuture"


class ExceedsIssuerValidityError(VpnCaError):
    """Requested expiration is after the CA expiration"""
    kind = "ExceedsIssuerValidity"


class CryptoFailureError(VpnCaError):
    """Key generation, signing or random number generation failed"""
    kind = "CryptoFailure"


class StorageError(VpnCaError):
    """Filesystem fault other than a name collision"""
    kind = "StorageFailure"


__all__ = [
    'VpnCaError',
    'AlreadyExistsError',
    'MalformedPemError',
    'WrongPemTypeError',
    'CaNotInitializedError',
    'CorruptCaStateError',
    'InvalidNameError',
    'InvalidTimestampError',
    'NotInFutureError',
    'ExceedsIssuerValidityError',
    'CryptoFailureError',
    'StorageError'
]
