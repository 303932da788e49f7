"""
Registry error taxonomy and Result type.

Errors are exception classes so they carry a message and a stable wire code,
but components never raise them at each other: every operation hands back a
Result, and only the outermost caller decides whether to unwrap() (raise).
"""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar('T')


class RegistryError(Exception):
    """Base class for all registry error kinds"""
    code = "registryError"

    def toDict(self):
        return {'error': str(self), 'code': self.code}

    def __eq__(self, other):
        return type(self) is type(other) and self.args == other.args

    def __hash__(self):
        return hash((type(self), self.args))


class UnauthorizedRegistration(RegistryError):
    """Register or unregister attempted by a non-admin"""
    code = "unauthorizedRegistration"

    def __init__(self):
        super().__init__("Unauthorized; only admin may register or unregister code ID")


class UnauthorizedUpdateAdmin(RegistryError):
    """Admin change attempted by a non-admin"""
    code = "unauthorizedUpdateAdmin"

    def __init__(self):
        super().__init__("Unauthorized; only admin may update admin")


class CodeIdAlreadyRegistered(RegistryError):
    """(chainId, codeId) is already occupied"""
    code = "codeIdAlreadyRegistered"

    def __init__(self, codeId: int, chainId: str):
        super().__init__(f"Code ID {codeId} has already been registered on chain {chainId}")
        self.codeId = codeId
        self.chainId = chainId


class NotFound(RegistryError):
    code = "notFound"

    def __init__(self):
        super().__init__("Contract not found")


class InvalidIdentity(RegistryError):
    """Malformed address supplied for an admin field"""
    code = "invalidIdentity"

    def __init__(self, address: str, reason: str):
        super().__init__(f"Invalid address {address!r}: {reason}")
        self.address = address


class InvalidRequest(RegistryError):
    """Malformed or unknown message"""
    code = "invalidRequest"


class AlreadyInstantiated(RegistryError):
    code = "alreadyInstantiated"

    def __init__(self):
        super().__init__("Registry has already been instantiated")


class StorageFault(RegistryError):
    """Underlying store failure, passed through"""
    code = "storageFault"


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Success value or error, never both.

    Result.success(value) / Result.failure(error); check .ok before .value.
    """
    value: Optional[T] = None
    error: Optional[RegistryError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T = None) -> 'Result[T]':
        return cls(value=value)

    @classmethod
    def failure(cls, error: RegistryError) -> 'Result[T]':
        return cls(error=error)

    def unwrap(self) -> T:
        """Value on success, raise the error otherwise"""
        if self.error is not None:
            raise self.error
        return self.value
