"""
Address validation (host collaborator).

The registry never interprets identities; it only needs to know an address
is well formed before storing it as admin. The default rule is the one a
Cosmos-style host applies to plain addresses: 3..90 characters, lowercase,
no whitespace, printable ASCII. Hosts with a stricter scheme pass their own
validator into RegistryHost.
"""

import re
from typing import Callable

from .errors import InvalidIdentity, Result

MIN_ADDRESS_LENGTH = 3
MAX_ADDRESS_LENGTH = 90

_ADDRESS_CHARS = re.compile(r'^[\x21-\x7e]+$')

AddressValidator = Callable[[str], Result]


def validateAddress(address: str) -> Result:
    """Result.success(address) if well formed, else Result.failure(InvalidIdentity)"""
    if not isinstance(address, str):
        return Result.failure(InvalidIdentity(repr(address), "address must be a string"))
    if len(address) < MIN_ADDRESS_LENGTH:
        return Result.failure(InvalidIdentity(address, "too short"))
    if len(address) > MAX_ADDRESS_LENGTH:
        return Result.failure(InvalidIdentity(address, "too long"))
    if not _ADDRESS_CHARS.match(address):
        return Result.failure(InvalidIdentity(address, "contains whitespace or non-printable characters"))
    if address.lower() != address:
        return Result.failure(InvalidIdentity(address, "address not normalized (must be lowercase)"))
    return Result.success(address)
