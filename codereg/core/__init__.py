"""
codereg core package

Owns all registry state and the rules over it:
- Record Store: two composite-keyed indices + singleton admin slot
- Authorization Guard: caller must equal the stored admin
- Registration Engine: register / unregister / update admin
- Query Resolver: exact, latest-version and listing lookups

Architecture invariants:
- Both indices change together inside one transaction or not at all
- At most one registration per (chainId, codeId)
- "Latest" means greatest version by byte order
"""

from .registration import Registration, RegistryConfig, ContractInfo
from .errors import Result, RegistryError
from .dispatch import RegistryHost

__all__ = ['Registration', 'RegistryConfig', 'ContractInfo', 'Result', 'RegistryError', 'RegistryHost']
