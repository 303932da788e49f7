"""
Registry records.

Registration is the only persisted entity; RegistryConfig holds the single
admin identity and ContractInfo names the deployed contract.

Persisted bytes are canonical JSON (sorted keys, no whitespace), so equal
records always encode to equal bytes and index parity can be checked byte
for byte. Field names on the wire and in storage are snake_case.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict

import canonicaljson
import orjson

from .storage import StorageError


@dataclass(frozen=True)
class Registration:
    """
    One deployment descriptor.

    Addressable by (chainId, codeId) and by (contractName, chainId, version).
    version is an opaque label, compared only by byte order.
    """
    contractName: str
    version: str
    chainId: str
    codeId: int
    checksum: str

    def toDict(self) -> Dict[str, Any]:
        return {
            'contract_name': self.contractName,
            'version': self.version,
            'chain_id': self.chainId,
            'code_id': self.codeId,
            'checksum': self.checksum
        }

    @classmethod
    def fromDict(cls, data: Dict[str, Any]) -> 'Registration':
        return cls(
            contractName=data['contract_name'],
            version=data['version'],
            chainId=data['chain_id'],
            codeId=int(data['code_id']),
            checksum=data['checksum']
        )

    def matches(self, contractName: str, chainId: str, codeId: int, version: str) -> bool:
        """True if this record is the one named by the full identifying tuple"""
        return (self.contractName == contractName and self.chainId == chainId
                and self.codeId == codeId and self.version == version)


@dataclass(frozen=True)
class RegistryConfig:
    """Registry configuration record: the admin identity"""
    admin: str

    def toDict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ContractInfo:
    """Name and version of the contract that wrote this store"""
    contract: str
    version: str

    def toDict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def fromDict(cls, data: Dict[str, Any]) -> 'ContractInfo':
        return cls(contract=data['contract'], version=data['version'])


def encodeRecord(data: Any) -> bytes:
    """Canonical JSON bytes for storage"""
    return canonicaljson.encode_canonical_json(data)


def decodeRecord(raw: bytes) -> Any:
    """Inverse of encodeRecord. Undecodable bytes are a storage fault."""
    try:
        return orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise StorageError(f"Corrupt record: {e}")


def decodeRegistration(raw: bytes) -> Registration:
    try:
        return Registration.fromDict(decodeRecord(raw))
    except (KeyError, TypeError, ValueError) as e:
        raise StorageError(f"Corrupt registration record: {e}")
