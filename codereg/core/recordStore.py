"""
Record Store - typed access to the registry's persisted state.

Owns every key the registry writes:
- admin slot (singleton)
- contract info slot (singleton)
- name index:    (contractName, chainId, version) -> Registration
- code-id index: (chainId, codeId)                -> Registration

No business rules live here beyond keeping the two indices in the same key
space. putRegistration() writes both index entries for one record inside a
single store transaction. Failures are raised as StorageError; callers turn
them into results.
"""

from typing import Iterator, Optional

from sdk.logging import getLogger

from .contract import (
    ADMIN_NAMESPACE, CONTRACT_INFO_NAMESPACE,
    NAME_INDEX_NAMESPACE, CODE_ID_INDEX_NAMESPACE
)
from .keys import KeyEncodingError, mapKey, prefixRange, singletonKey
from .registration import (
    Registration, ContractInfo,
    encodeRecord, decodeRecord, decodeRegistration
)
from .storage import KeyValueStore, Order, StorageError


class RecordStore:
    """Registry state on top of a KeyValueStore"""

    def __init__(self, store: KeyValueStore):
        self.store = store
        self.log = getLogger()

    def transaction(self):
        return self.store.transaction()

    # =========================================================================
    # Index keys
    # =========================================================================

    @staticmethod
    def codeIdKey(chainId: str, codeId: int) -> bytes:
        try:
            return mapKey(CODE_ID_INDEX_NAMESPACE, chainId, codeId)
        except KeyEncodingError as e:
            raise StorageError(f"Invalid code-id index key: {e}")

    @staticmethod
    def nameKey(contractName: str, chainId: str, version: str) -> bytes:
        try:
            return mapKey(NAME_INDEX_NAMESPACE, contractName, chainId, version)
        except KeyEncodingError as e:
            raise StorageError(f"Invalid name index key: {e}")

    # =========================================================================
    # Registrations
    # =========================================================================

    def getByCodeId(self, chainId: str, codeId: int) -> Optional[Registration]:
        raw = self.store.get(self.codeIdKey(chainId, codeId))
        return decodeRegistration(raw) if raw is not None else None

    def getByName(self, contractName: str, chainId: str, version: str) -> Optional[Registration]:
        raw = self.store.get(self.nameKey(contractName, chainId, version))
        return decodeRegistration(raw) if raw is not None else None

    def scanByName(self, contractName: str, chainId: str,
                   order: Order = Order.ASCENDING) -> Iterator[Registration]:
        """Lazily yield every name-index record under (contractName, chainId) in version byte order"""
        try:
            start, end = prefixRange(NAME_INDEX_NAMESPACE, contractName, chainId)
        except KeyEncodingError as e:
            raise StorageError(f"Invalid name index prefix: {e}")
        for _, raw in self.store.range(start, end, order):
            yield decodeRegistration(raw)

    def putRegistration(self, registration: Registration):
        """Write the record under both index keys, atomically"""
        codeIdKey = self.codeIdKey(registration.chainId, registration.codeId)
        nameKey = self.nameKey(registration.contractName, registration.chainId, registration.version)
        value = encodeRecord(registration.toDict())

        with self.store.transaction():
            self.store.set(codeIdKey, value)
            self.store.set(nameKey, value)

    def deleteByCodeId(self, chainId: str, codeId: int):
        self.store.remove(self.codeIdKey(chainId, codeId))

    def deleteByName(self, contractName: str, chainId: str, version: str):
        self.store.remove(self.nameKey(contractName, chainId, version))

    # =========================================================================
    # Singletons
    # =========================================================================

    def loadAdmin(self) -> str:
        """Current admin identity. An unset slot is a storage fault."""
        raw = self.store.get(singletonKey(ADMIN_NAMESPACE))
        if raw is None:
            raise StorageError("Admin not found in storage")
        admin = decodeRecord(raw)
        if not isinstance(admin, str):
            raise StorageError("Corrupt admin record")
        return admin

    def hasAdmin(self) -> bool:
        return self.store.get(singletonKey(ADMIN_NAMESPACE)) is not None

    def saveAdmin(self, admin: str):
        self.store.set(singletonKey(ADMIN_NAMESPACE), encodeRecord(admin))

    def loadContractInfo(self) -> ContractInfo:
        raw = self.store.get(singletonKey(CONTRACT_INFO_NAMESPACE))
        if raw is None:
            raise StorageError("Contract info not found in storage")
        try:
            return ContractInfo.fromDict(decodeRecord(raw))
        except (KeyError, TypeError) as e:
            raise StorageError(f"Corrupt contract info record: {e}")

    def saveContractInfo(self, info: ContractInfo):
        self.store.set(singletonKey(CONTRACT_INFO_NAMESPACE), encodeRecord(info.toDict()))
