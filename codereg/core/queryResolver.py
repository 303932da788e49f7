"""
Query Resolver - read-only lookups.

Query flow:
  1. Build the index key or prefix range
  2. RecordStore returns the record(s) in key byte order
  3. Absent record -> NotFound, store failure -> StorageFault

"Latest" version is the lexicographically greatest version string under
(contractName, chainId): the first record of a descending prefix scan.
Callers needing numeric order ("0.0.10" > "0.0.9") zero-pad their versions.

Reads never write, on any path.
"""

from typing import Optional

from sdk.logging import getLogger

from .errors import NotFound, Result, StorageFault
from .recordStore import RecordStore
from .storage import Order, StorageError


class QueryResolver:

    def __init__(self, records: RecordStore):
        self.records = records
        self.log = getLogger()

    def getByChainAndCodeId(self, chainId: str, codeId: int) -> Result:
        """Result[Registration] from the code-id index"""
        try:
            registration = self.records.getByCodeId(chainId, codeId)
        except StorageError as e:
            return Result.failure(StorageFault(str(e)))

        if registration is None:
            self.log.debug("[Resolver] Code ID not found", chainId=chainId, codeId=codeId)
            return Result.failure(NotFound())
        return Result.success(registration)

    def getRegistration(self, contractName: str, chainId: str,
                        version: Optional[str] = None) -> Result:
        """
        Result[Registration] from the name index.

        With a version: exact lookup. Without: greatest version by byte order.
        """
        try:
            if version is not None:
                registration = self.records.getByName(contractName, chainId, version)
            else:
                latest = self.records.scanByName(contractName, chainId, Order.DESCENDING)
                registration = next(latest, None)
        except StorageError as e:
            return Result.failure(StorageFault(str(e)))

        if registration is None:
            self.log.debug("[Resolver] Registration not found",
                           contractName=contractName, chainId=chainId, version=version)
            return Result.failure(NotFound())
        return Result.success(registration)

    def listRegistrations(self, contractName: str, chainId: str) -> Result:
        """
        Result[List[Registration]] - every version under (contractName, chainId), ascending.

        Unpaginated: the result grows with the number of versions registered.
        """
        try:
            registrations = list(self.records.scanByName(contractName, chainId, Order.ASCENDING))
        except StorageError as e:
            return Result.failure(StorageFault(str(e)))
        return Result.success(registrations)

    def getAdmin(self) -> Result:
        """Result[str]"""
        try:
            return Result.success(self.records.loadAdmin())
        except StorageError as e:
            return Result.failure(StorageFault(str(e)))

    def getContractInfo(self) -> Result:
        """Result[ContractInfo]"""
        try:
            return Result.success(self.records.loadContractInfo())
        except StorageError as e:
            return Result.failure(StorageFault(str(e)))
