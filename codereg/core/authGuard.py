"""
Authorization Guard - the caller must be the current admin.
"""

from typing import Type

from sdk.logging import getLogger

from .errors import RegistryError, Result, StorageFault, UnauthorizedRegistration
from .recordStore import RecordStore
from .registration import RegistryConfig
from .storage import StorageError


class AuthorizationGuard:
    """
    Exact-equality check of the acting identity against the stored admin.

    loadConfig() reads the admin slot once per invocation; authorize() is
    pure and compares against that loaded record.
    """

    def __init__(self, records: RecordStore):
        self.records = records
        self.log = getLogger()

    def loadConfig(self) -> Result:
        """Result[RegistryConfig]; a missing admin slot is a storage fault"""
        try:
            return Result.success(RegistryConfig(admin=self.records.loadAdmin()))
        except StorageError as e:
            self.log.error(f"[Guard] Failed to load admin: {e}")
            return Result.failure(StorageFault(str(e)))

    def authorize(self, config: RegistryConfig, caller: str,
                  denied: Type[RegistryError] = UnauthorizedRegistration) -> Result:
        if caller != config.admin:
            return Result.failure(denied())
        return Result.success()
