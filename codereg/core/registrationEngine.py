"""
Registration Engine - every registry mutation goes through here.

Operations:
- register: create a registration under both indices; an occupied
  (chainId, codeId) is never overwritten
- unregister: remove a registration from both indices; idempotent
- updateAdmin: replace the admin identity

All operations take the RegistryConfig loaded by the host at call entry and
return Results. updateAdmin returns the new config for the host to persist;
the engine does not write the admin slot itself.
"""

from sdk.logging import getLogger

from .authGuard import AuthorizationGuard
from .errors import (
    Result, StorageFault, CodeIdAlreadyRegistered,
    UnauthorizedRegistration, UnauthorizedUpdateAdmin
)
from .identity import AddressValidator, validateAddress
from .recordStore import RecordStore
from .registration import Registration, RegistryConfig
from .storage import StorageError


class RegistrationEngine:
    """Admin-gated create / delete of registrations, and admin replacement"""

    def __init__(self, records: RecordStore, guard: AuthorizationGuard,
                 validateIdentity: AddressValidator = validateAddress):
        self.records = records
        self.guard = guard
        self.validateIdentity = validateIdentity
        self.log = getLogger()

    def register(self, config: RegistryConfig, caller: str, contractName: str,
                 version: str, chainId: str, codeId: int, checksum: str) -> Result:
        """
        Register a code id.

        Re-registering an existing (contractName, chainId, version) with a new,
        free code id replaces the name-index entry for that triple; only the
        code-id index is guarded against reuse.

        Returns:
            Result[Registration]
        """
        auth = self.guard.authorize(config, caller, UnauthorizedRegistration)
        if not auth.ok:
            self.log.warning(f"[Engine] Register rejected: {caller} is not admin",
                             chainId=chainId, codeId=codeId)
            return auth

        try:
            if self.records.getByCodeId(chainId, codeId) is not None:
                self.log.warning(f"[Engine] Code ID {codeId} already registered on {chainId}")
                return Result.failure(CodeIdAlreadyRegistered(codeId, chainId))

            registration = Registration(
                contractName=contractName,
                version=version,
                chainId=chainId,
                codeId=codeId,
                checksum=checksum
            )
            self.records.putRegistration(registration)

        except StorageError as e:
            self.log.error(f"[Engine] Register failed: {e}", chainId=chainId, codeId=codeId)
            return Result.failure(StorageFault(str(e)))

        self.log.info(f"[Engine] Registered {contractName}@{version}",
                      chainId=chainId, codeId=codeId)
        return Result.success(registration)

    def unregister(self, config: RegistryConfig, caller: str, contractName: str,
                   chainId: str, codeId: int, version: str) -> Result:
        """
        Remove the registration named by (contractName, chainId, codeId, version).

        Both index entries are loaded first. Each is deleted only if the record
        it holds is the one named by the full tuple; an entry holding some
        other registration is left alone. Missing entries are no-ops.

        Returns:
            Result[int] - number of index entries removed (0, 1 or 2)
        """
        auth = self.guard.authorize(config, caller, UnauthorizedRegistration)
        if not auth.ok:
            self.log.warning(f"[Engine] Unregister rejected: {caller} is not admin",
                             chainId=chainId, codeId=codeId)
            return auth

        removed = 0
        try:
            with self.records.transaction():
                byName = self.records.getByName(contractName, chainId, version)
                byCodeId = self.records.getByCodeId(chainId, codeId)

                if byName is not None:
                    if byName.matches(contractName, chainId, codeId, version):
                        self.records.deleteByName(contractName, chainId, version)
                        removed += 1
                    else:
                        self.log.warning(f"[Engine] Name entry {contractName}@{version} on {chainId} "
                                         f"holds code ID {byName.codeId}, not {codeId}; left in place")

                if byCodeId is not None:
                    if byCodeId.matches(contractName, chainId, codeId, version):
                        self.records.deleteByCodeId(chainId, codeId)
                        removed += 1
                    else:
                        self.log.warning(f"[Engine] Code ID {codeId} on {chainId} belongs to "
                                         f"{byCodeId.contractName}@{byCodeId.version}; left in place")

        except StorageError as e:
            self.log.error(f"[Engine] Unregister failed: {e}", chainId=chainId, codeId=codeId)
            return Result.failure(StorageFault(str(e)))

        self.log.info(f"[Engine] Unregistered {contractName}@{version}",
                      chainId=chainId, codeId=codeId, removed=removed)
        return Result.success(removed)

    def updateAdmin(self, config: RegistryConfig, caller: str, newAdmin: str) -> Result:
        """
        Replace the admin identity.

        Returns:
            Result[RegistryConfig] - the config to persist
        """
        auth = self.guard.authorize(config, caller, UnauthorizedUpdateAdmin)
        if not auth.ok:
            self.log.warning(f"[Engine] Admin update rejected: {caller} is not admin")
            return auth

        validated = self.validateIdentity(newAdmin)
        if not validated.ok:
            self.log.warning(f"[Engine] Admin update rejected: {validated.error}")
            return validated

        self.log.info(f"[Engine] Admin updated: {config.admin} -> {validated.value}")
        return Result.success(RegistryConfig(admin=validated.value))
