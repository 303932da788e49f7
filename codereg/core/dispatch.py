"""
Registry host entry points: instantiate, execute, query.

This is the dispatch shim between decoded messages and the core:
- decodes wire messages (dicts) or accepts message dataclasses directly
- loads the RegistryConfig at call entry and persists the one returned by
  updateAdmin
- runs each instantiate / execute inside one store transaction and aborts
  it on any failure, so an invocation commits all of its writes or none
- builds ExecuteResponse attributes

Invocations are not re-entrant; the caller (e.g. RegistryServer) admits
one at a time.
"""

from typing import Any, Callable

from sdk.logging import getLogger

from .authGuard import AuthorizationGuard
from .contract import CONTRACT_NAME, CONTRACT_VERSION
from .contracts import (
    InstantiateMsg, RegisterMsg, UnregisterMsg, UpdateAdminMsg,
    AdminQuery, ContractInfoQuery, GetRegistrationQuery, GetCodeIdInfoQuery,
    ListRegistrationsQuery, ExecuteResponse, GetRegistrationResponse,
    ListRegistrationsResponse, parseInstantiateMsg, parseExecuteMsg, parseQueryMsg
)
from .errors import AlreadyInstantiated, InvalidRequest, Result, StorageFault
from .identity import AddressValidator, validateAddress
from .queryResolver import QueryResolver
from .recordStore import RecordStore
from .registration import ContractInfo
from .registrationEngine import RegistrationEngine
from .storage import KeyValueStore, StorageError


class RegistryHost:
    """
    One deployed registry instance over one KeyValueStore.

    Usage:
        host = RegistryHost(MemoryStore())
        host.instantiate({'admin': 'admin'}).unwrap()
        host.execute('admin', {'register': {...}})
        host.query({'get_registration': {'name': 'Name', 'chain_id': 'chain-A'}})
    """

    def __init__(self, store: KeyValueStore, validateIdentity: AddressValidator = validateAddress):
        self.store = store
        self.log = getLogger()
        self.validateIdentity = validateIdentity

        self.records = RecordStore(store)
        self.guard = AuthorizationGuard(self.records)
        self.engine = RegistrationEngine(self.records, self.guard, validateIdentity)
        self.resolver = QueryResolver(self.records)

    def isInstantiated(self) -> bool:
        return self.records.hasAdmin()

    # =========================================================================
    # Entry points
    # =========================================================================

    def instantiate(self, message: Any) -> Result:
        """Result[ExecuteResponse]. Sets the initial admin; fails if already set."""
        parsed = message if isinstance(message, InstantiateMsg) else None
        if parsed is None:
            decoded = parseInstantiateMsg(message)
            if not decoded.ok:
                return decoded
            parsed = decoded.value

        return self._transact(lambda: self._instantiate(parsed))

    def execute(self, sender: str, message: Any) -> Result:
        """Result[ExecuteResponse] for register / unregister / update_admin sent by sender"""
        parsed = message
        if isinstance(message, dict):
            decoded = parseExecuteMsg(message)
            if not decoded.ok:
                return decoded
            parsed = decoded.value

        return self._transact(lambda: self._execute(sender, parsed))

    def query(self, message: Any) -> Result:
        """
        Result of a read-only query.

        Values: admin -> str, contract_info -> ContractInfo,
        get_registration / get_code_id_info -> GetRegistrationResponse,
        list_registrations -> ListRegistrationsResponse
        """
        parsed = message
        if isinstance(message, dict):
            decoded = parseQueryMsg(message)
            if not decoded.ok:
                return decoded
            parsed = decoded.value

        if isinstance(parsed, AdminQuery):
            return self.resolver.getAdmin()

        if isinstance(parsed, ContractInfoQuery):
            return self.resolver.getContractInfo()

        if isinstance(parsed, GetRegistrationQuery):
            result = self.resolver.getRegistration(parsed.name, parsed.chainId, parsed.version)
            return Result.success(GetRegistrationResponse(result.value)) if result.ok else result

        if isinstance(parsed, GetCodeIdInfoQuery):
            result = self.resolver.getByChainAndCodeId(parsed.chainId, parsed.codeId)
            return Result.success(GetRegistrationResponse(result.value)) if result.ok else result

        if isinstance(parsed, ListRegistrationsQuery):
            result = self.resolver.listRegistrations(parsed.name, parsed.chainId)
            return Result.success(ListRegistrationsResponse(result.value)) if result.ok else result

        return Result.failure(InvalidRequest(f"Unsupported query: {type(parsed).__name__}"))

    # =========================================================================
    # Handlers (run inside the invocation transaction)
    # =========================================================================

    def _transact(self, operation: Callable[[], Result]) -> Result:
        try:
            with self.store.transaction() as txn:
                result = operation()
                if not result.ok:
                    txn.abort()
        except StorageError as e:
            self.log.error(f"[Host] Invocation failed in storage: {e}")
            return Result.failure(StorageFault(str(e)))
        return result

    def _instantiate(self, msg: InstantiateMsg) -> Result:
        if self.records.hasAdmin():
            return Result.failure(AlreadyInstantiated())

        validated = self.validateIdentity(msg.admin)
        if not validated.ok:
            self.log.warning(f"[Host] Instantiate rejected: {validated.error}")
            return validated

        self.records.saveContractInfo(ContractInfo(contract=CONTRACT_NAME, version=CONTRACT_VERSION))
        self.records.saveAdmin(validated.value)

        self.log.info(f"[Host] Instantiated {CONTRACT_NAME} {CONTRACT_VERSION}, admin={validated.value}")
        return Result.success(ExecuteResponse().addAttribute('action', 'instantiate'))

    def _execute(self, sender: str, msg: Any) -> Result:
        loaded = self.guard.loadConfig()
        if not loaded.ok:
            return loaded
        config = loaded.value

        if isinstance(msg, RegisterMsg):
            result = self.engine.register(config, sender, msg.contractName, msg.version,
                                          msg.chainId, msg.codeId, msg.checksum)
            if not result.ok:
                return result
            return Result.success(ExecuteResponse()
                                  .addAttribute('action', 'register_code_id')
                                  .addAttribute('code_id', msg.codeId)
                                  .addAttribute('contract_name', msg.contractName))

        if isinstance(msg, UnregisterMsg):
            result = self.engine.unregister(config, sender, msg.contractName, msg.chainId,
                                            msg.codeId, msg.version)
            if not result.ok:
                return result
            return Result.success(ExecuteResponse()
                                  .addAttribute('action', 'unregister')
                                  .addAttribute('chain_id', msg.chainId)
                                  .addAttribute('contract_name', msg.contractName)
                                  .addAttribute('code_id', msg.codeId)
                                  .addAttribute('removed', result.value))

        if isinstance(msg, UpdateAdminMsg):
            result = self.engine.updateAdmin(config, sender, msg.admin)
            if not result.ok:
                return result
            self.records.saveAdmin(result.value.admin)
            return Result.success(ExecuteResponse()
                                  .addAttribute('action', 'update_admin')
                                  .addAttribute('new_admin', msg.admin))

        return Result.failure(InvalidRequest(f"Unsupported execute message: {type(msg).__name__}"))
