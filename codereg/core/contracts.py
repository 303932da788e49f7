"""
Wire contracts for registry requests and responses.

Messages are externally tagged, snake_case JSON objects:
    {"register": {"contract_name": "...", "version": "...", "chain_id": "...",
                  "code_id": 1, "checksum": "..."}}
    {"get_registration": {"name": "...", "chain_id": "...", "version": null}}
    {"admin": {}}

Decoding is strict: exactly one tag, no unknown fields, every required field
present with the right JSON type, code_id within u64. Failures come back as
Result.failure(InvalidRequest).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .contract import MAX_CODE_ID
from .errors import InvalidRequest, Result
from .registration import Registration


# ============================================================================
# Field decoding
# ============================================================================

_STR = "string"
_OPT_STR = "optional string"
_U64 = "u64"


def _checkEncodable(name: str, value: str):
    try:
        value.encode('utf-8')
    except UnicodeEncodeError:
        raise InvalidRequest(f"`{name}` is not valid UTF-8 text")


def _checkField(name: str, value: Any, kind: str):
    if kind == _STR:
        if not isinstance(value, str):
            raise InvalidRequest(f"invalid type for `{name}`: expected string")
        _checkEncodable(name, value)
    elif kind == _OPT_STR:
        if value is not None and not isinstance(value, str):
            raise InvalidRequest(f"invalid type for `{name}`: expected string or null")
        if value is not None:
            _checkEncodable(name, value)
    elif kind == _U64:
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidRequest(f"invalid type for `{name}`: expected u64")
        if value < 0 or value > MAX_CODE_ID:
            raise InvalidRequest(f"`{name}` out of u64 range: {value}")


def _decodeFields(tag: str, body: Any, fields: Dict[str, str]) -> Dict[str, Any]:
    """Validate a message body against {field: kind}. Optional fields may be omitted."""
    if not isinstance(body, dict):
        raise InvalidRequest(f"`{tag}` body must be an object")

    unknown = sorted(set(body) - set(fields))
    if unknown:
        raise InvalidRequest(f"unknown field `{unknown[0]}` in `{tag}`")

    values = {}
    for name, kind in fields.items():
        if name not in body:
            if kind == _OPT_STR:
                values[name] = None
                continue
            raise InvalidRequest(f"missing field `{name}` in `{tag}`")
        _checkField(name, body[name], kind)
        values[name] = body[name]
    return values


def _splitTag(message: Any, known: Dict[str, Any]) -> Tuple[str, Any]:
    if not isinstance(message, dict) or len(message) != 1:
        raise InvalidRequest("message must be an object with exactly one variant")
    tag, body = next(iter(message.items()))
    if tag not in known:
        raise InvalidRequest(f"unknown variant `{tag}`, expected one of {sorted(known)}")
    return tag, body


# ============================================================================
# Instantiate
# ============================================================================

@dataclass
class InstantiateMsg:
    """Initial admin identity"""
    admin: str

    def toDict(self) -> Dict[str, Any]:
        return {'admin': self.admin}

    @classmethod
    def fromDict(cls, body: Any) -> 'InstantiateMsg':
        values = _decodeFields('instantiate', body, {'admin': _STR})
        return cls(admin=values['admin'])


def parseInstantiateMsg(message: Any) -> Result:
    """Result[InstantiateMsg]"""
    try:
        return Result.success(InstantiateMsg.fromDict(message))
    except InvalidRequest as e:
        return Result.failure(e)


# ============================================================================
# Execute
# ============================================================================

@dataclass
class RegisterMsg:
    """Register code ID. May only be called by the admin."""
    TAG = "register"
    contractName: str
    version: str
    chainId: str
    codeId: int
    checksum: str

    def toDict(self) -> Dict[str, Any]:
        return {self.TAG: {
            'contract_name': self.contractName,
            'version': self.version,
            'chain_id': self.chainId,
            'code_id': self.codeId,
            'checksum': self.checksum
        }}

    @classmethod
    def fromBody(cls, body: Any) -> 'RegisterMsg':
        values = _decodeFields(cls.TAG, body, {
            'contract_name': _STR, 'version': _STR, 'chain_id': _STR,
            'code_id': _U64, 'checksum': _STR
        })
        return cls(
            contractName=values['contract_name'],
            version=values['version'],
            chainId=values['chain_id'],
            codeId=values['code_id'],
            checksum=values['checksum']
        )


@dataclass
class UnregisterMsg:
    """Remove a registration. May only be called by the admin."""
    TAG = "unregister"
    contractName: str
    chainId: str
    codeId: int
    version: str

    def toDict(self) -> Dict[str, Any]:
        return {self.TAG: {
            'contract_name': self.contractName,
            'chain_id': self.chainId,
            'code_id': self.codeId,
            'version': self.version
        }}

    @classmethod
    def fromBody(cls, body: Any) -> 'UnregisterMsg':
        values = _decodeFields(cls.TAG, body, {
            'contract_name': _STR, 'chain_id': _STR, 'code_id': _U64, 'version': _STR
        })
        return cls(
            contractName=values['contract_name'],
            chainId=values['chain_id'],
            codeId=values['code_id'],
            version=values['version']
        )


@dataclass
class UpdateAdminMsg:
    TAG = "update_admin"
    admin: str

    def toDict(self) -> Dict[str, Any]:
        return {self.TAG: {'admin': self.admin}}

    @classmethod
    def fromBody(cls, body: Any) -> 'UpdateAdminMsg':
        values = _decodeFields(cls.TAG, body, {'admin': _STR})
        return cls(admin=values['admin'])


EXECUTE_MESSAGES = {cls.TAG: cls for cls in (RegisterMsg, UnregisterMsg, UpdateAdminMsg)}


def parseExecuteMsg(message: Any) -> Result:
    """Result[RegisterMsg | UnregisterMsg | UpdateAdminMsg]"""
    try:
        tag, body = _splitTag(message, EXECUTE_MESSAGES)
        return Result.success(EXECUTE_MESSAGES[tag].fromBody(body))
    except InvalidRequest as e:
        return Result.failure(e)


# ============================================================================
# Query
# ============================================================================

@dataclass
class AdminQuery:
    TAG = "admin"

    def toDict(self) -> Dict[str, Any]:
        return {self.TAG: {}}

    @classmethod
    def fromBody(cls, body: Any) -> 'AdminQuery':
        _decodeFields(cls.TAG, body, {})
        return cls()


@dataclass
class ContractInfoQuery:
    TAG = "contract_info"

    def toDict(self) -> Dict[str, Any]:
        return {self.TAG: {}}

    @classmethod
    def fromBody(cls, body: Any) -> 'ContractInfoQuery':
        _decodeFields(cls.TAG, body, {})
        return cls()


@dataclass
class GetRegistrationQuery:
    """If version is None, resolves the latest registered version."""
    TAG = "get_registration"
    name: str
    chainId: str
    version: Optional[str] = None

    def toDict(self) -> Dict[str, Any]:
        return {self.TAG: {'name': self.name, 'chain_id': self.chainId, 'version': self.version}}

    @classmethod
    def fromBody(cls, body: Any) -> 'GetRegistrationQuery':
        values = _decodeFields(cls.TAG, body, {'name': _STR, 'chain_id': _STR, 'version': _OPT_STR})
        return cls(name=values['name'], chainId=values['chain_id'], version=values['version'])


@dataclass
class GetCodeIdInfoQuery:
    TAG = "get_code_id_info"
    chainId: str
    codeId: int

    def toDict(self) -> Dict[str, Any]:
        return {self.TAG: {'chain_id': self.chainId, 'code_id': self.codeId}}

    @classmethod
    def fromBody(cls, body: Any) -> 'GetCodeIdInfoQuery':
        values = _decodeFields(cls.TAG, body, {'chain_id': _STR, 'code_id': _U64})
        return cls(chainId=values['chain_id'], codeId=values['code_id'])


@dataclass
class ListRegistrationsQuery:
    TAG = "list_registrations"
    name: str
    chainId: str

    def toDict(self) -> Dict[str, Any]:
        return {self.TAG: {'name': self.name, 'chain_id': self.chainId}}

    @classmethod
    def fromBody(cls, body: Any) -> 'ListRegistrationsQuery':
        values = _decodeFields(cls.TAG, body, {'name': _STR, 'chain_id': _STR})
        return cls(name=values['name'], chainId=values['chain_id'])


QUERY_MESSAGES = {cls.TAG: cls for cls in (
    AdminQuery, ContractInfoQuery, GetRegistrationQuery, GetCodeIdInfoQuery, ListRegistrationsQuery
)}


def parseQueryMsg(message: Any) -> Result:
    """Result[one of the query dataclasses]"""
    try:
        tag, body = _splitTag(message, QUERY_MESSAGES)
        return Result.success(QUERY_MESSAGES[tag].fromBody(body))
    except InvalidRequest as e:
        return Result.failure(e)


# ============================================================================
# Responses
# ============================================================================

@dataclass
class ExecuteResponse:
    """Ordered (key, value) attributes describing what a mutation did"""
    attributes: List[Tuple[str, str]] = field(default_factory=list)

    def addAttribute(self, key: str, value: Any) -> 'ExecuteResponse':
        self.attributes.append((key, str(value)))
        return self

    def attribute(self, key: str) -> Optional[str]:
        for k, v in self.attributes:
            if k == key:
                return v
        return None

    def toDict(self) -> Dict[str, Any]:
        return {'attributes': [{'key': k, 'value': v} for k, v in self.attributes]}


@dataclass
class GetRegistrationResponse:
    registration: Registration

    def toDict(self) -> Dict[str, Any]:
        return {'registration': self.registration.toDict()}


@dataclass
class ListRegistrationsResponse:
    registrations: List[Registration]

    def toDict(self) -> Dict[str, Any]:
        return {'registrations': [r.toDict() for r in self.registrations]}


def toWire(response: Any) -> Any:
    """JSON-ready form of a response (dataclasses -> dicts, strings unchanged)"""
    if hasattr(response, 'toDict'):
        return response.toDict()
    return response
