"""
Registry host tests

Message decoding, instantiate / execute / query entry points, response
attributes and per-invocation atomicity.

Run: python -m pytest test/test_dispatch.py -v
"""

import os
import sys
import pytest

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from codereg.core.contract import CONTRACT_NAME, CONTRACT_VERSION
from codereg.core.contracts import (
    GetRegistrationQuery, InstantiateMsg, ListRegistrationsResponse, RegisterMsg,
    UnregisterMsg, UpdateAdminMsg, parseExecuteMsg, parseQueryMsg, toWire
)
from codereg.core.dispatch import RegistryHost
from codereg.core.errors import (
    AlreadyInstantiated, CodeIdAlreadyRegistered, InvalidIdentity, InvalidRequest,
    NotFound, StorageFault, UnauthorizedRegistration, UnauthorizedUpdateAdmin
)
from codereg.core.registration import ContractInfo, Registration
from codereg.core.storage import MemoryStore, StorageError


ADMIN = "admin"
CHAIN = "chain-A"


def registerMsg(codeId=1, version="0.0.1", checksum="sumA", name="Name", chainId=CHAIN):
    return {'register': {
        'contract_name': name, 'version': version, 'chain_id': chainId,
        'code_id': codeId, 'checksum': checksum
    }}


def unregisterMsg(codeId=1, version="0.0.1", name="Name", chainId=CHAIN):
    return {'unregister': {
        'contract_name': name, 'chain_id': chainId, 'code_id': codeId, 'version': version
    }}


@pytest.fixture
def host():
    registry = RegistryHost(MemoryStore())
    registry.instantiate({'admin': ADMIN}).unwrap()
    return registry


# ============================================================================
# Message decoding
# ============================================================================

class TestMessageDecoding:

    def test_register_decodes(self):
        parsed = parseExecuteMsg(registerMsg(codeId=7))
        assert parsed.ok
        assert parsed.value == RegisterMsg("Name", "0.0.1", CHAIN, 7, "sumA")

    def test_dataclass_to_dict_is_wire_form(self):
        msg = UnregisterMsg("Name", CHAIN, 3, "0.0.1")
        assert parseExecuteMsg(msg.toDict()).value == msg
        assert UpdateAdminMsg("bob").toDict() == {'update_admin': {'admin': 'bob'}}

    def test_get_registration_version_optional(self):
        assert parseQueryMsg({'get_registration': {'name': 'N', 'chain_id': 'c'}}).value \
            == GetRegistrationQuery('N', 'c', None)
        assert parseQueryMsg({'get_registration': {'name': 'N', 'chain_id': 'c', 'version': None}}).value \
            == GetRegistrationQuery('N', 'c', None)
        assert parseQueryMsg({'get_registration': {'name': 'N', 'chain_id': 'c', 'version': '1'}}).value \
            == GetRegistrationQuery('N', 'c', '1')

    @pytest.mark.parametrize("message", [
        {},
        [],
        "register",
        {'register': registerMsg()['register'], 'unregister': unregisterMsg()['unregister']},
        {'bogus': {}},
        {'register': []},
        {'register': {**registerMsg()['register'], 'extra': 1}},
        {'register': {k: v for k, v in registerMsg()['register'].items() if k != 'checksum'}},
        registerMsg(codeId=-1),
        registerMsg(codeId=2 ** 64),
        registerMsg(codeId="1"),
        registerMsg(codeId=True),
        registerMsg(codeId=1.0),
        registerMsg(version=1),
        {'update_admin': {'admin': None}},
    ])
    def test_invalid_execute_messages(self, message):
        assert isinstance(parseExecuteMsg(message).error, InvalidRequest)

    def test_max_code_id_accepted(self):
        assert parseExecuteMsg(registerMsg(codeId=2 ** 64 - 1)).ok

    @pytest.mark.parametrize("message", [
        {'admin': {'x': 1}},
        {'get_code_id_info': {'chain_id': CHAIN}},
        {'get_registration': {'name': 'N', 'chain_id': 'c', 'version': 3}},
        {'list_registrations': {'name': 'N'}},
        {'register': registerMsg()['register']},
    ])
    def test_invalid_query_messages(self, message):
        assert isinstance(parseQueryMsg(message).error, InvalidRequest)


# ============================================================================
# Instantiate
# ============================================================================

class TestInstantiate:

    def test_instantiate_sets_admin_and_info(self):
        registry = RegistryHost(MemoryStore())
        assert not registry.isInstantiated()

        result = registry.instantiate(InstantiateMsg(admin=ADMIN))
        assert result.ok
        assert result.value.attribute('action') == 'instantiate'
        assert registry.isInstantiated()
        assert registry.query({'admin': {}}).value == ADMIN
        assert registry.query({'contract_info': {}}).value == ContractInfo(CONTRACT_NAME, CONTRACT_VERSION)

    def test_second_instantiate_rejected(self, host):
        result = host.instantiate({'admin': 'someoneelse'})
        assert result.error == AlreadyInstantiated()
        assert host.query({'admin': {}}).value == ADMIN

    def test_invalid_admin_rejected(self):
        registry = RegistryHost(MemoryStore())
        result = registry.instantiate({'admin': 'Not Valid'})
        assert isinstance(result.error, InvalidIdentity)
        assert not registry.isInstantiated()
        assert list(registry.store.range(None, None)) == []

    def test_malformed_instantiate_rejected(self):
        registry = RegistryHost(MemoryStore())
        assert isinstance(registry.instantiate({'owner': ADMIN}).error, InvalidRequest)

    def test_custom_identity_validator(self):
        from codereg.core.errors import Result

        registry = RegistryHost(MemoryStore(), validateIdentity=lambda a: Result.success(a))
        assert registry.instantiate({'admin': 'Anything Goes'}).ok

    def test_execute_before_instantiate_is_storage_fault(self):
        registry = RegistryHost(MemoryStore())
        result = registry.execute(ADMIN, registerMsg())
        assert isinstance(result.error, StorageFault)


# ============================================================================
# Execute
# ============================================================================

class TestExecute:

    def test_register_attributes(self, host):
        result = host.execute(ADMIN, registerMsg(codeId=1))
        assert result.ok
        assert result.value.attributes == [
            ('action', 'register_code_id'),
            ('code_id', '1'),
            ('contract_name', 'Name'),
        ]

    def test_unregister_attributes(self, host):
        host.execute(ADMIN, registerMsg()).unwrap()
        result = host.execute(ADMIN, unregisterMsg())
        assert result.value.toDict() == {'attributes': [
            {'key': 'action', 'value': 'unregister'},
            {'key': 'chain_id', 'value': CHAIN},
            {'key': 'contract_name', 'value': 'Name'},
            {'key': 'code_id', 'value': '1'},
            {'key': 'removed', 'value': '2'},
        ]}

    def test_unregister_reports_nothing_removed_for_mismatched_tuple(self, host):
        host.execute(ADMIN, registerMsg(codeId=1, version="0.0.1")).unwrap()
        host.execute(ADMIN, registerMsg(codeId=2, version="0.0.2")).unwrap()

        # Name entry 0.0.1 holds code id 1, code id 2 holds 0.0.2
        result = host.execute(ADMIN, unregisterMsg(codeId=2, version="0.0.1"))
        assert result.ok
        assert result.value.attribute('removed') == '0'
        listed = host.query({'list_registrations': {'name': 'Name', 'chain_id': CHAIN}}).value
        assert [r.version for r in listed.registrations] == ['0.0.1', '0.0.2']

        result = host.execute(ADMIN, unregisterMsg(codeId=2, version="0.0.2"))
        assert result.value.attribute('removed') == '2'

    def test_repeated_unregister_reports_zero(self, host):
        host.execute(ADMIN, registerMsg()).unwrap()
        assert host.execute(ADMIN, unregisterMsg()).value.attribute('removed') == '2'
        assert host.execute(ADMIN, unregisterMsg()).value.attribute('removed') == '0'

    def test_unencodable_string_is_invalid_request(self, host):
        """Lone surrogates cannot be stored as UTF-8 keys"""
        result = host.execute(ADMIN, registerMsg(name="bad\ud800name"))
        assert isinstance(result.error, InvalidRequest)
        assert host.query({'get_code_id_info': {'chain_id': CHAIN, 'code_id': 1}}).error == NotFound()

        query = host.query({'get_registration': {'name': 'x', 'chain_id': "\udfff"}})
        assert isinstance(query.error, InvalidRequest)

        direct = host.execute(ADMIN, RegisterMsg("Name", "0.0.1", "chain\ud800", 1, "s"))
        assert isinstance(direct.error, StorageFault)

    def test_update_admin_persists(self, host):
        result = host.execute(ADMIN, {'update_admin': {'admin': 'newadmin'}})
        assert result.value.attributes == [('action', 'update_admin'), ('new_admin', 'newadmin')]
        assert host.query({'admin': {}}).value == 'newadmin'

        assert host.execute(ADMIN, registerMsg()).error == UnauthorizedRegistration()
        assert host.execute('newadmin', registerMsg()).ok

    def test_update_admin_rejections(self, host):
        assert host.execute('mallory', {'update_admin': {'admin': 'mallory'}}).error \
            == UnauthorizedUpdateAdmin()
        assert isinstance(host.execute(ADMIN, {'update_admin': {'admin': 'BAD ADMIN'}}).error,
                          InvalidIdentity)
        assert host.query({'admin': {}}).value == ADMIN

    def test_accepts_message_dataclasses(self, host):
        assert host.execute(ADMIN, RegisterMsg("Name", "0.0.1", CHAIN, 1, "s")).ok
        assert host.query(GetRegistrationQuery("Name", CHAIN)).value.registration.codeId == 1

    def test_unsupported_message_type(self, host):
        assert isinstance(host.execute(ADMIN, object()).error, InvalidRequest)
        assert isinstance(host.query(object()).error, InvalidRequest)

    def test_failed_invocation_rolls_back(self, host):
        """A storage failure midway leaves no partial writes behind"""
        before = list(host.store.range(None, None))
        original = host.store.set
        calls = []

        def failingSet(key, value):
            calls.append(key)
            if len(calls) == 2:
                raise StorageError("disk full")
            original(key, value)

        host.store.set = failingSet
        result = host.execute(ADMIN, registerMsg())
        host.store.set = original

        assert isinstance(result.error, StorageFault)
        assert list(host.store.range(None, None)) == before


# ============================================================================
# Query
# ============================================================================

class TestQuery:

    def test_get_code_id_info(self, host):
        host.execute(ADMIN, registerMsg(codeId=4, checksum="abc")).unwrap()
        result = host.query({'get_code_id_info': {'chain_id': CHAIN, 'code_id': 4}})
        assert toWire(result.value) == {'registration': {
            'contract_name': 'Name', 'version': '0.0.1', 'chain_id': CHAIN,
            'code_id': 4, 'checksum': 'abc'
        }}

    def test_list_registrations(self, host):
        for codeId, version in [(1, '0.0.2'), (2, '0.0.1')]:
            host.execute(ADMIN, registerMsg(codeId=codeId, version=version)).unwrap()
        result = host.query({'list_registrations': {'name': 'Name', 'chain_id': CHAIN}})
        assert isinstance(result.value, ListRegistrationsResponse)
        assert [r.version for r in result.value.registrations] == ['0.0.1', '0.0.2']

    def test_not_found(self, host):
        assert host.query({'get_code_id_info': {'chain_id': CHAIN, 'code_id': 1}}).error == NotFound()
        assert host.query({'get_registration': {'name': 'Name', 'chain_id': CHAIN}}).error == NotFound()

    def test_contract_info_wire(self, host):
        assert toWire(host.query({'contract_info': {}}).value) == {
            'contract': CONTRACT_NAME, 'version': CONTRACT_VERSION
        }


# ============================================================================
# End-to-end scenario
# ============================================================================

class TestScenario:

    def test_register_duplicate_unauthorized_unregister(self, host):
        # Admin registers
        host.execute(ADMIN, registerMsg(checksum="sumA")).unwrap()
        expected = Registration("Name", "0.0.1", CHAIN, 1, "sumA")
        assert host.query(GetRegistrationQuery("Name", CHAIN, "0.0.1")).value.registration == expected
        assert host.query({'get_code_id_info': {'chain_id': CHAIN, 'code_id': 1}}).value.registration == expected

        # Duplicate code id with a different checksum
        duplicate = host.execute(ADMIN, registerMsg(checksum="sumB"))
        assert duplicate.error == CodeIdAlreadyRegistered(1, CHAIN)
        assert host.query({'get_code_id_info': {'chain_id': CHAIN, 'code_id': 1}}).value.registration.checksum == "sumA"

        # Attacker can neither register nor unregister
        assert host.execute("attacker", registerMsg(codeId=2)).error == UnauthorizedRegistration()
        assert host.execute("attacker", unregisterMsg()).error == UnauthorizedRegistration()
        assert host.query(GetRegistrationQuery("Name", CHAIN)).value.registration == expected

        # More versions, latest wins
        host.execute(ADMIN, registerMsg(codeId=2, version="0.0.2")).unwrap()
        host.execute(ADMIN, registerMsg(codeId=3, version="0.0.3")).unwrap()
        assert host.query(GetRegistrationQuery("Name", CHAIN)).value.registration.version == "0.0.3"

        # Unregister twice, both succeed
        assert host.execute(ADMIN, unregisterMsg()).ok
        assert host.execute(ADMIN, unregisterMsg()).ok
        assert host.query(GetRegistrationQuery("Name", CHAIN, "0.0.1")).error == NotFound()
        listed = host.query({'list_registrations': {'name': 'Name', 'chain_id': CHAIN}}).value
        assert [r.codeId for r in listed.registrations] == [2, 3]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
