"""
codereg storage and wire contract definitions

SINGLE SOURCE OF TRUTH for persisted namespaces and error wire codes.
Import from this module instead of repeating string literals.

Persisted state layout:
  admin                               -> singleton admin identity
  contract_info                       -> singleton {contract, version}
  name_chain_id_version_to_code_id    -> (contractName, chainId, version) -> Registration
  chain_id_code_id_to_registration    -> (chainId, codeId) -> Registration
"""

from typing import Dict

from codereg import __version__


# ============================================================================
# Contract identity
# ============================================================================

CONTRACT_NAME = "codereg"
CONTRACT_VERSION = __version__


# ============================================================================
# Storage namespaces
# ============================================================================

ADMIN_NAMESPACE = "admin"
CONTRACT_INFO_NAMESPACE = "contract_info"
NAME_INDEX_NAMESPACE = "name_chain_id_version_to_code_id"
CODE_ID_INDEX_NAMESPACE = "chain_id_code_id_to_registration"

ALL_NAMESPACES = [
    ADMIN_NAMESPACE,
    CONTRACT_INFO_NAMESPACE,
    NAME_INDEX_NAMESPACE,
    CODE_ID_INDEX_NAMESPACE
]

# Largest code id representable on the wire (unsigned 64-bit)
MAX_CODE_ID = 2 ** 64 - 1


# ============================================================================
# Error wire codes -> HTTP status at the server edge
# ============================================================================

ERROR_HTTP_STATUS: Dict[str, int] = {
    "unauthorizedRegistration": 403,
    "unauthorizedUpdateAdmin": 403,
    "codeIdAlreadyRegistered": 409,
    "alreadyInstantiated": 409,
    "notFound": 404,
    "invalidIdentity": 400,
    "invalidRequest": 400,
    "storageFault": 500
}


# ============================================================================
# Validation Helpers
# ============================================================================

def validateNamespaces():
    """Namespaces must be distinct and non-empty so key spaces never collide."""
    assert all(ALL_NAMESPACES), "Namespaces must be non-empty"
    assert len(ALL_NAMESPACES) == len(set(ALL_NAMESPACES)), \
        "Namespaces must be unique"


validateNamespaces()
