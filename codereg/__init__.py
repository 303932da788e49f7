"""
codereg - chain code-id registry

Maps (contract name, chain id, version) and (chain id, code id) to one
deployment descriptor (code id + checksum). Only the admin may write.
"""

__version__ = "0.1.0"
