"""
Package init for codereg.server
"""

from codereg.server.server import RegistryServer
from codereg.server.auth import AuthManager

__all__ = ['RegistryServer', 'AuthManager']
