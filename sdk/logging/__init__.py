"""
SDK Logging - hierarchical structured logger.

API:
    from sdk.logging import getLogger, configureLogging, setServiceContext

    configureLogging(logDir='./logs', level='INFO')  # once, at startup
    setServiceContext('codereg', socket.gethostname())

    class RegistrationEngine:
        def __init__(self):
            self.log = getLogger()  # 'codereg.core.registrationEngine.RegistrationEngine'

        def register(self, ...):
            self.log.info("[Engine] Registered", codeId=codeId, chainId=chainId)
"""

from .logger import getLogger, configureLogging, setServiceContext

__all__ = [
    'getLogger',
    'configureLogging',
    'setServiceContext'
]
