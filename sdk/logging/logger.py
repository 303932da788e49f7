"""
Hierarchical structured logger.

Features:
- Logger name derived from the caller's module and class (detected once, cached)
- One rotating log file per top-level application (e.g. codereg.log)
- Structured fields passed as keyword arguments
- Process identity (service, node) appended to every line once set

Usage:
    from sdk.logging import getLogger

    class RecordStore:
        def __init__(self, store):
            self.log = getLogger()  # 'codereg.core.recordStore.RecordStore'

        def save(self, key):
            self.log.info("[RecordStore] Saved", key=key.hex())

    log = getLogger()  # module-level: 'codereg.main'
"""

import inspect, logging, logging.handlers, os, socket
from contextvars import ContextVar
from pathlib import Path
from typing import Optional, Tuple
from datetime import datetime, timezone as tz


_hostname = socket.gethostname()
_configured = False
_fileHandlers = {}  # logPath -> shared RotatingFileHandler
_config = {
    'logDir': None,
    'maxBytes': 10_000_000,
    'backupCount': 5,
    'console': True,
    'level': logging.INFO,
    'utc': False
}

# LogRecord attributes that are not structured fields
_RESERVED = {
    'name', 'msg', 'args', 'created', 'filename', 'funcName',
    'levelname', 'levelno', 'lineno', 'module', 'msecs',
    'message', 'pathname', 'process', 'processName',
    'relativeCreated', 'thread', 'threadName', 'exc_info',
    'exc_text', 'stack_info', 'hostname', 'asctime', 'taskName'
}

# (field, value) pairs naming this process, appended after the record's own fields
_processIdentity: ContextVar[Tuple[Tuple[str, str], ...]] = ContextVar('processIdentity', default=())


def setServiceContext(service: str, node: str):
    """Name the running service and node on every log line written from this context"""
    _processIdentity.set((('service', service), ('node', node)))


def configureLogging(logDir: Optional[str] = None, maxBytes: int = 10_000_000,
                     backupCount: int = 5, console: bool = True,
                     level: str = 'INFO', utc: bool = False):
    """
    Configure global logging settings (call once at process start).

    Args:
        logDir: Directory for log files (default: ./logs)
        maxBytes: Size per log file before rotation
        backupCount: Rotated files kept per application
        console: Also log to stderr
        level: Minimum log level name
        utc: Use UTC timestamps instead of local time
    """
    global _configured

    if logDir is None:
        logDir = os.path.abspath(os.path.join(os.getcwd(), "logs"))

    _config.update({'logDir': logDir, 'maxBytes': maxBytes, 'backupCount': backupCount,
                    'console': console, 'level': getattr(logging, level.upper()), 'utc': utc})

    Path(logDir).mkdir(parents=True, exist_ok=True)
    _configured = True


def _autoDetectName() -> str:
    """Build 'package.module.Class' from the first caller frame outside sdk.logging"""
    frame = inspect.currentframe()
    try:
        current = frame
        while current is not None:
            current = current.f_back
            if current is None:
                break

            module = inspect.getmodule(current)
            if module is None:
                continue

            moduleName = module.__name__
            if moduleName.startswith('sdk.logging') or moduleName.startswith('importlib'):
                continue

            parts = moduleName.split('.')
            if parts and parts[0] == 'sdk':
                parts = parts[1:]

            className = None
            if 'self' in current.f_locals:
                className = current.f_locals['self'].__class__.__name__
            elif 'cls' in current.f_locals:
                className = current.f_locals['cls'].__name__

            hierarchy = '.'.join(parts) if parts else 'unknown'
            if className:
                hierarchy = f"{hierarchy}.{className}"
            return hierarchy

        return 'unknown'
    finally:
        del frame


class StructuredFormatter(logging.Formatter):
    """Format: timestamp - hostname - logger - level - message [field1=value1, field2=value2]"""

    def __init__(self, fmt=None, datefmt=None, utc=False):
        super().__init__(fmt, datefmt)
        self.utc = utc

    def formatTime(self, record, datefmt=None):
        if self.utc:
            ct = datetime.fromtimestamp(record.created, tz=tz.utc)
        else:
            ct = datetime.fromtimestamp(record.created)

        if datefmt:
            return ct.strftime(datefmt)
        return f"{ct.strftime('%Y-%m-%d %H:%M:%S')},{int(record.msecs):03d}"

    def format(self, record):
        record.hostname = _hostname

        fields = [f"{key}={value}" for key, value in record.__dict__.items()
                  if key not in _RESERVED and not key.startswith('_')]
        fields.extend(f"{key}={value}" for key, value in _processIdentity.get())

        # Other handlers share the record, restore msg afterwards
        originalMsg = record.msg
        if fields:
            record.msg = f"{originalMsg} [{', '.join(fields)}]"
        try:
            return super().format(record)
        finally:
            record.msg = originalMsg


def getLogger(name: Optional[str] = None, separateFile: bool = False) -> logging.Logger:
    """
    Get or create a logger, detecting its name from the call stack when not given.

    Args:
        name: Explicit logger name
        separateFile: Write to '<name>.log' instead of the application's shared file

    Returns:
        logging.Logger whose level methods accept structured fields as **kwargs
    """
    if not _configured:
        configureLogging()

    if name is None:
        name = _autoDetectName()

    logger = logging.getLogger(name)
    logger.propagate = False

    if not getattr(logger, '_configuredBySdk', False):
        logger.setLevel(_config['level'])

        appName = name if separateFile else name.split('.')[0]
        logPath = str(Path(_config['logDir']) / f"{appName}.log")

        if logPath not in _fileHandlers:
            fileHandler = logging.handlers.RotatingFileHandler(
                logPath,
                maxBytes=_config['maxBytes'],
                backupCount=_config['backupCount'],
                encoding='utf-8'
            )
            fileHandler.setLevel(_config['level'])
            fileHandler.setFormatter(StructuredFormatter(
                '%(asctime)s - %(hostname)s - %(name)s - %(levelname)s - %(message)s',
                utc=_config['utc']
            ))
            _fileHandlers[logPath] = fileHandler

        logger.addHandler(_fileHandlers[logPath])

        if _config['console']:
            consoleHandler = logging.StreamHandler()
            consoleHandler.setLevel(_config['level'])
            consoleHandler.setFormatter(StructuredFormatter(
                '%(name)s - %(levelname)s - %(message)s',
                utc=_config['utc']
            ))
            logger.addHandler(consoleHandler)

        logger._configuredBySdk = True

    return _wrapLogger(logger)


def _wrapLogger(logger: logging.Logger) -> logging.Logger:
    """
    Let level methods take structured fields directly:
    log.info("Message", codeId=1) instead of log.info("Message", extra={'codeId': 1})
    """
    if getattr(logger, '_isWrapped', False):
        return logger

    def wrap(original):
        def method(msg, *args, **kwargs):
            excInfo = kwargs.pop('exc_info', False)
            if kwargs:
                original(msg, *args, extra=kwargs, exc_info=excInfo)
            else:
                original(msg, *args, exc_info=excInfo)
        return method

    logger.debug = wrap(logger.debug)
    logger.info = wrap(logger.info)
    logger.warning = wrap(logger.warning)
    logger.error = wrap(logger.error)
    logger.critical = wrap(logger.critical)
    logger._isWrapped = True

    return logger
