"""
codereg main entry point.

Opens the store, instantiates the registry on first start, and serves it
over HTTP until interrupted.

Usage:
    python -m codereg.main [--config path/to/config.json]
    python -m codereg.main --config config.json --issue-token <address>

Config (JSON):
    {
      "dbPath": "./codereg/data/registry.db",   // ":memory:" for an ephemeral store
      "host": "0.0.0.0",
      "port": 8080,
      "admin": "admin",                          // initial admin, first start only
      "auth": {"enabled": true, "secret": "...", "tokenExpirySeconds": 86400},
      "logging": {"logDir": "./logs", "level": "INFO", "console": true, "utc": false}
    }
"""

import asyncio
import argparse
import signal
import socket
import sys
import orjson
from typing import Any, Dict, Optional

from codereg.core.dispatch import RegistryHost
from codereg.core.storage import StorageError, createStore
from codereg.server.auth import AuthManager
from codereg.server.server import RegistryServer
from sdk.logging import getLogger, configureLogging, setServiceContext

DEFAULT_DB_PATH = './codereg/data/registry.db'


def loadConfig(configPath: Optional[str]) -> Dict[str, Any]:
    """Load configuration from JSON file (empty config if no path)"""
    if not configPath:
        return {}
    with open(configPath, 'rb') as f:
        return orjson.loads(f.read())


def buildHost(config: Dict[str, Any]) -> RegistryHost:
    """
    Open the configured store and make sure the registry is instantiated.

    Raises:
        RuntimeError: No admin configured for a fresh store, or instantiate failed
    """
    log = getLogger()
    store = createStore(config.get('dbPath', DEFAULT_DB_PATH))
    host = RegistryHost(store)

    if host.isInstantiated():
        log.info("[Main] Existing registry found")
        return host

    admin = config.get('admin')
    if not admin:
        store.close()
        raise RuntimeError("Store is not instantiated and no 'admin' is configured")

    result = host.instantiate({'admin': admin})
    if not result.ok:
        store.close()
        raise RuntimeError(f"Instantiate failed: {result.error}")
    return host


async def runServer(config: Dict[str, Any], host: RegistryHost):
    log = getLogger()
    server = RegistryServer(config, host)
    await server.start()

    stopEvent = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stopEvent.set)
        except NotImplementedError:
            # Windows: rely on KeyboardInterrupt
            pass

    try:
        await stopEvent.wait()
    finally:
        log.info("[Main] Shutting down")
        await server.stop()
        host.store.close()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="codereg - chain code-id registry")
    parser.add_argument('--config', help="Path to JSON config file")
    parser.add_argument('--issue-token', metavar='ADDRESS',
                        help="Print a signed bearer token for ADDRESS and exit")
    args = parser.parse_args(argv)

    config = loadConfig(args.config)

    loggingConfig = config.get('logging', {})
    configureLogging(
        logDir=loggingConfig.get('logDir'),
        level=loggingConfig.get('level', 'INFO'),
        console=loggingConfig.get('console', True),
        utc=loggingConfig.get('utc', False)
    )
    setServiceContext('codereg', config.get('nodeId', socket.gethostname()))
    log = getLogger()

    if args.issue_token:
        authManager = AuthManager(config.get('auth', {}))
        print(authManager.issueToken(args.issue_token))
        return 0

    try:
        host = buildHost(config)
    except (RuntimeError, StorageError) as e:
        log.error(f"[Main] {e}")
        return 1

    try:
        asyncio.run(runServer(config, host))
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
