"""
HTTP edge for the registry.

The server is the host environment around RegistryHost:
- Verifies the caller identity (bearer JWT) for mutations
- Decodes request bodies and hands them to the host entry points
- Admits one invocation at a time, so each runs to completion with
  exclusive access to the store
- Maps registry error codes to HTTP statuses

Routes:
    GET  /health
    GET  /info                                            contract name + version
    POST /execute                                         execute message, bearer auth
    POST /query                                           query message
    GET  /api/admin
    GET  /api/registrations/{chainId}/{codeId}
    GET  /api/contracts/{name}/{chainId}                  all versions, ascending
    GET  /api/contracts/{name}/{chainId}/latest
    GET  /api/contracts/{name}/{chainId}/versions/{version}
"""

import asyncio
import orjson
from aiohttp import web
from typing import Any, Dict, Callable

from codereg.core.contract import ERROR_HTTP_STATUS, MAX_CODE_ID
from codereg.core.contracts import (
    AdminQuery, ContractInfoQuery, GetRegistrationQuery, GetCodeIdInfoQuery,
    ListRegistrationsQuery, toWire
)
from codereg.core.dispatch import RegistryHost
from codereg.core.errors import InvalidRequest, RegistryError, Result
from codereg.server.auth import AuthManager
from sdk.logging import getLogger


def _dumps(data: Any) -> str:
    return orjson.dumps(data).decode('utf-8')


def jsonResponse(data: Any, status: int = 200) -> web.Response:
    return web.json_response(data, status=status, dumps=_dumps)


def errorResponse(error: RegistryError) -> web.Response:
    return jsonResponse(error.toDict(), status=ERROR_HTTP_STATUS.get(error.code, 500))


class RegistryServer:
    """
    Registry HTTP server.

    Config keys: host, port, auth {enabled, secret, tokenExpirySeconds}
    """

    def __init__(self, config: Dict[str, Any], host: RegistryHost):
        self.config = config
        self.host = host
        self.log = getLogger()

        self.authManager = AuthManager(config.get('auth', {'enabled': False}))

        # One invocation at a time
        self._invocationLock = asyncio.Lock()

        self.app = web.Application()
        self._setupRoutes()

        self._runner = None
        self._site = None

    def _setupRoutes(self):
        self.app.router.add_get('/health', self.handleHealth)
        self.app.router.add_get('/info', self.handleInfo)
        self.app.router.add_post('/execute', self.handleExecute)
        self.app.router.add_post('/query', self.handleQuery)

        self.app.router.add_get('/api/admin', self.handleGetAdmin)
        self.app.router.add_get('/api/registrations/{chainId}/{codeId}', self.handleGetCodeIdInfo)
        self.app.router.add_get('/api/contracts/{name}/{chainId}', self.handleListRegistrations)
        self.app.router.add_get('/api/contracts/{name}/{chainId}/latest', self.handleGetLatest)
        self.app.router.add_get('/api/contracts/{name}/{chainId}/versions/{version}', self.handleGetVersion)

    async def start(self):
        """Start Server"""
        self.log.info("[Server] Starting...")

        self._runner = web.AppRunner(self.app)
        await self._runner.setup()

        host = self.config.get('host', '0.0.0.0')
        port = self.config.get('port', 8080)

        self._site = web.TCPSite(self._runner, host, port)
        await self._site.start()

        self.log.info(f"[Server] Listening on {host}:{port}")

    async def stop(self):
        """Stop Server"""
        self.log.info("[Server] Stopping...")

        if self._site:
            await self._site.stop()
        if self._runner:
            await self._runner.cleanup()

        self.log.info("[Server] Stopped")

    async def _invoke(self, call: Callable[[], Any]) -> Any:
        """Run one host call off the event loop, with exclusive store access"""
        async with self._invocationLock:
            return await asyncio.to_thread(call)

    async def _readMessage(self, request: web.Request) -> Result:
        try:
            return Result.success(orjson.loads(await request.read()))
        except orjson.JSONDecodeError as e:
            return Result.failure(InvalidRequest(f"Invalid JSON body: {e}"))

    async def _respond(self, call: Callable[[], Result]) -> web.Response:
        result = await self._invoke(call)
        if not result.ok:
            return errorResponse(result.error)
        return jsonResponse(toWire(result.value))

    # =========================================================================
    # HTTP Handlers
    # =========================================================================

    async def handleHealth(self, request: web.Request) -> web.Response:
        """Health check endpoint"""
        instantiated = await self._invoke(self.host.isInstantiated)
        return jsonResponse({'status': 'ok', 'instantiated': instantiated})

    async def handleInfo(self, request: web.Request) -> web.Response:
        return await self._respond(lambda: self.host.query(ContractInfoQuery()))

    async def handleExecute(self, request: web.Request) -> web.Response:
        """
        Execute a mutation as the authenticated caller.

        Body: {"register": {...}} | {"unregister": {...}} | {"update_admin": {...}}
        """
        sender = self.authManager.callerFromHeaders(request.headers, request.cookies)
        if sender is None:
            return jsonResponse({'error': 'Not authenticated', 'code': 'unauthenticated'}, status=401)

        message = await self._readMessage(request)
        if not message.ok:
            return errorResponse(message.error)

        result = await self._invoke(lambda: self.host.execute(sender, message.value))
        if not result.ok:
            self.log.warning(f"[Server] Execute failed: {result.error}", sender=sender)
            return errorResponse(result.error)
        return jsonResponse(result.value.toDict())

    async def handleQuery(self, request: web.Request) -> web.Response:
        """Body: any query message, e.g. {"get_registration": {"name": ..., "chain_id": ...}}"""
        message = await self._readMessage(request)
        if not message.ok:
            return errorResponse(message.error)
        return await self._respond(lambda: self.host.query(message.value))

    async def handleGetAdmin(self, request: web.Request) -> web.Response:
        result = await self._invoke(lambda: self.host.query(AdminQuery()))
        if not result.ok:
            return errorResponse(result.error)
        return jsonResponse({'admin': result.value})

    async def handleGetCodeIdInfo(self, request: web.Request) -> web.Response:
        chainId = request.match_info['chainId']
        try:
            codeId = int(request.match_info['codeId'])
        except ValueError:
            return errorResponse(InvalidRequest(f"Invalid code ID: {request.match_info['codeId']}"))
        if codeId < 0 or codeId > MAX_CODE_ID:
            return errorResponse(InvalidRequest(f"Invalid code ID: {codeId}"))

        return await self._respond(lambda: self.host.query(GetCodeIdInfoQuery(chainId=chainId, codeId=codeId)))

    async def handleListRegistrations(self, request: web.Request) -> web.Response:
        name = request.match_info['name']
        chainId = request.match_info['chainId']
        return await self._respond(lambda: self.host.query(ListRegistrationsQuery(name=name, chainId=chainId)))

    async def handleGetLatest(self, request: web.Request) -> web.Response:
        name = request.match_info['name']
        chainId = request.match_info['chainId']
        return await self._respond(lambda: self.host.query(GetRegistrationQuery(name=name, chainId=chainId)))

    async def handleGetVersion(self, request: web.Request) -> web.Response:
        query = GetRegistrationQuery(
            name=request.match_info['name'],
            chainId=request.match_info['chainId'],
            version=request.match_info['version']
        )
        return await self._respond(lambda: self.host.query(query))
