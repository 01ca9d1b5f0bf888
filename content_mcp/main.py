 # main.py
 # - FastAPI-based MCP server (HTTP/SSE transport)
 # - GET /sse opens a session stream; POST /message?sessionId=... is routed to it
 # - POST /mcp answers JSON-RPC directly in the HTTP body (stateless)
 # - Tool execution is handled in content_mcp.tools via the protocol shell

import json
import time
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import BackgroundTasks, FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse

from content_mcp.catalog import ToolCatalog
from content_mcp.config import Config, cfg
from content_mcp.container import build_dispatcher
from content_mcp.protocol import PARSE_ERROR, ProtocolServer, capabilities
from content_mcp.schemas.mcp import ManifestResponse, jsonrpc_err
from content_mcp.sessions import SessionNotFound, SessionRegistry, SseConnection
from content_mcp.tools import ToolDispatcher

 # Logging setup
logger = logging.getLogger("mcp")
logging.basicConfig(level=getattr(logging, cfg.log_level.upper(), logging.INFO))


async def _route_in_background(registry: SessionRegistry, session_id: str, payload: object) -> None:
    # the session may close between the 202 and this task running
    try:
        await registry.route(session_id, payload)
    except SessionNotFound:
        logger.info(json.dumps({"event": "session.gone", "session": session_id}))


def create_app(
    config: Config = cfg,
    *,
    dispatcher: Optional[ToolDispatcher] = None,
    registry: Optional[SessionRegistry] = None,
) -> FastAPI:
    catalog = dispatcher.catalog if dispatcher is not None else ToolCatalog.from_dir(config.tool_schema_dir)
    if dispatcher is None:
        dispatcher = build_dispatcher(config, catalog=catalog)
    if registry is None:
        registry = SessionRegistry()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(json.dumps({"event": "server.start", "tools": catalog.names()}))
        yield
        registry.close_all()

    app = FastAPI(title=config.server_name, version=config.server_version, lifespan=lifespan)
    app.state.config = config
    app.state.catalog = catalog
    app.state.dispatcher = dispatcher
    app.state.registry = registry

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allow_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        max_age=3600,
    )

    def _server_for(agent: Optional[str]) -> ProtocolServer:
        return ProtocolServer(catalog, dispatcher, config, agent=agent or config.default_agent)

    @app.get("/health")
    async def health(deep: bool = False):
        body = {
            "status": "healthy",
            "service": config.server_name,
            "version": config.server_version,
            "tools": len(catalog),
            "toolNames": catalog.names(),
            "sessions": len(registry),
        }
        if deep:
            body["backends"] = {"content_api": await dispatcher.backends.content.health_check()}
        return body

    @app.get("/mcp/manifest", response_model=ManifestResponse)
    def mcp_manifest(tag: Optional[List[str]] = Query(None)):
        """MCP tool manifest as JSON (importable by clients such as Cursor); ?tag=research narrows it"""
        return {"tools": catalog.list_tools(tag)}

    @app.get("/mcp/capabilities")
    def mcp_capabilities():
        return capabilities(config)

    @app.get("/sse")
    async def sse(request: Request, x_agent_id: Optional[str] = Header(None)):
        """Open a session stream. The first event tells the client where to POST."""
        conn = SseConnection(_server_for(x_agent_id), max_queue=config.sse_queue_max)
        session_id = registry.register(conn)
        endpoint = f"{request.scope.get('root_path', '')}/message?sessionId={session_id}"
        logger.info(json.dumps({"event": "sse.connect", "session": session_id, "client": request.client.host if request.client else None}))

        async def event_gen():
            try:
                async for frame in conn.events(endpoint, keepalive=config.sse_keepalive_sec):
                    yield frame
            finally:
                registry.unregister(session_id)

        return StreamingResponse(
            event_gen(),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )

    @app.post("/message")
    async def message(request: Request, background: BackgroundTasks, sessionId: Optional[str] = None):
        if not sessionId:
            raise HTTPException(status_code=400, detail="Missing sessionId parameter")
        try:
            registry.get(sessionId)
        except SessionNotFound:
            raise HTTPException(status_code=400, detail=f"No session found for sessionId {sessionId}")
        try:
            payload = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid JSON body")
        background.add_task(_route_in_background, registry, sessionId, payload)
        return PlainTextResponse("Accepted", status_code=202)

    @app.post("/mcp")
    async def mcp_entry(request: Request, x_agent_id: Optional[str] = Header(None)):
        """Single JSON-RPC endpoint; the reply is the HTTP response body"""
        t0 = time.time()
        correlation_id = request.headers.get("x-correlation-id") or "-"
        try:
            payload = await request.json()
        except ValueError:
            return JSONResponse(jsonrpc_err(None, PARSE_ERROR, "Parse error"))
        resp = await _server_for(x_agent_id).handle_raw(payload)
        logger.info(json.dumps({"event": "http.rpc", "corr": correlation_id, "ms": int((time.time() - t0) * 1000)}))
        if resp is None:
            # Some clients warn on 204; return empty JSON 200 to be lenient
            return JSONResponse(content={})
        return JSONResponse(resp, headers={"x-correlation-id": correlation_id})

    return app


app = create_app()
