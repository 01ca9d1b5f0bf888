# protocol.py
# - MCP protocol shell shared by every transport (stdio, SSE sessions, POST /mcp)
# - JSON-RPC 2.0 envelope checks, then initialize / ping / tools/list / tools/call
# - Returns the response dict, or None when the message needs no reply

import json
import logging
from typing import Dict, Any, Optional, Union

from pydantic import ValidationError

from content_mcp.catalog import ToolCatalog
from content_mcp.config import Config, cfg
from content_mcp.schemas.mcp import JSONRPC_VERSION, JsonRpcRequest, jsonrpc_err, jsonrpc_ok
from content_mcp.tools import ToolDispatcher

logger = logging.getLogger("mcp")

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
SERVER_ERROR = -32000


def capabilities(config: Config = cfg) -> Dict[str, Any]:
    return {
        "protocolVersion": config.protocol_version,
        "capabilities": {"tools": {"listChanged": False}},
        "serverInfo": {"name": config.server_name, "version": config.server_version},
    }


class ProtocolServer:
    """One MCP endpoint bound to a catalog and a dispatcher.

    stdio runs a single instance for the process; the SSE transport builds
    one per accepted connection. `agent` is the caller identity, if known,
    and is handed to the dispatcher on every tools/call.
    """

    def __init__(self, catalog: ToolCatalog, dispatcher: ToolDispatcher, config: Config = cfg, *, agent: Optional[str] = None):
        self.catalog = catalog
        self.dispatcher = dispatcher
        self.config = config
        self.agent = agent

    async def handle_raw(self, payload: Union[str, bytes, Dict[str, Any], Any]) -> Optional[Dict[str, Any]]:
        if isinstance(payload, (str, bytes)):
            try:
                payload = json.loads(payload)
            except ValueError:
                return jsonrpc_err(None, PARSE_ERROR, "Parse error")

        if isinstance(payload, list):
            return jsonrpc_err(None, INVALID_REQUEST, "Batch not supported")

        try:
            req = JsonRpcRequest.model_validate(payload)
        except ValidationError:
            id_val = payload.get("id") if isinstance(payload, dict) else None
            return jsonrpc_err(id_val if isinstance(id_val, (int, str)) else None, INVALID_REQUEST, "Invalid Request")

        if req.jsonrpc != JSONRPC_VERSION:
            return jsonrpc_err(req.id, INVALID_REQUEST, "Invalid jsonrpc version")

        return await self.handle(req)

    async def handle(self, req: JsonRpcRequest) -> Optional[Dict[str, Any]]:
        method = req.method or ""
        params = req.params or {}

        # JSON-RPC notifications (no id) never get a reply
        if req.id is None:
            logger.info(json.dumps({"event": "notification", "method": method}))
            return None

        # Some clients send notifications with an id (non-standard); acknowledge quietly
        if method.startswith("notifications/"):
            return jsonrpc_ok(req.id, {})

        if method == "initialize":
            logger.info(json.dumps({"event": "rpc", "stage": "initialize", "id": req.id}))
            return jsonrpc_ok(req.id, capabilities(self.config))

        if method == "ping":
            return jsonrpc_ok(req.id, {})

        if method == "tools/list":
            logger.info(json.dumps({"event": "rpc", "stage": "tools/list", "id": req.id}))
            return jsonrpc_ok(req.id, {"tools": self.catalog.list_tools()})

        if method == "tools/call":
            name = params.get("name")
            arguments = params.get("arguments")
            if arguments is None:
                arguments = {}
            if not name or not isinstance(name, str) or not isinstance(arguments, dict):
                logger.info(json.dumps({"event": "rpc.error", "id": req.id, "reason": "invalid_params"}))
                return jsonrpc_err(req.id, INVALID_PARAMS, "Invalid params")
            try:
                result = await self.dispatcher.dispatch(name, arguments, agent=self.agent)
            except Exception as e:
                logger.exception("server error on tools/call")
                return jsonrpc_err(req.id, SERVER_ERROR, f"Server error: {str(e)}")
            return jsonrpc_ok(req.id, result)

        logger.info(json.dumps({"event": "rpc.error", "id": req.id, "method": method, "reason": "method_not_found"}))
        return jsonrpc_err(req.id, METHOD_NOT_FOUND, "Method not found")
