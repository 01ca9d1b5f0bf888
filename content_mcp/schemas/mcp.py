from __future__ import annotations
from typing import List, Optional, Dict, Any, Union
from pydantic import BaseModel, ConfigDict, Field


JSONRPC_VERSION = "2.0"


class BackendBinding(BaseModel):
    service: str
    method: str = "POST"
    path: str


class ToolDef(BaseModel):
    """Tool descriptor as stored in the catalog (tool_schemas/*.json)."""
    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    inputSchema: Dict[str, Any] = Field(default_factory=lambda: {"type": "object"}, description="JSON Schema for input")
    allowedAgents: Optional[List[str]] = None
    backend: Optional[BackendBinding] = None
    tags: List[str] = Field(default_factory=list)

    def public(self) -> Dict[str, Any]:
        """Shape returned by tools/list: access tags and bindings stay internal."""
        return {"name": self.name, "description": self.description, "inputSchema": self.inputSchema}


class ManifestResponse(BaseModel):
    tools: List[Dict[str, Any]]


class TextContent(BaseModel):
    type: str = "text"
    text: str


class ToolResult(BaseModel):
    content: List[TextContent]
    isError: bool = False


class JsonRpcRequest(BaseModel):
    jsonrpc: str = Field(JSONRPC_VERSION)
    method: str
    id: Optional[Union[int, str]] = None
    params: Optional[Dict[str, Any]] = None


class JsonRpcErrorObj(BaseModel):
    code: int
    message: str


class JsonRpcSuccess(BaseModel):
    jsonrpc: str = Field(default=JSONRPC_VERSION, description="JSON-RPC version")
    id: Optional[Any] = Field(default=None, description="Request id (string/number/null)")
    result: Dict[str, Any] = Field(description="JSON-RPC success result")


class JsonRpcError(BaseModel):
    jsonrpc: str = Field(default=JSONRPC_VERSION, description="JSON-RPC version")
    id: Optional[Any] = Field(default=None, description="Request id (string/number/null)")
    error: JsonRpcErrorObj = Field(description="JSON-RPC error object")


def jsonrpc_ok(id_val: Any, result: Dict[str, Any]) -> Dict[str, Any]:
    return JsonRpcSuccess(id=id_val, result=result).model_dump()


def jsonrpc_err(id_val: Any, code: int, message: str) -> Dict[str, Any]:
    return JsonRpcError(id=id_val, error=JsonRpcErrorObj(code=code, message=message)).model_dump()
