"""
Simple smoke tests for the MCP gateway in-process.
Usage:
  LOG_LEVEL=DEBUG python smoke_test.py
No backend service has to be running; tool calls below never reach one.
"""
import os

os.environ.setdefault("LOG_LEVEL", "DEBUG")

from fastapi.testclient import TestClient

from content_mcp.main import app

client = TestClient(app)


def must(cond: bool, msg: str = "assertion failed"):
    if not cond:
        raise SystemExit(f"SMOKE FAIL: {msg}")


def main():
    # 1) health
    r = client.get("/health")
    must(r.status_code == 200, f"/health expected 200, got {r.status_code}")
    j = r.json()
    must(j.get("status") == "healthy", "health status not healthy")
    must(j.get("tools") == len(j.get("toolNames") or []), "health tool count mismatch")

    # 2) manifest
    r = client.get("/mcp/manifest")
    must(r.status_code == 200, f"/mcp/manifest expected 200, got {r.status_code}")
    must(isinstance(r.json().get("tools"), list), "manifest tools missing")

    # 3) JSON-RPC initialize
    payload = {"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}}
    r = client.post("/mcp", json=payload)
    must(r.status_code == 200, f"/mcp initialize expected 200, got {r.status_code}")
    must(r.json().get("result", {}).get("serverInfo", {}).get("name"), "initialize missing serverInfo.name")

    # 4) tools/list
    payload = {"jsonrpc": "2.0", "id": 2, "method": "tools/list", "params": {}}
    r = client.post("/mcp", json=payload)
    tools = r.json().get("result", {}).get("tools")
    must(isinstance(tools, list) and tools, "tools/list returned no tools")

    # 5) tools/call without a name → -32602
    payload = {"jsonrpc": "2.0", "id": 3, "method": "tools/call", "params": {"arguments": {}}}
    r = client.post("/mcp", json=payload)
    must(r.json().get("error", {}).get("code") == -32602, "tools/call invalid param code mismatch")

    # 6) unknown tool → flagged result, not a protocol error
    payload = {"jsonrpc": "2.0", "id": 4, "method": "tools/call", "params": {"name": "no_such_tool"}}
    r = client.post("/mcp", json=payload)
    must(r.json().get("result", {}).get("isError") is True, "unknown tool not flagged")

    # 7) /message without a session → 400
    r = client.post("/message", json={"jsonrpc": "2.0", "id": 5, "method": "ping"})
    must(r.status_code == 400, f"/message without sessionId expected 400, got {r.status_code}")

    print("SMOKE OK")


if __name__ == "__main__":
    main()
