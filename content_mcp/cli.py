#!/usr/bin/env python3
"""
Command line entry point for the content tool gateway.
Usage examples:
  content-tool-mcp serve --port 3002        # HTTP/SSE transport
  content-tool-mcp stdio --agent casey      # stdio transport (spawned by an MCP client)
  content-tool-mcp manifest --out .mcp.json # write the tool manifest
  content-tool-mcp check                    # check the content API health endpoint
Environment:
  see content_mcp.config (CONTENT_API_URL, PORT, STRICT_VALIDATION, ...)
"""
import sys
import json
import asyncio
import argparse

from content_mcp.catalog import CatalogError, ToolCatalog
from content_mcp.config import cfg


def cmd_serve(args: argparse.Namespace) -> None:
    import uvicorn

    uvicorn.run(
        "content_mcp.main:app",
        host=args.host or cfg.host,
        port=args.port or cfg.port,
        log_level=cfg.log_level.lower(),
    )


def cmd_stdio(args: argparse.Namespace) -> None:
    from content_mcp.stdio import main as stdio_main

    stdio_main(cfg, agent=args.agent)


def write_manifest(out: str, schema_dir: str = cfg.tool_schema_dir, tags: list[str] | None = None) -> int:
    tools = ToolCatalog.from_dir(schema_dir).list_tools(tags)
    with open(out, "w", encoding="utf-8") as f:
        json.dump({"tools": tools}, f, ensure_ascii=False, indent=2)
    return len(tools)


def cmd_manifest(args: argparse.Namespace) -> None:
    count = write_manifest(args.out, tags=args.tag)
    print(f"{args.out} manifest generated ({count} tools).")


def cmd_check(args: argparse.Namespace) -> int:
    from content_mcp.backends import ContentApiClient

    client = ContentApiClient(cfg.content_api_url, cfg.content_api_timeout, health_timeout=cfg.health_timeout)
    healthy = asyncio.run(client.health_check())
    print(json.dumps({"content_api": cfg.content_api_url, "healthy": healthy}))
    return 0 if healthy else 1


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(prog="content-tool-mcp", description="MCP content tool gateway")
    sub = p.add_subparsers(dest="cmd")

    p_serve = sub.add_parser("serve", help="Run the HTTP/SSE server")
    p_serve.add_argument("--host", required=False)
    p_serve.add_argument("--port", required=False, type=int)
    p_serve.set_defaults(func=cmd_serve)

    p_stdio = sub.add_parser("stdio", help="Serve MCP over stdin/stdout")
    p_stdio.add_argument("--agent", required=False, help="Caller identity (default from MCP_AGENT)")
    p_stdio.set_defaults(func=cmd_stdio)

    p_man = sub.add_parser("manifest", help="Write the tool manifest as JSON")
    p_man.add_argument("--out", default=".mcp.json")
    p_man.add_argument("--tag", action="append", help="Only tools with this tag (repeatable)")
    p_man.set_defaults(func=cmd_manifest)

    p_check = sub.add_parser("check", help="Check the content API health endpoint")
    p_check.set_defaults(func=cmd_check)

    args = p.parse_args(argv)
    if not getattr(args, "func", None):
        p.print_help()
        return 1
    try:
        rc = args.func(args)
        return rc if isinstance(rc, int) else 0
    except CatalogError as e:
        print(f"Tool catalog error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
