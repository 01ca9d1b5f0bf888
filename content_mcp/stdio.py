 # stdio.py
 # - STDIO MCP mode: JSON-RPC requests on stdin, one response per line on stdout
 # - Each line is handled in its own task so a slow tool never blocks later requests
 # - stdout carries protocol frames only; logs go to stderr

import sys
import json
import asyncio
import logging
from typing import Any, Dict, IO, Optional, Set

from content_mcp.catalog import ToolCatalog
from content_mcp.config import Config, cfg
from content_mcp.container import build_dispatcher
from content_mcp.protocol import ProtocolServer

logger = logging.getLogger("stdio")


async def serve_stdio(server: ProtocolServer, stdin: IO[str] = sys.stdin, stdout: IO[str] = sys.stdout) -> None:
    """Serve until stdin reaches EOF, then wait for in-flight requests"""
    loop = asyncio.get_running_loop()
    write_lock = asyncio.Lock()
    pending: Set["asyncio.Task[None]"] = set()

    async def _write(resp: Dict[str, Any]) -> None:
        # one complete frame per line; never interleave two responses
        async with write_lock:
            stdout.write(json.dumps(resp, ensure_ascii=False) + "\n")
            stdout.flush()

    async def _handle(line: str) -> None:
        resp = await server.handle_raw(line)
        if resp is not None:
            await _write(resp)

    print("[MCP STDIO mode] Ready for JSON-RPC requests via stdin.", file=sys.stderr)
    while True:
        line = await loop.run_in_executor(None, stdin.readline)
        if not line:
            break
        line = line.strip()
        if not line:
            continue
        task = asyncio.create_task(_handle(line))
        pending.add(task)
        task.add_done_callback(pending.discard)

    if pending:
        await asyncio.gather(*pending)
    logger.info(json.dumps({"event": "stdio.eof"}))


def main(config: Config = cfg, agent: Optional[str] = None) -> None:
    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, config.log_level.upper(), logging.INFO),
    )
    catalog = ToolCatalog.from_dir(config.tool_schema_dir)
    dispatcher = build_dispatcher(config, catalog=catalog)
    server = ProtocolServer(catalog, dispatcher, config, agent=agent or config.default_agent)
    asyncio.run(serve_stdio(server))


if __name__ == "__main__":
    main()
