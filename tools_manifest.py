# tools_manifest.py
# Writes the MCP tool manifest (.mcp.json) from content_mcp/tool_schemas

import sys

from content_mcp.cli import write_manifest


def main():
    out = sys.argv[1] if len(sys.argv) > 1 else ".mcp.json"
    count = write_manifest(out)
    print(f"{out} manifest generated ({count} tools).")

if __name__ == "__main__":
    main()
