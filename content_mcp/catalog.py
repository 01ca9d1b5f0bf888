 # catalog.py
 # - Tool catalog loaded from tool_schemas/*.json
 # - Each file holds one tool definition or a list of them
 # - Names are unique per process; tools/list exposes name/description/inputSchema only

import os
import json
import glob
import logging
from typing import Dict, Any, List, Optional, Iterator

from pydantic import ValidationError

from content_mcp.schemas.mcp import ToolDef

logger = logging.getLogger("catalog")


class CatalogError(Exception):
    """Raised when the tool schema directory cannot be turned into a catalog"""


def load_tool_defs(schema_dir: str) -> List[Dict[str, Any]]:
    tool_defs: List[Dict[str, Any]] = []
    for path in sorted(glob.glob(os.path.join(schema_dir, "*.json"))):
        with open(path, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise CatalogError(f"{os.path.basename(path)}: invalid JSON: {e}") from e
        if isinstance(data, list):
            tool_defs.extend(data)
        else:
            tool_defs.append(data)
    return tool_defs


class ToolCatalog:
    def __init__(self, tools: List[ToolDef]):
        self._tools: Dict[str, ToolDef] = {}
        for t in tools:
            if t.name in self._tools:
                raise CatalogError(f"duplicate tool name: {t.name}")
            self._tools[t.name] = t
        # tag index for quick lookup
        self._tag_index: Dict[str, set[str]] = {}
        for t in tools:
            for tag in set(t.tags):
                self._tag_index.setdefault(tag, set()).add(t.name)

    @classmethod
    def from_dir(cls, schema_dir: str) -> "ToolCatalog":
        tools: List[ToolDef] = []
        for raw in load_tool_defs(schema_dir):
            try:
                tools.append(ToolDef.model_validate(raw))
            except ValidationError as e:
                raise CatalogError(f"invalid tool definition {raw.get('name', '?')!r}: {e}") from e
        catalog = cls(tools)
        logger.info(json.dumps({"event": "catalog.loaded", "dir": schema_dir, "tools": len(catalog)}))
        return catalog

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[ToolDef]:
        return iter(self._tools.values())

    def get(self, name: str) -> Optional[ToolDef]:
        return self._tools.get(name)

    def names(self) -> List[str]:
        return list(self._tools.keys())

    def list_tools(self, tags: Optional[List[str]] = None) -> List[Dict[str, Any]]:
        """Return tool list in public shape; with tags, only tools carrying any of them"""
        if not tags:
            return [t.public() for t in self._tools.values()]
        wanted = set(self.tools_by_tags(tags))
        return [t.public() for t in self._tools.values() if t.name in wanted]

    def tools_by_tags(self, tags: List[str]) -> List[str]:
        out: set[str] = set()
        for tg in tags or []:
            out |= self._tag_index.get(tg, set())
        return sorted(out)
