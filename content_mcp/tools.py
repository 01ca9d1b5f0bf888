 # tools.py
 # - Tool dispatch: tool name -> one backend client operation
 # - Applies per-tool argument defaults before the backend call
 # - Always returns a tools/call result envelope; failures become isError results

import json
import time
import logging
from dataclasses import dataclass
from typing import Dict, Any, Callable, Awaitable, Optional, TYPE_CHECKING

from jsonschema import validate, ValidationError

from content_mcp.backends import BackendClient, BackendError
from content_mcp.catalog import ToolCatalog
from content_mcp.config import Config, cfg
from content_mcp.schemas.mcp import TextContent, ToolResult

if TYPE_CHECKING:
    from content_mcp.container import Backends

logger = logging.getLogger("tools")


def _pretty(obj: Any) -> str:
    return json.dumps(obj, indent=2, ensure_ascii=False)


def _as_text(obj: Any) -> str:
    return obj if isinstance(obj, str) else _pretty(obj)


def _string_field_or_json(result: Any, key: str) -> str:
    """Research endpoints put their prose under one key; fall back to the whole payload"""
    if isinstance(result, dict) and isinstance(result.get(key), str):
        return result[key]
    return _as_text(result)


def text_result(text: str, *, is_error: bool = False) -> Dict[str, Any]:
    return ToolResult(content=[TextContent(text=text)], isError=is_error).model_dump()


# Defaults are part of each tool's contract. Tools missing here forward their arguments as-is.
TOOL_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "generate_content": {"tone": "professional", "length": "medium"},
    "keyword_data": {"country": "US"},
    "related_keywords": {"country": "US", "limit": 100},
}


def apply_defaults(name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
    args = dict(arguments)
    for key, value in TOOL_DEFAULTS.get(name, {}).items():
        if args.get(key) is None:
            args[key] = value
    return args


# ---------------------------------------------------------------------
# Handlers: (backends, arguments) -> str
# ---------------------------------------------------------------------
async def _generate_content(b: "Backends", p: Dict[str, Any]) -> str:
    return await b.content.generate_content(p.get("prompt"), p.get("contentType"), p["tone"], p["length"])


async def _refine_content(b: "Backends", p: Dict[str, Any]) -> str:
    return await b.content.refine_content(p.get("content"), p.get("instructions"))


async def _analyze_content(b: "Backends", p: Dict[str, Any]) -> str:
    return _as_text(await b.content.analyze_content(p.get("content")))


async def _keyword_data(b: "Backends", p: Dict[str, Any]) -> str:
    return _as_text(await b.content.keyword_data(p.get("keywords"), p["country"]))


async def _related_keywords(b: "Backends", p: Dict[str, Any]) -> str:
    return _as_text(await b.content.related_keywords(p.get("keyword"), p["country"], p["limit"]))


async def _categorize_keywords(b: "Backends", p: Dict[str, Any]) -> str:
    return _as_text(await b.content.categorize_keywords(p.get("keywords")))


async def _cluster_keywords(b: "Backends", p: Dict[str, Any]) -> str:
    return _as_text(await b.content.cluster_keywords(p.get("keywords")))


async def _search_news(b: "Backends", p: Dict[str, Any]) -> str:
    return _as_text(await b.content.search_news(p.get("query")))


async def _deep_research_topic(b: "Backends", p: Dict[str, Any]) -> str:
    result = await b.content.deep_research_topic(p.get("title"), p.get("link"), p.get("snippet"))
    return _string_field_or_json(result, "research")


async def _analyze_viral_potential(b: "Backends", p: Dict[str, Any]) -> str:
    return _as_text(await b.content.analyze_viral_potential(p.get("article")))


async def _trending_questions(b: "Backends", p: Dict[str, Any]) -> str:
    return _as_text(await b.content.trending_questions(p.get("topic")))


async def _research_headline(b: "Backends", p: Dict[str, Any]) -> str:
    result = await b.content.research_headline(p.get("headline"))
    return _string_field_or_json(result, "research")


async def _enhanced_topic_search(b: "Backends", p: Dict[str, Any]) -> str:
    return _as_text(await b.content.enhanced_topic_search(p.get("query")))


async def _website_context(b: "Backends", p: Dict[str, Any]) -> str:
    result = await b.content.website_context(p.get("urls"))
    return _string_field_or_json(result, "context")


async def _enhanced_keyword_research(b: "Backends", p: Dict[str, Any]) -> str:
    data = await b.keywords.enhanced_research(p)
    if isinstance(data, dict):
        logger.info(json.dumps({
            "event": "keywords.researched",
            "success": data.get("success"),
            "keywords": len(data.get("keywords") or []),
            "creditsRemaining": (data.get("credits") or {}).get("remaining"),
        }))
    return _as_text(data)


async def _deep_topic_research(b: "Backends", p: Dict[str, Any]) -> str:
    markdown = await b.research.deep_research(p.get("keyword"), p.get("headline"))
    logger.info(json.dumps({"event": "research.generated", "chars": len(markdown)}))
    return markdown


async def _blog_writer_service(b: "Backends", p: Dict[str, Any]) -> str:
    data = await b.blog_writer.generate_blog(p)
    brief = p.get("content_brief") if isinstance(p.get("content_brief"), dict) else {}
    markdown: str = data["blog_markdown"]
    html = data.get("blog_html")
    words = len(markdown.split())
    metadata: Dict[str, Any] = {
        "title": brief.get("title"),
        "focus_keyword": brief.get("focus_keyword"),
        "word_count": words,
        "character_count": len(markdown),
        "html_length": len(html) if isinstance(html, str) else 0,
        "service": "blog-writer-service",
    }
    if data.get("model"):
        metadata["model"] = data["model"]
    logger.info(json.dumps({"event": "blog.generated", "title": brief.get("title"), "words": words}, ensure_ascii=False))
    return _pretty({"success": True, "blog_markdown": markdown, "blog_html": html, "metadata": metadata})


async def _generate_social_posts(b: "Backends", p: Dict[str, Any]) -> str:
    data = await b.social_writer.generate_posts(p)
    stats = data.get("stats") or {}
    logger.info(json.dumps({
        "event": "social.generated",
        "assets": len(data["assets"]),
        "profiles": stats.get("profiles_processed"),
        "deduped": stats.get("deduped_variants"),
    }))
    return _pretty({
        "success": True,
        "job_id": data.get("job_id"),
        "source_blog_id": data.get("source_blog_id"),
        "assets": data["assets"],
        "stats": data.get("stats"),
        "service": "social-post-writer-service",
    })


async def _trend_headlines(b: "Backends", p: Dict[str, Any]) -> str:
    data = await b.headlines.trending(p.get("focusKeyword"))
    if isinstance(data, dict):
        logger.info(json.dumps({
            "event": "headlines.generated",
            "focusKeyword": data.get("focusKeyword"),
            "headlines": len(data.get("headlines") or []),
            "influencers": len(data.get("influencers") or []),
        }, ensure_ascii=False))
    return _as_text(data)


@dataclass(frozen=True)
class _Binding:
    backend: str  # attribute name on Backends
    run: Callable[["Backends", Dict[str, Any]], Awaitable[str]]


TOOL_HANDLERS: Dict[str, _Binding] = {
    # content generation
    "generate_content": _Binding("content", _generate_content),
    "refine_content": _Binding("content", _refine_content),
    "analyze_content": _Binding("content", _analyze_content),
    # keyword research (content API)
    "keyword_data": _Binding("content", _keyword_data),
    "related_keywords": _Binding("content", _related_keywords),
    "categorize_keywords": _Binding("content", _categorize_keywords),
    "cluster_keywords": _Binding("content", _cluster_keywords),
    # topic & news research (content API)
    "search_news": _Binding("content", _search_news),
    "deep_research_topic": _Binding("content", _deep_research_topic),
    "analyze_viral_potential": _Binding("content", _analyze_viral_potential),
    "trending_questions": _Binding("content", _trending_questions),
    "research_headline": _Binding("content", _research_headline),
    "enhanced_topic_search": _Binding("content", _enhanced_topic_search),
    "website_context": _Binding("content", _website_context),
    # dedicated services
    "enhanced_keyword_research": _Binding("keywords", _enhanced_keyword_research),
    "deep_topic_research": _Binding("research", _deep_topic_research),
    "blog_writer_service": _Binding("blog_writer", _blog_writer_service),
    "generate_social_posts": _Binding("social_writer", _generate_social_posts),
    "trend_headlines": _Binding("headlines", _trend_headlines),
}


# ---------------------------------------------------------------------
# Failure diagnostics
# ---------------------------------------------------------------------
def _suggestion(client: BackendClient, err: BackendError) -> str:
    if err.timed_out:
        return (
            f"The {client.display_name} did not answer within {err.timeout:g} seconds. "
            "The request may be too complex, or the configured timeout may need raising."
        )
    return f"Check that the {client.display_name} is running and reachable at {client.base_url}."


def failure_text(client: BackendClient, err: BackendError) -> str:
    suggestion = _suggestion(client, err)
    if client.service_name == "research_service":
        details = err.detail if err.detail is not None else {}
        return (
            "# Research Service Error\n\n"
            f"**Error:** {err.message}\n\n"
            f"**Status:** {err.status or 'N/A'}\n\n"
            f"**Details:** {_as_text(details)}\n\n"
            f"**Suggestion:** {suggestion} Its AI provider (Gemini or OpenAI) must also be configured."
        )
    body: Dict[str, Any] = {"success": False, "service": client.display_name, "error": err.message}
    if err.status is not None:
        body["status"] = err.status
    if err.detail is not None:
        body["details"] = err.detail
    if err.timed_out:
        body["timedOut"] = True
        body["timeoutSeconds"] = err.timeout
    body["suggestion"] = suggestion
    return _pretty(body)


class ToolDispatcher:
    """Resolves a tools/call against the catalog and runs the bound backend operation"""

    def __init__(self, catalog: ToolCatalog, backends: "Backends", config: Config = cfg):
        self.catalog = catalog
        self.backends = backends
        self.config = config

    def _allowed(self, name: str, agent: Optional[str]) -> bool:
        tool = self.catalog.get(name)
        if not self.config.enforce_agent_acl or tool is None or not tool.allowedAgents or not agent:
            return True
        return agent.strip().lower() in {a.lower() for a in tool.allowedAgents}

    def validate_arguments(self, name: str, arguments: Dict[str, Any]) -> Optional[str]:
        tool = self.catalog.get(name)
        if tool is None:
            return None
        try:
            validate(instance=arguments, schema=tool.inputSchema)
            return None
        except ValidationError as e:
            return e.message

    async def dispatch(self, name: str, arguments: Optional[Dict[str, Any]] = None, agent: Optional[str] = None) -> Dict[str, Any]:
        """Execute tool and return result (tools/call)"""
        arguments = arguments or {}
        if name not in self.catalog:
            logger.info(json.dumps({"event": "tool.unknown", "tool": name}))
            return text_result(f"Unknown tool: {name}", is_error=True)

        if not self._allowed(name, agent):
            logger.info(json.dumps({"event": "tool.denied", "tool": name, "agent": agent}))
            return text_result(f"Tool '{name}' is not available to agent '{agent}'", is_error=True)

        if self.config.strict_validation:
            err = self.validate_arguments(name, arguments)
            if err:
                return text_result(f"Invalid arguments for {name}: {err}", is_error=True)

        binding = TOOL_HANDLERS.get(name)
        if binding is None:
            return text_result(f"No handler bound for tool: {name}", is_error=True)

        client: BackendClient = getattr(self.backends, binding.backend)
        args = apply_defaults(name, arguments)
        t0 = time.time()
        logger.debug(f"tool.call name={name} args_keys={list(args.keys())}")
        try:
            text = await binding.run(self.backends, args)
        except BackendError as e:
            ms = int((time.time() - t0) * 1000)
            logger.warning(json.dumps({
                "event": "tool.failed",
                "tool": name,
                "ms": ms,
                "status": e.status,
                "timedOut": e.timed_out,
                "error": e.message,
            }, ensure_ascii=False))
            return text_result(failure_text(client, e), is_error=True)
        except Exception as e:
            logger.exception("unexpected error on tool %s", name)
            return text_result(f"Tool '{name}' failed: {e}", is_error=True)
        logger.info(json.dumps({"event": "tool.finish", "tool": name, "ms": int((time.time() - t0) * 1000)}))
        return text_result(text)
