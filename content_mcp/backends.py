# backends.py
# - HTTP adapters for the backend services behind the MCP tools
# - One client per backend family; one attempt per call, bounded by the client timeout
# - Every failure surfaces as BackendError (transport, non-2xx, timeout, malformed payload)

import json
import asyncio
import logging
from typing import Dict, Any, Optional, List

import httpx

logger = logging.getLogger("backends")


def _headers() -> Dict[str, str]:
    """Return headers for a backend call"""
    return {"Content-Type": "application/json", "Accept": "application/json, text/plain, */*"}


class BackendError(Exception):
    """Backend call failure wrapper"""
    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        detail: Any = None,
        timed_out: bool = False,
        timeout: Optional[float] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.detail = detail
        self.timed_out = timed_out
        self.timeout = timeout

    def prefixed(self, label: str) -> "BackendError":
        return BackendError(
            f"{label} failed: {self.message}",
            status=self.status,
            detail=self.detail,
            timed_out=self.timed_out,
            timeout=self.timeout,
        )


def _parse_body(r: httpx.Response) -> Any:
    if not r.content:
        return None
    ctype = r.headers.get("content-type", "")
    if "json" in ctype:
        try:
            return r.json()
        except ValueError:
            return r.text
    # some services answer JSON without a content type
    try:
        return json.loads(r.text)
    except ValueError:
        return r.text


def _error_message(r: httpx.Response, body: Any) -> str:
    if isinstance(body, dict):
        msg = body.get("message") or body.get("error")
        if isinstance(msg, str) and msg:
            return msg
    return f"Request failed with status code {r.status_code}" + (f" ({r.reason_phrase})" if r.reason_phrase else "")


class BackendClient:
    """Base HTTP client: base URL + fixed path, JSON in, JSON or text out"""

    service_name = "backend"
    display_name = "Backend service"

    def __init__(self, base_url: str, timeout: float, *, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = float(timeout)
        self._transport = transport

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def _request(self, method: str, path: str, *, body: Optional[Dict[str, Any]] = None, timeout: Optional[float] = None) -> Any:
        """Single attempt; the whole exchange is bounded by `timeout` seconds"""
        limit = float(timeout or self.timeout)
        url = self.url(path)
        logger.debug(json.dumps({"event": "backend.request", "service": self.service_name, "method": method, "url": url}))
        try:
            async with httpx.AsyncClient(timeout=limit, transport=self._transport) as client:
                r = await asyncio.wait_for(
                    client.request(method, url, headers=_headers(), json=body),
                    timeout=limit,
                )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning(json.dumps({"event": "backend.timeout", "service": self.service_name, "url": url, "timeout": limit}))
            raise BackendError(
                f"{self.display_name} did not respond within {limit:g} seconds",
                timed_out=True,
                timeout=limit,
            )
        except httpx.InvalidURL as e:
            logger.warning(json.dumps({"event": "backend.bad_url", "service": self.service_name, "url": url, "error": str(e)}))
            raise BackendError(f"Invalid {self.display_name} URL {url!r}: {e}")
        except httpx.HTTPError as e:
            logger.warning(json.dumps({"event": "backend.unreachable", "service": self.service_name, "url": url, "error": str(e)}))
            raise BackendError(str(e) or e.__class__.__name__)

        body_out = _parse_body(r)
        if r.status_code >= 400:
            logger.warning(json.dumps({"event": "backend.error", "service": self.service_name, "url": url, "status": r.status_code}))
            raise BackendError(_error_message(r, body_out), status=r.status_code, detail=body_out)
        return body_out

    async def _post(self, path: str, body: Dict[str, Any], *, timeout: Optional[float] = None) -> Any:
        return await self._request("POST", path, body=body, timeout=timeout)

    async def _get(self, path: str, *, timeout: Optional[float] = None) -> Any:
        return await self._request("GET", path, timeout=timeout)


def _require_dict(data: Any, what: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise BackendError(f"{what}: unexpected response payload", detail=data)
    return data


# -----------------------------
# Content API (generation + research endpoints)
# -----------------------------
class ContentApiClient(BackendClient):
    service_name = "content_api"
    display_name = "Content API"

    def __init__(self, base_url: str, timeout: float = 60.0, *, health_timeout: float = 5.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(base_url, timeout, transport=transport)
        self.health_timeout = float(health_timeout)

    async def _call(self, label: str, path: str, body: Dict[str, Any]) -> Any:
        try:
            return await self._post(path, body)
        except BackendError as e:
            raise e.prefixed(label)

    async def generate_content(self, prompt: str, content_type: str, tone: str = "professional", length: str = "medium") -> str:
        data = await self._call("Content generation", "/api/mcp/generate", {
            "prompt": prompt,
            "contentType": content_type,
            "tone": tone,
            "length": length,
        })
        data = _require_dict(data, "Content generation failed")
        if not data.get("success") or not data.get("content"):
            raise BackendError(f"Content generation failed: {data.get('error') or 'Failed to generate content'}", detail=data)
        return data["content"]

    async def refine_content(self, content: str, instructions: str) -> str:
        data = await self._call("Content refinement", "/api/mcp/refine", {"content": content, "instructions": instructions})
        data = _require_dict(data, "Content refinement failed")
        if not data.get("success") or not data.get("refined"):
            raise BackendError(f"Content refinement failed: {data.get('error') or 'Failed to refine content'}", detail=data)
        return data["refined"]

    async def analyze_content(self, content: str) -> Dict[str, Any]:
        data = await self._call("Content analysis", "/api/mcp/analyze", {"content": content})
        data = _require_dict(data, "Content analysis failed")
        if not data.get("success") or not data.get("analysis"):
            raise BackendError(f"Content analysis failed: {data.get('error') or 'Failed to analyze content'}", detail=data)
        return data["analysis"]

    async def health_check(self) -> bool:
        try:
            data = await self._get("/api/mcp/health", timeout=self.health_timeout)
        except BackendError:
            return False
        return isinstance(data, dict) and data.get("status") == "healthy"

    # keyword research

    async def keyword_data(self, keywords: List[str], country: str = "US") -> Any:
        return await self._call("Keyword data", "/api/research/keywords/data", {"keywords": keywords, "country": country})

    async def related_keywords(self, keyword: str, country: str = "US", limit: int = 100) -> Any:
        return await self._call("Related keywords", "/api/research/keywords/related", {
            "keyword": keyword,
            "country": country,
            "limit": limit,
        })

    async def categorize_keywords(self, keywords: List[str]) -> Any:
        return await self._call("Keyword categorization", "/api/research/keywords/categorize", {"keywords": keywords})

    async def cluster_keywords(self, keywords: List[str]) -> Any:
        return await self._call("Keyword clustering", "/api/research/keywords/cluster", {"keywords": keywords})

    # topic & news research

    async def search_news(self, query: str) -> Any:
        return await self._call("News search", "/api/research/news/search", {"query": query})

    async def deep_research_topic(self, title: str, link: str, snippet: Optional[str] = None) -> Any:
        body: Dict[str, Any] = {"title": title, "link": link}
        if snippet is not None:
            body["snippet"] = snippet
        return await self._call("Deep research", "/api/research/topic/deep-research", body)

    async def analyze_viral_potential(self, article: Dict[str, Any]) -> Any:
        return await self._call("Viral analysis", "/api/research/article/viral-analysis", {"article": article})

    async def trending_questions(self, topic: str) -> Any:
        return await self._call("Trending questions", "/api/research/topic/trending-questions", {"topic": topic})

    async def research_headline(self, headline: str) -> Any:
        return await self._call("Headline research", "/api/research/headline/research", {"headline": headline})

    async def enhanced_topic_search(self, query: str) -> Any:
        return await self._call("Enhanced topic search", "/api/research/topic/enhanced-search", {"query": query})

    async def website_context(self, urls: List[str]) -> Any:
        return await self._call("Website context", "/api/research/website/context", {"urls": urls})


# -----------------------------
# Dedicated services
# -----------------------------
class KeywordServiceClient(BackendClient):
    service_name = "keyword_service"
    display_name = "Keyword service"

    async def enhanced_research(self, payload: Dict[str, Any]) -> Any:
        """Forward the request untouched; the service owns topic/topics validation"""
        return await self._post("/api/research/enhanced", payload)


class ResearchServiceClient(BackendClient):
    service_name = "research_service"
    display_name = "Deep research service"

    async def deep_research(self, keyword: Any, headline: Any) -> str:
        """Returns the Markdown research document"""
        data = await self._post("/api/research/deep", {"keyword": keyword, "headline": headline})
        if isinstance(data, str):
            if not data.strip():
                raise BackendError("Research service returned an empty document")
            return data
        if isinstance(data, dict) and isinstance(data.get("research"), str) and data["research"].strip():
            return data["research"]
        raise BackendError("Research service returned no Markdown document", detail=data)


class BlogWriterClient(BackendClient):
    service_name = "blog_writer"
    display_name = "Blog Writer Service"

    async def generate_blog(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            data = await self._post("/api/blog/generate", payload)
        except BackendError as e:
            if e.status is not None:
                raise BackendError(
                    f"Blog Writer Service error ({e.status}): {e.message}",
                    status=e.status,
                    detail=e.detail,
                )
            raise
        if not isinstance(data, dict) or not data.get("blog_markdown"):
            raise BackendError("Blog Writer Service returned empty content", detail=data)
        return data


class SocialPostWriterClient(BackendClient):
    service_name = "social_post_writer"
    display_name = "Social Post Writer Service"

    async def generate_posts(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            data = await self._post("/api/social/generate", payload)
        except BackendError as e:
            if e.status is not None:
                raise BackendError(
                    f"Social Post Writer Service error ({e.status}): {e.message}",
                    status=e.status,
                    detail=e.detail,
                )
            raise
        if not isinstance(data, dict) or not data.get("assets"):
            raise BackendError("Social Post Writer Service returned no posts", detail=data)
        return data


class HeadlineServiceClient(BackendClient):
    service_name = "headline_service"
    display_name = "Headline service"

    async def trending(self, focus_keyword: Any) -> Any:
        return await self._post("/api/research/trending", {"focusKeyword": focus_keyword})
