import json
import inspect
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from content_mcp.catalog import ToolCatalog
from content_mcp.config import Config
from content_mcp.container import build_dispatcher
from content_mcp.protocol import ProtocolServer
from content_mcp.tools import ToolDispatcher

CONTENT_API = "http://content-api.test"
KEYWORD_SERVICE = "http://keyword-service.test"
RESEARCH_SERVICE = "http://research-service.test"
BLOG_WRITER = "http://blog-writer.test"
SOCIAL_WRITER = "http://social-writer.test"
HEADLINE_SERVICE = "http://headline-service.test"


def make_config(**overrides: Any) -> Config:
    values: Dict[str, Any] = dict(
        content_api_url=CONTENT_API,
        keyword_service_url=KEYWORD_SERVICE,
        research_service_url=RESEARCH_SERVICE,
        blog_writer_service_url=BLOG_WRITER,
        social_post_writer_service_url=SOCIAL_WRITER,
        headline_service_url=HEADLINE_SERVICE,
        allow_origins=[],
        strict_validation=False,
        enforce_agent_acl=False,
        default_agent=None,
    )
    values.update(overrides)
    return Config(**values)


class FakeBackends:
    """Routes requests by full URL to canned responses or async handlers"""

    def __init__(self) -> None:
        self.routes: Dict[str, Callable[[httpx.Request], Any]] = {}
        self.requests: List[httpx.Request] = []

    def on(
        self,
        url: str,
        *,
        status: int = 200,
        json_body: Any = None,
        text: Optional[str] = None,
        handler: Optional[Callable[[httpx.Request], Any]] = None,
    ) -> None:
        if handler is None:
            def handler(request: httpx.Request) -> httpx.Response:
                if text is not None:
                    return httpx.Response(status, text=text)
                return httpx.Response(status, json=json_body)
        self.routes[url] = handler

    def body(self, index: int = -1) -> Dict[str, Any]:
        return json.loads(self.requests[index].content)

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get(str(request.url))
        if handler is None:
            return httpx.Response(404, json={"message": f"no route for {request.url}"})
        resp = handler(request)
        if inspect.isawaitable(resp):
            resp = await resp
        return resp

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture(scope="session")
def catalog() -> ToolCatalog:
    return ToolCatalog.from_dir(make_config().tool_schema_dir)


@pytest.fixture
def fake() -> FakeBackends:
    return FakeBackends()


@pytest.fixture
def make_dispatcher(catalog: ToolCatalog, fake: FakeBackends) -> Callable[..., ToolDispatcher]:
    def _make(**overrides: Any) -> ToolDispatcher:
        return build_dispatcher(make_config(**overrides), catalog=catalog, transport=fake.transport)
    return _make


@pytest.fixture
def dispatcher(make_dispatcher: Callable[..., ToolDispatcher]) -> ToolDispatcher:
    return make_dispatcher()


@pytest.fixture
def server(catalog: ToolCatalog, dispatcher: ToolDispatcher) -> ProtocolServer:
    return ProtocolServer(catalog, dispatcher, dispatcher.config)


def result_text(result: Dict[str, Any]) -> str:
    assert len(result["content"]) == 1
    assert result["content"][0]["type"] == "text"
    return result["content"][0]["text"]
