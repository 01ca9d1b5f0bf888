import asyncio

import httpx
import pytest

from content_mcp.backends import (
    BackendError,
    BlogWriterClient,
    ContentApiClient,
    ResearchServiceClient,
    SocialPostWriterClient,
)

from conftest import BLOG_WRITER, CONTENT_API, RESEARCH_SERVICE, SOCIAL_WRITER


def content_client(fake, **kwargs) -> ContentApiClient:
    return ContentApiClient(CONTENT_API + "/", 60, transport=fake.transport, **kwargs)


# -----------------------------------------------------------------------------
# Content API
# -----------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_generate_content_posts_json_and_returns_text(fake):
    fake.on(f"{CONTENT_API}/api/mcp/generate", json_body={"success": True, "content": "Draft copy"})
    client = content_client(fake)

    text = await client.generate_content("solar panels", "blog", "casual", "short")

    assert text == "Draft copy"
    req = fake.requests[0]
    assert req.method == "POST"
    assert str(req.url) == f"{CONTENT_API}/api/mcp/generate"
    assert req.headers["content-type"] == "application/json"
    assert fake.body() == {"prompt": "solar panels", "contentType": "blog", "tone": "casual", "length": "short"}


@pytest.mark.asyncio
async def test_generate_content_unsuccessful_payload_is_an_error(fake):
    fake.on(f"{CONTENT_API}/api/mcp/generate", json_body={"success": False, "error": "quota exceeded"})
    with pytest.raises(BackendError, match="Content generation failed: quota exceeded"):
        await content_client(fake).generate_content("x", "blog")


@pytest.mark.asyncio
async def test_error_status_uses_backend_message(fake):
    fake.on(f"{CONTENT_API}/api/research/keywords/data", status=400, json_body={"message": "keywords required"})
    with pytest.raises(BackendError) as exc:
        await content_client(fake).keyword_data([], "US")
    assert exc.value.message == "Keyword data failed: keywords required"
    assert exc.value.status == 400
    assert exc.value.detail == {"message": "keywords required"}
    assert exc.value.timed_out is False


@pytest.mark.asyncio
async def test_error_status_without_message_falls_back_to_status_line(fake):
    fake.on(f"{CONTENT_API}/api/research/news/search", status=502, text="upstream down")
    with pytest.raises(BackendError) as exc:
        await content_client(fake).search_news("ai")
    assert exc.value.message == "News search failed: Request failed with status code 502 (Bad Gateway)"
    assert exc.value.detail == "upstream down"


@pytest.mark.asyncio
async def test_deep_research_topic_omits_missing_snippet(fake):
    fake.on(f"{CONTENT_API}/api/research/topic/deep-research", json_body={"research": "notes"})
    await content_client(fake).deep_research_topic("Title", "https://example.com/a")
    assert fake.body() == {"title": "Title", "link": "https://example.com/a"}


@pytest.mark.asyncio
async def test_health_check(fake):
    fake.on(f"{CONTENT_API}/api/mcp/health", json_body={"status": "healthy"})
    assert await content_client(fake).health_check() is True
    assert fake.requests[0].method == "GET"

    fake.on(f"{CONTENT_API}/api/mcp/health", status=500, json_body={"status": "down"})
    assert await content_client(fake).health_check() is False


@pytest.mark.asyncio
async def test_health_check_never_raises_on_connection_failure(fake):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    fake.on(f"{CONTENT_API}/api/mcp/health", handler=refuse)
    assert await content_client(fake).health_check() is False


@pytest.mark.asyncio
async def test_transport_failure_becomes_backend_error(fake):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    fake.on(f"{CONTENT_API}/api/research/keywords/cluster", handler=refuse)
    with pytest.raises(BackendError) as exc:
        await content_client(fake).cluster_keywords(["a", "b"])
    assert exc.value.message == "Keyword clustering failed: connection refused"
    assert exc.value.status is None


@pytest.mark.asyncio
async def test_malformed_base_url_becomes_backend_error(fake):
    client = ContentApiClient(CONTENT_API + ":notaport", 60, transport=fake.transport)

    assert await client.health_check() is False
    with pytest.raises(BackendError, match="Invalid Content API URL"):
        await client.search_news("solar")
    assert fake.requests == []


# -----------------------------------------------------------------------------
# Timeouts
# -----------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_slow_backend_times_out_at_client_limit(fake):
    async def stall(request):
        await asyncio.sleep(5)
        return httpx.Response(200, json={"success": True, "content": "late"})

    fake.on(f"{CONTENT_API}/api/mcp/generate", handler=stall)
    client = ContentApiClient(CONTENT_API, 0.05, transport=fake.transport)

    loop = asyncio.get_running_loop()
    started = loop.time()
    with pytest.raises(BackendError) as exc:
        await client.generate_content("x", "blog")
    elapsed = loop.time() - started

    assert 0.04 <= elapsed < 1.0
    assert exc.value.timed_out is True
    assert exc.value.timeout == pytest.approx(0.05)
    assert "did not respond within 0.05 seconds" in exc.value.message


# -----------------------------------------------------------------------------
# Dedicated services
# -----------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_research_service_accepts_plain_markdown(fake):
    fake.on(f"{RESEARCH_SERVICE}/api/research/deep", text="# Research Brief\n\nFindings")
    client = ResearchServiceClient(RESEARCH_SERVICE, 120, transport=fake.transport)
    assert await client.deep_research("solar", "Why solar") == "# Research Brief\n\nFindings"
    assert fake.body() == {"keyword": "solar", "headline": "Why solar"}


@pytest.mark.asyncio
async def test_research_service_accepts_wrapped_markdown(fake):
    fake.on(f"{RESEARCH_SERVICE}/api/research/deep", json_body={"research": "# Brief"})
    client = ResearchServiceClient(RESEARCH_SERVICE, 120, transport=fake.transport)
    assert await client.deep_research("solar", "Why solar") == "# Brief"


@pytest.mark.asyncio
async def test_research_service_rejects_payload_without_document(fake):
    fake.on(f"{RESEARCH_SERVICE}/api/research/deep", json_body={"status": "ok"})
    client = ResearchServiceClient(RESEARCH_SERVICE, 120, transport=fake.transport)
    with pytest.raises(BackendError, match="no Markdown document"):
        await client.deep_research("solar", "Why solar")


@pytest.mark.asyncio
async def test_blog_writer_status_error_names_the_service(fake):
    fake.on(f"{BLOG_WRITER}/api/blog/generate", status=500, json_body={"error": "model overloaded"})
    client = BlogWriterClient(BLOG_WRITER, 180, transport=fake.transport)
    with pytest.raises(BackendError) as exc:
        await client.generate_blog({"content_brief": {}, "client_profile": {}})
    assert exc.value.message == "Blog Writer Service error (500): model overloaded"
    assert exc.value.status == 500


@pytest.mark.asyncio
async def test_blog_writer_empty_markdown_is_an_error(fake):
    fake.on(f"{BLOG_WRITER}/api/blog/generate", json_body={"blog_markdown": ""})
    client = BlogWriterClient(BLOG_WRITER, 180, transport=fake.transport)
    with pytest.raises(BackendError, match="returned empty content"):
        await client.generate_blog({})


@pytest.mark.asyncio
async def test_social_writer_without_assets_is_an_error(fake):
    fake.on(f"{SOCIAL_WRITER}/api/social/generate", json_body={"job_id": "j1", "assets": []})
    client = SocialPostWriterClient(SOCIAL_WRITER, 120, transport=fake.transport)
    with pytest.raises(BackendError, match="returned no posts"):
        await client.generate_posts({"source": {"title": "t"}, "profiles": []})
