"""
Very small composition root (DI container) that wires backend clients,
catalog and dispatcher based on environment-driven config.
"""
from dataclasses import dataclass
from typing import Optional

import httpx

from content_mcp.backends import (
    BlogWriterClient,
    ContentApiClient,
    HeadlineServiceClient,
    KeywordServiceClient,
    ResearchServiceClient,
    SocialPostWriterClient,
)
from content_mcp.catalog import ToolCatalog
from content_mcp.config import Config, cfg
from content_mcp.tools import ToolDispatcher


@dataclass
class Backends:
    content: ContentApiClient
    keywords: KeywordServiceClient
    research: ResearchServiceClient
    blog_writer: BlogWriterClient
    social_writer: SocialPostWriterClient
    headlines: HeadlineServiceClient


def build_backends(config: Config = cfg, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> Backends:
    return Backends(
        content=ContentApiClient(
            config.content_api_url,
            config.content_api_timeout,
            health_timeout=config.health_timeout,
            transport=transport,
        ),
        keywords=KeywordServiceClient(config.keyword_service_url, config.keyword_service_timeout, transport=transport),
        research=ResearchServiceClient(config.research_service_url, config.research_service_timeout, transport=transport),
        blog_writer=BlogWriterClient(config.blog_writer_service_url, config.blog_writer_timeout, transport=transport),
        social_writer=SocialPostWriterClient(
            config.social_post_writer_service_url,
            config.social_post_writer_timeout,
            transport=transport,
        ),
        headlines=HeadlineServiceClient(config.headline_service_url, config.headline_service_timeout, transport=transport),
    )


def build_dispatcher(
    config: Config = cfg,
    *,
    catalog: Optional[ToolCatalog] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ToolDispatcher:
    if catalog is None:
        catalog = ToolCatalog.from_dir(config.tool_schema_dir)
    return ToolDispatcher(catalog, build_backends(config, transport=transport), config)
