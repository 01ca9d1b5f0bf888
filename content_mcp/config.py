import os
from dataclasses import dataclass, field
from typing import List, Optional
from dotenv import load_dotenv

# Load .env if present (host/dev convenience; deployments inject env directly)
load_dotenv()


def _get_env_bool(key: str, default: bool = False) -> bool:
    val = os.getenv(key)
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "yes", "on"}


def _get_env_list(key: str, default: List[str] | None = None) -> List[str]:
    raw = os.getenv(key)
    if raw is None:
        return default or []
    parts = [p.strip() for p in raw.split(",")]
    return [p for p in parts if p]


def _get_env_float(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    return float(raw)


@dataclass
class Config:
    # server
    server_name: str = os.getenv("SERVER_NAME", "content-tool-mcp")
    server_version: str = os.getenv("SERVER_VERSION", "0.2.0")
    protocol_version: str = os.getenv("MCP_PROTOCOL_VERSION", "2024-11-05")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "3002"))

    # cors
    allow_origins: List[str] = field(default_factory=lambda: _get_env_list("ALLOW_ORIGINS", []))

    # tool schema dir
    tool_schema_dir: str = os.getenv("TOOL_SCHEMA_DIR") or os.path.join(os.path.dirname(__file__), "tool_schemas")

    # backends (base URLs)
    content_api_url: str = os.getenv("CONTENT_API_URL", "http://localhost:3001")
    keyword_service_url: str = os.getenv("KEYWORD_SERVICE_URL", "http://keyword-service.railway.internal:3000")
    research_service_url: str = os.getenv("RESEARCH_SERVICE_URL", "http://deep-dive-research-service.railway.internal:3003")
    blog_writer_service_url: str = os.getenv("BLOG_WRITER_SERVICE", "http://localhost:3002")
    social_post_writer_service_url: str = os.getenv("SOCIAL_POST_WRITER_SERVICE", "http://localhost:3004")
    headline_service_url: str = os.getenv("HEADLINE_SERVICE_URL", "http://headline-trend-service.railway.internal:3005")

    # backends (timeouts, seconds)
    content_api_timeout: float = _get_env_float("CONTENT_API_TIMEOUT_SEC", 60.0)
    health_timeout: float = _get_env_float("HEALTH_TIMEOUT_SEC", 5.0)
    keyword_service_timeout: float = _get_env_float("KEYWORD_SERVICE_TIMEOUT_SEC", 15.0)
    research_service_timeout: float = _get_env_float("RESEARCH_SERVICE_TIMEOUT_SEC", 120.0)
    blog_writer_timeout: float = _get_env_float("BLOG_WRITER_TIMEOUT_SEC", 180.0)
    social_post_writer_timeout: float = _get_env_float("SOCIAL_POST_WRITER_TIMEOUT_SEC", 120.0)
    headline_service_timeout: float = _get_env_float("HEADLINE_SERVICE_TIMEOUT_SEC", 30.0)

    # features
    strict_validation: bool = _get_env_bool("STRICT_VALIDATION", False)
    enforce_agent_acl: bool = _get_env_bool("ENFORCE_AGENT_ACL", False)
    default_agent: Optional[str] = os.getenv("MCP_AGENT") or None
    sse_keepalive_sec: float = _get_env_float("SSE_KEEPALIVE_SEC", 15.0)
    sse_queue_max: int = int(os.getenv("SSE_QUEUE_MAX", "100"))


cfg = Config()
