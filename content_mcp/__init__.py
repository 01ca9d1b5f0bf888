"""MCP gateway exposing content, research and writing backends as tools."""

__version__ = "0.2.0"
