"""Apollo.io gateway exposing CRM lookups over MCP (stdio and SSE) and REST."""

__version__ = "1.0.0"
