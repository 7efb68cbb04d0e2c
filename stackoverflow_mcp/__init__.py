"""Stack Overflow MCP server: search and carefully gated writes over MCP."""

__version__ = "0.1.0"
