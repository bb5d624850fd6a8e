"""MCP server exposing Inspektor Gadget gadgets as tools."""

__version__ = "0.1.0"
