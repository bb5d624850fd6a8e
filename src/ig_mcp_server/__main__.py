"""Allow ``python -m ig_mcp_server``."""

from ig_mcp_server.cli import app

app(prog_name="ig-mcp-server")
