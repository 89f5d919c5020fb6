"""Entrypoint for running the Coralogix MCP server (stdio).

Usage:
  python run_mcp_server.py
  python run_mcp_server.py --transport streamable-http --port 8765

Or via MCP host config (e.g., Claude Desktop) pointing to this script.
"""
from mcp_tools_coralogix.mcp.server import main

if __name__ == "__main__":
    main()
