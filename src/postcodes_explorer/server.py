"""Postcodes Explorer MCP Server - Exposes postcodes.io lookups to AI assistants.

Every action of the explorer is published as one MCP tool:
- Postcode lookup, validation, search, autocomplete and nearest
- Bulk lookup and bulk reverse geocoding
- Reverse geocoding to postcodes and outcodes
- Outcode, place, terminated and Scottish postcode lookups

Tool results are the rendered result cards as HTML.

Based on: https://github.com/modelcontextprotocol/python-sdk
"""

import asyncio
import logging
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent

from postcodes_explorer.actions import ACTIONS, Action, run_action
from postcodes_explorer.clients.postcodes import PostcodesClient
from postcodes_explorer.results import ResultsArea

logger = logging.getLogger(__name__)

FIELD_DESCRIPTIONS = {
    "postcode": "UK postcode, partial postcode, search text, or outcode filter (e.g., 'SW1A 1AA')",
    "bulk_postcodes": "Postcodes separated by newlines or commas (max 100)",
    "latitude": "Latitude in decimal degrees (e.g., '51.501')",
    "longitude": "Longitude in decimal degrees (e.g., '-0.141')",
    "bulk_geolocations": 'JSON array of {"latitude": ..., "longitude": ...} objects',
    "outcode": "Outcode / postcode district (e.g., 'SW1A')",
    "place_code": "Place code (e.g., 'osgb4000000074564391')",
    "place_query": "Place name search text",
    "terminated_postcode": "A postcode that is no longer in use",
    "scottish_postcode": "A Scottish postcode",
}

# Initialize MCP server
app = Server("postcodes-explorer")

# Initialize API client (will be created on first use)
_postcodes: PostcodesClient | None = None


def get_postcodes() -> PostcodesClient:
    """Get or create the PostcodesClient instance."""
    global _postcodes
    if _postcodes is None:
        _postcodes = PostcodesClient()
    return _postcodes


def _tool_for(action: Action) -> Tool:
    return Tool(
        name=action.name,
        description=action.description,
        inputSchema={
            "type": "object",
            "properties": {
                field: {"type": "string", "description": FIELD_DESCRIPTIONS[field]}
                for field in action.fields
            },
            "required": list(action.required),
        },
    )


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List one tool per explorer action."""
    return [_tool_for(action) for action in ACTIONS.values()]


async def _handle_action(action: Action, arguments: dict[str, Any]) -> list[TextContent]:
    results = ResultsArea()
    ran = await run_action(action, arguments, get_postcodes(), results)
    if not ran:
        required = ", ".join(action.required)
        return [TextContent(type="text", text=f"No results: {required} is required.")]
    return [TextContent(type="text", text=results.to_html())]


@app.call_tool()
async def call_tool(name: str, arguments: Any) -> list[TextContent]:
    """Handle tool calls from the MCP client."""
    try:
        action = ACTIONS.get(name)
        if action is None:
            raise ValueError(f"Unknown tool: {name}")
        return await _handle_action(action, arguments or {})

    except Exception as e:
        logger.exception("Tool %s failed", name)
        error_msg = f"Error calling {name}: {str(e)}"
        return [TextContent(type="text", text=error_msg)]


async def main():
    """Run the MCP server using stdio transport."""
    async with stdio_server() as (read_stream, write_stream):
        await app.run(
            read_stream,
            write_stream,
            app.create_initialization_options(),
        )


def run():
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())


if __name__ == "__main__":
    run()
