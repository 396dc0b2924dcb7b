"""
server.py — YouTube Analytics MCP Server
All MCP protocol logic, tool/prompt registration, and schema definitions live here.
"""

import json
import logging
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import (
    Tool,
    Prompt,
    PromptArgument,
    PromptMessage,
    TextContent,
    CallToolResult,
    GetPromptResult,
)
import youtube_tool
from youtube_tool import ChannelFetchError, ChannelNotFoundError, ConfigurationError

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("youtube-mcp")

# ---------------------------------------------------------------------------
# Server instance
# ---------------------------------------------------------------------------

app = Server("youtube-analytics-mcp")

# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------

_CHANNEL_PROPERTY = {
    "type": "string",
    "description": (
        "Channel to look up: a display name (e.g. Veritasium) "
        "or an @handle (e.g. @MrBeast)."
    ),
}

TOOLS: list[Tool] = [

    Tool(
        name="analyze_channel",
        description=(
            "Fetches comprehensive data about a YouTube channel: subscribers, total videos and views, "
            "creation date, country, genre, the 10 latest and 5 most viewed videos, upload frequency, "
            "average views per video, engagement rate of recent videos, common tags and average video length."
        ),
        inputSchema={
            "type": "object",
            "properties": {"channel": _CHANNEL_PROPERTY},
            "required": ["channel"],
        },
    ),

    Tool(
        name="get_channel_info",
        description=(
            "Fetches YouTube channel details like summary, genre, subscribers, and videos. "
            "A compact version of analyze_channel: latest videos with views and tags, plus the top video."
        ),
        inputSchema={
            "type": "object",
            "properties": {"channel": _CHANNEL_PROPERTY},
            "required": ["channel"],
        },
    ),
]

# ---------------------------------------------------------------------------
# Prompt definitions
# ---------------------------------------------------------------------------

ANALYST_INSTRUCTIONS = """You are an advanced YouTube analytics expert with comprehensive knowledge of YouTube channels, content strategy, and engagement metrics.

## Core capabilities with analyze_channel
- Channel stats: subscribers, total videos, views, creation date
- Upload frequency patterns and consistency
- Channel genre and content categorization
- Engagement rate and average views per video
- Top performing and most recent videos
- Video tags, descriptions, and average video length

## Response guidelines
### Channel handles & discovery
- Accept @handle formats (e.g. @MrBeast) as well as display names
- If a channel isn't found, suggest checking the spelling or trying the name without the @
- Suggest alternative spellings or similar channels

### Data presentation
- Use tables for comparative data and metrics
- Present numbers in human-readable formats (1.2M instead of 1200000)
- Include relevant percentages
- Structure insights with clear headers and bullet points

### Interpreting the data
- Engagement rate is computed from the 10 latest videos only
- Average views per video uses lifetime channel totals
- Upload dates that YouTube returns in an unreadable format are left out, so recent upload dates can list fewer entries than the latest videos
- For comparisons, call analyze_channel once per channel and present the metrics side by side
- For revenue estimates, base them on view counts and state the CPM assumption

Always include subscriber count, upload frequency, top videos, and genre when describing a channel.
"""

PROMPTS: list[Prompt] = [
    Prompt(
        name="youtube_analyst",
        description="System instructions for a YouTube analytics assistant backed by analyze_channel.",
        arguments=[
            PromptArgument(
                name="channel",
                description="Optional channel name or @handle to focus the conversation on.",
                required=False,
            )
        ],
    ),
]

# ---------------------------------------------------------------------------
# MCP handlers
# ---------------------------------------------------------------------------

@app.list_tools()
async def list_tools() -> list[Tool]:
    """Expose all registered tools to the MCP client."""
    return TOOLS


@app.list_prompts()
async def list_prompts() -> list[Prompt]:
    return PROMPTS


@app.get_prompt()
async def get_prompt(name: str, arguments: dict | None) -> GetPromptResult:
    """Render the analyst instructions, optionally focused on one channel."""
    if name != "youtube_analyst":
        raise ValueError(f"Unknown prompt: '{name}'")

    text = ANALYST_INSTRUCTIONS
    channel = (arguments or {}).get("channel")
    if channel:
        text += f"\nStart by analyzing the channel: {channel}\n"

    return GetPromptResult(
        description=PROMPTS[0].description,
        messages=[PromptMessage(role="user", content=TextContent(type="text", text=text))],
    )


def _error_result(payload: dict) -> CallToolResult:
    return CallToolResult(
        content=[TextContent(type="text", text=json.dumps(payload, ensure_ascii=False))],
        isError=True,
    )


@app.call_tool()
async def call_tool(name: str, arguments: dict) -> CallToolResult:
    """
    Route incoming tool calls to the correct function in youtube_tool.py.
    Returns normalized JSON. All errors surfaced cleanly without crashing.
    """
    logger.info(f"Tool called: {name} | Arguments: {arguments}")

    try:
        result = _dispatch(name, arguments or {})
        return CallToolResult(
            content=[TextContent(type="text", text=json.dumps(result, ensure_ascii=False, indent=2))],
            isError=False,
        )
    except ChannelNotFoundError as e:
        logger.warning(f"Channel not found in tool '{name}': {e.query}")
        return _error_result({
            "error": str(e),
            "hint": "Check the spelling of the channel name, or try the handle without the @ symbol.",
        })
    except ChannelFetchError as e:
        logger.error(f"Fetch failed in tool '{name}' for '{e.query}': {e}")
        return _error_result({
            "error": str(e),
            "hint": "The YouTube Data API request failed. Try again shortly.",
        })
    except ConfigurationError as e:
        logger.error(f"Configuration error in tool '{name}': {e}")
        return _error_result({"error": str(e)})
    except ValueError as e:
        logger.warning(f"ValueError in tool '{name}': {e}")
        return _error_result({"error": str(e)})
    except Exception as e:
        logger.error(f"Unexpected error in tool '{name}': {e}", exc_info=True)
        return _error_result({"error": f"Internal server error: {str(e)}"})


def _channel_arg(args: dict) -> str:
    channel = args.get("channel")
    if not isinstance(channel, str) or not channel.strip():
        raise ValueError("'channel' must be a non-empty string.")
    return channel


def _dispatch(name: str, args: dict):
    """
    Pure dispatch table — maps tool names to youtube_tool.py functions.
    No business logic here.
    """
    match name:

        case "analyze_channel":
            return youtube_tool.analyze_channel(channel=_channel_arg(args))

        case "get_channel_info":
            return youtube_tool.get_channel_info(channel=_channel_arg(args))

        case _:
            raise ValueError(f"Unknown tool: '{name}'")


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------

async def run():
    """Start the MCP server over stdio."""
    logger.info(f"Starting youtube-analytics-mcp server ({len(TOOLS)} tools)...")
    async with stdio_server() as (read_stream, write_stream):
        await app.run(
            read_stream,
            write_stream,
            app.create_initialization_options(),
        )


def main():
    """Console entrypoint. A missing API key is fatal before the server starts."""
    import asyncio

    try:
        youtube_tool.require_api_key()
    except ConfigurationError as e:
        logger.error(str(e))
        raise SystemExit(1) from e

    asyncio.run(run())


if __name__ == "__main__":
    main()
