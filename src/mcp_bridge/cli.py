"""Interactive command line front-end: one query per line until ``quit``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Callable, Optional, Sequence

from mcp_bridge import __version__
from mcp_bridge.client import MCPClient
from mcp_bridge.config import ClientSettings
from mcp_bridge.errors import MCPBridgeError
from mcp_bridge.providers import Provider

logger = logging.getLogger(__name__)

EXIT_KEYWORDS = frozenset({"quit", "exit"})


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mcp-bridge",
        description="Chat with an LLM that can call the tools of an MCP server",
    )
    parser.add_argument(
        "server",
        help="Path to the server script (.py or .js) or an http(s) SSE URL",
    )
    parser.add_argument(
        "--provider",
        choices=[p.value for p in Provider],
        default=None,
        help="Model provider (default: anthropic, can be set via MCP_BRIDGE_PROVIDER)",
    )
    parser.add_argument(
        "--model",
        default=None,
        help="Model identifier (can be set via MCP_BRIDGE_MODEL)",
    )
    parser.add_argument(
        "--max-tokens",
        type=int,
        default=None,
        help="Maximum output tokens per model call (default: 1000)",
    )
    parser.add_argument(
        "--max-tool-rounds",
        type=int,
        default=None,
        help="Give up after this many consecutive tool rounds (default: 10)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=None,
        help="Enable debug logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"mcp-bridge {__version__}",
    )
    return parser


async def chat_loop(
    client: MCPClient,
    *,
    read_line: Optional[Callable[[str], str]] = None,
    write: Callable[[str], None] = print,
) -> None:
    """Read queries until an exit keyword or end of input; print each answer."""
    read_line = read_line or input

    write("\nMCP Client Started!")
    write("Type your queries or 'quit' to exit.")

    while True:
        try:
            line = await asyncio.to_thread(read_line, "\nQuery: ")
        except (EOFError, KeyboardInterrupt):
            break

        query = line.strip()
        if query.lower() in EXIT_KEYWORDS:
            break
        if not query:
            continue

        try:
            answer = await client.process_query(query)
        except MCPBridgeError as exc:
            write(f"\nError: {exc}")
            continue
        except Exception as exc:
            logger.exception("Query failed")
            write(f"\nError: {exc.__class__.__name__}: {exc}")
            continue
        write("\n" + answer)


async def run(args: argparse.Namespace) -> int:
    settings = ClientSettings.from_env(
        provider=args.provider,
        model=args.model,
        max_output_tokens=args.max_tokens,
        max_tool_rounds=args.max_tool_rounds,
        debug_logging=args.debug,
    )
    logging.basicConfig(
        level=logging.DEBUG if settings.debug_logging else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        client = MCPClient(settings=settings)
    except MCPBridgeError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    try:
        await client.connect_to_server(args.server)
        names = ", ".join(tool.name for tool in client.get_tools()) or "none"
        print(f"Connected to server with tools: {names}")
        await chat_loop(client)
    except MCPBridgeError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        await client.cleanup()
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for the ``mcp-bridge`` console script."""
    args = build_parser().parse_args(argv)
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        return 130
