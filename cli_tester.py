#!/usr/bin/env python3
"""Command-line test client for the Xcode Cloud MCP server.

Launches the server as a subprocess over stdio (or connects to a running
streamable-http server with --url), calls one tool and prints the result.
The server reads the App Store Connect credentials from the environment or a
`.env` file, exactly as it does when started by an MCP host.

    python cli_tester.py list_products
    python cli_tester.py list_workflows --args '{"productId": "abc123"}'
    python cli_tester.py get_build_run --args '{"buildRunId": "xcode-cloud://build-run/42"}'
"""
import argparse
import asyncio
import json
import os
import sys
from typing import Any, Dict, Optional

from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client
from mcp.client.streamable_http import streamablehttp_client


def print_result(result: Any) -> None:
    if getattr(result, "isError", False):
        print("Tool reported an error:", file=sys.stderr)

    # Prefer structuredContent when available
    structured = getattr(result, "structuredContent", None)
    if structured:
        print(json.dumps(structured, indent=2))
        return

    # Fall back to text content if structured content is not present
    if getattr(result, "content", None):
        out_items = []
        for c in result.content:
            text = getattr(c, "text", None)
            if text:
                try:
                    out_items.append(json.loads(text))
                except ValueError:
                    out_items.append(text)
            else:
                out_items.append(c)
        print(json.dumps(out_items, indent=2, default=str))
    else:
        print("No content returned from tool.")


async def run_session(session: ClientSession, tool_name: Optional[str], arguments: Dict[str, Any]) -> None:
    await session.initialize()
    if tool_name is None:
        tools = await session.list_tools()
        for tool in tools.tools:
            summary = (tool.description or "").strip().splitlines()
            print(f"{tool.name}: {summary[0] if summary else ''}")
        return

    result = await session.call_tool(tool_name, arguments=arguments)
    print_result(result)


async def call_over_stdio(tool_name: Optional[str], arguments: Dict[str, Any]) -> None:
    params = StdioServerParameters(
        command=sys.executable,
        args=["-m", "xcode_cloud_mcp"],
        env={**os.environ, "MCP_TRANSPORT": "stdio"},
    )
    async with stdio_client(params) as (read_stream, write_stream):
        async with ClientSession(read_stream, write_stream) as session:
            await run_session(session, tool_name, arguments)


async def call_over_http(url: str, tool_name: Optional[str], arguments: Dict[str, Any]) -> None:
    async with streamablehttp_client(url) as (read_stream, write_stream, _):
        async with ClientSession(read_stream, write_stream) as session:
            await run_session(session, tool_name, arguments)


async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Call Xcode Cloud MCP tools from the command line"
    )
    parser.add_argument(
        "tool_name",
        nargs="?",
        default=None,
        help="Tool to invoke on the MCP server (omit to list the available tools)",
    )
    parser.add_argument(
        "--args",
        dest="arguments",
        default="{}",
        help="Tool arguments as a JSON object",
    )
    parser.add_argument(
        "--url",
        default=None,
        help="URL of a running streamable-http server (e.g. http://localhost:8000/mcp)",
    )

    ns = parser.parse_args()
    try:
        arguments = json.loads(ns.arguments)
    except ValueError as e:
        parser.error(f"--args is not valid JSON: {e}")
    if not isinstance(arguments, dict):
        parser.error("--args must be a JSON object")

    if ns.tool_name:
        print(f"Calling {ns.tool_name} with arguments: {arguments}", file=sys.stderr)
    if ns.url:
        await call_over_http(ns.url, ns.tool_name, arguments)
    else:
        await call_over_stdio(ns.tool_name, arguments)


if __name__ == "__main__":
    asyncio.run(main())
