"""
MCP Server: session-think — persistent thinking workspace.

Exposes the session tools (think, list/view/search/rename/delete sessions, ...)
to an MCP client over stdio.

Protocol: JSON-RPC 2.0 over stdio (NDJSON). Logs go to stderr.

Usage:
  python -m session_think serve
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import TextIO

from session_think.tools.think_tools import TOOLS, ToolFn

logger = logging.getLogger(__name__)

# ── Constants ────────────────────────────────────────────────

SERVER_NAME = "session-think"
SERVER_VERSION = "1.3.0"
PROTOCOL_VERSION = "2024-11-05"
MAX_LINE_BYTES = 16 * 1024 * 1024  # one request per line; thought content is unbounded

# ── JSON-RPC 2.0 helpers ─────────────────────────────────────


def jsonrpc_result(req_id, result):
    return {"jsonrpc": "2.0", "id": req_id, "result": result}


def jsonrpc_error(req_id, code, message):
    return {"jsonrpc": "2.0", "id": req_id, "error": {"code": code, "message": message}}


def _text(text: str, is_error: bool = False) -> dict:
    result: dict = {"content": [{"type": "text", "text": text}]}
    if is_error:
        result["isError"] = True
    return result


# ── Request handler ──────────────────────────────────────────


async def handle_request(tools: dict[str, ToolFn], req: dict) -> dict | None:
    req_id = req.get("id")
    method = req.get("method", "")

    # Notifications (no id): no response
    if req_id is None:
        if method == "notifications/initialized":
            logger.info("Client initialized")
        return None

    if method == "initialize":
        return jsonrpc_result(req_id, {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {"tools": {}},
            "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
        })

    if method == "ping":
        return jsonrpc_result(req_id, {})

    if method == "tools/list":
        return jsonrpc_result(req_id, {"tools": TOOLS})

    if method == "tools/call":
        params = req.get("params") or {}
        if not isinstance(params, dict):
            return jsonrpc_error(req_id, -32602, "params must be an object")
        tool_name = params.get("name", "")
        args = params.get("arguments") or {}
        if not isinstance(tool_name, str) or not isinstance(args, dict):
            return jsonrpc_error(req_id, -32602, "name must be a string and arguments an object")

        tool = tools.get(tool_name)
        if tool is None:
            return jsonrpc_result(req_id, _text(f"Unknown tool: {tool_name}", is_error=True))

        try:
            text = await tool(**args)
        except TypeError as e:
            return jsonrpc_result(req_id, _text(f"Invalid arguments for {tool_name}: {e}", True))
        except Exception as e:
            logger.exception("Tool %s crashed", tool_name)
            return jsonrpc_result(req_id, _text(f"Internal error: {e}", is_error=True))
        return jsonrpc_result(req_id, _text(text))

    return jsonrpc_error(req_id, -32601, f"Method not found: {method}")


# ── Stdio transport (NDJSON) ─────────────────────────────────


def _write(out: TextIO, message: dict) -> None:
    out.write(json.dumps(message, ensure_ascii=False) + "\n")
    out.flush()


async def _stdin_reader() -> asyncio.StreamReader:
    reader = asyncio.StreamReader(limit=MAX_LINE_BYTES)
    protocol = asyncio.StreamReaderProtocol(reader)
    await asyncio.get_running_loop().connect_read_pipe(lambda: protocol, sys.stdin)
    return reader


async def serve(
    tools: dict[str, ToolFn],
    reader: asyncio.StreamReader | None = None,
    out: TextIO | None = None,
) -> None:
    """Read requests until EOF, writing one response line per request.

    Defaults to stdin/stdout. A bad line gets a JSON-RPC error reply and the
    loop keeps going.
    """
    if reader is None:
        reader = await _stdin_reader()
    if out is None:
        out = sys.stdout

    while True:
        try:
            raw = await reader.readline()
        except ValueError as e:
            # the reader drops the overlong line, so the next one is intact
            logger.warning("Request line too long: %s", e)
            _write(out, jsonrpc_error(None, -32600, "Request too large"))
            continue
        if not raw:
            break

        try:
            line = raw.decode("utf-8").strip()
            if not line:
                continue
            req = json.loads(line)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Parse error: %s", e)
            _write(out, jsonrpc_error(None, -32700, "Parse error"))
            continue
        if not isinstance(req, dict):
            _write(out, jsonrpc_error(None, -32600, "Invalid Request"))
            continue

        logger.debug("<- %s", req.get("method", "?"))
        try:
            response = await handle_request(tools, req)
        except Exception as e:
            logger.exception("Error handling %s", req.get("method", "?"))
            response = jsonrpc_error(req.get("id"), -32603, f"Internal error: {e}")
        if response:
            _write(out, response)
