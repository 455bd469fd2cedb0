"""FastAPI application exposing the Solana transaction tools over HTTP and JSON-RPC."""

from __future__ import annotations

import json
import logging
import time
import uuid
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from sol_tx_mcp import __version__, mcp
from sol_tx_mcp.config import CLUSTER_NAMES, default_config
from sol_tx_mcp.metrics import default_metrics, tool_succeeded
from sol_tx_mcp.prompts import get_prompt, list_prompts
from sol_tx_mcp.rate_limiter import PerKeyRateLimiter
from sol_tx_mcp.resources import list_resources, read_resource

logger = logging.getLogger(__name__)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "level": record.levelname,
            "message": record.getMessage(),
            "name": record.name,
        }
        for key in ("tool", "request_id", "error"):
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        if record.exc_info:
            payload["exc_type"] = record.exc_info[0].__name__ if record.exc_info[0] else None
        return json.dumps(payload)


def configure_logging(log_level: str, log_format: str) -> None:
    level = getattr(logging, log_level.upper(), logging.INFO)
    if log_format.lower() == "json":
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        logging.basicConfig(level=level, handlers=[handler])
    else:
        logging.basicConfig(level=level)


configure_logging(default_config.log_level, default_config.log_format)
rate_limiter = PerKeyRateLimiter(
    rate_per_sec=default_config.rate_limit_qps,
    per_tool=default_config.per_tool_rate_limits,
)
HEALTH_STATUS = {"status": "ok"}
APP_VERSION = __version__
MCP_SERVER_NAME = "sol-txbuilder-mcp"
MCP_SERVER_VERSION = APP_VERSION
SUBMITTING_TOOLS = frozenset({"signAndSendTransaction"})


app = FastAPI(
    title="Solana Transaction Builder MCP Server",
    description="Build, sign, send and inspect Solana transactions for LLM agents.",
    version=APP_VERSION,
)


@app.middleware("http")
async def add_request_context(request: Request, call_next):
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id
    start = time.time()
    response = await call_next(request)
    default_metrics.observe_request((time.time() - start) * 1000)
    response.headers["X-Request-ID"] = request_id
    return response


def _metrics_cluster(tool_name: str, params: Dict[str, Any]) -> Optional[str]:
    """Cluster a tool call ran against, or None for cluster-less tools and bad names."""
    tool = mcp.TOOL_REGISTRY.get(tool_name)
    if tool is None or "cluster" not in tool.arguments:
        return None
    cluster = params.get("cluster", default_config.default_query_cluster)
    return cluster if cluster in CLUSTER_NAMES else None


def _log_tool_result(
    tool_name: str, params: Dict[str, Any], result: Any, request_id: Optional[str] = None
) -> None:
    cluster = _metrics_cluster(tool_name, params)
    if not tool_succeeded(result):
        error = result.get("error")
        logger.warning(
            "tool=%s outcome=error error=%s request_id=%s",
            tool_name,
            error,
            request_id,
            extra={"tool": tool_name, "request_id": request_id, "error": error},
        )
        default_metrics.record_tool(tool_name, success=False, cluster=cluster)
    else:
        logger.info(
            "tool=%s outcome=success request_id=%s",
            tool_name,
            request_id,
            extra={"tool": tool_name, "request_id": request_id},
        )
        default_metrics.record_tool(tool_name, success=True, cluster=cluster)
        if tool_name in SUBMITTING_TOOLS and cluster is not None:
            default_metrics.record_submission(cluster)


async def _enforce_rate_limit(tool_name: str, rpc_id: Any = None) -> Optional[JSONResponse]:
    allowed = await rate_limiter.allow(tool_name)
    if not allowed:
        logger.warning("tool=%s outcome=rate_limited", tool_name, extra={"tool": tool_name})
        default_metrics.record_rate_limited(tool_name)
        return JSONResponse(
            status_code=429,
            content=_jsonrpc_error_payload(rpc_id, 429, "Rate limit exceeded"),
        )
    return None


async def _run_tool(tool_name: str, params: Dict[str, Any], request_id: Optional[str]) -> Any:
    logger.debug(
        "tool=%s params=%s request_id=%s",
        tool_name,
        mcp.loggable_params(params),
        request_id,
        extra={"tool": tool_name, "request_id": request_id},
    )
    result = await mcp.call_tool(tool_name, params)
    _log_tool_result(tool_name, params, result, request_id)
    return result


@app.get("/health")
async def health() -> JSONResponse:
    """Lightweight health endpoint for monitoring."""
    return JSONResponse(content=HEALTH_STATUS)


@app.get("/metrics")
async def metrics() -> JSONResponse:
    """Return in-process metrics snapshot."""
    return JSONResponse(content=default_metrics.snapshot())


@app.post("/tools/{tool_name}")
async def tool_route(tool_name: str, request: Request) -> JSONResponse:
    """Plain HTTP proxy for a single tool; the JSON body holds the tool arguments."""
    request_id = getattr(request.state, "request_id", None)
    if tool_name not in mcp.TOOL_REGISTRY:
        return JSONResponse(status_code=404, content={"error": f"Unknown tool: {tool_name}"})
    try:
        body = await request.json()
    except Exception:
        return JSONResponse(status_code=400, content={"error": "Request body must be a JSON object."})
    if not isinstance(body, dict):
        return JSONResponse(status_code=400, content={"error": "Request body must be a JSON object."})
    limited = await _enforce_rate_limit(tool_name)
    if limited:
        return limited
    result = await _run_tool(tool_name, body, request_id)
    return JSONResponse(content=result)


@app.post("/mcp")
async def mcp_gateway(request: Request) -> Response:
    """
    Minimal JSON-RPC gateway for MCP-style integrations.
    Supported methods:
      - initialize
      - tools/list, tools/call
      - prompts/list, prompts/get
      - resources/list, resources/read
    """
    request_id = getattr(request.state, "request_id", None)
    start_time = time.time()

    def _respond(
        payload: Dict[str, Any],
        status_code: int = 200,
        *,
        outcome: str,
        method_label: Optional[str] = None,
        tool_label: Optional[str] = None,
        error_code: Optional[int] = None,
    ) -> JSONResponse:
        duration_ms = (time.time() - start_time) * 1000
        logger.debug(
            "mcp outcome=%s method=%s tool=%s id=%s status=%s duration_ms=%.2f error_code=%s",
            outcome,
            method_label,
            tool_label,
            payload.get("id"),
            status_code,
            duration_ms,
            error_code,
            extra={"request_id": request_id, "tool": tool_label, "error": error_code},
        )
        return JSONResponse(status_code=status_code, content=payload)

    def _error(rpc_id: Any, code: int, message: str, *, method: Optional[str], status_code: int = 200) -> JSONResponse:
        return _respond(
            _jsonrpc_error_payload(rpc_id, code, message),
            status_code=status_code,
            outcome="error",
            method_label=method,
            error_code=code,
        )

    try:
        body = await request.json()
    except Exception:
        return _error(None, -32700, "Parse error", method=None, status_code=400)

    if not isinstance(body, dict):
        return _error(None, -32600, "Invalid request", method=None, status_code=400)

    method = body.get("method")
    rpc_id = body.get("id")
    raw_params = body.get("params")
    if raw_params is None:
        params: Dict[str, Any] = {}
    elif isinstance(raw_params, dict):
        params = raw_params
    else:
        return _error(rpc_id, -32602, "Invalid params", method=method)

    if not method:
        return _error(rpc_id, -32600, "Invalid request", method=None)

    if method == "initialize":
        protocol_version = params.get("protocolVersion")
        if not isinstance(protocol_version, str) or not protocol_version:
            return _error(rpc_id, -32602, "Invalid params", method=method)
        result = {
            "protocolVersion": protocol_version,
            "serverInfo": {"name": MCP_SERVER_NAME, "version": MCP_SERVER_VERSION},
            "capabilities": {
                "tools": {"listChanged": False},
                "prompts": {"listChanged": False},
                "resources": {"listChanged": False, "subscribe": False},
            },
        }
        return _respond(_jsonrpc_success_payload(rpc_id, result), outcome="success", method_label=method)

    if method in ("list_tools", "tools/list"):
        limited = await _enforce_rate_limit("list_tools", rpc_id)
        if limited:
            return limited
        return _respond(
            _jsonrpc_success_payload(rpc_id, {"tools": mcp.list_tools()}),
            outcome="success",
            method_label=method,
        )

    if method in ("call_tool", "tools/call"):
        tool_name = params.get("tool") or params.get("name")
        tool_params = params.get("params")
        if tool_params is None:
            tool_params = params.get("arguments") or {}
        if not isinstance(tool_name, str) or not tool_name.strip():
            return _error(rpc_id, -32602, "Invalid params", method=method)
        if not isinstance(tool_params, dict):
            return _error(rpc_id, -32602, "Invalid params", method=method)
        if tool_name not in mcp.TOOL_REGISTRY:
            return _respond(
                _jsonrpc_success_payload(rpc_id, _wrap_tool_result({"error": f"Unknown tool: {tool_name}"})),
                outcome="error",
                method_label=method,
            )
        limited = await _enforce_rate_limit(tool_name, rpc_id)
        if limited:
            return limited
        result = await _run_tool(tool_name, tool_params, request_id)
        return _respond(
            _jsonrpc_success_payload(rpc_id, _wrap_tool_result(result)),
            outcome="success",
            method_label=method,
            tool_label=tool_name,
        )

    if method == "prompts/list":
        return _respond(
            _jsonrpc_success_payload(rpc_id, {"prompts": list_prompts()}),
            outcome="success",
            method_label=method,
        )

    if method == "prompts/get":
        name = params.get("name")
        arguments = params.get("arguments") or {}
        if not isinstance(name, str) or not isinstance(arguments, dict):
            return _error(rpc_id, -32602, "Invalid params", method=method)
        prompt = get_prompt(name, arguments)
        if "error" in prompt:
            return _error(rpc_id, -32602, prompt["error"], method=method)
        return _respond(_jsonrpc_success_payload(rpc_id, prompt), outcome="success", method_label=method)

    if method == "resources/list":
        return _respond(
            _jsonrpc_success_payload(rpc_id, {"resources": list_resources()}),
            outcome="success",
            method_label=method,
        )

    if method == "resources/read":
        uri = params.get("uri")
        if not isinstance(uri, str):
            return _error(rpc_id, -32602, "Invalid params", method=method)
        limited = await _enforce_rate_limit("resources/read", rpc_id)
        if limited:
            return limited
        resource = await read_resource(uri)
        if "error" in resource:
            return _error(rpc_id, -32602, resource["error"], method=method)
        return _respond(_jsonrpc_success_payload(rpc_id, resource), outcome="success", method_label=method)

    if method in ("notifications/initialized", "initialized"):
        # Notifications do not get a JSON-RPC response body.
        return Response(status_code=204)

    return _error(rpc_id, -32601, "Method not found", method=method)


# Run with: uvicorn sol_tx_mcp.server:app


def _jsonrpc_success_payload(rpc_id: Any, result: Any) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": rpc_id, "result": result}


def _jsonrpc_error_payload(rpc_id: Any, code: int, message: str) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": rpc_id, "error": {"code": code, "message": message}}


def _wrap_tool_result(result: Any) -> Dict[str, Any]:
    """
    Shape tool outputs into an MCP content array. Errors stay in-band with
    ``isError`` so callers always get a payload, never a transport failure.
    """
    if isinstance(result, dict) and "error" in result:
        message = result.get("error") or "Error"
        return {
            "content": [{"type": "text", "text": f"Error: {message}"}],
            "isError": True,
            "structuredContent": result,
        }
    if isinstance(result, str):
        return {"content": [{"type": "text", "text": result}]}
    text_repr = json.dumps(result, ensure_ascii=True, indent=2)
    wrapped: Dict[str, Any] = {"content": [{"type": "text", "text": text_repr}]}
    if isinstance(result, dict):
        wrapped["structuredContent"] = result
    return wrapped
