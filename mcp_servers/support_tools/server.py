"""ACME support tools MCP server (order status, shipping ETA, policies)."""

import json
from dataclasses import asdict

from mcp.server.fastmcp import FastMCP

from acmesupport.agent import tools
from acmesupport.agent.classifier import extract_order_id

mcp = FastMCP("ACME Support Tools", json_response=True)


def _normalize_order_id(order_id: str) -> str:
    """Accept ids typed as 'ORD-12345' or 'order #12345'."""
    found, _ = extract_order_id(order_id)
    return found or order_id.strip().upper()


@mcp.tool()
def order_status(order_id: str = "") -> str:
    """Get the current status of an order (e.g. ORD-12345). Empty id returns a clarifying question."""
    oid = _normalize_order_id(order_id) if order_id else None
    return json.dumps(asdict(tools.order_status(oid)), indent=2)


@mcp.tool()
def shipping_eta(order_id: str = "", postal_code: str = "") -> str:
    """Estimate delivery date for an order to a 5-digit destination ZIP."""
    oid = _normalize_order_id(order_id) if order_id else None
    return json.dumps(asdict(tools.shipping_eta(oid, postal_code.strip() or None)), indent=2)


@mcp.tool()
def return_policy() -> str:
    """Return window and how to start a return."""
    return json.dumps(asdict(tools.return_policy()), indent=2)


@mcp.tool()
def refund_policy() -> str:
    """Refund method and timeline."""
    return json.dumps(asdict(tools.refund_policy()), indent=2)


@mcp.tool()
def account_help() -> str:
    """Password reset and account settings guidance."""
    return json.dumps(asdict(tools.account_help()), indent=2)


if __name__ == "__main__":
    mcp.run(transport="stdio")
