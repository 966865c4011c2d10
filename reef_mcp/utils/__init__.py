"""Utilities for Reef MCP."""

from reef_mcp.utils.console import ColorfulFormatter, MCPRequestFormatter
from reef_mcp.utils.shell import decoded_arg, encode_payload, quote_arg, quote_path
from reef_mcp.utils.validation import (
    CONFINEMENT_ROOT,
    InvalidIdentifierError,
    PathConfinementError,
    PathTraversalError,
    PolicyError,
    validate_confined_path,
    validate_identifier,
)

__all__ = [
    "CONFINEMENT_ROOT",
    "ColorfulFormatter",
    "decoded_arg",
    "encode_payload",
    "InvalidIdentifierError",
    "MCPRequestFormatter",
    "PathConfinementError",
    "PathTraversalError",
    "PolicyError",
    "quote_arg",
    "quote_path",
    "validate_confined_path",
    "validate_identifier",
]
