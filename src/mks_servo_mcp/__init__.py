"""MKS SERVO42D/57D CAN frame decoder and MCP server."""

__version__ = "0.1.0"
