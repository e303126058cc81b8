"""Exotel MCP Server - SMS and voice tools over the Model Context Protocol."""

__version__ = "1.0.0"
