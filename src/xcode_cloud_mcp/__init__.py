"""MCP server exposing the Xcode Cloud CI API of App Store Connect."""

__version__ = "0.1.0"
