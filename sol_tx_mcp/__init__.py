"""
Solana transaction builder MCP server package.

This package exposes LLM-friendly tools that build, sign, send and inspect
Solana transactions. See DESIGN.md for full details.
"""

__version__ = "1.0.0"

__all__ = ["config", "__version__"]
