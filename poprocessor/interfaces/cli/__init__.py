"""
CLI Interface - Command-line tools for PO Processor.

Provides commands for:
- Document extraction
- Text recovery and JSON repair
- Offline normalization
- Serving the API
"""

from .main import app, main

__all__ = ["app", "main"]
