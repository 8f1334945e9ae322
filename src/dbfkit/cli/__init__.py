"""
dbfkit Command-Line Interface
=============================

This package provides the command-line tool for dbfkit:

- **dbftool**: Inspect, dump and validate DBF tables

The tool is implemented as a Click-based CLI application with
comprehensive help and error reporting.
"""

__all__ = ["dbftool"]
