#!/usr/bin/env python3
"""
Run the Bluesky MCP server in stdio mode for desktop MCP hosts.
This skips the HTTP transport and talks directly over stdin/stdout.
"""
import sys
import os

# Add the project directory to the path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from server import main

if __name__ == "__main__":
    main(["--transport", "stdio"])
