#!/usr/bin/env python3
"""
wikisync MCP Server

Keeps a local note/wiki folder in sync with a git remote and exposes the
sync operations as MCP tools over stdio.
"""

from wikisync.server import main


if __name__ == "__main__":
    main()
