import sys

from mcp_bridge.cli import main

if __name__ == "__main__":
    sys.exit(main())
