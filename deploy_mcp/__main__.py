"""Entry point for ``python -m deploy_mcp``."""

from deploy_mcp.cli import main

if __name__ == "__main__":
    main()
