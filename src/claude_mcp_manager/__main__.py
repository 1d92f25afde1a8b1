# Allow running as `python -m claude_mcp_manager`
import sys

from claude_mcp_manager.cli import main

sys.exit(main())
