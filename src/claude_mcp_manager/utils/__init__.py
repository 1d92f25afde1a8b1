# ABOUTME: Utility modules for claude-mcp-manager
# ABOUTME: Exports backup functions

from claude_mcp_manager.utils.backup import cleanup_old_backups, create_backup

__all__ = [
    "create_backup",
    "cleanup_old_backups",
]
