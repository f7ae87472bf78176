from toolinv.data.tool_store import ToolStore, ToolStoreError, ToolNotFoundError, connect

__all__ = ["ToolStore", "ToolStoreError", "ToolNotFoundError", "connect"]
