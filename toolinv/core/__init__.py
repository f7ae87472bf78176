from toolinv.core.config import InventoryConfig, get_config, set_config

__all__ = ["InventoryConfig", "get_config", "set_config"]
