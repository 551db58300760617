"""Policy inventory configuration."""
from .inventory import PolicyInventory

__all__ = ["PolicyInventory"]
