"""Root directory layout and launch preparation."""

from .folder import MinecraftFolder

__all__ = ["MinecraftFolder"]
