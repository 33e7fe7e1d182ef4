"""Install, verify and diagnose layered Minecraft versions and mod loaders."""

__version__ = "1.0.0"
