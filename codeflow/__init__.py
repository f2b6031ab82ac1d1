"""CodeFlow Workspace — Space/Vault/Log editor session for the terminal."""

__version__ = "0.3.0"
