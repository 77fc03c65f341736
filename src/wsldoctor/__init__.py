"""wsl-doctor - diagnose and remediate WSL2 and CLI tool environment issues."""

__version__ = "0.3.0"

__all__ = ["__version__"]
