"""lsp-proxy - Language server proxy with an HTTP side channel."""

__version__ = "0.1.0"

__all__ = ["__version__"]
