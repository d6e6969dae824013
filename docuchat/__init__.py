"""docuchat: multi-provider chat proxy with attachment handling and document conversion."""

__version__ = "0.1.0"
