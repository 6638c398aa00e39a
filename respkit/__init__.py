"""Dynamic strings, text helpers and an incremental RESP reply reader."""

__version__ = "0.1.0"
__all__ = ["dynstr", "textutil", "reader"]