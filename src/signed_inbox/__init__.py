"""Signature-gated multi-recipient message inbox."""

__version__ = "0.1.0"
