"""Tangle Mint: a desktop console for minting from an ERC-721 collection."""

__version__ = "0.1.0"
