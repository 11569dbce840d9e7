"""Reusable UI components for the Tangle Mint console."""

from .gallery import GalleryPanel
from .mint import MintPanel

__all__ = ["GalleryPanel", "MintPanel"]
