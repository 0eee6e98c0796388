"""DETECPORC - find nearby pork points of sale, curated through moderated suggestions."""

__version__ = "1.0.0"
