"""TaskGoblin: a macOS menu-bar helper with a mouse jiggler, triple-tap OCR and deferred shutdown."""

__version__ = "0.3.0"
