"""subtrans - Live screen subtitle translator.

Captures a screen region (once on a hotkey, or continuously in subtitle
mode), runs it through OpenCV preprocessing and Tesseract OCR, waits for the
text to settle, and translates it through an ordered chain of providers
with a session cache in front.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
