"""ComicGen - turn a story idea into an illustrated comic book."""

__version__ = "0.2.0"
