"""Debug output writers."""

from jobstream.export.raw_content import RawContentWriter

__all__ = ["RawContentWriter"]
