"""Content compression algorithms."""

from .compressor import CompressionConfig, CompressionResult, ContentCompressor

__all__ = ["CompressionConfig", "CompressionResult", "ContentCompressor"]
