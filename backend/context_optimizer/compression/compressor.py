"""Token-aware content compression with importance-based exemption."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Sequence

from context_optimizer.compression.algorithms import (
    AlgorithmOutput,
    extract_keywords,
    summarize,
    truncate,
)
from context_optimizer.core.config import Settings
from context_optimizer.core.logging import get_logger
from context_optimizer.core.metrics import COMPRESSIONS
from context_optimizer.utils.text import estimate_tokens

logger = get_logger(__name__)

CODE_EXTENSIONS = {".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs", ".py", ".java", ".go", ".rs"}
DOC_EXTENSIONS = {".md", ".txt", ".rst"}
CONFIG_EXTENSIONS = {".json", ".yaml", ".yml", ".xml"}


@dataclass(slots=True)
class CompressionResult:
    compressed: bool
    original_content: str
    compressed_content: str
    compression_ratio: float
    tokens: int
    compressed_tokens: int
    algorithm: str
    summary: dict[str, Any] | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "compressed": self.compressed,
            "originalContent": self.original_content,
            "compressedContent": self.compressed_content,
            "compressionRatio": self.compression_ratio,
            "tokens": self.tokens,
            "compressedTokens": self.compressed_tokens,
            "algorithm": self.algorithm,
            "summary": self.summary,
            "error": self.error,
        }


@dataclass(slots=True)
class CompressionConfig:
    token_threshold: int = 1000
    compression_ratio: float = 0.7
    preserve_important: bool = True
    importance_tags: Sequence[str] = field(default_factory=lambda: ("core", "config"))

    @classmethod
    def from_settings(cls, settings: Settings) -> "CompressionConfig":
        return cls(
            token_threshold=settings.token_threshold,
            compression_ratio=settings.compression_ratio,
            preserve_important=settings.preserve_important,
            importance_tags=tuple(settings.importance_tags),
        )


Algorithm = Callable[[str, float, str], AlgorithmOutput]


class ContentCompressor:
    """Reduce content with summarization, truncation or keyword extraction."""

    def __init__(self, config: CompressionConfig | None = None) -> None:
        self.config = config or CompressionConfig()
        self.algorithms: dict[str, Algorithm] = {
            "summarization": summarize,
            "truncation": lambda content, ratio, _ext: truncate(content, ratio),
            "keyword-extraction": lambda content, ratio, _ext: extract_keywords(content, ratio),
        }

    def compress_content(
        self,
        content: str,
        metadata: Mapping[str, Any] | None = None,
        *,
        force: bool = False,
    ) -> CompressionResult:
        """Compress ``content`` unless it is small or protected.

        ``metadata`` may carry ``importance``, ``extension`` and the per-call
        overrides ``algorithm`` and ``compression_ratio``. ``force`` skips both
        the size threshold and the importance exemption.
        """
        metadata = metadata or {}
        tokens = estimate_tokens(content)
        try:
            importance = metadata.get("importance") or "normal"
            if not force and self._exempt(tokens, importance):
                return self._passthrough(content, tokens)

            algorithm = metadata.get("algorithm") or self.select_algorithm(metadata.get("extension") or "")
            if algorithm not in self.algorithms:
                raise ValueError(f"Unknown compression algorithm {algorithm!r}")
            ratio = float(metadata.get("compression_ratio") or self.config.compression_ratio)
            output = self.algorithms[algorithm](content, ratio, metadata.get("extension") or "")
        except Exception as exc:  # noqa: BLE001
            logger.error("Compression failed: %s", exc)
            result = self._passthrough(content, tokens)
            result.algorithm = "error"
            result.error = str(exc)
            return result

        achieved = len(output.content) / len(content) if content else 1.0
        COMPRESSIONS.labels(algorithm=algorithm).inc()
        return CompressionResult(
            compressed=True,
            original_content=content,
            compressed_content=output.content,
            compression_ratio=max(achieved, ratio),
            tokens=tokens,
            compressed_tokens=estimate_tokens(output.content),
            algorithm=algorithm,
            summary=output.summary,
        )

    def select_algorithm(self, extension: str) -> str:
        extension = extension.lower()
        if extension in CODE_EXTENSIONS:
            return "summarization"
        if extension in DOC_EXTENSIONS:
            return "keyword-extraction"
        if extension in CONFIG_EXTENSIONS:
            return "truncation"
        return "summarization"

    def get_compression_stats(self) -> dict[str, Any]:
        return {
            "algorithms": list(self.algorithms),
            "tokenThreshold": self.config.token_threshold,
            "compressionRatio": self.config.compression_ratio,
            "preserveImportant": self.config.preserve_important,
            "importanceTags": list(self.config.importance_tags),
        }

    def _exempt(self, tokens: int, importance: str) -> bool:
        if tokens <= self.config.token_threshold:
            return True
        return self.config.preserve_important and importance in self.config.importance_tags

    @staticmethod
    def _passthrough(content: str, tokens: int) -> CompressionResult:
        return CompressionResult(
            compressed=False,
            original_content=content,
            compressed_content=content,
            compression_ratio=1.0,
            tokens=tokens,
            compressed_tokens=tokens,
            algorithm="none",
        )


__all__ = ["CompressionConfig", "CompressionResult", "ContentCompressor"]
