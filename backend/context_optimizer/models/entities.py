"""Internal dataclasses representing indexed and persisted entities."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Mapping


@dataclass(slots=True)
class FunctionInfo:
    name: str
    params: int
    line: int | None = None


@dataclass(slots=True)
class MethodInfo:
    name: str
    params: int
    kind: str = "method"
    line: int | None = None


@dataclass(slots=True)
class ClassInfo:
    name: str
    line: int | None = None
    methods: list[MethodInfo] = field(default_factory=list)


@dataclass(slots=True)
class ImportInfo:
    source: str
    specifiers: list[str] = field(default_factory=list)
    line: int | None = None


@dataclass(slots=True)
class ExportInfo:
    kind: str
    name: str | None = None
    line: int | None = None


@dataclass(slots=True)
class VariableInfo:
    name: str
    kind: str = "unknown"
    line: int | None = None


@dataclass(slots=True)
class AstInfo:
    """Structural outline of a parsed source file."""

    functions: list[FunctionInfo] = field(default_factory=list)
    classes: list[ClassInfo] = field(default_factory=list)
    imports: list[ImportInfo] = field(default_factory=list)
    exports: list[ExportInfo] = field(default_factory=list)
    variables: list[VariableInfo] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AstInfo":
        return cls(
            functions=[FunctionInfo(**item) for item in data.get("functions", [])],
            classes=[
                ClassInfo(
                    name=item["name"],
                    line=item.get("line"),
                    methods=[MethodInfo(**method) for method in item.get("methods", [])],
                )
                for item in data.get("classes", [])
            ],
            imports=[ImportInfo(**item) for item in data.get("imports", [])],
            exports=[ExportInfo(**item) for item in data.get("exports", [])],
            variables=[VariableInfo(**item) for item in data.get("variables", [])],
        )


@dataclass(slots=True)
class FileRecord:
    """Per-file metadata owned by the differential indexer."""

    path: str
    relative_path: str
    size: int
    tokens: int
    last_modified: float
    extension: str
    importance: str = "normal"
    tags: list[str] = field(default_factory=list)
    compressed: bool = False
    ast_info: AstInfo | None = None
    indexed_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "relativePath": self.relative_path,
            "size": self.size,
            "tokens": self.tokens,
            "lastModified": self.last_modified,
            "extension": self.extension,
            "importance": self.importance,
            "tags": list(self.tags),
            "compressed": self.compressed,
            "astInfo": self.ast_info.to_dict() if self.ast_info is not None else None,
            "indexedAt": self.indexed_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FileRecord":
        """Accepts camelCase keys and the older snake_case spelling."""
        ast_info = _pick(data, "astInfo", "ast_info")
        return cls(
            path=data["path"],
            relative_path=_pick(data, "relativePath", "relative_path") or data["path"],
            size=int(data.get("size", 0)),
            tokens=int(data.get("tokens", 0)),
            last_modified=float(_pick(data, "lastModified", "last_modified") or 0.0),
            extension=data.get("extension", ""),
            importance=data.get("importance", "normal"),
            tags=list(data.get("tags", [])),
            compressed=bool(data.get("compressed", False)),
            ast_info=AstInfo.from_dict(ast_info) if ast_info else None,
            indexed_at=_pick(data, "indexedAt", "indexed_at"),
        )


def _pick(data: Mapping[str, Any], key: str, legacy: str) -> Any:
    return data[key] if key in data else data.get(legacy)


@dataclass(slots=True)
class TermIndexEntry:
    terms: dict[str, int]
    metadata: FileRecord
    indexed_at: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "terms": [[term, freq] for term, freq in self.terms.items()],
            "metadata": self.metadata.to_dict(),
            "indexedAt": self.indexed_at,
        }

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "TermIndexEntry":
        return cls(
            terms={term: int(freq) for term, freq in data.get("terms", [])},
            metadata=FileRecord.from_dict(data["metadata"]),
            indexed_at=data.get("indexedAt", ""),
        )


@dataclass(slots=True)
class FingerprintIndexEntry:
    vector: list[float]
    metadata: FileRecord
    indexed_at: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "vector": self.vector,
            "metadata": self.metadata.to_dict(),
            "indexedAt": self.indexed_at,
        }

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "FingerprintIndexEntry":
        return cls(
            vector=[float(value) for value in data.get("vector", [])],
            metadata=FileRecord.from_dict(data["metadata"]),
            indexed_at=data.get("indexedAt", ""),
        )


@dataclass(slots=True)
class HistoryEntry:
    id: str
    timestamp: str
    context_size: int = 0
    compressed: bool = False
    compression_ratio: float = 1.0
    summary: str | None = None
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "contextSize": self.context_size,
            "compressed": self.compressed,
            "compressionRatio": self.compression_ratio,
            "summary": self.summary,
            "tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HistoryEntry":
        return cls(
            id=data["id"],
            timestamp=data["timestamp"],
            context_size=int(data.get("contextSize", 0)),
            compressed=bool(data.get("compressed", False)),
            compression_ratio=float(data.get("compressionRatio", 1.0)),
            summary=data.get("summary"),
            tags=list(data.get("tags", [])),
        )


@dataclass(slots=True)
class Snapshot:
    id: str
    timestamp: str
    description: str
    stats: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "description": self.description,
            "stats": self.stats,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Snapshot":
        return cls(
            id=data["id"],
            timestamp=data["timestamp"],
            description=data.get("description", ""),
            stats=dict(data.get("stats", {})),
        )


__all__ = [
    "AstInfo",
    "ClassInfo",
    "ExportInfo",
    "FileRecord",
    "FingerprintIndexEntry",
    "FunctionInfo",
    "HistoryEntry",
    "ImportInfo",
    "MethodInfo",
    "Snapshot",
    "TermIndexEntry",
    "VariableInfo",
]
