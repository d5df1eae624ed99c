"""Chunk Java declarations into bounded, context-preserving units for RAG indexing."""

import logging
import time
from dataclasses import replace
from pathlib import Path
from typing import Callable, Iterable

from code_analyzer.config.settings import Settings, settings
from code_analyzer.rag import chunk_text
from code_analyzer.rag.chunk_rules import annotation_texts, class_metadata, classify_method, method_metadata
from code_analyzer.rag.declarations import JavaFile, MethodDecl, TypeDecl
from code_analyzer.rag.errors import JavaParseError
from code_analyzer.rag.java_ast import parse_java
from code_analyzer.rag.models import GROUP_ORDER, Chunk, ChunkingStrategy, ChunkKind

logger = logging.getLogger(__name__)

# Dir names to skip when walking; "test" keeps test sources out of the index.
SKIP_DIRS = frozenset(
    {".git", "target", "build", "out", "node_modules", ".gradle", ".idea", "test"}
)
JAVA_SUFFIX = ".java"


def should_index_path(file_path: Path) -> bool:
    """Return True if the (repo-relative) file should be chunked."""
    if file_path.suffix != JAVA_SUFFIX:
        return False
    return not any(part in SKIP_DIRS for part in file_path.parts[:-1])


def java_files(root: Path) -> list[Path]:
    """Indexable .java files under root, as sorted root-relative paths."""
    return [
        fpath.relative_to(root)
        for fpath in sorted(root.rglob(f"*{JAVA_SUFFIX}"))
        if fpath.is_file() and should_index_path(fpath.relative_to(root))
    ]


def make_chunk_id(file_path: str, tag: str, class_name: str, method_name: str | None = None) -> str:
    """Deterministic id: src/main/A.java + class + method + tag -> src.main.A.A.run.method."""
    base = Path(file_path).as_posix().removesuffix(JAVA_SUFFIX).replace("/", ".")
    parts = [base, class_name]
    if method_name:
        parts.append(method_name)
    parts.append(tag)
    return ".".join(parts)


def _dedupe_ids(chunks: list[Chunk]) -> list[Chunk]:
    """Suffix repeated ids (overloads, same-named nested classes) with #2, #3 in emission order."""
    seen: dict[str, int] = {}
    out: list[Chunk] = []
    for chunk in chunks:
        count = seen.get(chunk.id, 0) + 1
        seen[chunk.id] = count
        out.append(chunk if count == 1 else replace(chunk, id=f"{chunk.id}#{count}"))
    return out


class Chunker:
    """Turns one parsed Java file into an ordered list of chunks."""

    def __init__(
        self,
        max_chunk_size: int = 3000,
        strategy: ChunkingStrategy | str = ChunkingStrategy.ADAPTIVE,
    ):
        self.max_chunk_size = max_chunk_size
        self.strategy = ChunkingStrategy(strategy)

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> "Chunker":
        cfg = config or settings
        return cls(max_chunk_size=cfg.chunk_max_size, strategy=cfg.chunk_strategy)

    def chunk_file(self, parsed: JavaFile, relative_path: str) -> list[Chunk]:
        """Chunk every class and interface in the file; a failing class is skipped."""
        file_path = Path(relative_path).as_posix()
        chunks: list[Chunk] = []
        for decl in parsed.types:
            try:
                chunks.extend(self._chunk_type(decl, parsed, file_path))
            except Exception as e:
                logger.warning("chunker: skipped class %s in %s: %s", decl.name, file_path, e)
        logger.debug("chunker: %d chunks for %s (%s)", len(chunks), file_path, self.strategy.value)
        return _dedupe_ids(chunks)

    def chunk_source(self, source: str, relative_path: str) -> list[Chunk]:
        """Parse and chunk source text. Raises JavaParseError on syntax errors."""
        return self.chunk_file(parse_java(source, path=relative_path), relative_path)

    def chunk_repository(self, repo_path: Path | str) -> list[Chunk]:
        """Chunk every indexable .java file under repo_path; bad files are skipped."""
        root = Path(repo_path).resolve()
        return self.chunk_files(root, java_files(root))

    def chunk_files(
        self,
        repo_path: Path | str,
        relative_paths: Iterable[Path | str],
        on_file: Callable[[int], None] | None = None,
    ) -> list[Chunk]:
        """Chunk the named files under repo_path. on_file(n) is called after each file."""
        t0 = time.monotonic()
        root = Path(repo_path).resolve()
        logger.info("chunker: parsing %s with %s strategy", root, self.strategy.value)
        chunks: list[Chunk] = []
        n = 0
        for n, rel in enumerate(map(Path, relative_paths), start=1):
            try:
                source = (root / rel).read_text(encoding="utf-8", errors="replace")
                chunks.extend(self.chunk_source(source, rel.as_posix()))
            except (OSError, JavaParseError) as e:
                logger.warning("chunker: failed to parse %s: %s", rel, e)
            if on_file is not None:
                on_file(n)
            if n % 50 == 0:
                logger.info("chunker: parsed %d files, %d chunks so far", n, len(chunks))
        logger.info("chunker: %d chunks from %d files (%.1fs)", len(chunks), n, time.monotonic() - t0)
        return chunks

    def _chunk_type(self, decl: TypeDecl, parsed: JavaFile, file_path: str) -> list[Chunk]:
        chunks = [self._metadata_chunk(decl, parsed, file_path)]
        content = chunk_text.full_class_text(decl, parsed.package, parsed.imports)
        if self.strategy is ChunkingStrategy.CLASS_ONLY or len(content) <= self.max_chunk_size:
            chunks.append(self._full_class_chunk(decl, content, parsed, file_path))
        elif self.strategy is ChunkingStrategy.METHOD_ONLY:
            chunks.extend(self._method_chunks(decl, decl.methods, parsed, file_path))
        else:
            chunks.extend(self._adaptive_chunks(decl, parsed, file_path))
        return chunks

    def _metadata_chunk(self, decl: TypeDecl, parsed: JavaFile, file_path: str) -> Chunk:
        return Chunk(
            id=make_chunk_id(file_path, "metadata", decl.name),
            content=chunk_text.metadata_document(decl, parsed.package, parsed.imports),
            kind=ChunkKind.CLASS_METADATA,
            class_name=decl.name,
            file_path=file_path,
            package_name=parsed.package,
            annotations=annotation_texts(decl.annotations),
            imports=parsed.imports,
            metadata=class_metadata(decl, parsed.package, ChunkKind.CLASS_METADATA.value),
        )

    def _full_class_chunk(self, decl: TypeDecl, content: str, parsed: JavaFile, file_path: str) -> Chunk:
        return Chunk(
            id=make_chunk_id(file_path, "class", decl.name),
            content=content,
            kind=ChunkKind.INTERFACE if decl.is_interface else ChunkKind.CLASS,
            class_name=decl.name,
            file_path=file_path,
            package_name=parsed.package,
            annotations=annotation_texts(decl.annotations),
            imports=parsed.imports,
            metadata=class_metadata(decl, parsed.package, "FULL_CLASS"),
        )

    def _adaptive_chunks(self, decl: TypeDecl, parsed: JavaFile, file_path: str) -> list[Chunk]:
        """Split an oversized class by method group, then by method if a group is too big."""
        groups: dict[ChunkKind, list[MethodDecl]] = {kind: [] for kind in GROUP_ORDER}
        for method in decl.methods:
            groups[classify_method(method)].append(method)

        chunks: list[Chunk] = []
        for kind in GROUP_ORDER:
            methods = groups[kind]
            if not methods:
                continue
            content = chunk_text.group_text(decl, kind, methods, parsed.package, parsed.imports)
            if len(content) <= self.max_chunk_size:
                chunks.append(self._group_chunk(decl, kind, methods, content, parsed, file_path))
            else:
                logger.debug(
                    "chunker: %s.%s is %d chars, splitting into %d method chunks",
                    decl.name, kind.value, len(content), len(methods),
                )
                chunks.extend(self._method_chunks(decl, methods, parsed, file_path))

        if decl.fields:
            chunks.append(self._fields_chunk(decl, parsed, file_path))
        return chunks

    def _group_chunk(
        self,
        decl: TypeDecl,
        kind: ChunkKind,
        methods: list[MethodDecl],
        content: str,
        parsed: JavaFile,
        file_path: str,
    ) -> Chunk:
        metadata = class_metadata(decl, parsed.package, kind.value)
        metadata["methodCount"] = len(methods)
        metadata["methodNames"] = ",".join(m.name for m in methods)
        return Chunk(
            id=make_chunk_id(file_path, kind.value.lower(), decl.name),
            content=content,
            kind=kind,
            class_name=decl.name,
            file_path=file_path,
            package_name=parsed.package,
            annotations=annotation_texts(decl.annotations),
            imports=parsed.imports,
            metadata=metadata,
        )

    def _method_chunks(
        self, decl: TypeDecl, methods: list[MethodDecl], parsed: JavaFile, file_path: str
    ) -> list[Chunk]:
        chunks: list[Chunk] = []
        for method in methods:
            try:
                chunks.append(
                    Chunk(
                        id=make_chunk_id(file_path, "method", decl.name, method.name),
                        content=chunk_text.method_text(decl, method, parsed.package),
                        kind=ChunkKind.METHOD,
                        class_name=decl.name,
                        method_name=method.name,
                        file_path=file_path,
                        package_name=parsed.package,
                        annotations=annotation_texts(method.annotations),
                        imports=parsed.imports,
                        metadata=method_metadata(method, parsed.package),
                    )
                )
            except Exception as e:
                logger.warning("chunker: skipped method %s.%s in %s: %s", decl.name, method.name, file_path, e)
        return chunks

    def _fields_chunk(self, decl: TypeDecl, parsed: JavaFile, file_path: str) -> Chunk:
        return Chunk(
            id=make_chunk_id(file_path, "fields", decl.name),
            content=chunk_text.fields_text(decl, parsed.package),
            kind=ChunkKind.FIELDS,
            class_name=decl.name,
            file_path=file_path,
            package_name=parsed.package,
            annotations=annotation_texts(decl.annotations),
            imports=parsed.imports,
            metadata=class_metadata(decl, parsed.package, ChunkKind.FIELDS.value),
        )
