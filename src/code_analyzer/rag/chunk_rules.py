"""Classification rules and derived metadata for Java declarations."""

from dataclasses import dataclass
from typing import Any, Iterable

from code_analyzer.rag.declarations import Annotation, FieldDecl, MethodDecl, TypeDecl
from code_analyzer.rag.models import Chunk, ChunkKind

# Import namespaces worth repeating in every chunk (web, persistence, validation).
IMPORTANT_IMPORT_MARKERS = (
    "springframework",
    "javax.persistence",
    "jakarta.persistence",
    "javax.ws.rs",
    "javax.validation",
    "jakarta.validation",
)

IMPORTANT_CLASS_ANNOTATIONS = frozenset(
    {"RestController", "Controller", "Service", "Repository", "Entity", "Component", "Configuration", "Path"}
)

# JAX-RS verbs and Path; any *Mapping annotation also counts.
ROUTE_ANNOTATIONS = frozenset({"GET", "POST", "PUT", "DELETE", "Path"})

ENDPOINT_ANNOTATIONS = frozenset(
    {"RequestMapping", "GetMapping", "PostMapping", "PutMapping", "DeleteMapping", "PatchMapping",
     "GET", "POST", "PUT", "DELETE"}
)

# Fields carried into group chunks: injected dependencies and persistence columns.
GROUP_FIELD_ANNOTATIONS = frozenset({"Autowired", "Column", "JoinColumn", "Id", "Value", "Qualifier"})

ROLE_FLAGS = {
    "isController": ("Controller", "RestController"),
    "isService": ("Service",),
    "isRepository": ("Repository",),
    "isComponent": ("Component",),
    "isEntity": ("Entity",),
    "isConfiguration": ("Configuration",),
}

FRAMEWORK_COMPONENTS = frozenset({"Controller", "RestController", "Service", "Repository", "Component", "Entity"})

ACCESSOR_PREFIXES = ("get", "set", "is")
CRUD_MARKERS = ("save", "delete", "create", "update", "find", "search")


def annotation_simple_name(text: str) -> str:
    """'@org.x.GetMapping("/a")' -> 'GetMapping'."""
    name = text.lstrip("@").split("(", 1)[0].strip()
    return name.rsplit(".", 1)[-1]


def has_annotation(annotations: Iterable[str], *names: str) -> bool:
    """Exact simple-name match against raw annotation strings."""
    wanted = set(names)
    return any(annotation_simple_name(a) in wanted for a in annotations)


def is_important_import(import_name: str) -> bool:
    return any(marker in import_name for marker in IMPORTANT_IMPORT_MARKERS)


def is_important_annotation(annotation: Annotation) -> bool:
    return annotation.simple_name in IMPORTANT_CLASS_ANNOTATIONS


def has_route_annotation(method: MethodDecl) -> bool:
    return any(
        "Mapping" in a.simple_name or a.simple_name in ROUTE_ANNOTATIONS for a in method.annotations
    )


def is_relevant_field(field: FieldDecl) -> bool:
    return any(a.simple_name in GROUP_FIELD_ANNOTATIONS for a in field.annotations)


def classify_method(method: MethodDecl) -> ChunkKind:
    """Assign a method to exactly one group, checked in priority order."""
    if has_route_annotation(method):
        return ChunkKind.REST_ENDPOINTS
    name = method.name.lower()
    if name.startswith(ACCESSOR_PREFIXES):
        return ChunkKind.ACCESSORS
    if any(marker in name for marker in CRUD_MARKERS):
        return ChunkKind.CRUD_OPERATIONS
    return ChunkKind.BUSINESS_LOGIC


def annotation_texts(annotations: Iterable[Annotation]) -> tuple[str, ...]:
    return tuple(a.text for a in annotations)


def class_metadata(decl: TypeDecl, package_name: str, chunk_type: str) -> dict[str, Any]:
    """Role flags and member counts shared by every class-level chunk."""
    annotations = annotation_texts(decl.annotations)
    metadata: dict[str, Any] = {"chunkType": chunk_type, "packageName": package_name}
    for flag, names in ROLE_FLAGS.items():
        metadata[flag] = has_annotation(annotations, *names)
    metadata["methodCount"] = len(decl.methods)
    metadata["fieldCount"] = len(decl.fields)
    return metadata


def method_metadata(method: MethodDecl, package_name: str) -> dict[str, Any]:
    annotations = annotation_texts(method.annotations)
    return {
        "chunkType": ChunkKind.METHOD.value,
        "packageName": package_name,
        "isPublic": method.is_public,
        "isStatic": method.is_static,
        "returnType": method.return_type,
        "parameterCount": len(method.parameters),
        "isEndpoint": has_annotation(annotations, *ENDPOINT_ANNOTATIONS),
        "isTransactional": has_annotation(annotations, "Transactional"),
    }


def is_framework_component(annotations: Iterable[str]) -> bool:
    return has_annotation(annotations, *FRAMEWORK_COMPONENTS)


@dataclass
class ChunkFilter:
    """Selects chunks by kind, component role and content length."""

    include_classes: bool = True
    include_methods: bool = True
    include_interfaces: bool = True
    include_metadata: bool = True
    include_fields: bool = True
    include_rest_endpoints: bool = True
    include_business_logic: bool = True
    include_crud_operations: bool = True
    include_accessors: bool = False
    only_components: bool = False
    min_content_length: int = 50
    max_content_length: int = 5000

    @classmethod
    def default(cls) -> "ChunkFilter":
        return cls()

    @classmethod
    def components_only(cls) -> "ChunkFilter":
        return cls(only_components=True)

    @classmethod
    def endpoints_only(cls) -> "ChunkFilter":
        return cls(
            include_classes=False,
            include_methods=False,
            include_interfaces=False,
            include_fields=False,
            include_business_logic=False,
            include_crud_operations=False,
        )

    def kinds(self) -> set[ChunkKind]:
        wanted = {
            ChunkKind.CLASS: self.include_classes,
            ChunkKind.METHOD: self.include_methods,
            ChunkKind.INTERFACE: self.include_interfaces,
            ChunkKind.CLASS_METADATA: self.include_metadata,
            ChunkKind.FIELDS: self.include_fields,
            ChunkKind.REST_ENDPOINTS: self.include_rest_endpoints,
            ChunkKind.BUSINESS_LOGIC: self.include_business_logic,
            ChunkKind.CRUD_OPERATIONS: self.include_crud_operations,
            ChunkKind.ACCESSORS: self.include_accessors,
        }
        return {kind for kind, on in wanted.items() if on}

    def accepts(self, chunk: Chunk) -> bool:
        if chunk.kind not in self.kinds():
            return False
        if not self.min_content_length <= len(chunk.content) <= self.max_content_length:
            return False
        if self.only_components:
            return any(chunk.metadata.get(flag) for flag in ("isController", "isService", "isRepository", "isComponent"))
        return True


def filter_chunks(chunks: Iterable[Chunk], chunk_filter: ChunkFilter | None = None) -> list[Chunk]:
    """Return the chunks accepted by chunk_filter (default filter if None)."""
    chunk_filter = chunk_filter or ChunkFilter.default()
    return [c for c in chunks if chunk_filter.accepts(c)]
