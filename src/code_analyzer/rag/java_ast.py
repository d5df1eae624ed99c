"""Parse Java source with tree-sitter into the records in code_analyzer.rag.declarations."""

import logging

import tree_sitter_java
from tree_sitter import Language, Node, Parser

from code_analyzer.rag.declarations import (
    Annotation,
    ClassDecl,
    FieldDecl,
    InterfaceDecl,
    JavaFile,
    MethodDecl,
    Parameter,
    TypeDecl,
)
from code_analyzer.rag.errors import JavaParseError

logger = logging.getLogger(__name__)

JAVA_LANGUAGE = Language(tree_sitter_java.language())

ANNOTATION_NODES = frozenset({"annotation", "marker_annotation"})
TYPE_NODES = frozenset({"class_declaration", "interface_declaration"})
FIELD_NODES = frozenset({"field_declaration", "constant_declaration"})


def _text(node: Node | None) -> str:
    if node is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def _squash(text: str) -> str:
    """Collapse runs of whitespace so signatures render on one line."""
    return " ".join(text.split())


def _modifiers(node: Node) -> tuple[tuple[str, ...], tuple[Annotation, ...]]:
    mods = next((c for c in node.children if c.type == "modifiers"), None)
    if mods is None:
        return (), ()
    keywords: list[str] = []
    annotations: list[Annotation] = []
    for child in mods.children:
        if child.type in ANNOTATION_NODES:
            annotations.append(
                Annotation(name=_text(child.child_by_field_name("name")), text=_squash(_text(child)))
            )
        elif not child.is_named:
            keywords.append(_text(child))
    return tuple(keywords), tuple(annotations)


def _type_list(node: Node | None) -> tuple[str, ...]:
    """Types under a superclass / super_interfaces / extends_interfaces / throws node."""
    if node is None:
        return ()
    holder = next((c for c in node.named_children if c.type == "type_list"), node)
    return tuple(_squash(_text(c)) for c in holder.named_children)


def _parameters(node: Node | None) -> tuple[Parameter, ...]:
    if node is None:
        return ()
    params: list[Parameter] = []
    for child in node.named_children:
        if child.type == "formal_parameter":
            params.append(
                Parameter(
                    type=_squash(_text(child.child_by_field_name("type"))),
                    name=_text(child.child_by_field_name("name")),
                )
            )
        elif child.type == "spread_parameter":
            named = [c for c in child.named_children if c.type != "modifiers"]
            declarator = named[-1] if named else None
            name_node = declarator.child_by_field_name("name") if declarator is not None else None
            params.append(Parameter(type=_squash(_text(named[0])) + "...", name=_text(name_node)))
    return tuple(params)


def _method(node: Node) -> MethodDecl:
    modifiers, annotations = _modifiers(node)
    throws = next((c for c in node.children if c.type == "throws"), None)
    return MethodDecl(
        name=_text(node.child_by_field_name("name")),
        return_type=_squash(_text(node.child_by_field_name("type"))),
        source=_text(node),
        modifiers=modifiers,
        annotations=annotations,
        parameters=_parameters(node.child_by_field_name("parameters")),
        type_parameters=_squash(_text(node.child_by_field_name("type_parameters"))),
        throws=_type_list(throws),
    )


def _field(node: Node) -> FieldDecl:
    modifiers, annotations = _modifiers(node)
    names = tuple(
        _text(d.child_by_field_name("name")) for d in node.children_by_field_name("declarator")
    )
    return FieldDecl(
        names=names,
        type=_squash(_text(node.child_by_field_name("type"))),
        source=_text(node),
        modifiers=modifiers,
        annotations=annotations,
    )


def _type_decl(node: Node) -> TypeDecl:
    modifiers, annotations = _modifiers(node)
    body = node.child_by_field_name("body")
    members: list[MethodDecl | FieldDecl] = []
    for child in body.named_children if body is not None else ():
        if child.type == "method_declaration":
            members.append(_method(child))
        elif child.type in FIELD_NODES:
            members.append(_field(child))

    if node.type == "interface_declaration":
        extends = next((c for c in node.children if c.type == "extends_interfaces"), None)
        return InterfaceDecl(
            name=_text(node.child_by_field_name("name")),
            source=_text(node),
            modifiers=modifiers,
            annotations=annotations,
            type_parameters=_squash(_text(node.child_by_field_name("type_parameters"))),
            extends=_type_list(extends),
            members=tuple(members),
        )
    return ClassDecl(
        name=_text(node.child_by_field_name("name")),
        source=_text(node),
        modifiers=modifiers,
        annotations=annotations,
        type_parameters=_squash(_text(node.child_by_field_name("type_parameters"))),
        extends=_type_list(node.child_by_field_name("superclass")),
        implements=_type_list(node.child_by_field_name("interfaces")),
        members=tuple(members),
    )


def _import_name(node: Node) -> str:
    name = next((c for c in node.named_children if c.type in ("scoped_identifier", "identifier")), None)
    return _text(name)


def parse_java(source: str | bytes, path: str | None = None) -> JavaFile:
    """Parse one compilation unit. Raises JavaParseError if tree-sitter reports errors."""
    data = source.encode("utf-8") if isinstance(source, str) else source
    tree = Parser(JAVA_LANGUAGE).parse(data)
    root = tree.root_node
    if root.has_error:
        raise JavaParseError(f"syntax errors in {path or '<source>'}", path=path)

    package = ""
    imports: list[str] = []
    for child in root.named_children:
        if child.type == "package_declaration":
            name = next((c for c in child.named_children if c.type in ("scoped_identifier", "identifier")), None)
            package = _text(name)
        elif child.type == "import_declaration":
            imports.append(_import_name(child))

    # Pre-order walk so nested and local classes follow their enclosing class.
    types: list[TypeDecl] = []
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type in TYPE_NODES:
            types.append(_type_decl(node))
        stack.extend(reversed(node.named_children))

    logger.debug("java_ast: parsed %s (package=%s, %d types)", path or "<source>", package, len(types))
    return JavaFile(package=package, imports=tuple(imports), types=tuple(types))
