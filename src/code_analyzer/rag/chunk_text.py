"""Build the text of each chunk kind from parsed declarations."""

from typing import Sequence

from code_analyzer.rag.chunk_rules import is_important_annotation, is_important_import, is_relevant_field
from code_analyzer.rag.declarations import MethodDecl, TypeDecl
from code_analyzer.rag.models import ChunkKind

CLASS_MODIFIER_ORDER = ("public", "private", "protected", "static", "final", "abstract")
METHOD_MODIFIER_ORDER = CLASS_MODIFIER_ORDER + ("synchronized",)


def _ordered(modifiers: Sequence[str], order: Sequence[str]) -> str:
    return "".join(f"{m} " for m in order if m in modifiers)


def context_prefix(package_name: str, imports: Sequence[str]) -> str:
    """Package line plus the important imports, as a chunk preamble."""
    parts: list[str] = []
    if package_name:
        parts.append(f"package {package_name};\n\n")
    parts.extend(f"import {imp};\n" for imp in imports if is_important_import(imp))
    if imports:
        parts.append("\n")
    return "".join(parts)


def class_signature(decl: TypeDecl) -> str:
    """e.g. 'public abstract class Repo<T> extends Base implements A, B'."""
    sig = _ordered(decl.modifiers, CLASS_MODIFIER_ORDER)
    sig += ("interface " if decl.is_interface else "class ") + decl.name
    if decl.type_parameters:
        sig += decl.type_parameters
    if decl.extends:
        sig += " extends " + ", ".join(decl.extends)
    if decl.implements:
        sig += " implements " + ", ".join(decl.implements)
    return sig


def method_signature(method: MethodDecl) -> str:
    sig = _ordered(method.modifiers, METHOD_MODIFIER_ORDER)
    if method.type_parameters:
        sig += f"{method.type_parameters} "
    params = ", ".join(f"{p.type} {p.name}" for p in method.parameters)
    sig += f"{method.return_type} {method.name}({params})"
    if method.throws:
        sig += " throws " + ", ".join(method.throws)
    return sig


def metadata_document(decl: TypeDecl, package_name: str, imports: Sequence[str]) -> str:
    """Class overview: annotations, signature and method signatures without bodies."""
    lines = [context_prefix(package_name, imports)]
    lines.extend(f"{a.text}\n" for a in decl.annotations)
    lines.append(class_signature(decl) + " {\n")
    for method in decl.methods:
        lines.extend(f"    {a.text}\n" for a in method.annotations)
        lines.append(f"    {method_signature(method)};\n")
    lines.append("}\n")
    return "".join(lines)


def full_class_text(decl: TypeDecl, package_name: str, imports: Sequence[str]) -> str:
    return context_prefix(package_name, imports) + decl.source


def group_text(
    decl: TypeDecl,
    group: ChunkKind,
    methods: Sequence[MethodDecl],
    package_name: str,
    imports: Sequence[str],
) -> str:
    """One method group with the class context it needs to stand alone."""
    parts = [context_prefix(package_name, imports)]
    parts.append(f"// Class: {decl.name}\n// Group: {group.value}\n\n")
    parts.extend(f"{a.text}\n" for a in decl.annotations if is_important_annotation(a))
    keyword = "interface" if decl.is_interface else "class"
    parts.append(f"public {keyword} {decl.name} {{\n\n")
    parts.extend(f"    {f.source}\n" for f in decl.fields if is_relevant_field(f))
    if decl.fields:
        parts.append("\n")
    parts.extend(f"    {m.source}\n\n" for m in methods)
    parts.append("}\n")
    return "".join(parts)


def method_text(decl: TypeDecl, method: MethodDecl, package_name: str) -> str:
    parts = [f"// Class: {decl.name}\n// Package: {package_name}\n\n"]
    parts.extend(
        f"// Class annotation: {a.text}\n" for a in decl.annotations if is_important_annotation(a)
    )
    if decl.annotations:
        parts.append("\n")
    parts.append(method.source)
    return "".join(parts)


def fields_text(decl: TypeDecl, package_name: str) -> str:
    parts = [f"// Class: {decl.name}\n// Package: {package_name}\n// Fields and Properties\n\n"]
    parts.extend(f"{f.source}\n" for f in decl.fields)
    return "".join(parts)
