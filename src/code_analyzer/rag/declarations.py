"""Declarations the chunker consumes: a closed set of Java declaration variants.

A JavaFile holds ClassDecl / InterfaceDecl values; their members are
MethodDecl / FieldDecl values.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Annotation:
    name: str
    text: str

    @property
    def simple_name(self) -> str:
        """Name without package qualifier: org.x.Service -> Service."""
        return self.name.rsplit(".", 1)[-1]


@dataclass(frozen=True)
class Parameter:
    type: str
    name: str


@dataclass(frozen=True)
class MethodDecl:
    name: str
    return_type: str
    source: str
    modifiers: tuple[str, ...] = ()
    annotations: tuple[Annotation, ...] = ()
    parameters: tuple[Parameter, ...] = ()
    type_parameters: str = ""
    throws: tuple[str, ...] = ()

    @property
    def is_public(self) -> bool:
        return "public" in self.modifiers

    @property
    def is_static(self) -> bool:
        return "static" in self.modifiers


@dataclass(frozen=True)
class FieldDecl:
    names: tuple[str, ...]
    type: str
    source: str
    modifiers: tuple[str, ...] = ()
    annotations: tuple[Annotation, ...] = ()


@dataclass(frozen=True)
class TypeDecl:
    name: str
    source: str
    modifiers: tuple[str, ...] = ()
    annotations: tuple[Annotation, ...] = ()
    type_parameters: str = ""
    extends: tuple[str, ...] = ()
    implements: tuple[str, ...] = ()
    members: tuple[MethodDecl | FieldDecl, ...] = ()

    @property
    def is_interface(self) -> bool:
        return isinstance(self, InterfaceDecl)

    @property
    def methods(self) -> list[MethodDecl]:
        return [m for m in self.members if isinstance(m, MethodDecl)]

    @property
    def fields(self) -> list[FieldDecl]:
        return [m for m in self.members if isinstance(m, FieldDecl)]


class ClassDecl(TypeDecl):
    pass


class InterfaceDecl(TypeDecl):
    pass


@dataclass(frozen=True)
class JavaFile:
    package: str = ""
    imports: tuple[str, ...] = ()
    types: tuple[TypeDecl, ...] = ()

