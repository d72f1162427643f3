"""Syntax-tree outlines for JavaScript/TypeScript (tree-sitter) and Python (ast)."""

from __future__ import annotations

import ast
from functools import lru_cache
from typing import Iterator

import tree_sitter_javascript as tsjavascript
import tree_sitter_typescript as tstypescript
from tree_sitter import Language, Node, Parser

from context_optimizer.errors import ParseError
from context_optimizer.models.entities import (
    AstInfo,
    ClassInfo,
    ExportInfo,
    FunctionInfo,
    ImportInfo,
    MethodInfo,
    VariableInfo,
)

LANGUAGE_BY_EXTENSION = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".tsx": "tsx",
    ".py": "python",
}

_FUNCTION_NODES = {"function_declaration", "generator_function_declaration"}
_CLASS_NODES = {"class_declaration", "abstract_class_declaration"}
_METHOD_NODES = {"method_definition", "method_signature", "abstract_method_signature"}


def supports(extension: str) -> bool:
    """Return True when an outline can be extracted for this extension."""
    return extension.lower() in LANGUAGE_BY_EXTENSION


def parse_source(content: str, extension: str) -> AstInfo:
    """Parse source text and collect its declarations.

    Raises ``ParseError`` for unsupported extensions and malformed input.
    """
    language = LANGUAGE_BY_EXTENSION.get(extension.lower())
    if language is None:
        raise ParseError(f"No parser for extension {extension!r}")
    if language == "python":
        return _outline_python(content)
    return _outline_tree_sitter(content, language)


# tree-sitter ----------------------------------------------------------


@lru_cache(maxsize=None)
def _parser(language: str) -> Parser:
    if language == "typescript":
        lang = Language(tstypescript.language_typescript())
    elif language == "tsx":
        lang = Language(tstypescript.language_tsx())
    else:
        lang = Language(tsjavascript.language())
    return Parser(lang)


def _outline_tree_sitter(content: str, language: str) -> AstInfo:
    tree = _parser(language).parse(content.encode("utf-8"))
    root = tree.root_node
    if root.has_error:
        raise ParseError(f"Malformed {language} source near line {_first_error_line(root)}")

    info = AstInfo()
    for node in _walk(root):
        if node.type in _FUNCTION_NODES:
            info.functions.append(
                FunctionInfo(
                    name=_field_text(node, "name") or "anonymous",
                    params=_param_count(node),
                    line=_line(node),
                )
            )
        elif node.type in _CLASS_NODES:
            info.classes.append(
                ClassInfo(
                    name=_field_text(node, "name") or "anonymous",
                    line=_line(node),
                    methods=_class_methods(node),
                )
            )
        elif node.type == "import_statement":
            source = node.child_by_field_name("source")
            if source is not None:
                info.imports.append(
                    ImportInfo(
                        source=_text(source).strip("'\"`"),
                        specifiers=_import_specifiers(node),
                        line=_line(node),
                    )
                )
        elif node.type == "export_statement":
            info.exports.append(_export_info(node))
        elif node.type == "variable_declarator":
            name = node.child_by_field_name("name")
            if name is not None and name.type == "identifier":
                value = node.child_by_field_name("value")
                info.variables.append(
                    VariableInfo(
                        name=_text(name),
                        kind=value.type if value is not None else "unknown",
                        line=_line(node),
                    )
                )
    return info


def _walk(root: Node) -> Iterator[Node]:
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.named_children))


def _text(node: Node) -> str:
    return node.text.decode("utf-8", errors="replace") if node.text is not None else ""


def _field_text(node: Node, field_name: str) -> str | None:
    child = node.child_by_field_name(field_name)
    return _text(child) if child is not None else None


def _line(node: Node) -> int:
    return node.start_point[0] + 1


def _param_count(node: Node) -> int:
    params = node.child_by_field_name("parameters")
    if params is None:
        return 0
    return sum(1 for child in params.named_children if child.type != "comment")


def _class_methods(node: Node) -> list[MethodInfo]:
    body = node.child_by_field_name("body")
    if body is None:
        return []
    methods: list[MethodInfo] = []
    for member in body.named_children:
        if member.type not in _METHOD_NODES:
            continue
        name = _field_text(member, "name") or "anonymous"
        keywords = {child.type for child in member.children if not child.is_named}
        if name == "constructor":
            kind = "constructor"
        elif "get" in keywords:
            kind = "get"
        elif "set" in keywords:
            kind = "set"
        else:
            kind = "method"
        methods.append(MethodInfo(name=name, params=_param_count(member), kind=kind, line=_line(member)))
    return methods


def _import_specifiers(node: Node) -> list[str]:
    names: list[str] = []
    for child in node.named_children:
        if child.type != "import_clause":
            continue
        for part in child.named_children:
            if part.type == "identifier":
                names.append(_text(part))
            elif part.type == "namespace_import":
                names.extend(_text(ident) for ident in part.named_children if ident.type == "identifier")
            elif part.type == "named_imports":
                for spec in part.named_children:
                    if spec.type != "import_specifier":
                        continue
                    local = spec.child_by_field_name("alias") or spec.child_by_field_name("name")
                    if local is not None:
                        names.append(_text(local))
    return names


def _export_info(node: Node) -> ExportInfo:
    declaration = node.child_by_field_name("declaration")
    if declaration is not None:
        name = _field_text(declaration, "name")
        if name is None and declaration.type in {"lexical_declaration", "variable_declaration"}:
            declarators = [child for child in declaration.named_children if child.type == "variable_declarator"]
            if declarators:
                name = _field_text(declarators[0], "name")
        return ExportInfo(kind=declaration.type, name=name, line=_line(node))
    keywords = {child.type for child in node.children if not child.is_named}
    if "default" in keywords:
        value = node.child_by_field_name("value")
        return ExportInfo(kind="default", name=_text(value) if value is not None and value.type == "identifier" else None, line=_line(node))
    if node.child_by_field_name("source") is not None:
        return ExportInfo(kind="re-export", name=None, line=_line(node))
    return ExportInfo(kind="named", name=None, line=_line(node))


def _first_error_line(root: Node) -> int:
    for node in _walk(root):
        if node.type == "ERROR" or node.is_missing:
            return _line(node)
    return _line(root)


# Python ---------------------------------------------------------------


def _outline_python(content: str) -> AstInfo:
    try:
        tree = ast.parse(content)
    except (SyntaxError, ValueError) as exc:
        raise ParseError(f"Malformed python source: {exc}") from exc
    collector = _PythonOutlineCollector()
    collector.visit(tree)
    return collector.info


def _arity(args: ast.arguments) -> int:
    count = len(args.posonlyargs) + len(args.args) + len(args.kwonlyargs)
    if args.vararg is not None:
        count += 1
    if args.kwarg is not None:
        count += 1
    return count


class _PythonOutlineCollector(ast.NodeVisitor):
    """Collect top-level and nested declarations; methods stay with their class."""

    def __init__(self) -> None:
        self.info = AstInfo()
        self._depth = 0

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        methods = [
            MethodInfo(
                name=item.name,
                params=_arity(item.args),
                kind="constructor" if item.name == "__init__" else "method",
                line=item.lineno,
            )
            for item in node.body
            if isinstance(item, (ast.FunctionDef, ast.AsyncFunctionDef))
        ]
        self.info.classes.append(ClassInfo(name=node.name, line=node.lineno, methods=methods))
        for item in node.body:
            if isinstance(item, (ast.FunctionDef, ast.AsyncFunctionDef)):
                self._visit_scope(item.body)
            else:
                self._visit_scope([item])

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:
        self._add_function(node)

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> None:
        self._add_function(node)

    def visit_Import(self, node: ast.Import) -> None:
        for alias in node.names:
            self.info.imports.append(
                ImportInfo(source=alias.name, specifiers=[alias.asname or alias.name], line=node.lineno)
            )

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        source = "." * node.level + (node.module or "")
        self.info.imports.append(
            ImportInfo(
                source=source,
                specifiers=[alias.asname or alias.name for alias in node.names],
                line=node.lineno,
            )
        )

    def visit_Assign(self, node: ast.Assign) -> None:
        if self._depth == 0:
            for target in node.targets:
                if not isinstance(target, ast.Name):
                    continue
                if target.id == "__all__" and isinstance(node.value, (ast.List, ast.Tuple)):
                    for element in node.value.elts:
                        if isinstance(element, ast.Constant) and isinstance(element.value, str):
                            self.info.exports.append(ExportInfo(kind="__all__", name=element.value, line=node.lineno))
                else:
                    self.info.variables.append(
                        VariableInfo(name=target.id, kind=type(node.value).__name__, line=node.lineno)
                    )
        self.generic_visit(node)

    def _add_function(self, node: ast.FunctionDef | ast.AsyncFunctionDef) -> None:
        self.info.functions.append(FunctionInfo(name=node.name, params=_arity(node.args), line=node.lineno))
        self._visit_scope(node.body)

    def _visit_scope(self, body: list[ast.stmt]) -> None:
        self._depth += 1
        try:
            for statement in body:
                self.visit(statement)
        finally:
            self._depth -= 1


__all__ = ["LANGUAGE_BY_EXTENSION", "parse_source", "supports"]
