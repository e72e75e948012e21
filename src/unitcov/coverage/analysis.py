"""Static analysis of source files: executable lines, functions, complexity.

Python sources are parsed with ``ast``. Files that cannot be analyzed (other
languages, syntax errors, missing on disk) return None; callers then treat the
executed lines as the executable set.
"""

from __future__ import annotations

import ast
import os
from dataclasses import dataclass
from pathlib import Path

__all__ = ["FileAnalysis", "FunctionInfo", "SourceAnalyzer", "cyclomatic_complexity"]

# Statements that produce no line event of their own
_SILENT_STATEMENTS = (ast.Global, ast.Nonlocal, ast.Try) + (
    (ast.TryStar,) if hasattr(ast, "TryStar") else ()
)

_SCOPES = (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)


@dataclass(frozen=True, slots=True)
class FunctionInfo:
    """A function or method and its source span."""

    name: str  # qualified, e.g. "Parser.parse"
    start_line: int
    end_line: int
    complexity: int

    def contains(self, line: int) -> bool:
        return self.start_line <= line <= self.end_line


@dataclass(frozen=True, slots=True)
class FileAnalysis:
    executable_lines: frozenset[int]
    functions: tuple[FunctionInfo, ...]


def cyclomatic_complexity(node: ast.AST) -> int:
    """McCabe complexity of one function body; nested scopes are not counted."""
    complexity = 1
    stack = list(ast.iter_child_nodes(node))
    while stack:
        child = stack.pop()
        if isinstance(child, _SCOPES):
            continue
        if isinstance(child, (ast.If, ast.For, ast.AsyncFor, ast.While, ast.IfExp)):
            complexity += 1
        elif isinstance(child, ast.ExceptHandler):
            complexity += 1
        elif isinstance(child, ast.BoolOp):
            complexity += len(child.values) - 1
        elif isinstance(child, ast.comprehension):
            complexity += 1 + len(child.ifs)
        elif hasattr(ast, "match_case") and isinstance(child, ast.match_case):
            complexity += 1
        stack.extend(ast.iter_child_nodes(child))
    return complexity


def _is_docstring(stmt: ast.stmt) -> bool:
    return (
        isinstance(stmt, ast.Expr)
        and isinstance(stmt.value, ast.Constant)
        and isinstance(stmt.value.value, str)
    )


class _Visitor(ast.NodeVisitor):
    def __init__(self) -> None:
        self.lines: set[int] = set()
        self.functions: list[FunctionInfo] = []
        self._prefix: list[str] = []

    def generic_visit(self, node: ast.AST) -> None:
        if isinstance(node, ast.stmt) and not isinstance(node, _SILENT_STATEMENTS):
            if not _is_docstring(node):
                decorators = getattr(node, "decorator_list", None)
                # Decorated definitions report their first decorator line
                line = decorators[0].lineno if decorators else node.lineno
                self.lines.add(line)
        elif isinstance(node, ast.ExceptHandler):
            self.lines.add(node.lineno)
        super().generic_visit(node)

    def _visit_function(self, node: ast.FunctionDef | ast.AsyncFunctionDef) -> None:
        name = ".".join([*self._prefix, node.name])
        start = node.decorator_list[0].lineno if node.decorator_list else node.lineno
        self.functions.append(
            FunctionInfo(
                name=name,
                start_line=start,
                end_line=node.end_lineno or node.lineno,
                complexity=cyclomatic_complexity(node),
            )
        )
        self._prefix.append(node.name)
        self.generic_visit(node)
        self._prefix.pop()

    visit_FunctionDef = _visit_function
    visit_AsyncFunctionDef = _visit_function

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        self._prefix.append(node.name)
        self.generic_visit(node)
        self._prefix.pop()


class SourceAnalyzer:
    """Analyzes Python sources, caching one result per path."""

    suffixes: tuple[str, ...] = (".py", ".pyw")

    def __init__(self) -> None:
        self._cache: dict[str, FileAnalysis | None] = {}

    def can_analyze(self, path: str | os.PathLike[str]) -> bool:
        return Path(path).suffix in self.suffixes

    def analyze(self, path: str | os.PathLike[str]) -> FileAnalysis | None:
        key = os.fspath(path)
        if key not in self._cache:
            self._cache[key] = self._analyze(Path(key))
        return self._cache[key]

    def analyze_source(self, source: str, filename: str = "<source>") -> FileAnalysis | None:
        try:
            tree = ast.parse(source, filename=filename)
        except (SyntaxError, ValueError):
            return None
        visitor = _Visitor()
        visitor.visit(tree)
        return FileAnalysis(
            executable_lines=frozenset(visitor.lines),
            functions=tuple(sorted(visitor.functions, key=lambda f: (f.start_line, f.name))),
        )

    def _analyze(self, path: Path) -> FileAnalysis | None:
        if not self.can_analyze(path):
            return None
        try:
            source = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return None
        return self.analyze_source(source, filename=str(path))
