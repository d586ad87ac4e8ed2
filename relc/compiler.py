"""
Main Compiler Driver

Orchestrates the pipeline: lex, parse, build the program model from the
declaration events, resolve layouts, emit C++.
"""

from __future__ import annotations

from typing import Iterable, List, Optional
from dataclasses import dataclass
import logging
import os

from relc.lexer import Lexer, Token
from relc.parser import Parser, ParserError
from relc.ast_nodes import Chunk
from relc.context import InternalCompilerError
from relc.events import Event, walk
from relc.semantics import SemanticBuilder, SemanticError
from relc.layout import LayoutError, LayoutResolver, TypeSizes
from relc.codegen import CodeEmitter, CppSyntax
from relc.model import Program

logger = logging.getLogger(__name__)

DEFAULT_POINTER_SIZE = 4


@dataclass
class CompilationResult:
    """Result of compilation"""
    success: bool
    output_file: Optional[str] = None
    errors: List[str] = None
    warnings: List[str] = None
    code: Optional[str] = None

    def __post_init__(self):
        if self.errors is None:
            self.errors = []
        if self.warnings is None:
            self.warnings = []


class Compiler:
    """Main compiler class orchestrating all compilation stages"""

    def __init__(
        self,
        strict: bool = True,
        *,
        pointer_size: Optional[int] = None,
        size_assertions: bool = True,
        includes: Optional[List[str]] = None,
    ):
        self.strict = strict
        self.size_assertions = size_assertions
        self.includes = list(includes or [])

        if pointer_size is None:
            pointer_size = int(os.environ.get("RELC_POINTER_SIZE", DEFAULT_POINTER_SIZE))
        if pointer_size <= 0:
            raise ValueError(f"pointer size must be positive, got {pointer_size}")
        self.syntax = CppSyntax(pointer_size=pointer_size)

    def compile_file(self, source_file: str, output_file: Optional[str] = None) -> CompilationResult:
        """Compile a declaration file, writing the header to `output_file` if given."""
        try:
            with open(source_file, 'r', encoding='utf-8') as f:
                source_code = f.read()
        except IOError as e:
            return CompilationResult(
                success=False,
                errors=[f"Failed to read source file: {e}"]
            )
        return self.compile_code(source_code, output_file)

    def compile_code(self, source_code: str, output_file: Optional[str] = None) -> CompilationResult:
        """Compile source code"""
        # Phase 1: Lexical Analysis
        lexer = Lexer(source_code)
        tokens = lexer.tokenize()
        if lexer.has_errors():
            return CompilationResult(
                success=False,
                errors=[f"Lexical analysis failed: {e}" for e in lexer.get_errors()],
            )

        # Phase 2: Syntax Analysis
        try:
            chunk = self.get_ast(tokens)
        except ParserError as e:
            return CompilationResult(success=False, errors=[f"Syntax analysis failed: {e}"])

        return self.compile_events(walk(chunk), output_file)

    def compile_events(self, events: Iterable[Event], output_file: Optional[str] = None) -> CompilationResult:
        """Compile an already produced declaration event stream"""
        # Phase 3: Semantic model
        builder = SemanticBuilder(strict=self.strict)
        try:
            program = builder.build(events)
        except InternalCompilerError as e:
            return CompilationResult(
                success=False, errors=[f"internal compiler error: {e}"], warnings=list(builder.warnings)
            )
        except SemanticError as e:
            return CompilationResult(
                success=False, errors=[f"Semantic analysis failed: {e}"], warnings=list(builder.warnings)
            )
        warnings: List[str] = list(builder.warnings)

        # Phase 4: Layout
        resolver = LayoutResolver(self.syntax)
        try:
            program = resolver.resolve(program)
        except LayoutError as e:
            return CompilationResult(success=False, errors=[f"Layout failed: {e}"], warnings=warnings)

        # Phase 5: Code Generation
        try:
            code = self.get_code(program, resolver.sizes)
        except InternalCompilerError as e:
            return CompilationResult(success=False, errors=[f"internal compiler error: {e}"], warnings=warnings)

        if output_file:
            try:
                with open(output_file, 'w', encoding='utf-8') as f:
                    f.write(code)
            except IOError as e:
                return CompilationResult(success=False, errors=[f"Failed to write output file: {e}"], warnings=warnings)
            logger.info("wrote %s", output_file)

        return CompilationResult(
            success=True,
            output_file=output_file,
            code=code,
            warnings=warnings,
        )

    def get_tokens(self, source_code: str) -> List[Token]:
        """Get tokens from source code"""
        lexer = Lexer(source_code)
        tokens = lexer.tokenize()
        if lexer.has_errors():
            raise lexer.get_errors()[0]
        return tokens

    def get_ast(self, tokens: List[Token]) -> Chunk:
        """Get declaration tree from tokens"""
        parser = Parser(tokens)
        return parser.parse()

    def build_model(self, chunk: Chunk) -> Program:
        """Build the program model from a declaration tree"""
        return SemanticBuilder(strict=self.strict).build(walk(chunk))

    def resolve_layout(self, program: Program) -> Program:
        """Insert padding and resolve implicit offsets"""
        return LayoutResolver(self.syntax).resolve(program)

    def get_code(self, program: Program, sizes: Optional[TypeSizes] = None) -> str:
        """Generate C++ from a resolved program model.

        `sizes` carries the class sizes settled by the layout pass; without it
        the emitter can only size classes from their own fields.
        """
        emitter = CodeEmitter(
            self.syntax, size_assertions=self.size_assertions, includes=self.includes, sizes=sizes
        )
        return emitter.emit(program)
