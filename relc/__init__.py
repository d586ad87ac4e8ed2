"""
relc - RELang compiler

Turns declarations of a foreign binary's memory layout (classes with fields
at fixed offsets, functions at fixed addresses, virtual tables, calling
conventions) into C++ overlay types that call into that binary.
"""

__version__ = "0.1.0"
__author__ = "relc Contributors"
__license__ = "MIT"

from .lexer import Lexer, Token
from .parser import Parser
from .events import Event, EventKind, Phase, walk
from .semantics import SemanticBuilder, SemanticError, MissingBindingError
from .layout import LayoutResolver, LayoutError
from .codegen import CodeEmitter, CppSyntax
from .compiler import Compiler

__all__ = [
    'Lexer',
    'Token',
    'Parser',
    'Event',
    'EventKind',
    'Phase',
    'walk',
    'SemanticBuilder',
    'SemanticError',
    'MissingBindingError',
    'LayoutResolver',
    'LayoutError',
    'CodeEmitter',
    'CppSyntax',
    'Compiler',
]
