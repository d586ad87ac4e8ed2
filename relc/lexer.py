"""
Lexical Analyzer (Lexer) for RELang

Converts declaration source into a stream of tokens for the parser.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import List, Optional, Set


class TokenType(Enum):
    """Token types for the RELang lexer"""
    # Literals
    NUMBER = auto()
    RAW_BLOCK = auto()

    # Identifiers and Keywords
    IDENTIFIER = auto()
    KEYWORD = auto()

    # Punctuation
    STAR = auto()                # *
    AT = auto()                  # @
    COLON = auto()               # :
    COMMA = auto()               # ,
    SEMICOLON = auto()           # ;
    LPAREN = auto()              # (
    RPAREN = auto()              # )
    LBRACE = auto()              # {
    RBRACE = auto()              # }

    # Special
    EOF = auto()


@dataclass
class Token:
    """Represents a lexical token"""
    type: TokenType
    value: str
    line: int
    column: int

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {repr(self.value)}, {self.line}:{self.column})"


class LexerError(Exception):
    """Lexer error with line and column information"""
    def __init__(self, message: str, line: int, column: int):
        self.message = message
        self.line = line
        self.column = column
        super().__init__(f"{message} at {line}:{column}")


RAW_DELIMITER = "```"


class Lexer:
    """Lexical analyzer for RELang source code"""

    FUNCTION_MODIFIERS: Set[str] = {'virtual', 'static'}

    CALLING_CONVENTIONS: Set[str] = {
        '__cdecl', '__stdcall', '__thiscall', '__fastcall', '__vectorcall', '__clrcall',
    }

    KEYWORDS: Set[str] = {'class'} | FUNCTION_MODIFIERS | CALLING_CONVENTIONS

    PUNCTUATION = {
        '*': TokenType.STAR,
        '@': TokenType.AT,
        ':': TokenType.COLON,
        ',': TokenType.COMMA,
        ';': TokenType.SEMICOLON,
        '(': TokenType.LPAREN,
        ')': TokenType.RPAREN,
        '{': TokenType.LBRACE,
        '}': TokenType.RBRACE,
    }

    def __init__(self, source: str, filename: str = "<input>"):
        """Initialize lexer with source code"""
        self.source = source
        self.filename = filename
        self.position = 0
        self.line = 1
        self.column = 1
        self.tokens: List[Token] = []
        self.errors: List[LexerError] = []

    def current_char(self) -> Optional[str]:
        """Get current character without consuming"""
        if self.position >= len(self.source):
            return None
        return self.source[self.position]

    def peek_char(self, offset: int = 1) -> Optional[str]:
        """Peek ahead at character"""
        pos = self.position + offset
        if pos >= len(self.source):
            return None
        return self.source[pos]

    def advance(self) -> Optional[str]:
        """Consume and return current character"""
        if self.position >= len(self.source):
            return None

        char = self.source[self.position]
        self.position += 1

        if char == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1

        return char

    def skip_whitespace(self) -> None:
        while self.current_char() and self.current_char() in ' \t\r\n':
            self.advance()

    def skip_line_comment(self) -> None:
        """Skip single-line comment (//...)"""
        self.advance()  # skip first /
        self.advance()  # skip second /

        while self.current_char() and self.current_char() != '\n':
            self.advance()

    def skip_block_comment(self) -> None:
        """Skip multi-line comment (/* ... */)"""
        line, column = self.line, self.column
        self.advance()  # skip /
        self.advance()  # skip *

        while self.current_char():
            if self.current_char() == '*' and self.peek_char() == '/':
                self.advance()  # skip *
                self.advance()  # skip /
                return
            self.advance()

        self.errors.append(LexerError("Unterminated block comment", line, column))

    def read_raw_block(self) -> Optional[str]:
        """Read a ``` delimited raw block, delimiters included."""
        line, column = self.line, self.column
        end = self.source.find(RAW_DELIMITER, self.position + len(RAW_DELIMITER))
        if end < 0:
            self.errors.append(LexerError("Unterminated raw block", line, column))
            while self.current_char() is not None:
                self.advance()
            return None

        text = ""
        stop = end + len(RAW_DELIMITER)
        while self.position < stop:
            text += self.advance()
        return text

    def read_number(self) -> str:
        """Read hex (0x...) or decimal number"""
        num_str = ""
        if self.current_char() == '0' and self.peek_char() in ('x', 'X'):
            num_str += self.advance()  # 0
            num_str += self.advance()  # x
            while self.current_char() and self.current_char() in '0123456789abcdefABCDEF':
                num_str += self.advance()
            return num_str

        while self.current_char() and self.current_char().isdigit():
            num_str += self.advance()
        return num_str

    def read_identifier(self) -> str:
        """Read identifier or keyword"""
        ident = ""
        while self.current_char() and (self.current_char().isalnum() or self.current_char() == '_'):
            ident += self.advance()
        return ident

    def tokenize(self) -> List[Token]:
        """Tokenize entire source code"""
        self.tokens = []
        self.errors = []

        while self.position < len(self.source):
            self.skip_whitespace()

            if self.position >= len(self.source):
                break

            token_line = self.line
            token_column = self.column
            char = self.current_char()

            if char == '/' and self.peek_char() == '/':
                self.skip_line_comment()
                continue
            if char == '/' and self.peek_char() == '*':
                self.skip_block_comment()
                continue

            if self.source.startswith(RAW_DELIMITER, self.position):
                text = self.read_raw_block()
                if text is not None:
                    self.tokens.append(Token(TokenType.RAW_BLOCK, text, token_line, token_column))
                continue

            if char.isdigit():
                value = self.read_number()
                self.tokens.append(Token(TokenType.NUMBER, value, token_line, token_column))
                continue

            if char.isalpha() or char == '_':
                ident = self.read_identifier()
                token_type = TokenType.KEYWORD if ident in self.KEYWORDS else TokenType.IDENTIFIER
                self.tokens.append(Token(token_type, ident, token_line, token_column))
                continue

            if char in self.PUNCTUATION:
                self.advance()
                self.tokens.append(Token(self.PUNCTUATION[char], char, token_line, token_column))
                continue

            self.errors.append(LexerError(f"Unexpected character '{char}'", token_line, token_column))
            self.advance()

        self.tokens.append(Token(TokenType.EOF, "", self.line, self.column))
        return self.tokens

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def get_errors(self) -> List[LexerError]:
        return self.errors
