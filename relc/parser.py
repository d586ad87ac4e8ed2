"""relc.parser

Recursive-descent parser for RELang declaration files.

Grammar (informal):

    chunk     := (class | function | variable | RAW_BLOCK | ';')*
    class     := 'class' NAME (':' NAME (',' NAME)*)? '{' member* '}' ';'?
    member    := function | variable | RAW_BLOCK | ';'
    function  := modifier? type callconv? NAME '(' params? ')' address? ';'
    variable  := type NAME address? ';'
    params    := type NAME (',' type NAME)*
    type      := NAME '*'*
    address   := '@' NUMBER           (hexadecimal, 0x prefix)

The parser only builds the declaration tree; it does not check addresses or
offsets (that is the semantic builder's job).
"""

from __future__ import annotations

from typing import List, Optional

from relc.lexer import Lexer, Token, TokenType
from relc.ast_nodes import (
    AddressLiteral,
    Chunk,
    ClassDecl,
    FunctionDecl,
    MemberDecl,
    ParameterDecl,
    RawBlockDecl,
    TopLevelDecl,
    TypeRef,
    VariableDecl,
)


class ParserError(Exception):
    """Parser error"""
    def __init__(self, message: str, token: Optional[Token] = None):
        self.message = message
        self.token = token
        if token:
            super().__init__(f"{message} at {token.line}:{token.column}")
        else:
            super().__init__(message)


class Parser:
    """Parser for RELang"""

    def __init__(self, tokens: List[Token]):
        self.tokens: List[Token] = list(tokens)
        self.position = 0
        self.current_token: Optional[Token] = self.tokens[0] if self.tokens else None

    def parse(self) -> Chunk:
        """Parse entire chunk"""
        decls: List[TopLevelDecl] = []

        while self.current_token is not None and not self._at(TokenType.EOF):
            if self._match(TokenType.SEMICOLON):
                continue
            if self._at_keyword("class"):
                decls.append(self._parse_class())
                continue
            decls.append(self._parse_declaration())

        if self.tokens:
            first = self.tokens[0]
            return Chunk(declarations=decls, line=first.line, column=first.column)
        return Chunk(declarations=decls, line=1, column=1)

    def advance(self) -> Optional[Token]:
        """Move to next token"""
        if self.position < len(self.tokens) - 1:
            self.position += 1
            self.current_token = self.tokens[self.position]
        return self.current_token

    def peek(self, offset: int = 1) -> Optional[Token]:
        """Peek ahead"""
        pos = self.position + offset
        if pos < len(self.tokens):
            return self.tokens[pos]
        return None

    # -----------------
    # Helpers
    # -----------------

    def _at(self, t: TokenType) -> bool:
        return self.current_token is not None and self.current_token.type == t

    def _at_keyword(self, *keywords: str) -> bool:
        return self._at(TokenType.KEYWORD) and self.current_token.value in keywords

    def _match(self, t: TokenType) -> bool:
        if self._at(t):
            self.advance()
            return True
        return False

    def _expect(self, t: TokenType, msg: str) -> Token:
        tok = self.current_token
        if tok is None or tok.type != t:
            raise ParserError(msg, tok)
        self.advance()
        return tok

    def _expect_keyword(self, kw: str, msg: str) -> Token:
        tok = self.current_token
        if tok is None or tok.type != TokenType.KEYWORD or tok.value != kw:
            raise ParserError(msg, tok)
        self.advance()
        return tok

    # -----------------
    # Declarations
    # -----------------

    def _parse_class(self) -> ClassDecl:
        class_tok = self._expect_keyword("class", "Expected 'class'")
        name_tok = self._expect(TokenType.IDENTIFIER, "Expected class name")
        decl = ClassDecl(name=name_tok.value, line=class_tok.line, column=class_tok.column)

        if self._match(TokenType.COLON):
            base = self._expect(TokenType.IDENTIFIER, "Expected base class name")
            decl.base_classes.append(base.value)
            while self._match(TokenType.COMMA):
                base = self._expect(TokenType.IDENTIFIER, "Expected base class name")
                decl.base_classes.append(base.value)

        self._expect(TokenType.LBRACE, "Expected '{' after class header")
        while not self._at(TokenType.RBRACE):
            if self._at(TokenType.EOF):
                raise ParserError(f"Unterminated class '{decl.name}'", self.current_token)
            if self._match(TokenType.SEMICOLON):
                continue
            if self._at_keyword("class"):
                raise ParserError("Nested classes are not supported", self.current_token)
            decl.members.append(self._parse_declaration())
        self._expect(TokenType.RBRACE, "Expected '}' after class body")
        self._match(TokenType.SEMICOLON)
        return decl

    def _parse_declaration(self) -> MemberDecl:
        """Function, variable or raw block (at top level or inside a class)."""
        tok = self.current_token
        if self._at(TokenType.RAW_BLOCK):
            self.advance()
            return RawBlockDecl(text=tok.value, line=tok.line, column=tok.column)

        modifier: Optional[Token] = None
        if self._at_keyword(*Lexer.FUNCTION_MODIFIERS):
            modifier = self.current_token
            self.advance()

        ty = self._parse_type()

        calling_convention: Optional[Token] = None
        if self._at_keyword(*Lexer.CALLING_CONVENTIONS):
            calling_convention = self.current_token
            self.advance()

        name_tok = self._expect(TokenType.IDENTIFIER, "Expected declaration name")

        if self._match(TokenType.LPAREN):
            params = self._parse_parameter_list()
            self._expect(TokenType.RPAREN, "Expected ')' after parameter list")
            address = self._parse_address()
            self._expect(TokenType.SEMICOLON, "Expected ';' after function declaration")
            start = modifier or ty
            return FunctionDecl(
                name=name_tok.value,
                return_type=ty,
                parameters=params,
                modifier=modifier.value if modifier else None,
                calling_convention=calling_convention.value if calling_convention else None,
                address=address,
                line=start.line,
                column=start.column,
            )

        if modifier is not None:
            raise ParserError(f"'{modifier.value}' is only valid on functions", modifier)
        if calling_convention is not None:
            raise ParserError("Calling conventions are only valid on functions", calling_convention)

        address = self._parse_address()
        self._expect(TokenType.SEMICOLON, "Expected ';' after variable declaration")
        return VariableDecl(name=name_tok.value, type=ty, address=address, line=ty.line, column=ty.column)

    def _parse_type(self) -> TypeRef:
        tok = self._expect(TokenType.IDENTIFIER, "Expected type name")
        ty = TypeRef(name=tok.value, line=tok.line, column=tok.column)
        while self._match(TokenType.STAR):
            ty.pointer_depth += 1
        return ty

    def _parse_parameter_list(self) -> List[ParameterDecl]:
        params: List[ParameterDecl] = []
        if self._at(TokenType.RPAREN):
            return params
        while True:
            ty = self._parse_type()
            name_tok = self._expect(TokenType.IDENTIFIER, "Expected parameter name")
            params.append(ParameterDecl(name=name_tok.value, type=ty, line=ty.line, column=ty.column))
            if not self._match(TokenType.COMMA):
                break
        return params

    def _parse_address(self) -> Optional[AddressLiteral]:
        if not self._match(TokenType.AT):
            return None
        tok = self._expect(TokenType.NUMBER, "Expected address after '@'")
        if not tok.value.lower().startswith("0x") or len(tok.value) <= 2:
            raise ParserError(f"Address '{tok.value}' must be hexadecimal (0x...)", tok)
        return AddressLiteral(text=tok.value, line=tok.line, column=tok.column)
