from __future__ import annotations

from typing import List, Optional

from kfmt.lang.ast import (
    Annotation,
    ClassBody,
    ClassDecl,
    EnumEntry,
    FunctionDecl,
    InitBlock,
    Modifiers,
    Node,
    Parameter,
    ParameterList,
    PropertyDecl,
    SuperTypeEntry,
    TypeAlias,
    TypeRef,
)
from kfmt.lang.keywords import DECLARATION_KEYWORDS, MODIFIER_WORDS
from kfmt.lang.lexer import Tok, TokenType


class DeclarationParsingMixin:
    """Parsing of declarations, modifiers and types.

    Types are not modelled as trees: a `TypeRef` keeps the exact token run,
    and the node formatter prints it on one line.
    """

    # ====================================================================
    # Modifiers and Annotations
    # ====================================================================

    def _is_modifier(self, offset: int = 0) -> bool:
        token = self.peek(offset)
        following = self.peek(offset + 1)
        return (
            token is not None
            and token.type is TokenType.IDENTIFIER
            and token.text in MODIFIER_WORDS
            and following is not None
            and (following.type is TokenType.IDENTIFIER or following.text == "@")
        )

    def _skip_annotation(self, offset: int) -> Optional[int]:
        """Offset just past the annotation starting at `offset`, or None."""
        name = self.peek(offset + 1)
        if name is None or name.type is not TokenType.IDENTIFIER or not self.adjacent(offset + 1):
            return None
        offset += 2
        while self.check(".", ":", offset=offset) and self.adjacent(offset):
            following = self.peek(offset + 1)
            if following is None or following.type is not TokenType.IDENTIFIER:
                break
            offset += 2
        if self.check("(", offset=offset) and self.adjacent(offset):
            depth = 0
            while True:
                token = self.peek(offset)
                if token is None:
                    return None
                if token.text == "(":
                    depth += 1
                elif token.text == ")":
                    depth -= 1
                    if depth == 0:
                        return offset + 1
                offset += 1
        return offset

    def is_declaration_start(self) -> bool:
        offset = 0
        while True:
            token = self.peek(offset)
            if token is None:
                return False
            if token.text == "@":
                skipped = self._skip_annotation(offset)
                if skipped is None:
                    return False
                offset = skipped
                continue
            if self._is_modifier(offset):
                offset += 1
                continue
            return token.type is TokenType.IDENTIFIER and token.text in DECLARATION_KEYWORDS

    def parse_annotation(self) -> Annotation:
        at = self.expect("@")
        name = [self.expect_identifier(allow_keywords=("file",))]
        while self.check(".", ":") and self.adjacent():
            following = self.peek(1)
            if following is None or following.type is not TokenType.IDENTIFIER:
                break
            name.append(self.advance())
            name.append(self.advance())
        arguments = None
        if self.check("(") and self.adjacent():
            arguments = self.parse_value_arguments()
        return Annotation(at=at, name=name, arguments=arguments)

    def parse_modifiers(self) -> Optional[Modifiers]:
        items = []
        while True:
            if self.check("@") and self._skip_annotation(0) is not None:
                items.append(self.parse_annotation())
            elif self._is_modifier():
                items.append(self.advance())
            else:
                break
        return Modifiers(items=items) if items else None

    # ====================================================================
    # Declarations
    # ====================================================================

    def parse_declaration(self) -> Node:
        modifiers = self.parse_modifiers()
        token = self.current()
        if token is None:
            raise self.error("Unexpected end of file", expected=["declaration"])
        if token.text == "fun":
            return self.parse_function(modifiers)
        if token.text in ("val", "var"):
            return self.parse_property(modifiers)
        if token.text in ("class", "interface", "object"):
            return self.parse_class(modifiers)
        if token.text == "typealias":
            return self.parse_typealias(modifiers)
        raise self.error(
            "Unexpected token",
            expected=["'fun'", "'val'", "'var'", "'class'", "'interface'", "'object'"],
        )

    def parse_declaration_name(self) -> List[Tok]:
        """A simple name, an extension receiver plus name, or a destructuring list."""
        tokens: List[Tok] = []
        if self.check("("):
            tokens.append(self.advance())
            while not self.check(")"):
                tokens.append(self.expect_identifier())
                if self.check(":"):
                    tokens.append(self.advance())
                    self._collect_type(tokens)
                if not self.check(","):
                    break
                tokens.append(self.advance())
            tokens.append(self.expect(")"))
            return tokens
        self._collect_type(tokens, allow_function_arrow=False)
        while self.check(".", "?."):
            tokens.append(self.advance())
            tokens.append(self.expect_identifier())
        return tokens

    def parse_function(self, modifiers: Optional[Modifiers]) -> FunctionDecl:
        keyword = self.expect("fun")
        type_parameters = self.parse_type_parameters() if self.check("<") else None
        name = self.parse_declaration_name()
        parameters = self.parse_parameter_list()
        function = FunctionDecl(
            keyword=keyword,
            name=name,
            parameters=parameters,
            modifiers=modifiers,
            type_parameters=type_parameters,
        )
        if self.check(":"):
            function.colon = self.advance()
            function.return_type = self.parse_type()
        if self.check("{"):
            function.body = self.parse_block()
        elif self.check("="):
            function.eq = self.advance()
            function.expression_body = self.parse_expression()
        return function

    def parse_parameter_list(self) -> ParameterList:
        lparen = self.expect("(")
        parameters: List[Parameter] = []
        commas: List[Tok] = []
        while not self.check(")"):
            parameters.append(self.parse_parameter())
            if not self.check(","):
                break
            commas.append(self.advance())
        rparen = self.expect(")")
        return ParameterList(lparen=lparen, parameters=parameters, commas=commas, rparen=rparen)

    def parse_parameter(self) -> Parameter:
        modifiers = self.parse_modifiers()
        val_var = self.accept("val", "var")
        parameter = Parameter(name=self.expect_identifier(), modifiers=modifiers, val_var=val_var)
        if self.check(":"):
            parameter.colon = self.advance()
            parameter.type = self.parse_type()
        if self.check("="):
            parameter.eq = self.advance()
            parameter.default = self.parse_expression()
        return parameter

    def parse_property(self, modifiers: Optional[Modifiers]) -> PropertyDecl:
        keyword = self.expect("val", "var")
        type_parameters = self.parse_type_parameters() if self.check("<") else None
        prop = PropertyDecl(
            keyword=keyword,
            name=self.parse_declaration_name(),
            modifiers=modifiers,
            type_parameters=type_parameters,
        )
        if self.check(":"):
            prop.colon = self.advance()
            prop.type = self.parse_type()
        if self.check("="):
            prop.eq = self.advance()
            prop.initializer = self.parse_expression()
        elif self.check("by"):
            prop.by_keyword = self.advance()
            prop.delegate = self.parse_expression()
        return prop

    def parse_class(self, modifiers: Optional[Modifiers]) -> ClassDecl:
        keyword = self.expect("class", "interface", "object")
        decl = ClassDecl(keyword=keyword, modifiers=modifiers)
        if self.check_identifier() and not self.newline_before():
            decl.name = self.advance()
        if self.check("<"):
            decl.type_parameters = self.parse_type_parameters()

        if not self.newline_before() and (self.check("@") or self._is_modifier()):
            saved = self.pos
            constructor_modifiers = self.parse_modifiers()
            if self.check("constructor"):
                decl.constructor_modifiers = constructor_modifiers
            else:
                self.pos = saved
        if self.check("constructor") and not self.newline_before():
            decl.constructor_keyword = self.advance()
        if self.check("(") and not self.newline_before():
            decl.primary_constructor = self.parse_parameter_list()
        elif decl.constructor_keyword is not None:
            raise self.error("Unexpected token", expected=["'('"])

        if self.check(":"):
            decl.colon = self.advance()
            while True:
                entry = SuperTypeEntry(type=self.parse_type())
                if self.check("(") and self.adjacent():
                    entry.arguments = self.parse_value_arguments()
                decl.supertypes.append(entry)
                if not self.check(","):
                    break
                decl.supertype_commas.append(self.advance())

        if self.check("{"):
            is_enum = modifiers is not None and any(
                isinstance(item, Tok) and item.text == "enum" for item in modifiers.items
            )
            decl.body = self.parse_class_body(is_enum=is_enum)
        return decl

    def parse_class_body(self, *, is_enum: bool = False) -> ClassBody:
        lbrace = self.expect("{")
        body = ClassBody(lbrace=lbrace, members=[], rbrace=lbrace)
        if is_enum:
            while self.check_identifier() or self.check("@"):
                if self.is_declaration_start():
                    break
                body.enum_entries.append(self.parse_enum_entry())
                if not self.check(","):
                    break
                body.enum_commas.append(self.advance())
            if self.check(";"):
                body.enum_semicolon = self.advance()
        body.members = self.parse_class_members()
        body.rbrace = self.expect("}")
        return body

    def parse_enum_entry(self) -> EnumEntry:
        modifiers = self.parse_modifiers()
        entry = EnumEntry(name=self.expect_identifier(), modifiers=modifiers)
        if self.check("(") and not self.newline_before():
            entry.arguments = self.parse_value_arguments()
        if self.check("{"):
            entry.body = self.parse_class_body()
        return entry

    def parse_class_members(self) -> List[Node]:
        members: List[Node] = []
        while not self.check("}"):
            if self.at_end():
                raise self.error("Unexpected end of file", expected=["'}'"])
            if self.check(";"):
                self.attach_stray_semicolons(members)
                continue
            if self.check("init") and self.check("{", offset=1):
                keyword = self.advance()
                member: Node = InitBlock(keyword=keyword, block=self.parse_block())
            else:
                member = self.parse_statement()
            self.end_statement(member)
            members.append(member)
        return members

    def parse_typealias(self, modifiers: Optional[Modifiers]) -> TypeAlias:
        keyword = self.expect("typealias")
        name = self.expect_identifier()
        type_parameters = self.parse_type_parameters() if self.check("<") else None
        eq = self.expect("=")
        return TypeAlias(
            keyword=keyword,
            name=name,
            eq=eq,
            type=self.parse_type(),
            modifiers=modifiers,
            type_parameters=type_parameters,
        )

    # ====================================================================
    # Types
    # ====================================================================

    def parse_type(self, *, allow_function_arrow: bool = True) -> TypeRef:
        tokens: List[Tok] = []
        self._collect_type(tokens, allow_function_arrow=allow_function_arrow)
        return TypeRef(tokens=tokens)

    def parse_type_parameters(self) -> TypeRef:
        tokens = [self.expect("<")]
        while not self.check(">"):
            while self.check("in", "out", "reified") and self.check_identifier(offset=1):
                tokens.append(self.advance())
            tokens.append(self.expect_identifier())
            if self.check(":"):
                tokens.append(self.advance())
                self._collect_type(tokens)
            if not self.check(","):
                break
            tokens.append(self.advance())
        tokens.append(self.expect(">"))
        return TypeRef(tokens=tokens, spaced_colons=True)

    def parse_type_arguments(self) -> TypeRef:
        tokens: List[Tok] = []
        self._collect_type_arguments(tokens)
        return TypeRef(tokens=tokens)

    def _collect_type_arguments(self, tokens: List[Tok]) -> None:
        tokens.append(self.expect("<"))
        while not self.check(">"):
            if self.check("*"):
                tokens.append(self.advance())
            else:
                while self.check("in", "out") and not self.check(",", ">", offset=1):
                    tokens.append(self.advance())
                self._collect_type(tokens)
            if not self.check(","):
                break
            tokens.append(self.advance())
        tokens.append(self.expect(">"))

    def _collect_type(self, tokens: List[Tok], *, allow_function_arrow: bool = True) -> None:
        while self.check("suspend") and self.check("(", offset=1):
            tokens.append(self.advance())

        if self.check("("):
            self._collect_parenthesized_type(tokens)
        else:
            tokens.append(self.expect_identifier(allow_keywords=("dynamic",)))
            if self.check("<") and self.adjacent():
                self._collect_type_arguments(tokens)
            while self.check(".") and self.check_identifier(offset=1):
                tokens.append(self.advance())
                tokens.append(self.advance())
                if self.check("<") and self.adjacent():
                    self._collect_type_arguments(tokens)
            while self.check("?") and self.adjacent():
                tokens.append(self.advance())
            # Function type with receiver: `T.() -> R`
            if self.check(".") and self.check("(", offset=1):
                tokens.append(self.advance())
                self._collect_parenthesized_type(tokens)

        if allow_function_arrow and self.check("->"):
            tokens.append(self.advance())
            self._collect_type(tokens)

    def _collect_parenthesized_type(self, tokens: List[Tok]) -> None:
        tokens.append(self.expect("("))
        while not self.check(")"):
            if self.check_identifier() and self.check(":", offset=1):
                tokens.append(self.advance())
                tokens.append(self.advance())
            self._collect_type(tokens)
            if not self.check(","):
                break
            tokens.append(self.advance())
        tokens.append(self.expect(")"))
        while self.check("?") and self.adjacent():
            tokens.append(self.advance())


__all__ = ["DeclarationParsingMixin"]
