"""
parser.py
Recursive-descent parser (one token of lookahead) turning the token list into
a Program. The first unmet expectation raises ParseError; there is no
recovery, so a Program is only returned for fully valid input.
"""

from ast_nodes import (
    Assign, Binary, Block, Call, ExprStmt, FunctionDef, Identifier, If,
    Literal, Param, Program, Return, Unary, VarDecl, While,
)
from lexer import Token


class ParseError(SyntaxError):
    def __init__(self, message, lineno):
        super().__init__(f"{message} at line {lineno}")
        self.message = message
        self.lineno = lineno

    # SyntaxError.__str__ would append its own "(line N)"
    def __str__(self):
        return f"{self.message} at line {self.lineno}"


class Parser:
    def __init__(self, tokens):
        self.tokens = tokens
        self.pos = 0

    def peek(self):
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        last = self.tokens[-1].lineno if self.tokens else 1
        return Token('EOF', '', last)

    def advance(self):
        tok = self.peek()
        if tok.type != 'EOF':
            self.pos += 1
        return tok

    def check(self, ttype, value=None):
        tok = self.peek()
        if tok.type != ttype:
            return False
        return value is None or tok.value == value

    def match(self, ttype, value=None):
        if self.check(ttype, value):
            self.advance()
            return True
        return False

    def expect(self, ttype, msg):
        if self.check(ttype):
            return self.advance()
        raise ParseError(msg, self.peek().lineno)

    def parse(self):
        stmts = []
        while self.peek().type != 'EOF':
            if self.check('DEFINE'):
                stmts.append(self.function_definition())
            else:
                stmts.append(self.statement())
        return Program(stmts)

    def statement(self):
        tok = self.peek()
        if tok.type in ('CONST', 'VAR'):
            return self.var_decl()
        if tok.type == 'IF':
            return self.if_statement()
        if tok.type == 'WHILE':
            return self.while_statement()
        if tok.type == 'RETURN':
            return self.return_statement()
        if tok.type == 'LBRACE':
            return self.block()
        if tok.type == 'DEFINE':
            raise ParseError("Function definitions are only allowed at top level", tok.lineno)

        if tok.type == 'ID':
            saved = self.pos
            self.advance()
            if self.match('ASSIGN'):
                value = self.expression()
                self.expect('END', "Expected ';' after assignment")
                return Assign(tok.value, value, tok.lineno)
            self.pos = saved  # backtrack: not an assignment

        expr = self.expression()
        self.expect('END', "Expected ';' after expression")
        return ExprStmt(expr, tok.lineno)

    # const x = expr;  |  var x = expr;
    def var_decl(self):
        kw = self.advance()
        name = self.expect('ID', "Expected variable name").value
        self.expect('ASSIGN', "Expected '=' after variable name")
        init = self.expression()
        self.expect('END', "Expected ';' after variable declaration")
        return VarDecl(name, init, kw.type == 'CONST', kw.lineno)

    def if_statement(self):
        tok = self.advance()  # IF
        self.expect('LPAREN', "Expected '(' after 'if'")
        cond = self.expression()
        self.expect('RPAREN', "Expected ')' after if condition")
        then_branch = self.statement()
        else_branch = None
        if self.match('ELSE'):
            else_branch = self.statement()
        return If(cond, then_branch, else_branch, tok.lineno)

    def while_statement(self):
        tok = self.advance()  # WHILE
        self.expect('LPAREN', "Expected '(' after 'while'")
        cond = self.expression()
        self.expect('RPAREN', "Expected ')' after while condition")
        body = self.statement()
        return While(cond, body, tok.lineno)

    def return_statement(self):
        tok = self.advance()  # RETURN
        value = None
        if not self.check('END'):
            value = self.expression()
        self.expect('END', "Expected ';' after return statement")
        return Return(value, tok.lineno)

    def block(self):
        tok = self.expect('LBRACE', "Expected '{' to start block")
        stmts = []
        while not self.check('RBRACE') and self.peek().type != 'EOF':
            stmts.append(self.statement())
        self.expect('RBRACE', "Expected '}' after block")
        return Block(stmts, tok.lineno)

    # define name(a, var b) { ... }
    def function_definition(self):
        tok = self.advance()  # DEFINE
        name = self.expect('ID', "Expected function name after 'define'").value
        self.expect('LPAREN', "Expected '(' after function name")
        params = []
        if not self.check('RPAREN'):
            while True:
                is_const = not self.match('VAR')
                pname = self.expect('ID', "Expected parameter name").value
                params.append(Param(pname, is_const))
                if not self.match('COMMA'):
                    break
        self.expect('RPAREN', "Expected ')' after parameters")
        if not self.check('LBRACE'):
            raise ParseError("Expected '{' before function body", self.peek().lineno)
        body = self.block()
        return FunctionDef(name, params, body, tok.lineno)

    # Expressions: precedence climbing via separate functions
    def expression(self):
        return self.equality()

    def equality(self):
        node = self.comparison()
        while self.check('OP', '=='):
            op = self.advance().value
            right = self.comparison()
            node = Binary(op, node, right)
        return node

    def comparison(self):
        node = self.additive()
        while self.check('OP', '<') or self.check('OP', '>'):
            op = self.advance().value
            right = self.additive()
            node = Binary(op, node, right)
        return node

    def additive(self):
        node = self.multiplicative()
        while self.check('OP', '+') or self.check('OP', '-'):
            op = self.advance().value
            right = self.multiplicative()
            node = Binary(op, node, right)
        return node

    def multiplicative(self):
        node = self.unary()
        while self.peek().type == 'OP' and self.peek().value in ('*', '/', '%'):
            op = self.advance().value
            right = self.unary()
            node = Binary(op, node, right)
        return node

    def unary(self):
        if self.check('OP', '-') or self.check('OP', '!'):
            op = self.advance().value
            operand = self.unary()
            return Unary(op, operand)
        return self.primary()

    def primary(self):
        tok = self.peek()
        if tok.type in ('NUMBER', 'STRING', 'TRUE', 'FALSE'):
            self.advance()
            return Literal(tok.literal)
        if tok.type == 'ID':
            self.advance()
            if self.match('LPAREN'):
                args = []
                if not self.check('RPAREN'):
                    args.append(self.expression())
                    while self.match('COMMA'):
                        args.append(self.expression())
                self.expect('RPAREN', "Expected ')' after arguments")
                return Call(tok.value, args)
            return Identifier(tok.value)
        if tok.type == 'LPAREN':
            self.advance()
            node = self.expression()
            self.expect('RPAREN', "Expected ')' after expression")
            return node
        raise ParseError("Expected expression", tok.lineno)


def parse(tokens):
    return Parser(tokens).parse()
