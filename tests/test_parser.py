"""Parser tests: statement dispatch, precedence layering, failure messages."""

import pytest

from ast_nodes import (
    Assign, Binary, Block, Call, ExprStmt, FunctionDef, Identifier, If,
    Literal, Return, Unary, VarDecl, While, format_program, node_to_dict,
)
from lexer import tokenize
from parser import ParseError, parse


def parse_one(code):
    program = parse(tokenize(code))
    assert len(program.statements) == 1
    return program.statements[0]


def expr_of(code):
    stmt = parse_one(code)
    assert isinstance(stmt, ExprStmt)
    return stmt.expr


def shape(expr):
    """Compact nested-tuple rendering of an expression."""
    if isinstance(expr, Literal):
        return expr.value
    if isinstance(expr, Identifier):
        return expr.name
    if isinstance(expr, Binary):
        return (expr.op, shape(expr.left), shape(expr.right))
    if isinstance(expr, Unary):
        return (expr.op, shape(expr.operand))
    if isinstance(expr, Call):
        return ("call", expr.function_name, [shape(a) for a in expr.arguments])
    raise AssertionError(expr)


@pytest.mark.parametrize("code, expected", [
    ("1 + 2 * 3;", ("+", 1, ("*", 2, 3))),
    ("(1 + 2) * 3;", ("*", ("+", 1, 2), 3)),
    ("10 - 4 - 3;", ("-", ("-", 10, 4), 3)),
    ("8 / 4 % 3;", ("%", ("/", 8, 4), 3)),
    ("1 + 2 < 4;", ("<", ("+", 1, 2), 4)),
    ("1 < 2 == 1;", ("==", ("<", 1, 2), 1)),
    ("a > b == c < d;", ("==", (">", "a", "b"), ("<", "c", "d"))),
    ("-2 * 3;", ("*", ("-", 2), 3)),
    ("!!x;", ("!", ("!", "x"))),
    ("- -1;", ("-", ("-", 1))),
    ("f(1, g(x), 2 + 3);", ("call", "f", [1, ("call", "g", ["x"]), ("+", 2, 3)])),
    ("f();", ("call", "f", [])),
    ('"s" + true;', ("+", "s", True)),
])
def test_expression_shapes(code, expected):
    assert shape(expr_of(code)) == expected


def test_const_and_var_declarations():
    program = parse(tokenize("const x = 5; var y = x;"))
    const, var = program.statements
    assert isinstance(const, VarDecl) and const.is_const
    assert isinstance(var, VarDecl) and not var.is_const
    assert const.name == "x" and shape(const.initializer) == 5
    assert shape(var.initializer) == "x"


def test_assignment_is_told_apart_by_lookahead():
    stmt = parse_one("x = 1 + 2;")
    assert isinstance(stmt, Assign)
    assert stmt.name == "x"
    assert shape(stmt.value) == ("+", 1, 2)

    # identifier not followed by '=' backtracks into an expression statement
    assert shape(expr_of("x + 1;")) == ("+", "x", 1)
    assert shape(expr_of("x == 1;")) == ("==", "x", 1)
    assert shape(expr_of("x;")) == "x"


def test_if_else_and_while():
    stmt = parse_one("if (a < 1) { return 7; } else return 8;")
    assert isinstance(stmt, If)
    assert isinstance(stmt.then_branch, Block)
    assert isinstance(stmt.else_branch, Return)

    stmt = parse_one("if (a) x = 1;")
    assert stmt.else_branch is None
    assert isinstance(stmt.then_branch, Assign)

    stmt = parse_one("while (i < 3) { i = i + 1; }")
    assert isinstance(stmt, While)
    assert len(stmt.body.statements) == 1


def test_return_with_and_without_value():
    assert parse_one("return;").value is None
    assert shape(parse_one("return 1 + 1;").value) == ("+", 1, 1)


def test_nested_blocks():
    stmt = parse_one("{ const a = 1; { a = 2; } }")
    assert isinstance(stmt, Block)
    assert isinstance(stmt.statements[1], Block)


def test_function_definition():
    stmt = parse_one("define add(a, var b) { return a + b; }")
    assert isinstance(stmt, FunctionDef)
    assert stmt.name == "add"
    assert [(p.name, p.is_const) for p in stmt.parameters] == [("a", True), ("b", False)]
    assert isinstance(stmt.body, Block)

    assert parse_one("define f() { }").parameters == []


def test_statement_line_numbers():
    program = parse(tokenize("const a = 1;\n\nwhile (a) {\n}"))
    assert [s.lineno for s in program.statements] == [1, 3]


@pytest.mark.parametrize("code, message, line", [
    ("{ const x = 1;", "Expected '}' after block", 1),
    ("const x = 1;\n{\n  x = 2;\n", "Expected '}' after block", 4),
    ("const = 5;", "Expected variable name", 1),
    ("const x 5;", "Expected '=' after variable name", 1),
    ("const x = 5", "Expected ';' after variable declaration", 1),
    ("x = 1", "Expected ';' after assignment", 1),
    ("1 + 2", "Expected ';' after expression", 1),
    ("return 1", "Expected ';' after return statement", 1),
    ("const a = 1;\nconst b = ;", "Expected expression", 2),
    ("if 1 { }", "Expected '(' after 'if'", 1),
    ("if (1 { }", "Expected ')' after if condition", 1),
    ("while 1", "Expected '(' after 'while'", 1),
    ("while (1", "Expected ')' after while condition", 1),
    ("f(1, 2;", "Expected ')' after arguments", 1),
    ("(1 + 2;", "Expected ')' after expression", 1),
    ("define (a) {}", "Expected function name after 'define'", 1),
    ("define f(a b) {}", "Expected ')' after parameters", 1),
    ("define f(a) return a;", "Expected '{' before function body", 1),
    ("{ define f() {} }", "Function definitions are only allowed at top level", 1),
])
def test_parse_errors(code, message, line):
    with pytest.raises(ParseError) as info:
        parse(tokenize(code))
    assert info.value.message == message
    assert info.value.lineno == line
    assert str(info.value) == f"{message} at line {line}"


def test_parse_error_message_has_no_extra_line_suffix():
    with pytest.raises(SyntaxError) as info:
        parse(tokenize("const x = 1\nreturn x;"))
    assert isinstance(info.value, ParseError)
    assert str(info.value) == "Expected ';' after variable declaration at line 2"


def test_format_program():
    text = format_program(parse(tokenize("const x = 1 + 2;\nif (x) return; else print(\"s\");")))
    assert text.startswith("Total statements: 2")
    assert "VarDeclStmt: x (const)" in text
    assert "BinaryExpr: +" in text
    assert "IfStmt:" in text
    assert "NULL (no value assigned)" in text
    assert 'LiteralExpr: "s"' in text
    assert "CallExpr: print" in text


def test_node_to_dict():
    d = node_to_dict(parse(tokenize("define f(a) { return -a; } f(1);")))
    assert d["type"] == "Program"
    fn, call = d["statements"]
    assert fn["parameters"] == [{"name": "a", "is_const": True}]
    assert fn["body"]["statements"][0]["value"] == {
        "type": "Unary", "op": "-", "operand": {"type": "Identifier", "name": "a"},
    }
    assert call["expr"]["function"] == "f"
