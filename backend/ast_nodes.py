"""
ast_nodes.py
AST node classes shared by the parser and the code generator, plus the
textual tree dump and a dict serialiser for the HTTP service.

Every parent owns its children outright; nodes never point back up the tree.
"""

INDENT_LEVEL = 2

# =====================================================
# EXPRESSIONS
# =====================================================
class Expr: pass

class Literal(Expr):
    def __init__(self, value):
        self.value = value  # int | bool | str

class Identifier(Expr):
    def __init__(self, name):
        self.name = name

class Binary(Expr):
    def __init__(self, op, left, right):
        self.op = op  # '+', '-', '*', '/', '%', '==', '<', '>'
        self.left = left
        self.right = right

class Unary(Expr):
    def __init__(self, op, operand):
        self.op = op  # '-', '!'
        self.operand = operand

class Call(Expr):
    def __init__(self, function_name, arguments):
        self.function_name = function_name
        self.arguments = arguments

# =====================================================
# STATEMENTS
# =====================================================
class Stmt: pass

class ExprStmt(Stmt):
    def __init__(self, expr, lineno=None):
        self.expr = expr
        self.lineno = lineno

class VarDecl(Stmt):
    def __init__(self, name, initializer, is_const=True, lineno=None):
        self.name = name
        self.initializer = initializer
        self.is_const = is_const
        self.lineno = lineno

class Assign(Stmt):
    def __init__(self, name, value, lineno=None):
        self.name = name
        self.value = value
        self.lineno = lineno

class Block(Stmt):
    def __init__(self, statements, lineno=None):
        self.statements = statements
        self.lineno = lineno

class If(Stmt):
    def __init__(self, condition, then_branch, else_branch=None, lineno=None):
        self.condition = condition
        self.then_branch = then_branch
        self.else_branch = else_branch
        self.lineno = lineno

class While(Stmt):
    def __init__(self, condition, body, lineno=None):
        self.condition = condition
        self.body = body
        self.lineno = lineno

class Return(Stmt):
    def __init__(self, value=None, lineno=None):
        self.value = value
        self.lineno = lineno

class Param:
    def __init__(self, name, is_const=True):
        self.name = name
        self.is_const = is_const

class FunctionDef(Stmt):
    def __init__(self, name, parameters, body, lineno=None):
        self.name = name
        self.parameters = parameters
        self.body = body
        self.lineno = lineno

class Program:
    def __init__(self, statements):
        self.statements = statements

# =====================================================
# TREE DUMP
# =====================================================
def _literal_text(value):
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return f'"{value}"'
    return str(value)

def format_expr(expr, indent=0):
    ind = " " * (indent * INDENT_LEVEL)
    if isinstance(expr, Literal):
        return [f"{ind}LiteralExpr: {_literal_text(expr.value)}"]
    if isinstance(expr, Identifier):
        return [f"{ind}IdentifierExpr: {expr.name}"]
    if isinstance(expr, Binary):
        lines = [f"{ind}BinaryExpr: {expr.op}", f"{ind}  Left:"]
        lines += format_expr(expr.left, indent + 2)
        lines.append(f"{ind}  Right:")
        lines += format_expr(expr.right, indent + 2)
        return lines
    if isinstance(expr, Unary):
        lines = [f"{ind}UnaryExpr: {expr.op}", f"{ind}  Operand:"]
        return lines + format_expr(expr.operand, indent + 2)
    if isinstance(expr, Call):
        lines = [f"{ind}CallExpr: {expr.function_name}",
                 f"{ind}  Arguments ({len(expr.arguments)}):"]
        for arg in expr.arguments:
            lines += format_expr(arg, indent + 2)
        return lines
    raise TypeError(f"unhandled expression node {type(expr).__name__}")

def format_stmt(stmt, indent=0):
    ind = " " * (indent * INDENT_LEVEL)
    if isinstance(stmt, ExprStmt):
        return [f"{ind}ExprStmt:"] + format_expr(stmt.expr, indent + 1)
    if isinstance(stmt, VarDecl):
        lines = [f"{ind}VarDeclStmt: {stmt.name}{' (const)' if stmt.is_const else ''}",
                 f"{ind}  Initializer:"]
        return lines + format_expr(stmt.initializer, indent + 2)
    if isinstance(stmt, Assign):
        lines = [f"{ind}AssignStmt: {stmt.name}", f"{ind}  Value:"]
        return lines + format_expr(stmt.value, indent + 2)
    if isinstance(stmt, Block):
        lines = [f"{ind}BlockStmt ({len(stmt.statements)} statements):"]
        for s in stmt.statements:
            lines += format_stmt(s, indent + 1)
        return lines
    if isinstance(stmt, If):
        lines = [f"{ind}IfStmt:", f"{ind}  Condition:"]
        lines += format_expr(stmt.condition, indent + 2)
        lines.append(f"{ind}  Then:")
        lines += format_stmt(stmt.then_branch, indent + 2)
        if stmt.else_branch is not None:
            lines.append(f"{ind}  Else:")
            lines += format_stmt(stmt.else_branch, indent + 2)
        return lines
    if isinstance(stmt, While):
        lines = [f"{ind}WhileStmt:", f"{ind}  Cond:"]
        lines += format_expr(stmt.condition, indent + 2)
        lines.append(f"{ind}  Body:")
        return lines + format_stmt(stmt.body, indent + 2)
    if isinstance(stmt, Return):
        lines = [f"{ind}ReturnStmt:"]
        if stmt.value is None:
            return lines + [f"{ind}  NULL (no value assigned)"]
        return lines + [f"{ind}  Value:"] + format_expr(stmt.value, indent + 2)
    if isinstance(stmt, FunctionDef):
        params = ", ".join(p.name if p.is_const else f"var {p.name}" for p in stmt.parameters)
        lines = [f"{ind}FunctionDef: {stmt.name}({params})", f"{ind}  Body:"]
        return lines + format_stmt(stmt.body, indent + 2)
    raise TypeError(f"unhandled statement node {type(stmt).__name__}")

def format_program(program):
    lines = [f"Total statements: {len(program.statements)}", ""]
    for i, stmt in enumerate(program.statements):
        lines.append(f"Statement {i}:")
        lines += format_stmt(stmt, 1)
        lines.append("")
    return "\n".join(lines)

# =====================================================
# DICT SERIALISATION
# =====================================================
def node_to_dict(node):
    """
    Serialize AST to dict recursively
    """
    if node is None:
        return None
    d = {"type": type(node).__name__}
    if isinstance(node, Program):
        d["statements"] = [node_to_dict(s) for s in node.statements]
    elif isinstance(node, Literal):
        d["value"] = node.value
    elif isinstance(node, Identifier):
        d["name"] = node.name
    elif isinstance(node, Binary):
        d["op"] = node.op
        d["left"] = node_to_dict(node.left)
        d["right"] = node_to_dict(node.right)
    elif isinstance(node, Unary):
        d["op"] = node.op
        d["operand"] = node_to_dict(node.operand)
    elif isinstance(node, Call):
        d["function"] = node.function_name
        d["arguments"] = [node_to_dict(a) for a in node.arguments]
    elif isinstance(node, ExprStmt):
        d["expr"] = node_to_dict(node.expr)
    elif isinstance(node, VarDecl):
        d["name"] = node.name
        d["is_const"] = node.is_const
        d["initializer"] = node_to_dict(node.initializer)
    elif isinstance(node, Assign):
        d["name"] = node.name
        d["value"] = node_to_dict(node.value)
    elif isinstance(node, Block):
        d["statements"] = [node_to_dict(s) for s in node.statements]
    elif isinstance(node, If):
        d["condition"] = node_to_dict(node.condition)
        d["then_branch"] = node_to_dict(node.then_branch)
        d["else_branch"] = node_to_dict(node.else_branch)
    elif isinstance(node, While):
        d["condition"] = node_to_dict(node.condition)
        d["body"] = node_to_dict(node.body)
    elif isinstance(node, Return):
        d["value"] = node_to_dict(node.value)
    elif isinstance(node, FunctionDef):
        d["name"] = node.name
        d["parameters"] = [{"name": p.name, "is_const": p.is_const} for p in node.parameters]
        d["body"] = node_to_dict(node.body)
    else:
        raise TypeError(f"unhandled node {type(node).__name__}")
    return d
