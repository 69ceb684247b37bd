"""
codegen.py
Single-pass lowering of a fent Program to x86-64 NASM assembly for Linux.

Expressions evaluate into rax; binary operators spill the left operand on the
stack and pop it into rbx. Locals live below rbp, arguments above it, and the
caller removes its pushed arguments after the call returns.
"""

from ast_nodes import (
    Assign, Binary, Block, Call, ExprStmt, FunctionDef, Identifier, If,
    Literal, Return, Unary, VarDecl, While,
)
from symbols import (
    BOOL, INT, SLOT_SIZE, STRING, CodegenContext, CodegenError, DataTable,
    FunctionParam, FunctionTable, VarTable,
)

SYS_WRITE = 1
SYS_EXIT = 60
STDOUT = 1

CONCAT_ERROR = "; ERROR: Runtime string concatenation not yet implemented"


def count_locals(stmt):
    """
    Number of declarations anywhere under stmt. Both arms of an if are
    counted, so the reservation can be larger than any single run needs.
    """
    if isinstance(stmt, VarDecl):
        return 1
    if isinstance(stmt, Block):
        return sum(count_locals(s) for s in stmt.statements)
    if isinstance(stmt, If):
        n = count_locals(stmt.then_branch)
        if stmt.else_branch is not None:
            n += count_locals(stmt.else_branch)
        return n
    if isinstance(stmt, While):
        return count_locals(stmt.body)
    return 0


def nasm_bytes(value):
    """Render a string as the operand list of a NASM ``db`` directive."""
    parts = []
    run = []
    for b in value.encode('utf-8'):
        if 32 <= b < 127 and b != ord('"'):
            run.append(chr(b))
            continue
        if run:
            parts.append('"' + ''.join(run) + '"')
            run = []
        parts.append(str(b))
    if run:
        parts.append('"' + ''.join(run) + '"')
    parts.append('0')
    return ', '.join(parts)


class X86_64Linux:
    """Linux codegen for x86_64 arch using NASM syntax"""

    def __init__(self, program):
        self.program = program
        self.lines = []
        self.globals = VarTable()
        self.vars = self.globals
        self.data = DataTable()
        self.functions = FunctionTable()
        self.ctx = CodegenContext()

    def emit(self, line=""):
        self.lines.append(line)

    def ins(self, text):
        self.lines.append("  " + text)

    # =====================================================
    # PROGRAM
    # =====================================================
    def generate(self):
        func_defs = [s for s in self.program.statements if isinstance(s, FunctionDef)]
        entry = [s for s in self.program.statements if not isinstance(s, FunctionDef)]

        # every function is known before any call site is lowered
        for fn in func_defs:
            params = [FunctionParam(p.name, INT, p.is_const) for p in fn.parameters]
            label = self.ctx.generate_function_label(fn.name)
            self.functions.add_function(fn.name, label, params, INT)

        function_code = []
        for fn in func_defs:
            function_code += self.gen_function(fn)

        self.lines = []
        self.emit("global _start")
        self.emit()
        self.emit("section .text")
        self.emit("_start:")
        self.ins("push rbp")
        self.ins("mov rbp, rsp")
        slots = sum(count_locals(s) for s in entry)
        if slots:
            self.ins(f"sub rsp, {slots * SLOT_SIZE}")

        for stmt in entry:
            self.gen_stmt(stmt)

        last = self.globals.last()
        if last is not None:
            self.ins(f"mov rdi, {last.address()}")
        else:
            self.ins("xor rdi, rdi")
        self.gen_exit()

        if function_code:
            self.emit()
            self.lines += function_code

        self.gen_data()
        return "\n".join(self.lines) + "\n"

    def gen_exit(self):
        self.ins("mov rsp, rbp")
        self.ins("pop rbp")
        self.ins(f"mov rax, {SYS_EXIT}")
        self.ins("syscall")

    def gen_data(self):
        if not self.data.strings:
            return
        self.emit()
        self.emit("section .rodata")
        for s in self.data.strings:
            self.ins(f"{s.label}: db {nasm_bytes(s.value)}")
            self.ins(f"{s.label}_len equ $ - {s.label} - 1")

    def gen_function(self, fn):
        saved_lines, saved_vars = self.lines, self.vars
        self.lines = []
        self.vars = VarTable()

        info = self.functions.find_function(fn.name)
        self.emit(f"{info.label}:")
        self.ins("push rbp")
        self.ins("mov rbp, rsp")
        slots = count_locals(fn.body)
        if slots:
            self.ins(f"sub rsp, {slots * SLOT_SIZE}")

        for param in info.parameters:
            self.vars.add_param(param.name, param.kind, param.is_const)

        prev = self.ctx.in_function
        self.ctx.in_function = True
        try:
            self.gen_stmt(fn.body)
        finally:
            self.ctx.in_function = prev

        # fallthrough when the body has no explicit return
        self.ins("xor rax, rax")
        self.ins("mov rsp, rbp")
        self.ins("pop rbp")
        self.ins("ret")
        self.emit()

        code = self.lines
        self.lines, self.vars = saved_lines, saved_vars
        return code

    # =====================================================
    # STATEMENTS
    # =====================================================
    def gen_stmt(self, node):
        if isinstance(node, ExprStmt):
            self.gen_expr(node.expr)

        elif isinstance(node, VarDecl):
            label = self.gen_expr(node.initializer)
            kind = self.expr_kind(node.initializer)
            var = self.vars.lookup(node.name)
            if var is not None:
                # both arms of an if share one scope; reuse the first slot
                self.ins(f"; ERROR: Variable already declared: {node.name}")
                self.ins(f"mov {var.address()}, rax")
                return
            var = self.vars.add_local(node.name, kind, label if kind == STRING else None, node.is_const)
            self.ins(f"mov {var.address()}, rax")

        elif isinstance(node, Assign):
            self.gen_expr(node.value)
            var = self.vars.lookup(node.name)
            if var is not None:
                self.ins(f"mov {var.address()}, rax")

        elif isinstance(node, Block):
            for s in node.statements:
                self.gen_stmt(s)

        elif isinstance(node, If):
            self.gen_if(node)

        elif isinstance(node, While):
            self.gen_while(node)

        elif isinstance(node, Return):
            self.gen_return(node)

        elif isinstance(node, FunctionDef):
            raise CodegenError(f"function '{node.name}' must be defined at top level")

        else:
            raise TypeError(f"unhandled statement node {type(node).__name__}")

    def gen_if(self, node):
        else_lbl = self.ctx.generate_label("else")
        end_lbl = self.ctx.generate_label("endif")

        self.gen_expr(node.condition)
        self.ins("test rax, rax")
        self.ins(f"jz {else_lbl if node.else_branch is not None else end_lbl}")

        self.gen_stmt(node.then_branch)

        if node.else_branch is not None:
            self.ins(f"jmp {end_lbl}")
            self.emit(f"{else_lbl}:")
            self.gen_stmt(node.else_branch)

        self.emit(f"{end_lbl}:")

    def gen_while(self, node):
        start = self.ctx.generate_label("while_start")
        end = self.ctx.generate_label("while_end")

        self.emit(f"{start}:")
        self.gen_expr(node.condition)
        self.ins("test rax, rax")
        self.ins(f"jz {end}")

        self.gen_stmt(node.body)

        self.ins(f"jmp {start}")
        self.emit(f"{end}:")

    def gen_return(self, node):
        if node.value is not None:
            self.gen_expr(node.value)
        else:
            self.ins("xor rax, rax")

        if self.ctx.in_function:
            self.ins("mov rsp, rbp")
            self.ins("pop rbp")
            self.ins("ret")
        else:
            # top level has no caller: the value becomes the exit code
            self.ins("mov rdi, rax")
            self.gen_exit()

    # =====================================================
    # EXPRESSIONS
    # =====================================================
    def expr_kind(self, expr):
        if isinstance(expr, Literal):
            if isinstance(expr.value, bool):
                return BOOL
            if isinstance(expr.value, str):
                return STRING
            return INT
        if isinstance(expr, Identifier):
            var = self.vars.lookup(expr.name)
            return var.kind if var is not None else INT
        if isinstance(expr, Binary):
            if expr.op == '+' and STRING in (self.expr_kind(expr.left), self.expr_kind(expr.right)):
                return STRING
            if expr.op in ('==', '<', '>'):
                return BOOL
            return INT
        if isinstance(expr, Unary):
            return BOOL if expr.op == '!' else INT
        if isinstance(expr, Call):
            info = self.functions.find_function(expr.function_name)
            return info.return_kind if info is not None and expr.function_name != 'print' else INT
        raise TypeError(f"unhandled expression node {type(expr).__name__}")

    def gen_expr(self, node):
        """
        Lower node into rax. Returns the string-table label of the value when
        it is statically known to be a string, otherwise None.
        """
        if isinstance(node, Literal):
            return self.gen_literal(node)

        if isinstance(node, Identifier):
            var = self.vars.lookup(node.name)
            if var is None:
                self.ins(f"; ERROR: Unknown variable: {node.name}")
                self.ins("xor rax, rax")
                return None
            self.ins(f"mov rax, {var.address()}")
            return var.string_label if var.kind == STRING else None

        if isinstance(node, Unary):
            self.gen_expr(node.operand)
            if node.op == '-':
                self.ins("neg rax")
            elif node.op == '!':
                self.ins("test rax, rax")
                self.ins("sete al")
                self.ins("movzx rax, al")
            else:
                raise CodegenError(f"unsupported unary operator {node.op}")
            return None

        if isinstance(node, Binary):
            return self.gen_binary(node)

        if isinstance(node, Call):
            self.gen_call(node)
            return None

        raise TypeError(f"unhandled expression node {type(node).__name__}")

    def gen_literal(self, node):
        value = node.value
        if isinstance(value, bool):
            self.ins(f"mov rax, {1 if value else 0}")
        elif isinstance(value, int):
            self.ins(f"mov rax, {value}")
        elif isinstance(value, str):
            label = self.data.add_string(value)
            self.ins(f"lea rax, [rel {label}]")
            return label
        else:
            raise CodegenError(f"unsupported literal {value!r}")
        return None

    def resolve_string(self, expr):
        """Compile-time value of a string expression, or None if unknown."""
        if isinstance(expr, Literal):
            return expr.value if isinstance(expr.value, str) else None
        if isinstance(expr, Identifier):
            var = self.vars.lookup(expr.name)
            if var is None or var.kind != STRING or var.string_label is None:
                return None
            entry = self.data.find_string(var.string_label)
            return entry.value if entry is not None else None
        if isinstance(expr, Binary) and expr.op == '+':
            left = self.resolve_string(expr.left)
            right = self.resolve_string(expr.right)
            if left is not None and right is not None:
                return left + right
        return None

    def gen_binary(self, node):
        if node.op == '+' and STRING in (self.expr_kind(node.left), self.expr_kind(node.right)):
            left = self.resolve_string(node.left)
            right = self.resolve_string(node.right)
            if left is not None and right is not None:
                label = self.data.add_string(left + right, is_computed=True)
                self.ins(f"lea rax, [rel {label}]")
                return label
            self.ins(CONCAT_ERROR)
            self.ins("xor rax, rax")
            return None

        self.gen_expr(node.left)
        self.ins("push rax")
        self.gen_expr(node.right)
        self.ins("pop rbx")

        # left operand in rbx, right operand in rax
        op = node.op
        if op == '+':
            self.ins("add rax, rbx")
        elif op == '-':
            self.ins("sub rbx, rax")
            self.ins("mov rax, rbx")
        elif op == '*':
            self.ins("imul rax, rbx")
        elif op in ('/', '%'):
            self.ins("mov rcx, rax")
            self.ins("mov rax, rbx")
            self.ins("cqo")
            self.ins("idiv rcx")
            if op == '%':
                self.ins("mov rax, rdx")
        elif op in ('==', '<', '>'):
            setcc = {'==': 'sete', '<': 'setl', '>': 'setg'}[op]
            self.ins("cmp rbx, rax")
            self.ins(f"{setcc} al")
            self.ins("movzx rax, al")
        else:
            raise CodegenError(f"unsupported operator {op}")
        return None

    def gen_call(self, node):
        if node.function_name == 'print':
            self.gen_print(node)
            return

        info = self.functions.find_function(node.function_name)
        if info is None:
            self.ins(f"; ERROR: Unknown function call: {node.function_name}")
            self.ins("xor rax, rax")
            return
        if len(node.arguments) != len(info.parameters):
            raise CodegenError(
                f"function '{info.name}' takes {len(info.parameters)} argument(s), "
                f"got {len(node.arguments)}")

        # last argument is pushed first so the first one ends up at [rbp + 16]
        for arg in reversed(node.arguments):
            self.gen_expr(arg)
            self.ins("push rax")

        self.ins(f"call {info.label}")
        if node.arguments:
            self.ins(f"add rsp, {len(node.arguments) * SLOT_SIZE}")

    def gen_print(self, node):
        if not node.arguments:
            self.ins("xor rax, rax")
            return
        self.gen_expr(node.arguments[0])
        self.ins("mov rsi, rax")
        # strlen: scan for the terminating zero byte
        self.ins("mov rdi, rax")
        self.ins("xor rcx, rcx")
        self.ins("dec rcx")
        self.ins("xor al, al")
        self.ins("repne scasb")
        self.ins("not rcx")
        self.ins("dec rcx")
        self.ins("mov rdx, rcx")
        self.ins(f"mov rax, {SYS_WRITE}")
        self.ins(f"mov rdi, {STDOUT}")
        self.ins("syscall")
        self.ins("xor rax, rax")


def generate(program):
    return X86_64Linux(program).generate()
