#!/usr/bin/env python3
"""
compiler.py
fent compiler pipeline (lexer → recursive-descent parser → x86-64 NASM
assembly) and its command-line driver.

    fentc program.fent -o program.asm [-l] [-a]
    nasm -felf64 program.asm -o program.o && ld program.o -o program
"""

import argparse
import os
import sys

from ast_nodes import format_program
from codegen import X86_64Linux
from lexer import Lexer, format_tokens
from parser import ParseError, Parser
from symbols import CodegenError

# =====================================================
# PIPELINE
# =====================================================
def compile_source(code, verbose=False):
    errors = []

    result = {
        'tokens': [],
        'ast': None,
        'asm': '',
        'errors': errors,
        'symbol_table': {},
        'strings': {},
        'functions': {},
    }

    lex = Lexer(code)
    toks = lex.peek_all()
    result['tokens'] = toks
    if lex.errors:
        errors.extend(lex.errors)
        return result
    if verbose:
        print(f"Lexed {len(toks)} token(s)")

    try:
        ast = Parser(toks).parse()
    except ParseError as e:
        errors.append(f"Syntax error (line {e.lineno}): {e.message}")
        return result
    except RecursionError:
        errors.append("Syntax error: expression nested too deeply")
        return result
    result['ast'] = ast
    if verbose:
        print(f"Parsed {len(ast.statements)} top-level statement(s)")

    gen = X86_64Linux(ast)
    try:
        result['asm'] = gen.generate()
    except CodegenError as e:
        errors.append(f"Codegen error: {e}")
        return result
    except RecursionError:
        errors.append("Codegen error: program nested too deeply")
        return result

    result['symbol_table'] = {
        v.name: {'offset': v.offset, 'kind': v.kind, 'const': v.is_const} for v in gen.globals
    }
    result['strings'] = {s.label: s.value for s in gen.data.strings}
    result['functions'] = {f.name: f.label for f in gen.functions.functions}
    if verbose:
        print(f"Generated {len(result['asm'].splitlines())} line(s) of assembly")
    return result

# =====================================================
# COMMAND LINE
# =====================================================
def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="fentc", description="Compiles fent source code to x86_64 NASM assembly")
    parser.add_argument("input", nargs="?", help="fent source file to compile")
    parser.add_argument("-o", "--output", default="output.asm",
                        help="Output file (default: output.asm)")
    parser.add_argument("-l", "--lexer", action="store_true",
                        help="Write the token list to tokens_<file>.txt")
    parser.add_argument("-a", "--ast", action="store_true",
                        help="Write the parsed tree to ast_<file>.txt")
    parser.add_argument("-v", "--verbose", action="store_true", help="Report each stage")
    return parser.parse_args(argv)


def _write(path, text):
    try:
        with open(path, "w") as f:
            f.write(text)
    except OSError as e:
        print(f"Error: Could not open output file: {path} ({e.strerror})", file=sys.stderr)
        return False
    return True


def main(argv=None):
    args = parse_args(argv)
    if not args.input:
        print("Error: No input file specified", file=sys.stderr)
        return 1

    try:
        with open(args.input) as f:
            code = f.read()
    except OSError:
        print(f"Error: Could not open input file: {args.input}", file=sys.stderr)
        return 1

    result = compile_source(code, verbose=args.verbose)
    base_name = os.path.basename(args.input)

    if args.lexer and result['tokens']:
        lexer_out = f"tokens_{base_name}.txt"
        if not _write(lexer_out, format_tokens(result['tokens'])):
            return 1
        print(f"Lexer output written to: {lexer_out}")

    if args.ast and result['ast'] is not None:
        ast_out = f"ast_{base_name}.txt"
        if not _write(ast_out, format_program(result['ast'])):
            return 1
        print(f"AST output written to: {ast_out}")

    if result['errors']:
        for err in result['errors']:
            print(err, file=sys.stderr)
        return 1

    if not _write(args.output, result['asm']):
        return 1
    print(f"Assembly generated: {args.output}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
