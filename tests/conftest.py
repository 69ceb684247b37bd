"""Pytest configuration for the fent compiler suite."""

import pytest

from asm_machine import run_asm
from codegen import X86_64Linux
from lexer import tokenize
from parser import parse


def build(code):
    """Parse and lower code, returning the generator and its assembly."""
    gen = X86_64Linux(parse(tokenize(code)))
    return gen, gen.generate()


@pytest.fixture
def compile_program():
    return build


@pytest.fixture
def run_program():
    def _run(code):
        _, asm = build(code)
        return run_asm(asm)

    return _run
