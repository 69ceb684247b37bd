"""Pipeline and command-line driver tests."""

import pytest

import compiler


def test_compile_source_success():
    result = compiler.compile_source('const x = 5; const s = "hi"; define f(a) { return a; } return x;')
    assert result["errors"] == []
    assert "_start:" in result["asm"]
    assert result["tokens"][-1].type == "EOF"
    assert len(result["ast"].statements) == 4
    assert result["symbol_table"] == {
        "x": {"offset": 8, "kind": "int", "const": True},
        "s": {"offset": 16, "kind": "string", "const": True},
    }
    assert result["strings"] == {"str_0": "hi"}
    assert result["functions"] == {"f": "func_f"}


def test_compile_source_lex_failure():
    result = compiler.compile_source('const s = "oops;')
    assert result["errors"] == ["Lexical error (line 1): unterminated string"]
    assert result["ast"] is None
    assert result["asm"] == ""


def test_compile_source_parse_failure():
    result = compiler.compile_source("{ const x = 1;")
    assert result["errors"] == ["Syntax error (line 1): Expected '}' after block"]
    assert result["ast"] is None


def test_compile_source_codegen_failure():
    result = compiler.compile_source("define f() { } define f() { }")
    assert len(result["errors"]) == 1
    assert result["errors"][0].startswith("Codegen error: function 'f'")
    assert result["asm"] == ""


def test_deep_nesting_is_reported_not_raised():
    code = "return " + "(" * 5000 + "1" + ")" * 5000 + ";"
    result = compiler.compile_source(code)
    assert result["errors"] == ["Syntax error: expression nested too deeply"]
    assert result["ast"] is None
    assert result["asm"] == ""


def test_soft_failures_still_compile():
    result = compiler.compile_source("foo(1);")
    assert result["errors"] == []
    assert "; ERROR: Unknown function call: foo" in result["asm"]


def test_verbose_reports_stages(capsys):
    compiler.compile_source("return 1;", verbose=True)
    out = capsys.readouterr().out
    assert "Parsed 1 top-level statement(s)" in out
    assert "line(s) of assembly" in out


@pytest.fixture
def source(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "prog.fent"
    path.write_text("const x = 5;\nreturn x;\n")
    return path


def test_main_writes_assembly_and_dumps(source, tmp_path, capsys):
    out = tmp_path / "prog.asm"
    assert compiler.main([str(source), "-o", str(out), "--lexer", "--ast"]) == 0
    assert "_start:" in out.read_text()
    assert "Kind: CONST" in (tmp_path / "tokens_prog.fent.txt").read_text()
    assert "VarDeclStmt: x (const)" in (tmp_path / "ast_prog.fent.txt").read_text()
    assert f"Assembly generated: {out}" in capsys.readouterr().out


def test_main_default_output(source, tmp_path):
    assert compiler.main([str(source)]) == 0
    assert (tmp_path / "output.asm").exists()


def test_main_without_input(capsys):
    assert compiler.main([]) == 1
    assert "No input file specified" in capsys.readouterr().err


def test_main_missing_file(tmp_path, capsys):
    assert compiler.main([str(tmp_path / "nope.fent")]) == 1
    assert "Could not open input file" in capsys.readouterr().err


def test_main_parse_failure(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    src = tmp_path / "bad.fent"
    src.write_text("{ const x = 1;\n")
    assert compiler.main([str(src), "-o", "bad.asm"]) == 1
    assert "Syntax error (line 2): Expected '}' after block" in capsys.readouterr().err
    assert not (tmp_path / "bad.asm").exists()


def test_main_unwritable_output(source, tmp_path, capsys):
    assert compiler.main([str(source), "-o", str(tmp_path)]) == 1
    assert "Could not open output file" in capsys.readouterr().err
