"""
lexer.py
Regex-driven tokenizer for fent source text.

The lexer never raises: unrecognised characters and unterminated strings come
out as UNKNOWN tokens (and are recorded on ``errors``) so the driver can
decide what to do with them.
"""

import re
from collections import namedtuple

Token = namedtuple('Token', ['type', 'value', 'lineno', 'literal'], defaults=[None])

ESCAPES = {'n': '\n', 't': '\t', '"': '"', '\\': '\\', '0': '\0'}


def decode_string(body):
    out = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == '\\' and i + 1 < len(body):
            nxt = body[i + 1]
            # unknown escapes keep the backslash
            out.append(ESCAPES.get(nxt, '\\' + nxt))
            i += 2
            continue
        out.append(ch)
        i += 1
    return ''.join(out)


class Lexer:
    KEYWORDS = {'const', 'var', 'define', 'if', 'else', 'while', 'return', 'true', 'false'}
    token_specification = [
        ("COMMENT",   r'//[^\n]*'),
        ("NUMBER",    r'\d+'),
        ("STRING",    r'"(?:[^"\\]|\\.)*"'),
        ("UNTERM",    r'"(?:[^"\\]|\\.)*\\?\Z'),
        ("ID",        r'[A-Za-z_]\w*'),
        ("OP",        r'==|\+|\-|\*|/|%|<|>|!'),
        ("ASSIGN",    r'='),
        ("END",       r';'),
        ("LPAREN",    r'\('),
        ("RPAREN",    r'\)'),
        ("LBRACE",    r'\{'),
        ("RBRACE",    r'\}'),
        ("COMMA",     r','),
        ("SKIP",      r'[ \t\r]+'),
        ("NEWLINE",   r'\n'),
        ("MISMATCH",  r'.'),
    ]
    tok_regex = '|'.join(f'(?P<{n}>{p})' for n, p in token_specification)
    master_re = re.compile(tok_regex, re.DOTALL)

    def __init__(self, code):
        self.code = code
        self.lineno = 1
        self.tokens = []
        self.errors = []
        self._tokenize()

    def _error(self, msg, lineno):
        self.errors.append(f"Lexical error (line {lineno}): {msg}")

    def _tokenize(self):
        for mo in self.master_re.finditer(self.code):
            kind = mo.lastgroup
            val = mo.group()
            if kind == "NUMBER":
                self.tokens.append(Token('NUMBER', val, self.lineno, int(val)))
            elif kind == "STRING":
                start = self.lineno
                self.lineno += val.count('\n')
                self.tokens.append(Token('STRING', val, start, decode_string(val[1:-1])))
            elif kind == "UNTERM":
                self.tokens.append(Token('UNKNOWN', 'unterminated string', self.lineno))
                self._error("unterminated string", self.lineno)
                self.lineno += val.count('\n')
            elif kind == "ID":
                if val in Lexer.KEYWORDS:
                    literal = {'true': True, 'false': False}.get(val)
                    self.tokens.append(Token(val.upper(), val, self.lineno, literal))
                else:
                    self.tokens.append(Token('ID', val, self.lineno))
            elif kind == "NEWLINE":
                self.lineno += 1
            elif kind == "SKIP" or kind == "COMMENT":
                pass
            elif kind == "MISMATCH":
                self.tokens.append(Token('UNKNOWN', val, self.lineno))
                self._error(f"Unexpected character {val!r}", self.lineno)
            else:
                self.tokens.append(Token(kind, val, self.lineno))
        self.tokens.append(Token('EOF', '', self.lineno))

    def peek_all(self):
        return list(self.tokens)


def tokenize(code):
    return Lexer(code).peek_all()


def format_tokens(tokens):
    """Render a token list the way the ``--lexer`` dump shows it."""
    lines = []
    for i, tok in enumerate(tokens):
        lines.append(f"Token {i}:")
        lines.append(f"  Kind: {tok.type}")
        lines.append(f'  Lexeme: "{tok.value}"')
        lines.append(f"  Line: {tok.lineno}")
        if isinstance(tok.literal, bool):
            lines.append(f"  Literal (bool): {'true' if tok.literal else 'false'}")
        elif isinstance(tok.literal, int):
            lines.append(f"  Literal (int): {tok.literal}")
        elif isinstance(tok.literal, str):
            lines.append(f'  Literal (string): "{tok.literal}"')
        lines.append("")
    return "\n".join(lines)
