"""
symbols.py
Per-compilation tables used by the code generator: variables of one frame,
the string pool, the function table and the label counters.
"""

INT = 'int'
BOOL = 'bool'
STRING = 'string'

SLOT_SIZE = 8
# saved rbp + return address sit between the frame base and the first argument
PARAM_BASE = 16


class CodegenError(Exception):
    pass


class Variable:
    def __init__(self, name, offset, kind=INT, string_label=None, is_param=False, is_const=True):
        self.name = name
        self.offset = offset  # bytes from rbp, always a positive magnitude
        self.size = SLOT_SIZE
        self.kind = kind
        self.string_label = string_label
        self.is_param = is_param
        self.is_const = is_const

    def address(self):
        sign = '+' if self.is_param else '-'
        return f"[rbp {sign} {self.offset}]"

    def __repr__(self):
        return f"Variable({self.name}, {self.address()}, {self.kind})"


class VarTable:
    """Variables of one frame, kept in declaration order."""

    def __init__(self):
        self.table = []

    def lookup(self, name):
        for var in self.table:
            if var.name == name:
                return var
        return None

    def _check_unique(self, name):
        if self.lookup(name) is not None:
            raise CodegenError(f"variable '{name}' already declared in this scope")

    def local_count(self):
        return sum(1 for v in self.table if not v.is_param)

    def add_param(self, name, kind=INT, is_const=True):
        self._check_unique(name)
        index = len(self.table) - self.local_count()
        var = Variable(name, PARAM_BASE + index * SLOT_SIZE, kind, is_param=True, is_const=is_const)
        self.table.append(var)
        return var

    def add_local(self, name, kind=INT, string_label=None, is_const=True):
        self._check_unique(name)
        offset = (self.local_count() + 1) * SLOT_SIZE
        var = Variable(name, offset, kind, string_label, is_const=is_const)
        self.table.append(var)
        return var

    def last(self):
        return self.table[-1] if self.table else None

    def __iter__(self):
        return iter(self.table)

    def __len__(self):
        return len(self.table)


class StringData:
    def __init__(self, label, value, is_computed=False):
        self.label = label
        self.value = value
        self.is_computed = is_computed

    @property
    def length(self):
        return len(self.value.encode('utf-8'))


class DataTable:
    """Append-only string pool; identical contents still get distinct labels."""

    def __init__(self):
        self.strings = []
        self.string_counter = 0

    def add_string(self, value, is_computed=False):
        label = f"str_{self.string_counter}"
        self.string_counter += 1
        self.strings.append(StringData(label, value, is_computed))
        return label

    def find_string(self, label):
        for s in self.strings:
            if s.label == label:
                return s
        return None


class FunctionParam:
    def __init__(self, name, kind=INT, is_const=True):
        self.name = name
        self.kind = kind
        self.is_const = is_const


class FunctionInfo:
    def __init__(self, name, label, parameters, return_kind=INT):
        self.name = name
        self.label = label
        self.parameters = parameters
        self.return_kind = return_kind


class FunctionTable:
    def __init__(self):
        self.functions = []

    def add_function(self, name, label, params, return_kind=INT):
        if self.find_function(name) is not None:
            raise CodegenError(f"function '{name}' already defined")
        info = FunctionInfo(name, label, params, return_kind)
        self.functions.append(info)
        return info

    def find_function(self, name):
        for func in self.functions:
            if func.name == name:
                return func
        return None


class CodegenContext:
    def __init__(self):
        self.label_counter = 0
        self.function_counter = 0
        self.in_function = False

    def generate_label(self, prefix):
        label = f"{prefix}_{self.label_counter}"
        self.label_counter += 1
        return label

    def generate_function_label(self, name):
        self.function_counter += 1
        return f"func_{name}"
