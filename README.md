# bitasm

`bitasm` provides building blocks for an assembler that works at the level of individual bits. It includes:

- `bitasm.tokens`: source spans (`Span`), the error type `AsmError`, token kinds and `tokenize`.
- `bitasm.excerpt`: converts number and string token text into values. This covers radix prefixes `0b`, `0o` and `0x`, `_` separators and string escapes.
- `bitasm.parser`: a `Parser` cursor over a token list. It can look ahead, slice the list and save or restore its position.
- `bitasm.expression` and `bitasm.exprparser`: expression trees and the parser that builds them.
- `bitasm.evaluator`: evaluates expression trees.
- `bitasm.bigint`: `BigInt`, an arbitrary-precision two's complement integer that carries an optional bit width.
- `bitasm.bitvec`: `BitVec`, a growable bit vector. It records which source span produced which output bits.
- `bitasm.formats`: renders a `BitVec` in several output formats.
- `bitasm.fileserver`: reads and writes source files by name, either in memory or on disk.
- `bitasm.filenames`: validates file names and resolves them relative to the project.
- `bitasm.charcounter`: line and column lookups in source text.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Evaluating expressions

```python
from bitasm.evaluator import evaluate_source

evaluate_source("0x12`8 @ 0x34`8")                 # IntegerValue: 0x1234, 16 bits
evaluate_source("{ x = 123, y = x * 2, x + y }")   # IntegerValue: 369
evaluate_source("(1 == 0) || (1 == 1)")            # BoolValue(True)
```

The expression language supports the following:

- Integer arithmetic and bitwise operators. Division truncates toward zero.
- Comparisons.
- Lazy `&&` and `||`.
- The ternary `? :`.
- Bit slices `x[7:0]` and sizes ``x`8``.
- Concatenation `a @ b` of sized values.
- Blocks `{ a, b }`, whose value is that of their last expression.
- Assignment to local names.

Errors in the source raise `bitasm.tokens.AsmError`, which carries a message and the `Span` it refers to. Such errors include unknown variables, division by zero, type mismatches and malformed literals.

To resolve names, calls and `asm { ... }` blocks yourself, use `bitasm.evaluator.evaluate` and pass it an `EvalContext` and callbacks. Each callback receives a `VariableInfo`, `FunctionInfo` or `AsmInfo`. A callback that cannot answer raises `UnhandledLookup`.

## Producing output

```python
from bitasm.bigint import BigInt
from bitasm.bitvec import BitVec
from bitasm.formats import format_binary, format_hexdump, format_intelhex

bits = BitVec()
bits.write_bigint(0, BigInt(0x1234, 16))

format_binary(bits)    # b"\x12\x34"
print(format_hexdump(bits))
print(format_intelhex(bits))
```

`bitasm.formats` also provides the following functions:

- `format_binstr` and `format_hexstr`
- `format_bindump`
- `format_mif`
- `format_comma` and `format_c_array`, with radix 10 or 16
- `format_logisim`, with 8 or 16 bits per chunk

Two formats read the original source text through a `FileServer`: annotated listings (`format_annotated_hex`, `format_annotated_bin`) and address-span maps (`format_addrspan`).

```python
from bitasm.fileserver import MemoryFileServer
from bitasm.formats import format_annotated_hex
from bitasm.tokens import Span

files = MemoryFileServer()
files.add("main.asm", "ld 0x1234\n")
bits.mark_span(0, 16, BigInt(0), Span("main.asm", (0, 9)))
print(format_annotated_hex(bits, files))
```

`MemoryFileServer` keeps files in a dictionary. `DiskFileServer` reads and writes the local file system.

## What it does not do

`bitasm` is a library of parts. It does not assemble programs: there are no instruction set definitions, directives, labels or multi-pass resolution. It also produces no symbol files and has no command-line tool. To build an assembler, you supply those parts and use the tokenizer, the expression evaluator, `BitVec` and the output formats.