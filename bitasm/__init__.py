"""Tokenizer, expression language, sized integers, bit vectors and binary output formats for bit-level assembly."""

__version__ = "0.1.0"