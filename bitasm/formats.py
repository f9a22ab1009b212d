"""Text and binary renderings of assembled bit vectors."""

from __future__ import annotations

from typing import Optional

from bitasm.bitvec import BitVec, BitVecSpan
from bitasm.charcounter import CharCounter
from bitasm.fileserver import FileServer


def _read_value(bits: BitVec, start: int, count: int) -> int:
    """``count`` bits from ``start`` as an unsigned value, most significant first."""
    value = 0
    for index in range(start, start + count):
        value = (value << 1) | bits.read(index)
    return value


def _digit_char(digit: int) -> str:
    return chr(ord("0") + digit) if digit < 10 else chr(ord("a") + digit - 10)


def _byte_count(bits: BitVec) -> int:
    return (len(bits) + 7) // 8


def _iter_bytes(bits: BitVec):
    for index in range(0, len(bits), 8):
        yield _read_value(bits, index, 8)


def _sorted_spans(bits: BitVec) -> list[BitVecSpan]:
    # Spans without an offset come first, as in an ordering where "none" is least.
    return sorted(bits.spans, key=lambda s: (s.offset is not None, s.offset or 0))


def _format_byte(byte: int, radix: int) -> str:
    if radix == 10:
        return str(byte)
    if radix == 16:
        return f"0x{byte:02x}"
    raise ValueError("invalid radix")


def format_binary(bits: BitVec) -> bytes:
    """The bits packed into bytes, the last one padded with zero bits."""
    return bytes(_iter_bytes(bits))


def format_binstr(bits: BitVec) -> str:
    return format_str(bits, 1)


def format_hexstr(bits: BitVec) -> str:
    return format_str(bits, 4)


def format_str(bits: BitVec, bits_per_digit: int) -> str:
    """One digit per ``bits_per_digit`` bits, the last one padded with zeros."""
    return "".join(
        _digit_char(_read_value(bits, index, bits_per_digit))
        for index in range(0, len(bits), bits_per_digit)
    )


def format_bindump(bits: BitVec) -> str:
    return format_dump(bits, 1, 8, 8)


def format_hexdump(bits: BitVec) -> str:
    return format_dump(bits, 4, 8, 16)


def format_dump(bits: BitVec, digit_bits: int, byte_bits: int, bytes_per_line: int) -> str:
    """A dump with an address column, digit groups and, for bytes, an ASCII column."""
    length = len(bits)
    line_start = 0
    line_end = (length + (bytes_per_line - 1) * byte_bits) // (byte_bits * bytes_per_line)
    if length < byte_bits:
        line_end = line_start + 1

    addr_width = len(format((line_end - 1) * bytes_per_line, "x"))
    out: list[str] = []

    for line_index in range(line_start, line_end):
        out.append(f" {line_index * bytes_per_line:0{addr_width}x} | ")

        for byte_index in range(bytes_per_line):
            for digit_index in range(byte_bits // digit_bits):
                first_bit = ((line_index * bytes_per_line + byte_index) * byte_bits
                             + digit_index * digit_bits)
                if first_bit >= length:
                    out.append(".")
                    continue
                out.append(_digit_char(_read_value(bits, first_bit, digit_bits)))

            out.append(" ")
            if byte_index % 4 == 3 and byte_index < bytes_per_line - 1:
                out.append(" ")

        out.append("| ")

        if byte_bits == 8:
            for byte_index in range(bytes_per_line):
                first_bit = (line_index * bytes_per_line + byte_index) * byte_bits
                if first_bit >= length:
                    out.append(".")
                    continue
                c = chr(_read_value(bits, first_bit, byte_bits))
                if c in " \t\r\n":
                    out.append(" ")
                elif ord(c) >= 0x80 or c < " " or c == "|":
                    out.append(".")
                else:
                    out.append(c)
            out.append(" |")

        out.append("\n")

    return "".join(out)


def format_mif(bits: BitVec) -> str:
    """A memory initialization file with one byte per word."""
    byte_num = _byte_count(bits)
    if byte_num == 0:
        raise ValueError("no data to format")

    out = [
        f"DEPTH = {byte_num};\n",
        "WIDTH = 8;\n",
        "ADDRESS_RADIX = HEX;\n",
        "DATA_RADIX = HEX;\n",
        "\n",
        "CONTENT\n",
        "BEGIN\n",
    ]
    addr_width = len(format(byte_num - 1, "x"))
    for address, byte in enumerate(_iter_bytes(bits)):
        out.append(f" {address:{addr_width}X}: {byte:02X};\n")
    out.append("END;")
    return "".join(out)


def format_intelhex(bits: BitVec) -> str:
    """Intel HEX data records of up to 32 bytes, then the end-of-file record."""
    data = format_binary(bits)
    out: list[str] = []
    for address in range(0, len(data), 32):
        row = data[address:address + 32]
        checksum = (len(row) + ((address >> 8) & 0xFF) + (address & 0xFF) + sum(row)) & 0xFF
        out.append(f":{len(row):02X}{address:04X}00")
        out.append("".join(f"{byte:02X}" for byte in row))
        out.append(f"{(-checksum) & 0xFF:02X}\n")
    out.append(":00000001FF")
    return "".join(out)


def format_comma(bits: BitVec, radix: int) -> str:
    """Comma-separated bytes in decimal or hex, sixteen to a line."""
    data = format_binary(bits)
    out: list[str] = []
    for count, byte in enumerate(data, start=1):
        out.append(_format_byte(byte, radix))
        if count * 8 < len(bits):
            out.append(", ")
            if count % 16 == 0:
                out.append("\n")
    return "".join(out)


def format_c_array(bits: BitVec, radix: int) -> str:
    """A C array definition holding the bytes, sixteen to a line."""
    data = format_binary(bits)
    if not data:
        raise ValueError("no data to format")
    if radix not in (10, 16):
        raise ValueError("invalid radix")

    addr_width = len(format(len(data) - 1, "x"))
    out = ["const unsigned char data[] = {\n", f"\t/* 0x{0:0{addr_width}x} */ "]
    for count, byte in enumerate(data, start=1):
        out.append(_format_byte(byte, radix))
        if count * 8 < len(bits):
            out.append(", ")
            if count % 16 == 0:
                out.append(f"\n\t/* 0x{count:0{addr_width}x} */ ")
    out.append("\n};")
    return "".join(out)


def format_logisim(bits: BitVec, bits_per_chunk: int) -> str:
    """A Logisim raw image with chunks of ``bits_per_chunk`` bits."""
    out = ["v2.0 raw\n"]
    digits = bits_per_chunk // 4
    for index in range(0, len(bits), bits_per_chunk):
        value = _read_value(bits, index, bits_per_chunk) & 0xFFFF
        out.append(f"{value:0{digits}x} ")
        if ((index + bits_per_chunk) // 8) % 16 == 0:
            out.append("\n")
    return "".join(out)


def format_annotated_bin(bits: BitVec, fileserver: FileServer) -> str:
    return format_annotated(bits, fileserver, 1, 8)


def format_annotated_hex(bits: BitVec, fileserver: FileServer) -> str:
    return format_annotated(bits, fileserver, 4, 2)


def format_annotated(
    bits: BitVec,
    fileserver: FileServer,
    digit_bits: int,
    byte_digits: int,
) -> str:
    """A listing of each span's output position, address, data and source text."""
    byte_bits = byte_digits * digit_bits

    outp_width = 2
    outp_bit_width = len(format(digit_bits - 1, "x"))
    addr_width = 4
    content_width = byte_digits

    spans = _sorted_spans(bits)

    for span in spans:
        if span.offset is None:
            continue
        outp_width = max(outp_width, len(format(span.offset // byte_bits, "x")))
        addr_width = max(addr_width, len(format(span.addr, "x")))
        data_digits = -(-span.size // digit_bits)
        this_width = data_digits + data_digits // byte_digits
        if 1 < this_width <= (byte_digits + 1) * 5:
            content_width = max(content_width, this_width - 1)

    out = [
        f" {'outp':>{outp_width + outp_bit_width + 1}} |",
        f" {'addr':>{addr_width}} | data",
        "\n\n",
    ]

    prev_filename: Optional[str] = None
    counter = CharCounter("")

    for span in spans:
        if span.offset is not None:
            out.append(f" {span.offset // byte_bits:{outp_width}x}")
            out.append(f":{span.offset % byte_bits:{outp_bit_width}x} | ")
        else:
            out.append(f" {'--':>{outp_width}}")
            out.append(f":{'-':>{outp_bit_width}} | ")

        out.append(f"{span.addr:{addr_width}x} | ")

        digit_num = -(-span.size // digit_bits)
        if digit_num > 0 and span.offset is None:
            raise ValueError("span with data has no output offset")

        contents: list[str] = []
        for digit_index in range(digit_num):
            if digit_index > 0 and digit_index % byte_digits == 0:
                contents.append(" ")
            start = span.offset + digit_index * digit_bits
            contents.append(_digit_char(_read_value(bits, start, digit_bits)))

        if span.span.file != prev_filename:
            prev_filename = span.span.file
            counter = CharCounter(fileserver.get_chars(prev_filename))

        if span.span.location is None:
            raise ValueError("span has no location")
        start, end = span.span.location

        out.append(f"{''.join(contents):{content_width}}")
        out.append(f" ; {counter.get_excerpt(start, end)}")
        out.append("\n")

    return "".join(out)


def format_addrspan(bits: BitVec, fileserver: FileServer) -> str:
    """One line per span relating output bits to addresses and source positions."""
    out = [
        "; ",
        "physical address : bit offset | ",
        "logical address | ",
        "file : line start : column start : line end : column end\n",
    ]

    for span in _sorted_spans(bits):
        counter = CharCounter(fileserver.get_chars(span.span.file))

        if span.offset is not None:
            out.append(f"{span.offset // 8:x}:{span.offset % 8:x} | ")
        else:
            out.append("-:- | ")

        out.append(f"{span.addr:x} | ")

        if span.span.location is not None:
            start, end = span.span.location
            line_start, col_start = counter.get_line_column_at_index(start)
            line_end, col_end = counter.get_line_column_at_index(end)
            out.append(f"{span.span.file}:{line_start}:{col_start}:{line_end}:{col_end}")
        else:
            out.append(f"{span.span.file}:-:-:-:-")

        out.append("\n")

    return "".join(out)