"""
Сжатие и распаковка потоков кодом Хаффмана с деревом в заголовке.
"""

import sys

from bitio import END_OF_STREAM, MAX_BITS, BitInputStream, BitOutputStream
from format import (BITS_PER_WORD, DEBUG_HIGH, DEBUG_LOW, PSEUDO_EOF,
                    UnexpectedEndOfStream, check_magic, write_magic)
from huffman import HuffmanTree, read_for_counts


def write_code(code: str, out):
    # codes are bit strings, leading zeros included; may exceed MAX_BITS
    for start in range(0, len(code), MAX_BITS):
        piece = code[start:start + MAX_BITS]
        out.write_bits(len(piece), int(piece, 2))


class HuffProcessor:
    def __init__(self, debug: int = 0):
        self.debug = debug

    def _log(self, level: int, message: str):
        if self.debug >= level:
            print(message, file=sys.stderr)

    def _close_ports(self, bit_input, out):
        # input ports only close files they opened themselves
        try:
            out.close()
        finally:
            bit_input.close()

    def compress(self, bit_input, out) -> int:
        """
        Сжимает bit_input в out за два прохода по входу.
        Возвращает число записанных бит без учёта выравнивания.
        """
        try:
            counts = read_for_counts(bit_input)
            tree = HuffmanTree.from_counts(counts)

            self._log(DEBUG_LOW, f"distinct symbols: {len(tree.codes) - 1}, "
                                 f"header bits: {tree.header_bits()}")
            for value, code in sorted(tree.codes.items()):
                self._log(DEBUG_HIGH, f"encoding {value} as {code or '<empty>'}")

            write_magic(out)
            tree.write(out)

            bit_input.reset()
            self._write_compressed_bits(tree.codes, bit_input, out)
            write_code(tree.codes[PSEUDO_EOF], out)
        finally:
            self._close_ports(bit_input, out)

        self._log(DEBUG_LOW, f"compress wrote {out.bits_written} bits")
        return out.bits_written

    def _write_compressed_bits(self, codes, bit_input, out):
        while True:
            value = bit_input.read_bits(BITS_PER_WORD)
            if value == END_OF_STREAM:
                break
            write_code(codes[value], out)

    def decompress(self, bit_input, out) -> int:
        """
        Восстанавливает исходные байты. Бросает UnsupportedFormat,
        MalformedHeader или UnexpectedEndOfStream на повреждённом входе.
        """
        try:
            check_magic(bit_input)
            tree = HuffmanTree.read(bit_input)

            self._log(DEBUG_LOW, f"header holds {len(tree.codes)} leaves")
            for leaf in tree.leaves():
                self._log(DEBUG_HIGH, f"header leaf {leaf.value}")

            self._read_compressed_bits(tree.root, bit_input, out)
        finally:
            self._close_ports(bit_input, out)

        self._log(DEBUG_LOW, f"decompress wrote {out.bits_written} bits")
        return out.bits_written

    def _read_compressed_bits(self, root, bit_input, out):
        # empty input compresses to a tree that is just the PSEUDO_EOF leaf
        if root.is_leaf:
            return

        current = root
        while True:
            bit = bit_input.read_bits(1)
            if bit == END_OF_STREAM:
                raise UnexpectedEndOfStream("Bad input, no PSEUDO_EOF")

            current = current.left if bit == 0 else current.right

            if current.is_leaf:
                if current.value == PSEUDO_EOF:
                    break
                out.write_bits(BITS_PER_WORD, current.value)
                current = root


def compress_bytes(data: bytes, debug: int = 0) -> bytes:
    out = BitOutputStream()
    HuffProcessor(debug).compress(BitInputStream.from_bytes(data), out)
    return out.getvalue()


def decompress_bytes(data: bytes, debug: int = 0) -> bytes:
    out = BitOutputStream()
    HuffProcessor(debug).decompress(BitInputStream.from_bytes(data), out)
    return out.getvalue()
