"""
Определяет константы формата сжатого файла и ошибки разбора.

Сжатый поток начинается с 32-битного магического числа HUFF_TREE,
за которым следует дерево в прямом обходе и сами коды.
"""

BITS_PER_WORD = 8
BITS_PER_INT = 32
ALPH_SIZE = 1 << BITS_PER_WORD
PSEUDO_EOF = ALPH_SIZE
HUFF_NUMBER = 0xface8200
HUFF_TREE = HUFF_NUMBER | 1

DEBUG_LOW = 1
DEBUG_HIGH = 4


class HuffException(ValueError):
    pass


class UnsupportedFormat(HuffException):
    pass


class MalformedHeader(HuffException):
    pass


class UnexpectedEndOfStream(HuffException):
    pass


def write_magic(out) -> None:
    out.write_bits(BITS_PER_INT, HUFF_TREE)


def check_magic(bit_input) -> None:
    # END_OF_STREAM from bitio is -1, so a short stream never matches
    magic = bit_input.read_bits(BITS_PER_INT)
    if magic < 0:
        raise UnsupportedFormat("Stream too short to hold a header")
    if magic != HUFF_TREE:
        raise UnsupportedFormat(f"Illegal header starts with {magic:#010x}")
