"""
Сжатие и распаковка файлов на диске с отчётом о прочитанных и записанных битах.
"""

import os
from dataclasses import dataclass
from typing import Optional

from bitio import BitInputStream, BitOutputStream
from processor import HuffProcessor


COMPRESSED_SUFFIX = '.hf'
DECOMPRESSED_SUFFIX = '.uhf'


@dataclass
class ProcessResult:
    source: str
    target: str
    bits_read: int
    bits_written: int

    @property
    def ratio(self) -> float:
        return (self.bits_written / self.bits_read * 100) if self.bits_read > 0 else 0


def compressed_name(path: str) -> str:
    return path + COMPRESSED_SUFFIX


def decompressed_name(path: str) -> str:
    if path.endswith(COMPRESSED_SUFFIX):
        path = path[:-len(COMPRESSED_SUFFIX)]
    return path + DECOMPRESSED_SUFFIX


def _check_distinct(source: str, target: str):
    if os.path.exists(target) and os.path.samefile(source, target):
        raise ValueError(f"Output {target} is the same file as the input")


class FileProcessor:
    def __init__(self, debug: int = 0):
        self.processor = HuffProcessor(debug)

    def compress_file(self, source: str, target: Optional[str] = None) -> ProcessResult:
        if not os.path.isfile(source):
            raise FileNotFoundError(f"{source} not found")

        target = target or compressed_name(source)
        _check_distinct(source, target)

        with BitInputStream.open(source) as bit_input:
            out = BitOutputStream.open(target)
            self.processor.compress(bit_input, out)
            # bit_input.bits_read counts both passes
            bits_read = os.path.getsize(source) * 8

        return ProcessResult(source, target, bits_read, out.bits_written)

    def decompress_file(self, source: str, target: Optional[str] = None) -> ProcessResult:
        if not os.path.isfile(source):
            raise FileNotFoundError(f"{source} not found")

        target = target or decompressed_name(source)
        _check_distinct(source, target)

        with BitInputStream.open(source) as bit_input:
            out = BitOutputStream.open(target)
            try:
                self.processor.decompress(bit_input, out)
            except (ValueError, OSError):
                os.remove(target)
                raise

            bits_read = bit_input.bits_read

        return ProcessResult(source, target, bits_read, out.bits_written)
