import unittest
import tempfile
import os
import io
import sys
import random
import shutil
from contextlib import redirect_stderr, redirect_stdout
from unittest import mock

from bitio import END_OF_STREAM, BitInputStream, BitOutputStream
from format import (HUFF_TREE, PSEUDO_EOF, ALPH_SIZE, DEBUG_HIGH, HuffException,
                    MalformedHeader, UnexpectedEndOfStream, UnsupportedFormat)
from huffman import (HuffNode, HuffmanTree, make_codings_from_tree, make_tree_from_counts,
                     read_for_counts, read_tree_header, write_header)
from processor import HuffProcessor, compress_bytes, decompress_bytes, write_code
from file_processor import FileProcessor, compressed_name, decompressed_name
from main import main


def counts_for(data: bytes):
    return read_for_counts(BitInputStream.from_bytes(data))


def bit_string(data: bytes) -> str:
    return ''.join(f"{byte:08b}" for byte in data)


class TestBitStreams(unittest.TestCase):
    def test_read_msb_first(self):
        stream = BitInputStream.from_bytes(b'\xA5\x0F')
        self.assertEqual(stream.read_bits(4), 0xA)
        self.assertEqual(stream.read_bits(4), 0x5)
        self.assertEqual(stream.read_bits(8), 0x0F)
        self.assertEqual(stream.read_bits(1), END_OF_STREAM)

    def test_read_across_bytes(self):
        stream = BitInputStream.from_bytes(b'\xAB\xCD')
        self.assertEqual(stream.read_bits(12), 0xABC)
        self.assertEqual(stream.read_bits(8), END_OF_STREAM)
        self.assertEqual(stream.read_bits(4), 0xD)

    def test_read_32_bits(self):
        stream = BitInputStream.from_bytes(b'\xfa\xce\x82\x01')
        self.assertEqual(stream.read_bits(32), HUFF_TREE)
        self.assertEqual(stream.bits_read, 32)

    def test_reset(self):
        stream = BitInputStream.from_bytes(b'xyz')
        first = [stream.read_bits(8) for _ in range(3)]
        self.assertEqual(stream.read_bits(8), END_OF_STREAM)

        stream.reset()
        second = [stream.read_bits(8) for _ in range(3)]
        self.assertEqual(first, second)
        self.assertEqual(first, list(b'xyz'))

    def test_reset_unseekable(self):
        class Pipe(io.BytesIO):
            def seekable(self):
                return False

        stream = BitInputStream(Pipe(b'abc'))
        with self.assertRaises(ValueError):
            stream.reset()

    def test_write_pads_with_zeros(self):
        out = BitOutputStream()
        out.write_bits(3, 0b101)
        out.close()
        self.assertEqual(out.getvalue(), b'\xA0')
        self.assertEqual(out.bits_written, 3)

    def test_write_keeps_low_bits(self):
        out = BitOutputStream()
        out.write_bits(8, 0x1FF)
        out.write_bits(32, HUFF_TREE)
        out.close()
        self.assertEqual(out.getvalue(), b'\xff\xfa\xce\x82\x01')

    def test_bad_bit_counts(self):
        with self.assertRaises(ValueError):
            BitInputStream.from_bytes(b'abcde').read_bits(33)
        with self.assertRaises(ValueError):
            BitOutputStream().write_bits(-1, 0)

    def test_close_is_idempotent(self):
        out = BitOutputStream()
        out.write_bits(1, 1)
        out.close()
        out.close()
        self.assertEqual(out.getvalue(), b'\x80')

        with self.assertRaises(ValueError):
            out.write_bits(1, 1)


class TestFrequencyCounts(unittest.TestCase):
    def test_counts(self):
        counts = counts_for(b'aab')
        self.assertEqual(len(counts), ALPH_SIZE + 1)
        self.assertEqual(counts[0x61], 2)
        self.assertEqual(counts[0x62], 1)
        self.assertEqual(counts[PSEUDO_EOF], 1)
        self.assertEqual(sum(counts), 4)

    def test_empty_input(self):
        counts = counts_for(b'')
        self.assertEqual(counts[PSEUDO_EOF], 1)
        self.assertEqual(sum(counts), 1)


class TestTreeBuilding(unittest.TestCase):
    def test_aab_tree(self):
        root = make_tree_from_counts(counts_for(b'aab'))
        self.assertEqual(root.weight, 4)
        self.assertTrue(root.left.is_leaf)
        self.assertEqual(root.left.value, 0x61)
        self.assertEqual(root.right.weight, 2)

        codes = make_codings_from_tree(root)
        self.assertEqual(codes, {0x61: '0', 0x62: '10', PSEUDO_EOF: '11'})

    def test_empty_input_tree(self):
        root = make_tree_from_counts(counts_for(b''))
        self.assertTrue(root.is_leaf)
        self.assertEqual(root.value, PSEUDO_EOF)
        self.assertEqual(make_codings_from_tree(root), {PSEUDO_EOF: ''})

    def test_weights_add_up(self):
        data = b"The quick brown fox jumps over the lazy dog"
        root = make_tree_from_counts(counts_for(data))

        def check(node):
            if node.is_leaf:
                return node.weight
            self.assertEqual(node.weight, check(node.left) + check(node.right))
            return node.weight

        self.assertEqual(check(root), len(data) + 1)

    def test_no_symbols(self):
        with self.assertRaises(ValueError):
            make_tree_from_counts([0] * (ALPH_SIZE + 1))


class TestCodings(unittest.TestCase):
    def assertPrefixFree(self, codes):
        values = list(codes.values())
        for i, first in enumerate(values):
            for j, second in enumerate(values):
                if i != j:
                    self.assertFalse(second.startswith(first), f"{first} prefixes {second}")

    def test_prefix_free(self):
        data = bytes(range(256)) * 3 + b'a' * 100 + b'bc' * 40
        codes = make_codings_from_tree(make_tree_from_counts(counts_for(data)))
        self.assertEqual(len(codes), 257)
        self.assertPrefixFree(codes)

    def test_frequent_symbols_are_shorter(self):
        codes = make_codings_from_tree(make_tree_from_counts(counts_for(b'a' * 50 + b'b' * 5 + b'c')))
        self.assertLess(len(codes[ord('a')]), len(codes[ord('c')]))

    def long_code_counts(self):
        # Fibonacci weights merge one leaf at a time into a single chain
        counts = [0] * (ALPH_SIZE + 1)
        counts[PSEUDO_EOF] = 1
        a, b = 1, 2
        for value in range(45):
            counts[value] = a
            a, b = b, a + b
        return counts

    def test_long_codes(self):
        codes = make_codings_from_tree(make_tree_from_counts(self.long_code_counts()))
        self.assertGreater(max(len(code) for code in codes.values()), 32)
        self.assertPrefixFree(codes)

    def test_long_codes_round_trip(self):
        tree = HuffmanTree.from_counts(self.long_code_counts())
        self.assertGreater(len(tree.codes[0]), 32)

        symbols = [0, 44, 1, 0, 20, 2]
        out = BitOutputStream()
        out.write_bits(32, HUFF_TREE)
        tree.write(out)
        for value in symbols:
            write_code(tree.codes[value], out)
        write_code(tree.codes[PSEUDO_EOF], out)
        out.close()

        restored = BitOutputStream()
        HuffProcessor().decompress(BitInputStream.from_bytes(out.getvalue()), restored)
        self.assertEqual(restored.getvalue(), bytes(symbols))

    def test_write_code_keeps_leading_zeros(self):
        out = BitOutputStream()
        write_code('001', out)
        write_code('', out)
        write_code('0' * 5 + '1' * 40, out)
        out.close()

        self.assertEqual(out.bits_written, 48)
        self.assertEqual(bit_string(out.getvalue()), '001' + '0' * 5 + '1' * 40)


class TestTreeHeader(unittest.TestCase):
    def write(self, root) -> bytes:
        out = BitOutputStream()
        write_header(root, out)
        out.close()
        return out.getvalue()

    def test_single_leaf_header(self):
        self.assertEqual(self.write(HuffNode(PSEUDO_EOF)), b'\xc0\x00')

    def test_header_round_trip(self):
        for data in (b'', b'aab', b"Lorem ipsum dolor sit amet " * 20, bytes(range(256))):
            with self.subTest(data=data[:16]):
                tree = HuffmanTree.from_counts(counts_for(data))
                header = self.write(tree.root)
                restored = HuffmanTree.read(BitInputStream.from_bytes(header))
                self.assertEqual(restored.codes, tree.codes)

    def test_header_bits(self):
        tree = HuffmanTree.from_counts(counts_for(b'aab'))
        out = BitOutputStream()
        tree.write(out)
        self.assertEqual(out.bits_written, tree.header_bits())
        self.assertEqual([leaf.value for leaf in tree.leaves()], [0x61, 0x62, PSEUDO_EOF])

    def test_truncated_header(self):
        with self.assertRaises(MalformedHeader):
            read_tree_header(BitInputStream.from_bytes(b''))
        with self.assertRaises(MalformedHeader):
            read_tree_header(BitInputStream.from_bytes(b'\x00'))
        with self.assertRaises(MalformedHeader):
            read_tree_header(BitInputStream.from_bytes(b'\xc0'))

    def test_leaf_outside_alphabet(self):
        with self.assertRaises(MalformedHeader):
            read_tree_header(BitInputStream.from_bytes(b'\xc0\x40'))

    def test_single_leaf_must_be_pseudo_eof(self):
        with self.assertRaises(MalformedHeader):
            read_tree_header(BitInputStream.from_bytes(b'\x98\x40'))

    def test_header_too_deep(self):
        with self.assertRaises(MalformedHeader):
            read_tree_header(BitInputStream.from_bytes(b'\x00' * 40))


class TestCompression(unittest.TestCase):
    def test_aab(self):
        compressed = compress_bytes(b'aab')
        self.assertEqual(compressed, b'\xfa\xce\x82\x01\x4c\x29\x8b\x00\x2c')
        self.assertEqual(decompress_bytes(compressed), b'aab')

    def test_empty(self):
        compressed = compress_bytes(b'')
        self.assertEqual(compressed, b'\xfa\xce\x82\x01\xc0\x00')
        self.assertEqual(decompress_bytes(compressed), b'')

    def test_round_trip(self):
        random.seed(42)
        samples = [
            b'A',
            b'ab',
            bytes(range(256)),
            bytes(range(256)) * 10,
            b"The quick brown fox jumps over the lazy dog",
            b"Lorem ipsum dolor sit amet " * 200,
            bytes(random.randint(0, 255) for _ in range(5000)),
            bytes(random.randint(0, 255) for _ in range(3)),
        ]
        for data in samples:
            with self.subTest(size=len(data)):
                self.assertEqual(decompress_bytes(compress_bytes(data)), data)

    def test_single_symbol_file(self):
        for value in range(256):
            with self.subTest(value=value):
                data = bytes([value]) * 1000
                compressed = compress_bytes(data)
                self.assertLess(len(compressed), 1000)
                self.assertEqual(decompress_bytes(compressed), data)

    def test_header_holds_pseudo_eof(self):
        for data in (b'', b'x', b'hello world'):
            with self.subTest(data=data):
                stream = BitInputStream.from_bytes(compress_bytes(data))
                self.assertEqual(stream.read_bits(32), HUFF_TREE)
                self.assertIn(PSEUDO_EOF, HuffmanTree.read(stream).codes)

    def test_stops_at_pseudo_eof(self):
        compressed = compress_bytes(b'hello world' * 10)
        stream = BitInputStream.from_bytes(compressed)
        HuffProcessor().decompress(stream, BitOutputStream())
        self.assertLess(len(compressed) * 8 - stream.bits_read, 8)

    def test_bits_written(self):
        out = BitOutputStream()
        bits = HuffProcessor().compress(BitInputStream.from_bytes(b'aab'), out)
        # 32 bit magic, 32 bit tree, 6 bits of codes
        self.assertEqual(bits, 70)
        self.assertEqual(len(out.getvalue()), 9)

    def test_debug_output(self):
        stderr = io.StringIO()
        with redirect_stderr(stderr):
            HuffProcessor(debug=DEBUG_HIGH).compress(
                BitInputStream.from_bytes(b'aab'), BitOutputStream())
        self.assertIn('encoding 97 as 0', stderr.getvalue())
        self.assertIn('compress wrote 70 bits', stderr.getvalue())

    def test_silent_by_default(self):
        stderr = io.StringIO()
        with redirect_stderr(stderr):
            compress_bytes(b'aab')
        self.assertEqual(stderr.getvalue(), '')


class TestDecompressionErrors(unittest.TestCase):
    def test_corrupted_magic(self):
        compressed = bytearray(compress_bytes(b'Hello World' * 50))
        compressed[0] ^= 0xFF
        with self.assertRaises(UnsupportedFormat):
            decompress_bytes(bytes(compressed))

    def test_too_short_for_magic(self):
        with self.assertRaises(UnsupportedFormat):
            decompress_bytes(b'\xfa\xce')

    def test_truncated_header(self):
        compressed = compress_bytes(b'hello world')
        with self.assertRaises(MalformedHeader):
            decompress_bytes(compressed[:5])

    def test_truncated_payload(self):
        compressed = compress_bytes(b'This is a test' * 100)
        with self.assertRaises(UnexpectedEndOfStream):
            decompress_bytes(compressed[:-3])

    def test_errors_are_value_errors(self):
        for error in (UnsupportedFormat, MalformedHeader, UnexpectedEndOfStream):
            self.assertTrue(issubclass(error, HuffException))
            self.assertTrue(issubclass(error, ValueError))

    def test_output_closed_on_error(self):
        out = BitOutputStream()
        with self.assertRaises(UnsupportedFormat):
            HuffProcessor().decompress(BitInputStream.from_bytes(b'nope'), out)
        with self.assertRaises(ValueError):
            out.write_bits(1, 1)

    def test_owned_input_closed_on_error(self):
        source = io.BytesIO(b'nope')
        with self.assertRaises(UnsupportedFormat):
            HuffProcessor().decompress(BitInputStream(source, owns_stream=True), BitOutputStream())
        self.assertTrue(source.closed)

    def test_caller_input_left_open(self):
        source = io.BytesIO(b'aab')
        HuffProcessor().compress(BitInputStream(source), BitOutputStream())
        self.assertFalse(source.closed)
        self.assertEqual(source.getvalue(), b'aab')


class TestFileProcessor(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.processor = FileProcessor()

    def tearDown(self):
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def make_file(self, name: str, data: bytes) -> str:
        path = os.path.join(self.temp_dir, name)
        with open(path, 'wb') as f:
            f.write(data)
        return path

    def test_default_names(self):
        self.assertEqual(compressed_name('a.txt'), 'a.txt.hf')
        self.assertEqual(decompressed_name('a.txt.hf'), 'a.txt.uhf')
        self.assertEqual(decompressed_name('a.bin'), 'a.bin.uhf')

    def test_compress_decompress_file(self):
        data = b"Hello World! " * 100
        source = self.make_file("test.txt", data)

        compressed = self.processor.compress_file(source)
        self.assertEqual(compressed.target, source + '.hf')
        self.assertEqual(compressed.bits_read, len(data) * 8)
        self.assertLess(compressed.bits_written, compressed.bits_read)
        self.assertLess(compressed.ratio, 100)

        restored = self.processor.decompress_file(compressed.target)
        self.assertEqual(restored.target, source + '.uhf')
        self.assertEqual(restored.bits_written, len(data) * 8)

        with open(restored.target, 'rb') as f:
            self.assertEqual(f.read(), data)

    def test_explicit_target(self):
        source = self.make_file("empty.bin", b'')
        target = os.path.join(self.temp_dir, "out.huff")

        result = self.processor.compress_file(source, target)
        self.assertEqual(result.target, target)
        self.assertEqual(result.ratio, 0)

        restored = os.path.join(self.temp_dir, "restored.bin")
        self.processor.decompress_file(target, restored)
        with open(restored, 'rb') as f:
            self.assertEqual(f.read(), b'')

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            self.processor.compress_file(os.path.join(self.temp_dir, "missing.txt"))

    def test_failed_decompression_removes_target(self):
        source = self.make_file("bad.hf", b'not a huffman file')
        with self.assertRaises(UnsupportedFormat):
            self.processor.decompress_file(source)
        self.assertFalse(os.path.exists(os.path.join(self.temp_dir, "bad.uhf")))

    def test_os_error_removes_target(self):
        source = self.make_file("data.hf", compress_bytes(b'hello world'))
        target = os.path.join(self.temp_dir, "data.uhf")

        def fail(bit_input, out):
            out.write_bits(8, 0x41)
            out.close()
            raise OSError("disk full")

        with mock.patch.object(self.processor.processor, 'decompress', side_effect=fail):
            with self.assertRaises(OSError):
                self.processor.decompress_file(source)
        self.assertFalse(os.path.exists(target))

    def test_compress_onto_source(self):
        data = b"keep me " * 20
        source = self.make_file("same.txt", data)
        with self.assertRaises(ValueError):
            self.processor.compress_file(source, source)

        with open(source, 'rb') as f:
            self.assertEqual(f.read(), data)

    def test_decompress_onto_source(self):
        compressed = compress_bytes(b"keep me " * 20)
        source = self.make_file("same.hf", compressed)
        with self.assertRaises(ValueError):
            self.processor.decompress_file(source, source)

        with open(source, 'rb') as f:
            self.assertEqual(f.read(), compressed)


class TestMain(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def test_compress_and_decompress(self):
        source = os.path.join(self.temp_dir, "file.txt")
        with open(source, 'wb') as f:
            f.write(b"Content of file\n" * 50)

        with redirect_stdout(io.StringIO()) as stdout:
            self.assertEqual(main(['compress', source]), 0)
            self.assertEqual(main(['decompress', source + '.hf', '-o', source + '.out']), 0)

        self.assertIn('Compressed', stdout.getvalue())
        with open(source + '.out', 'rb') as f:
            self.assertEqual(f.read(), b"Content of file\n" * 50)

    def test_errors_exit_with_one(self):
        source = os.path.join(self.temp_dir, "bad.hf")
        with open(source, 'wb') as f:
            f.write(b'garbage')

        with redirect_stderr(io.StringIO()) as stderr:
            self.assertEqual(main(['decompress', source]), 1)
            self.assertEqual(main(['compress', os.path.join(self.temp_dir, "missing")]), 1)
            self.assertEqual(main(['decompress', source, '-o', source]), 1)

        self.assertIn('Error:', stderr.getvalue())


def run_tests():
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    for case in (TestBitStreams, TestFrequencyCounts, TestTreeBuilding, TestCodings,
                 TestTreeHeader, TestCompression, TestDecompressionErrors,
                 TestFileProcessor, TestMain):
        suite.addTests(loader.loadTestsFromTestCase(case))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    sys.exit(run_tests())
