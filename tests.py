import unittest
import tempfile
import os
import io
import random
import shutil
import sys
from contextlib import redirect_stdout, redirect_stderr
from unittest import mock

from bitstream import BitReader, BitWriter, EXHAUSTED
from huff_format import (
    HUFF_TREE, PSEUDO_EOF, SYMBOL_BITS, BITS_PER_INT,
    HuffError, InvalidHeaderError, UnexpectedEndError, is_compressed,
)
from huffman import (
    HuffProcessor, Code, DEBUG_HIGH,
    count_frequencies, build_tree, make_codings, write_header, read_tree,
    write_compressed_bits, decode_body, compress_bytes, decompress_bytes,
)
from processor import FileProcessor, compressed_name, restored_name
import main as cli


def leaves(node):
    if node.is_leaf:
        return [node]
    return leaves(node.left) + leaves(node.right)


def code_strings(codings):
    return {symbol: str(code) for symbol, code in enumerate(codings) if code is not None}


class TestBitStream(unittest.TestCase):
    def test_read_across_bytes(self):
        reader = BitReader(b'\xab\xcd')
        self.assertEqual(reader.read_bits(4), 0xa)
        self.assertEqual(reader.read_bits(8), 0xbc)
        self.assertEqual(reader.bits_read, 12)

    def test_read_past_end_consumes_nothing(self):
        reader = BitReader(b'\xab\xcd')
        reader.read_bits(12)
        self.assertEqual(reader.read_bits(8), EXHAUSTED)
        self.assertEqual(reader.read_bits(4), 0xd)
        self.assertEqual(reader.read_bits(1), EXHAUSTED)

    def test_reset(self):
        reader = BitReader(b'\x80')
        self.assertEqual(reader.read_bits(1), 1)
        reader.reset()
        self.assertEqual(reader.bits_read, 0)
        self.assertEqual(reader.read_bits(8), 0x80)

    def test_read_from_stream(self):
        reader = BitReader(io.BytesIO(b'\xab\xcd'))
        self.assertEqual(reader.read_bits(8), 0xab)
        self.assertEqual(reader.read_bits(8), 0xcd)
        reader.reset()
        self.assertEqual(reader.read_bits(4), 0xa)

    def test_from_file(self):
        temp_dir = tempfile.mkdtemp()
        try:
            path = os.path.join(temp_dir, "data.bin")
            with open(path, 'wb') as f:
                f.write(b'\x0f')
            self.assertEqual(BitReader.from_file(path).read_bits(8), 0x0f)
        finally:
            shutil.rmtree(temp_dir)

    def test_empty_reader(self):
        self.assertEqual(BitReader(b'').read_bits(1), EXHAUSTED)

    def test_writer_pads_last_byte(self):
        writer = BitWriter()
        writer.write_bits(3, 0b101)
        writer.write_bits(6, 0b110011)
        self.assertEqual(writer.bits_written, 9)
        self.assertEqual(writer.close(), b'\xb9\x80')

    def test_writer_keeps_low_bits(self):
        writer = BitWriter()
        writer.write_bits(4, 0xff)
        writer.write_bits(4, 0x10)
        self.assertEqual(writer.close(), b'\xf0')

    def test_writer_to_external_stream(self):
        stream = io.BytesIO()
        writer = BitWriter(stream)
        writer.write_bits(BITS_PER_INT, HUFF_TREE)
        self.assertIsNone(writer.close())
        self.assertEqual(stream.getvalue(), b'\xfa\xce\x82\x01')

    def test_write_after_close(self):
        writer = BitWriter()
        writer.close()
        with self.assertRaises(ValueError):
            writer.write_bits(1, 1)


class TestTreeBuilding(unittest.TestCase):
    def test_frequency_table(self):
        counts = count_frequencies(BitReader(b"aab"))
        self.assertEqual(len(counts), 257)
        self.assertEqual(counts[ord('a')], 2)
        self.assertEqual(counts[ord('b')], 1)
        self.assertEqual(counts[PSEUDO_EOF], 1)
        self.assertEqual(sum(counts), 4)

    def test_empty_frequency_table(self):
        counts = count_frequencies(BitReader(b""))
        self.assertEqual(counts[PSEUDO_EOF], 1)
        self.assertEqual(sum(counts), 1)

    def test_root_weight_is_total(self):
        counts = count_frequencies(BitReader(b"abracadabra"))
        root = build_tree(counts)
        self.assertEqual(root.weight, 12)

    def test_equal_weights_merge_in_order(self):
        codings = make_codings(build_tree(count_frequencies(BitReader(b"abc"))))
        self.assertEqual(code_strings(codings), {
            ord('a'): '00',
            ord('b'): '01',
            ord('c'): '10',
            PSEUDO_EOF: '11',
        })

    def test_single_symbol_input(self):
        codings = make_codings(build_tree(count_frequencies(BitReader(b"A"))))
        self.assertEqual(code_strings(codings), {ord('A'): '0', PSEUDO_EOF: '1'})

    def test_lone_sentinel_gets_placeholder(self):
        root = build_tree(count_frequencies(BitReader(b"")))
        self.assertFalse(root.is_leaf)
        self.assertEqual(root.left.value, PSEUDO_EOF)
        self.assertEqual(root.right.value, 0)
        self.assertEqual(root.right.weight, 0)
        self.assertEqual(make_codings(root)[PSEUDO_EOF], Code(0, 1))

    def test_sentinel_unique(self):
        random.seed(7)
        data = bytes(random.randint(0, 255) for _ in range(2000))
        for sample in (b"", b"x", b"hello world", data):
            root = build_tree(count_frequencies(BitReader(sample)))
            sentinels = [n for n in leaves(root) if n.value == PSEUDO_EOF]
            self.assertEqual(len(sentinels), 1)

    def test_prefix_free(self):
        data = b"The quick brown fox jumps over the lazy dog" * 3 + bytes(range(40))
        codes = list(code_strings(make_codings(build_tree(count_frequencies(BitReader(data))))).values())
        for i, first in enumerate(codes):
            for second in codes[i + 1:]:
                self.assertFalse(first.startswith(second))
                self.assertFalse(second.startswith(first))

    def test_no_symbols(self):
        with self.assertRaises(ValueError):
            build_tree([0] * 257)

    def test_empty_tree_codings(self):
        self.assertEqual(make_codings(None), [None] * 257)


class TestHeader(unittest.TestCase):
    def test_header_self_delimiting(self):
        root = build_tree(count_frequencies(BitReader(b"mississippi river")))
        writer = BitWriter()
        write_header(root, writer)
        written = writer.bits_written
        writer.write_bits(7, 0b1010101)

        reader = BitReader(writer.close())
        rebuilt = read_tree(reader)
        self.assertEqual(reader.bits_read, written)
        self.assertEqual(code_strings(make_codings(rebuilt)),
                         code_strings(make_codings(root)))
        self.assertEqual(reader.read_bits(7), 0b1010101)

    def test_header_size(self):
        root = build_tree(count_frequencies(BitReader(b"abc")))
        writer = BitWriter()
        write_header(root, writer)
        # 4 leaves, 3 internal nodes
        self.assertEqual(writer.bits_written, 4 * (1 + SYMBOL_BITS) + 3)

    def test_truncated_header(self):
        root = build_tree(count_frequencies(BitReader(b"abc")))
        writer = BitWriter()
        write_header(root, writer)
        data = writer.close()
        with self.assertRaises(UnexpectedEndError) as ctx:
            read_tree(BitReader(data[:3]))
        self.assertEqual(ctx.exception.where, "header")

    def test_header_too_deep(self):
        writer = BitWriter()
        for _ in range(300):
            writer.write_bits(1, 0)
        with self.assertRaises(InvalidHeaderError):
            read_tree(BitReader(writer.close()))

    def test_duplicate_sentinel_leaves(self):
        writer = BitWriter()
        writer.write_bits(1, 0)
        writer.write_bits(1, 1)
        writer.write_bits(SYMBOL_BITS, PSEUDO_EOF)
        writer.write_bits(1, 1)
        writer.write_bits(SYMBOL_BITS, PSEUDO_EOF)
        with self.assertRaises(InvalidHeaderError) as ctx:
            read_tree(BitReader(writer.close()))
        self.assertIn("appears twice", str(ctx.exception))

    def test_duplicate_byte_leaves(self):
        writer = BitWriter()
        writer.write_bits(1, 0)
        writer.write_bits(1, 0)
        writer.write_bits(1, 1)
        writer.write_bits(SYMBOL_BITS, ord('a'))
        writer.write_bits(1, 1)
        writer.write_bits(SYMBOL_BITS, PSEUDO_EOF)
        writer.write_bits(1, 1)
        writer.write_bits(SYMBOL_BITS, ord('a'))
        with self.assertRaises(InvalidHeaderError):
            read_tree(BitReader(writer.close()))

    def test_symbol_out_of_range(self):
        writer = BitWriter()
        writer.write_bits(1, 0)
        writer.write_bits(1, 1)
        writer.write_bits(SYMBOL_BITS, 511)
        with self.assertRaises(InvalidHeaderError):
            read_tree(BitReader(writer.close()))


class TestHuffmanCodec(unittest.TestCase):
    def assertRoundTrip(self, data):
        compressed = compress_bytes(data)
        self.assertTrue(is_compressed(compressed))
        self.assertEqual(decompress_bytes(compressed), data)

    def test_simple_text(self):
        self.assertRoundTrip(b"aaabbc")

    def test_empty(self):
        self.assertEqual(compress_bytes(b""), b'\xfa\xce\x82\x01\x60\x10\x00')
        self.assertRoundTrip(b"")

    def test_single_char_repeated(self):
        self.assertRoundTrip(b"A")
        self.assertRoundTrip(b"A" * 1000)

    def test_all_bytes(self):
        self.assertRoundTrip(bytes(range(256)) * 4)

    def test_random_data(self):
        random.seed(42)
        self.assertRoundTrip(bytes(random.randint(0, 255) for _ in range(5000)))

    def test_skewed_data(self):
        random.seed(3)
        data = bytes(random.choice(b"aaaaaaaabbbbccd\x00\xff") for _ in range(3000))
        self.assertRoundTrip(data)
        self.assertLess(len(compress_bytes(data)), len(data))

    def test_large_text(self):
        self.assertRoundTrip(b"Lorem ipsum dolor sit amet " * 200)

    def test_body_length(self):
        data = b"abracadabra"
        counts = count_frequencies(BitReader(data))
        codings = make_codings(build_tree(counts))
        writer = BitWriter()
        body_bits = write_compressed_bits(codings, BitReader(data), writer)
        expected = sum(codings[b].length for b in data) + codings[PSEUDO_EOF].length
        self.assertEqual(body_bits, expected)

    def test_report(self):
        data = b"hello huffman"
        writer = BitWriter()
        sent = HuffProcessor().compress(BitReader(data), writer)
        self.assertEqual(sent.symbols, len(data))
        self.assertEqual(writer.bits_written, BITS_PER_INT + sent.header_bits + sent.body_bits)

        received = HuffProcessor().decompress(BitReader(writer.getvalue()), BitWriter())
        self.assertEqual(received.header_bits, sent.header_bits)
        self.assertEqual(received.body_bits, sent.body_bits)
        self.assertEqual(received.symbols, len(data))

    def test_bad_magic(self):
        compressed = compress_bytes(b"some data")
        with self.assertRaises(InvalidHeaderError):
            decompress_bytes(b'\x00\x00\x00\x00' + compressed[4:])
        with self.assertRaises(InvalidHeaderError):
            decompress_bytes(b'')

    def test_bad_magic_writes_nothing(self):
        writer = BitWriter()
        with self.assertRaises(InvalidHeaderError):
            HuffProcessor().decompress(BitReader(b'\x12\x34\x56\x78\x00'), writer)
        self.assertEqual(writer.bits_written, 0)

    def test_truncated_body(self):
        compressed = compress_bytes(b"hello world" * 10)
        with self.assertRaises(UnexpectedEndError) as ctx:
            decompress_bytes(compressed[:-1])
        self.assertEqual(ctx.exception.where, "body")

    def test_truncated_header(self):
        compressed = compress_bytes(b"hello world" * 10)
        with self.assertRaises(UnexpectedEndError) as ctx:
            decompress_bytes(compressed[:6])
        self.assertEqual(ctx.exception.where, "header")

    def test_errors_are_value_errors(self):
        self.assertTrue(issubclass(InvalidHeaderError, HuffError))
        self.assertTrue(issubclass(UnexpectedEndError, ValueError))

    def test_leaf_only_tree_rejected(self):
        writer = BitWriter()
        writer.write_bits(BITS_PER_INT, HUFF_TREE)
        writer.write_bits(1, 1)
        writer.write_bits(SYMBOL_BITS, PSEUDO_EOF)
        writer.write_bits(8, 0)
        with self.assertRaises(InvalidHeaderError):
            decompress_bytes(writer.close())

    def test_debug_output(self):
        stderr = io.StringIO()
        with redirect_stderr(stderr):
            compressed = compress_bytes(b"abc", debug=DEBUG_HIGH)
            decompress_bytes(compressed, debug=DEBUG_HIGH)
        output = stderr.getvalue()
        self.assertIn("wrote", output)
        self.assertIn(f"{PSEUDO_EOF}\t1\t11", output)

    def test_codings_skipped_without_debug(self):
        compressed = compress_bytes(b"abc")
        with mock.patch('huffman.make_codings') as codings:
            self.assertEqual(decompress_bytes(compressed), b"abc")
        codings.assert_not_called()

    def test_decoder_restarts_at_root(self):
        root = build_tree(count_frequencies(BitReader(b"abc")))
        writer = BitWriter()
        # a=00 b=01 c=10 EOF=11
        emitted = decode_body(root, BitReader(b'\x1b'), writer)
        self.assertEqual(emitted, 3)
        self.assertEqual(writer.close(), b"abc")

    def test_decoder_repeats_symbol(self):
        root = build_tree(count_frequencies(BitReader(b"abc")))
        writer = BitWriter()
        # c c c EOF
        emitted = decode_body(root, BitReader(b'\xab'), writer)
        self.assertEqual(emitted, 3)
        self.assertEqual(writer.close(), b"ccc")

    def test_silent_by_default(self):
        stderr = io.StringIO()
        with redirect_stderr(stderr):
            decompress_bytes(compress_bytes(b"abc"))
        self.assertEqual(stderr.getvalue(), "")


class TestFileProcessor(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.processor = FileProcessor()

    def tearDown(self):
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def _write(self, name, data):
        path = os.path.join(self.temp_dir, name)
        with open(path, 'wb') as f:
            f.write(data)
        return path

    def test_default_names(self):
        self.assertEqual(compressed_name("a.txt"), "a.txt.hf")
        self.assertEqual(restored_name("a.txt.hf"), "a.txt")
        self.assertEqual(restored_name("a.bin"), "a.bin.unhf")

    def test_compress_decompress_file(self):
        data = b"Hello World! " * 100
        source = self._write("test.txt", data)

        stats = self.processor.compress_file(source)
        self.assertTrue(os.path.isfile(source + ".hf"))
        self.assertEqual(stats.input_size, len(data))
        self.assertLess(stats.output_size, stats.input_size)
        self.assertLess(stats.ratio, 100)

        restored_path = os.path.join(self.temp_dir, "out", "test.txt")
        restored = self.processor.decompress_file(source + ".hf", restored_path)
        self.assertEqual(restored.output_size, len(data))
        self.assertEqual(restored.header_bits, stats.header_bits)

        with open(restored_path, 'rb') as f:
            self.assertEqual(f.read(), data)

    def test_compress_into_missing_directory(self):
        source = self._write("nested.txt", b"nested output " * 10)
        output = os.path.join(self.temp_dir, "a", "b", "nested.txt.hf")
        self.processor.compress_file(source, output)
        self.assertTrue(os.path.isfile(output))

        restored = os.path.join(self.temp_dir, "c", "nested.txt")
        self.processor.decompress_file(output, restored)
        with open(restored, 'rb') as f:
            self.assertEqual(f.read(), b"nested output " * 10)

    def test_empty_file(self):
        source = self._write("empty.bin", b"")
        stats = self.processor.compress_file(source)
        self.assertEqual(stats.ratio, 0.0)
        self.processor.decompress_file(source + ".hf", source + ".out")
        with open(source + ".out", 'rb') as f:
            self.assertEqual(f.read(), b"")

    def test_corrupt_file_leaves_no_output(self):
        source = self._write("bad.hf", b"not a compressed file")
        output = os.path.join(self.temp_dir, "bad.out")
        with self.assertRaises(InvalidHeaderError):
            self.processor.decompress_file(source, output)
        self.assertFalse(os.path.exists(output))

    def test_print_stats(self):
        source = self._write("s.txt", b"stats " * 20)
        stdout = io.StringIO()
        with redirect_stdout(stdout):
            self.processor.compress_file(source).print_stats()
        self.assertIn("Ratio", stdout.getvalue())


class TestCommandLine(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.source = os.path.join(self.temp_dir, "notes.txt")
        with open(self.source, 'wb') as f:
            f.write(b"command line round trip\n" * 40)

    def tearDown(self):
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def run_cli(self, *argv):
        stdout, stderr = io.StringIO(), io.StringIO()
        with redirect_stdout(stdout), redirect_stderr(stderr):
            code = cli.main(list(argv))
        return code, stdout.getvalue(), stderr.getvalue()

    def test_round_trip(self):
        restored = os.path.join(self.temp_dir, "restored.txt")
        self.assertEqual(self.run_cli('compress', self.source)[0], 0)
        self.assertEqual(self.run_cli('decompress', self.source + '.hf', '-o', restored)[0], 0)

        with open(self.source, 'rb') as a, open(restored, 'rb') as b:
            self.assertEqual(a.read(), b.read())

    def test_info(self):
        self.run_cli('compress', self.source)
        code, stdout, _ = self.run_cli('info', self.source + '.hf')
        self.assertEqual(code, 0)
        self.assertIn("Huffman compressed", stdout)

        _, stdout, _ = self.run_cli('info', self.source)
        self.assertIn("not compressed", stdout)

    def test_decompress_error(self):
        code, _, stderr = self.run_cli('decompress', self.source)
        self.assertEqual(code, 1)
        self.assertIn("Invalid header", stderr)

    def test_missing_file(self):
        code, _, stderr = self.run_cli('compress', os.path.join(self.temp_dir, "nope"))
        self.assertEqual(code, 1)
        self.assertIn("Error", stderr)

    def test_verbose(self):
        _, _, stderr = self.run_cli('-v', 'compress', self.source)
        self.assertIn("wrote", stderr)

    def test_no_command(self):
        code, stdout, _ = self.run_cli()
        self.assertEqual(code, 0)
        self.assertIn("usage", stdout)


def run_tests():
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    suite.addTests(loader.loadTestsFromTestCase(TestBitStream))
    suite.addTests(loader.loadTestsFromTestCase(TestTreeBuilding))
    suite.addTests(loader.loadTestsFromTestCase(TestHeader))
    suite.addTests(loader.loadTestsFromTestCase(TestHuffmanCodec))
    suite.addTests(loader.loadTestsFromTestCase(TestFileProcessor))
    suite.addTests(loader.loadTestsFromTestCase(TestCommandLine))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    sys.exit(run_tests())
