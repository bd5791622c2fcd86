"""
Реализует статическое кодирование Хаффмана над алфавитом из 257 символов:
256 значений байта и псевдо-символ конца потока (PSEUDO_EOF).

Сжатый поток: 32-битное магическое число, дерево в прямом порядке обхода,
коды всех байтов входа и в конце код PSEUDO_EOF.
"""

import heapq
import sys
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Set

from bitstream import BitReader, BitWriter, EXHAUSTED
from huff_format import (
    BITS_PER_INT, BITS_PER_WORD, ALPH_SIZE, PSEUDO_EOF, SYMBOL_BITS,
    HUFF_TREE, MAX_TREE_DEPTH,
    InvalidHeaderError, UnexpectedEndError, check_magic,
)


DEBUG_LOW = 1
DEBUG_HIGH = 4


class HuffmanNode:
    def __init__(self, value: int = 0, weight: int = 0,
                 left: Optional['HuffmanNode'] = None,
                 right: Optional['HuffmanNode'] = None):
        self.value = value
        self.weight = weight
        self.left = left
        self.right = right
        # position in the merge queue, breaks ties between equal weights
        self.order = 0

    @property
    def is_leaf(self) -> bool:
        return self.left is None and self.right is None

    def __lt__(self, other):
        return (self.weight, self.order) < (other.weight, other.order)

    def __repr__(self):
        if self.is_leaf:
            return f"Leaf({self.value}, w={self.weight})"
        return f"Node(w={self.weight})"


class Code(NamedTuple):
    bits: int
    length: int

    def __str__(self):
        return format(self.bits, f'0{self.length}b')


@dataclass
class CodingReport:
    header_bits: int
    body_bits: int
    symbols: int


class DecodeState:
    AT_ROOT = 0
    AT_NODE = 1
    DONE = 2


def count_frequencies(reader: BitReader) -> List[int]:
    counts = [0] * (ALPH_SIZE + 1)

    while True:
        byte = reader.read_bits(BITS_PER_WORD)
        if byte == EXHAUSTED:
            break
        counts[byte] += 1

    counts[PSEUDO_EOF] = 1
    return counts


def build_tree(counts: List[int]) -> HuffmanNode:
    """
    Merges the two lightest nodes until one is left. Leaves enter the queue
    in ascending symbol order and every pushed node gets the next sequence
    number, so nodes of equal weight leave the queue first in, first out.
    The first node popped becomes the left child.
    """
    heap: List[HuffmanNode] = []
    sequence = 0

    for symbol, count in enumerate(counts):
        if count > 0:
            node = HuffmanNode(value=symbol, weight=count)
            node.order = sequence
            sequence += 1
            heap.append(node)

    if not heap:
        raise ValueError("No symbols with non-zero count")

    heapq.heapify(heap)

    if len(heap) == 1:
        # A lone leaf would get an empty code. Pair it with a zero-weight
        # placeholder on the right; the placeholder code is never written.
        leaf = heap[0]
        unused = next(s for s, count in enumerate(counts) if count == 0)
        placeholder = HuffmanNode(value=unused, weight=0)
        return HuffmanNode(weight=leaf.weight, left=leaf, right=placeholder)

    while len(heap) > 1:
        left = heapq.heappop(heap)
        right = heapq.heappop(heap)

        parent = HuffmanNode(weight=left.weight + right.weight,
                             left=left, right=right)
        parent.order = sequence
        sequence += 1
        heapq.heappush(heap, parent)

    return heap[0]


def make_codings(root: Optional[HuffmanNode]) -> List[Optional[Code]]:
    codings: List[Optional[Code]] = [None] * (ALPH_SIZE + 1)

    def traverse(node: HuffmanNode, bits: int, length: int):
        if node.is_leaf:
            codings[node.value] = Code(bits, length)
            return

        traverse(node.left, bits << 1, length + 1)
        traverse(node.right, (bits << 1) | 1, length + 1)

    if root is not None:
        traverse(root, 0, 0)

    return codings


def write_header(root: HuffmanNode, writer: BitWriter):
    if root.is_leaf:
        writer.write_bits(1, 1)
        writer.write_bits(SYMBOL_BITS, root.value)
    else:
        writer.write_bits(1, 0)
        write_header(root.left, writer)
        write_header(root.right, writer)


def read_tree(reader: BitReader, depth: int = 0,
              seen: Optional[Set[int]] = None) -> HuffmanNode:
    if seen is None:
        seen = set()
    if depth > MAX_TREE_DEPTH:
        raise InvalidHeaderError(f"tree deeper than {MAX_TREE_DEPTH} levels")

    bit = reader.read_bits(1)
    if bit == EXHAUSTED:
        raise UnexpectedEndError("header")

    if bit == 0:
        left = read_tree(reader, depth + 1, seen)
        right = read_tree(reader, depth + 1, seen)
        return HuffmanNode(left=left, right=right)

    value = reader.read_bits(SYMBOL_BITS)
    if value == EXHAUSTED:
        raise UnexpectedEndError("header")
    if value > PSEUDO_EOF:
        raise InvalidHeaderError(f"symbol {value} out of range")
    if value in seen:
        raise InvalidHeaderError(f"symbol {value} appears twice")
    seen.add(value)

    return HuffmanNode(value=value)


def write_compressed_bits(codings: List[Optional[Code]], reader: BitReader,
                          writer: BitWriter) -> int:
    start = writer.bits_written
    reader.reset()

    while True:
        byte = reader.read_bits(BITS_PER_WORD)
        if byte == EXHAUSTED:
            break
        code = codings[byte]
        writer.write_bits(code.length, code.bits)

    code = codings[PSEUDO_EOF]
    writer.write_bits(code.length, code.bits)

    return writer.bits_written - start


def decode_body(root: HuffmanNode, reader: BitReader, writer: BitWriter) -> int:
    """Walks the tree bit by bit, returns the number of bytes emitted."""
    if root.is_leaf:
        raise InvalidHeaderError("tree has no internal nodes")

    current = root
    state = DecodeState.AT_ROOT
    emitted = 0

    while state != DecodeState.DONE:
        if state == DecodeState.AT_ROOT:
            current = root

        bit = reader.read_bits(1)
        if bit == EXHAUSTED:
            raise UnexpectedEndError("body")

        current = current.right if bit else current.left

        if not current.is_leaf:
            state = DecodeState.AT_NODE
        elif current.value == PSEUDO_EOF:
            state = DecodeState.DONE
        else:
            writer.write_bits(BITS_PER_WORD, current.value)
            emitted += 1
            state = DecodeState.AT_ROOT

    return emitted


class HuffProcessor:
    def __init__(self, debug: int = 0):
        self.debug_level = debug

    def _debug(self, level: int, message: str):
        if self.debug_level >= level:
            print(message, file=sys.stderr)

    def _dump_codings(self, codings: List[Optional[Code]],
                      counts: Optional[List[int]] = None):
        if self.debug_level < DEBUG_HIGH:
            return
        for symbol, code in enumerate(codings):
            if code is None:
                continue
            count = f"\t{counts[symbol]}" if counts else ""
            self._debug(DEBUG_HIGH, f"{symbol}{count}\t{code}")

    def compress(self, reader: BitReader, writer: BitWriter) -> CodingReport:
        counts = count_frequencies(reader)
        root = build_tree(counts)
        codings = make_codings(root)
        self._dump_codings(codings, counts)

        writer.write_bits(BITS_PER_INT, HUFF_TREE)
        header_start = writer.bits_written
        write_header(root, writer)
        header_bits = writer.bits_written - header_start

        body_bits = write_compressed_bits(codings, reader, writer)
        writer.close()

        symbols = sum(counts[:ALPH_SIZE])
        self._debug(DEBUG_LOW, f"read {reader.bits_read} bits, "
                               f"wrote {writer.bits_written} bits "
                               f"(header {header_bits}, body {body_bits})")

        return CodingReport(header_bits, body_bits, symbols)

    def decompress(self, reader: BitReader, writer: BitWriter) -> CodingReport:
        magic = reader.read_bits(BITS_PER_INT)
        check_magic(magic)

        header_start = reader.bits_read
        root = read_tree(reader)
        header_bits = reader.bits_read - header_start
        if self.debug_level >= DEBUG_HIGH:
            self._dump_codings(make_codings(root))

        body_start = reader.bits_read
        symbols = decode_body(root, reader, writer)
        body_bits = reader.bits_read - body_start
        writer.close()

        self._debug(DEBUG_LOW, f"read {reader.bits_read} bits, "
                               f"wrote {writer.bits_written} bits "
                               f"(header {header_bits}, body {body_bits})")

        return CodingReport(header_bits, body_bits, symbols)


def compress_bytes(data: bytes, debug: int = 0) -> bytes:
    writer = BitWriter()
    HuffProcessor(debug).compress(BitReader(data), writer)
    return writer.getvalue()


def decompress_bytes(data: bytes, debug: int = 0) -> bytes:
    writer = BitWriter()
    HuffProcessor(debug).decompress(BitReader(data), writer)
    return writer.getvalue()
