"""
Константы формата сжатого файла и иерархия ошибок декодера.
"""

import struct


BITS_PER_WORD = 8
BITS_PER_INT = 32
ALPH_SIZE = 1 << BITS_PER_WORD
PSEUDO_EOF = ALPH_SIZE
SYMBOL_BITS = BITS_PER_WORD + 1

HUFF_NUMBER = 0xface8200
HUFF_TREE = HUFF_NUMBER | 1

# 257 leaves can't produce a path longer than 256 edges
MAX_TREE_DEPTH = ALPH_SIZE + 1


class HuffError(ValueError):
    pass


class InvalidHeaderError(HuffError):
    def __init__(self, message: str):
        super().__init__(f"Invalid header: {message}")


class UnexpectedEndError(HuffError):
    def __init__(self, where: str):
        self.where = where
        super().__init__(f"Unexpected end of input in {where}")


def check_magic(magic: int):
    if magic != HUFF_TREE:
        raise InvalidHeaderError(f"invalid magic number {magic:#010x}")


def is_compressed(data: bytes) -> bool:
    if len(data) < 4:
        return False
    return struct.unpack('>I', data[:4])[0] == HUFF_TREE
