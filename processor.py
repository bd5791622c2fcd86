"""
Сжатие и распаковка файлов целиком.
"""

import os
from dataclasses import dataclass

from bitstream import BitReader, BitWriter
from huffman import HuffProcessor


COMPRESSED_SUFFIX = '.hf'
RESTORED_SUFFIX = '.unhf'


@dataclass
class CompressionStats:
    input_size: int
    output_size: int
    header_bits: int
    body_bits: int

    @property
    def ratio(self) -> float:
        if self.input_size == 0:
            return 0.0
        return self.output_size / self.input_size * 100

    def print_stats(self):
        print(f"  Input size:   {self.input_size} bytes")
        print(f"  Output size:  {self.output_size} bytes")
        print(f"  Header bits:  {self.header_bits}")
        print(f"  Body bits:    {self.body_bits}")
        print(f"  Ratio:        {self.ratio:.1f}%")


def compressed_name(file_path: str) -> str:
    return file_path + COMPRESSED_SUFFIX


def restored_name(file_path: str) -> str:
    if file_path.endswith(COMPRESSED_SUFFIX):
        return file_path[:-len(COMPRESSED_SUFFIX)]
    return file_path + RESTORED_SUFFIX


def write_output(output_path: str, data: bytes):
    output_dir = os.path.dirname(output_path)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)

    with open(output_path, 'wb') as f:
        f.write(data)


class FileProcessor:
    def __init__(self, debug: int = 0):
        self.huff = HuffProcessor(debug)

    def compress_file(self, file_path: str, output_path: str = None) -> CompressionStats:
        output_path = output_path or compressed_name(file_path)

        reader = BitReader.from_file(file_path)
        writer = BitWriter()
        report = self.huff.compress(reader, writer)
        compressed = writer.getvalue()

        write_output(output_path, compressed)

        return CompressionStats(
            input_size=len(reader.data),
            output_size=len(compressed),
            header_bits=report.header_bits,
            body_bits=report.body_bits
        )

    def decompress_file(self, file_path: str, output_path: str = None) -> CompressionStats:
        output_path = output_path or restored_name(file_path)

        reader = BitReader.from_file(file_path)
        writer = BitWriter()
        # raises before anything touches output_path
        report = self.huff.decompress(reader, writer)
        restored = writer.getvalue()

        write_output(output_path, restored)

        return CompressionStats(
            input_size=len(reader.data),
            output_size=len(restored),
            header_bits=report.header_bits,
            body_bits=report.body_bits
        )
