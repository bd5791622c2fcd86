"""
Командная строка для компрессора Хаффмана.
"""

import argparse
import os
import sys

from huff_format import HuffError, is_compressed
from processor import FileProcessor


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='Huffman file compressor',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py compress notes.txt
  python main.py decompress notes.txt.hf -o notes.txt
  python main.py info notes.txt.hf
        """
    )
    parser.add_argument('-v', '--verbose', action='count', default=0,
                        help='Debug output to stderr (repeat for more)')

    subparsers = parser.add_subparsers(dest='command', help='Command')

    compress_parser = subparsers.add_parser('compress', help='Compress a file')
    compress_parser.add_argument('file', help='File to compress')
    compress_parser.add_argument('-o', '--output', help='Output path (default: FILE.hf)')

    decompress_parser = subparsers.add_parser('decompress', help='Decompress a file')
    decompress_parser.add_argument('file', help='Compressed file')
    decompress_parser.add_argument('-o', '--output', help='Output path')

    info_parser = subparsers.add_parser('info', help='Check a compressed file')
    info_parser.add_argument('file', help='File to check')

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    processor = FileProcessor(debug=args.verbose)

    try:
        if args.command == 'compress':
            print(f"Compressing {args.file}...")
            stats = processor.compress_file(args.file, args.output)
            stats.print_stats()

        elif args.command == 'decompress':
            print(f"Decompressing {args.file}...")
            stats = processor.decompress_file(args.file, args.output)
            stats.print_stats()

        elif args.command == 'info':
            with open(args.file, 'rb') as f:
                head = f.read(4)
            size = os.path.getsize(args.file)
            kind = "Huffman compressed" if is_compressed(head) else "not compressed"
            print(f"{args.file}: {size} bytes, {kind}")

    except (HuffError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
