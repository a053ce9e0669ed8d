"""
Командная строка для сжатия файлов кодом Хаффмана.
"""

import argparse
import sys

from file_processor import FileProcessor


def print_result(action: str, result):
    print(f"{action} {result.source} -> {result.target}: "
          f"{result.bits_read} bits read, {result.bits_written} bits written "
          f"({result.ratio:.1f}%)")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description='Huffman tree-header compressor',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py compress file.txt
  python main.py compress file.txt -o file.hf --debug 1
  python main.py decompress file.txt.hf -o file.txt
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Command')

    compress_parser = subparsers.add_parser('compress', help='Compress a file')
    compress_parser.add_argument('file', help='File to compress')
    compress_parser.add_argument('-o', '--output', help='Output path (default: FILE.hf)')

    decompress_parser = subparsers.add_parser('decompress', help='Decompress a file')
    decompress_parser.add_argument('file', help='File to decompress')
    decompress_parser.add_argument('-o', '--output', help='Output path (default: FILE without .hf, plus .uhf)')

    for sub in (compress_parser, decompress_parser):
        sub.add_argument('--debug', type=int, default=0, help='Diagnostic level (1 low, 4 high)')

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    processor = FileProcessor(debug=args.debug)

    try:
        if args.command == 'compress':
            print_result('Compressed', processor.compress_file(args.file, args.output))

        elif args.command == 'decompress':
            print_result('Decompressed', processor.decompress_file(args.file, args.output))

    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
