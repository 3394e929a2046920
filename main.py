#!/usr/bin/env python3
"""
HL7 v2 Command Line Tool

Reads a file of HL7 v2 messages, prints a summary of each one, optionally
looks up paths in every message, and writes the messages as JSON.

Usage:
    python main.py input.hl7                               # Parse input.hl7 -> input.json
    python main.py input.hl7 output.json                   # Parse to specific output file
    python main.py input.hl7 --get PID-5.1 --get MSH-9     # Print values at paths
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

sys.path.insert(0, str(Path(__file__).parent / "src"))

from hl7_cdm import CdmBatch
from hl7_config import Hl7Settings
from hl7_errors import HL7Error
from hl7_file_io import Hl7FileReader


def describe_path(message, path: str) -> str:
    """Decoded values of every node matching path, joined with ' | '."""
    values = []
    for node in message.get_all(path):
        values.append(node.get_data() if node.is_base else node.marshal())
    return " | ".join(values) if values else "<no match>"


def parse_hl7_file(input_file: str, output_file: str, paths: Optional[List[str]] = None,
                   delimiter: Optional[str] = None) -> int:
    """Parse an HL7 file and save the messages as JSON."""

    print(f"HL7 Parser - Processing {input_file}")
    print("=" * 50)

    try:
        reader = Hl7FileReader(input_file, delimiter=delimiter)
        messages = reader.read_all()
        print(f"Loaded {len(messages)} message(s)")

        for number, message in enumerate(messages, start=1):
            print(f"\nMessage {number}:")
            print(f"  Type: {describe_path(message, 'MSH-9')}")
            print(f"  Control ID: {describe_path(message, 'MSH-10')}")
            print(f"  Segments: {len(message)} ({', '.join(seg.name for seg in message.segments)})")
            for path in paths or []:
                print(f"  {path}: {describe_path(message, path)}")

        print(f"\nGenerating JSON output...")
        batch = CdmBatch(source=str(input_file), messages=[message.to_cdm() for message in messages])
        json_output = batch.model_dump_json(indent=2)

        with open(output_file, 'w') as f:
            f.write(json_output)

        print(f"JSON output saved to: {output_file}")
        print(f"Output size: {len(json_output):,} characters")

        return 0

    except HL7Error as e:
        print(f"Error: {e}")
        return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point with command line argument parsing."""
    settings = Hl7Settings()

    parser = argparse.ArgumentParser(
        description="Parse HL7 v2 files to JSON format",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py adt.hl7                           # Parse adt.hl7 -> adt.json
  python main.py adt.hl7 output.json               # Parse to specific output
  python main.py adt.hl7 --get PID-3[1].5          # Print a value from each message
  python main.py batch.hl7 --delimiter '\\n'        # Messages separated by LF
        """
    )

    parser.add_argument('input_file', help='Input HL7 file')
    parser.add_argument('output_file', nargs='?',
                        help='Output JSON file (default: input_file.json)')
    parser.add_argument('--get', dest='paths', action='append', default=[], metavar='PATH',
                        help='Path to print for every message (repeatable)')
    parser.add_argument('--delimiter', default=None,
                        help='Message delimiter; backslash escapes such as \\r\\n are decoded '
                             f'(default: {settings.message_delimiter!r})')
    parser.add_argument('--log-level', default=settings.log_level,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level,
        format="[%(asctime)s] [%(levelname)s] [%(name)s:%(lineno)d] - %(message)s",
    )

    # Set default output file if not provided
    if not args.output_file:
        input_path = Path(args.input_file)
        args.output_file = str(input_path.with_suffix('.json'))

    # Check if input file exists
    if not Path(args.input_file).exists():
        print(f"Error: Input file not found: {args.input_file}")
        return 1

    delimiter = None
    if args.delimiter:
        delimiter = args.delimiter.encode().decode('unicode_escape')

    return parse_hl7_file(args.input_file, args.output_file, args.paths, delimiter)


if __name__ == "__main__":
    exit(main())
