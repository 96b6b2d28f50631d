#!/usr/bin/env python3
"""
float_diff - Floating-point tolerant diff for regression test output.

Compares two files line-by-line. Fixed-format floats embedded in a line
(sign, one digit, '.', digits, optional 'e' exponent) are compared with an
absolute tolerance; everything else on the line must match exactly.
Bare integers such as '5' are not floats and are compared as text.

Usage: float_diff.py [--all-lines] [-v] file1 file2

Options:
    --all-lines   Report every mismatching line instead of stopping
                  at the first one
    -v, --verbose Log each comparison step to stderr

Exit codes:
    0 = files match within tolerance
    1 = could not stat/read the first file
    2 = could not stat/read the second file
    3 = files have different sizes
    4 = files have different line counts
    5 = a line has a different number of floats
    6 = a line has a float differing beyond tolerance
    7 = a line has different non-float content
    8 = bad command line
"""

import sys
import os
import re
import enum
import logging
import argparse
from dataclasses import dataclass

EPSILON = 1.0e-5

FLOAT_RE = re.compile(r'[-+]?[0-9]\.[0-9]+(?:e[-+]?[0-9]+)?')

logger = logging.getLogger(__name__)


class ExitCode(enum.IntEnum):
    MATCH = 0
    STAT_FIRST = 1
    STAT_SECOND = 2
    SIZE = 3
    LINE_COUNT = 4
    FLOAT_COUNT = 5
    FLOAT_VALUE = 6
    TEXT = 7
    USAGE = 8


MISMATCH_MESSAGES = {
    ExitCode.FLOAT_COUNT: "Files have different float counts on line {}",
    ExitCode.FLOAT_VALUE: "Files have different float values on line {}",
    ExitCode.TEXT: "Files have different non-float content on line {}",
}


class FloatDiffError(Exception):
    """Base class for errors that stop a comparison before any line is compared."""

    code = None


class FileAccessError(FloatDiffError):
    """A file argument could not be stat'ed or read. position is 0 or 1."""

    def __init__(self, path, position, action="stat"):
        super().__init__(path, position, action)
        self.path = path
        self.position = position
        self.action = action
        self.code = ExitCode.STAT_FIRST if position == 0 else ExitCode.STAT_SECOND

    def __str__(self):
        return f"ERROR: Could not {self.action} file argument: '{self.path}'"


@dataclass
class LineMismatch:
    line_num: int
    code: ExitCode
    first: str
    second: str
    reason: str = ""

    def report(self):
        print(MISMATCH_MESSAGES[self.code].format(self.line_num))
        print(f"  <<<{self.first}")
        print(f"  >>>{self.second}")


def extract_floats(line):
    """Return (text, value) for every float token in line, left to right."""
    return [(m.group(0), float(m.group(0))) for m in FLOAT_RE.finditer(line)]


def strip_floats(line):
    """Remove every float token, leaving the text around it."""
    return FLOAT_RE.sub('', line)


def floats_match(a, b, epsilon=EPSILON):
    """Check if two float values are within epsilon of each other."""
    return abs(a - b) <= epsilon


def residual_text_match(line1, line2):
    """Check if two lines are equal once their floats are removed."""
    return strip_floats(line1) == strip_floats(line2)


def compare_lines(line1, line2, epsilon=EPSILON):
    """
    Compare two lines: float count, then float values, then the remaining text.

    Returns:
        (code, reason) where code is ExitCode.MATCH when the lines agree
    """
    floats1 = extract_floats(line1)
    floats2 = extract_floats(line2)

    if len(floats1) != len(floats2):
        return ExitCode.FLOAT_COUNT, f"{len(floats1)} vs {len(floats2)} floats"

    for i, ((t1, v1), (t2, v2)) in enumerate(zip(floats1, floats2)):
        if not floats_match(v1, v2, epsilon):
            return ExitCode.FLOAT_VALUE, f"float {i}: {t1} vs {t2}"

    if not residual_text_match(line1, line2):
        return ExitCode.TEXT, "non-float content differs"

    return ExitCode.MATCH, None


def file_size(path, position):
    """Return the size in bytes of a file argument."""
    try:
        return os.stat(path).st_size
    except OSError as e:
        logger.debug("stat %s failed: %s", path, e)
        raise FileAccessError(path, position) from e


def read_lines(path, position):
    """Read a whole file as a list of lines with the line terminators removed."""
    try:
        with open(path, 'r', encoding='utf-8', errors='surrogateescape', newline='') as f:
            text = f.read()
    except OSError as e:
        logger.debug("reading %s failed: %s", path, e)
        raise FileAccessError(path, position, action="read") from e

    lines = text.split('\n')
    if lines[-1] == '':
        lines.pop()
    return [line.rstrip('\r') for line in lines]


def find_mismatches(lines1, lines2, epsilon=EPSILON, all_lines=False):
    """Yield a LineMismatch per differing line; stop after the first unless all_lines."""
    for line_num, (line1, line2) in enumerate(zip(lines1, lines2), 1):
        code, reason = compare_lines(line1, line2, epsilon)
        if code == ExitCode.MATCH:
            continue
        logger.debug("line %d: %s", line_num, reason)
        yield LineMismatch(line_num, code, line1, line2, reason)
        if not all_lines:
            return


def compare_files(first, second, epsilon=EPSILON, all_lines=False):
    """
    Compare two files and print a report of the first (or every) difference.

    Raises FileAccessError when a file can not be stat'ed or read.

    Returns:
        the ExitCode describing the first difference, or ExitCode.MATCH
    """
    paths = (first, second)

    sizes = [file_size(path, i) for i, path in enumerate(paths)]
    logger.debug("sizes: %d vs %d", *sizes)
    if sizes[0] != sizes[1]:
        print("Files have different sizes")
        return ExitCode.SIZE

    lines1, lines2 = [read_lines(path, i) for i, path in enumerate(paths)]
    logger.debug("line counts: %d vs %d", len(lines1), len(lines2))
    if len(lines1) != len(lines2):
        print("Files have different line counts")
        return ExitCode.LINE_COUNT

    result = ExitCode.MATCH
    for mismatch in find_mismatches(lines1, lines2, epsilon, all_lines):
        mismatch.report()
        if result == ExitCode.MATCH:
            result = mismatch.code
    return result


class ArgumentParser(argparse.ArgumentParser):
    """argparse exits with status 2 on bad usage, which here means 'second file unreadable'."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(ExitCode.USAGE, f"{self.prog}: error: {message}\n")


def parse_args(argv=None):
    parser = ArgumentParser(description='Floating-point tolerant line diff')
    parser.add_argument('--all-lines', action='store_true',
                        help='Report every mismatching line instead of stopping at the first')
    parser.add_argument('-v', '--verbose', action='store_true', help='Log comparison steps to stderr')
    parser.add_argument('file1', help='First file')
    parser.add_argument('file2', help='Second file')
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    # lines are decoded with surrogateescape; echo undecodable bytes back unchanged
    if hasattr(sys.stdout, 'reconfigure'):
        sys.stdout.reconfigure(errors='surrogateescape')

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(name)s: %(levelname)s: %(message)s',
    )

    try:
        return int(compare_files(args.file1, args.file2, all_lines=args.all_lines))
    except FloatDiffError as e:
        print(e)
        return int(e.code)


if __name__ == '__main__':
    sys.exit(main())
