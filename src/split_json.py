import argparse
import logging
import os
import sys

from split_errors import InputNotFoundError, InvalidCountError, SplitError, SplitIOError, UsageError
from splitter import default_output_name, split_file

# === Configuration ===
BANNER = "SplitJson - Split a JSON file into multiple smaller files."
HELP_FLAGS = {"-h", "--help"}
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
EPILOG = """Example: split-json "/path/to/file.json" 5

This will split file.json into 5 smaller files and put them in the same
folder as the input json (file_split_1.json ... file_split_5.json)."""

logger = logging.getLogger(__name__)


class ArgumentParser(argparse.ArgumentParser):
    """argparse that raises UsageError instead of exiting"""

    def error(self, message):
        raise UsageError(message)


def build_parser():
    parser = ArgumentParser(
        prog="split-json",
        description="Split a JSON array round-robin into N smaller JSON array files.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("source", help="Path to the source JSON file.")
    parser.add_argument("count", help="Number of smaller files to split the JSON into.")
    parser.add_argument("--output-dir", help="Write the split files here instead of next to the source")
    parser.add_argument("--quiet", action="store_true", help="Do not log a line per record")
    parser.add_argument("--log-file", help="Also write the log to this file")
    return parser


def setup_logging(log_file=None):
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        try:
            handlers.append(logging.FileHandler(log_file, encoding='utf-8'))
        except OSError as e:
            raise SplitIOError(f"Cannot open log file {log_file}: {e}") from e
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, handlers=handlers, force=True)


def parse_count(text):
    try:
        count = int(text)
    except (TypeError, ValueError):
        raise InvalidCountError("Invalid number of files.")
    if count <= 0:
        raise InvalidCountError("Invalid number of files.")
    return count


def naming_for(output_dir):
    if not output_dir:
        return default_output_name

    def naming(source_path, index):
        return os.path.join(output_dir, os.path.basename(default_output_name(source_path, index)))
    return naming


def log_progress(index, slot):
    logger.info(f"Wrote object {index} to file {slot.number}")


def main(argv=None):
    argv = sys.argv[1:] if argv is None else list(argv)
    print(BANNER)

    parser = build_parser()
    if not argv or argv[0] == "/?" or set(argv) & HELP_FLAGS:
        parser.print_help()
        return 0

    try:
        try:
            args = parser.parse_args(argv)
        except UsageError as e:
            print(f"\nInvalid arguments: {e}")
            parser.print_help()
            return e.exit_code

        setup_logging(args.log_file)
        logger.info(f"Source File: {args.source}")
        logger.info(f"Number of files to split: {args.count}")

        if not os.path.isfile(args.source):
            raise InputNotFoundError("Source File does not exist.")
        count = parse_count(args.count)
        if args.output_dir:
            try:
                os.makedirs(args.output_dir, exist_ok=True)
            except OSError as e:
                raise SplitIOError(f"Cannot create output directory {args.output_dir}: {e}") from e

        result = split_file(
            args.source,
            count,
            naming=naming_for(args.output_dir),
            on_record=None if args.quiet else log_progress,
        )
    except SplitError as e:
        logger.error(f"An error occurred: {e}")
        return e.exit_code
    except KeyboardInterrupt:
        logger.error("Interrupted, output files may be incomplete.")
        return 130

    logger.info(f"JSON file split successfully. {result.records} records in {len(result.files)} files.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
