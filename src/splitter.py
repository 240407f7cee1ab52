import logging
import os

import ijson
import simplejson
from ijson.common import ObjectBuilder

from split_errors import (
    InputNotFoundError,
    InvalidCountError,
    MalformedRecordError,
    SplitCancelled,
    SplitIOError,
)

# === Configuration ===
SUFFIX_TEMPLATE = "{stem}_split_{index}.json"
SOURCE_EXTENSION = ".json"
ENCODING = "utf-8"
SEPARATORS = (",", ":")

logger = logging.getLogger(__name__)


def default_output_name(source_path, index):
    """
    Output path for the 1-based slot `index`, next to the source file.
    "Data/Mail.JSON" -> "Data/mail_split_1.json"
    "Data/mail.txt"  -> "Data/mail.txt_split_1.json"
    """
    directory, filename = os.path.split(os.fspath(source_path))
    stem = filename.lower()
    if stem.endswith(SOURCE_EXTENSION):
        stem = stem[:-len(SOURCE_EXTENSION)]
    return os.path.join(directory, SUFFIX_TEMPLATE.format(stem=stem, index=index))


def output_paths(source_path, count, naming=None):
    """Deterministic list of `count` output paths for `source_path`."""
    naming = naming or default_output_name
    return [naming(source_path, i + 1) for i in range(count)]


def drop_nulls(value):
    """Recursively remove null-valued properties from objects."""
    if isinstance(value, dict):
        return {k: drop_nulls(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [drop_nulls(v) for v in value]
    return value


def encode_record(record):
    # Decimal values keep their exact source digits
    return simplejson.dumps(drop_nulls(record), ensure_ascii=False, separators=SEPARATORS, use_decimal=True)


class OutputSlot:
    """One output file plus the state needed to frame its JSON array."""

    def __init__(self, number, path, stream):
        self.number = number
        self.path = path
        self.stream = stream
        self.is_first = True
        self.closed = False
        self.count = 0

    @classmethod
    def create(cls, number, path):
        stream = open(path, 'w', encoding=ENCODING)
        try:
            stream.write("[")
        except OSError:
            stream.close()
            raise
        return cls(number, path, stream)

    def write(self, text):
        if self.is_first:
            self.is_first = False
        else:
            self.stream.write(",")
        self.stream.write(text)
        self.count += 1

    def close(self):
        if self.closed:
            return
        self.closed = True
        try:
            self.stream.write("]")
        finally:
            self.stream.close()


class SlotSet:
    """N open output slots; leaving the `with` block closes all of them."""

    def __init__(self, slots):
        self.slots = slots

    def __len__(self):
        return len(self.slots)

    def __iter__(self):
        return iter(self.slots)

    def __getitem__(self, i):
        return self.slots[i]

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        try:
            close_slots(self)
        except SplitIOError as e:
            if exc is None:
                raise
            # The original failure wins; the close error is only reported
            logger.error(f"Failed to close output files after error: {e}")
        return False


def open_slots(paths):
    """Create every output file and write its opening bracket."""
    slots = []
    for number, path in enumerate(paths, 1):
        try:
            slots.append(OutputSlot.create(number, path))
        except OSError as e:
            logger.error(f"Cannot create {path}: {e}")
            try:
                close_slots(slots)
            except SplitIOError as close_error:
                logger.error(f"Cleanup after failed open also failed: {close_error}")
            raise SplitIOError(f"Cannot create output file {path}: {e}") from e
        logger.debug(f"Opened {path}")
    return SlotSet(slots)


def close_slots(slots):
    """
    Write the closing bracket to every slot and release its stream.

    Every slot is attempted even if an earlier one fails; the first failure
    is raised afterwards.
    """
    first_error = None
    for slot in slots:
        try:
            slot.close()
        except OSError as e:
            logger.error(f"Failed to close {slot.path}: {e}")
            if first_error is None:
                first_error = SplitIOError(f"Cannot close output file {slot.path}: {e}")
                first_error.__cause__ = e
    if first_error is not None:
        raise first_error


def iter_records(source):
    """
    Yield the elements of the top-level JSON array read from the binary
    stream `source`, one at a time.
    """
    events = ijson.parse(source)
    try:
        try:
            _, event, _ = next(events)
        except StopIteration:
            raise MalformedRecordError("Input is empty, expected a JSON array")
        if event != 'start_array':
            raise MalformedRecordError(f"Expected a JSON array at top level, found {event}")

        for prefix, event, value in events:
            if prefix == '' and event == 'end_array':
                break
            if event in ('start_map', 'start_array'):
                builder = ObjectBuilder()
                depth = 1
                while depth:
                    builder.event(event, value)
                    prefix, event, value = next(events)
                    if event in ('start_map', 'start_array'):
                        depth += 1
                    elif event in ('end_map', 'end_array'):
                        depth -= 1
                builder.event(event, value)
                yield builder.value
            else:
                yield value

        # Drain so that anything after the closing bracket is reported
        for _ in events:
            pass
    except ijson.JSONError as e:
        raise MalformedRecordError(f"Invalid JSON input: {e}") from e
    except UnicodeDecodeError as e:
        raise MalformedRecordError(f"Input is not valid UTF-8: {e}") from e


def run(source, slots, on_record=None, cancel_event=None):
    """
    Stream records from `source` into `slots` round-robin.

    Args:
        source: binary file-like object holding one JSON array
        slots: SlotSet (or any sequence of OutputSlot)
        on_record: optional callback `on_record(index, slot)` after each write
        cancel_event: optional threading.Event checked before each record

    Returns:
        int: number of records written
    """
    n = len(slots)
    index = 0
    records = iter_records(source)
    while True:
        if cancel_event is not None and cancel_event.is_set():
            raise SplitCancelled(f"Cancelled after {index} records")
        try:
            record = next(records)
        except StopIteration:
            break
        except OSError as e:
            raise SplitIOError(f"Failed reading input: {e}") from e

        if not isinstance(record, dict):
            kind = "null" if record is None else type(record).__name__
            raise MalformedRecordError(f"Record {index} is {kind}, expected an object", index=index)

        slot = slots[index % n]
        try:
            slot.write(encode_record(record))
        except OSError as e:
            raise SplitIOError(f"Failed writing {slot.path}: {e}") from e

        if on_record is not None:
            on_record(index, slot)
        index += 1
    return index


class SplitResult:
    def __init__(self, records, slots):
        self.records = records
        self.files = [(slot.path, slot.count) for slot in slots]

    def __repr__(self):
        return f"SplitResult(records={self.records}, files={len(self.files)})"


def split_file(source_path, count, naming=None, on_record=None, cancel_event=None):
    """Split the JSON array in `source_path` round-robin into `count` files."""
    if isinstance(count, bool) or not isinstance(count, int) or count < 1:
        raise InvalidCountError(f"Number of files must be a positive integer, got {count!r}")
    if not os.path.isfile(source_path):
        raise InputNotFoundError(f"Source file not found: {source_path}")

    paths = output_paths(source_path, count, naming)
    logger.info(f"Splitting {source_path} into {count} files...")

    try:
        source = open(source_path, 'rb')
    except OSError as e:
        raise SplitIOError(f"Cannot open source file {source_path}: {e}") from e

    with source, open_slots(paths) as slots:
        total = run(source, slots, on_record=on_record, cancel_event=cancel_event)

    result = SplitResult(total, slots)
    for path, n in result.files:
        logger.info(f"  Created {path} ({n} items)")
    return result
