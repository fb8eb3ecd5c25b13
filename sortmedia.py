#!/usr/bin/env python

r"""
sortmedia.py - Sort photos and videos into YEAR/MM-MonthName folders

SUMMARY:
--------
This script scans a source directory (recursively) for files, works out when each one
was captured (preferably from embedded metadata, or falls back to the file system
modification date), and moves them into a destination tree organized as
YYYY/MM-MonthName. Files whose date is older than 1995 or cannot be determined go
to an "unknown_date" folder.

FEATURES:
---------
- Reads capture dates with hachoir; falls back to the file modification time.
- Deterministic, sorted depth-first processing of the source tree.
- Name collisions are compared by content hash (MD5):
    * without --force the file is left alone and reported as a duplicate
    * with --force an identical source is deleted, a different one is renamed (_1, _2, ...)
- Test (dry run) mode: every decision, including hashing, without touching any file.
- A failure on one file is reported and counted; the rest of the batch carries on.
- Summary of every counter at the end of the run.

USAGE EXAMPLES:
---------------
1. Move everything from an import folder into the photo archive:
    python sortmedia.py -s ~/Pictures/import -d ~/Pictures/archive

2. Preview what would happen without touching anything:
    python sortmedia.py -s ~/Pictures/import -d ~/Pictures/archive -t

3. Resolve name collisions (delete identical copies, rename different ones):
    python sortmedia.py -s ~/Pictures/import -d ~/Pictures/archive -f

4. Preview a forced run with debug output:
    python sortmedia.py --SOURCE import --DESTINATION archive --force --test -v

See --help for all options.
"""

# Standard library imports
import sys
import datetime
import logging
import shutil
import argparse
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional
import os
import re
import hashlib

# Third-party library imports for metadata extraction
from hachoir.parser import createParser
from hachoir.metadata import extractMetadata
from hachoir.core import config

# Suppress hachoir warnings to keep console output clean
config.quiet = True

__version__ = "1.0.0"
myversion = f"v. {__version__} 2026-10-18"

# Dates before this year are treated as bogus camera clocks
MIN_TRUSTED_YEAR = 1995
UNKNOWN_DATE_BUCKET = "unknown_date"
INVALID_MONTH_NAME = "InvalidMonth"
MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

HASH_ALGORITHM = "md5"
HASH_CHUNK_SIZE = 8192
LOG_FILENAME = "events.log"

# hachoir metadata keys, most specific first
METADATA_KEYS = ("date_time_original", "creation_date")

# Leading "YYYY:MM" of a normalized metadata timestamp
_YEAR_MONTH_RE = re.compile(r"^\s*(\d{4}):(\d{1,2})")

logger = logging.getLogger("sortmedia")


def calculate_file_hash(file_path: Path, algorithm: str = HASH_ALGORITHM) -> str:
    """
    Calculate the hash of a file's full content.

    Args:
        file_path (Path): Path to the file to hash
        algorithm (str): Hash algorithm to use (default: md5)

    Returns:
        str: Hexadecimal hash string

    Raises:
        OSError: If the file cannot be read
    """
    hash_obj = hashlib.new(algorithm)
    with open(file_path, "rb") as f:
        # Read file in chunks to handle large files efficiently
        for chunk in iter(lambda: f.read(HASH_CHUNK_SIZE), b""):
            hash_obj.update(chunk)
    return hash_obj.hexdigest()


class MediaFile:
    """
    One source file handed over by the walker.

    The content digest is only computed when a name collision needs it,
    and then at most once.
    """

    def __init__(self, path: Path, size: Optional[int] = None):
        self.path = Path(path)
        self.size = size
        self._digest = None

    @classmethod
    def from_path(cls, path: Path) -> "MediaFile":
        path = Path(path)
        return cls(path, path.stat().st_size)

    def digest(self) -> str:
        if self._digest is None:
            self._digest = calculate_file_hash(self.path)
        return self._digest

    def __repr__(self):
        return f"MediaFile({str(self.path)!r})"


@dataclass(frozen=True)
class CaptureDate:
    """Year and month a file was captured, with where the value came from."""

    year: int
    month: int
    raw: str = ""
    source: str = ""

    @property
    def is_valid(self) -> bool:
        return 1 <= self.month <= 12

    def describe(self) -> str:
        if self is UNKNOWN_DATE:
            return "unknown date"
        return f"{self.year:04d}:{self.month:02d} ({self.source})"


# Sentinel for files whose date could not be resolved at all
UNKNOWN_DATE = CaptureDate(year=0, month=0, source="unknown")


# Decision kinds produced by decide()
MOVE = "move"
OVERWRITE_DELETE_SOURCE = "overwrite_delete_source"
RENAME_AND_MOVE = "rename_and_move"
SKIP_REPORT = "skip_report"
FAIL = "fail"


@dataclass(frozen=True)
class ConflictDecision:
    """
    What should happen to one source file.

    ``kind`` is one of MOVE, OVERWRITE_DELETE_SOURCE, RENAME_AND_MOVE,
    SKIP_REPORT or FAIL. The other fields are only meaningful for some kinds:
    ``new_name`` for RENAME_AND_MOVE, ``hashes_equal`` and ``same_file`` for
    SKIP_REPORT, ``cause`` for FAIL. ``collision`` is True whenever the
    destination name was already taken.
    """

    kind: str
    dest_path: Optional[Path] = None
    collision: bool = False
    new_name: Optional[str] = None
    hashes_equal: Optional[bool] = None
    same_file: bool = False
    cause: Optional[str] = None

    @classmethod
    def move(cls, dest_path):
        return cls(MOVE, dest_path)

    @classmethod
    def overwrite_delete_source(cls, dest_path):
        return cls(OVERWRITE_DELETE_SOURCE, dest_path, collision=True, hashes_equal=True)

    @classmethod
    def rename_and_move(cls, dest_path, new_name):
        return cls(RENAME_AND_MOVE, dest_path, collision=True, new_name=new_name, hashes_equal=False)

    @classmethod
    def skip_report(cls, dest_path, hashes_equal, same_file=False):
        return cls(SKIP_REPORT, dest_path, collision=True, hashes_equal=hashes_equal, same_file=same_file)

    @classmethod
    def fail(cls, cause, dest_path=None, collision=False):
        return cls(FAIL, dest_path, collision=collision, cause=str(cause))


@dataclass
class RunTally:
    """Counters for one run. Only the execution engine increments them."""

    moved: int = 0
    renamed: int = 0
    deleted: int = 0
    failed: int = 0
    duplicates: int = 0
    hash_matches: int = 0
    hash_diffs: int = 0
    test_moved: int = 0
    test_renamed: int = 0
    test_deleted: int = 0

    def summary_lines(self, algorithm: str = HASH_ALGORITHM) -> List[str]:
        label = algorithm.upper()
        rows = [
            ("TEST MOVED", self.test_moved),
            ("TEST DELETED", self.test_deleted),
            ("TEST RENAMED", self.test_renamed),
            ("MOVED", self.moved),
            ("DELETED", self.deleted),
            ("RENAMED", self.renamed),
            ("FAILED", self.failed),
            ("DUPLICATE FILES", self.duplicates),
            (f"{label} MATCHES", self.hash_matches),
            (f"{label} DIFFS", self.hash_diffs),
        ]
        return [f"{name:<16}: {value}" for name, value in rows]


@dataclass(frozen=True)
class Outcome:
    """Result of processing one file."""

    kind: str
    message: str
    dest_path: Optional[Path] = None

    @property
    def ok(self) -> bool:
        return self.kind != FAIL


def read_capture_timestamp(filename: Path, logger):
    """
    Attempt to extract the capture timestamp from the file's metadata.

    Args:
        filename (Path): Path to the file to extract metadata from
        logger (logging.Logger): Logger for recording issues

    Returns:
        datetime.datetime, str or None: Capture timestamp if found, otherwise None

    This function uses hachoir to parse the file and extract its metadata.
    It looks for 'date_time_original' first and then 'creation_date'.
    """
    # Try to create a parser for the file
    try:
        parser = createParser(str(filename))
    except Exception as e:
        logger.debug(f"Failed to create parser for {filename}: {e}")
        return None

    # If parser creation failed, return None
    if not parser:
        logger.debug(f"Unable to parse file for capture date: {filename}")
        return None

    # Extract metadata using the parser
    try:
        with parser:  # Ensure parser is properly closed
            metadata = extractMetadata(parser)
    except Exception as e:
        logger.debug(f"Metadata extraction error for {filename}: {e}")
        return None

    if not metadata:
        logger.debug(f"Unable to extract metadata for {filename}")
        return None

    for key in METADATA_KEYS:
        try:
            values = metadata.getValues(key)
        except (KeyError, ValueError):
            continue
        if values:
            return values[0]
    return None


def parse_capture_timestamp(value, source: str = "metadata") -> Optional[CaptureDate]:
    """
    Turn a metadata timestamp into a CaptureDate.

    Metadata sources write the same date as "2020:05:01" or "2020/05/01", so
    "/" is normalized to ":" before the leading "YYYY:MM" is read. Datetime
    values are rendered in the EXIF "YYYY:MM:DD HH:MM:SS" form first.

    Returns:
        CaptureDate or None: None when the value has no leading year and month.
        An out-of-range month is kept so it can be reported.
    """
    if value is None:
        return None
    if hasattr(value, "year") and hasattr(value, "month"):
        # strftime("%Y") does not zero-pad years below 1000 on every platform
        text = f"{value.year:04d}:{value.month:02d}:{value.day:02d}"
        if hasattr(value, "hour"):
            text += f" {value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    else:
        text = str(value)
    text = text.replace("/", ":")
    m = _YEAR_MONTH_RE.match(text)
    if not m:
        return None
    return CaptureDate(year=int(m.group(1)), month=int(m.group(2)), raw=text.strip(), source=source)


def metadata_strategy(media: MediaFile, logger) -> Optional[CaptureDate]:
    try:
        value = read_capture_timestamp(media.path, logger)
    except Exception as e:
        # Metadata problems never fail a file
        logger.debug(f"Metadata read failed for {media.path}: {e}")
        return None
    return parse_capture_timestamp(value, source="metadata")


def mtime_strategy(media: MediaFile, logger) -> Optional[CaptureDate]:
    try:
        dt = datetime.datetime.fromtimestamp(media.path.stat().st_mtime)
    except (OSError, OverflowError, ValueError) as e:
        logger.debug(f"Failed to get file system date for {media.path}: {e}")
        return None
    return CaptureDate(
        year=dt.year, month=dt.month, raw=dt.strftime("%Y:%m:%d %H:%M:%S"), source="mtime"
    )


# Evaluated in order, first date found wins
DATE_STRATEGIES: List[Callable[[MediaFile, logging.Logger], Optional[CaptureDate]]] = [
    metadata_strategy,
    mtime_strategy,
]


def resolve_capture_date(media: MediaFile, logger, strategies=None) -> CaptureDate:
    """
    Work out the capture date of a file.

    Args:
        media (MediaFile): File to inspect
        logger (logging.Logger): Logger for diagnostics
        strategies (list, optional): Strategy functions to try, defaults to DATE_STRATEGIES

    Returns:
        CaptureDate: The first date any strategy produced, or UNKNOWN_DATE
    """
    for strategy in strategies if strategies is not None else DATE_STRATEGIES:
        date = strategy(media, logger)
        if date is None:
            continue
        if not date.is_valid:
            logger.debug(f"Invalid month in capture date for {media.path}: {date.raw!r}")
        return date
    return UNKNOWN_DATE


def normalize_destination(dest: str) -> str:
    """
    Normalize the destination root given on the command line.

    Strips a leading "./" and trailing separators and maps an empty path to
    the current directory.

    Raises:
        ValueError: If the destination is a filesystem root
    """
    dest = str(dest)
    while dest.startswith("./"):
        dest = dest[2:]
    stripped = dest.rstrip("/" + os.sep)
    if dest and not stripped:
        # Nothing but separators: that is the root itself
        stripped = os.sep
    if not stripped:
        stripped = "."

    resolved = Path(stripped).expanduser().resolve()
    if resolved == Path(resolved.anchor):
        raise ValueError(f"Destination must not be the filesystem root: {dest or '/'}")
    return stripped


def bucket_for(date: CaptureDate) -> str:
    """
    Return the bucket ("YYYY/MM-MonthName" or "unknown_date") for a date.

    Examples:
        2020:05 -> 2020/05-May
        1980:07 -> unknown_date
        2020:13 -> 2020/13-InvalidMonth
    """
    if date is UNKNOWN_DATE or date.year < MIN_TRUSTED_YEAR:
        return UNKNOWN_DATE_BUCKET
    month_name = MONTH_NAMES[date.month - 1] if date.is_valid else INVALID_MONTH_NAME
    return f"{date.year:04d}/{date.month:02d}-{month_name}"


def bucket_path(date: CaptureDate, dest_root) -> Path:
    """Join the destination root and the date bucket."""
    root = str(dest_root) if dest_root is not None else ""
    if root in ("", "."):
        root = "."
    return Path(root).joinpath(*bucket_for(date).split("/"))


def generate_renamed_filename(dest_dir: Path, filename: str, claimed=None) -> str:
    """
    Find a free name for a file that collides with a different file.

    Args:
        dest_dir (Path): Destination directory
        filename (str): Colliding filename
        claimed (dict, optional): Destination paths already taken earlier in
            this run, counted as existing

    Returns:
        str: The first of name_1.ext, name_2.ext, ... that does not exist

    Examples:
        photo.jpg -> photo_1.jpg (if unique)
        photo.jpg -> photo_2.jpg (if photo_1.jpg exists)
    """
    claimed = claimed or {}
    original = Path(filename)
    counter = 1
    while True:
        new_name = f"{original.stem}_{counter}{original.suffix}"
        candidate = dest_dir / new_name
        if candidate not in claimed and not candidate.exists():
            return new_name
        counter += 1


def _same_path(a: Path, b: Path) -> bool:
    # Hard links are different paths and do not count
    try:
        return a.resolve() == b.resolve()
    except (OSError, RuntimeError):
        return False


def decide(media: MediaFile, dest_dir: Path, force: bool, claimed=None) -> ConflictDecision:
    """
    Decide what to do with a source file given its destination directory.

    Args:
        media (MediaFile): Source file
        dest_dir (Path): Bucket directory the file belongs in
        force (bool): Whether collisions may delete identical sources and
            rename different ones
        claimed (dict, optional): Destination path -> MediaFile for every
            path an earlier file of this run moved (or, in test mode, would
            have moved) to. Test runs see these as existing files, so their
            decisions match a real run.

    Returns:
        ConflictDecision: The decision; nothing on disk is changed here

    Decision table:
        destination name free               -> MOVE
        taken, no force                     -> SKIP_REPORT (hashes compared)
        taken, force, same content          -> OVERWRITE_DELETE_SOURCE
        taken, force, same content and path -> SKIP_REPORT (same_file)
        taken, force, different content     -> RENAME_AND_MOVE
        any I/O error                       -> FAIL
    """
    claimed = claimed or {}
    dest_path = dest_dir / media.path.name
    try:
        on_disk = dest_path.exists()
    except OSError as e:
        return ConflictDecision.fail(e, dest_path)
    if not on_disk and dest_path not in claimed:
        return ConflictDecision.move(dest_path)

    # Name collision from here on
    try:
        if on_disk:
            if _same_path(media.path, dest_path):
                return ConflictDecision.skip_report(dest_path, True, same_file=True)
            dest_digest = calculate_file_hash(dest_path)
        else:
            # Only claimed by a test-mode move; its source still holds the content
            dest_digest = claimed[dest_path].digest()
        hashes_equal = media.digest() == dest_digest
        if not force:
            return ConflictDecision.skip_report(dest_path, hashes_equal)
        if hashes_equal:
            return ConflictDecision.overwrite_delete_source(dest_path)
        new_name = generate_renamed_filename(dest_dir, media.path.name, claimed)
        return ConflictDecision.rename_and_move(dest_path, new_name)
    except OSError as e:
        return ConflictDecision.fail(e, dest_path, collision=True)


def format_status(source: Path, description: str) -> str:
    """Status line: source path left-justified, arrow, outcome."""
    return f"{str(source):<40} -> {description}"


def _record_comparison(decision: ConflictDecision, tally: RunTally):
    if decision.collision:
        tally.duplicates += 1
    if decision.hashes_equal is True:
        tally.hash_matches += 1
    elif decision.hashes_equal is False:
        tally.hash_diffs += 1


def _fail(source: Path, cause, tally: RunTally, logger, dest_path=None) -> Outcome:
    tally.failed += 1
    logger.warning(format_status(source, f"FAILED: {cause}"))
    return Outcome(FAIL, str(cause), dest_path)


def apply_decision(
    decision: ConflictDecision, media: MediaFile, dest_dir: Path, dry_run: bool, tally: RunTally, logger
) -> Outcome:
    """
    Carry out (or, in dry run, simulate) a decision.

    Args:
        decision (ConflictDecision): Decision returned by decide()
        media (MediaFile): Source file
        dest_dir (Path): Bucket directory
        dry_run (bool): Count in the TEST counters and touch nothing
        tally (RunTally): Counters for this run
        logger (logging.Logger): Logger for the status line

    Returns:
        Outcome: Per-file result; failures are returned, never raised
    """
    source = media.path
    _record_comparison(decision, tally)
    prefix = "[TEST] " if dry_run else ""

    if decision.kind == FAIL:
        return _fail(source, decision.cause, tally, logger, decision.dest_path)

    if decision.kind == SKIP_REPORT:
        if decision.same_file:
            description = "already in place, nothing to do"
        elif decision.hashes_equal:
            description = f"skipped, identical file exists at {decision.dest_path}"
        else:
            description = f"skipped, different file exists at {decision.dest_path}"
        logger.info(format_status(source, prefix + description))
        return Outcome(SKIP_REPORT, description, decision.dest_path)

    if decision.kind == OVERWRITE_DELETE_SOURCE:
        if dry_run:
            tally.test_deleted += 1
        else:
            try:
                source.unlink()
            except OSError as e:
                return _fail(source, e, tally, logger, decision.dest_path)
            tally.deleted += 1
        description = f"deleted, identical copy at {decision.dest_path}"
        logger.info(format_status(source, prefix + description))
        return Outcome(OVERWRITE_DELETE_SOURCE, description, decision.dest_path)

    if decision.kind == MOVE:
        target = decision.dest_path
    elif decision.kind == RENAME_AND_MOVE:
        target = dest_dir / decision.new_name
    else:
        raise ValueError(f"Unknown decision kind: {decision.kind}")

    if not dry_run:
        try:
            dest_dir.mkdir(parents=True, exist_ok=True)
            shutil.move(str(source), str(target))
        except OSError as e:
            return _fail(source, e, tally, logger, target)

    if decision.kind == MOVE:
        if dry_run:
            tally.test_moved += 1
        else:
            tally.moved += 1
        description = f"moved to {target}"
    else:
        if dry_run:
            tally.test_renamed += 1
        else:
            tally.renamed += 1
        description = f"renamed to {target}"
    logger.info(format_status(source, prefix + description))
    return Outcome(decision.kind, description, target)


def process_file(
    path: Path, destination_dir, force: bool, dry_run: bool, tally: RunTally, logger, claimed=None
) -> Outcome:
    """
    Resolve, map, decide and apply for one source file.

    Any OSError is turned into a failure outcome so the batch carries on.
    When a claimed dict is given, the path the file was moved to is recorded
    in it for the files that follow.
    """
    try:
        media = MediaFile.from_path(path)
        date = resolve_capture_date(media, logger)
        dest_dir = bucket_path(date, destination_dir)
        logger.debug(f"{path}: capture date {date.describe()}, bucket {dest_dir}")
        decision = decide(media, dest_dir, force, claimed)
    except OSError as e:
        return _fail(Path(path), e, tally, logger)
    outcome = apply_decision(decision, media, dest_dir, dry_run, tally, logger)
    if claimed is not None and outcome.kind in (MOVE, RENAME_AND_MOVE):
        claimed[outcome.dest_path] = media
    return outcome


def walk_source(source_dir: Path, destination_dir: Path = None):
    """
    Yield every file under source_dir in sorted depth-first order.

    A destination that lies strictly inside the source is not descended
    into, and the run's own log file is never yielded.
    """
    source_dir = Path(source_dir)
    dest_resolved = Path(destination_dir).resolve() if destination_dir is not None else None
    log_file = dest_resolved / LOG_FILENAME if dest_resolved is not None else None

    for folder_name, dirnames, filenames in os.walk(source_dir):
        folder = Path(folder_name)
        dirnames.sort()
        if dest_resolved is not None:
            dirnames[:] = [d for d in dirnames if (folder / d).resolve() != dest_resolved]
        for filename in sorted(filenames):
            path = folder / filename
            if log_file is not None and path.resolve() == log_file:
                continue
            yield path


def run(source_dir: Path, destination_dir, force: bool = False, dry_run: bool = False, logger=logger) -> RunTally:
    """
    Sort every file under source_dir into destination_dir.

    Args:
        source_dir (Path): Directory to scan recursively
        destination_dir: Normalized destination root
        force (bool): Resolve collisions by deleting or renaming
        dry_run (bool): Decide and count without changing anything
        logger (logging.Logger): Logger for status lines

    Returns:
        RunTally: Counters for the run
    """
    tally = RunTally()
    # Snapshot first so files moved during the run are not visited again
    files = list(walk_source(source_dir, Path(destination_dir)))
    logger.debug(f"Found {len(files)} files under {source_dir}")
    # Destinations taken so far, so test runs decide exactly like real ones
    claimed = {}
    for path in files:
        process_file(path, destination_dir, force, dry_run, tally, logger, claimed)
    return tally


def log_summary(tally: RunTally, logger):
    logger.info("")
    for line in tally.summary_lines():
        logger.info(line)


def set_up_logging(destination_dir: Path, verbose: bool, dry_run: bool):
    """
    Set up console logging and, for real runs, a log file in the destination.

    Args:
        destination_dir (Path): Directory where the log file will be created,
            or None for console logging only
        verbose (bool): Whether to enable verbose (DEBUG) logging
        dry_run (bool): Test runs leave the destination untouched, so no log file

    Returns:
        logging.Logger: Configured logger instance
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger.setLevel(level)
    logger.propagate = False

    # Start from a clean slate so repeated runs in one process do not stack handlers
    close_logging()

    # Define a simple formatter that just prints the message
    formatter = logging.Formatter("%(message)s")

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if destination_dir is not None and not dry_run:
        logfile = destination_dir / LOG_FILENAME
        try:
            logfile.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            print(f"Failed to create log directory: {e}")
            sys.exit(1)
        fh = logging.FileHandler(logfile, encoding="utf-8")
        fh.setLevel(level)
        fh.setFormatter(formatter)
        logger.addHandler(fh)

    return logger


def close_logging():
    """Flush, close and detach every handler of the module logger."""
    for handler in list(logger.handlers):
        handler.flush()
        logger.removeHandler(handler)
        handler.close()


def _nearest_existing(path: Path) -> Path:
    for candidate in [path, *path.parents]:
        if candidate.exists():
            return candidate
    return Path(path.anchor)


def validate_args(source_dir: Path, destination_dir: Path, logger):
    """
    Validate the source and destination directories before any file is touched.

    Args:
        source_dir (Path): Source directory path
        destination_dir (Path): Normalized destination directory path
        logger (logging.Logger): Logger for recording errors

    Exits:
        If the source is not a writable directory, or the destination cannot be created
    """
    if not source_dir.exists() or not source_dir.is_dir():
        logger.error(f"Source directory does not exist: {source_dir}")
        sys.exit(1)

    if not os.access(source_dir, os.W_OK | os.X_OK):
        logger.error(f"Source directory is not writable: {source_dir}")
        sys.exit(1)

    if destination_dir.exists() and not destination_dir.is_dir():
        logger.error(f"Destination is not a directory: {destination_dir}")
        sys.exit(1)

    parent = _nearest_existing(destination_dir.resolve())
    if not parent.is_dir() or not os.access(parent, os.W_OK | os.X_OK):
        logger.error(f"Destination is not writable: {parent}")
        sys.exit(1)


def casefold_long_options(args: List[str]) -> List[str]:
    """
    Lower-case long option names so --SOURCE and --source are the same.

    Option values and everything after a bare "--" are left alone.
    """
    result = []
    passthrough = False
    for arg in args:
        if passthrough or not arg.startswith("--") or arg == "--":
            passthrough = passthrough or arg == "--"
            result.append(arg)
            continue
        name, sep, value = arg.partition("=")
        result.append(name.lower() + sep + value)
    return result


class VersionedArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that shows the version and usage on errors."""

    def error(self, message):
        sys.stderr.write(f"sortmedia {myversion}\n\n")
        self.print_usage(sys.stderr)
        sys.stderr.write(f"{self.prog}: error: {message}\n")
        sys.stderr.write(f"Try '{self.prog} --help' for more information.\n")
        sys.exit(2)


def parse_arguments(args=None):
    """
    Parse command line arguments using argparse.

    Args:
        args (list, optional): Command line arguments. Defaults to sys.argv[1:].

    Returns:
        argparse.Namespace: Parsed arguments
    """
    if args is None:
        args = sys.argv[1:]

    parser = VersionedArgumentParser(
        prog="sortmedia",
        description="Move photos and videos into YEAR/MM-MonthName folders based on their capture date. Dates come from embedded metadata (via hachoir) or the file modification time; files dated before 1995 go to 'unknown_date'.",
        epilog="""
IMPORTANT NOTES:
• Long options are case-insensitive (--SOURCE works like --source)
• Name collisions are compared by MD5; nothing is overwritten
• Use -t/--test to preview a run; it counts under the TEST counters only
• Real runs also log to 'events.log' in the destination directory""",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
    )

    parser.add_argument(
        "-s",
        "--source",
        required=True,
        help="Source directory containing files to sort. Scanned recursively. Must exist and be writable, since files are moved out of it.",
        metavar="DIR",
    )

    parser.add_argument(
        "-d",
        "--destination",
        required=True,
        help="Destination root. Files end up in DIR/YYYY/MM-MonthName or DIR/unknown_date. Created if needed; the filesystem root is refused.",
        metavar="DIR",
    )

    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Resolve name collisions: delete the source if the destination already holds identical content, otherwise move it under a new name (photo_1.jpg, photo_2.jpg, ...). Without this flag collisions are only reported.",
    )

    parser.add_argument(
        "-t",
        "--test",
        action="store_true",
        help="Test mode (dry run): make every decision, including content hashing, but do not create, move or delete anything.",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging, including the capture date and bucket chosen for each file.",
    )

    parser.add_argument(
        "-h",
        "-?",
        "--help",
        action="help",
        help="Show this help message and exit",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
        help="Show program version and exit",
    )

    return parser.parse_args(casefold_long_options(list(args)))


def main(args=None):
    """
    Main entry point for the script.

    Args:
        args (list, optional): Command line arguments. Defaults to None.

    This function orchestrates the entire process: parsing arguments,
    validating directories, setting up logging, sorting the files and
    printing the summary. Fatal startup errors exit with status 1.
    """
    parsed_args = parse_arguments(args)
    dry_run = parsed_args.test

    # Console only until the destination is known to be usable
    set_up_logging(None, parsed_args.verbose, dry_run=True)

    try:
        destination = normalize_destination(parsed_args.destination)
    except ValueError as e:
        logger.error(str(e))
        close_logging()
        sys.exit(1)

    source_dir = Path(parsed_args.source).expanduser()
    destination_dir = Path(destination).expanduser()

    try:
        validate_args(source_dir, destination_dir, logger)
    except SystemExit:
        close_logging()
        raise
    set_up_logging(destination_dir, parsed_args.verbose, dry_run)

    start_time = datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    logger.debug("=" * 80)
    logger.debug(f"sortmedia {myversion}")
    logger.debug(f"Session Started: {start_time}")
    logger.debug("Command-line options: %s", vars(parsed_args))
    logger.debug("=" * 80)
    if dry_run:
        logger.info("TEST MODE: no files will be created, moved or deleted")

    tally = run(source_dir, destination_dir, force=parsed_args.force, dry_run=dry_run, logger=logger)
    log_summary(tally, logger)

    end_time = datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    logger.debug(f"Session Ended: {end_time}")

    # Ensure all log messages are written
    close_logging()


if __name__ == "__main__":
    main()
