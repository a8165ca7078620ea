"""
Recording Utilities

Shared helpers for turning a finished recording into a file on disk.
"""

import logging
import shutil
import time
from pathlib import Path
from typing import Optional, Tuple

from config.settings import EXPORT_FILENAME_PREFIX
from recording.models.artifact import RecordingArtifact


def generate_filename(
    base_path: Path,
    extension: str = "webm",
    prefix: str = EXPORT_FILENAME_PREFIX,
    timestamp_ms: Optional[int] = None,
) -> Path:
    """
    Generate timestamped filename for a recording.

    Args:
        base_path: Directory where file will be saved
        extension: File extension without the dot
        prefix: Filename prefix
        timestamp_ms: Milliseconds since the epoch (None = now)

    Returns:
        Complete file path

    Example:
        path = generate_filename(Path("/exports"), timestamp_ms=1700000000000)
        # Returns: /exports/recorded-video-1700000000000.webm
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return Path(base_path) / f"{prefix}-{timestamp_ms}.{extension}"


def check_disk_space(path: Path, required_bytes: int) -> bool:
    """
    Check if at least required_bytes are free where path lives.

    Returns:
        True if enough space available, False otherwise
    """
    try:
        return shutil.disk_usage(path).free >= required_bytes
    except OSError as e:
        logging.error(f"Error checking disk space: {e}")
        return False


def validate_output_dir(directory: Path, required_bytes: int = 0) -> Tuple[bool, Optional[str]]:
    """
    Validate an export directory.

    Checks:
    - Directory exists or can be created
    - Directory is writable
    - Enough free space for the payload

    Returns:
        Tuple of (is_valid, error_message)
        error_message is None if valid
    """
    directory = Path(directory)
    if not directory.exists():
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return False, f"Cannot create directory: {e}"

    if not directory.is_dir():
        return False, f"Not a directory: {directory}"

    test_file = directory / ".write_test"
    try:
        test_file.touch()
        test_file.unlink()
    except OSError as e:
        return False, f"Directory not writable: {e}"

    if required_bytes and not check_disk_space(directory, required_bytes):
        return False, f"Insufficient disk space (need {format_file_size(required_bytes)})"

    return True, None


def export_artifact(
    artifact: RecordingArtifact,
    directory: Path,
    timestamp_ms: Optional[int] = None,
) -> Path:
    """
    Write a recording artifact to disk.

    Args:
        artifact: Finished recording
        directory: Export directory (created if missing)
        timestamp_ms: Timestamp used in the filename (None = now)

    Returns:
        Path of the written file

    Raises:
        OSError: If the directory is unusable or the write fails

    Example:
        path = export_artifact(session.artifact, Path("./exports"))
        # ./exports/recorded-video-1700000000000.webm
    """
    valid, error = validate_output_dir(directory, artifact.size_bytes)
    if not valid:
        raise OSError(error)

    path = generate_filename(Path(directory), artifact.extension, timestamp_ms=timestamp_ms)
    path.write_bytes(artifact.data)

    logging.info(f"Exported recording: {path} ({format_file_size(artifact.size_bytes)})")
    return path


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in human-readable format.

    Example:
        format_file_size(45000000) -> "42.9 MB"
    """
    if size_bytes <= 0:
        return "0 B"

    units = ["B", "KB", "MB", "GB", "TB"]
    unit_index = 0
    size = float(size_bytes)

    while size >= 1024.0 and unit_index < len(units) - 1:
        size /= 1024.0
        unit_index += 1

    if unit_index == 0:
        return f"{int(size)} {units[unit_index]}"
    return f"{size:.1f} {units[unit_index]}"
