"""
Recording Utilities Package

Exposes shared utility functions for recording operations.
"""

from recording.utils.recording_utils import (
    check_disk_space,
    export_artifact,
    format_file_size,
    generate_filename,
    validate_output_dir,
)

# Public API
__all__ = [
    "check_disk_space",
    "export_artifact",
    "format_file_size",
    "generate_filename",
    "validate_output_dir",
]
