"""Building blocks for remote-execution clients: file metadata, upload entries,
output streams, flag helpers, retries, port picking and compressing readers."""

__version__ = "0.1.0"

__all__ = [
    "filemetadata",
    "moreflag",
    "outerr",
    "portpicker",
    "reader",
    "retry",
    "uploadinfo",
]