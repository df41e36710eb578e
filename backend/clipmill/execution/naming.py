"""
Output file naming.

Produces names that are legal on every major filesystem, fit in 255
UTF-8 bytes and never collide with an existing file in the output
directory.
"""

import logging
import os
import re
import uuid
from typing import Dict, Optional

logger = logging.getLogger(__name__)

# Union of the characters rejected by Windows, macOS and Linux, plus '#'
ILLEGAL_CHARS_RE = re.compile(r'[<>:"/\\|?*#\x00-\x1f]')

CHAR_REPLACEMENTS: Dict[str, str] = {
    "#": "_",
    ":": "_",
    "/": "_",
    "\\": "_",
    "|": "_",
    "?": "_",
    "*": "_",
    '"': "_",
    "<": "(",
    ">": ")",
}

MAX_FILENAME_BYTES = 255

# Bytes kept from the end of a name when it is truncated in the middle
DEFAULT_SUFFIX_BYTES = 20

# Collision counter limit before falling back to a random suffix
MAX_UNIQUE_ATTEMPTS = 10000

WINDOWS_RESERVED_NAMES = frozenset(
    ["CON", "PRN", "AUX", "NUL"]
    + [f"COM{i}" for i in range(1, 10)]
    + [f"LPT{i}" for i in range(1, 10)]
)


def byte_length(text: str) -> int:
    return len(text.encode("utf-8"))


def truncate_by_bytes(text: str, max_bytes: int) -> str:
    """Cut ``text`` to at most ``max_bytes`` UTF-8 bytes without splitting a character."""
    if max_bytes <= 0:
        return ""
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text
    return encoded[:max_bytes].decode("utf-8", errors="ignore")


def _tail_by_bytes(text: str, max_bytes: int) -> str:
    # Longest suffix of text that fits in max_bytes
    if max_bytes <= 0:
        return ""
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text
    return encoded[-max_bytes:].decode("utf-8", errors="ignore")


def _split_ext(filename: str):
    dot = filename.rfind(".")
    if dot > 0:
        return filename[:dot], filename[dot:]
    return filename, ""


def sanitize_filename(
    filename: Optional[str],
    replacement: str = "_",
    preserve_extension: bool = True,
) -> str:
    """
    Replace illegal characters and normalise a file name.

    - illegal characters are mapped through CHAR_REPLACEMENTS
    - runs of the replacement collapse into one
    - leading/trailing replacement characters, dots and whitespace are stripped
    - an empty result becomes "unnamed"
    - Windows reserved device names get a "file_" prefix
    """
    if not filename:
        return "unnamed"

    name, ext = (_split_ext(filename) if preserve_extension else (filename, ""))

    name = ILLEGAL_CHARS_RE.sub(lambda m: CHAR_REPLACEMENTS.get(m.group(0), replacement), name)

    escaped = re.escape(replacement)
    name = re.sub(f"(?:{escaped}){{2,}}", replacement, name)
    name = name.strip()
    name = re.sub(f"^[{escaped}.\\s]+|[{escaped}.\\s]+$", "", name)

    if not name:
        name = "unnamed"

    if name.upper() in WINDOWS_RESERVED_NAMES:
        name = "file_" + name

    return name + ext


def truncate_filename(
    filename: Optional[str],
    max_bytes: int = MAX_FILENAME_BYTES,
    suffix_bytes: int = DEFAULT_SUFFIX_BYTES,
    ellipsis: str = "...",
) -> str:
    """
    Shorten ``filename`` to ``max_bytes`` UTF-8 bytes.

    The extension is kept. Long names keep their head and tail joined by
    ``ellipsis`` so numbered variants stay distinguishable.
    """
    if not filename:
        return "unnamed"
    if byte_length(filename) <= max_bytes:
        return filename

    name, ext = _split_ext(filename)
    ext_bytes = byte_length(ext)
    ellipsis_bytes = byte_length(ellipsis)
    available = max_bytes - ext_bytes

    if byte_length(name) > available:
        if available <= suffix_bytes + ellipsis_bytes:
            name = truncate_by_bytes(name, available - ellipsis_bytes) + ellipsis
        else:
            head_bytes = (available - ellipsis_bytes - suffix_bytes) // 2
            tail_bytes = available - ellipsis_bytes - head_bytes
            head = truncate_by_bytes(name, head_bytes)
            tail = _tail_by_bytes(name[len(head):], tail_bytes)
            name = head + ellipsis + tail

    if byte_length(name + ext) > max_bytes:
        name = truncate_by_bytes(name, max_bytes - ext_bytes - ellipsis_bytes) + ellipsis

    return name + ext


def generate_unique_filename(output_dir: str, filename: str) -> str:
    """
    Return ``filename``, or ``name_1.ext``, ``name_2.ext``... if it is taken
    in ``output_dir``.
    """
    if not os.path.exists(os.path.join(output_dir, filename)):
        return filename

    base, ext = _split_ext(filename)
    for counter in range(1, MAX_UNIQUE_ATTEMPTS + 1):
        candidate = f"{base}_{counter}{ext}"
        if not os.path.exists(os.path.join(output_dir, candidate)):
            return candidate

    logger.warning(f"[Naming] Counter limit reached for {filename}, using random suffix")
    return f"{base}_{uuid.uuid4().hex[:6]}{ext}"


def generate_file_name(
    output_dir: str,
    base_name: str,
    suffix: str = "",
    extension: str = ".mp4",
    reserve_bytes: int = 4,
) -> str:
    """
    Build a safe, unique output file name.

    Args:
        output_dir: Directory the file will be written to
        base_name: Name without extension (may contain illegal characters)
        suffix: Appended to the name before truncation
        extension: File extension including the dot
        reserve_bytes: Bytes left free for a collision counter

    Returns:
        File name (not a path) that does not yet exist in ``output_dir``
    """
    safe_name = sanitize_filename(base_name, preserve_extension=False) + suffix
    safe_name = truncate_filename(
        safe_name,
        max_bytes=MAX_FILENAME_BYTES - reserve_bytes - byte_length(extension),
        suffix_bytes=10,
    )
    return generate_unique_filename(output_dir, safe_name + extension)


def generate_combined_file_name(
    output_dir: str,
    a_name: str,
    b_name: str,
    suffix: str = "",
    separator: str = "__",
    extension: str = ".mp4",
    reserve_bytes: int = 4,
) -> str:
    """
    Build a safe, unique ``{A}{separator}{B}{suffix}`` output file name.

    Each half is sanitised and truncated on its own, so the separator
    survives sanitising and both names stay recognisable.
    """
    ellipsis = "..."
    max_bytes = MAX_FILENAME_BYTES - reserve_bytes
    safe_a = sanitize_filename(a_name, preserve_extension=False)
    safe_b = sanitize_filename(b_name, preserve_extension=False)

    separator_bytes = byte_length(separator)
    ext_bytes = byte_length(extension)
    available = max_bytes - separator_bytes - byte_length(suffix) - ext_bytes
    each_name_bytes = available // 2 - separator_bytes

    if byte_length(safe_a) > each_name_bytes:
        safe_a = truncate_by_bytes(safe_a, each_name_bytes - len(ellipsis)) + ellipsis
    if byte_length(safe_b) > each_name_bytes:
        safe_b = truncate_by_bytes(safe_b, each_name_bytes - len(ellipsis)) + ellipsis

    combined = safe_a + separator + safe_b + suffix
    if byte_length(combined) + ext_bytes > max_bytes:
        combined = truncate_by_bytes(combined, max_bytes - ext_bytes - len(ellipsis)) + ellipsis

    return generate_unique_filename(output_dir, combined + extension)


def display_name(path: str) -> str:
    """File name of ``path`` without directory or extension."""
    return os.path.splitext(os.path.basename(path))[0]
