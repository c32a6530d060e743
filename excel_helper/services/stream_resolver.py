"""
Stream resolution and workbook format detection.

Turns the input of an ExcelReader (a file name or a caller supplied
stream) into a single seekable binary stream for the decoders, and
decides which decoder to use when the caller did not say.
"""

import io
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from excel_helper.exceptions.excel_exceptions import (
    FileNotFoundError,
    FormatDetectionError,
)
from excel_helper.models.excel_models import ExcelFileFormat

logger = logging.getLogger(__name__)

BINARY_FILE_EXTENSION = ".xls"
ZIP_SIGNATURE = b"PK"


@dataclass
class ResolvedStream:
    """
    Seekable stream handed to a decoder.

    Attributes:
        stream: The seekable binary stream.
        is_copy: True when the stream is an in-memory copy made by the
            resolver. A copy always belongs to the session.
    """

    stream: BinaryIO
    is_copy: bool = False


def validate_file_path(file_path: str | os.PathLike) -> Path:
    """
    Validate that the workbook file exists.

    Any extension is accepted; content that is not a workbook is refused
    by the decoder when the file is read.

    Args:
        file_path: Path to the Excel file.

    Returns:
        Path object for the validated file.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    path = Path(file_path)

    if not path.is_file():
        raise FileNotFoundError(str(file_path))

    return path


def format_from_filename(file_path: str | os.PathLike) -> ExcelFileFormat:
    """Pick the workbook format from the file extension (.xls is binary)."""
    if Path(file_path).suffix.lower() == BINARY_FILE_EXTENSION:
        return ExcelFileFormat.BINARY
    return ExcelFileFormat.OPEN_XML


def detect_file_format(stream: BinaryIO) -> ExcelFileFormat:
    """
    Detect the workbook format from the leading bytes of a stream.

    Zip containers start with "PK"; everything else is treated as a
    legacy binary workbook. The stream is rewound to the start.

    Args:
        stream: Seekable binary stream.

    Returns:
        ExcelFileFormat.OPEN_XML or ExcelFileFormat.BINARY.

    Raises:
        FormatDetectionError: If the stream cannot seek.
    """
    if not _is_seekable(stream):
        raise FormatDetectionError(
            reason="this stream cannot seek; pass an explicit file format",
        )

    stream.seek(0)
    signature = stream.read(2)
    stream.seek(0)

    file_format = (
        ExcelFileFormat.OPEN_XML if signature == ZIP_SIGNATURE else ExcelFileFormat.BINARY
    )
    logger.debug("Detected %s workbook from stream signature %r", file_format.value, signature)
    return file_format


def open_file_stream(file_path: str | os.PathLike) -> BinaryIO:
    """
    Open a workbook file for reading.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    path = validate_file_path(file_path)
    return open(path, "rb")


def resolve_stream(stream: BinaryIO, is_stream_owner: bool) -> ResolvedStream:
    """
    Produce a seekable stream for the decoders.

    A seekable stream owned by the session is used as is. A borrowed
    stream, or one that cannot seek, is copied into memory so that the
    caller's stream is neither repositioned later nor closed with the
    session.

    Seekable streams are read from their first byte whatever their current
    position.

    Args:
        stream: Caller supplied binary stream.
        is_stream_owner: Whether the session owns the stream.

    Returns:
        ResolvedStream wrapping the stream to decode.
    """
    if is_stream_owner and _is_seekable(stream):
        stream.seek(0)
        return ResolvedStream(stream=stream)

    if _is_seekable(stream):
        stream.seek(0)

    buffer = io.BytesIO()
    shutil.copyfileobj(stream, buffer)
    buffer.seek(0)
    logger.debug("Copied %d byte(s) of workbook stream into memory", buffer.getbuffer().nbytes)
    return ResolvedStream(stream=buffer, is_copy=True)


def _is_seekable(stream: BinaryIO) -> bool:
    seekable = getattr(stream, "seekable", None)
    return bool(seekable and seekable())
