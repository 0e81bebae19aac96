"""ZIP packaging for synthesized documents."""

from __future__ import annotations

from collections.abc import Sequence
from io import BytesIO
import logging
import zipfile

from formstamp.config import ARCHIVE_INDEX_WIDTH, DEFAULT_ARCHIVE_BASE_NAME

logger = logging.getLogger(__name__)


class ArchiveError(RuntimeError):
    """Raised when the output archive cannot be built."""


def archive_member_name(base_name: str, index: int) -> str:
    """Name of the ``index``-th (zero-based) produced document.

    Numbering follows output order, so it stays dense when rows were skipped.
    """
    base = base_name.strip() or DEFAULT_ARCHIVE_BASE_NAME
    return f"{base}_{index + 1:0{ARCHIVE_INDEX_WIDTH}d}.pdf"


def pack_documents(buffers: Sequence[bytes], base_name: str = DEFAULT_ARCHIVE_BASE_NAME) -> bytes:
    output = BytesIO()
    try:
        with zipfile.ZipFile(output, "w", zipfile.ZIP_DEFLATED) as archive:
            for index, data in enumerate(buffers):
                archive.writestr(archive_member_name(base_name, index), data)
    except Exception as exc:
        raise ArchiveError("Failed to build output archive") from exc

    logger.info("Packed %d document(s) into archive (%d bytes)", len(buffers), output.tell())
    return output.getvalue()
