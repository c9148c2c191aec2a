import io
from pathlib import Path

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from .exceptions import ExtractError

ACCEPTED_SUFFIX = ".pdf"


def is_accepted_document(path) -> bool:
    return Path(path).suffix.lower() == ACCEPTED_SUFFIX


def extract_text(data: bytes) -> str:
    """
    Extract plain text from PDF bytes.
    Pages are separated by a blank line so page breaks act as paragraph breaks.
    """
    if not data:
        raise ExtractError("Empty document")
    try:
        pdf = PdfReader(io.BytesIO(data))
        parts = []
        for page in pdf.pages:
            parts.append(page.extract_text() or "")
    except PyPdfError as e:
        raise ExtractError("Failed to extract text", {"error": str(e)}) from e
    except Exception as e:
        # damaged files also surface as AttributeError, IndexError, zlib.error, ...
        raise ExtractError("Failed to extract text", {"error": repr(e)}) from e
    return "\n\n".join(parts)


def read_document(file_path) -> str:
    try:
        data = Path(file_path).read_bytes()
    except OSError as e:
        raise ExtractError("Failed to read file", {"path": str(file_path), "error": str(e)}) from e
    return extract_text(data)
