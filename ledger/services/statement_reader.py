"""Turn an uploaded statement file into something an extraction agent can read."""

import base64
import csv
import io
from dataclasses import dataclass, field
from pathlib import PurePath

import pandas as pd
import pdfplumber

from ledger.agents.base import StatementImage
from ledger.core.errors import UnsupportedFileError
from ledger.core.utils import get_logger

logger = get_logger("ledger.import")

TEXT_ENCODINGS = ("utf-8", "latin-1", "cp1252")
PDF_MIN_TEXT_CHARS = 100
PDF_RASTER_RESOLUTION = 150
MIN_TABULAR_LINES = 2
MIN_TABULAR_COLUMNS = 2
CSV_DELIMITERS = ",;\t|"

TABULAR_TYPES = ("csv", "tsv")
IMAGE_TYPES = {"png": "image/png", "jpg": "image/jpeg", "jpeg": "image/jpeg"}
SUPPORTED_TYPES = (*TABULAR_TYPES, *IMAGE_TYPES, "pdf")


@dataclass
class StatementContent:
    """Readable content of a statement: text for the text model, or page images for the vision model."""

    file_type: str
    text: str | None = None
    images: list[StatementImage] = field(default_factory=list)


def file_type_for(file_name: str) -> str:
    """Return the lowercased extension of a statement file, rejecting unsupported types."""
    file_type = PurePath(file_name).suffix.lower().lstrip(".")
    if file_type not in SUPPORTED_TYPES:
        msg = f"Unsupported statement type: {file_type or file_name!r}. Supported: {', '.join(SUPPORTED_TYPES)}"
        raise UnsupportedFileError(msg)
    return file_type


def decode_text_with_fallback(data: bytes) -> str:
    """Decode statement bytes as UTF-8, then Latin-1, then cp1252."""
    for encoding in TEXT_ENCODINGS:
        try:
            text = data.decode(encoding)
        except UnicodeDecodeError:
            continue
        if encoding != TEXT_ENCODINGS[0]:
            logger.info(f"Statement decoded as {encoding}")
        return text
    return data.decode(TEXT_ENCODINGS[-1], errors="replace")


def normalize_tabular_text(text: str, file_type: str) -> str:
    """Re-emit delimited text as clean CSV with pandas.

    The raw text is kept whenever pandas does not read it as a table with one row per input line and more
    than one column, e.g. single-column text or exports with a title line above the header.
    """
    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) < MIN_TABULAR_LINES:
        return text
    try:
        sep = "\t" if file_type == "tsv" else csv.Sniffer().sniff(lines[0], delimiters=CSV_DELIMITERS).delimiter
        frame = pd.read_csv(io.StringIO(text), sep=sep, engine="python", dtype=str, skip_blank_lines=True)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, ValueError, csv.Error) as exc:
        logger.warning(f"Could not normalize {file_type} statement, using raw text: {exc}")
        return text
    if len(frame.columns) < MIN_TABULAR_COLUMNS or len(frame) != len(lines) - 1:
        logger.info(f"{file_type} statement is not a plain table, using raw text")
        return text
    frame = frame.dropna(how="all")
    return frame.to_csv(index=False, sep="\t" if file_type == "tsv" else ",")


def chunk_lines(text: str, max_lines: int) -> list[str]:
    """Split text into chunks of at most ``max_lines`` data lines, each starting with the header line."""
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        return []
    header, body = lines[0], lines[1:]
    if len(body) <= max_lines:
        return ["\n".join(lines)]
    return ["\n".join([header, *body[i : i + max_lines]]) for i in range(0, len(body), max_lines)]


def extract_pdf_text(data: bytes) -> str:
    """Extract the text layer of a PDF."""
    with pdfplumber.open(io.BytesIO(data)) as pdf:
        return "\n".join((page.extract_text() or "") for page in pdf.pages).strip()


def rasterize_pdf(data: bytes) -> list[StatementImage]:
    """Render each PDF page to a PNG image."""
    images = []
    with pdfplumber.open(io.BytesIO(data)) as pdf:
        for page in pdf.pages:
            buffer = io.BytesIO()
            page.to_image(resolution=PDF_RASTER_RESOLUTION).original.save(buffer, format="PNG")
            images.append(StatementImage(base64.b64encode(buffer.getvalue()).decode("ascii"), "image/png"))
    return images


def read_statement(file_name: str, data: bytes) -> StatementContent:
    """Read a statement upload according to its extension."""
    file_type = file_type_for(file_name)
    if file_type in TABULAR_TYPES:
        text = normalize_tabular_text(decode_text_with_fallback(data), file_type)
        return StatementContent(file_type=file_type, text=text)
    if file_type in IMAGE_TYPES:
        image = StatementImage(base64.b64encode(data).decode("ascii"), IMAGE_TYPES[file_type])
        return StatementContent(file_type=file_type, images=[image])

    text = extract_pdf_text(data)
    if len(text) > PDF_MIN_TEXT_CHARS:
        return StatementContent(file_type=file_type, text=text)
    logger.info(f"PDF {file_name} has {len(text)} characters of text, falling back to page images")
    return StatementContent(file_type=file_type, images=rasterize_pdf(data))
