"""Conversion of uploaded file bytes into plain text.

Dispatches on file extension or MIME type:

    .txt .md .csv          decoded as UTF-8 verbatim
    .json                  parsed and re-serialized with 2-space indentation
    .docx .doc             paragraph and table text via python-docx
    .pdf                   page text and page count via PyMuPDF (fitz)
    anything else          decoded as UTF-8

Extraction is all-or-nothing: any collaborator failure is wrapped in
:class:`~voxpipe.utils.errors.ExtractionError` and no partial text is
returned.  Malformed JSON raises
:class:`~voxpipe.utils.errors.MalformedInputError` rather than falling back
to the raw text.
"""

from __future__ import annotations

import io
import json
from pathlib import PurePath

import fitz  # PyMuPDF
import structlog
from docx import Document

from voxpipe.models.rag import DocumentMetadata, ExtractedDocument
from voxpipe.utils.errors import ExtractionError, MalformedInputError

logger = structlog.get_logger(logger_name=__name__)

_TEXT_TYPES = frozenset({"txt", "md", "csv"})
_WORD_TYPES = frozenset({"docx", "doc"})

SUPPORTED_FILE_TYPES: tuple[str, ...] = (".txt", ".pdf", ".docx", ".doc", ".md", ".csv", ".json")

_MIME_TYPES: dict[str, str] = {
    "text/plain": "txt",
    "text/markdown": "md",
    "text/x-markdown": "md",
    "text/csv": "csv",
    "application/json": "json",
    "application/pdf": "pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    "application/msword": "doc",
}


def detect_file_type(name_or_mime: str) -> str:
    """Map a filename or MIME type to a normalized file type.

    Returns ``"unknown"`` when neither the MIME table nor the extension
    gives an answer.
    """
    value = (name_or_mime or "").strip().lower()
    if value in _MIME_TYPES:
        return _MIME_TYPES[value]
    mime = value.split(";", 1)[0].strip()
    if mime in _MIME_TYPES:
        return _MIME_TYPES[mime]
    suffix = PurePath(value).suffix
    if suffix:
        return suffix.lstrip(".")
    return "unknown"


class DocumentExtractor:
    """Converts heterogeneous file encodings into a single plain-text string."""

    def extract(self, data: bytes, name_or_mime: str) -> str:
        """Return the plain text of *data*.

        Raises
        ------
        MalformedInputError
            If JSON content does not parse.
        ExtractionError
            If the PDF or word-processing reader fails.
        """
        text, _ = self._extract(data, detect_file_type(name_or_mime))
        return text

    def process(
        self,
        data: bytes,
        filename: str,
        mime_type: str | None = None,
    ) -> ExtractedDocument:
        """Extract text and collect file metadata in one pass.

        The filename's extension decides the file type; *mime_type* is
        consulted only when the extension is missing.
        """
        file_type = detect_file_type(filename)
        if file_type == "unknown" and mime_type:
            file_type = detect_file_type(mime_type)
        text, page_count = self._extract(data, file_type)
        metadata = DocumentMetadata(
            file_type=file_type,
            file_name=PurePath(filename).name or filename,
            page_count=page_count,
            word_count=len(text.split()),
            character_count=len(text),
        )
        logger.info(
            "document_extracted",
            file_name=metadata.file_name,
            file_type=file_type,
            characters=metadata.character_count,
            pages=page_count,
        )
        return ExtractedDocument(content=text, metadata=metadata)

    @staticmethod
    def supported_file_types() -> list[str]:
        return list(SUPPORTED_FILE_TYPES)

    @staticmethod
    def is_supported(filename: str) -> bool:
        return PurePath(filename.lower()).suffix in SUPPORTED_FILE_TYPES

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _extract(self, data: bytes, file_type: str) -> tuple[str, int | None]:
        if file_type == "pdf":
            return self._extract_pdf(data)
        if file_type in _WORD_TYPES:
            return self._extract_word(data, file_type), None
        if file_type == "json":
            return self._extract_json(data), None
        # Plain, markdown, CSV and unknown types are all decoded verbatim.
        return self._decode(data), None

    @staticmethod
    def _decode(data: bytes) -> str:
        return data.decode("utf-8", errors="replace")

    def _extract_json(self, data: bytes) -> str:
        try:
            parsed = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise MalformedInputError(
                message=f"JSON content could not be parsed: {exc}",
                file_type="json",
                cause=exc,
            ) from exc
        return json.dumps(parsed, indent=2, ensure_ascii=False)

    @staticmethod
    def _extract_pdf(data: bytes) -> tuple[str, int]:
        try:
            with fitz.open(stream=data, filetype="pdf") as doc:
                page_count = doc.page_count
                pages = [page.get_text("text") for page in doc]
        except Exception as exc:
            raise ExtractionError(
                message=f"PDF text extraction failed: {exc}",
                file_type="pdf",
                cause=exc,
                provider_name="pymupdf",
            ) from exc
        return "\n".join(pages).strip(), page_count

    @staticmethod
    def _extract_word(data: bytes, file_type: str) -> str:
        try:
            document = Document(io.BytesIO(data))
            lines = [paragraph.text for paragraph in document.paragraphs]
            for table in document.tables:
                for row in table.rows:
                    lines.append("\t".join(cell.text for cell in row.cells))
        except Exception as exc:
            raise ExtractionError(
                message=f"Word document text extraction failed: {exc}",
                file_type=file_type,
                cause=exc,
                provider_name="python-docx",
            ) from exc
        return "\n".join(lines).strip()
