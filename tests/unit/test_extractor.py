"""Unit tests for DocumentExtractor and file-type detection."""

from __future__ import annotations

import io
import json

import fitz
import pytest
from docx import Document

from voxpipe.services.ingestion.extractor import DocumentExtractor, detect_file_type
from voxpipe.utils.errors import ExtractionError, MalformedInputError


def _make_docx(paragraphs: list[str], table: list[list[str]] | None = None) -> bytes:
    document = Document()
    for text in paragraphs:
        document.add_paragraph(text)
    if table:
        grid = document.add_table(rows=len(table), cols=len(table[0]))
        for r, row in enumerate(table):
            for c, value in enumerate(row):
                grid.cell(r, c).text = value
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def _make_pdf(pages: list[str]) -> bytes:
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


class TestDetectFileType:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("notes.txt", "txt"),
            ("README.MD", "md"),
            ("report.PDF", "pdf"),
            ("application/json", "json"),
            ("text/plain; charset=utf-8", "txt"),
            ("application/vnd.openxmlformats-officedocument.wordprocessingml.document", "docx"),
            ("archive.tar.gz", "gz"),
            ("no_extension", "unknown"),
            ("", "unknown"),
        ],
    )
    def test_detection(self, value: str, expected: str) -> None:
        assert detect_file_type(value) == expected


class TestPlainFormats:
    def test_text_is_decoded_verbatim(self) -> None:
        extractor = DocumentExtractor()
        assert extractor.extract("héllo\nworld".encode("utf-8"), "a.txt") == "héllo\nworld"

    def test_csv_and_markdown_decoded(self) -> None:
        extractor = DocumentExtractor()
        assert extractor.extract(b"a,b\n1,2", "data.csv") == "a,b\n1,2"
        assert extractor.extract(b"# Title", "doc.md") == "# Title"

    def test_unknown_type_falls_back_to_text(self) -> None:
        assert DocumentExtractor().extract(b"raw bytes", "blob.xyz") == "raw bytes"

    def test_invalid_utf8_is_replaced(self) -> None:
        text = DocumentExtractor().extract(b"ok \xff\xfe", "a.txt")
        assert text.startswith("ok ")
        assert "�" in text


class TestJson:
    def test_pretty_printed(self) -> None:
        text = DocumentExtractor().extract(b'{"hours":{"mon":"8-5"},"name":"Caf\xc3\xa9"}', "x.json")

        assert text == json.dumps(
            {"hours": {"mon": "8-5"}, "name": "Café"}, indent=2, ensure_ascii=False
        )

    def test_malformed_json_raises(self) -> None:
        with pytest.raises(MalformedInputError) as exc_info:
            DocumentExtractor().extract(b'{"broken": ', "x.json")

        assert exc_info.value.file_type == "json"
        assert isinstance(exc_info.value, ExtractionError)

    def test_json_selected_by_mime_type(self) -> None:
        text = DocumentExtractor().extract(b"[1,2]", "application/json")
        assert text == "[\n  1,\n  2\n]"


class TestWordDocuments:
    def test_paragraphs_and_tables(self) -> None:
        data = _make_docx(
            ["Opening hours", "Monday to Friday"],
            table=[["Day", "Hours"], ["Sat", "9-1"]],
        )

        text = DocumentExtractor().extract(data, "hours.docx")

        assert "Opening hours" in text
        assert "Monday to Friday" in text
        assert "Sat\t9-1" in text

    def test_corrupt_docx_raises_extraction_error(self) -> None:
        with pytest.raises(ExtractionError) as exc_info:
            DocumentExtractor().extract(b"not a zip file", "broken.docx")

        assert exc_info.value.file_type == "docx"
        assert exc_info.value.cause is not None


class TestPdf:
    def test_pages_extracted_with_count(self) -> None:
        data = _make_pdf(["First page text", "Second page text"])

        result = DocumentExtractor().process(data, "guide.pdf")

        assert "First page text" in result.content
        assert "Second page text" in result.content
        assert result.metadata.page_count == 2
        assert result.metadata.file_type == "pdf"

    def test_corrupt_pdf_raises_extraction_error(self) -> None:
        with pytest.raises(ExtractionError) as exc_info:
            DocumentExtractor().extract(b"this is not a pdf", "broken.pdf")

        assert exc_info.value.provider_name == "pymupdf"


class TestProcess:
    def test_metadata_counts(self) -> None:
        result = DocumentExtractor().process(b"one two three", "folder/notes.txt")

        assert result.metadata.file_name == "notes.txt"
        assert result.metadata.word_count == 3
        assert result.metadata.character_count == 13
        assert result.metadata.page_count is None

    def test_mime_used_only_without_extension(self) -> None:
        extractor = DocumentExtractor()

        by_mime = extractor.process(b'{"a":1}', "upload", mime_type="application/json")
        by_ext = extractor.process(b'{"a":1}', "upload.txt", mime_type="application/json")

        assert by_mime.metadata.file_type == "json"
        assert by_ext.metadata.file_type == "txt"
        assert by_ext.content == '{"a":1}'

    def test_supported_file_types(self) -> None:
        assert DocumentExtractor.is_supported("Manual.PDF")
        assert DocumentExtractor.is_supported("faq.json")
        assert not DocumentExtractor.is_supported("photo.png")
        assert ".docx" in DocumentExtractor.supported_file_types()
