"""
Tests for format validators.
"""

import pytest
from pathlib import Path
from unittest.mock import Mock

from src.intake.models import OutcomeKind
from src.intake.validators import (
    DocValidator,
    DocxValidator,
    PDFValidator,
    ValidatorRegistry,
    create_default_registry,
    extract_doc_text,
    TOO_LARGE,
    EMPTY_DOC,
)
from src.intake.exceptions import ExtractorUnavailableError, ValidationError

from conftest import docx_bytes, pdf_bytes, zip_bytes


SIX_MIB = 6 * 1024 * 1024

FULL_DOCX_ENTRIES = [
    "[Content_Types].xml",
    "word/document.xml",
    "word/_rels/document.xml.rels",
]


class TestSizeCheck:
    """Size limit applies before any format check."""

    def test_oversize_docx_rejected_as_too_large(self):
        registry = create_default_registry()
        data = docx_bytes() + b"\0" * SIX_MIB

        outcome = registry.validate(Path("/in/big.docx"), ".docx", data)

        assert outcome.kind == OutcomeKind.REJECTED
        assert outcome.reason == TOO_LARGE

    @pytest.mark.parametrize("extension", [".pdf", ".docx", ".doc"])
    def test_oversize_rejected_regardless_of_extension(self, extension):
        registry = create_default_registry()
        outcome = registry.validate(Path(f"/in/file{extension}"), extension, b"x" * SIX_MIB)
        assert outcome.reason == TOO_LARGE

    def test_oversize_skips_format_validator(self):
        registry = ValidatorRegistry()
        validator = Mock(spec=DocxValidator)
        validator.supported_extensions.return_value = [".docx"]
        registry.register(validator)

        outcome = registry.validate(Path("/in/big.docx"), ".docx", b"x" * SIX_MIB)

        assert outcome.reason == TOO_LARGE
        validator.check.assert_not_called()

    def test_exactly_five_mib_is_not_too_large(self):
        registry = create_default_registry()
        data = zip_bytes(FULL_DOCX_ENTRIES)
        data = data + b"\0" * (5 * 1024 * 1024 - len(data))

        outcome = registry.validate(Path("/in/edge.docx"), ".docx", data)

        assert outcome.reason != TOO_LARGE

    def test_validate_file_uses_stat_size(self, tmp_path):
        big = tmp_path / "big.pdf"
        big.write_bytes(b"%PDF-1.4\n" + b"0" * SIX_MIB)

        outcome = create_default_registry().validate_file(big)

        assert outcome.reason == TOO_LARGE


class TestDocxValidator:
    """Tests for DocxValidator."""

    def test_supported_extensions(self):
        assert DocxValidator().supported_extensions() == [".docx"]

    def test_real_docx_accepted(self):
        outcome = create_default_registry().validate(Path("/in/b.docx"), ".docx", docx_bytes())
        assert outcome.is_accepted

    def test_minimal_archive_with_required_entries_accepted(self):
        outcome = create_default_registry().validate(
            Path("/in/b.docx"), ".docx", zip_bytes(FULL_DOCX_ENTRIES)
        )
        assert outcome.is_accepted

    @pytest.mark.parametrize("missing", ["word/document.xml", "word/_rels/document.xml.rels"])
    def test_missing_required_entry_rejected(self, missing):
        entries = [e for e in FULL_DOCX_ENTRIES if e != missing]

        outcome = create_default_registry().validate(Path("/in/b.docx"), ".docx", zip_bytes(entries))

        assert outcome.kind == OutcomeKind.REJECTED
        assert outcome.reason.startswith("Invalid DOCX")
        assert missing in outcome.reason

    def test_reports_first_missing_entry(self):
        validator = DocxValidator(["a.xml", "b.xml"])

        with pytest.raises(ValidationError, match="missing a.xml"):
            validator.check(Path("/in/x.docx"), zip_bytes(["other.xml"]))

    def test_not_a_zip_rejected(self):
        outcome = create_default_registry().validate(Path("/in/b.docx"), ".docx", b"plain text")

        assert outcome.kind == OutcomeKind.REJECTED
        assert outcome.reason == "Invalid DOCX: not a zip archive"


class TestPDFValidator:
    """Tests for PDFValidator."""

    def test_supported_extensions(self):
        assert PDFValidator().supported_extensions() == [".pdf"]

    def test_valid_pdf_accepted(self):
        outcome = create_default_registry().validate(Path("/in/a.pdf"), ".pdf", pdf_bytes())
        assert outcome.is_accepted

    def test_plain_text_rejected(self):
        outcome = create_default_registry().validate(
            Path("/in/c.pdf"), ".pdf", b"This is not a PDF, just some text.\n" * 20
        )

        assert outcome.kind == OutcomeKind.REJECTED
        assert outcome.reason

    def test_empty_bytes_rejected(self):
        outcome = create_default_registry().validate(Path("/in/c.pdf"), ".pdf", b"")
        assert outcome.kind == OutcomeKind.REJECTED


class TestDocValidator:
    """Tests for DocValidator."""

    def test_supported_extensions(self):
        assert DocValidator().supported_extensions() == [".doc"]

    def test_text_accepted(self):
        validator = DocValidator(extractor=lambda data: "Jane Doe\nEngineer")
        validator.check(Path("/in/r.doc"), b"binary")

    @pytest.mark.parametrize("text", ["", "   \n\t  "])
    def test_blank_text_rejected_as_empty(self, text):
        registry = create_default_registry(doc_extractor=lambda data: text)

        outcome = registry.validate(Path("/in/r.doc"), ".doc", b"binary")

        assert outcome.kind == OutcomeKind.REJECTED
        assert outcome.reason == EMPTY_DOC

    def test_extractor_exception_folded_into_rejection(self):
        def broken(data):
            raise RuntimeError("corrupt OLE header")

        registry = create_default_registry(doc_extractor=broken)
        outcome = registry.validate(Path("/in/r.doc"), ".doc", b"binary")

        assert outcome.kind == OutcomeKind.REJECTED
        assert "corrupt OLE header" in outcome.reason

    def test_extract_without_tools_raises_unavailable(self):
        with pytest.raises(ExtractorUnavailableError, match="No DOC text extractor installed"):
            extract_doc_text(b"binary", commands=("definitely-not-a-real-tool-xyz", "another-missing-tool-xyz"))

    def test_missing_tools_are_internal_error(self):
        def extractor(data):
            return extract_doc_text(data, commands=("definitely-not-a-real-tool-xyz",))

        registry = create_default_registry(doc_extractor=extractor)
        outcome = registry.validate(Path("/in/r.doc"), ".doc", b"\xd0\xcf\x11\xe0binary")

        assert outcome.kind == OutcomeKind.INTERNAL_ERROR
        assert "No DOC text extractor installed" in outcome.reason

    def test_failing_installed_tool_is_rejection(self, tmp_path):
        tool = tmp_path / "fake-antiword"
        tool.write_text("#!/bin/sh\necho \"not a Word document\" >&2\nexit 1\n")
        tool.chmod(0o755)

        with pytest.raises(ValidationError, match="Cannot read DOC: .*not a Word document"):
            extract_doc_text(b"binary", commands=("definitely-not-a-real-tool-xyz", str(tool)))


class TestValidatorRegistry:
    """Tests for ValidatorRegistry."""

    def test_create_empty_registry(self):
        registry = ValidatorRegistry()
        assert len(registry) == 0

    def test_default_registry_extensions(self):
        registry = create_default_registry()
        assert sorted(registry.supported_extensions()) == [".doc", ".docx", ".pdf"]

    def test_unsupported_extension_rejected(self):
        outcome = create_default_registry().validate(Path("/in/notes.txt"), ".txt", b"hello")

        assert outcome.kind == OutcomeKind.REJECTED
        assert "Unsupported" in outcome.reason

    def test_extension_lookup_case_insensitive(self):
        registry = create_default_registry()
        assert isinstance(registry.get_validator(".PDF"), PDFValidator)

    def test_unexpected_validator_fault_is_internal_error(self):
        registry = ValidatorRegistry()
        validator = Mock(spec=PDFValidator)
        validator.supported_extensions.return_value = [".pdf"]
        validator.check.side_effect = MemoryError("boom")
        registry.register(validator)

        outcome = registry.validate(Path("/in/a.pdf"), ".pdf", b"%PDF")

        assert outcome.kind == OutcomeKind.INTERNAL_ERROR
        assert outcome.is_internal_error
        assert "boom" in outcome.reason

    def test_validate_file_missing_is_internal_error(self, tmp_path):
        outcome = create_default_registry().validate_file(tmp_path / "gone.pdf")
        assert outcome.kind == OutcomeKind.INTERNAL_ERROR

    def test_validate_file_reads_bytes(self, tmp_path, make_pdf):
        path = make_pdf(tmp_path / "a.pdf")
        assert create_default_registry().validate_file(path).is_accepted
