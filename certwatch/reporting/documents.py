"""
Certification document preparation.

A document is produced by taking a named HTML template, replacing its
``{{Placeholder}}`` tokens with patient values and exporting the result to
PDF with WeasyPrint. Each document is prepared independently: one failing
template is logged and skipped while the others are still produced.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from django.utils.html import escape
from django.utils.text import get_valid_filename
from weasyprint import HTML

from certwatch.core.config import ReportConfig
from certwatch.core.exceptions import DocumentPreparationError

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "certwatch" / "documents"

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([A-Za-z0-9_]+)\s*\}\}")

PDF_MIMETYPE = "application/pdf"


@dataclass
class PreparedDocument:
    """A rendered PDF ready to attach to an email."""

    key: str
    name: str
    filename: str
    content: bytes
    path: Optional[Path] = None

    def as_attachment(self):
        return (self.filename, self.content, PDF_MIMETYPE)


def fill_placeholders(template_text: str, values: Mapping[str, str]) -> str:
    """
    Replace ``{{Name}}`` tokens with HTML-escaped values.

    Empty values render as N/A. Tokens with no matching value are left
    untouched so a typo in a template shows up in the output instead of
    silently disappearing.
    """
    def substitute(match):
        key = match.group(1)
        if key not in values:
            return match.group(0)
        value = values[key]
        if value is None or value == "":
            return "N/A"
        return escape(str(value))

    return PLACEHOLDER_PATTERN.sub(substitute, template_text)


def resolve_template_path(config: ReportConfig, document_key: str) -> Path:
    template_dir = config.template_dir or DEFAULT_TEMPLATE_DIR
    filename = config.document_templates.get(document_key, f"{document_key.lower()}.html")
    return Path(template_dir) / filename


def render_pdf(html_content: str, base_url: Optional[str] = None) -> bytes:
    """Render an HTML string to PDF bytes."""
    return HTML(string=html_content, base_url=base_url).write_pdf()


def prepare_document(
    config: ReportConfig,
    document_key: str,
    values: Mapping[str, str],
    label: str,
    today: date,
    reference: str = "",
) -> PreparedDocument:
    """
    Prepare one document.

    Args:
        config: report profile (template locations, output directory)
        document_key: e.g. "90DAY1"
        values: placeholder name -> value
        label: who the document is for, used in the document name
        today: batch date, used in the document name
        reference: keeps filenames unique when two patients share a name,
            e.g. the MR number

    Raises:
        DocumentPreparationError: template missing or rendering failed
    """
    template_path = resolve_template_path(config, document_key)
    try:
        template_text = template_path.read_text(encoding="utf-8")
    except OSError as e:
        raise DocumentPreparationError(document_key, f"template {template_path} unreadable: {e}")

    html_content = fill_placeholders(template_text, values)

    try:
        pdf_content = render_pdf(html_content, base_url=str(template_path))
    except Exception as e:
        # WeasyPrint raises a wide range of parser / font / IO errors
        raise DocumentPreparationError(document_key, f"PDF export failed: {e}") from e

    name = f"{document_key} - {label} - {today.strftime('%m/%d/%Y')}"
    stem = "_".join(part for part in (document_key, label, reference, today.isoformat()) if part)
    filename = get_valid_filename(stem) + ".pdf"
    document = PreparedDocument(
        key=document_key, name=name, filename=filename, content=pdf_content
    )

    if config.output_dir:
        try:
            output_dir = Path(config.output_dir)
            output_dir.mkdir(parents=True, exist_ok=True)
            document.path = output_dir / filename
            document.path.write_bytes(pdf_content)
        except OSError as e:
            # the path carries the patient name, so only the OS reason is kept
            raise DocumentPreparationError(
                document_key, f"could not save PDF to output directory: {e.strerror}"
            ) from e

    return document


def prepare_documents(
    config: ReportConfig,
    document_keys: Sequence[str],
    values: Mapping[str, str],
    label: str,
    today: date,
    reference: str = "",
) -> Dict[str, List]:
    """
    Prepare several documents, isolating failures per document.

    Returns:
        dict with "documents" (PreparedDocument list) and "errors"
        (DocumentPreparationError list)
    """
    prepared = []
    errors = []
    for document_key in document_keys:
        try:
            document = prepare_document(config, document_key, values, label, today, reference)
        except DocumentPreparationError as e:
            logger.error(f"Error preparing document: {e}")
            errors.append(e)
            continue
        logger.info(f"Prepared document {document.key}")
        prepared.append(document)
    return {"documents": prepared, "errors": errors}
