from .common import CASE_EXPORT_TITLE, EXPORT_HEADERS, document_export_title, export_rows
from .csv_render import generate_csv
from .docx_render import generate_docx
from .pdf_render import generate_pdf

__all__ = [
    "CASE_EXPORT_TITLE",
    "EXPORT_HEADERS",
    "document_export_title",
    "export_rows",
    "generate_csv",
    "generate_docx",
    "generate_pdf",
]
