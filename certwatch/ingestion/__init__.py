"""
certwatch Ingestion Module

Loads patient spreadsheets and decodes rows through named schemas.
"""

from .services import (
    FieldSpec,
    RecordSchema,
    DecodeResult,
    decode_rows,
    load_rows,
)

__all__ = ['FieldSpec', 'RecordSchema', 'DecodeResult', 'decode_rows', 'load_rows']
