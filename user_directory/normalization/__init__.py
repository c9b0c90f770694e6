# ==============================================
# NORMALIZATION
# ==============================================
#
# This package turns raw directory payload records into
# canonical User objects BEFORE they reach the record store.
#
# Modules:
# --------
# - record_parser.py → Validate required nested fields, apply
#                      defaulting rules, normalize name casing
#
# ==============================================

from .record_parser import (
    RecordParser,
    ParseResult,
    ParseError,
    ParseErrorKind,
    capitalize_first,
)

__all__ = ["RecordParser", "ParseResult", "ParseError", "ParseErrorKind", "capitalize_first"]
