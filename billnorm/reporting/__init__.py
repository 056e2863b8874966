"""
Reporting Module for the Bill Normalization Engine.

This module provides functionality for:
    - Excel review workbooks for resolved fields
    - JSON serialization of results
"""

from .excel_exporter import ReviewExporter
from .json_writer import save_json

__all__ = [
    'ReviewExporter',
    'save_json'
]
