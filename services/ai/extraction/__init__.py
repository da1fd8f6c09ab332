"""
Extraction Package

Rule-based name and field-value extraction from a single utterance.
"""

from services.ai.extraction.name_extractor import NameExtractor, NameMatch, extract_person_name
from services.ai.extraction.field_extractor import FieldValueExtractor, extract_field_values

__all__ = [
    'NameExtractor',
    'NameMatch',
    'extract_person_name',
    'FieldValueExtractor',
    'extract_field_values',
]
