"""
PII Anonymizer

A Python library for anonymizing PII (Personally Identifiable Information) in
text before sending it to LLM APIs, then restoring the original values in the
model's replies, including replies streamed in arbitrary chunks.
"""

from .anonymizer import Anonymizer
from .deanonymizer import deanonymize
from .detector import EntityDetector, PresidioDetector
from .llm_client import LLMClient
from .mapper import TokenMapper
from .models import AnonymizationResult, DeanonymizeRequest, DetectedSpan, Entity, parse_mapping
from .processor import RequestProcessor
from .resolver import SpanResolver
from .streaming import StreamDeanonymizer, adeanonymize_stream, deanonymize_stream

__all__ = [
    'Anonymizer',
    'AnonymizationResult',
    'DeanonymizeRequest',
    'DetectedSpan',
    'Entity',
    'EntityDetector',
    'LLMClient',
    'PresidioDetector',
    'RequestProcessor',
    'SpanResolver',
    'StreamDeanonymizer',
    'TokenMapper',
    'adeanonymize_stream',
    'deanonymize',
    'deanonymize_stream',
    'parse_mapping',
]
