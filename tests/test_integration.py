"""
Integration tests against real Presidio models and the real OpenAI API.

The Presidio tests need the spaCy model ``en_core_web_lg``; the OpenAI tests
need a valid OPENAI_API_KEY environment variable. They are skipped otherwise.
"""

import importlib.util
import os

import pytest

from pii_anonymizer.anonymizer import Anonymizer
from pii_anonymizer.deanonymizer import deanonymize
from pii_anonymizer.detector import PresidioDetector
from pii_anonymizer.llm_client import LLMClient
from pii_anonymizer.processor import RequestProcessor

requires_spacy_model = pytest.mark.skipif(
    importlib.util.find_spec("en_core_web_lg") is None,
    reason="spaCy model en_core_web_lg not installed - skipping Presidio tests"
)

requires_openai = pytest.mark.skipif(
    not os.getenv("OPENAI_API_KEY"),
    reason="OPENAI_API_KEY not set - skipping integration tests"
)


@requires_spacy_model
def test_presidio_anonymize_email_and_phone():
    """Test pattern-based entities with the real analyzer."""
    anonymizer = Anonymizer(PresidioDetector())
    text = "Contact me at john.doe@example.com or call 555-123-4567"

    result = anonymizer.anonymize(text)

    assert "john.doe@example.com" not in result.anonymized_text
    assert "[EMAIL_ADDRESS]" in result.anonymized_text
    assert deanonymize(result.anonymized_text, result.mapping) == text


@requires_spacy_model
def test_presidio_anonymize_two_people():
    """Test that two detected names get distinct tokens."""
    anonymizer = Anonymizer(PresidioDetector(entities=["PERSON"]))
    text = "James Bond met Vesper Lynd in Montenegro."

    result = anonymizer.anonymize(text)

    person_tokens = {e.anonymized for e in result.mapping}
    assert len(person_tokens) == len({e.original for e in result.mapping})
    assert deanonymize(result.anonymized_text, result.mapping) == text


@requires_openai
def test_llm_client_preserves_placeholders_real():
    """Test that placeholders survive a real OpenAI round trip."""
    client = LLMClient(api_key=os.getenv("OPENAI_API_KEY"), model="gpt-4o-mini")

    response = client.complete("Please confirm you will send the document to [EMAIL_ADDRESS]")

    assert "[EMAIL_ADDRESS]" in response
    print(f"\nPlaceholder preservation test response: {response}")


@requires_openai
@requires_spacy_model
def test_full_streaming_pipeline_real():
    """Test the streaming pipeline with the real API."""
    processor = RequestProcessor(api_key=os.getenv("OPENAI_API_KEY"))

    items = list(processor.process_request_stream(
        "My email is john.doe@example.com. Repeat my email address back to me."
    ))

    final = [item for item in items if item['type'] == 'final'][0]
    streamed = "".join(item['content'] for item in items if item['type'] == 'chunk')
    assert streamed == final['final_response']
    assert "[EMAIL_ADDRESS]" not in final['final_response']
    print(f"\nStreamed response: {streamed}")
