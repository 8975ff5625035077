import logging

import pandas as pd

from pii_anonymizer.anonymizer import Anonymizer, validate_text
from pii_anonymizer.deanonymizer import deanonymize
from pii_anonymizer.detector import PresidioDetector
from pii_anonymizer.exceptions import InputValidationError
from pii_anonymizer.llm_client import LLMClient
from pii_anonymizer.resolver import SpanResolver
from pii_anonymizer.streaming import deanonymize_stream

logger = logging.getLogger(__name__)


def _recorded(chunks, sink):
    for chunk in chunks:
        sink.append(chunk)
        yield chunk


class RequestProcessor:
    """
    Orchestrates the complete privacy-preserving chat pipeline.

    Handles:
    1. Anonymizing the user message
    2. Sending the anonymized message to the LLM
    3. Deanonymizing the reply, in one piece or as a stream
    4. Running the same pipeline over a CSV file of prompts

    Every request gets its own mapping (and stream state); nothing about a
    request is stored on the processor, so one instance can serve many
    concurrent requests.
    """

    def __init__(self, api_key, model="gpt-4o-mini", detector=None, anonymizer=None, llm_client=None):
        """
        Initialize the request processor.

        Args:
            api_key (str): OpenAI API key
            model (str): OpenAI model to use (default: gpt-4o-mini)
            detector (EntityDetector): Detector for the default Anonymizer
                                       (PresidioDetector if None)
            anonymizer (Anonymizer): Fully configured anonymizer, overrides ``detector``
            llm_client (LLMClient): Preconfigured client, overrides ``api_key``/``model``
        """
        self.anonymizer = anonymizer or Anonymizer(detector or PresidioDetector())
        self.llm_client = llm_client or LLMClient(api_key=api_key, model=model)

    @classmethod
    def from_settings(cls, settings, detector=None):
        """Build a processor from a Settings object."""
        detector = detector or PresidioDetector(
            entities=settings.entities,
            language=settings.language,
            score_threshold=settings.score_threshold,
        )
        anonymizer = Anonymizer(
            detector,
            resolver=SpanResolver(settings.type_priority),
            max_text_length=settings.max_text_length,
        )
        return cls(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            anonymizer=anonymizer,
        )

    def _validate(self, message):
        validate_text(message, self.anonymizer.max_text_length)
        if not message.strip():
            raise InputValidationError("Message is required")

    def process_request(self, message):
        """
        Process a single message through the complete pipeline.

        Args:
            message (str): User message (may contain PII)

        Returns:
            dict: Result containing all pipeline stages:
                - original: Original message
                - anonymized: Message with PII replaced by tokens
                - mapping: Entity mapping in wire shape
                - llm_response_anonymized: LLM reply (may contain tokens)
                - final_response: LLM reply with PII restored
                - error: Error message if processing failed (None on success)

        Raises:
            InputValidationError: If the message is empty or too long

        Example:
            >>> processor = RequestProcessor(api_key="sk-...")
            >>> result = processor.process_request("Email john@example.com about the trip")
            >>> print(result['final_response'])
        """
        self._validate(message)

        try:
            result = self.anonymizer.anonymize(message)
            logger.info(
                "Message %s sensitive information",
                "contains" if result.entities_found else "does not contain",
            )

            llm_response = self.llm_client.complete(result.anonymized_text)
            final_response = deanonymize(llm_response, result.mapping)

            return {
                'original': message,
                'anonymized': result.anonymized_text,
                'mapping': [entity.to_dict() for entity in result.mapping],
                'llm_response_anonymized': llm_response,
                'final_response': final_response,
                'error': None
            }

        except Exception as e:
            logger.exception("Failed to process request")
            return {
                'original': message,
                'anonymized': None,
                'mapping': None,
                'llm_response_anonymized': None,
                'final_response': None,
                'error': str(e)
            }

    def process_request_stream(self, message):
        """
        Process a single message through the streaming pipeline.

        Yields deanonymized chunks as the LLM generates its reply. Tokens split
        across chunks are held back until they complete, so a chunk never
        contains a partial placeholder.

        Args:
            message (str): User message (may contain PII)

        Yields:
            dict: Items tagged by 'type':
                - 'metadata': anonymized, mapping, entities_found
                - 'chunk': content (deanonymized text)
                - 'final': llm_response_anonymized, final_response
                - 'error': error message; no further items follow

        Raises:
            InputValidationError: If the message is empty or too long

        Example:
            >>> for item in processor.process_request_stream("Hi, I'm James Bond"):
            ...     if item['type'] == 'chunk':
            ...         print(item['content'], end='', flush=True)
        """
        self._validate(message)

        llm_stream = None
        restored = None
        try:
            result = self.anonymizer.anonymize(message)

            yield {
                'type': 'metadata',
                'original': message,
                'anonymized': result.anonymized_text,
                'mapping': [entity.to_dict() for entity in result.mapping],
                'entities_found': result.entities_found,
                'error': None
            }

            raw_chunks = []
            llm_stream = self.llm_client.complete_stream(result.anonymized_text)
            restored = deanonymize_stream(_recorded(llm_stream, raw_chunks), result.mapping)
            for safe_output in restored:
                yield {'type': 'chunk', 'content': safe_output, 'error': None}

            full_response = "".join(raw_chunks)
            yield {
                'type': 'final',
                'llm_response_anonymized': full_response,
                'final_response': deanonymize(full_response, result.mapping),
                'error': None
            }

        except Exception as e:
            logger.exception("Streaming request failed")
            yield {
                'type': 'error',
                'original': message,
                'error': str(e)
            }

        finally:
            # Stop the provider stream too when the consumer walks away early
            if restored is not None:
                restored.close()
            if llm_stream is not None:
                llm_stream.close()

    def process_csv(self, csv_path, output_path=None):
        """
        Process all prompts from a CSV file.

        CSV Format:
            prompt
            "My name is James Bond, email james.bond@007.com"

        Args:
            csv_path (str): Path to CSV file with a 'prompt' column
            output_path (str): Optional path to write one result row per prompt

        Returns:
            list: List of result dictionaries (one per prompt)

        Raises:
            ValueError: If the CSV has no 'prompt' column
        """
        df = pd.read_csv(csv_path)

        if 'prompt' not in df.columns:
            raise ValueError(
                f"CSV must contain a 'prompt' column. Found: {list(df.columns)}"
            )

        results = []
        for idx, row in df.iterrows():
            request_num = idx + 1
            prompt = str(row['prompt']) if pd.notna(row['prompt']) else ""

            print(f"\n{'='*80}")
            print(f"REQUEST {request_num}/{len(df)}")
            print(f"{'='*80}")

            try:
                result = self.process_request(prompt)
            except InputValidationError as e:
                result = {
                    'original': prompt,
                    'anonymized': None,
                    'mapping': None,
                    'llm_response_anonymized': None,
                    'final_response': None,
                    'error': str(e)
                }
            results.append(result)

            if result['error']:
                print(f"\n[ERROR]: {result['error']}")
            else:
                self._display_result(result)

        if output_path:
            pd.DataFrame([
                {
                    'prompt': r['original'],
                    'anonymized': r['anonymized'],
                    'entities': len(r['mapping'] or []),
                    'final_response': r['final_response'],
                    'error': r['error'],
                }
                for r in results
            ]).to_csv(output_path, index=False)
            logger.info("Wrote %d results to %s", len(results), output_path)

        successful = sum(1 for r in results if r['error'] is None)
        print(f"\n{'='*80}")
        print("SUMMARY")
        print(f"{'='*80}")
        print(f"Total requests: {len(results)}")
        print(f"Successful: {successful}")
        print(f"Failed: {len(results) - successful}")

        return results

    def _display_result(self, result):
        """Print one request result in a readable form."""
        print("\n[ORIGINAL MESSAGE]:")
        print(f"  {result['original'][:100]}{'...' if len(result['original']) > 100 else ''}")

        if result['mapping']:
            print("\n[PII DETECTED & ANONYMIZED]:")
            for entity in result['mapping']:
                print(f"  {entity['anonymized']} <- {entity['entityType']}")

            print("\n[ANONYMIZED MESSAGE - sent to LLM]:")
            print(f"  {result['anonymized'][:100]}{'...' if len(result['anonymized']) > 100 else ''}")
        else:
            print("\n[INFO] No PII detected in message")

        print("\n[LLM RESPONSE - with placeholders]:")
        print(result['llm_response_anonymized'])

        print("\n[FINAL RESPONSE - deanonymized]:")
        print(result['final_response'])
