"""
Command-line entry point.

    pii-anonymizer anonymize "My name is James Bond"
    pii-anonymizer deanonymize "Hello [PERSON]" --mapping entities.json
    pii-anonymizer chat "My email is james.bond@007.com, write me a haiku" --stream
    pii-anonymizer batch data/requests.csv --output results.csv
"""

import argparse
import json
import sys

from pii_anonymizer.anonymizer import Anonymizer
from pii_anonymizer.config import Settings, configure_logging
from pii_anonymizer.deanonymizer import deanonymize
from pii_anonymizer.detector import PresidioDetector
from pii_anonymizer.exceptions import PIIAnonymizerError
from pii_anonymizer.models import DeanonymizeRequest
from pii_anonymizer.processor import RequestProcessor
from pii_anonymizer.resolver import SpanResolver


def build_parser():
    parser = argparse.ArgumentParser(
        prog="pii-anonymizer",
        description="Anonymize text before it reaches an LLM and restore PII in the reply.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    anonymize_parser = subparsers.add_parser("anonymize", help="Replace PII in text with tokens")
    anonymize_parser.add_argument("text")

    deanonymize_parser = subparsers.add_parser("deanonymize", help="Restore PII from a mapping")
    deanonymize_parser.add_argument("text")
    deanonymize_parser.add_argument(
        "--mapping", required=True,
        help="JSON file holding the 'entities' list (or the full anonymize output)",
    )

    chat_parser = subparsers.add_parser("chat", help="Send an anonymized message to the LLM")
    chat_parser.add_argument("message")
    chat_parser.add_argument("--stream", action="store_true", help="Stream the reply")

    batch_parser = subparsers.add_parser("batch", help="Process a CSV file of prompts")
    batch_parser.add_argument("csv_path")
    batch_parser.add_argument("--output", help="Write results to this CSV file")

    return parser


def _anonymizer(settings):
    detector = PresidioDetector(
        entities=settings.entities,
        language=settings.language,
        score_threshold=settings.score_threshold,
    )
    return Anonymizer(
        detector,
        resolver=SpanResolver(settings.type_priority),
        max_text_length=settings.max_text_length,
    )


def _load_request(text, mapping_path):
    with open(mapping_path, encoding="utf-8") as f:
        payload = json.load(f)
    if isinstance(payload, dict):
        payload = payload.get("entities", [])
    return DeanonymizeRequest.parse({"text": text, "entities": payload})


def _chat(processor, message, stream):
    if not stream:
        result = processor.process_request(message)
        if result['error']:
            print(f"[ERROR]: {result['error']}", file=sys.stderr)
            return 1
        print(result['final_response'])
        return 0

    for item in processor.process_request_stream(message):
        if item['type'] == 'chunk':
            print(item['content'], end='', flush=True)
        elif item['type'] == 'final':
            print()
        elif item['type'] == 'error':
            print(f"\n[ERROR]: {item['error']}", file=sys.stderr)
            return 1
    return 0


def main(argv=None):
    args = build_parser().parse_args(argv)
    settings = Settings.from_env()
    configure_logging(settings.log_level)

    try:
        if args.command == "anonymize":
            result = _anonymizer(settings).anonymize(args.text)
            print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
            return 0

        if args.command == "deanonymize":
            request = _load_request(args.text, args.mapping)
            print(deanonymize(request.text, request.entities))
            return 0

        if not settings.openai_api_key:
            print("ERROR: OPENAI_API_KEY not found in environment or .env file", file=sys.stderr)
            return 1

        processor = RequestProcessor.from_settings(settings)
        if args.command == "chat":
            return _chat(processor, args.message, args.stream)

        results = processor.process_csv(args.csv_path, output_path=args.output)
        return 0 if all(r['error'] is None for r in results) else 1

    except (PIIAnonymizerError, ValueError, OSError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
