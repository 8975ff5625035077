#!/usr/bin/env python3
"""
Streaming demo for the PII anonymizer.

Sends each prompt from a CSV file to the LLM in anonymized form and prints
the deanonymized reply as it streams in.
"""

import sys

import pandas as pd

from pii_anonymizer.config import Settings, configure_logging
from pii_anonymizer.processor import RequestProcessor

settings = Settings.from_env()
configure_logging(settings.log_level)

if not settings.openai_api_key:
    print("ERROR: OPENAI_API_KEY not found in .env file")
    sys.exit(1)


def process_csv_streaming(csv_path):
    """Process CSV file with streaming output."""
    processor = RequestProcessor.from_settings(settings)

    df = pd.read_csv(csv_path)
    if 'prompt' not in df.columns:
        raise ValueError(f"CSV must contain a 'prompt' column. Found: {list(df.columns)}")

    print(f"\nProcessing {len(df)} requests from {csv_path}...\n")

    successful = 0
    failed = 0

    for idx, row in df.iterrows():
        prompt = str(row['prompt']) if pd.notna(row['prompt']) else ""

        print(f"\n{'='*80}")
        print(f"REQUEST {idx + 1}/{len(df)}")
        print(f"{'='*80}")
        print(f"\n[ORIGINAL PROMPT]: {prompt[:100]}{'...' if len(prompt) > 100 else ''}")

        if not prompt.strip():
            print("\n[ERROR]: Message is required")
            failed += 1
            continue

        has_error = False
        for item in processor.process_request_stream(prompt):
            if item['type'] == 'metadata':
                if item['mapping']:
                    print("\n[PII DETECTED & ANONYMIZED]:")
                    for entity in item['mapping']:
                        print(f"  {entity['anonymized']} <- {entity['entityType']}")
                else:
                    print("\n[INFO] No PII detected in prompt")

                print("\n[STREAMING LLM RESPONSE]:")
                print("-" * 80)

            elif item['type'] == 'chunk':
                print(item['content'], end='', flush=True)

            elif item['type'] == 'final':
                print("\n" + "-" * 80)

            elif item['type'] == 'error':
                print(f"\n[ERROR]: {item['error']}")
                has_error = True

        if has_error:
            failed += 1
        else:
            successful += 1

    print(f"\n{'='*80}")
    print("SUMMARY")
    print(f"{'='*80}")
    print(f"Total requests: {len(df)}")
    print(f"Successful: {successful}")
    print(f"Failed: {failed}")


if __name__ == "__main__":
    csv_path = sys.argv[1] if len(sys.argv) > 1 else "data/requests.csv"
    process_csv_streaming(csv_path)
