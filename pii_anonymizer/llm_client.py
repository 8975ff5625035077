import logging

import openai
from openai import OpenAI

from pii_anonymizer.exceptions import LLMServiceError

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are a virtual assistant that provides accurate, helpful and courteous "
    "answers. Respond concisely and professionally. User messages are "
    "anonymized: personal data has been replaced with placeholders such as "
    "[PERSON], [EMAIL_ADDRESS] or [PHONE_NUMBER_1]. Work with the placeholders "
    "as if they were the real values, and whenever your answer refers to one, "
    "repeat the placeholder exactly as written, brackets included."
)


def classify_error(error):
    """
    Map an exception raised by the OpenAI client to an error kind.

    Returns:
        tuple: (kind, status_code) where kind is one of "authentication",
               "rate_limit", "unavailable", "upstream" or "unknown".
    """
    status_code = getattr(error, 'status_code', None)

    if isinstance(error, openai.AuthenticationError) or status_code == 401:
        return "authentication", status_code
    if isinstance(error, openai.RateLimitError) or status_code == 429:
        return "rate_limit", status_code
    if isinstance(error, openai.APIConnectionError):
        return "unavailable", status_code
    if status_code is not None and status_code >= 500:
        return "upstream", status_code
    return "unknown", status_code


class LLMClient:
    """
    A simple wrapper for the OpenAI chat API.

    The client only ever sees anonymized text; it is designed to pass
    placeholder tokens through to the model and back unchanged.
    """

    def __init__(self, api_key, model="gpt-4o-mini", system_prompt=DEFAULT_SYSTEM_PROMPT):
        """
        Initialize the LLM client.

        Args:
            api_key (str): OpenAI API key
            model (str): Model to use (default: "gpt-4o-mini")
            system_prompt (str): System message sent with every request
        """
        self.client = OpenAI(api_key=api_key)
        self.model = model
        self.system_prompt = system_prompt

    def _messages(self, user_prompt, system_prompt):
        return [
            {"role": "system", "content": system_prompt or self.system_prompt},
            {"role": "user", "content": user_prompt},
        ]

    def complete(self, user_prompt, system_prompt=None):
        """
        Send a prompt to OpenAI and get the completion text.

        Args:
            user_prompt (str): Anonymized user message
            system_prompt (str): Overrides the client's system prompt for this call

        Returns:
            str: The completion text from the LLM ("" if the model returned none)

        Raises:
            LLMServiceError: If the API call fails

        Example:
            >>> client = LLMClient(api_key="sk-...")
            >>> client.complete("Write a greeting for [PERSON]")
            'Dear [PERSON], ...'
        """
        logger.info("Requesting completion for prompt of length %d", len(user_prompt))
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=self._messages(user_prompt, system_prompt),
            )
        except Exception as e:
            kind, status_code = classify_error(e)
            logger.error("OpenAI API call failed (%s): %s", kind, e)
            raise LLMServiceError(f"OpenAI API call failed: {e}", kind, status_code) from e

        content = response.choices[0].message.content or ""
        logger.info("Got completion of length %d", len(content))
        return content

    def complete_stream(self, user_prompt, system_prompt=None):
        """
        Send a prompt to OpenAI and yield the completion as it is generated.

        Use with StreamDeanonymizer to restore PII without exposing partial
        placeholders.

        Args:
            user_prompt (str): Anonymized user message
            system_prompt (str): Overrides the client's system prompt for this call

        Yields:
            str: Non-empty content deltas, in order

        Raises:
            LLMServiceError: If the API call fails, before or during streaming
        """
        logger.info("Streaming completion for prompt of length %d", len(user_prompt))
        try:
            stream = self.client.chat.completions.create(
                model=self.model,
                messages=self._messages(user_prompt, system_prompt),
                stream=True,
            )

            for chunk in stream:
                if chunk.choices and chunk.choices[0].delta.content:
                    yield chunk.choices[0].delta.content

        except Exception as e:
            kind, status_code = classify_error(e)
            logger.error("OpenAI API streaming call failed (%s): %s", kind, e)
            raise LLMServiceError(
                f"OpenAI API streaming call failed: {e}", kind, status_code
            ) from e
