"""OpenAI API integration for MindMesh.

This module wraps chat completions for the coaching, brain dump, workload,
insight and reminder handlers. Callers decide on fallbacks: a provider failure
raises `AIUnavailableError`, an unparseable reply yields None from
`parse_json_reply`.
"""

import os
import json
import logging
from typing import Any, Dict, Optional
from openai import OpenAI, APIError
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# gpt-4o-mini is the cheapest model that reliably returns JSON for these prompts
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

SYSTEM_PROMPT = (
    "You are MindMesh, a gentle, encouraging assistant for neurodivergent people. "
    "Respond only with valid JSON."
)


class AIUnavailableError(Exception):
    """Raised when the completion could not be obtained from the provider."""


def parse_json_reply(content: Optional[str]) -> Optional[Dict[str, Any]]:
    """Parse a JSON object from a model reply, tolerating markdown code fences.

    Returns:
        Parsed dict, or None if the reply is empty, not JSON, or not an object
    """
    if not content:
        return None
    text = content.strip()
    if text.startswith("```json"):
        text = text[7:]
    if text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    text = text.strip()

    try:
        result = json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse OpenAI JSON response: {e}. Response: {text[:100]}")
        return None
    if not isinstance(result, dict):
        logger.warning("OpenAI JSON response was not an object")
        return None
    return result


class OpenAIClient:
    """Client for OpenAI API integration."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key. If None, reads from OPENAI_API_KEY environment variable.
            model: Chat model name. If None, uses OPENAI_MODEL.

        Note:
            Without a key the client still initializes; every call raises
            AIUnavailableError so handlers fall back gracefully.
        """
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self.model = model or OPENAI_MODEL
        self.client = None

        if self.api_key:
            self.client = OpenAI(api_key=self.api_key)
        else:
            logger.warning("OPENAI_API_KEY not found in environment. AI features will use fallbacks.")

    @property
    def available(self) -> bool:
        return self.client is not None

    def complete(self, prompt: str, temperature: float = 0.7, max_tokens: int = 2048) -> str:
        """Run one chat completion and return the raw reply text.

        Raises:
            AIUnavailableError: If the client is not configured or the call fails
        """
        if not self.client:
            raise AIUnavailableError("OpenAI client not initialized")

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
            content = response.choices[0].message.content
        except APIError as e:
            error_code = getattr(e, 'code', None)
            status_code = getattr(e, 'status_code', None)

            if error_code == 'insufficient_quota':
                logger.warning("OpenAI API quota insufficient. Please check billing/payment method in OpenAI dashboard.")
            elif status_code == 429:
                logger.warning("OpenAI API rate limit exceeded. Please wait before retrying.")
            else:
                logger.error(f"OpenAI API error: {status_code or 'unknown'} ({error_code or 'unknown'})")
            # Full message may contain request details; do not log it.
            raise AIUnavailableError(f"OpenAI API error: {status_code or 'unknown'}") from e
        except Exception as e:
            logger.error(f"Error calling OpenAI API: {type(e).__name__}")
            raise AIUnavailableError(f"Error calling OpenAI API: {type(e).__name__}") from e

        if not content or not content.strip():
            logger.warning("OpenAI returned an empty completion")
            return ""
        return content.strip()

    def complete_json(self, prompt: str, temperature: float = 0.7, max_tokens: int = 2048) -> Optional[Dict[str, Any]]:
        """Run a completion and parse the JSON object in the reply.

        Returns:
            Parsed dict, or None if the reply could not be parsed

        Raises:
            AIUnavailableError: If the provider call itself failed
        """
        return parse_json_reply(self.complete(prompt, temperature=temperature, max_tokens=max_tokens))
