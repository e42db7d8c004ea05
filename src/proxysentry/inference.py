"""Language model call boundary.

The analysis pipeline only sees ModelClient: one request in, one free-text
reply out, ModelCallError on any failure. Provider details stay here.
"""

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import partial

import anyio
import requests

from .errors import ModelCallError
from .utils import get_bool_env, get_float_env, get_int_env, get_str_env


logger = logging.getLogger(__name__)

DEFAULT_API_BASE = 'https://api.openai.com/v1'
DEFAULT_MODEL = 'gpt-4'
DEFAULT_TEMPERATURE = 0.3
DEFAULT_MAX_TOKENS = 2000
DEFAULT_TIMEOUT_SECONDS = 60.0


@dataclass(frozen=True)
class ModelRequest:
    """A single chat request: system framing plus user instruction."""

    system: str
    user: str
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS


class ModelClient(ABC):
    """Base class for language model backends."""

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    async def complete(self, request: ModelRequest) -> str:
        """Send the request and return the reply text.

        Raises:
            ModelCallError: On transport, auth, rate-limit or empty replies.
        """
        pass


class DisabledModelClient(ModelClient):
    """Client used when AI analysis is switched off; every call fails."""

    async def complete(self, request: ModelRequest) -> str:
        raise ModelCallError('AI analysis is disabled')


class OpenAIChatClient(ModelClient):
    """OpenAI-compatible chat completions endpoint over HTTP."""

    def __init__(
        self,
        api_key: str | None,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_API_BASE,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

    @property
    def name(self) -> str:
        return f'openai:{self.model}'

    async def complete(self, request: ModelRequest) -> str:
        if not self.api_key:
            raise ModelCallError('No API key configured (set PROXYSENTRY_API_KEY or OPENAI_API_KEY)')
        # requests is blocking; keep the event loop free and let timeouts abandon the thread
        return await anyio.to_thread.run_sync(partial(self._post, request), abandon_on_cancel=True)

    def _post(self, request: ModelRequest) -> str:
        payload = {
            'model': self.model,
            'messages': [
                {'role': 'system', 'content': request.system},
                {'role': 'user', 'content': request.user},
            ],
            'temperature': request.temperature,
            'max_tokens': request.max_tokens,
        }
        headers = {'Authorization': f'Bearer {self.api_key}', 'Content-Type': 'application/json'}

        try:
            response = requests.post(
                f'{self.base_url}/chat/completions', json=payload, headers=headers, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise ModelCallError(f'Model request failed: {e}') from e

        if response.status_code != 200:
            raise ModelCallError(f'Model endpoint returned HTTP {response.status_code}: {response.text[:200]}')

        try:
            content = response.json()['choices'][0]['message']['content']
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ModelCallError(f'Unexpected model response shape: {e}') from e

        if not isinstance(content, str) or not content.strip():
            raise ModelCallError('Model returned an empty reply')

        logger.debug(f'Model reply: {len(content)} characters')
        return content


def model_timeout_from_env() -> float:
    return get_float_env('PROXYSENTRY_MODEL_TIMEOUT', DEFAULT_TIMEOUT_SECONDS)


def max_tokens_from_env() -> int:
    return get_int_env('PROXYSENTRY_MAX_TOKENS', DEFAULT_MAX_TOKENS)


def client_from_env() -> ModelClient:
    """Build the model client described by PROXYSENTRY_* environment variables."""
    if not get_bool_env('PROXYSENTRY_AI_ENABLED', True):
        return DisabledModelClient()

    api_key = os.getenv('PROXYSENTRY_API_KEY') or os.getenv('OPENAI_API_KEY')
    return OpenAIChatClient(
        api_key=api_key,
        model=get_str_env('PROXYSENTRY_MODEL', DEFAULT_MODEL),
        base_url=get_str_env('PROXYSENTRY_API_BASE', DEFAULT_API_BASE),
        timeout=model_timeout_from_env(),
    )
