import openai
from typing import Optional, Dict, Any, Tuple

from models.errors import SynthesisServiceError
from utils.logger import get_logger

from .base_client import BaseAIClient

logger = get_logger(__name__)


class OpenAIClient(BaseAIClient):
    """
    A client for the OpenAI chat completions API.
    """

    provider_name = "openai"

    def __init__(self, api_key: str, model_name: str = "gpt-4o-mini", **kwargs):
        super().__init__(api_key, **kwargs)
        if not api_key:
            raise ValueError("API key is required for OpenAI")
        self.client = openai.OpenAI(api_key=api_key)
        self.model_name = model_name

    def get_completion(self, prompt: str, **kwargs) -> Tuple[str, Optional[Dict[str, int]]]:
        """
        Get a completion from the OpenAI API.

        Args:
            prompt: The input prompt to send to the model
            **kwargs: Additional parameters for the API call
                - model: Override the default model for this call
                - temperature: Controls randomness (0.0 to 2.0)
                - max_tokens: Maximum number of tokens to generate

        Returns:
            A tuple of (response_text, usage_dict)
        """
        model = kwargs.get('model', self.model_name)
        temperature = kwargs.get('temperature', 0.4)
        max_tokens = kwargs.get('max_tokens', 1500)

        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
                max_tokens=max_tokens
            )
        except openai.RateLimitError as e:
            logger.warning(f"OpenAI rate limited: {e}", extra={"extra_fields": {"model": model}})
            raise SynthesisServiceError(f"OpenAI rate limited: {e}", provider=self.provider_name) from e
        except Exception as e:
            logger.error(
                f"OpenAI completion failed: {e}",
                extra={"extra_fields": {"model": model, "error_type": type(e).__name__}},
            )
            raise SynthesisServiceError(f"OpenAI call failed: {e}", provider=self.provider_name) from e

        text = response.choices[0].message.content if response.choices else None
        if not text:
            raise SynthesisServiceError("OpenAI returned an empty response", provider=self.provider_name)

        return text, self.get_token_usage(response)

    def get_token_usage(self, response: Any) -> Optional[Dict[str, int]]:
        usage = getattr(response, 'usage', None)
        if usage is None:
            return None
        return {
            'prompt_tokens': usage.prompt_tokens,
            'completion_tokens': usage.completion_tokens,
            'total_tokens': usage.total_tokens,
        }
