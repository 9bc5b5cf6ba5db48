from abc import ABC, abstractmethod
from typing import Tuple, Optional, Dict, Any


class BaseAIClient(ABC):
    """
    Abstract base class for the language-model synthesis collaborator.

    The deep search pipeline only needs one capability from a model: turn a
    prompt into text. Implementations raise SynthesisServiceError when the
    call fails or yields no text, so callers can take their fallback path.
    """

    provider_name: str = "unknown"

    @abstractmethod
    def __init__(self, api_key: str, **kwargs):
        """
        Initialize the AI client.

        Args:
            api_key: API key for the AI service
            **kwargs: Additional model-specific parameters
        """
        self.api_key = api_key
        self.model_name = kwargs.get('model_name')

    @abstractmethod
    def get_completion(self, prompt: str, **kwargs) -> Tuple[str, Optional[Dict[str, int]]]:
        """
        Get a completion from the AI model.

        Args:
            prompt: The input prompt to send to the model
            **kwargs: Additional parameters for the API call

        Returns:
            A tuple containing:
                - The generated text response
                - A dictionary with token usage information (or None if not available)

        Raises:
            SynthesisServiceError: if the model call fails or returns no text
        """

    def is_enabled(self) -> bool:
        """Whether the client has what it needs to make calls."""
        return bool(self.api_key)

    def get_token_usage(self, response: Any) -> Optional[Dict[str, int]]:
        """
        Extract token usage information from the API response.
        Subclasses override this when the provider reports usage.
        """
        return None
