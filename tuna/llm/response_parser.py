import logging
from typing import Dict, Any, Optional

from tuna.errors import EmptyChoicesError, MalformedResponseError
from .models import ChatResponse


class ResponseParser:
    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def parse_chat_completion(self, result: Dict[str, Any], model: str) -> ChatResponse:
        """
        Extract content and token usage from a chat completion payload.

        Raises:
            EmptyChoicesError: No choices or no usage block
            MalformedResponseError: Choices present but without message content
        """
        if not isinstance(result, dict):
            raise MalformedResponseError(
                f"Malformed API response: expected an object, got {type(result).__name__}"
            )

        choices = result.get('choices')
        if not choices:
            self.logger.error(
                f"API response without choices: model={model}, "
                f"response_keys={list(result.keys())}"
            )
            raise EmptyChoicesError("no response choices returned")

        usage = result.get('usage')
        if not isinstance(usage, dict):
            self.logger.error(
                f"API response without usage block: model={model}, "
                f"response_keys={list(result.keys())}"
            )
            raise EmptyChoicesError("response is missing the token usage block")

        try:
            content = choices[0]['message']['content']
        except (KeyError, IndexError, TypeError) as e:
            self.logger.error(
                f"Malformed API response (missing expected keys): "
                f"model={model}, error_type={type(e).__name__}, error={str(e)}, "
                f"full_response={result}"
            )
            raise MalformedResponseError(
                f"Malformed API response: missing '{e.args[0] if e.args else 'expected key'}'"
            ) from e

        prompt_tokens = usage.get('prompt_tokens') or 0
        completion_tokens = usage.get('completion_tokens') or 0
        model_used = result.get('model') or model

        self.logger.debug(
            f"Parsed chat completion: model={model_used}, "
            f"content_length={len(content) if content else 0}, "
            f"prompt_tokens={prompt_tokens}, completion_tokens={completion_tokens}"
        )

        return ChatResponse(
            content=content or "",
            model=model_used,
            prompt_tokens=prompt_tokens,
            output_tokens=completion_tokens,
            usage=usage,
        )
