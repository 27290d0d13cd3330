"""
Chat Model Client - thin wrapper over the OpenAI chat completions API
Constructed once per process and handed to every pipeline stage that calls a model
"""

import logging
from typing import Any, Dict, List, Optional, Union

import openai
from openai import AsyncOpenAI

from services.error_types import ModelCallError, ConfigurationError
from services.plan_config import ModelConfig
from services.strict_json_parser import parse_model_json

logger = logging.getLogger(__name__)

UserContent = Union[str, List[Dict[str, Any]]]


class ChatModelClient:
    """Issue chat completions and recover JSON payloads from them"""

    def __init__(self, api_key: Optional[str] = None, client: Optional[AsyncOpenAI] = None):
        if client is None:
            if not api_key or not api_key.strip():
                raise ConfigurationError("OPENAI_API_KEY environment variable not set")
            client = AsyncOpenAI(api_key=api_key)
        self.client = client

    async def complete(self, model_config: ModelConfig, system_prompt: str, user_content: UserContent) -> str:
        """
        Run one chat completion and return the raw message content

        Raises:
            ModelCallError: On any provider error or an empty completion
        """
        try:
            response = await self.client.chat.completions.create(
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_content},
                ],
                timeout=model_config.timeout_seconds,
                **model_config.get_api_params()
            )
        except openai.AuthenticationError as e:
            raise ModelCallError(f"OpenAI API authentication failed - check API key: {e}", {'model': model_config.name})
        except openai.RateLimitError as e:
            raise ModelCallError(f"OpenAI API rate limit exceeded: {e}", {'model': model_config.name})
        except openai.APITimeoutError as e:
            raise ModelCallError(f"OpenAI API call timed out after {model_config.timeout_seconds}s: {e}", {'model': model_config.name})
        except openai.APIConnectionError as e:
            raise ModelCallError(f"Network connection error calling OpenAI: {e}", {'model': model_config.name})
        except openai.APIError as e:
            raise ModelCallError(f"OpenAI API call failed: {e}", {'model': model_config.name})

        if not response.choices or not response.choices[0].message.content:
            raise ModelCallError("No response content from AI model", {'model': model_config.name})

        usage = getattr(response, "usage", None)
        if usage is not None:
            logger.debug(f"{model_config.name} used {usage.total_tokens} tokens")

        return response.choices[0].message.content

    async def complete_json(self, model_config: ModelConfig, system_prompt: str, user_content: UserContent) -> Any:
        """Run one chat completion and parse its content as JSON (strict, then fenced)"""
        content = await self.complete(model_config, system_prompt, user_content)
        return parse_model_json(content)
