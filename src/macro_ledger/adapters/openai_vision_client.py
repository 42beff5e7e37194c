"""OpenAI Chat Completions client for meal analysis."""

from dataclasses import dataclass

import httpx
from openai import APIConnectionError, APIError, APIStatusError, AsyncOpenAI

from macro_ledger.domain.errors import DecodeError, HttpError, MissingCredentialError
from macro_ledger.services.vision import VisionClient

_PLACEHOLDER_KEYS = {"", "apikey"}


@dataclass
class OpenAIVisionClient(VisionClient):
    """Vision client backed by OpenAI Chat Completions with image input."""

    client: AsyncOpenAI | None

    @classmethod
    def create(
        cls, api_key: str | None, timeout_seconds: float = 60.0
    ) -> "OpenAIVisionClient":
        """Create an OpenAI vision client; no key leaves it unconfigured."""
        if api_key is None or api_key.strip() in _PLACEHOLDER_KEYS:
            return cls(client=None)
        return cls(
            client=AsyncOpenAI(
                api_key=api_key, timeout=httpx.Timeout(timeout_seconds)
            )
        )

    async def complete(  # noqa: PLR0913
        self,
        *,
        model: str,
        temperature: float,
        max_tokens: int,
        system_prompt: str,
        user_prompt: str,
        image_data_url: str,
    ) -> str | None:
        """Send the photo with prompts and return the reply content."""
        if self.client is None:
            raise MissingCredentialError()
        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": user_prompt},
                            {"type": "image_url", "image_url": {"url": image_data_url}},
                        ],
                    },
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except APIStatusError as exc:
            raise HttpError(status=exc.status_code, body=exc.response.text) from exc
        except APIConnectionError as exc:
            raise HttpError(status=0, body=str(exc)) from exc
        except APIError as exc:
            raise DecodeError(str(exc)) from exc
        if not response.choices:
            return None
        return response.choices[0].message.content

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        if self.client is not None:
            await self.client.close()
