"""OpenAI Chat Completions client for meal analysis."""

from dataclasses import dataclass

from openai import APITimeoutError, AsyncOpenAI, OpenAIError

from bolus_tracker.services.analysis import (
    ModelClient,
    ModelTimeoutError,
    ModelUnavailableError,
    UserContent,
)


@dataclass
class OpenAIChatClient(ModelClient):
    """Model client backed by OpenAI chat completions."""

    client: AsyncOpenAI
    model: str
    temperature: float = 0.1

    @classmethod
    def create(
        cls,
        api_key: str,
        model: str,
        temperature: float = 0.1,
        project: str | None = None,
    ) -> "OpenAIChatClient":
        """Create an OpenAI chat client."""
        return cls(
            client=AsyncOpenAI(api_key=api_key, project=project),
            model=model,
            temperature=temperature,
        )

    async def complete(self, system_prompt: str, user_content: UserContent) -> str:
        """Send the prompt and return the answer text."""
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                temperature=self.temperature,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_content},
                ],
            )
        except APITimeoutError as exc:
            raise ModelTimeoutError(str(exc)) from exc
        except OpenAIError as exc:
            raise ModelUnavailableError(str(exc)) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ModelUnavailableError("OpenAI returned an empty response")
        return content

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.client.close()
