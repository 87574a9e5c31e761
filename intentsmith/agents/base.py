"""
Base agent abstraction.

Provides the Agent interface with typed inputs/outputs, bounded retries on
transient endpoint failures, output validation, and LLM provider abstraction
over OpenAI-compatible and Anthropic chat endpoints.
"""

from __future__ import annotations

import hashlib
import json
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

import anthropic
import openai
from pydantic import BaseModel, Field, ValidationError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..core.config import LLMConfig
from ..core.exceptions import InferenceError, InferenceNetworkError, InferenceSchemaError
from ..core.logging import get_logger

logger = get_logger(__name__)

InputT = TypeVar("InputT", bound=BaseModel)
OutputT = TypeVar("OutputT", bound=BaseModel)

# Local OpenAI-compatible servers accept any key, but the SDK insists on one
_PLACEHOLDER_KEY = "not-needed"

_TRANSIENT_ERRORS = (
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
    anthropic.APIConnectionError,
    anthropic.RateLimitError,
    anthropic.InternalServerError,
)
_STATUS_ERRORS = (openai.APIStatusError, anthropic.APIStatusError)

_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


class AgentResponse(BaseModel, Generic[OutputT]):
    """Response from a successful agent invocation."""

    output: OutputT
    prompt_tokens: int = Field(default=0)
    completion_tokens: int = Field(default=0)
    latency_ms: float = Field(default=0.0)
    attempts: int = Field(default=1)
    model_used: str = Field(default="")
    prompt_hash: str = Field(default="")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class PromptTemplate:
    """A versioned prompt template."""

    template_id: str
    version: str
    system_prompt: str
    user_prompt_template: str
    output_format_instructions: str = ""
    examples: list[dict[str, str]] = field(default_factory=list)

    def render_system(self) -> str:
        """Render the system prompt, with any worked examples appended."""
        if not self.examples:
            return self.system_prompt
        shots = "\n\n".join(f"Input:\n{ex['input']}\nOutput:\n{ex['output']}" for ex in self.examples)
        return f"{self.system_prompt}\n\nExamples:\n\n{shots}"

    def render_user(self, **kwargs: Any) -> str:
        """Render the user prompt with variables.

        Args:
            **kwargs: Template variables to substitute in the user prompt.

        Returns:
            str: The rendered user prompt with output format instructions appended
                if available.
        """
        prompt = self.user_prompt_template.format(**kwargs)
        if self.output_format_instructions:
            prompt += f"\n\n{self.output_format_instructions}"
        return prompt

    def get_hash(self) -> str:
        """Deterministic 16-hex-digit hash of the template, for provenance."""
        content = f"{self.template_id}:{self.version}:{self.system_prompt}:{self.user_prompt_template}"
        return hashlib.sha256(content.encode()).hexdigest()[:16]


def extract_json_object(text: str) -> str:
    """Return the JSON object embedded in a model reply.

    Chat models often wrap JSON in a fenced block or surround it with prose;
    the fenced body is preferred, then the span from the first ``{`` to the
    last ``}``.
    """
    fenced = _FENCE.search(text)
    if fenced:
        text = fenced.group(1)
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        return text.strip()
    return text[start:end + 1]


def create_client(config: LLMConfig) -> Any:
    """Build the async SDK client for the configured provider.

    SDK-level retries are disabled; retrying is done by the agent so that
    attempts are bounded by ``LLMConfig.max_retries`` alone.
    """
    api_key = config.api_key.get_secret_value() if config.api_key else _PLACEHOLDER_KEY
    if config.provider == "anthropic":
        return anthropic.AsyncAnthropic(
            api_key=api_key,
            base_url=config.base_url,
            timeout=config.request_timeout_seconds,
            max_retries=0,
        )
    return openai.AsyncOpenAI(
        api_key=api_key,
        base_url=config.base_url,
        timeout=config.request_timeout_seconds,
        max_retries=0,
    )


class Agent(ABC, Generic[InputT, OutputT]):
    """Base class for intentsmith agents.

    Agents are stateless, typed wrappers around a single chat completion:
    render prompt, call the endpoint (retrying transient failures), locate and
    validate the JSON reply. Failures surface as InferenceError subclasses;
    recovering from them is the caller's decision.
    """

    def __init__(self, config: LLMConfig, client: Any = None) -> None:
        self.config = config
        self._client = client
        self.retry_wait = wait_exponential(multiplier=1, min=1, max=10)

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique agent name."""
        ...

    @property
    @abstractmethod
    def output_type(self) -> type[OutputT]:
        """Pydantic model the reply must validate against."""
        ...

    @abstractmethod
    def get_prompt_template(self) -> PromptTemplate:
        """Get the prompt template for this agent."""
        ...

    @abstractmethod
    def prepare_input(self, input_data: InputT) -> dict[str, Any]:
        """Transform the typed input into prompt template variables.

        Args:
            input_data: The validated input data.

        Returns:
            dict[str, Any]: Template variables for ``render_user``.
        """
        ...

    def subject(self, input_data: InputT) -> str:
        """Label used in logs and errors for one invocation."""
        return self.name

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = create_client(self.config)
        return self._client

    async def _call_llm(self, system_prompt: str, user_prompt: str, subject: str) -> tuple[str, dict[str, int]]:
        """Send one chat request and return the reply text and token counts.

        Raises:
            InferenceNetworkError: On connection failures, timeouts, rate
                limiting and 5xx replies.
            InferenceError: On any other rejected request.
        """
        client = self._get_client()
        logger.debug(
            "LLM request starting",
            provider=self.config.provider,
            model=self.config.model,
            component=subject,
            system_prompt_chars=len(system_prompt),
            user_prompt_chars=len(user_prompt),
        )

        try:
            if self.config.provider == "anthropic":
                response = await client.messages.create(
                    model=self.config.model,
                    max_tokens=self.config.max_tokens,
                    temperature=min(self.config.temperature, 1.0),
                    system=system_prompt,
                    messages=[{"role": "user", "content": user_prompt}],
                )
                text = "".join(getattr(block, "text", "") for block in response.content or [])
                usage = response.usage
                counts = {
                    "prompt_tokens": usage.input_tokens if usage else 0,
                    "completion_tokens": usage.output_tokens if usage else 0,
                }
            else:
                response = await client.chat.completions.create(
                    model=self.config.model,
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": user_prompt},
                    ],
                    temperature=self.config.temperature,
                    max_tokens=self.config.max_tokens,
                )
                text = (response.choices[0].message.content or "") if response.choices else ""
                usage = response.usage
                counts = {
                    "prompt_tokens": usage.prompt_tokens if usage else 0,
                    "completion_tokens": usage.completion_tokens if usage else 0,
                }
        except _TRANSIENT_ERRORS as e:
            raise InferenceNetworkError(
                message=f"{type(e).__name__}: {e}",
                component=subject,
                cause=e,
            ) from e
        except _STATUS_ERRORS as e:
            raise InferenceError(
                message=f"endpoint rejected request ({e.status_code}): {e}",
                component=subject,
                context={"status_code": e.status_code},
                cause=e,
            ) from e

        logger.debug(
            "LLM response received",
            component=subject,
            prompt_tokens=counts["prompt_tokens"],
            completion_tokens=counts["completion_tokens"],
            response_chars=len(text),
        )
        return text, counts

    def _parse_output(self, response_text: str, subject: str) -> OutputT:
        """Locate the JSON object in the reply and validate it.

        Raises:
            InferenceSchemaError: If no JSON object is found or it does not
                match the output type.
        """
        try:
            data = json.loads(extract_json_object(response_text))
            return self.output_type.model_validate(data)
        except json.JSONDecodeError as e:
            raise InferenceSchemaError(
                message=f"reply is not JSON: {e}",
                component=subject,
                raw_reply=response_text[:2000],
                cause=e,
            ) from e
        except ValidationError as e:
            raise InferenceSchemaError(
                message=f"reply does not match schema: {e.error_count()} error(s)",
                component=subject,
                raw_reply=response_text[:2000],
                cause=e,
            ) from e

    async def _invoke_with_retry(
        self, system_prompt: str, user_prompt: str, subject: str
    ) -> tuple[str, dict[str, int], int]:
        """Call the endpoint, retrying only transient failures."""
        attempts = 0
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.config.max_retries),
            wait=self.retry_wait,
            retry=retry_if_exception_type(InferenceNetworkError),
            reraise=True,
        ):
            with attempt:
                attempts = attempt.retry_state.attempt_number
                if attempts > 1:
                    logger.info("Retrying LLM request", component=subject, attempt=attempts)
                text, counts = await self._call_llm(system_prompt, user_prompt, subject)
        return text, counts, attempts

    async def invoke(self, input_data: InputT) -> AgentResponse[OutputT]:
        """Invoke the agent with the given input.

        Args:
            input_data: Validated input data.

        Returns:
            AgentResponse[OutputT]: The validated output with usage metrics.

        Raises:
            InferenceNetworkError: When every attempt failed transiently.
            InferenceSchemaError: When the reply could not be validated.
            InferenceError: When the endpoint rejected the request.
        """
        start_time = time.perf_counter()
        template = self.get_prompt_template()
        subject = self.subject(input_data)

        system_prompt = template.render_system()
        user_prompt = template.render_user(**self.prepare_input(input_data))

        text, counts, attempts = await self._invoke_with_retry(system_prompt, user_prompt, subject)
        output = self._parse_output(text, subject)

        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "Agent invocation completed",
            agent=self.name,
            component=subject,
            latency_ms=round(latency_ms, 1),
            attempts=attempts,
        )
        return AgentResponse(
            output=output,
            prompt_tokens=counts["prompt_tokens"],
            completion_tokens=counts["completion_tokens"],
            latency_ms=latency_ms,
            attempts=attempts,
            model_used=self.config.model or "",
            prompt_hash=template.get_hash(),
        )


async def list_models(config: LLMConfig, client: Any = None) -> list[str]:
    """List model identifiers advertised by the endpoint (``GET /models``).

    Raises:
        InferenceNetworkError: If the endpoint cannot be reached.
        InferenceError: If the endpoint rejects the request.
    """
    client = client or create_client(config)
    try:
        return sorted([model.id async for model in client.models.list()])
    except _TRANSIENT_ERRORS as e:
        raise InferenceNetworkError(message=f"{type(e).__name__}: {e}", cause=e) from e
    except _STATUS_ERRORS as e:
        raise InferenceError(
            message=f"model listing rejected ({e.status_code}): {e}",
            context={"status_code": e.status_code},
            cause=e,
        ) from e
