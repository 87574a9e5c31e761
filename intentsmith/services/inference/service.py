"""
Parameter Inference Service.

Wraps the intent-parameter agent for the pipeline: one independent request
per component, transient failures retried by the agent, and every failure
degraded to an empty extras list plus a component warning. Inference never
fails a run.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol

from ...agents.intent_parameters import IntentParameterAgent, IntentParameterInput
from ...core.config import LLMConfig
from ...core.exceptions import InferenceError, InferenceNetworkError
from ...core.logging import get_logger
from ...core.types import RunWarning, ServiceResult, WarningScope
from ...models.command import ExtraParameter
from ...models.manifest import ComponentRecord, IntentFilter

logger = get_logger(__name__)


class ParameterInference(Protocol):
    """Anything that can propose extras for a component."""

    async def infer(
        self,
        component: ComponentRecord,
        intent_filter: IntentFilter | None = None,
        source_text: str | None = None,
        hints: Sequence[str] = (),
    ) -> ServiceResult[list[ExtraParameter]]:
        ...


class ParameterInferenceClient:
    """Language-model backed extras inference."""

    def __init__(
        self,
        config: LLMConfig,
        agent: IntentParameterAgent | None = None,
        client: Any = None,
    ) -> None:
        self.config = config
        self.agent = agent or IntentParameterAgent(config, client=client)

    async def infer(
        self,
        component: ComponentRecord,
        intent_filter: IntentFilter | None = None,
        source_text: str | None = None,
        hints: Sequence[str] = (),
    ) -> ServiceResult[list[ExtraParameter]]:
        """Propose extras for one component.

        Args:
            component: The component being enriched.
            intent_filter: Filter the command will target, if any.
            source_text: Intent-context excerpt of the component's source.
            hints: Keys already seen by the static scan.

        Returns:
            ServiceResult[list[ExtraParameter]]: Extras in model order on
                success; a failed result carrying one component warning when
                the endpoint was unreachable or replied out of schema.
        """
        request = IntentParameterInput(
            component=component,
            intent_filter=intent_filter,
            source_text=source_text,
            hints=list(hints),
        )
        try:
            response = await self.agent.invoke(request)
        except InferenceError as e:
            if isinstance(e, InferenceNetworkError):
                message = f"inference endpoint unavailable after {self.config.max_retries} attempt(s)"
            else:
                message = "inference reply rejected"
            logger.warning(message, component=component.name, error=str(e), error_type=type(e).__name__)
            return ServiceResult.fail(
                error=str(e),
                warnings=[RunWarning.from_error(WarningScope.COMPONENT, component.name, e)],
                error_type=type(e).__name__,
            )

        extras = response.output.to_parameters()
        logger.debug("Extras inferred", component=component.name, count=len(extras))
        return ServiceResult.ok(
            extras,
            attempts=response.attempts,
            prompt_hash=response.prompt_hash,
            model=response.model_used,
        )
