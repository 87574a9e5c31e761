"""Unit tests for the parameter inference client."""

import httpx
import openai
import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from tenacity import wait_none

from intentsmith.core.config import LLMConfig
from intentsmith.core.types import WarningScope
from intentsmith.models.manifest import ComponentKind, ComponentRecord
from intentsmith.services.inference import ParameterInferenceClient

LLM = LLMConfig(base_url="http://localhost:1234/v1", model="local-model", max_retries=2)

COMPONENT = ComponentRecord(
    kind=ComponentKind.SERVICE,
    name="com.example.app.UploadService",
    package="com.example.app",
)


def make_client(**create_kwargs):
    sdk = MagicMock()
    sdk.chat.completions.create = AsyncMock(**create_kwargs)
    inference = ParameterInferenceClient(LLM, client=sdk)
    inference.agent.retry_wait = wait_none()
    return inference, sdk


def reply(content):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=None,
    )


class TestParameterInferenceClient:
    """Tests for inference with degradation."""

    @pytest.mark.asyncio
    async def test_infer_success(self):
        inference, sdk = make_client(return_value=reply(
            '{"extras": [{"key": "file", "type": "uri", "example": "file:///sdcard/a.txt"}]}'
        ))
        result = await inference.infer(COMPONENT, None, "getParcelableExtra(...)", ["file"])

        assert result.success
        assert [(e.key, e.type.value) for e in result.data] == [("file", "uri")]
        assert result.warnings == []
        assert result.metadata["attempts"] == 1
        user_prompt = sdk.chat.completions.create.call_args.kwargs["messages"][1]["content"]
        assert "com.example.app.UploadService" in user_prompt

    @pytest.mark.asyncio
    async def test_malformed_reply_degrades(self):
        """Test the malformed-JSON case.

        Verifies that a reply that is not JSON yields a failed result with
        one component warning instead of raising.
        """
        inference, _ = make_client(return_value=reply("{extras: [oops"))
        result = await inference.infer(COMPONENT)

        assert not result.success
        assert result.data is None
        (warning,) = result.warnings
        assert warning.scope is WarningScope.COMPONENT
        assert warning.subject == COMPONENT.name
        assert warning.error_type == "InferenceSchemaError"

    @pytest.mark.asyncio
    async def test_network_exhaustion_degrades(self):
        error = openai.APITimeoutError(request=httpx.Request("POST", "http://localhost:1234/v1/chat/completions"))
        inference, sdk = make_client(side_effect=error)
        result = await inference.infer(COMPONENT)

        assert not result.success
        assert result.warnings[0].error_type == "InferenceNetworkError"
        assert sdk.chat.completions.create.await_count == LLM.max_retries

    @pytest.mark.asyncio
    async def test_requests_are_independent(self):
        """Test that each call issues its own request (no caching)."""
        inference, sdk = make_client(return_value=reply('{"extras": []}'))
        await inference.infer(COMPONENT)
        await inference.infer(COMPONENT)
        assert sdk.chat.completions.create.await_count == 2
