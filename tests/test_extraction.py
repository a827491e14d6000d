"""Extraction adapter: fixed prompt, raw passthrough, failure mapping."""

from __future__ import annotations

from datetime import date

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from fakes import EXPENSE_RESPONSE, FakeBedrockRuntime
from fieldvoice.pipelines.voice import ErrorKind, IntentExtractor, Ok, build_extraction_prompt
from fieldvoice.services.llm_client import BedrockLlmClient, LlmInvocationError


def test_prompt_names_catalogue_fields_date_and_transcript():
    prompt = build_extraction_prompt("log three hours of masonry work", today=date(2026, 3, 14))

    for intent in ("ADD_WORKLOG", "ADD_EXPENSE", "VIEW_MATERIALS", "UNKNOWN"):
        assert intent in prompt.user_prompt
    for field in ("description", "hours", "project_name", "amount", "category", "merchant", "filter"):
        assert field in prompt.user_prompt
    assert "Current Date: 2026-03-14" in prompt.user_prompt
    assert prompt.user_prompt.rstrip().endswith("log three hours of masonry work")
    assert "JSON" in prompt.system_prompt


@pytest.mark.asyncio
async def test_raw_text_is_returned_untouched():
    bedrock = FakeBedrockRuntime(EXPENSE_RESPONSE)
    extractor = IntentExtractor(BedrockLlmClient(client=bedrock), clock=lambda: date(2026, 1, 2))

    outcome = await extractor.extract("add fifty dollars for food")

    assert isinstance(outcome, Ok)
    assert outcome.value == EXPENSE_RESPONSE
    call = bedrock.calls[0]
    assert "2026-01-02" in call["messages"][0]["content"][0]["text"]
    assert call["inferenceConfig"]["temperature"] == 0.0


@pytest.mark.asyncio
async def test_slow_model_call_times_out():
    bedrock = FakeBedrockRuntime(delay=0.5)
    extractor = IntentExtractor(BedrockLlmClient(client=bedrock, timeout_seconds=0.05))

    outcome = await extractor.extract("add fifty dollars for food")

    assert outcome.kind is ErrorKind.TIMEOUT


@pytest.mark.asyncio
async def test_service_error_is_extraction_error_without_retry():
    error = ClientError(
        {"Error": {"Code": "ThrottlingException", "Message": "Rate exceeded"}},
        "Converse",
    )
    bedrock = FakeBedrockRuntime(error=error)
    extractor = IntentExtractor(BedrockLlmClient(client=bedrock))

    outcome = await extractor.extract("add fifty dollars for food")

    assert outcome.kind is ErrorKind.EXTRACTION
    assert "Rate exceeded" not in outcome.message
    assert len(bedrock.calls) == 1


@pytest.mark.asyncio
async def test_network_error_is_extraction_error():
    bedrock = FakeBedrockRuntime(error=EndpointConnectionError(endpoint_url="https://bedrock"))
    extractor = IntentExtractor(BedrockLlmClient(client=bedrock))

    outcome = await extractor.extract("add fifty dollars for food")

    assert outcome.kind is ErrorKind.EXTRACTION


@pytest.mark.asyncio
async def test_unconfigured_client_raises_invocation_error(monkeypatch):
    client = BedrockLlmClient(client=FakeBedrockRuntime())
    monkeypatch.setattr(client, "_client", None)

    with pytest.raises(LlmInvocationError):
        await client.invoke(system_prompt="s", user_prompt="u")
