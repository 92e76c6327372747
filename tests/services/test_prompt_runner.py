import json
import logging

import pytest

from site_research.errors import ConfigurationError, MissingPromptInputsError, PromptNotFoundError, ResearchDataError
from site_research.schemas import ProfileResearch


@pytest.mark.asyncio
async def test_run_validates_and_types_output(prompt_runner, fake_llm):
    result = await prompt_runner.run(
        "research_profile", 1, {"business_name": "Sharp Cuts Barbershop", "business_address": "12 Main St"}
    )

    assert isinstance(result.output, ProfileResearch)
    assert result.prompt_id == "research_profile"
    assert result.model == "gpt-4.1-mini"
    assert result.tokens_used > 0

    _, rendered = fake_llm.calls[0]
    assert "<<<USER_INPUT>>>Sharp Cuts Barbershop<<<END_USER_INPUT>>>" in rendered.user


@pytest.mark.asyncio
async def test_seeded_run_uses_the_same_variant(prompt_runner, fake_llm, registry):
    inputs = {"business_name": "Sharp Cuts", "tone": "friendly", "services": ["Cut"]}
    expected_variant = registry.resolve_variant("site_copy", 3, "org-42").variant

    results = [await prompt_runner.run("site_copy", 3, inputs, seed="org-42") for _ in range(3)]

    assert {r.prompt_variant for r in results} == {expected_variant}


@pytest.mark.asyncio
async def test_unknown_prompt_is_a_configuration_error(prompt_runner):
    with pytest.raises(PromptNotFoundError):
        await prompt_runner.run("does_not_exist", 1, {})


@pytest.mark.asyncio
async def test_invalid_inputs_fail_before_the_model_is_called(prompt_runner, fake_llm):
    with pytest.raises(ConfigurationError):
        await prompt_runner.run("site_copy", 3, {"business_name": "A", "tone": "sarcastic"})
    with pytest.raises(ConfigurationError):
        await prompt_runner.run("research_social", 1, {"business_name": "A"})

    assert fake_llm.calls == []


@pytest.mark.asyncio
async def test_missing_required_template_inputs(prompt_runner, registry, fake_llm):
    # no input model for this id, so the renderer reports the gap
    spec = registry.resolve("site_copy", 3).model_copy(update={"id": "adhoc_copy"})
    registry.register(spec)

    with pytest.raises(MissingPromptInputsError) as exc_info:
        await prompt_runner.run("adhoc_copy", 3, {})

    assert exc_info.value.missing == ["business_name", "tone"]


@pytest.mark.asyncio
async def test_contract_violation_is_a_data_error(prompt_runner, fake_llm, caplog):
    fake_llm.overrides["research_profile"] = lambda n: '{"business_name": "A", "services": [], "faq": []}'

    with caplog.at_level(logging.INFO):
        with pytest.raises(ResearchDataError):
            await prompt_runner.run("research_profile", 1, {"business_name": "A"}, retry_count=1)

    # the call itself succeeded and was logged as such
    records = [json.loads(r.getMessage()) for r in caplog.records if '"llm_call"' in r.getMessage()]
    assert [(r["outcome"], r["retry_count"]) for r in records] == [("success", 1)]


@pytest.mark.asyncio
async def test_model_override_replaces_prompt_model(prompt_runner, fake_llm):
    prompt_runner.model_override = "gemini-2.5-flash"

    result = await prompt_runner.run("research_profile", 1, {"business_name": "A"})

    assert result.model == "gemini-2.5-flash"
    assert fake_llm.calls[0][1].model == "gemini-2.5-flash"
