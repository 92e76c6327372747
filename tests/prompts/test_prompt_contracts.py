import pytest

from site_research.errors import ConfigurationError, ResearchDataError
from site_research.prompts.contracts import validate_prompt_input, validate_prompt_output
from site_research.schemas import ProfileResearch, ScoreWebsiteOutput


def test_profile_output_is_typed_with_defaults(canned_outputs):
    profile = validate_prompt_output("research_profile", canned_outputs["research_profile"])

    assert isinstance(profile, ProfileResearch)
    assert profile.business_name == "Sharp Cuts Barbershop"
    assert len(profile.services) == 3
    assert profile.mission_statement == ""
    assert profile.team == []


def test_nulls_fall_back_to_defaults():
    profile = validate_prompt_output(
        "research_profile",
        '{"business_name": "A", "services": [{"name": "Cut"}], "faq": [], "phone": null, "address": null, "extra": 1}',
    )

    assert profile.phone == ""
    assert profile.address.city == ""


@pytest.mark.parametrize(
    "raw",
    [
        '{"services": [{"name": "Cut"}], "faq": []}',
        '{"business_name": "A", "services": [], "faq": []}',
        '{"business_name": "A", "services": [' + ",".join(['{"name": "s"}'] * 9) + '], "faq": []}',
        '{"business_name": "A", "services": [{"name": "Cut"}]}',
        "not json at all",
        "[1, 2, 3]",
    ],
)
def test_profile_contract_violations_are_data_errors(raw: str):
    with pytest.raises(ResearchDataError) as exc_info:
        validate_prompt_output("research_profile", raw)

    assert exc_info.value.prompt_id == "research_profile"


def test_json_inside_prose_is_extracted(canned_outputs):
    text = f"Here you go:\n{canned_outputs['score_website']}\nThanks!"

    score = validate_prompt_output("score_website", text)

    assert isinstance(score, ScoreWebsiteOutput)
    assert score.overall == 0.8


def test_html_output_must_start_with_doctype():
    html = validate_prompt_output("generate_website", "```html\n<!doctype html><html></html>\n```")
    assert html.startswith("<!doctype html>")

    with pytest.raises(ResearchDataError, match="DOCTYPE"):
        validate_prompt_output("generate_legal_pages", "<html><body>Terms</body></html>")


def test_site_copy_needs_a_heading():
    assert validate_prompt_output("site_copy", "# Title\nBody").startswith("# Title")
    with pytest.raises(ResearchDataError):
        validate_prompt_output("site_copy", "Just text")


def test_input_validation_names_offending_fields():
    with pytest.raises(ConfigurationError) as exc_info:
        validate_prompt_input("generate_legal_pages", {"business_name": "A", "page_type": "cookies"})
    assert "page_type" in str(exc_info.value)

    inputs = validate_prompt_input("research_social", {"business_name": "A", "business_type": "barber"})
    assert inputs["business_address"] == ""


def test_inputs_pass_through_verbatim():
    html = "<!DOCTYPE html>\n<html>\n  <body>  "

    inputs = validate_prompt_input("score_website", {"html_content": html, "business_name": " Sharp Cuts "})

    assert inputs["html_content"] == html
    assert inputs["business_name"] == " Sharp Cuts "
