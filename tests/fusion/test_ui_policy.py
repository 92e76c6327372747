import pytest

from site_research.fusion import ProminenceLevel, get_prominence_level, should_show_component
from site_research.fusion.policy import build_ui_policy


@pytest.mark.parametrize(
    "confidence, level",
    [
        (0.98, ProminenceLevel.PROMINENT),
        (0.85, ProminenceLevel.PROMINENT),
        (0.84, ProminenceLevel.STANDARD),
        (0.70, ProminenceLevel.STANDARD),
        (0.69, ProminenceLevel.DEEMPHASIZE),
        (0.50, ProminenceLevel.DEEMPHASIZE),
        (0.49, ProminenceLevel.HIDE_OR_PLACEHOLDER),
        (0.0, ProminenceLevel.HIDE_OR_PLACEHOLDER),
    ],
)
def test_prominence_bands(confidence, level):
    assert get_prominence_level(confidence) == level


def test_component_thresholds():
    policy = build_ui_policy()

    assert should_show_component(policy, "contact.phone", 0.90)
    assert not should_show_component(policy, "contact.phone", 0.50)
    # unknown components fall back to the default threshold
    assert should_show_component(policy, "footer.badge", 0.50)
    assert not should_show_component(policy, "footer.badge", 0.49)
