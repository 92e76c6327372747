from .bundled import load_bundled_prompts
from .models import PromptSpec, VariantConfig, build_prompt_key, parse_prompt_key
from .registry import PromptRegistry, bucketing_hash
from .renderer import RenderedPrompt, render_prompt, validate_template_placeholders


__all__ = [
    "PromptRegistry",
    "PromptSpec",
    "RenderedPrompt",
    "VariantConfig",
    "bucketing_hash",
    "build_prompt_key",
    "load_bundled_prompts",
    "parse_prompt_key",
    "render_prompt",
    "validate_template_placeholders",
]
