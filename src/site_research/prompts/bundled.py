import logging
from pathlib import Path

from site_research.prompts.parser import parse_prompt_markdown
from site_research.prompts.registry import PromptRegistry
from site_research.prompts.renderer import validate_template_placeholders

logger = logging.getLogger(__name__)

DEFINITIONS_DIR = Path(__file__).parent / "definitions"

BUNDLED_VARIANT_WEIGHTS: dict[tuple[str, int], dict[str, int]] = {
    ("site_copy", 3): {"a": 80, "b": 20},
}


def load_bundled_prompts(registry: PromptRegistry, definitions_dir: Path | None = None) -> int:
    """Register every ``*.prompt.md`` shipped with the package plus the default A/B splits."""
    directory = definitions_dir or DEFINITIONS_DIR
    specs = [
        parse_prompt_markdown(path.read_text(encoding="utf-8"), source=path.name)
        for path in sorted(directory.glob("*.prompt.md"))
    ]

    for spec in specs:
        undeclared = validate_template_placeholders(spec)
        if undeclared:
            logger.warning(f"Prompt {spec.key} uses undeclared placeholders: {', '.join(undeclared)}")

    registry.register_all(specs)
    for (prompt_id, version), weights in BUNDLED_VARIANT_WEIGHTS.items():
        registry.configure_variants(prompt_id, version, weights)

    logger.info(f"Registered {len(specs)} bundled prompts from {directory}")
    return len(specs)
