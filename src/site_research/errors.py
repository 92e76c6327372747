class SiteResearchError(Exception):
    """Base error for the site research core."""


class ConfigurationError(SiteResearchError, ValueError):
    """Static misconfiguration. Retrying cannot fix it."""


class PromptNotFoundError(ConfigurationError):
    def __init__(self, prompt_id: str, version: int):
        super().__init__(f"Prompt not registered: {prompt_id}@{version}")
        self.prompt_id = prompt_id
        self.version = version


class MissingPromptInputsError(ConfigurationError):
    def __init__(self, prompt_key: str, missing: list[str]):
        super().__init__(
            f'Missing required prompt inputs for "{prompt_key}": {", ".join(missing)}'
        )
        self.prompt_key = prompt_key
        self.missing = missing


class VariantWeightsError(ConfigurationError):
    def __init__(self, prompt_id: str, version: int, total: int):
        super().__init__(
            f"Variant weights for {prompt_id}@{version} must sum to 100, got {total}"
        )
        self.prompt_id = prompt_id
        self.version = version
        self.total = total


class ResearchDataError(SiteResearchError, ValueError):
    """A model produced output that does not satisfy its prompt's output contract."""

    def __init__(self, prompt_id: str, detail: str):
        super().__init__(f"Invalid output for prompt '{prompt_id}': {detail}")
        self.prompt_id = prompt_id
        self.detail = detail


class StepExecutionError(SiteResearchError):
    """A workflow step failed. The underlying error is chained as ``__cause__``."""

    def __init__(self, step_name: str, error: BaseException):
        super().__init__(f"Step '{step_name}' failed: {error}")
        self.step_name = step_name
        self.error = error
        self.__cause__ = error


def iter_error_chain(error: BaseException):
    """Yield ``error`` and every exception reachable through ``__cause__``/``__context__``."""
    seen: set[int] = set()
    current: BaseException | None = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def is_configuration_error(error: BaseException) -> bool:
    return any(isinstance(e, ConfigurationError) for e in iter_error_chain(error))


def find_failed_step(error: BaseException) -> StepExecutionError | None:
    for e in iter_error_chain(error):
        if isinstance(e, StepExecutionError):
            return e
    return None
