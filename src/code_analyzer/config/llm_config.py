"""Central LLM model configuration for the explanation step.

Switch model in one place:
- Edit settings.anthropic_llm_model, or
- Set ANTHROPIC_LLM_MODEL env var (e.g. ANTHROPIC_LLM_MODEL=claude-haiku-4-5)
"""

from code_analyzer.config.settings import Settings, settings


def get_llm_model(config: Settings | None = None) -> str:
    """Model ID for ChatAnthropic (no provider prefix)."""
    return (config or settings).anthropic_llm_model


def get_llm_options(config: Settings | None = None) -> dict:
    """Generation options shared by every explanation prompt."""
    cfg = config or settings
    return {"temperature": cfg.llm_temperature, "max_tokens": cfg.llm_max_tokens}
