"""Provider selection for agent LLM backends."""

import importlib
import logging

from agent_workflow_engine.core.config import LLMConfig
from agent_workflow_engine.llm.provider import LLMProvider

logger = logging.getLogger(__name__)

# provider name -> "module:ClassName"; imported on demand so the llama extra
# is only required when selected.
PROVIDERS: dict[str, str] = {
    "openai": "agent_workflow_engine.llm.openai_provider:OpenAIProvider",
    "llama": "agent_workflow_engine.llm.llama_provider:LLaMAProvider",
}


class LLMFactory:
    """Creates the provider named by ``LLMConfig.provider``."""

    @staticmethod
    def create(config: LLMConfig) -> LLMProvider:
        """Create the configured provider.

        Raises:
            ValueError: If the provider is unknown or misconfigured.
            ImportError: If the provider's optional dependency is missing.
        """
        target = PROVIDERS.get(config.provider)
        if target is None:
            raise ValueError(f"Unsupported LLM provider: {config.provider}")

        module_name, _, class_name = target.partition(":")
        provider_cls = getattr(importlib.import_module(module_name), class_name)
        logger.info(f"Creating LLM provider: {config.provider}")
        return provider_cls(config)
