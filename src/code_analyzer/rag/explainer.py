"""LangChain explanation step: turn retrieved code context into prose answers."""

import logging
from typing import Protocol

from langchain_anthropic import ChatAnthropic
from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import ChatPromptTemplate
from langchain_core.runnables import Runnable

from code_analyzer.config.llm_config import get_llm_model, get_llm_options
from code_analyzer.config.settings import Settings, settings

logger = logging.getLogger(__name__)

ERROR_REPLY = "Sorry, I encountered an error while analyzing the code. Please try again."

CODE_ANALYSIS_PROMPT = """You are an expert Java and Spring Boot developer. Analyze the following code and answer the user's question.

**Code Context:**
```java
{context}
```

**User Question:** {query}

**Instructions:**
- Provide a clear, concise answer based on the code shown
- Focus on practical implementation details
- If the code shows Spring Boot patterns, explain them
- If you see REST endpoints, describe what they do
- If you see business logic, explain the flow
- Keep your response under 300 words

**Answer:**"""

ENDPOINT_ANALYSIS_PROMPT = """Analyze this Spring Boot code and extract ONLY the REST API endpoints.

```java
{context}
```

RULES:
1. Find classes with @RestController, @Controller, or @Path annotations
2. Extract HTTP endpoints (@GetMapping, @PostMapping, @RequestMapping, etc.)
3. IGNORE: @Service, @Repository, @Component, utility classes, main methods
4. Show only controller methods with HTTP mapping annotations; omit long method bodies

OUTPUT FORMAT:

## REST Endpoints Found:

### [ControllerName]
**Base Path:** [class-level @RequestMapping path if any]

- **[HTTP_METHOD]** `[FULL_PATH]` -> `[methodName]()` - [brief description]

Group endpoints by controller class and be precise."""

BUSINESS_LOGIC_PROMPT = """Analyze the business logic flow in this Spring Boot application:

```java
{context}
```

**Question:** {query}

Focus on:
- The sequence of operations
- Service layer interactions
- Database operations
- External API calls
- Error handling

Provide a step-by-step explanation of the flow."""


class Explainer(Protocol):
    """What the query orchestrator needs from an explanation step."""

    async def explain(self, query: str, context: str) -> str: ...

    async def analyze_endpoints(self, context: str) -> str: ...

    async def analyze_business_logic(self, query: str, context: str) -> str: ...


def _build_llm(config: Settings | None = None) -> ChatAnthropic:
    """ChatAnthropic from config (ANTHROPIC_LLM_MODEL env or settings)."""
    cfg = config or settings
    kwargs = get_llm_options(cfg)
    if cfg.anthropic_api_key:
        kwargs["api_key"] = cfg.anthropic_api_key
    return ChatAnthropic(model=get_llm_model(cfg), **kwargs)


class ChatExplainer:
    """Explainer backed by a LangChain chat model.

    Model errors never propagate: every method falls back to ERROR_REPLY.
    """

    def __init__(self, llm: Runnable | None = None, config: Settings | None = None):
        self._llm = llm
        self._config = config

    @property
    def llm(self) -> Runnable:
        if self._llm is None:
            logger.debug("explainer: building chat model %s", get_llm_model(self._config))
            self._llm = _build_llm(self._config)
        return self._llm

    async def _run(self, template: str, **variables: str) -> str:
        chain = ChatPromptTemplate.from_template(template) | self.llm | StrOutputParser()
        try:
            reply = await chain.ainvoke(variables)
        except Exception as e:
            logger.error("explainer: failed to generate response: %s", e)
            return ERROR_REPLY
        logger.debug("explainer: generated %d chars", len(reply))
        return reply

    async def explain(self, query: str, context: str) -> str:
        logger.debug("explainer: explaining %r with %d chars of context", query, len(context))
        return await self._run(CODE_ANALYSIS_PROMPT, query=query, context=context)

    async def analyze_endpoints(self, context: str) -> str:
        return await self._run(ENDPOINT_ANALYSIS_PROMPT, context=context)

    async def analyze_business_logic(self, query: str, context: str) -> str:
        return await self._run(BUSINESS_LOGIC_PROMPT, query=query, context=context)
