"""Tool contract for model-requested actions.

A tool declares a name, a description and a pydantic argument schema.  The
model sees the schema as JSON; :meth:`Tool.run` validates whatever
arguments the model produced and always returns one of the four tagged
outcomes from :mod:`src.models.tools`.  Nothing a tool does raises past
``run``: bad arguments become :class:`ToolValidationError`, upstream
failures become :class:`ToolFailure`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Generic, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from src.models.llm import ToolSpec
from src.models.tools import ToolDuplicate, ToolFailure, ToolSuccess, ToolValidationError
from src.utils.errors import SupportDeskError, ToolExecutionError

logger = structlog.get_logger(logger_name=__name__)

ArgsT = TypeVar("ArgsT", bound=BaseModel)

Outcome = ToolSuccess | ToolDuplicate | ToolValidationError | ToolFailure


class Tool(ABC, Generic[ArgsT]):
    """Base class for every tool a handler can offer the model."""

    name: ClassVar[str]
    description: ClassVar[str]
    args_schema: ClassVar[type[BaseModel]]

    def spec(self) -> ToolSpec:
        return ToolSpec(
            name=self.name,
            description=self.description,
            parameters=self.args_schema.model_json_schema(),
        )

    async def run(self, arguments: dict[str, Any]) -> Outcome:
        """Validate *arguments* and execute the tool."""
        try:
            args = self.args_schema.model_validate(arguments)
        except ValidationError as exc:
            first = exc.errors()[0]
            field = ".".join(str(part) for part in first.get("loc", ())) or "arguments"
            logger.info("tool_arguments_invalid", tool=self.name, field=field, error=first.get("msg"))
            return ToolValidationError(missing_field=field, detail=str(first.get("msg", "")))

        try:
            outcome = await self.execute(args)  # type: ignore[arg-type]
        except SupportDeskError as exc:
            logger.warning("tool_execution_failed", tool=self.name, error=str(exc))
            return ToolFailure(reason=exc.message)

        logger.info("tool_executed", tool=self.name, outcome=outcome.tag)
        return outcome

    @abstractmethod
    async def execute(self, args: ArgsT) -> Outcome:
        """Perform the action with validated arguments."""


class ToolRegistry:
    """Name -> tool lookup for one handler's tool set."""

    def __init__(self, tools: list[Tool[Any]] | None = None) -> None:
        self._tools: dict[str, Tool[Any]] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: Tool[Any]) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool[Any]:
        try:
            return self._tools[name]
        except KeyError:
            raise ToolExecutionError(message=f"Unknown tool '{name}'") from None

    def specs(self) -> list[ToolSpec]:
        return [tool.spec() for tool in self._tools.values()]

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools
