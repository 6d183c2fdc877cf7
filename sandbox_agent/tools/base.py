"""Base class for tools the agent can call."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel


class Tool(ABC):
    """A named, schema-typed function exposed to the model."""

    name: str
    description: str
    input_model: type[BaseModel]

    def to_llm_tool_definition(self) -> dict[str, Any]:
        """Return the OpenAI-style function definition."""
        parameters = self.input_model.model_json_schema()
        parameters.pop("title", None)
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": parameters,
            },
        }

    async def execute(self, args: dict[str, Any]) -> dict[str, Any]:
        """Validate raw model arguments and run the tool.

        Raises:
            pydantic.ValidationError: If the arguments do not match the schema
        """
        return await self.run(self.input_model.model_validate(args))

    @abstractmethod
    async def run(self, params: BaseModel) -> dict[str, Any]:
        ...
