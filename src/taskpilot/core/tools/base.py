"""
Base Tool Interface

Concrete tools subclass ``Tool`` and implement ``execute``. The parameter
schema is derived from the ``execute`` signature unless a tool overrides
``parameters_schema``.
"""

import inspect
from abc import ABC, abstractmethod
from typing import Any

_JSON_TYPES = {
    int: "integer",
    bool: "boolean",
    float: "number",
    dict: "object",
    list: "array",
}


class Tool(ABC):
    """Base class for all tools"""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        pass

    @property
    def parameters_schema(self) -> dict[str, Any]:
        """Override to provide custom parameter schema for function calling"""
        return self._generate_schema_from_signature()

    def _generate_schema_from_signature(self) -> dict[str, Any]:
        sig = inspect.signature(self.execute)
        properties = {}
        required = []

        for param_name, param in sig.parameters.items():
            if param.kind in (param.VAR_KEYWORD, param.VAR_POSITIONAL):
                continue

            param_type = "string"
            if param.annotation is not inspect.Parameter.empty:
                param_type = _JSON_TYPES.get(param.annotation, "string")

            properties[param_name] = {
                "type": param_type,
                "description": f"Parameter {param_name}",
            }
            if param.default is inspect.Parameter.empty:
                required.append(param_name)

        return {"type": "object", "properties": properties, "required": required}

    @abstractmethod
    async def execute(self, **kwargs: Any) -> dict[str, Any]:
        pass

    def validate_params(self, **kwargs: Any) -> tuple[bool, str | None]:
        """Check that every required parameter is present."""
        for param_name in self.parameters_schema.get("required", []):
            if param_name not in kwargs:
                return False, f"Missing required parameter: {param_name}"
        return True, None
