"""Action handler registry.

Handlers are looked up by action_type. Each handler declares a pydantic
config model; ActionRegistry.validate_config() checks stored configs when a
workflow is loaded so malformed definitions fail before any side effect.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

from pydantic import BaseModel, ValidationError

from fieldflow.application.actions.configs import ActionConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionContext:
    """What a handler sees: the trigger context plus run identifiers."""

    workflow_id: str
    execution_id: str
    action_id: str
    trigger: dict[str, Any] = field(default_factory=dict)

    @property
    def entity_data(self) -> dict[str, Any]:
        return self.trigger.get("entity_data") or {}

    @property
    def entity_type(self) -> str | None:
        return self.trigger.get("entity_type")

    @property
    def entity_id(self) -> str | None:
        entity_id = self.trigger.get("entity_id") or self.entity_data.get("id")
        return str(entity_id) if entity_id else None


class ActionHandler(ABC):
    """Base class for action handlers.

    Subclasses set action_type and config_model and implement execute().
    Raise ActionExecutionException (or any exception) to fail the action.
    """

    action_type: ClassVar[str]
    config_model: ClassVar[type[ActionConfig]] = ActionConfig

    @abstractmethod
    async def execute(self, config: BaseModel, context: ActionContext) -> dict[str, Any]:
        ...


class ActionRegistry:
    """Maps action_type -> handler."""

    def __init__(self) -> None:
        self._handlers: dict[str, ActionHandler] = {}

    def register(self, handler: ActionHandler) -> None:
        if handler.action_type in self._handlers:
            logger.warning("Replacing handler for action type %s", handler.action_type)
        self._handlers[handler.action_type] = handler

    def get(self, action_type: str) -> ActionHandler | None:
        return self._handlers.get(action_type)

    def __contains__(self, action_type: object) -> bool:
        return action_type in self._handlers

    def action_types(self) -> list[str]:
        return sorted(self._handlers)

    def validate_config(self, action_type: str, raw: dict[str, Any] | None) -> BaseModel | None:
        """Parse raw config with the handler's model; None for unregistered types.

        Raises:
            ValueError: Config does not satisfy the model (message lists the problems).
        """
        handler = self.get(action_type)
        if handler is None:
            return None
        try:
            return handler.config_model.model_validate(raw or {})
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}"
                for err in e.errors()
            )
            raise ValueError(f"{action_type} config invalid: {problems}") from e
