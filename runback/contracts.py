"""Step definition contracts for both workflow dialects."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .ref import to_ref_strings


class StepKind(str, Enum):
    TRIGGER = "trigger"
    STEP = "step"
    CONDITIONAL = "if"


class BaseStep(BaseModel):
    """Fields shared by every step: identity, action and explicit dependencies."""

    model_config = ConfigDict(extra="allow")

    id: str
    action: str
    type: StepKind = StepKind.STEP
    name: Optional[str] = None
    depends: List[Union[str, List[str]]] = Field(default_factory=list)

    @property
    def is_conditional(self) -> bool:
        return self.type is StepKind.CONDITIONAL

    @property
    def template(self) -> Any:
        """The step's input template; dialects name the field differently."""
        return None

    def snapshot(self) -> Dict[str, Any]:
        """Plain dict copy of the definition, as stored in execution records."""
        return self.model_dump(exclude_none=True)


class Step(BaseStep):
    """Generation-1 step: ``options`` template with ``$ref.`` placeholders.

    ``each`` is either a ``$ref.`` string naming the list to iterate or a
    literal list whose items are resolved individually.
    """

    options: Any = None
    each: Union[str, List[Any], None] = None

    @field_validator("options", "each", mode="before")
    @classmethod
    def _refs_to_strings(cls, value: Any) -> Any:
        return to_ref_strings(value)

    @property
    def template(self) -> Any:
        return self.options


class Step2(BaseStep):
    """Generation-2 step: ``input`` template filled through a ``ref`` mapping.

    With ``each`` set the mapped input must be a list; the action runs once
    per element.
    """

    input: Any = None
    each: bool = False
    ref: Optional[Dict[str, str]] = None

    @property
    def template(self) -> Any:
        return self.input
