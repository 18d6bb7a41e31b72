"""Events published by inference engines.

Every engine multiplexes all of its notifications (load results and
prediction progress) onto one shared channel. Events carry no session
identifier; consumers scope them by subscription lifetime.
"""

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class Loaded(BaseModel):
    """A model finished loading."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["loaded"] = "loaded"
    path: str = Field(description="Path or URI of the loaded model")


class Ongoing(BaseModel):
    """A new fragment of generated text."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["ongoing"] = "ongoing"
    word: str = Field(description="Incremental text fragment")


class Done(BaseModel):
    """A prediction finished normally."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["done"] = "done"


class Error(BaseModel):
    """A load or prediction failed."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["error"] = "error"
    message: str = Field(description="Human-readable failure detail")


LLMEvent = Annotated[Loaded | Ongoing | Done | Error, Field(discriminator="kind")]

_event_adapter: TypeAdapter[LLMEvent] = TypeAdapter(LLMEvent)


def parse_event(data: dict) -> Loaded | Ongoing | Done | Error:
    """Build an event from its dict form, dispatching on ``kind``.

    Raises:
        pydantic.ValidationError: If the payload is not a known event
    """
    return _event_adapter.validate_python(data)
