"""
Dialogue Collaborators

Interfaces the dialogue engine calls out to. Implementations may be plain
or async; the engine awaits whatever comes back when it is awaitable.
"""

import inspect
from typing import Any, Awaitable, Callable, Optional, Protocol, Union, runtime_checkable

from services.ai.models import FieldUpdate, FormSchema


@runtime_checkable
class FieldMutationSink(Protocol):
    """Told about every value written to the form."""

    def apply(self, update: FieldUpdate) -> Union[None, Awaitable[None]]: ...


@runtime_checkable
class SubmissionSink(Protocol):
    """Receives the completed form."""

    def submit(self, schema: FormSchema) -> Union[None, Awaitable[None]]: ...


@runtime_checkable
class NavigationSink(Protocol):
    """Leaves the form (back to form selection)."""

    def go_back(self) -> Union[None, Awaitable[None]]: ...


@runtime_checkable
class FormDefinitionSource(Protocol):
    def load_schema(self, form_code: str) -> FormSchema: ...


async def notify(callback: Callable[..., Any], *args: Any) -> Any:
    """Call a sync or async collaborator method."""
    result = callback(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class RecordingSinks:
    """
    In-memory implementation of all three sinks.

    Used by the HTTP layer, where persistence and navigation happen on the
    client: the recorded state is reported back in each response.
    """

    def __init__(self, on_submit: Optional[Callable[[FormSchema], Any]] = None):
        self.updates: list = []
        self.submitted_values: Optional[dict] = None
        self.navigated_back = False
        self._on_submit = on_submit

    def apply(self, update: FieldUpdate) -> None:
        self.updates.append(update)

    async def submit(self, schema: FormSchema) -> None:
        self.submitted_values = schema.values()
        if self._on_submit is not None:
            await notify(self._on_submit, schema)

    def go_back(self) -> None:
        self.navigated_back = True

    def drain_updates(self) -> list:
        updates, self.updates = self.updates, []
        return updates
