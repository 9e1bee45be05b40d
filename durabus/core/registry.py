"""Handler registry for durabus."""

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

Handler = Callable[[Any], Awaitable[None] | None]


@dataclass(frozen=True)
class HandlerBinding:
    """A handler bound to one event name."""

    name: str
    handler: Handler
    position: int = 0

    @property
    def handler_name(self) -> str:
        return getattr(self.handler, "__qualname__", None) or repr(self.handler)

    @property
    def key(self) -> str:
        """Unique within a registry, even for lambdas or methods sharing a qualname."""
        return f"{self.position}:{self.name}:{self.handler_name}"


class HandlerRegistry:
    """Ordered collection of handler bindings.

    Several handlers may be bound to the same event name; they run in
    registration order. Bindings are never removed.
    """

    def __init__(self) -> None:
        self._bindings: list[HandlerBinding] = []

    def register(self, name: str, handler: Handler) -> HandlerBinding:
        binding = HandlerBinding(name=name, handler=handler, position=len(self._bindings))
        self._bindings.append(binding)
        return binding

    def matching(self, name: str) -> list[HandlerBinding]:
        return [binding for binding in self._bindings if binding.name == name]

    def __iter__(self) -> Iterator[HandlerBinding]:
        return iter(list(self._bindings))

    def __len__(self) -> int:
        return len(self._bindings)
