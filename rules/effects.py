"""Effect handler registry used to resolve action effects."""

from __future__ import annotations

from typing import Any, Dict, Iterator, Mapping, Optional, Protocol, TypeVar

from .errors import EffectExecutionError

if False:  # pragma: no cover - typing only
    from automaton.context import RuntimeContext


class EffectHandler(Protocol):
    """Callable protocol for effect handlers."""

    def __call__(self, context: "RuntimeContext", payload: Any) -> None:  # pragma: no cover - protocol
        ...


HandlerT = TypeVar("HandlerT", bound=EffectHandler)


class EffectRegistry:
    """Mapping between effect identifiers and the callables that apply them.

    Effects that have no registered handler are still considered resolved by
    the interpreter; they are recorded in the context without touching the
    game state. This keeps partial rule sets playable.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, EffectHandler] = {}

    def register(self, name: str, handler: Optional[HandlerT] = None):  # type: ignore[override]
        if handler is None:
            def decorator(func: HandlerT) -> HandlerT:
                self.register(name, func)
                return func

            return decorator
        if name in self._handlers:
            raise ValueError(f"Handler already registered for effect '{name}'")
        self._handlers[name] = handler
        return handler

    def get(self, name: str) -> Optional[EffectHandler]:
        return self._handlers.get(name)

    def apply(self, name: str, context: "RuntimeContext", payload: Any) -> bool:
        """Run the handler for ``name``; return ``False`` when none is registered.

        Any failure inside the handler surfaces as :class:`EffectExecutionError`.
        """

        handler = self.get(name)
        if handler is None:
            return False
        try:
            handler(context, payload)
        except EffectExecutionError:
            raise
        except Exception as exc:
            raise EffectExecutionError(f"Effect '{name}' failed: {exc}") from exc
        return True

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def __iter__(self) -> Iterator[str]:
        return iter(self._handlers)


def _require_mapping(effect: str, payload: Any) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise EffectExecutionError(f"{effect} requires a mapping payload, got {type(payload).__name__}")
    return payload


def set_flag(context: "RuntimeContext", payload: Any) -> None:
    """Set ``payload['flag']`` in the game state to ``payload.get('value', True)``."""

    payload = _require_mapping("set_flag", payload)
    flag = payload.get("flag")
    if not flag:
        raise EffectExecutionError("set_flag requires a 'flag' entry in the event payload")
    context.game_state[str(flag)] = payload.get("value", True)


def remove_piece(context: "RuntimeContext", payload: Any) -> None:
    """Remove ``payload['piece']`` from ``game_state['pieces'][payload['side']]``."""

    payload = _require_mapping("remove_piece", payload)
    side = payload.get("side")
    piece = payload.get("piece")
    roster = context.game_state.get("pieces", {}).get(side)
    if not isinstance(roster, list) or piece not in roster:
        raise EffectExecutionError(f"No piece {piece!r} on side {side!r} to remove")
    roster.remove(piece)


def default_registry() -> EffectRegistry:
    """Return a fresh registry with the generic built-in effects."""

    registry = EffectRegistry()
    registry.register("set_flag", set_flag)
    registry.register("remove_piece", remove_piece)
    return registry


__all__ = ["EffectHandler", "EffectRegistry", "default_registry", "remove_piece", "set_flag"]
