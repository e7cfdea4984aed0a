"""Compiler for the small condition language used by triggers and constraints.

Conditions are written as plain strings inside a rule definition, e.g.
``"king_has_moved || rook_has_moved || king_in_check"``. They are compiled
once, when the definition is validated, into a predicate taking the runtime
context and the event being dispatched.

Supported syntax:

- literals: ``2``, ``1.5``, ``'pawn'``, ``"pawn"``, ``true``, ``false``, ``null``
- names and dotted paths: ``distance``, ``piece.type``, ``ledger.castle_token``
- comparisons: ``==``, ``!=``, ``<``, ``<=``, ``>``, ``>=``
- boolean operators: ``&&``/``and``, ``||``/``or``, ``!``/``not``
- parentheses
"""

from __future__ import annotations

import operator
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Tuple

from .errors import ConditionSyntaxError

_TOKEN_RE = re.compile(
    r"""\s*(?:
        (?P<number>\d+(?:\.\d+)?)
      | (?P<string>'[^']*'|"[^"]*")
      | (?P<op>\|\||&&|==|!=|<=|>=|<|>|!|\(|\))
      | (?P<name>[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*)
    )""",
    re.VERBOSE,
)

_COMPARISONS: Mapping[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}

_KEYWORD_LITERALS: Mapping[str, Any] = {"true": True, "false": False, "null": None}

Evaluator = Callable[[Any, Any], Any]


def _tokenize(expression: str) -> List[Tuple[str, str]]:
    tokens: List[Tuple[str, str]] = []
    position = 0
    stripped_end = len(expression.rstrip())
    while position < stripped_end:
        match = _TOKEN_RE.match(expression, position)
        if match is None or match.end() == position:
            raise ConditionSyntaxError(expression, f"unexpected character at offset {position}")
        kind = match.lastgroup or ""
        tokens.append((kind, match.group(kind)))
        position = match.end()
    return tokens


# ---------------------------------------------------------------------- lookups
def _payload_of(event: Any) -> Mapping[str, Any]:
    if event is None:
        return {}
    if isinstance(event, Mapping):
        payload = event.get("payload")
    else:
        payload = getattr(event, "payload", None)
    return payload if isinstance(payload, Mapping) else {}


def _walk(value: Any, parts: List[str]) -> Any:
    for part in parts:
        if value is None:
            return None
        if isinstance(value, Mapping):
            value = value.get(part)
        else:
            value = getattr(value, part, None)
    return value


def resolve_name(path: str, context: Any, event: Any) -> Any:
    """Resolve a dotted ``path`` against the runtime context and event.

    ``turn``, ``state``, ``ledger.<token>``, ``payload.*`` and
    ``game_state.*`` are explicit. Any other name is looked up in the event
    payload first and then in the context's game state.
    """

    head, *rest = path.split(".")
    payload = _payload_of(event)
    game_state = getattr(context, "game_state", None) or {}
    if head == "turn" and not rest:
        return getattr(context, "turn", None)
    if head == "state" and not rest:
        state = getattr(context, "current_state", None)
        return getattr(state, "value", state)
    if head == "ledger":
        ledger = getattr(context, "ledger", None)
        if ledger is None or len(rest) != 1:
            return None
        return ledger.balance(rest[0])
    if head == "payload":
        return _walk(payload, rest)
    if head == "game_state":
        return _walk(game_state, rest)
    if head in payload:
        return _walk(payload[head], rest)
    return _walk(game_state.get(head), rest)


# ---------------------------------------------------------------------- parser
class _Parser:
    def __init__(self, expression: str) -> None:
        self._expression = expression
        self._tokens = _tokenize(expression)
        self._index = 0

    def parse(self) -> Evaluator:
        if not self._tokens:
            raise ConditionSyntaxError(self._expression, "expression is empty")
        node = self._parse_or()
        if self._index != len(self._tokens):
            _, text = self._tokens[self._index]
            raise ConditionSyntaxError(self._expression, f"unexpected token {text!r}")
        return node

    def _peek(self) -> Optional[Tuple[str, str]]:
        if self._index < len(self._tokens):
            return self._tokens[self._index]
        return None

    def _accept(self, *texts: str) -> bool:
        token = self._peek()
        if token is not None and token[1] in texts:
            self._index += 1
            return True
        return False

    def _parse_or(self) -> Evaluator:
        operands = [self._parse_and()]
        while self._accept("||", "or"):
            operands.append(self._parse_and())
        if len(operands) == 1:
            return operands[0]
        return lambda context, event: any(op(context, event) for op in operands)

    def _parse_and(self) -> Evaluator:
        operands = [self._parse_not()]
        while self._accept("&&", "and"):
            operands.append(self._parse_not())
        if len(operands) == 1:
            return operands[0]
        return lambda context, event: all(op(context, event) for op in operands)

    def _parse_not(self) -> Evaluator:
        if self._accept("!", "not"):
            inner = self._parse_not()
            return lambda context, event: not inner(context, event)
        return self._parse_comparison()

    def _parse_comparison(self) -> Evaluator:
        left = self._parse_primary()
        token = self._peek()
        if token is None or token[1] not in _COMPARISONS:
            return left
        self._index += 1
        compare = _COMPARISONS[token[1]]
        right = self._parse_primary()

        def evaluate(context: Any, event: Any) -> bool:
            try:
                return bool(compare(left(context, event), right(context, event)))
            except TypeError:
                # Ordering against a missing value is simply false.
                return False

        return evaluate

    def _parse_primary(self) -> Evaluator:
        token = self._peek()
        if token is None:
            raise ConditionSyntaxError(self._expression, "unexpected end of expression")
        kind, text = token
        self._index += 1
        if text == "(":
            node = self._parse_or()
            if not self._accept(")"):
                raise ConditionSyntaxError(self._expression, "missing closing parenthesis")
            return node
        if kind == "number":
            number: Any = float(text) if "." in text else int(text)
            return lambda context, event: number
        if kind == "string":
            literal = text[1:-1]
            return lambda context, event: literal
        if kind == "name":
            if text in _KEYWORD_LITERALS:
                keyword = _KEYWORD_LITERALS[text]
                return lambda context, event: keyword
            if text in ("and", "or", "not"):
                raise ConditionSyntaxError(self._expression, f"misplaced operator {text!r}")
            return lambda context, event: resolve_name(text, context, event)
        raise ConditionSyntaxError(self._expression, f"unexpected token {text!r}")


@dataclass(frozen=True)
class CompiledCondition:
    """A condition expression compiled into a ``(context, event)`` predicate."""

    expression: str
    evaluator: Evaluator

    def __call__(self, context: Any, event: Any = None) -> bool:
        return bool(self.evaluator(context, event))


def compile_condition(expression: str) -> CompiledCondition:
    """Compile ``expression`` or raise :class:`ConditionSyntaxError`."""

    if not isinstance(expression, str):
        raise ConditionSyntaxError(repr(expression), "condition must be a string")
    return CompiledCondition(expression=expression, evaluator=_Parser(expression).parse())


__all__ = ["CompiledCondition", "compile_condition", "resolve_name"]
