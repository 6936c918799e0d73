"""Lark grammar for PostgreSQL range literal text such as ``[3,)``."""

from __future__ import annotations

from lark import Lark, Token, Transformer
from lark.exceptions import LarkError

from pyparadeql._errors import ERR_MSG_INVALID_RANGE, InvalidRangeLiteralError

_RANGE_GRAMMAR = r"""
    start: LOWER lower "," upper UPPER

    lower: bound?
    upper: bound?

    ?bound: BARE
          | ESCAPED_STRING

    LOWER: "[" | "("
    UPPER: "]" | ")"
    BARE: /[^,\[\]()"\s]+/

    %import common.ESCAPED_STRING
    %import common.WS
    %ignore WS
"""

_parser = Lark(_RANGE_GRAMMAR, parser="lalr")


def _bound_text(token: Token) -> str:
    text = str(token)
    if token.type == "ESCAPED_STRING":
        text = text[1:-1].replace('\\"', '"').replace("\\\\", "\\")
    return text


class _RangeTransformer(Transformer):
    """Turns the parse tree into ``(lower_inc, lower, upper, upper_inc)``."""

    def lower(self, children: list[Token]) -> str | None:
        return _bound_text(children[0]) if children else None

    def upper(self, children: list[Token]) -> str | None:
        return _bound_text(children[0]) if children else None

    def start(self, children: list) -> tuple[bool, str | None, str | None, bool]:
        lower_tok, lower, upper, upper_tok = children
        return str(lower_tok) == "[", lower, upper, str(upper_tok) == "]"


_transformer = _RangeTransformer()


def parse_range_text(text: str) -> tuple[bool, str | None, str | None, bool]:
    """Split range literal text into its bracket flags and raw bound strings.

    Unbounded sides come back as ``None``.

    Raises:
        InvalidRangeLiteralError: If the text is not a range literal.
    """
    try:
        tree = _parser.parse(text.strip())
    except LarkError as e:
        raise InvalidRangeLiteralError(
            ERR_MSG_INVALID_RANGE,
            f"cannot parse range literal {text!r}: {e}",
            wrapped=e,
        ) from e
    return _transformer.transform(tree)
