"""
Site filtering for vcfconvert.

Provides a small expression language for per-site predicates and the
FilterGate that combines a compiled predicate with include/exclude polarity.

Supported expressions:
    QUAL>30 && INFO/DP>=10
    (TYPE="snp" || N_ALT>1) && CHROM!="chrM"
    FILTER="PASS"

Identifiers: QUAL, POS, CHROM, ID, REF, ALT, FILTER, N_ALT, TYPE,
INFO/<key> (or a bare INFO key declared in the header).
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Union

from .errors import ConfigurationError
from .models import FilterLogic

logger = logging.getLogger(__name__)

SitePredicate = Callable[[Any], bool]

SITE_FIELDS = {"QUAL", "POS", "CHROM", "ID", "REF", "ALT", "FILTER", "N_ALT", "TYPE"}

_TOKEN_RE = re.compile(
    r"""
    \s*(?:
        (?P<number>-?\d+(?:\.\d*)?(?:[eE][-+]?\d+)?)
      | (?P<string>"[^"]*"|'[^']*')
      | (?P<op>==|!=|<=|>=|&&|\|\||[<>=&|()])
      | (?P<ident>[A-Za-z_][A-Za-z0-9_./]*)
    )
    """,
    re.VERBOSE,
)

_COMPARATORS = {
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
    "<": lambda a, b: a < b,
    "<=": lambda a, b: a <= b,
    ">": lambda a, b: a > b,
    ">=": lambda a, b: a >= b,
}


@dataclass
class Token:
    kind: str
    value: str


def tokenize(expression: str) -> List[Token]:
    """Split an expression into tokens."""
    tokens = []
    pos = 0
    text = expression.rstrip()
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if not match or match.end() == pos:
            raise ConfigurationError(
                f"Could not parse filter expression at position {pos}: {expression!r}"
            )
        kind = match.lastgroup
        assert kind is not None
        value = match.group(kind)
        if kind == "op":
            value = {"=": "==", "&": "&&", "|": "||"}.get(value, value)
        tokens.append(Token(kind, value))
        pos = match.end()
    return tokens


def variant_type(record: Any) -> str:
    """Classify a record as snp, indel or other from its alleles."""
    alleles = record.alleles or ()
    if len(alleles) < 2:
        return "ref"
    ref = alleles[0]
    alts = alleles[1:]
    if any(a.startswith("<") or a == "*" for a in alts):
        return "other"
    if len(ref) == 1 and all(len(a) == 1 for a in alts):
        return "snp"
    if any(len(a) != len(ref) for a in alts):
        return "indel"
    return "other"


def _field_getter(name: str, info_keys: Optional[Iterable[str]]) -> Callable[[Any], Any]:
    upper = name.upper()
    if upper in SITE_FIELDS:
        if upper == "QUAL":
            return lambda r: r.qual
        if upper == "POS":
            return lambda r: r.pos
        if upper == "CHROM":
            return lambda r: r.chrom
        if upper == "ID":
            return lambda r: r.id
        if upper == "REF":
            return lambda r: r.ref
        if upper == "ALT":
            return lambda r: r.alts[0] if r.alts else None
        if upper == "FILTER":
            return lambda r: ";".join(r.filter.keys()) or "."
        if upper == "N_ALT":
            return lambda r: len(r.alts) if r.alts else 0
        return variant_type

    key = name[5:] if upper.startswith("INFO/") else name
    if info_keys is not None and key not in set(info_keys):
        raise ConfigurationError(f"INFO/{key} is not defined in the header")

    def get_info(record: Any) -> Any:
        value = record.info.get(key)
        if isinstance(value, tuple):
            return value[0] if value else None
        return value

    return get_info


class _Parser:
    """Recursive-descent parser producing a predicate closure."""

    def __init__(self, tokens: List[Token], info_keys: Optional[Iterable[str]]):
        self.tokens = tokens
        self.pos = 0
        self.info_keys = list(info_keys) if info_keys is not None else None

    def peek(self) -> Optional[Token]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def take(self) -> Token:
        token = self.peek()
        if token is None:
            raise ConfigurationError("Unexpected end of filter expression")
        self.pos += 1
        return token

    def parse(self) -> SitePredicate:
        predicate = self.parse_or()
        if self.peek() is not None:
            raise ConfigurationError(
                f"Unexpected token in filter expression: {self.peek().value!r}"
            )
        return predicate

    def parse_or(self) -> SitePredicate:
        left = self.parse_and()
        while self.peek() is not None and self.peek().value == "||":
            self.take()
            right = self.parse_and()
            left = (lambda a, b: lambda r: a(r) or b(r))(left, right)
        return left

    def parse_and(self) -> SitePredicate:
        left = self.parse_term()
        while self.peek() is not None and self.peek().value == "&&":
            self.take()
            right = self.parse_term()
            left = (lambda a, b: lambda r: a(r) and b(r))(left, right)
        return left

    def parse_term(self) -> SitePredicate:
        token = self.peek()
        if token is not None and token.value == "(":
            self.take()
            inner = self.parse_or()
            closing = self.take()
            if closing.value != ")":
                raise ConfigurationError("Missing ')' in filter expression")
            return inner
        return self.parse_comparison()

    def parse_operand(self) -> Callable[[Any], Any]:
        token = self.take()
        if token.kind == "number":
            number: Union[int, float] = (
                float(token.value)
                if any(c in token.value for c in ".eE")
                else int(token.value)
            )
            return lambda r: number
        if token.kind == "string":
            text = token.value[1:-1]
            return lambda r: text
        if token.kind == "ident":
            return _field_getter(token.value, self.info_keys)
        raise ConfigurationError(f"Unexpected token in filter expression: {token.value!r}")

    def parse_comparison(self) -> SitePredicate:
        left = self.parse_operand()
        op = self.take()
        if op.value not in _COMPARATORS:
            raise ConfigurationError(f"Expected a comparison operator, got {op.value!r}")
        right = self.parse_operand()
        compare = _COMPARATORS[op.value]

        def predicate(record: Any) -> bool:
            a, b = left(record), right(record)
            if a is None or b is None:
                return False
            if isinstance(a, str) != isinstance(b, str):
                if op.value in ("==", "!="):
                    return compare(str(a), str(b))
                return False
            return bool(compare(a, b))

        return predicate


def compile_expression(
    expression: str, info_keys: Optional[Iterable[str]] = None
) -> SitePredicate:
    """
    Compile a filter expression into a per-site predicate.

    Args:
        expression: Filter expression text
        info_keys: INFO keys declared in the source header; unknown keys are
            rejected when given

    Returns:
        Callable taking a variant record and returning a bool

    Raises:
        ConfigurationError: On syntax errors or unknown INFO keys
    """
    tokens = tokenize(expression)
    if not tokens:
        raise ConfigurationError("Empty filter expression")
    predicate = _Parser(tokens, info_keys).parse()
    logger.debug(f"Compiled filter expression: {expression}")
    return predicate


class FilterGate:
    """
    Pass/skip decision for each site.

    A gate without a predicate passes every site.
    """

    def __init__(
        self,
        predicate: Optional[SitePredicate] = None,
        logic: FilterLogic = FilterLogic.INCLUDE,
    ):
        self.predicate = predicate
        self.logic = logic

    @classmethod
    def from_expression(
        cls,
        expression: Optional[str],
        logic: FilterLogic = FilterLogic.INCLUDE,
        info_keys: Optional[Iterable[str]] = None,
    ) -> "FilterGate":
        if not expression:
            return cls()
        return cls(compile_expression(expression, info_keys), logic)

    def passes(self, record: Any) -> bool:
        if self.predicate is None:
            return True
        matched = bool(self.predicate(record))
        if self.logic == FilterLogic.EXCLUDE:
            return not matched
        return matched
