"""
Formula Types
=============

Tagged union of the formula shapes the configuration can express.

Raw configuration values are loosely shaped: a formula can be a number, a
``$variable`` reference, an expression string or a mapping. ``parse_formula``
converts them into the dataclasses below, each of which carries an explicit
``FormulaType`` discriminant and only the fields relevant to it.

Raw shapes:
    100                                   -> Constant
    "$storage_volume_gb"                  -> VariableRef
    "$hours * $rate_per_hour + 5"         -> Expression
    {type: tiered, volumeVar, tiers}      -> TieredFormula
    {type: multiplier, base, multipliers} -> MultiplierFormula
    {type: conditional, conditions, else} -> ConditionalFormula
    {a: ..., b: ...} (no/unknown type)    -> SumFormula
    [a, b, ...]                           -> SumFormula
    None / bool                           -> NullFormula
"""

import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Optional, Tuple, Union

from estimator.constants import VARIABLE_SIGIL
from estimator.exceptions import FormulaError
from estimator.logger import logger
from estimator.utils import format_number, is_number, to_number


class FormulaType(Enum):
    """Discriminant of every formula variant."""
    CONSTANT = auto()       # Numeric literal
    VARIABLE = auto()       # $name reference
    EXPRESSION = auto()     # Arithmetic string with $name references
    TIERED = auto()         # Volume brackets with per-bracket rates
    MULTIPLIER = auto()     # base × Π factor^(value - 1)
    CONDITIONAL = auto()    # First matching condition wins, else fallback
    SUM = auto()            # Untagged object: sum of its members
    NULL = auto()           # None / booleans, always 0


COMPARISON_OPERATORS = (">", ">=", "<", "<=", "==", "!=")

_VARIABLE_REFERENCE_PATTERN = re.compile(re.escape(VARIABLE_SIGIL) + r"\w+")


# =============================================================================
# Variants
# =============================================================================

@dataclass(frozen=True)
class Constant:
    value: float
    formula_type: FormulaType = FormulaType.CONSTANT


@dataclass(frozen=True)
class VariableRef:
    name: str
    formula_type: FormulaType = FormulaType.VARIABLE


@dataclass(frozen=True)
class Expression:
    text: str
    formula_type: FormulaType = FormulaType.EXPRESSION


@dataclass(frozen=True)
class Tier:
    """
    One volume bracket.

    ``limit`` is the capacity of this bracket alone (not cumulative). A
    limit of ``None`` absorbs all remaining volume.
    """
    limit: Optional[float]
    rate: Union[float, str]


@dataclass(frozen=True)
class TieredFormula:
    volume_var: str
    tiers: Tuple[Tier, ...]
    formula_type: FormulaType = FormulaType.TIERED


@dataclass(frozen=True)
class MultiplierEntry:
    variable: str
    factor: float


@dataclass(frozen=True)
class MultiplierFormula:
    base: str
    multipliers: Tuple[MultiplierEntry, ...]
    formula_type: FormulaType = FormulaType.MULTIPLIER


@dataclass(frozen=True)
class Comparison:
    variable: str
    operator: str
    value: Any


@dataclass(frozen=True)
class ConditionalBranch:
    condition: Comparison
    then: "Formula"


@dataclass(frozen=True)
class ConditionalFormula:
    branches: Tuple[ConditionalBranch, ...]
    otherwise: "Formula"
    formula_type: FormulaType = FormulaType.CONDITIONAL


@dataclass(frozen=True)
class SumFormula:
    members: Tuple["Formula", ...]
    formula_type: FormulaType = FormulaType.SUM


@dataclass(frozen=True)
class NullFormula:
    formula_type: FormulaType = FormulaType.NULL


Formula = Union[
    Constant,
    VariableRef,
    Expression,
    TieredFormula,
    MultiplierFormula,
    ConditionalFormula,
    SumFormula,
    NullFormula,
]

FORMULA_CLASSES = (
    Constant,
    VariableRef,
    Expression,
    TieredFormula,
    MultiplierFormula,
    ConditionalFormula,
    SumFormula,
    NullFormula,
)


# =============================================================================
# Parsing raw configuration
# =============================================================================

def is_formula(value: Any) -> bool:
    return isinstance(value, FORMULA_CLASSES)


def normalize_limit(limit) -> Optional[float]:
    """
    Normalize a tier limit value.

    Missing, null and zero limits mean "remainder" and become None. The
    string "Infinity" (common in YAML/JSON pricing files) is unlimited too.
    """
    if limit is None or limit is False:
        return None
    if isinstance(limit, str):
        if limit.strip().lower() in ("infinity", "inf", ""):
            return None
        try:
            limit = float(limit)
        except ValueError:
            raise FormulaError(f"Invalid tier limit: {limit!r}")
    limit = float(limit)
    if limit == 0 or limit == float("inf"):
        return None
    return limit


def _parse_branch_value(raw: Any) -> Formula:
    # Strings in then/else always go through the expression evaluator.
    if isinstance(raw, str):
        return Expression(raw)
    return parse_formula(raw)


def _parse_tiered(raw: dict) -> TieredFormula:
    tiers = []
    for tier in raw.get("tiers") or []:
        if not isinstance(tier, dict):
            raise FormulaError(f"Tier definition must be a mapping, got {tier!r}")
        rate = tier.get("rate", 0)
        if not isinstance(rate, str):
            rate = float(rate) if is_number(rate) else 0.0
        tiers.append(Tier(limit=normalize_limit(tier.get("limit")), rate=rate))
    return TieredFormula(volume_var=str(raw.get("volumeVar", "")), tiers=tuple(tiers))


def _parse_multiplier(raw: dict) -> MultiplierFormula:
    entries = []
    for entry in raw.get("multipliers") or []:
        if not isinstance(entry, dict):
            raise FormulaError(f"Multiplier definition must be a mapping, got {entry!r}")
        factor = entry.get("factor", 1)
        entries.append(MultiplierEntry(
            variable=str(entry.get("variable", "")),
            factor=to_number(factor, default=1.0),
        ))
    base = raw.get("base", "")
    if is_number(base):
        base = format_number(float(base))
    return MultiplierFormula(base=str(base or ""), multipliers=tuple(entries))


def _parse_conditional(raw: dict) -> ConditionalFormula:
    branches = []
    for condition in raw.get("conditions") or []:
        if not isinstance(condition, dict) or not isinstance(condition.get("if"), dict):
            raise FormulaError(f"Condition must be a mapping with an 'if' clause, got {condition!r}")
        clause = condition["if"]
        branches.append(ConditionalBranch(
            condition=Comparison(
                variable=str(clause.get("variable", "")),
                operator=str(clause.get("operator", "")),
                value=clause.get("value"),
            ),
            then=_parse_branch_value(condition.get("then")),
        ))
    otherwise = raw.get("else", 0)
    return ConditionalFormula(branches=tuple(branches), otherwise=_parse_branch_value(otherwise or 0))


_STRUCTURED_PARSERS = {
    "tiered": _parse_tiered,
    "multiplier": _parse_multiplier,
    "conditional": _parse_conditional,
}


def parse_formula(raw: Any) -> Formula:
    """
    Convert a raw configuration value into a typed formula.

    Already parsed formulas are returned unchanged. Mappings tagged with an
    unknown ``type`` are summed like untagged ones.
    """
    if is_formula(raw):
        return raw

    if is_number(raw):
        return Constant(float(raw))

    if isinstance(raw, str):
        if _VARIABLE_REFERENCE_PATTERN.fullmatch(raw):
            return VariableRef(raw[len(VARIABLE_SIGIL):])
        return Expression(raw)

    if isinstance(raw, dict):
        formula_type = raw.get("type")
        if formula_type is None:
            return SumFormula(tuple(parse_formula(value) for value in raw.values()))
        parser = _STRUCTURED_PARSERS.get(formula_type) if isinstance(formula_type, str) else None
        if parser is None:
            logger.warning(f"Unknown formula type {formula_type!r}, summing its members")
            return SumFormula(tuple(parse_formula(value) for key, value in raw.items() if key != "type"))
        return parser(raw)

    if isinstance(raw, (list, tuple)):
        return SumFormula(tuple(parse_formula(value) for value in raw))

    return NullFormula()
