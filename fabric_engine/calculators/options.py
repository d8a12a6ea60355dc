from __future__ import annotations

import ast
import logging
import math
import operator
from dataclasses import asdict, dataclass
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..errors import OptionFormulaError
from ..models import OptionCost
from ..utils import parse_number, round2


logger = logging.getLogger(__name__)

FLAT_METHODS = {"fixed", "per-unit", "per-item"}
LINEAR_METHODS = {"per-meter", "per-metre", "per-linear-meter"}
AREA_METHODS = {"per-sqm", "per-square-meter"}
INHERIT = {"", "inherit", "inherited", "default"}


@dataclass(frozen=True)
class OptionContext:
    """Measurements an option is priced against. Lengths in cm."""

    rail_width: float = 0.0
    drop: float = 0.0
    fullness: float = 1.0
    fabric_width: float = 0.0
    fabric_cost: float = 0.0
    fabric_meters: float = 0.0
    fabric_yards: float = 0.0
    widths_required: int = 0
    quantity: int = 1


def _method_of(rec: Optional[Mapping[str, Any]]) -> str:
    if not rec:
        return ""
    raw = rec.get("pricing_method") or (rec.get("extra_data") or {}).get("pricing_method") or ""
    return str(raw).strip().lower().replace("_", "-")


def resolve_pricing_method(
    option: Mapping[str, Any],
    parents: Sequence[Mapping[str, Any]] = (),
    template: Optional[Mapping[str, Any]] = None,
) -> str:
    """First concrete method walking option -> parents (nearest first) -> template -> "fixed"."""
    for rec in (option, *parents):
        method = _method_of(rec)
        if method not in INHERIT:
            return method
    if template:
        method = str(template.get("default_option_pricing_method") or "").strip().lower().replace("_", "-")
        if method not in INHERIT:
            return method
    return "fixed"


# Restricted arithmetic for formula-priced options
_BIN_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}
_UNARY_OPS = {ast.UAdd: operator.pos, ast.USub: operator.neg}
_FUNCS = {"min": min, "max": max, "ceil": math.ceil, "floor": math.floor, "round": round, "abs": abs}


def evaluate_formula(expr: str, names: Mapping[str, float]) -> float:
    """Evaluate an arithmetic expression over ``names``.

    Only numbers, the context names, + - * / // % **, parentheses and
    min/max/ceil/floor/round/abs are accepted.
    """
    try:
        tree = ast.parse(str(expr), mode="eval")
    except SyntaxError as e:
        raise OptionFormulaError(f"Invalid formula {expr!r}: {e.msg}") from e

    def _eval(node: ast.AST) -> float:
        if isinstance(node, ast.Expression):
            return _eval(node.body)
        if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)) and not isinstance(node.value, bool):
            return node.value
        if isinstance(node, ast.Name):
            if node.id not in names:
                raise OptionFormulaError(f"Unknown name {node.id!r} in formula {expr!r}")
            return names[node.id]
        if isinstance(node, ast.BinOp) and type(node.op) in _BIN_OPS:
            return _BIN_OPS[type(node.op)](_eval(node.left), _eval(node.right))
        if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
            return _UNARY_OPS[type(node.op)](_eval(node.operand))
        if (
            isinstance(node, ast.Call)
            and isinstance(node.func, ast.Name)
            and node.func.id in _FUNCS
            and not node.keywords
        ):
            return _FUNCS[node.func.id](*[_eval(a) for a in node.args])
        raise OptionFormulaError(f"Unsupported expression in formula {expr!r}")

    try:
        result = _eval(tree)
    except (ZeroDivisionError, OverflowError, TypeError, ValueError) as e:
        raise OptionFormulaError(f"Formula {expr!r} failed: {e}") from e
    if not math.isfinite(float(result)):
        raise OptionFormulaError(f"Formula {expr!r} is not a finite number")
    return float(result)


def _option_price(option: Mapping[str, Any]) -> float:
    for key in ("price", "base_price", "base_cost"):
        val = parse_number(option.get(key))
        if val is not None:
            return val
    return 0.0


def price_option(
    option: Mapping[str, Any],
    ctx: OptionContext,
    parents: Sequence[Mapping[str, Any]] = (),
    template: Optional[Mapping[str, Any]] = None,
) -> OptionCost:
    """Line cost for one add-on option. Raises OptionFormulaError for a bad formula."""
    price = _option_price(option)
    method = resolve_pricing_method(option, parents, template)
    name = str(option.get("name") or option.get("label") or "Option")
    rail_m = ctx.rail_width / 100.0
    drop_m = ctx.drop / 100.0

    if method in LINEAR_METHODS:
        cost = price * rail_m
        calc = f"{price:g} x {rail_m:g} m rail"
    elif method in AREA_METHODS:
        sqm = ctx.rail_width * ctx.drop / 10000.0
        cost = price * sqm
        calc = f"{price:g} x {sqm:g} sqm"
    elif method == "per-drop":
        cost = price * drop_m
        calc = f"{price:g} x {drop_m:g} m drop"
    elif method == "per-panel":
        cost = price * ctx.quantity
        calc = f"{price:g} x {ctx.quantity} panel(s)"
    elif method == "per-width":
        cost = price * ctx.widths_required
        calc = f"{price:g} x {ctx.widths_required} width(s)"
    elif method == "per-fabric-meter":
        cost = price * ctx.fabric_meters
        calc = f"{price:g} x {ctx.fabric_meters:g} m fabric"
    elif method == "percentage":
        cost = ctx.fabric_cost * price / 100.0
        calc = f"{price:g}% of fabric {ctx.fabric_cost:.2f}"
    elif method == "formula":
        expr = option.get("formula") or (option.get("extra_data") or {}).get("formula")
        if not expr:
            raise OptionFormulaError(f"Option {name!r} is formula-priced but has no formula")
        names = {k: float(v) for k, v in asdict(ctx).items()}
        names["price"] = price
        cost = evaluate_formula(str(expr), names)
        calc = str(expr)
    else:
        if method not in FLAT_METHODS:
            logger.warning("unknown pricing method %r on option %r; priced as fixed", method, name)
        cost = price
        calc = f"{price:g} fixed"

    opt_id = option.get("id")
    return OptionCost(
        id=None if opt_id is None else str(opt_id),
        name=name,
        price=price,
        method=method,
        cost=round2(cost),
        calculation=calc,
    )


def iter_hierarchical(
    hierarchical_options: Optional[Iterable[Mapping[str, Any]]],
) -> Iterable[Tuple[Mapping[str, Any], List[Mapping[str, Any]]]]:
    """Yield (option, parents) for every priced node; parents are nearest first.

    The tree is categories -> subcategories -> sub_subcategories.
    """
    for category in hierarchical_options or []:
        for sub in category.get("subcategories") or []:
            yield sub, [category]
            for leaf in sub.get("sub_subcategories") or []:
                yield leaf, [sub, category]


def selected_ids(form: Mapping[str, Any]) -> set:
    out = set()
    for entry in form.get("selected_options") or []:
        if isinstance(entry, Mapping):
            entry = entry.get("id")
        if entry is not None:
            out.add(str(entry))
    return out


def price_options(
    form: Mapping[str, Any],
    options: Optional[Sequence[Mapping[str, Any]]],
    ctx: OptionContext,
    hierarchical_options: Optional[Sequence[Mapping[str, Any]]] = None,
    template: Optional[Mapping[str, Any]] = None,
) -> Tuple[List[OptionCost], List[str]]:
    """Price the flat option list plus the hierarchical nodes picked in ``form["selected_options"]``.

    A failing formula prices its option at 0 and adds a warning.
    """
    picked = selected_ids(form)
    work: List[Tuple[Mapping[str, Any], Sequence[Mapping[str, Any]]]] = [(o, ()) for o in options or []]
    for node, parents in iter_hierarchical(hierarchical_options):
        if str(node.get("id")) in picked:
            work.append((node, parents))

    lines: List[OptionCost] = []
    warnings: List[str] = []
    for option, parents in work:
        try:
            lines.append(price_option(option, ctx, parents, template))
        except OptionFormulaError as e:
            logger.warning("option priced at 0: %s", e)
            warnings.append(str(e))
            opt_id = option.get("id")
            lines.append(
                OptionCost(
                    id=None if opt_id is None else str(opt_id),
                    name=str(option.get("name") or "Option"),
                    price=_option_price(option),
                    method="formula",
                    cost=0.0,
                    calculation="formula error",
                )
            )
    logger.debug("priced %d option line(s)", len(lines))
    return lines, warnings
