"""Token cost estimation.

Costs are computed with :class:`decimal.Decimal` so that the rendered figures
add up exactly: ``total_cost`` is the sum of the two already-rounded category
costs, not a separately rounded float.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, getcontext, localcontext

from .models import UsageReport

TOKENS_PER_UNIT = Decimal(1_000_000)
COST_PLACES = Decimal("0.000001")
COST_DIGITS = 6


@dataclass(frozen=True)
class Pricing:
    """Per-category unit prices in dollars per million tokens."""

    input_per_mtok: Decimal = Decimal("3")
    output_per_mtok: Decimal = Decimal("15")


def _exact_context(digits: int):
    """Decimal context wide enough to hold ``digits`` significant digits."""
    context = getcontext().copy()
    context.prec = max(context.prec, digits)
    return localcontext(context)


def calculate_cost(tokens: int, price_per_mtok: Decimal | int | str) -> Decimal:
    """Return the dollar cost of ``tokens`` at ``price_per_mtok``."""
    price = Decimal(price_per_mtok)
    with _exact_context(len(str(tokens)) + len(price.as_tuple().digits) + 2):
        return (Decimal(tokens) / TOKENS_PER_UNIT) * price


def round_cost(value: Decimal) -> Decimal:
    """Round a cost to six decimal places."""
    with _exact_context(value.adjusted() + COST_DIGITS + 2):
        return value.quantize(COST_PLACES, rounding=ROUND_HALF_UP)


def add_costs(first: Decimal, second: Decimal) -> Decimal:
    """Sum two rounded costs without losing digits."""
    with _exact_context(max(first.adjusted(), second.adjusted()) + COST_DIGITS + 3):
        return first + second


def format_cost(value: Decimal) -> str:
    """Render a cost as a fixed-point string with exactly six decimals."""
    return f"{round_cost(value):f}"


def _non_negative(tokens: int | None) -> int:
    if not tokens or tokens < 0:
        return 0
    return int(tokens)


def build_usage_report(
    input_tokens: int | None,
    output_tokens: int | None,
    pricing: Pricing | None = None,
) -> UsageReport:
    """Build a usage report for one completion.

    Args:
        input_tokens: Prompt token count reported by the provider.
        output_tokens: Completion token count reported by the provider.
        pricing: Unit prices; defaults to the standard input/output prices.

    Returns:
        UsageReport with token counts and six-place cost strings.
    """
    pricing = pricing or Pricing()
    input_tokens = _non_negative(input_tokens)
    output_tokens = _non_negative(output_tokens)

    input_cost = round_cost(calculate_cost(input_tokens, pricing.input_per_mtok))
    output_cost = round_cost(calculate_cost(output_tokens, pricing.output_per_mtok))

    return UsageReport(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        input_cost=format_cost(input_cost),
        output_cost=format_cost(output_cost),
        total_cost=format_cost(add_costs(input_cost, output_cost)),
    )
