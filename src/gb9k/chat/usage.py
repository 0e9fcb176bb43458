"""Usage/cost reconciliation for one exchange."""

from __future__ import annotations

import logging
import math
from decimal import Decimal

from gb9k.core.models import ModelQuote, StreamState, UsageReport

log = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Approximate token count as ceil(chars / 4).

    A rough heuristic for code and English text, not a tokenizer. Only used
    when the server does not report usage.
    """
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def reconcile(
    state: StreamState,
    request_messages: list[dict[str, str]],
    quote: ModelQuote | None,
) -> UsageReport:
    """Compute token counts and cost for a finished exchange.

    Server-reported usage wins; otherwise both sides are estimated. Without
    a usable quote the costs are None ("unavailable"), never zero.
    """
    if state.has_usage:
        prompt_tokens = int(state.prompt_tokens)
        completion_tokens = int(state.completion_tokens)
        estimated = False
    else:
        prompt_chars = sum(len(m.get("content") or "") for m in request_messages)
        prompt_tokens = math.ceil(prompt_chars / CHARS_PER_TOKEN)
        completion_tokens = estimate_tokens(state.text)
        estimated = True

    report = UsageReport(
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        estimated=estimated,
    )

    if quote is None or not quote.has_pricing:
        log.debug("No price quote available, cost unavailable")
        return report

    report.prompt_cost = Decimal(prompt_tokens) * quote.prompt_price
    report.completion_cost = Decimal(completion_tokens) * quote.completion_price
    report.total_cost = report.prompt_cost + report.completion_cost
    return report


def format_number(num: int) -> str:
    """Format a count with k/m suffixes (1234 -> '1.2k')."""
    if num >= 1_000_000:
        return f"{num / 1_000_000:.1f}m"
    if num >= 1000:
        return f"{num / 1000:.1f}k"
    return str(num)


def format_cost(cost: Decimal | None) -> str:
    if cost is None:
        return "unavailable"
    return f"${cost:.6f}"


def format_report(report: UsageReport, model_id: str = "") -> list[str]:
    """Render a usage report as display lines."""
    suffix = " (estimated)" if report.estimated else ""
    lines = []
    if model_id:
        lines.append(f"Model: {model_id}")
    lines += [
        f"Prompt tokens: {format_number(report.prompt_tokens)}{suffix}",
        f"Completion tokens: {format_number(report.completion_tokens)}{suffix}",
        f"Total tokens: {format_number(report.total_tokens)}{suffix}",
    ]
    if report.cost_available:
        lines += [
            f"Prompt cost: {format_cost(report.prompt_cost)}",
            f"Completion cost: {format_cost(report.completion_cost)}",
            f"Total cost: {format_cost(report.total_cost)}",
        ]
    else:
        lines.append("Cost: unavailable (no pricing for this model)")
    return lines
