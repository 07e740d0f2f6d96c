"""
Text for calendar cells and the analysis box.

Streamlit renders button labels and st.markdown as Markdown, so these
helpers return Markdown strings (with `:blue[...]` / `:red[...]` colour
spans). Income is blue and expense is red throughout.
"""

import html
from typing import Callable, Optional

from ledger.models.transaction import DaySummary, Transaction

Formatter = Callable[[object], str]

INCOME_COLOR = "blue"
EXPENSE_COLOR = "red"
MUTED_COLOR = "gray"

WEEK_PREVIEW_LIMIT = 3


def _md(text: str) -> str:
    # A bare "$" pair would be rendered as LaTeX
    return text.replace("$", "\\$")


def _sign_color(amount) -> str:
    return INCOME_COLOR if amount >= 0 else EXPENSE_COLOR


def day_cell_label(day: DaySummary, fmt: Formatter) -> str:
    """
    Month-grid cell: day number, +income/−expense counts and the absolute
    net coloured by its sign. Days outside the shown month are greyed out.
    """
    lines = [str(day.day.day)]
    if day.has_entries:
        lines.append(
            f":{INCOME_COLOR}[+{day.income_count}] :{EXPENSE_COLOR}[−{day.expense_count}]"
        )
        if day.net != 0:
            lines.append(f":{_sign_color(day.net)}[{_md(fmt(abs(day.net)))}]")

    if not day.in_current_month:
        lines[0] = f":{MUTED_COLOR}[{lines[0]}]"
    return "  \n".join(lines)


def week_cell_markdown(
    day: DaySummary,
    entries: list[Transaction],
    fmt: Formatter,
    weekday_label: str,
    limit: int = WEEK_PREVIEW_LIMIT,
) -> str:
    """
    Week-view column: date header, the first `limit` entries of the day,
    a "+N more" line and the absolute daily total.
    """
    lines = [f"**{day.day.month}/{day.day.day}** {weekday_label}"]
    if not entries:
        lines.append(f":{MUTED_COLOR}[No entries]")
        return "  \n".join(lines)

    for t in entries[:limit]:
        color = INCOME_COLOR if t.is_income else EXPENSE_COLOR
        lines.append(f":{color}[**{_md(fmt(t.amount))}**] {_md(t.description)}")
    if len(entries) > limit:
        lines.append(f":{MUTED_COLOR}[+{len(entries) - limit} more]")
    if day.net != 0:
        lines.append(f":{_sign_color(day.net)}[**Total: {_md(fmt(abs(day.net)))}**]")
    return "  \n".join(lines)


def analysis_box_html(text: Optional[str]) -> str:
    """Model output is untrusted; it is escaped before going into the styled box."""
    body = html.escape(text or "").replace("\n", "<br>")
    return f'<div class="analysis-box">{body}</div>'
