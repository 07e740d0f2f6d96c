"""
Streamlit Frontend for Household Ledger

A one-screen household account book: record income and expenses,
browse them on a calendar, and review the month.

DESIGN PRINCIPLES:
1. Amounts are always whole multiples of ₩10
2. The list never shows a row the record store has not confirmed
3. Clear error messages in simple language
4. Deletes ask for confirmation
5. Currency only changes how amounts are displayed, never what is stored

All bookkeeping logic lives in ledger.orchestrator; this module only
renders state and forwards clicks.
"""

import asyncio
from datetime import date, datetime
from typing import Optional

import streamlit as st

from ledger.audit import AuditLogger
from ledger.calendar_grid import month_grid, shift_month, shift_week, week_grid, week_of_month
from ledger.config import get_settings, validate_all_settings
from ledger.display import analysis_box_html, day_cell_label, week_cell_markdown
from ledger.models.transaction import (
    CategoryManagerView,
    Currency,
    TransactionType,
)
from ledger.money import format_currency, normalize_amount_input, step_amount_input
from ledger.orchestrator import AppComponents, create_app_components
from ledger.preferences import AppState, PreferenceStore
from ledger.queries import local_date, transactions_on
from ledger.services.exchange_rate import ExchangeRateService
from ledger.validation import ValidationError


# Page configuration
st.set_page_config(
    page_title="Household Ledger",
    page_icon="📒",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
    }
    .income { color: #2563eb; }
    .expense { color: #dc2626; }
    .muted { color: #9ca3af; }
    .analysis-box {
        padding: 20px;
        background-color: #eef2ff;
        border-radius: 10px;
        border-left: 5px solid #6366f1;
        margin: 10px 0;
    }
</style>
""", unsafe_allow_html=True)

WEEKDAY_LABELS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


def run_async(coro):
    """
    Run a coroutine on this session's event loop.

    One loop per browser session, reused across reruns, so pooled HTTP
    clients stay bound to a live loop.
    """
    if "event_loop" not in st.session_state:
        st.session_state.event_loop = asyncio.new_event_loop()
    return st.session_state.event_loop.run_until_complete(coro)


@st.cache_data(ttl=3600, show_spinner=False)
def get_exchange_rate(_audit_logger: Optional[AuditLogger] = None) -> tuple[float, bool]:
    """USD/KRW rate, refreshed at most once an hour. Never fails."""
    service = ExchangeRateService(audit_logger=_audit_logger)
    loop = asyncio.new_event_loop()
    try:
        latest = loop.run_until_complete(service.refresh())
        loop.run_until_complete(service.close())
    finally:
        loop.close()
    return latest.rate, latest.is_fallback


def get_components() -> AppComponents:
    """Per-session components; the ledger list is loaded on first use."""
    if "components" not in st.session_state:
        components = create_app_components(use_storage=True)
        _, ok, message = run_async(components.ledger_flow.load())
        if not ok:
            st.session_state.flash = ("error", message)
        st.session_state.components = components
    return st.session_state.components


def get_app_state() -> AppState:
    if "app_state" not in st.session_state:
        path = get_settings().app.preferences_file
        st.session_state.app_state = AppState(PreferenceStore(path))
    return st.session_state.app_state


def today_for(components: AppComponents) -> date:
    tz = components.ledger_flow.tz
    return datetime.now(tz).date() if tz else date.today()


def make_formatter(components: AppComponents, app_state: AppState):
    rate, _ = get_exchange_rate(components.audit_logger)

    def fmt(amount) -> str:
        return format_currency(amount, app_state.currency, rate)

    return fmt


def show_flash():
    """Show (once) the message left by the previous action."""
    flash = st.session_state.pop("flash", None)
    if flash:
        level, message = flash
        getattr(st, level)(message)


def main():
    """Main application entry point."""
    components = get_components()
    app_state = get_app_state()

    st.sidebar.title("📒 Household Ledger")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📒 Ledger", "📊 Monthly Report", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    st.sidebar.caption(f"Storage: {components.storage_backend}")
    if st.sidebar.button("🔄 Reload"):
        _, ok, message = run_async(components.ledger_flow.load())
        st.session_state.flash = ("success" if ok else "error", message)
        st.rerun()

    show_flash()

    if page == "📒 Ledger":
        render_ledger_page(components, app_state)
    elif page == "📊 Monthly Report":
        render_report_page(components, app_state)
    elif page == "⚙️ Settings":
        render_settings_page(components, app_state)


# =============================================================================
# Ledger page
# =============================================================================

def render_ledger_page(components: AppComponents, app_state: AppState):
    st.title("📒 Ledger")
    fmt = make_formatter(components, app_state)
    flow = components.ledger_flow

    render_summary_cards(flow.report().summary(), fmt)
    st.markdown("---")

    left, right = st.columns([2, 3])
    with left:
        render_entry_form(components, app_state)
        render_category_manager(components, app_state)
    with right:
        render_calendar(components, fmt)
        render_transaction_list(components, fmt)


def render_summary_cards(summary, fmt):
    col1, col2, col3 = st.columns(3)
    col1.metric("Income", fmt(summary.income))
    col2.metric("Expense", fmt(summary.expense))
    col3.metric("Balance", fmt(summary.balance))


def _normalize_amount():
    st.session_state.amount_input = normalize_amount_input(st.session_state.amount_input)


def _step_amount(direction: int):
    st.session_state.amount_input = step_amount_input(
        st.session_state.get("amount_input", ""), direction
    )


def render_entry_form(components: AppComponents, app_state: AppState):
    st.markdown("### ✍️ New entry")

    st.session_state.setdefault("amount_input", "")
    st.session_state.setdefault("description_input", "")

    transaction_type = st.radio(
        "Type",
        options=list(TransactionType),
        format_func=lambda t: "Expense" if t == TransactionType.EXPENSE else "Income",
        horizontal=True,
        index=1,
    )

    amount_col, minus_col, plus_col = st.columns([4, 1, 1])
    with amount_col:
        st.text_input(
            "Amount (₩)",
            key="amount_input",
            on_change=_normalize_amount,
            placeholder="e.g. 12000",
            help="Rounded to the nearest ₩10",
        )
    with minus_col:
        st.button("−10", on_click=_step_amount, args=(-1,))
    with plus_col:
        st.button("+10", on_click=_step_amount, args=(1,))

    st.text_input("Description", key="description_input", placeholder="What was it?")

    categories = app_state.categories
    selected = app_state.selected_category
    index = categories.index(selected) if selected in categories else 0
    app_state.selected_category = st.selectbox("Category", categories, index=index)

    if st.button("💾 Save", type="primary"):
        created, ok, message = run_async(components.ledger_flow.add_transaction(
            raw_amount=st.session_state.amount_input,
            description=st.session_state.description_input,
            category=app_state.selected_category,
            transaction_type=transaction_type,
            categories=categories,
        ))
        if ok:
            st.session_state.pop("amount_input", None)
            st.session_state.pop("description_input", None)
            app_state.reset_form_category()
            st.session_state.flash = ("success", message)
            st.rerun()
        else:
            st.error(message)


def render_category_manager(components: AppComponents, app_state: AppState):
    label = (
        "▾ Manage categories"
        if app_state.manager_view == CategoryManagerView.EXPANDED
        else "▸ Manage categories"
    )
    if st.button(label, key="toggle_categories"):
        app_state.toggle_category_manager()
        st.rerun()

    if app_state.manager_view != CategoryManagerView.EXPANDED:
        return

    audit_logger = components.audit_logger
    pending = app_state.pending_removal
    for name in app_state.categories:
        name_col, remove_col = st.columns([4, 1])
        name_col.write(name)
        if pending == name:
            if name_col.button(f"Remove “{name}”?", key=f"confirm_remove_{name}", type="primary"):
                removed = app_state.confirm_category_removal()
                if removed:
                    run_async(audit_logger.log_category_changed(removed, added=False))
                st.rerun()
            if remove_col.button("Cancel", key=f"cancel_remove_{name}"):
                app_state.cancel_category_removal()
                st.rerun()
        elif remove_col.button("✕", key=f"remove_category_{name}"):
            try:
                app_state.request_category_removal(name)
            except ValidationError as e:
                st.error(str(e))
            else:
                st.rerun()

    new_name = st.text_input("New category", key="new_category_input")
    if st.button("➕ Add category"):
        if app_state.add_category(new_name):
            run_async(audit_logger.log_category_changed(new_name.strip(), added=True))
            st.session_state.pop("new_category_input", None)
            st.rerun()


def render_calendar(components: AppComponents, fmt):
    flow = components.ledger_flow
    today = today_for(components)
    st.session_state.setdefault("calendar_ref", today)
    ref: date = st.session_state.calendar_ref

    mode = st.radio("View", ["Month", "Week"], horizontal=True, key="calendar_mode")

    prev_col, title_col, next_col = st.columns([1, 3, 1])
    step = shift_month if mode == "Month" else shift_week
    if prev_col.button("◀", key="calendar_prev"):
        st.session_state.calendar_ref = step(ref, -1)
        st.rerun()
    if next_col.button("▶", key="calendar_next"):
        st.session_state.calendar_ref = step(ref, 1)
        st.rerun()

    report = flow.report()
    if mode == "Month":
        title_col.markdown(f"#### {ref:%B %Y}")
        days = report.month_calendar(ref, today)
    else:
        title_col.markdown(f"#### {ref:%B %Y} · week {week_of_month(ref)}")
        days = report.week_calendar(ref, today)

    header = st.columns(7)
    for col, name in zip(header, WEEKDAY_LABELS):
        col.caption(name)

    for row_start in range(0, len(days), 7):
        cols = st.columns(7)
        for col, day in zip(cols, days[row_start:row_start + 7]):
            selected = flow.selected_date == day.day
            if col.button(
                day_cell_label(day, fmt) if mode == "Month" else str(day.day.day),
                key=f"day_{day.day.isoformat()}",
                type="primary" if selected else "secondary",
            ):
                flow.select_date(day.day)
                st.rerun()
            if mode == "Week":
                entries = transactions_on(flow.transactions, day.day, flow.tz)
                col.markdown(week_cell_markdown(
                    day, entries, fmt, WEEKDAY_LABELS[day.day.isoweekday() % 7]
                ))

    if flow.selected_date:
        st.caption(f"Showing {flow.selected_date:%Y-%m-%d}. Click the day again to show all.")


def render_transaction_list(components: AppComponents, fmt):
    flow = components.ledger_flow
    st.markdown("### 🧾 Transactions")

    transactions = flow.visible_transactions()
    if not transactions:
        st.info("No transactions yet.")
        return

    pending: Optional[int] = st.session_state.get("pending_delete")

    for t in transactions:
        cols = st.columns([2, 3, 2, 2, 1])
        cols[0].write(f"{local_date(t.created_at, flow.tz):%m-%d}")
        cols[1].write(f"{t.description}  \n*{t.category}*")
        css = "income" if t.is_income else "expense"
        sign = "+" if t.is_income else "−"
        cols[2].markdown(f'<span class="{css}">{sign}{fmt(t.amount)}</span>', unsafe_allow_html=True)

        if pending == t.id:
            if cols[3].button("Delete?", key=f"confirm_delete_{t.id}", type="primary"):
                st.session_state.pending_delete = None
                _, ok, message = run_async(flow.delete_transaction(t.id))
                st.session_state.flash = ("success" if ok else "error", message)
                st.rerun()
            if cols[4].button("Cancel", key=f"cancel_delete_{t.id}"):
                st.session_state.pending_delete = None
                st.rerun()
        elif cols[4].button("🗑", key=f"delete_{t.id}"):
            st.session_state.pending_delete = t.id
            st.rerun()


# =============================================================================
# Monthly report page
# =============================================================================

def _pct_label(pct) -> Optional[str]:
    return None if pct is None else f"{pct:+}%"


def render_report_page(components: AppComponents, app_state: AppState):
    st.title("📊 Monthly Report")
    fmt = make_formatter(components, app_state)
    report = components.ledger_flow.report()
    panel = components.analysis_panel

    st.session_state.setdefault("report_ref", today_for(components))
    ref: date = st.session_state.report_ref

    prev_col, title_col, next_col = st.columns([1, 3, 1])
    if prev_col.button("◀", key="report_prev"):
        st.session_state.report_ref = shift_month(ref, -1)
        panel.reset()
        st.rerun()
    if next_col.button("▶", key="report_next"):
        st.session_state.report_ref = shift_month(ref, 1)
        panel.reset()
        st.rerun()
    title_col.markdown(f"### {ref:%B %Y}")

    current, previous, delta = report.comparison(ref)

    col1, col2, col3 = st.columns(3)
    col1.metric("Income", fmt(current.income), _pct_label(delta.income_delta_pct))
    col2.metric(
        "Expense",
        fmt(current.expense),
        _pct_label(delta.expense_delta_pct),
        delta_color="inverse",
    )
    col3.metric("Balance", fmt(current.balance), fmt(delta.balance_delta))

    figure = components.chart_renderer.monthly_comparison(current, previous, fmt)
    if figure is not None:
        st.plotly_chart(figure, use_container_width=True)

    spending = report.spending_summary(ref)
    st.markdown("#### Top expense categories")
    if spending.top_categories:
        for rank, item in enumerate(spending.top_categories, start=1):
            st.write(f"{rank}. {item.category}: {fmt(item.amount)}")
    else:
        st.caption("No expenses this month.")

    st.markdown("#### 🤖 AI analysis")
    if panel.is_busy:
        st.info("Analyzing...")
    elif st.button("Analyze this month", type="primary"):
        with st.spinner("Analyzing your month..."):
            run_async(panel.request(spending))

    if panel.text:
        st.markdown(analysis_box_html(panel.text), unsafe_allow_html=True)
    elif panel.error:
        st.error(panel.error)


# =============================================================================
# Settings page
# =============================================================================

def render_settings_page(components: AppComponents, app_state: AppState):
    st.title("⚙️ Settings")

    st.markdown("### Display currency")
    currencies = list(Currency)
    choice = st.radio(
        "Currency",
        currencies,
        index=currencies.index(app_state.currency),
        format_func=lambda c: "₩ KRW" if c == Currency.KRW else "$ USD",
        horizontal=True,
    )
    if choice != app_state.currency:
        app_state.set_currency(choice)
        run_async(components.audit_logger.log_preferences_saved(
            choice.value, len(app_state.categories)
        ))
        st.rerun()

    rate, is_fallback = get_exchange_rate(components.audit_logger)
    if is_fallback:
        st.caption(f"1 USD = ₩{rate:,.2f} (fallback rate; the live rate is unavailable)")
    else:
        st.caption(f"1 USD = ₩{rate:,.2f} (refreshed hourly)")

    st.markdown("---")
    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Supabase (Record store)", "supabase"),
        ("Google Sheets (Record store / audit)", "google_sheets"),
        ("Gemini (AI analysis)", "gemini"),
        ("Exchange rate", "exchange_rate"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.caption(f"Active record store: {components.storage_backend}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your API keys. "
        "See `.env.example` for the required variables."
    )


if __name__ == "__main__":
    main()
