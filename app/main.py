"""
Streamlit Frontend for Calm Expenses

A thin presentation layer: every page renders the current ledger and
calls back into LedgerController on user action. No page touches the
collections directly.

DESIGN PRINCIPLES:
1. Simple, calm interface
2. Explicit confirmation before anything is deleted
3. Validation messages shown exactly as the ledger reports them
"""

from datetime import date
from decimal import Decimal

import streamlit as st

from calm_expenses.config import get_settings, validate_all_settings
from calm_expenses.errors import (
    DuplicateRecurringError,
    LedgerError,
    ValidationFailedError,
)
from calm_expenses.models.ledger import TransactionKind
from calm_expenses.orchestrator import LedgerController, create_app_components
from calm_expenses.validation import LedgerValidator


st.set_page_config(
    page_title="Calm Expenses",
    page_icon="🌿",
    layout="centered",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
    }
    .big-number {
        font-size: 2em;
        font-weight: bold;
        color: #2c3e50;
    }
    .income { color: #2e9e5b; }
    .expense { color: #c0392b; }
</style>
""", unsafe_allow_html=True)

KIND_LABELS = {
    TransactionKind.EXPENSE: "Expense",
    TransactionKind.INCOME: "Income",
}

_validator = LedgerValidator()


@st.cache_resource
def get_controller() -> LedgerController:
    """Get or create the ledger controller (cached for the session)."""
    return create_app_components()


def format_money(amount: Decimal) -> str:
    symbol = get_settings().ledger.currency_symbol
    return f"{amount:,.2f} {symbol}"


def format_signed(kind: TransactionKind, amount: Decimal) -> str:
    sign = "+" if kind is TransactionKind.INCOME else "−"
    return f"{sign}{format_money(amount)}"


def show_ledger_error(e: LedgerError) -> None:
    if isinstance(e, ValidationFailedError):
        st.error(_validator.get_user_friendly_summary(e.result))
    else:
        st.error(str(e))


def account_options(ledger: LedgerController) -> dict[str, str]:
    return {a.id: a.name for a in ledger.accounts}


def tag_options(ledger: LedgerController) -> dict[str, str]:
    return {t.id: t.name for t in ledger.tags}


def main():
    """Main application entry point."""
    ledger = get_controller()

    st.sidebar.title("🌿 Calm Expenses")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "➕ New transaction", "🏦 Accounts", "🏷️ Tags", "🔁 Recurring", "⚙️ Settings"],
        index=0,
    )

    if page == "📊 Dashboard":
        render_dashboard_page(ledger)
    elif page == "➕ New transaction":
        render_transaction_page(ledger)
    elif page == "🏦 Accounts":
        render_accounts_page(ledger)
    elif page == "🏷️ Tags":
        render_tags_page(ledger)
    elif page == "🔁 Recurring":
        render_recurring_page(ledger)
    elif page == "⚙️ Settings":
        render_settings_page(ledger)


def render_dashboard_page(ledger: LedgerController):
    """Month-to-date statistics and the latest transactions."""
    today = ledger.today()
    totals = ledger.month_totals(today)

    st.title(today.strftime("%B %Y"))

    col1, col2, col3 = st.columns(3)
    col1.metric("Income", format_money(totals.income))
    col2.metric("Expenses", format_money(totals.expense))
    col3.metric("Total balance", format_money(ledger.total_balance()))

    st.markdown("---")
    st.subheader("Latest transactions")

    transactions = ledger.recent_transactions()
    if not transactions:
        st.info("No transactions yet. Add one from “New transaction”.")
        return

    accounts = account_options(ledger)
    for tx in transactions:
        tags = ", ".join(t.name for t in ledger.resolve_tags(tx.tag_ids))
        parts = [tx.date.isoformat(), accounts.get(tx.account_id, "Account")]
        if tags:
            parts.append(tags)
        if tx.is_recurring:
            parts.append("Recurring")

        col1, col2, col3 = st.columns([4, 2, 1])
        with col1:
            st.markdown(f"**{tx.note or '—'}**  \n{' · '.join(parts)}")
        with col2:
            css = "income" if tx.kind is TransactionKind.INCOME else "expense"
            st.markdown(
                f"<span class='{css}'>{format_signed(tx.kind, tx.amount)}</span>",
                unsafe_allow_html=True,
            )
        with col3:
            with st.popover("Delete"):
                st.write("Delete this transaction?")
                if st.button("Yes, delete", key=f"del-tx-{tx.id}"):
                    ledger.delete_transaction(tx.id)
                    st.rerun()


def render_transaction_page(ledger: LedgerController):
    """Form for a one-off transaction."""
    st.title("➕ New transaction")

    accounts = account_options(ledger)
    tags = tag_options(ledger)

    with st.form("transaction", clear_on_submit=True):
        kind = st.radio(
            "Type",
            options=list(KIND_LABELS),
            format_func=KIND_LABELS.get,
            horizontal=True,
        )
        amount = st.text_input("Amount", placeholder="0.00")
        on = st.date_input("Date", value=ledger.today())
        account_id = st.selectbox(
            "Account",
            options=list(accounts),
            format_func=accounts.get,
        )
        tag_ids = st.multiselect("Tags", options=list(tags), format_func=tags.get)
        note = st.text_input("Note (optional)")
        submitted = st.form_submit_button("Add transaction", type="primary")

    if submitted:
        try:
            ledger.add_transaction(
                kind=kind,
                amount=amount,
                account_id=account_id,
                on=on,
                tag_ids=tag_ids,
                note=note,
            )
            st.success("Transaction added ✅")
        except LedgerError as e:
            show_ledger_error(e)


def render_accounts_page(ledger: LedgerController):
    st.title("🏦 Accounts")

    for account in ledger.accounts:
        with st.expander(f"{account.name} — {format_money(ledger.account_balance(account.id))}"):
            st.caption(f"Initial balance: {format_money(account.initial_balance)}")

            with st.form(f"edit-account-{account.id}"):
                name = st.text_input("Name", value=account.name)
                initial = st.text_input("Initial balance", value=str(account.initial_balance))
                if st.form_submit_button("Save"):
                    try:
                        ledger.update_account(account.id, name, initial)
                        st.rerun()
                    except LedgerError as e:
                        show_ledger_error(e)

            if ledger.account_in_use(account.id):
                st.warning(
                    "This account is used by transactions or recurring templates. "
                    "Deleting it also deletes them."
                )
            confirm = st.checkbox("I understand", key=f"confirm-account-{account.id}")
            if st.button("Delete account", key=f"del-account-{account.id}", disabled=not confirm):
                ledger.delete_account(account.id)
                st.rerun()

    st.markdown("---")
    st.subheader("Add an account")
    with st.form("account", clear_on_submit=True):
        name = st.text_input("Name")
        initial = st.text_input("Initial balance", placeholder="0.00")
        if st.form_submit_button("Add account", type="primary"):
            try:
                ledger.create_account(name, initial)
                st.rerun()
            except LedgerError as e:
                show_ledger_error(e)


def render_tags_page(ledger: LedgerController):
    st.title("🏷️ Tags")

    if not ledger.tags:
        st.info("No tags yet.")

    for tag in ledger.tags:
        with st.expander(tag.name):
            with st.form(f"edit-tag-{tag.id}"):
                name = st.text_input("Name", value=tag.name)
                color = st.color_picker("Colour", value=tag.color)
                if st.form_submit_button("Save"):
                    try:
                        ledger.update_tag(tag.id, name, color)
                        st.rerun()
                    except LedgerError as e:
                        show_ledger_error(e)

            st.caption("Deleting a tag removes it from transactions and recurring templates.")
            if st.button("Delete tag", key=f"del-tag-{tag.id}"):
                ledger.delete_tag(tag.id)
                st.rerun()

    st.markdown("---")
    st.subheader("Add a tag")
    with st.form("tag", clear_on_submit=True):
        name = st.text_input("Name")
        color = st.color_picker("Colour", value="#84d19a")
        if st.form_submit_button("Add tag", type="primary"):
            try:
                ledger.create_tag(name, color)
                st.rerun()
            except LedgerError as e:
                show_ledger_error(e)


def render_recurring_page(ledger: LedgerController):
    st.title("🔁 Recurring")

    accounts = account_options(ledger)
    tags = tag_options(ledger)

    for template in ledger.recurrings:
        status = "Active" if template.active else "Inactive"
        title = (
            f"{template.name} · {format_signed(template.kind, template.amount)} · "
            f"{accounts.get(template.account_id, 'Account')} · {status}"
        )
        with st.expander(title):
            col1, col2, col3 = st.columns(3)
            with col1:
                confirm_inactive = True
                if not template.active:
                    confirm_inactive = st.checkbox(
                        "Add even though inactive",
                        key=f"inactive-{template.id}",
                    )
                if st.button("Add today", key=f"add-rec-{template.id}", disabled=not confirm_inactive):
                    try:
                        ledger.materialize_today(template.id)
                        st.success("Recurring transaction added ✅")
                    except DuplicateRecurringError:
                        st.warning("This recurring template was already added today.")
            with col2:
                label = "Deactivate" if template.active else "Activate"
                if st.button(label, key=f"toggle-rec-{template.id}"):
                    ledger.toggle_recurring(template.id)
                    st.rerun()
            with col3:
                if st.button("Delete", key=f"del-rec-{template.id}"):
                    ledger.delete_recurring(template.id)
                    st.rerun()
            st.caption("Deleting a template keeps the transactions it already created.")

    st.markdown("---")
    st.subheader("Add a recurring template")
    with st.form("recurring", clear_on_submit=True):
        name = st.text_input("Name")
        kind = st.radio(
            "Type",
            options=list(KIND_LABELS),
            format_func=KIND_LABELS.get,
            horizontal=True,
        )
        amount = st.text_input("Amount", placeholder="0.00")
        account_id = st.selectbox("Account", options=list(accounts), format_func=accounts.get)
        tag_ids = st.multiselect("Tags", options=list(tags), format_func=tags.get)
        if st.form_submit_button("Add recurring", type="primary"):
            try:
                ledger.create_recurring(name, kind, amount, account_id, tag_ids)
                st.rerun()
            except LedgerError as e:
                show_ledger_error(e)


def render_settings_page(ledger: LedgerController):
    st.title("⚙️ Settings")

    st.markdown("### Configuration")
    status = validate_all_settings()
    for key in ("storage", "ledger", "app"):
        if status.get(key, False):
            st.success(f"✅ {key.capitalize()} settings loaded")
        else:
            st.error(f"❌ {key.capitalize()} - {status.get(f'{key}_error', 'Invalid')}")

    if status.get("app", False):
        app_settings = get_settings().app
        st.caption(
            f"Environment: {app_settings.app_environment} · "
            f"log level: {app_settings.effective_log_level}"
        )

    st.markdown("### Recent activity")
    events = ledger.audit_logger.recent_events(limit=20)
    if not events:
        st.caption("Nothing recorded yet.")
    for event in events:
        st.markdown(
            f"`{event.timestamp:%Y-%m-%d %H:%M}` **{event.event_type.value}** — {event.description}"
        )

    st.caption(f"Today is {date.today():%d %B %Y}.")


if __name__ == "__main__":
    main()
