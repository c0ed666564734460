"""
Streamlit Frontend for Personal Ledger

The screens a user works with: login/registration, bank accounts,
transactions and the dashboard.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Clear error messages in simple language
3. Visual feedback for all operations
4. The UI only talks to the orchestrator's components; every figure
   on the dashboard comes from the ledger, never from the UI itself
"""

from datetime import date

import streamlit as st

from src.auth import AuthService
from src.config import get_settings, validate_all_settings
from src.ledger import LedgerStore
from src.models.ledger import (
    DEFAULT_ACCOUNT_TYPES,
    DEFAULT_CATEGORIES,
    Account,
    SessionUser,
    TransactionType,
)
from src.models.analytics import InsightSeverity
from src.orchestrator import DashboardFlow, create_app_components


# Page configuration
st.set_page_config(
    page_title="Personal Ledger",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)


PAYMENT_METHODS = ["UPI", "Card", "Cash", "Net Banking", "Cheque", "Other"]

INSIGHT_ICONS = {
    InsightSeverity.INFO: "📊",
    InsightSeverity.WARNING: "⚠️",
    InsightSeverity.SUGGESTION: "💡",
}


@st.cache_resource
def get_components() -> tuple[AuthService, LedgerStore, DashboardFlow]:
    """Get or create application components (cached)."""
    return create_app_components()


def money(amount) -> str:
    return f"{get_settings().app.currency_symbol}{amount:,.2f}"


def main():
    """Main application entry point."""
    auth, ledger, dashboard = get_components()
    user = auth.get_current_user()

    st.sidebar.title("💰 Personal Ledger")
    st.sidebar.markdown("---")

    if user is None:
        render_login_page(auth)
        return

    st.sidebar.markdown(f"Signed in as **{user.name}**")
    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "🏦 Accounts", "🧾 Transactions", "⚙️ Settings"],
        index=0,
    )
    st.sidebar.markdown("---")
    if st.sidebar.button("Log out"):
        auth.logout_user()
        st.rerun()

    if page == "📊 Dashboard":
        render_dashboard_page(dashboard, user)
    elif page == "🏦 Accounts":
        render_accounts_page(ledger, user)
    elif page == "🧾 Transactions":
        render_transactions_page(ledger, user)
    elif page == "⚙️ Settings":
        render_settings_page()


def render_login_page(auth: AuthService):
    """Render login and registration forms."""
    st.title("Welcome")
    login_tab, register_tab = st.tabs(["Log in", "Register"])

    with login_tab:
        with st.form("login"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            if st.form_submit_button("Log in"):
                result = auth.login_user(email, password)
                if result.success:
                    st.rerun()
                st.error(result.message)

    with register_tab:
        with st.form("register"):
            name = st.text_input("Full name")
            email = st.text_input("Email", key="register_email")
            password = st.text_input("Password", type="password", key="register_password")
            confirm = st.text_input("Confirm password", type="password")
            if st.form_submit_button("Create account"):
                result = auth.register_user(name, email, password, confirm)
                if result.success:
                    st.success("Registration successful. You can log in now.")
                else:
                    st.error(result.message)


def render_dashboard_page(dashboard: DashboardFlow, user: SessionUser):
    """Render summary cards, insights, recent transactions and trends."""
    st.title("📊 Dashboard")

    result = dashboard.build_summary(user)
    if not result.success:
        st.error(result.message)
        return
    summary = result.data

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Total Balance", money(summary.total_balance))
    col2.metric("Income", money(summary.analytics.total_credit))
    col3.metric("Expenses", money(summary.analytics.total_debit))
    col4.metric(
        "Net Savings",
        money(summary.analytics.net_savings),
        delta=f"{summary.analytics.savings_percentage}%",
        delta_color="inverse" if summary.is_negative_savings else "normal",
    )

    st.markdown("### Insights")
    if not summary.insights:
        st.info("Add transactions to see personalized insights.")
    for insight in summary.insights:
        st.markdown(f"{INSIGHT_ICONS[insight.severity]} {insight.message}")

    st.markdown("### Recent Transactions")
    if not summary.recent_transactions:
        st.info("No transactions yet.")
    else:
        st.dataframe(
            [
                {
                    "Date": r.transaction.date.isoformat(),
                    "Account": r.account_name,
                    "Category": r.transaction.category,
                    "Type": r.transaction.type.value.title(),
                    "Amount": float(r.transaction.signed_amount),
                }
                for r in summary.recent_transactions
            ],
            use_container_width=True,
        )

    trends_result = dashboard.build_trends(user)
    if not trends_result.success:
        st.error(trends_result.message)
        return
    trends = trends_result.data

    st.markdown("### Spending Trends")
    period = st.radio(
        "Group by",
        ["Daily", "Weekly", "Monthly", "Quarterly"],
        index=2,
        horizontal=True,
    )
    series = getattr(trends, period.lower())
    if series:
        st.bar_chart({key: float(value) for key, value in sorted(series.items())})
    else:
        st.info("No expenses recorded yet.")

    col1, col2 = st.columns(2)
    with col1:
        st.markdown("#### By Category")
        if summary.category_spending:
            st.bar_chart({k: float(v) for k, v in summary.category_spending.items()})
    with col2:
        st.markdown("#### By Payment Method")
        if trends.by_payment_method:
            st.bar_chart({k: float(v) for k, v in trends.by_payment_method.items()})

    if trends.breakdown:
        st.markdown("#### Breakdown")
        st.dataframe(
            [
                {
                    "Category": row.category,
                    "Method": row.method,
                    "Amount": float(row.amount),
                    "Count": row.count,
                }
                for row in trends.breakdown
            ],
            use_container_width=True,
        )


def render_accounts_page(ledger: LedgerStore, user: SessionUser):
    """Render the bank account list and forms."""
    st.title("🏦 Accounts")

    with st.expander("Add account", expanded=False):
        with st.form("add_account", clear_on_submit=True):
            bank_name = st.text_input("Bank name")
            account_type = st.selectbox("Account type", DEFAULT_ACCOUNT_TYPES)
            balance = st.number_input("Opening balance", min_value=0.0, step=100.0)
            if st.form_submit_button("Add account"):
                show_result(ledger.add_account(user, bank_name, account_type, str(balance)))

    result = ledger.get_accounts(user)
    if not result.success:
        st.error(result.message)
        return
    if not result.data:
        st.info("No accounts yet. Add your first bank account above.")
        return

    for account in sorted(result.data, key=lambda a: a.created_at):
        render_account_row(ledger, user, account)


def render_account_row(ledger: LedgerStore, user: SessionUser, account: Account):
    col1, col2, col3 = st.columns([3, 2, 1])
    col1.markdown(f"**{account.bank_name}** · {account.account_type}")
    col2.markdown(f"<span class='big-number'>{money(account.balance)}</span>", unsafe_allow_html=True)
    if col3.button("Delete", key=f"delete_account_{account.id}"):
        show_result(ledger.delete_account(user, account.id))
        st.rerun()

    with st.expander(f"Edit {account.bank_name}"):
        with st.form(f"edit_account_{account.id}"):
            bank_name = st.text_input("Bank name", value=account.bank_name)
            account_type = st.text_input("Account type", value=account.account_type)
            if st.form_submit_button("Save"):
                show_result(ledger.update_account(
                    user,
                    account.id,
                    {"bank_name": bank_name, "account_type": account_type},
                ))


def render_transactions_page(ledger: LedgerStore, user: SessionUser):
    """Render the transaction form and the transaction list."""
    st.title("🧾 Transactions")

    accounts_result = ledger.get_accounts(user)
    accounts = accounts_result.data if accounts_result.success else []
    names = {a.id: a.bank_name for a in accounts}

    if not accounts:
        st.info("Add a bank account before recording transactions.")
    else:
        with st.expander("Add transaction", expanded=True):
            with st.form("add_transaction", clear_on_submit=True):
                account_id = st.selectbox(
                    "Account",
                    options=list(names),
                    format_func=lambda x: names[x],
                )
                transaction_type = st.radio(
                    "Type",
                    list(TransactionType),
                    format_func=lambda x: x.value.title(),
                    horizontal=True,
                )
                category = st.selectbox("Category", DEFAULT_CATEGORIES)
                payment_method = st.selectbox("Payment method", PAYMENT_METHODS)
                amount = st.number_input("Amount", min_value=0.0, step=10.0)
                transaction_date = st.date_input("Date", value=date.today())
                notes = st.text_input("Notes")
                if st.form_submit_button("Add transaction"):
                    show_result(ledger.add_transaction(
                        user,
                        account_id,
                        transaction_type,
                        category,
                        payment_method,
                        str(amount),
                        transaction_date,
                        notes,
                    ))

    col1, col2 = st.columns(2)
    start = col1.date_input("From", value=None)
    end = col2.date_input("To", value=None)
    if start and end:
        result = ledger.get_transactions_by_date_range(user, start, end)
    else:
        result = ledger.get_transactions(user)
    if not result.success:
        st.error(result.message)
        return
    if not result.data:
        st.info("No transactions to show.")
        return

    transactions = sorted(result.data, key=lambda t: (t.date, t.created_at), reverse=True)
    for t in transactions:
        col1, col2, col3 = st.columns([4, 2, 1])
        col1.markdown(
            f"{t.date.isoformat()} · **{t.category}** · {names.get(t.account_id, 'Unknown')}"
            + (f" · {t.notes}" if t.notes else "")
        )
        col2.markdown(money(t.signed_amount))
        if col3.button("Delete", key=f"delete_transaction_{t.id}"):
            show_result(ledger.delete_transaction(user, t.id))
            st.rerun()


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Configuration Status")
    status = validate_all_settings()
    for key in ("storage", "google_sheets", "insights", "app"):
        if key not in status:
            continue
        if status[key]:
            st.success(f"✅ {key.replace('_', ' ').title()} - OK")
        else:
            st.error(f"❌ {key.replace('_', ' ').title()} - {status.get(f'{key}_error', 'Invalid')}")

    st.markdown("---")
    st.markdown(f"Storage backend: **{get_settings().storage.backend}**")
    st.markdown(
        "To configure the application, create a `.env` file. "
        "See `.env.example` for the available variables."
    )


def show_result(result):
    if result.success:
        st.success(result.message)
    else:
        st.error(result.message)


if __name__ == "__main__":
    main()
