"""
Streamlit Frontend for Finance Tracker

This is the user interface for tracking a monthly budget: salary,
expenses, savings, extra income and the items waiting for confirmation.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Explicit confirmation for anything that has not happened yet
3. Clear error messages in simple language
4. Visual feedback for all operations
5. No hidden actions

The UI only calls the mutation flow and the query executor:
- Totals are always recomputed, never edited
- Pending items count only after the user approves them
"""

import asyncio
from datetime import date, timedelta
from decimal import Decimal

import streamlit as st

from finance_tracker.audit import create_correlation_id
from finance_tracker.errors import LedgerError
from finance_tracker.models.ledger import (
    ExpenseCategory,
    ExpenseKind,
    Frequency,
    SavingType,
    TransactionType,
)
from finance_tracker.orchestrator import create_app_components
from finance_tracker.services.notifications import (
    CollectingNotificationSink,
    OutcomeStatus,
)
from finance_tracker.session import Session


# Page configuration
st.set_page_config(
    page_title="Finance Tracker",
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


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create the shared storage components (cached)."""
    return create_app_components()


def label(value) -> str:
    return value.value.replace("_", " ").title()


def rupees(amount: Decimal) -> str:
    return f"₹{amount:,.2f}"


def show_outcomes():
    """Turn buffered flow outcomes into toasts."""
    sink: CollectingNotificationSink = st.session_state.sink
    for outcome in sink.drain():
        icon = {
            OutcomeStatus.SUCCESS: "✅",
            OutcomeStatus.WARNING: "⚠️",
            OutcomeStatus.FAILURE: "❌",
        }[outcome.status]
        text = f"{outcome.title}: {outcome.message}" if outcome.message else outcome.title
        st.toast(text, icon=icon)


def run_action(coro) -> bool:
    """Run a flow call; errors were already reported through the sink."""
    try:
        run_async(coro)
        return True
    except LedgerError:
        return False
    finally:
        show_outcomes()


def render_sign_in():
    """Ask for a username and open that user's session."""
    st.title("💰 Finance Tracker")
    st.markdown("Sign in with your username to see your ledger.")

    ledger_storage, profile_storage, audit_logger, _ = get_components()

    with st.form("sign_in"):
        username = st.text_input("Username")
        create = st.checkbox("Create a new profile if this username is new")
        submitted = st.form_submit_button("Sign in", type="primary")

    if submitted and username.strip():
        sink = CollectingNotificationSink()
        session = run_async(Session.open(
            username.strip(),
            ledger_storage,
            profile_storage,
            create_if_missing=create,
            notifier=sink,
            audit_logger=audit_logger,
        ))
        if session is None:
            st.error(f"No profile found for '{username}'.")
            return
        st.session_state.sink = sink
        st.session_state.ledger_session = session
        st.rerun()


def main():
    """Main application entry point."""
    if "ledger_session" not in st.session_state:
        render_sign_in()
        return

    session: Session = st.session_state.ledger_session

    st.sidebar.title("💰 Finance Tracker")
    st.sidebar.markdown(f"Signed in as **{session.profile.username}**")
    st.sidebar.markdown("---")

    pending = len(session.queries.pending_validations())
    page = st.sidebar.radio(
        "Navigate to:",
        [
            "📊 Dashboard",
            "💸 Add Expense",
            "🏦 Add Saving",
            "💵 Add Income",
            f"✅ Validations ({pending})",
            "📜 History",
            "👤 Profile",
            "⚙️ Settings",
        ],
        index=0,
    )

    st.sidebar.markdown("---")
    if st.sidebar.button("🔄 Refresh"):
        run_action(session.refresh())
    if st.sidebar.button("Sign out"):
        del st.session_state["ledger_session"]
        st.rerun()

    if not session.profile.is_complete:
        st.warning("Your profile is incomplete. Add your monthly salary on the Profile page.")

    if page == "📊 Dashboard":
        render_dashboard(session)
    elif page == "💸 Add Expense":
        render_expense_page(session)
    elif page == "🏦 Add Saving":
        render_saving_page(session)
    elif page == "💵 Add Income":
        render_income_page(session)
    elif page.startswith("✅ Validations"):
        render_validations_page(session)
    elif page == "📜 History":
        render_history_page(session)
    elif page == "👤 Profile":
        render_profile_page(session)
    elif page == "⚙️ Settings":
        render_settings_page()


def render_dashboard(session: Session):
    """Totals, breakdowns and recent activity."""
    st.title("📊 Dashboard")

    totals = session.totals()
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Monthly Salary", rupees(totals.monthly_salary))
    col2.metric("Spent", rupees(totals.total_expenses))
    col3.metric("Saved", rupees(totals.total_saved))
    col4.metric("Extra Income", rupees(totals.extra_income))

    st.markdown(
        f'<div class="big-number">{rupees(totals.remaining_balance)}</div>'
        "<p>Remaining this month</p>",
        unsafe_allow_html=True,
    )

    st.markdown("---")
    left, right = st.columns(2)

    with left:
        st.subheader("Expenses by category")
        categories = session.queries.expenses_by_category()
        if categories:
            st.bar_chart({label(c.category): float(c.amount) for c in categories})
        else:
            st.info("No confirmed expenses yet.")

    with right:
        st.subheader("Savings by type")
        for saving_type in session.queries.savings_by_type():
            st.markdown(
                f"**{label(saving_type.type)}**: {rupees(saving_type.amount)} "
                f"({saving_type.percentage}%)"
            )
            st.progress(min(saving_type.percentage / 100, 1.0))

    st.subheader("Recent transactions")
    recent = session.queries.recent_transactions()
    if not recent:
        st.info("No transactions yet.")
    for t in recent:
        sign = "+" if t.type in (TransactionType.INCOME, TransactionType.RETURN) else "-"
        st.markdown(f"{t.date:%d %b %Y} · **{t.title}** · {sign}{rupees(t.amount)}")


def render_expense_page(session: Session):
    """Expense form and the list of recorded expenses."""
    st.title("💸 Add Expense")

    with st.form("expense_form", clear_on_submit=True):
        title = st.text_input("Title", max_chars=50)
        amount = st.number_input("Amount (₹)", min_value=0.0, step=100.0)
        col1, col2 = st.columns(2)
        with col1:
            expense_date = st.date_input("Date", value=date.today())
            category = st.selectbox("Category", list(ExpenseCategory), format_func=label)
        with col2:
            kind = st.selectbox("Type", list(ExpenseKind), format_func=label)
            frequency = st.selectbox("Frequency", list(Frequency), format_func=label)
        description = st.text_area("Description (optional)")
        split_with = st.text_input(
            "Split with (username, optional)",
            help="Half is recorded for you now; the other person approves their half",
        )
        submitted = st.form_submit_button("Save Expense", type="primary")

    if submitted:
        run_action(session.flow.submit_expense(
            {
                "title": title,
                "amount": Decimal(str(amount)),
                "date": expense_date,
                "category": category,
                "kind": kind,
                "frequency": frequency,
                "description": description or None,
                "split_with": split_with.strip() or None,
            },
            correlation_id=create_correlation_id(),
        ))

    st.markdown("---")
    st.subheader("Your expenses")
    col1, col2, col3 = st.columns(3)
    with col1:
        search = st.text_input("Search", key="expense_search")
    with col2:
        category_filter = st.selectbox(
            "Category",
            options=[None] + list(ExpenseCategory),
            format_func=lambda x: "All Categories" if x is None else label(x),
        )
    with col3:
        kind_filter = st.selectbox(
            "Type",
            options=[None] + list(ExpenseKind),
            format_func=lambda x: "All Types" if x is None else label(x),
        )

    for expense in session.queries.search_expenses(search, category_filter, kind_filter):
        status = "✅" if expense.is_validated else "⏳"
        split = f" · split ({expense.split_status.value})" if expense.is_split else ""
        cols = st.columns([6, 1])
        cols[0].markdown(
            f"{status} {expense.date:%d %b %Y} · **{expense.title}** · "
            f"{rupees(expense.amount)} · {label(expense.category)}{split}"
        )
        if cols[1].button("🗑️", key=f"del_expense_{expense.id}"):
            if run_action(session.flow.delete_expense(expense.id)):
                st.rerun()


def render_saving_page(session: Session):
    """Saving form and the list of recorded savings."""
    st.title("🏦 Add Saving")

    with st.form("saving_form", clear_on_submit=True):
        title = st.text_input("Title", max_chars=50)
        amount = st.number_input("Amount (₹)", min_value=0.0, step=500.0)
        col1, col2 = st.columns(2)
        with col1:
            saving_date = st.date_input("Date", value=date.today())
            saving_type = st.selectbox("Type", list(SavingType), format_func=label)
            frequency = st.selectbox("Frequency", list(Frequency), format_func=label)
        with col2:
            return_rate = st.number_input("Expected return (%)", min_value=0.0, step=0.5)
            return_frequency = st.selectbox(
                "Return frequency",
                options=[None] + list(Frequency),
                format_func=lambda x: "No return" if x is None else label(x),
            )
        description = st.text_area("Description (optional)")
        submitted = st.form_submit_button("Save Saving", type="primary")

    if submitted:
        run_action(session.flow.submit_saving(
            {
                "title": title,
                "amount": Decimal(str(amount)),
                "date": saving_date,
                "type": saving_type,
                "frequency": frequency,
                "return_rate": Decimal(str(return_rate)) if return_rate else None,
                "return_frequency": return_frequency,
                "description": description or None,
            },
            correlation_id=create_correlation_id(),
        ))

    st.markdown("---")
    st.subheader("Your savings")
    col1, col2 = st.columns(2)
    with col1:
        search = st.text_input("Search", key="saving_search")
    with col2:
        type_filter = st.selectbox(
            "Type",
            options=[None] + list(SavingType),
            format_func=lambda x: "All Types" if x is None else label(x),
        )

    for saving in session.queries.search_savings(search, type_filter):
        status = "✅" if saving.is_validated else "⏳"
        cols = st.columns([6, 1])
        cols[0].markdown(
            f"{status} {saving.date:%d %b %Y} · **{saving.title}** · "
            f"{rupees(saving.amount)} · {label(saving.type)}"
        )
        if cols[1].button("🗑️", key=f"del_saving_{saving.id}"):
            if run_action(session.flow.delete_saving(saving.id)):
                st.rerun()


def render_income_page(session: Session):
    """Extra income form."""
    st.title("💵 Add Income")
    st.markdown("Record money received outside your monthly salary.")

    with st.form("income_form", clear_on_submit=True):
        title = st.text_input("Title", max_chars=50)
        amount = st.number_input("Amount (₹)", min_value=0.0, step=100.0)
        description = st.text_area("Description (optional)")
        submitted = st.form_submit_button("Add Income", type="primary")

    if submitted:
        run_action(session.flow.add_income(
            Decimal(str(amount)),
            title,
            description or None,
            correlation_id=create_correlation_id(),
        ))


def render_validations_page(session: Session):
    """The queue of items waiting for approve / reject."""
    st.title("✅ Pending Validations")
    st.markdown("Nothing here counts toward your balance until you approve it.")

    items = session.queries.pending_validations()
    if not items:
        st.info("Nothing is waiting for you.")
        return

    for item in items:
        with st.container(border=True):
            st.markdown(f"**{item.title}** · {rupees(item.amount)}")
            st.caption(
                f"{label(item.type)} · dated {item.date:%d %b %Y} · "
                f"respond by {item.expires_at:%d %b %Y}"
            )
            if item.description:
                st.markdown(item.description)
            col1, col2 = st.columns(2)
            if col1.button("Approve", key=f"approve_{item.id}", type="primary"):
                if run_action(session.flow.validate_item(item.id, approved=True)):
                    st.rerun()
            if col2.button("Reject", key=f"reject_{item.id}"):
                if run_action(session.flow.validate_item(item.id, approved=False)):
                    st.rerun()


def render_history_page(session: Session):
    """Searchable transaction history."""
    st.title("📜 History")

    col1, col2, col3 = st.columns(3)
    with col1:
        search = st.text_input("Search title or description")
    with col2:
        type_filter = st.selectbox(
            "Type",
            options=[None] + list(TransactionType),
            format_func=lambda x: "All Types" if x is None else label(x),
        )
    with col3:
        date_range = st.date_input(
            "Date Range",
            value=(date.today() - timedelta(days=30), date.today()),
        )

    date_from, date_to = (None, None)
    if isinstance(date_range, (list, tuple)) and len(date_range) == 2:
        date_from, date_to = date_range

    transactions = session.queries.search_transactions(
        search=search,
        type=type_filter,
        date_from=date_from,
        date_to=date_to,
    )
    if not transactions:
        st.info("No transactions match these filters.")
        return

    st.dataframe(
        [
            {
                "Date": t.date.isoformat(),
                "Title": t.title,
                "Type": label(t.type),
                "Category": t.category or "",
                "Amount": float(t.amount),
            }
            for t in transactions
        ],
        use_container_width=True,
    )


def render_profile_page(session: Session):
    """Name, contact details and monthly salary."""
    st.title("👤 Profile")
    profile = session.profile

    with st.form("profile_form"):
        name = st.text_input("Name", value=profile.name)
        email = st.text_input("Email", value=profile.email)
        phone_number = st.text_input("Phone number", value=profile.phone_number)
        monthly_salary = st.number_input(
            "Monthly salary (₹)",
            min_value=0.0,
            value=float(profile.monthly_salary),
            step=1000.0,
        )
        submitted = st.form_submit_button("Save Profile", type="primary")

    if submitted:
        run_action(session.flow.update_profile(
            name=name,
            email=email,
            phone_number=phone_number,
            monthly_salary=Decimal(str(monthly_salary)),
        ))


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    from finance_tracker.config import get_settings, validate_all_settings

    status = validate_all_settings()

    services = [
        ("Application settings", "app"),
        ("Google Sheets (Storage)", "google_sheets"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    _, _, _, sheets_client = get_components()
    backend = "Google Sheets" if sheets_client else "In-memory (data is lost on restart)"
    st.markdown(f"**Active storage:** {backend}")

    if status.get("app"):
        app_settings = get_settings().app
        st.markdown(
            f"- Split requests wait **{app_settings.split_validation_days} days**\n"
            f"- Amounts above **{rupees(Decimal(str(app_settings.max_amount_inr)))}** are flagged"
        )

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file. "
        "See `.env.example` for the required variables."
    )


if __name__ == "__main__":
    main()
