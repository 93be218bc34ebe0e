import os
import re
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd
import plotly.express as px
import requests
import streamlit as st


DEFAULT_HOST_PORTS: Tuple[Tuple[str, int], ...] = (
    ("localhost", 8000),
    ("127.0.0.1", 8000),
    ("host.docker.internal", 8000),
    ("ledger-api", 8000),
)
DEFAULT_API_BASE_CANDIDATES: Sequence[str] = tuple(
    f"http://{host}:{port}" for host, port in DEFAULT_HOST_PORTS
)
_ENV_API_BASE_KEYS = ("MONEYMAP_API_BASE_URL", "API_BASE_URL")
_SECRET_API_BASE_KEYS = ("api_base_url", "API_BASE_URL")
_ENV_CANDIDATE_KEYS = ("MONEYMAP_API_BASE_CANDIDATES", "API_BASE_CANDIDATES")
_SECRET_CANDIDATE_KEYS = ("api_base_candidates", "API_BASE_CANDIDATES")
API_REQUEST_TIMEOUT = 15.0
RECENT_TRANSACTIONS = 8

PAGES = ("dashboard", "transactions", "budgets", "graphs")
LANGUAGES = {"cz": "CZ", "en": "EN"}

# Progress thresholds in percent, checked from the top.
PROGRESS_LEVELS: Tuple[Tuple[float, str, str], ...] = (
    (100.0, "exceeded", "red"),
    (85.0, "warning", "orange"),
    (60.0, "caution", "blue"),
    (0.0, "ok", "green"),
)

TEXT: Dict[str, Dict[str, str]] = {
    "cz": {
        "title": "MoneyMap",
        "dashboard": "Přehled",
        "transactions": "Transakce",
        "budgets": "Rozpočty",
        "graphs": "Grafy",
        "language": "Jazyk",
        "welcome": "Vítejte na vašem finančním přehledu!",
        "total_balance": "Celkový zůstatek",
        "monthly_income": "Měsíční příjem",
        "monthly_expenses": "Měsíční výdaje",
        "recent_transactions": "Poslední transakce",
        "monthly_budgets": "Měsíční rozpočty",
        "no_transactions": "Zatím žádné transakce...",
        "no_budgets": "Zatím žádné rozpočty pro tento měsíc...",
        "over_budget": "Překročeno",
        "add_transaction": "Přidat transakci",
        "type": "Typ",
        "income": "Příjem",
        "expense": "Výdaj",
        "amount": "Částka",
        "category": "Kategorie",
        "notes": "Poznámky",
        "date": "Datum",
        "add": "Přidat",
        "delete": "Smazat",
        "save": "Uložit",
        "edit": "Upravit",
        "add_budget": "Přidat rozpočet",
        "budgets_this_month": "Rozpočty pro tento měsíc",
        "required_fields": "Vyplňte prosím všechna povinná pole.",
        "saved": "Uloženo.",
        "balance_trend": "Vývoj zůstatku",
        "income_vs_expenses": "Příjmy a výdaje",
        "expenses_by_category": "Výdaje podle kategorií",
        "month": "Měsíc",
        "no_expenses": "Tento měsíc zatím žádné výdaje.",
    },
    "en": {
        "title": "MoneyMap",
        "dashboard": "Dashboard",
        "transactions": "Transactions",
        "budgets": "Budgets",
        "graphs": "Graphs",
        "language": "Language",
        "welcome": "Welcome to your financial dashboard!",
        "total_balance": "Total Balance",
        "monthly_income": "Monthly Income",
        "monthly_expenses": "Monthly Expenses",
        "recent_transactions": "Recent Transactions",
        "monthly_budgets": "Monthly Budgets",
        "no_transactions": "No transactions yet...",
        "no_budgets": "No budgets for this month yet...",
        "over_budget": "Over budget",
        "add_transaction": "Add transaction",
        "type": "Type",
        "income": "Income",
        "expense": "Expense",
        "amount": "Amount",
        "category": "Category",
        "notes": "Notes",
        "date": "Date",
        "add": "Add",
        "delete": "Delete",
        "save": "Save",
        "edit": "Edit",
        "add_budget": "Add budget",
        "budgets_this_month": "Budgets for this month",
        "required_fields": "Please fill in all required fields.",
        "saved": "Saved.",
        "balance_trend": "Balance trend",
        "income_vs_expenses": "Income vs expenses",
        "expenses_by_category": "Expenses by category",
        "month": "Month",
        "no_expenses": "No expenses this month yet.",
    },
}


def _first_defined(values) -> Optional[str]:
    for value in values:
        if value:
            return str(value).strip()
    return None


def _normalize_base_url(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    base = str(value).strip().rstrip("/")
    if not base:
        return None
    if not base.startswith(("http://", "https://")):
        base = f"http://{base}"
    return base


def _coerce_candidate_values(raw_value: Any) -> List[str]:
    if raw_value is None:
        return []

    if isinstance(raw_value, (list, tuple, set)):
        raw_items = [str(item) for item in raw_value]
    else:
        raw_items = re.split(r"[,\s]+", str(raw_value))

    candidates: List[str] = []
    for item in raw_items:
        normalized = _normalize_base_url(item)
        if normalized and normalized not in candidates:
            candidates.append(normalized)
    return candidates


def _secret_value(keys: Sequence[str]) -> Optional[str]:
    secrets_obj = getattr(st, "secrets", None)
    if secrets_obj is None or not hasattr(secrets_obj, "get"):
        return None
    try:
        return _first_defined(secrets_obj.get(key) for key in keys)
    except FileNotFoundError:
        # No secrets.toml configured for this deployment.
        return None


def _resolve_api_bases() -> List[str]:
    env_base = _first_defined(os.environ.get(name) for name in _ENV_API_BASE_KEYS)
    manual_base = _normalize_base_url(_first_defined([_secret_value(_SECRET_API_BASE_KEYS), env_base]))

    env_candidate_value = _first_defined(os.environ.get(name) for name in _ENV_CANDIDATE_KEYS)
    resolved_candidates: List[str] = []
    resolved_candidates.extend(_coerce_candidate_values(_secret_value(_SECRET_CANDIDATE_KEYS)))
    resolved_candidates.extend(_coerce_candidate_values(env_candidate_value))

    bases: List[str] = []
    if manual_base:
        bases.append(manual_base)

    for candidate in [*resolved_candidates, *DEFAULT_API_BASE_CANDIDATES]:
        normalized = _normalize_base_url(candidate)
        if normalized and normalized not in bases:
            bases.append(normalized)
    return bases or [DEFAULT_API_BASE_CANDIDATES[0]]


API_BASE_CANDIDATES = list(_resolve_api_bases())
_ACTIVE_API_BASE = API_BASE_CANDIDATES[0]


def get_active_api_base() -> str:
    try:
        return st.session_state.get("api_base", _ACTIVE_API_BASE)
    except RuntimeError:
        return _ACTIVE_API_BASE


def get_api_base_candidates() -> List[str]:
    try:
        candidates = st.session_state.get("api_base_candidates")
    except RuntimeError:
        candidates = None

    if candidates:
        return list(candidates)
    return list(API_BASE_CANDIDATES)


def _set_active_api_base(base: str) -> None:
    global _ACTIVE_API_BASE
    _ACTIVE_API_BASE = base
    try:
        st.session_state["api_base"] = base
    except RuntimeError:
        pass


def _add_api_base_candidate(base: str) -> None:
    candidates = get_api_base_candidates()
    updated = [base] + [candidate for candidate in candidates if candidate != base]
    try:
        st.session_state["api_base_candidates"] = updated
    except RuntimeError:
        pass
    _set_active_api_base(base)


def t(key: str) -> str:
    language = st.session_state.get("language", "cz")
    return TEXT.get(language, TEXT["cz"]).get(key, key)


def render_sidebar() -> str:
    st.sidebar.header(t("title"))

    st.sidebar.radio(
        t("language"),
        list(LANGUAGES),
        format_func=lambda code: LANGUAGES[code],
        horizontal=True,
        key="language",
    )
    page = st.sidebar.radio(t("title"), PAGES, format_func=t, key="page", label_visibility="collapsed")

    with st.sidebar.expander("Backend", expanded=False):
        candidates = get_api_base_candidates()
        active_base = get_active_api_base()
        if active_base not in candidates:
            _add_api_base_candidate(active_base)
            candidates = get_api_base_candidates()

        selected_base = st.selectbox(
            "Known backends",
            candidates,
            index=candidates.index(active_base) if active_base in candidates else 0,
            key="api_base_known_selector",
        )
        if selected_base != active_base:
            _set_active_api_base(selected_base)

        custom_url = st.text_input("Custom URL", key="api_base_custom_input", placeholder="http://localhost:8000")
        if st.button("Use custom URL", key="api_base_custom_button"):
            normalized = _normalize_base_url(custom_url)
            if not normalized:
                st.error("Enter a valid http:// or https:// URL.")
            else:
                _add_api_base_candidate(normalized)
                st.success(f"Active backend updated to {normalized}")

    return page


def _backend_request(method: str, path: str, **kwargs) -> requests.Response:
    normalized_path = path if path.startswith("/") else f"/{path}"
    request_kwargs = dict(kwargs)
    timeout = request_kwargs.pop("timeout", API_REQUEST_TIMEOUT)
    last_exc: Optional[requests.RequestException] = None

    active = get_active_api_base()
    ordered = [active] + [base for base in get_api_base_candidates() if base != active]
    for base in ordered:
        url = f"{base}{normalized_path}"
        try:
            response = requests.request(method, url, timeout=timeout, **request_kwargs)
        except requests.RequestException as exc:
            last_exc = exc
            continue
        _set_active_api_base(base)
        return response

    candidates = ", ".join(ordered)
    raise last_exc or requests.ConnectionError(f"Unable to reach backend via {candidates}")


def show_backend_unreachable_error() -> None:
    attempted = ", ".join(get_api_base_candidates())
    st.error(
        f"Unable to reach the ledger API at {get_active_api_base()}. "
        f"Tried: {attempted}. Ensure the API is running and reachable from this Streamlit app, "
        "or set MONEYMAP_API_BASE_URL / API_BASE_URL to the correct host."
    )


def show_backend_error(response: requests.Response) -> None:
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict) and payload.get("error"):
        details = payload.get("details")
        st.error(f"{payload['error']}: {details}" if details else payload["error"])
    else:
        st.error(f"Backend error ({response.status_code}): {response.text}")


def api_call(method: str, path: str, **kwargs) -> Optional[Any]:
    """Call the ledger API and return the decoded JSON body, or None after reporting the failure."""
    try:
        response = _backend_request(method, path, **kwargs)
    except requests.RequestException:
        show_backend_unreachable_error()
        return None

    if response.status_code >= 400:
        show_backend_error(response)
        return None

    try:
        return response.json()
    except ValueError:
        st.error("Unexpected response from backend.")
        return None


def init_session_state() -> None:
    defaults = {
        "language": "cz",
        "page": PAGES[0],
        "api_base": _ACTIVE_API_BASE,
        "api_base_candidates": list(API_BASE_CANDIDATES),
    }

    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


def format_money(value: float) -> str:
    return f"{value:,.2f} Kč".replace(",", " ")


def progress_level(percentage: float) -> Tuple[str, str]:
    for threshold, level, color in PROGRESS_LEVELS:
        if percentage >= threshold:
            return level, color
    return PROGRESS_LEVELS[-1][1], PROGRESS_LEVELS[-1][2]


def _format_day(item: Dict[str, Any]) -> str:
    if not item.get("year"):
        return "-"
    return f"{item.get('day') or 1}.{item.get('month') or 1}.{item['year']}"


def fetch_dashboard(today: date) -> Optional[Dict[str, Any]]:
    return api_call(
        "get",
        "/reports/dashboard",
        params={
            "month": today.month,
            "year": today.year,
            "language": st.session_state["language"],
            "recent": RECENT_TRANSACTIONS,
        },
    )


def fetch_categories() -> Dict[str, Any]:
    payload = api_call("get", "/categories", params={"language": st.session_state["language"]})
    return payload or {"labels": {}, "income": [], "expense": []}


def render_budget_progress(entry: Dict[str, Any]) -> None:
    budget = entry["budget"]
    level, color = progress_level(entry["percentage"])
    marker = f" :red[**{t('over_budget')}**]" if entry["over_budget"] else ""
    st.markdown(
        f"**{entry['label']}** {format_money(entry['spent'])} / {format_money(budget['amount'])}"
        f" :{color}[{entry['percentage']:.0f} %]{marker}"
    )
    st.progress(entry["display_percentage"] / 100.0, text=level)


def render_dashboard(today: date) -> None:
    st.header(t("dashboard"))
    st.caption(t("welcome"))

    data = fetch_dashboard(today)
    if data is None:
        return

    col1, col2, col3 = st.columns(3)
    col1.metric(t("total_balance"), format_money(data["total_balance"]))
    col2.metric(t("monthly_income"), format_money(data["income"]))
    col3.metric(t("monthly_expenses"), format_money(data["expenses"]))

    st.subheader(t("recent_transactions"))
    recent = data.get("recent_transactions") or []
    if recent:
        st.dataframe(
            pd.DataFrame(
                [
                    {
                        t("date"): _format_day(item),
                        t("category"): item["label"],
                        t("amount"): item["amount"],
                        t("notes"): item.get("notes") or "",
                    }
                    for item in recent
                ]
            ),
            hide_index=True,
            use_container_width=True,
        )
    else:
        st.info(t("no_transactions"))

    st.subheader(t("monthly_budgets"))
    budgets = data.get("budgets") or []
    if not budgets:
        st.info(t("no_budgets"))
    for entry in budgets:
        render_budget_progress(entry)


def render_transactions() -> None:
    st.header(t("transactions"))
    categories = fetch_categories()
    labels: Dict[str, str] = categories.get("labels", {})

    with st.form("transaction_form", clear_on_submit=True):
        st.subheader(t("add_transaction"))
        kind = st.radio(t("type"), ("expense", "income"), format_func=t, horizontal=True)
        options = [option["key"] for option in categories.get(kind, [])]
        category = st.selectbox(
            t("category"),
            options or ["other"],
            format_func=lambda key: labels.get(key, key),
        )
        magnitude = st.number_input(t("amount"), min_value=0.0, step=100.0, format="%.2f")
        notes = st.text_input(t("notes"))
        when = st.date_input(t("date"), value=date.today())
        submitted = st.form_submit_button(t("add"))

    if submitted:
        if magnitude <= 0 or not category:
            st.warning(t("required_fields"))
        else:
            amount = magnitude if kind == "income" else -magnitude
            created = api_call(
                "post",
                "/transactions",
                json={"amount": amount, "category": category, "notes": notes or None, "date": when.isoformat()},
            )
            if created is not None:
                st.success(t("saved"))

    transactions = api_call("get", "/transactions", params={"sort": "recent"})
    if transactions is None:
        return
    if not transactions:
        st.info(t("no_transactions"))
        return

    for item in transactions:
        cols = st.columns([2, 3, 2, 4, 1])
        cols[0].write(_format_day(item))
        cols[1].write(labels.get(item["category"].strip().lower(), item["category"]))
        amount_color = "green" if item["amount"] > 0 else "red"
        cols[2].markdown(f":{amount_color}[{format_money(item['amount'])}]")
        cols[3].write(item.get("notes") or "")
        if cols[4].button(t("delete"), key=f"delete_tx_{item['id']}"):
            if api_call("delete", f"/transactions/{item['id']}") is not None:
                st.rerun()


def render_budgets(today: date) -> None:
    st.header(t("budgets"))
    categories = fetch_categories()
    labels: Dict[str, str] = categories.get("labels", {})

    with st.form("budget_form", clear_on_submit=True):
        st.subheader(t("add_budget"))
        options = [option["key"] for option in categories.get("expense", [])]
        category = st.selectbox(t("category"), options or ["other"], format_func=lambda key: labels.get(key, key))
        amount = st.number_input(t("amount"), min_value=0.0, step=500.0, format="%.2f")
        notes = st.text_input(t("notes"))
        submitted = st.form_submit_button(t("add_budget"))

    if submitted:
        if amount <= 0 or not category:
            st.warning(t("required_fields"))
        else:
            created = api_call(
                "post",
                "/budgets",
                json={
                    "category": category,
                    "amount": amount,
                    "notes": notes or None,
                    "month": today.month,
                    "year": today.year,
                },
            )
            if created is not None:
                st.success(t("saved"))

    st.subheader(t("budgets_this_month"))
    data = fetch_dashboard(today)
    if data is None:
        return
    budgets = data.get("budgets") or []
    if not budgets:
        st.info(t("no_budgets"))
        return

    for entry in budgets:
        budget = entry["budget"]
        render_budget_progress(entry)
        with st.expander(t("edit")):
            with st.form(f"budget_edit_{budget['id']}"):
                new_amount = st.number_input(
                    t("amount"), min_value=0.0, value=float(budget["amount"]), step=500.0, format="%.2f"
                )
                new_notes = st.text_input(t("notes"), value=budget.get("notes") or "")
                saved = st.form_submit_button(t("save"))
            if saved:
                updated = api_call(
                    "put",
                    f"/budgets/{budget['id']}",
                    json={"amount": new_amount, "notes": new_notes or None},
                )
                if updated is not None:
                    st.rerun()
            if st.button(t("delete"), key=f"delete_budget_{budget['id']}"):
                if api_call("delete", f"/budgets/{budget['id']}") is not None:
                    st.rerun()


def render_graphs(today: date) -> None:
    st.header(t("graphs"))

    overview = api_call("get", "/reports/year", params={"year": today.year})
    if overview is None:
        return

    months = overview["months"]
    st.subheader(f"{t('balance_trend')} {overview['year']}")
    balance = pd.DataFrame({t("month"): months, t("total_balance"): overview["balance"]}).set_index(t("month"))
    st.line_chart(balance)

    st.subheader(t("income_vs_expenses"))
    flows = pd.DataFrame(
        {t("month"): months, t("income"): overview["income"], t("expense"): overview["expenses"]}
    ).set_index(t("month"))
    st.bar_chart(flows, stack=False)

    st.subheader(t("expenses_by_category"))
    data = fetch_dashboard(today)
    if data is None:
        return
    shares = data.get("categories") or []
    if not shares:
        st.info(t("no_expenses"))
        return
    frame = pd.DataFrame([{"category": entry["label"], "amount": entry["amount"]} for entry in shares])
    fig = px.pie(frame, values="amount", names="category", hole=0.4)
    fig.update_traces(textposition="inside", textinfo="percent+label")
    st.plotly_chart(fig, use_container_width=True)


def main() -> None:
    st.set_page_config(page_title="MoneyMap", layout="wide")
    init_session_state()
    page = render_sidebar()
    st.caption(f"API base: {get_active_api_base()}")

    today = date.today()
    if page == "dashboard":
        render_dashboard(today)
    elif page == "transactions":
        render_transactions()
    elif page == "budgets":
        render_budgets(today)
    else:
        render_graphs(today)


if __name__ == "__main__":
    main()
