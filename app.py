# app.py
import asyncio
import logging

from dotenv import load_dotenv
import streamlit as st

load_dotenv()

from agreement_auditor.agent.extractor import run_extraction
from agreement_auditor.api.attestation import AttestationClient
from agreement_auditor.core.catalog import AgreementCatalog
from agreement_auditor.core.errors import AuditorError
from agreement_auditor.core.formatting import format_currency, format_thousand, parse_number
from agreement_auditor.core.limits import DailyLimitManager
from agreement_auditor.core.session import SubmissionSession

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)

NEW_CATEGORY = "+ New category"

st.set_page_config(page_title="Receipt Verification", page_icon="⚡", layout="centered")

if "session" not in st.session_state:
    st.session_state.catalog = AgreementCatalog()
    st.session_state.session = SubmissionSession(limits=DailyLimitManager())
    st.session_state.attestation = AttestationClient()
    st.session_state.edit_round = 0

catalog: AgreementCatalog = st.session_state.catalog
session: SubmissionSession = st.session_state.session
limits = session.limits


def scan(uploaded_file):
    with st.status("Scanning receipt...", expanded=True) as status:
        try:
            uploaded_file.seek(0)
            asyncio.run(run_extraction(session, uploaded_file, uploaded_file.name))
            status.update(label="Scan complete", state="complete", expanded=False)
        except AuditorError as e:
            logger.error("Extraction failed for %s: %s", uploaded_file.name, e)
            status.update(label="Scan failed", state="error", expanded=False)


def structural_edit(action, *args):
    # Item keys change after add/remove, so widgets must not reuse old state.
    action(*args)
    st.session_state.edit_round += 1
    st.rerun()


def amount_input(container, label, value, key):
    text = container.text_input(label, value=format_thousand(value), key=key)
    try:
        return parse_number(text)
    except ValueError:
        container.error("Not a number")
        return None


# --- Sidebar: agreements and daily limits ---
with st.sidebar:
    stats = catalog.summary()
    st.subheader("Agreements")
    c1, c2, c3 = st.columns(3)
    c1.metric("Active", stats["active"])
    c2.metric("Pending", stats["pending"])
    c3.metric("Expired", stats["expired"])
    st.caption(f"{stats['total']} agreements worth {format_currency(stats['total_value'])}")

    st.subheader("Daily limits")
    with st.form("daily-limits"):
        entered = {}
        for category, limit in sorted(limits.limits.items()):
            entered[category] = st.text_input(
                f"{category} (spent today {format_currency(limits.spent_today(category))})",
                value=format_thousand(limit),
            )
        if st.form_submit_button("Save limits"):
            try:
                for category, text in entered.items():
                    limits.set_limit(category, parse_number(text))
                limits.save()
                st.success("Limits saved")
            except (ValueError, OSError) as e:
                logger.error("Saving daily limits failed: %s", e)
                st.error(f"Could not save limits: {e}")
    st.caption(f"Total daily budget {format_currency(limits.total_daily_budget())}")

st.title("⚡ Receipt Verification")
st.caption("Invoices checked against purchase agreements before attestation")

# --- Agreement ---
active = catalog.active()
if not active:
    st.warning("No active purchase agreements.")
    st.stop()

labels = {f"{a.id} · {a.vendor} · {a.item_name}": a for a in active}
choice = st.selectbox("Purchase agreement", list(labels))
session.select_agreement(labels[choice])
agreement = session.agreement
st.write(
    f"{format_currency(agreement.price_per_unit)} per unit · {agreement.remaining_quantity} units remaining · "
    f"{agreement.contract_period.start} to {agreement.contract_period.end}"
)

# --- Upload ---
uploaded_file = st.file_uploader("Drop an invoice or receipt", type=["png", "jpg", "jpeg", "webp", "avif"])

if uploaded_file is not None and uploaded_file.name != session.filename:
    scan(uploaded_file)

if session.extraction_error:
    st.error(session.extraction_error)
    if uploaded_file is not None and st.button("Retry scan"):
        scan(uploaded_file)
        st.rerun()

invoice = session.invoice
if invoice is not None:
    prefix = f"{session.filename}-{st.session_state.edit_round}"

    vendor = st.text_input("Vendor", value=invoice.vendor, key=f"vendor-{prefix}")
    if vendor != invoice.vendor:
        session.set_vendor(vendor)
    st.caption(f"Invoice {invoice.invoice_number or '-'} · {invoice.invoice_date or 'no date'}")

    options = list(session.categories) + [NEW_CATEGORY]
    current = options.index(invoice.category) if invoice.category in options else None
    category = st.selectbox("Category", options, index=current, placeholder="Choose a category", key=f"cat-{prefix}")
    if category == NEW_CATEGORY:
        name = st.text_input("New category name", key=f"newcat-{prefix}")
        if name.strip() and st.button("Add category"):
            session.set_category(name)
            st.session_state.edit_round += 1
            st.rerun()
    elif category is not None and category != invoice.category:
        session.set_category(category)

    for index, item in enumerate(invoice.line_items):
        cols = st.columns([4, 1, 2, 2, 1])
        description = cols[0].text_input("Description", value=item.description, key=f"desc-{prefix}-{index}")
        quantity = amount_input(cols[1], "Qty", item.quantity, key=f"qty-{prefix}-{index}")
        price = amount_input(cols[2], "Unit price", item.unit_price, key=f"price-{prefix}-{index}")
        session.update_item(index, description=description, quantity=quantity, unit_price=price)
        cols[3].write(format_currency(session.invoice.line_items[index].total))
        if cols[4].button("✕", key=f"remove-{prefix}-{index}", disabled=len(invoice.line_items) <= 1):
            structural_edit(session.remove_item, index)

    if st.button("Add item"):
        structural_edit(session.add_item)

    cols = st.columns(2)
    tax = amount_input(cols[0], "Tax", invoice.tax_amount, key=f"tax-{prefix}")
    printed = amount_input(cols[1], "Printed total", invoice.extracted_total, key=f"total-{prefix}")
    session.update_totals(tax_amount=tax, extracted_total=printed)
    st.write(f"Grand total: {format_currency(session.invoice.grand_total)}")

    if invoice.confidence_score < session.confidence_threshold:
        st.warning(f"Low AI confidence ({invoice.confidence_score:.0%}): {invoice.confidence_reason or 'Low visibility or ambiguous text.'}")
        session.set_manual_verification(st.checkbox("I have checked every field against the receipt"))

    report = session.validation()
    for result in report.results:
        if not result.valid:
            st.error(result.message)
        elif result.needs_escalation:
            st.warning(result.message)
        else:
            st.success(result.message)

decision = session.decision()
if st.button("Submit", disabled=not decision.allowed):
    try:
        receipt = asyncio.run(session.submit(st.session_state.attestation))
        limits.save()
        if receipt.route == "auto-approved":
            st.success(f"✅ Auto-approved · tx {receipt.tx_hash[:18]}…")
        else:
            st.warning(f"⚠️ Sent to CFO for approval · tx {receipt.tx_hash[:18]}…")
        session.reset()
    except (AuditorError, OSError) as e:
        logger.error("Submission failed: %s", e, exc_info=True)
        st.error(f"An error occurred: {e}")
elif not decision.allowed:
    st.caption(f"Submit disabled: {decision.reason}")
    for message in decision.messages:
        st.caption(message)
