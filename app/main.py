"""
Streamlit Frontend for Invoice Manager

The screens a freelancer or small business uses to bill clients:
invoice list, invoice form, preview, contacts and settings.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Explicit confirmation before anything destructive
3. Clear error messages next to the field that caused them
4. Visual feedback for all operations

The UI holds only form state. Every read and write goes through the
flows in invoice_manager.orchestrator.
"""

from datetime import date
from decimal import Decimal

import streamlit as st

from invoice_manager.backup import ImportValidationError
from invoice_manager.calculations import format_currency
from invoice_manager.config import get_settings, validate_all_settings
from invoice_manager.models.invoice import (
    CompanyProfile,
    Contact,
    ContactFilters,
    ContactType,
    Currency,
    DraftLineItem,
    InvoiceFilters,
    InvoiceStatus,
    PaymentDetails,
    new_id,
)
from invoice_manager.orchestrator import (
    AddressBookFlow,
    BackupFlow,
    InvoiceFlow,
    create_app_components,
)
from invoice_manager.services.export import ExportError
from invoice_manager.services.storage import NotFoundError, StorageError
from invoice_manager.validation import InvoiceValidationError


PAGES = ["📋 Invoices", "📝 Invoice Form", "👁️ Preview", "👥 Contacts", "⚙️ Settings"]

STATUS_BADGES = {
    InvoiceStatus.DRAFT: "⚪ Draft",
    InvoiceStatus.SENT: "🔵 Sent",
    InvoiceStatus.PAID: "🟢 Paid",
    InvoiceStatus.OVERDUE: "🔴 Overdue",
}


# Page configuration
st.set_page_config(
    page_title="Invoice Manager",
    page_icon="🧾",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .big-number {
        font-size: 2.2em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    return create_app_components()


def go_to(page: str) -> None:
    st.session_state.nav = page


def load_draft(draft) -> None:
    """Put a draft into the form; a fresh key resets every form widget."""
    st.session_state.draft = draft
    st.session_state.draft_key = new_id()
    st.session_state.form_errors = {}
    st.session_state.preview_id = None


def main():
    """Main application entry point."""
    invoice_flow, address_book, backup_flow = get_components()

    if "nav" not in st.session_state:
        st.session_state.nav = PAGES[0]
    if "draft" not in st.session_state:
        load_draft(invoice_flow.new_draft())
    if "preview_id" not in st.session_state:
        st.session_state.preview_id = None

    st.sidebar.title("🧾 Invoice Manager")
    st.sidebar.markdown("---")
    page = st.sidebar.radio("Navigate to:", PAGES, key="nav")

    st.sidebar.markdown("---")
    st.sidebar.markdown(
        """
        **Getting started:**
        1. Add your company details in Settings
        2. Add clients in Contacts
        3. Create an invoice and export it as PDF

        Download a backup regularly from Settings.
        """
    )

    if page == "📋 Invoices":
        render_invoices_page(invoice_flow)
    elif page == "📝 Invoice Form":
        render_form_page(invoice_flow, address_book)
    elif page == "👁️ Preview":
        render_preview_page(invoice_flow)
    elif page == "👥 Contacts":
        render_contacts_page(address_book)
    elif page == "⚙️ Settings":
        render_settings_page(address_book, backup_flow)


# =============================================================================
# INVOICE LIST
# =============================================================================

def render_invoices_page(invoice_flow: InvoiceFlow):
    """Render the invoice list with filters and totals."""
    st.title("📋 Invoices")

    def start_new():
        load_draft(invoice_flow.new_draft())
        go_to("📝 Invoice Form")

    st.button("➕ New Invoice", type="primary", on_click=start_new)

    if st.session_state.get("flash"):
        st.warning(st.session_state.pop("flash"))

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        search = st.text_input("Search", placeholder="Client or invoice number")
    with col2:
        status = st.selectbox(
            "Status",
            options=[None] + list(InvoiceStatus),
            format_func=lambda s: "All Statuses" if s is None else s.value.title(),
        )
    with col3:
        start_date = st.date_input("From", value=None)
    with col4:
        end_date = st.date_input("To", value=None)

    filters = InvoiceFilters(
        search=search,
        status=status,
        start_date=start_date,
        end_date=end_date,
    )
    result = invoice_flow.list_invoices(filters)

    col1, col2 = st.columns(2)
    with col1:
        st.markdown("**Invoices**")
        st.markdown(f'<div class="big-number">{result.result_count}</div>', unsafe_allow_html=True)
    with col2:
        st.markdown("**Total Amount**")
        st.markdown(
            f'<div class="big-number">{format_currency(result.total_amount, result.currency.value)}</div>',
            unsafe_allow_html=True,
        )

    st.markdown("---")

    if not result.data_found:
        if filters.is_active:
            st.info("No invoices found. Try adjusting your filters to see more results.")
        else:
            st.info("No invoices found. Use 'New Invoice' to create your first one.")
        return

    for invoice in result.invoices:
        col1, col2, col3, col4, col5 = st.columns([2, 3, 2, 2, 4])
        with col1:
            st.markdown(f"**{invoice.invoice_number}**")
            st.caption(f"{invoice.issue_date:%b %d, %Y}")
        with col2:
            st.markdown(invoice.client.name or "-")
            if invoice.due_date:
                st.caption(f"Due {invoice.due_date:%b %d, %Y}")
        with col3:
            st.markdown(format_currency(invoice.total, invoice.currency.value))
        with col4:
            new_status = st.selectbox(
                "Status",
                options=list(InvoiceStatus),
                index=list(InvoiceStatus).index(invoice.status),
                format_func=lambda s: STATUS_BADGES[s],
                key=f"status_{invoice.id}",
                label_visibility="collapsed",
            )
            if new_status != invoice.status:
                try:
                    invoice_flow.update_status(invoice.id, new_status)
                except StorageError as e:
                    st.error(f"Failed to update status: {e}")
                else:
                    st.rerun()
        with col5:
            render_invoice_actions(invoice_flow, invoice)


def render_invoice_actions(invoice_flow: InvoiceFlow, invoice):
    """View / edit / duplicate / export / delete buttons for one row."""
    def view():
        st.session_state.preview_id = invoice.id
        go_to("👁️ Preview")

    def edit():
        load_draft(invoice_flow.draft_from_invoice(invoice))
        go_to("📝 Invoice Form")

    def duplicate():
        try:
            load_draft(invoice_flow.duplicate_invoice(invoice.id))
            go_to("📝 Invoice Form")
        except NotFoundError:
            st.session_state.flash = "That invoice no longer exists."

    a, b, c, d, e = st.columns(5)
    a.button("👁️", key=f"view_{invoice.id}", help="View", on_click=view)
    b.button("✏️", key=f"edit_{invoice.id}", help="Edit", on_click=edit)
    c.button("📄", key=f"dup_{invoice.id}", help="Duplicate", on_click=duplicate)

    if d.button("⬇️", key=f"pdf_{invoice.id}", help="Export PDF"):
        render_pdf_download(invoice_flow, invoice)

    confirm_key = f"confirm_delete_{invoice.id}"
    if e.button("🗑️", key=f"del_{invoice.id}", help="Delete"):
        st.session_state[confirm_key] = True

    if st.session_state.get(confirm_key):
        st.warning(f"Delete invoice {invoice.invoice_number}? This cannot be undone.")
        yes, no = st.columns(2)
        if yes.button("Delete", key=f"yes_{invoice.id}", type="primary"):
            try:
                invoice_flow.delete_invoice(invoice.id)
            except StorageError as e:
                st.error(f"Failed to delete: {e}")
            else:
                st.session_state[confirm_key] = False
                st.rerun()
        if no.button("Cancel", key=f"no_{invoice.id}"):
            st.session_state[confirm_key] = False
            st.rerun()


def render_pdf_download(invoice_flow: InvoiceFlow, invoice):
    with st.spinner("Generating PDF..."):
        try:
            path = invoice_flow.export_pdf(invoice)
        except ExportError:
            st.error("Failed to generate PDF. Please try again.")
            return

    st.download_button(
        "Download PDF",
        data=path.read_bytes(),
        file_name=path.name,
        mime="application/pdf",
        key=f"download_{invoice.id}",
    )


# =============================================================================
# INVOICE FORM
# =============================================================================

def render_form_page(invoice_flow: InvoiceFlow, address_book: AddressBookFlow):
    """Render the create/edit invoice form."""
    draft = st.session_state.draft
    key = st.session_state.draft_key
    errors = st.session_state.get("form_errors", {})

    st.title("✏️ Edit Invoice" if draft.invoice_id else "📝 New Invoice")

    if address_book.get_company_profile() is None:
        st.warning("Your company details are missing. Add them in Settings before saving.")

    col1, col2, col3 = st.columns(3)
    with col1:
        invoice_number = st.text_input(
            "Invoice Number *", value=draft.invoice_number, key=f"number_{key}"
        )
        if "invoice_number" in errors:
            st.error(errors["invoice_number"])
    with col2:
        issue_date = st.date_input("Date *", value=draft.issue_date, key=f"date_{key}")
    with col3:
        due_date = st.date_input("Due Date *", value=draft.due_date, key=f"due_{key}")
        if "due_date" in errors:
            st.error(errors["due_date"])

    # Client
    contacts = address_book.list_contacts()
    contact_ids = [None] + [c.id for c in contacts]
    names = {c.id: c.name for c in contacts}
    current = draft.client_id if draft.client_id in names else None
    client_id = st.selectbox(
        "Bill To *",
        options=contact_ids,
        index=contact_ids.index(current),
        format_func=lambda cid: (
            (f"Keep: {draft.client.name}" if draft.client else "Select a client")
            if cid is None else names[cid]
        ),
        key=f"client_{key}",
    )
    if "client" in errors:
        st.error(errors["client"])

    # Line items
    st.markdown("### Items")
    items = []
    rows_changed = False
    for index, item in enumerate(draft.items):
        c1, c2, c3, c4, c5 = st.columns([5, 2, 2, 2, 1])
        with c1:
            description = st.text_input(
                "Description", value=item.description, key=f"desc_{key}_{item.id}"
            )
        with c2:
            quantity = st.number_input(
                "Qty", value=float(item.quantity), min_value=0.0, step=1.0,
                key=f"qty_{key}_{item.id}",
            )
        with c3:
            price = st.number_input(
                "Price", value=float(item.price), min_value=0.0, step=0.01,
                format="%.2f", key=f"price_{key}_{item.id}",
            )
        line = DraftLineItem(
            id=item.id,
            description=description,
            quantity=Decimal(str(quantity)),
            price=Decimal(str(price)),
        )
        with c4:
            st.markdown("Total")
            st.markdown(f"**{format_currency(line.total, draft.currency.value)}**")
        with c5:
            removed = st.button("✖", key=f"remove_{key}_{item.id}", help="Remove item")
        for field in ("description", "quantity", "price"):
            message = errors.get(f"items[{index}].{field}")
            if message:
                st.error(message)
        if removed:
            rows_changed = True
        else:
            items.append(line)

    if st.button("➕ Add Item"):
        rows_changed = True
        items.append(DraftLineItem())
    if "items" in errors:
        st.error(errors["items"])

    col1, col2, col3 = st.columns(3)
    with col1:
        tax_rate = st.number_input(
            "Tax Rate (%)", value=float(draft.tax_rate), min_value=0.0, step=0.25,
            key=f"tax_{key}",
        )
    with col2:
        currency = st.selectbox(
            "Currency",
            options=list(Currency),
            index=list(Currency).index(draft.currency),
            format_func=lambda c: c.value,
            key=f"currency_{key}",
        )
    with col3:
        status = st.selectbox(
            "Status",
            options=list(InvoiceStatus),
            index=list(InvoiceStatus).index(draft.status),
            format_func=lambda s: s.value.title(),
            key=f"status_{key}",
        )

    payment_terms = st.text_input("Payment Terms", value=draft.payment_terms, key=f"terms_{key}")
    notes = st.text_area("Notes", value=draft.notes, key=f"notes_{key}")

    draft = draft.model_copy(update={
        "invoice_number": invoice_number.strip(),
        "issue_date": issue_date,
        "due_date": due_date,
        "client_id": client_id,
        "items": items,
        "tax_rate": Decimal(str(tax_rate)),
        "currency": currency,
        "status": status,
        "payment_terms": payment_terms,
        "notes": notes,
    })
    st.session_state.draft = draft
    if rows_changed:
        st.rerun()

    # Totals
    st.markdown("---")
    col1, col2, col3 = st.columns(3)
    col1.metric("Subtotal", format_currency(draft.subtotal, currency.value))
    col2.metric(f"Tax ({tax_rate:g}%)", format_currency(draft.tax_amount, currency.value))
    col3.metric("Total", format_currency(draft.total, currency.value))

    col1, col2 = st.columns(2)
    with col1:
        if st.button("💾 Save Invoice", type="primary"):
            try:
                invoice = invoice_flow.save_draft(draft)
            except InvoiceValidationError as e:
                st.session_state.form_errors = e.result.errors_by_field()
                st.rerun()
            except StorageError as e:
                st.error(f"Failed to save: {e}")
            else:
                for warning in invoice_flow.validate_draft(draft).warnings:
                    st.warning(warning)
                load_draft(invoice_flow.draft_from_invoice(invoice))
                st.session_state.preview_id = invoice.id
                st.success(f"Invoice {invoice.invoice_number} saved.")
    with col2:
        def cancel():
            load_draft(invoice_flow.new_draft())
            go_to("📋 Invoices")

        st.button("Cancel", on_click=cancel)


# =============================================================================
# PREVIEW
# =============================================================================

def render_preview_page(invoice_flow: InvoiceFlow):
    """Render a saved invoice, or the draft in the form."""
    st.title("👁️ Invoice Preview")

    invoice = None
    if st.session_state.preview_id:
        invoice = invoice_flow.get_invoice(st.session_state.preview_id)

    if invoice is None:
        try:
            invoice = invoice_flow.preview(st.session_state.draft)
        except InvoiceValidationError as e:
            st.info("The invoice form is not complete enough to preview yet.")
            with st.expander("Details"):
                for issue in e.result.issues:
                    st.markdown(f"- {issue.field}: {issue.message}")
            return
        st.caption("Unsaved draft")

    st.image(invoice_flow.render(invoice), use_container_width=True)

    if invoice_flow.get_invoice(invoice.id) is not None:
        if st.button("⬇️ Export PDF", type="primary"):
            render_pdf_download(invoice_flow, invoice)


# =============================================================================
# CONTACTS
# =============================================================================

def render_contacts_page(address_book: AddressBookFlow):
    """Render the address book."""
    st.title("👥 Contacts")

    editing_id = st.session_state.get("editing_contact_id")
    editing = address_book.get_contact(editing_id) if editing_id else None

    with st.expander("✏️ Edit Contact" if editing else "➕ Add Contact", expanded=editing is not None):
        contact = render_party_fields(editing or Contact(), prefix=f"contact_{editing_id}")
        contact_type = st.selectbox(
            "Type",
            options=list(ContactType),
            index=list(ContactType).index(editing.contact_type if editing else ContactType.CLIENT),
            format_func=lambda t: t.value.title(),
            key=f"contact_type_{editing_id}",
        )
        if st.button("💾 Save Contact", type="primary"):
            if not contact["name"]:
                st.error("Name is required")
            else:
                base = editing or Contact(name=contact["name"])
                try:
                    address_book.save_contact(
                        base.with_updates(contact_type=contact_type, **contact)
                    )
                except StorageError as e:
                    st.error(f"Failed to save: {e}")
                else:
                    st.session_state.editing_contact_id = None
                    st.rerun()

    col1, col2 = st.columns(2)
    with col1:
        search = st.text_input("Search", placeholder="Name or email")
    with col2:
        contact_type_filter = st.selectbox(
            "Type",
            options=[None] + list(ContactType),
            format_func=lambda t: "All" if t is None else t.value.title(),
        )

    contacts = address_book.list_contacts(ContactFilters(
        search=search,
        contact_type=contact_type_filter,
    ))

    if not contacts:
        st.info("No contacts yet.")
        return

    for contact in contacts:
        col1, col2, col3, col4 = st.columns([3, 3, 1, 1])
        col1.markdown(f"**{contact.name}**  \n{contact.contact_type.value.title()}")
        col2.markdown(f"{contact.email or '-'}  \n{contact.phone or ''}")
        if col3.button("✏️", key=f"edit_contact_{contact.id}"):
            st.session_state.editing_contact_id = contact.id
            st.rerun()
        if col4.button("🗑️", key=f"delete_contact_{contact.id}"):
            try:
                address_book.delete_contact(contact.id)
            except StorageError as e:
                st.error(f"Failed to delete: {e}")
            else:
                st.rerun()


def render_party_fields(party, prefix: str) -> dict:
    """Name and address inputs shared by contacts and the company profile."""
    col1, col2 = st.columns(2)
    with col1:
        name = st.text_input("Name *", value=party.name, key=f"{prefix}_name")
        email = st.text_input("Email", value=party.email, key=f"{prefix}_email")
        phone = st.text_input("Phone", value=party.phone, key=f"{prefix}_phone")
    with col2:
        address = st.text_input("Address", value=party.address, key=f"{prefix}_address")
        city = st.text_input("City", value=party.city, key=f"{prefix}_city")
        c1, c2 = st.columns(2)
        state = c1.text_input("State", value=party.state, key=f"{prefix}_state")
        zip_code = c2.text_input("ZIP", value=party.zip_code, key=f"{prefix}_zip")

    return {
        "name": name.strip(),
        "email": email,
        "phone": phone,
        "address": address,
        "city": city,
        "state": state,
        "zip_code": zip_code,
    }


# =============================================================================
# SETTINGS
# =============================================================================

def render_settings_page(address_book: AddressBookFlow, backup_flow: BackupFlow):
    """Render company profile, backup and configuration status."""
    st.title("⚙️ Settings")

    st.markdown("### Company Profile")
    profile = address_book.get_company_profile() or CompanyProfile()
    fields = render_party_fields(profile, prefix="company")

    details = profile.payment_details or PaymentDetails()
    st.markdown("**Payment Details**")
    col1, col2, col3 = st.columns(3)
    account_name = col1.text_input("Account Name", value=details.account_name)
    account_number = col2.text_input("Account Number", value=details.account_number)
    sort_code = col3.text_input("Sort Code", value=details.sort_code)

    if st.button("💾 Save Company Profile", type="primary"):
        try:
            address_book.save_company_profile(CompanyProfile(
                **fields,
                payment_details=PaymentDetails(
                    account_name=account_name,
                    account_number=account_number,
                    sort_code=sort_code,
                ),
            ))
            st.success("Company profile saved.")
        except StorageError as e:
            st.error(f"Failed to save: {e}")

    st.markdown("---")
    render_backup_section(backup_flow)

    st.markdown("---")
    st.markdown("### Configuration Status")
    app_settings = get_settings().app
    st.caption(
        f"Environment: {app_settings.app_environment}"
        + (" (debug logging on)" if app_settings.debug_mode else "")
    )
    status = validate_all_settings()
    for name in ("storage", "invoice_defaults", "export", "app"):
        if status.get(name, False):
            st.success(f"✅ {name.replace('_', ' ').title()}")
        else:
            st.error(f"❌ {name.replace('_', ' ').title()} - {status.get(f'{name}_error')}")


def render_backup_section(backup_flow: BackupFlow):
    st.markdown("### Backup & Restore")

    # Built on request so that viewing the page does not count as an export
    if st.button("📦 Prepare Backup"):
        st.session_state.backup_download = backup_flow.export_backup(date.today())

    if st.session_state.get("backup_download"):
        text, filename = st.session_state.backup_download
        st.download_button(
            "⬇️ Download Backup",
            data=text,
            file_name=filename,
            mime="application/json",
            on_click=lambda: st.session_state.pop("backup_download", None),
        )

    uploaded = st.file_uploader("Restore from backup", type=["json"])
    if uploaded is None:
        return

    contents = uploaded.getvalue()
    try:
        summary = backup_flow.preview_restore(contents)
    except ImportValidationError as e:
        st.error(f"Error importing data: {e}")
        return

    st.warning(summary.confirmation_message())
    col1, col2 = st.columns(2)
    if col1.button("Replace All Data", type="primary"):
        try:
            backup_flow.restore_backup(contents, confirm=lambda _: True)
        except (ImportValidationError, StorageError) as e:
            st.error(f"Error importing data: {e}")
        else:
            st.success("Data imported successfully.")
            st.session_state.pop("draft", None)
    if col2.button("Cancel Restore"):
        backup_flow.restore_backup(contents, confirm=lambda _: False)
        st.info("Restore cancelled. Nothing was changed.")


if __name__ == "__main__":
    main()
