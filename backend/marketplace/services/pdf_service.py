from fpdf import FPDF


def _latin1(text: str) -> str:
    """fpdf built-in fonts are latin-1 only."""
    return text.encode("latin-1", errors="replace").decode("latin-1")


def _money(amount: float | None, currency: str) -> str:
    return f"{amount:,.2f} {currency}" if amount is not None else "-"


def generate_quotation_pdf(quotation, job, professional_name: str, client_name: str) -> bytes:
    """Printable quotation for the client, with price breakdown and validity."""
    pdf = FPDF()
    pdf.set_margins(20, 20, 20)
    pdf.add_page()

    pdf.set_font("Helvetica", "B", 18)
    pdf.multi_cell(0, 10, _latin1(f"Quotation for {job.job_number}"), align="L")
    pdf.ln(2)

    pdf.set_font("Helvetica", "", 11)
    pdf.set_text_color(80, 80, 80)
    pdf.cell(0, 7, _latin1(f"Job: {job.title}"), new_x="LMARGIN", new_y="NEXT")
    pdf.cell(0, 7, _latin1(f"Address: {job.work_address}"), new_x="LMARGIN", new_y="NEXT")
    pdf.cell(0, 7, _latin1(f"Client: {client_name}"), new_x="LMARGIN", new_y="NEXT")
    pdf.cell(0, 7, _latin1(f"Professional: {professional_name}"), new_x="LMARGIN", new_y="NEXT")
    pdf.cell(0, 7, _latin1(f"Issued: {quotation.created_at}"), new_x="LMARGIN", new_y="NEXT")
    pdf.set_text_color(180, 60, 0)
    pdf.cell(0, 7, _latin1(f"Valid until: {quotation.valid_until}"), new_x="LMARGIN", new_y="NEXT")
    pdf.set_text_color(80, 80, 80)
    pdf.cell(0, 7, _latin1(f"Status: {quotation.status}"), new_x="LMARGIN", new_y="NEXT")

    pdf.ln(3)
    pdf.set_draw_color(200, 200, 200)
    pdf.line(20, pdf.get_y(), 190, pdf.get_y())
    pdf.ln(5)

    pdf.set_font("Helvetica", "", 10)
    pdf.set_text_color(0, 0, 0)
    pdf.multi_cell(0, 5, _latin1(quotation.description))
    pdf.ln(3)

    if quotation.estimated_hours:
        pdf.cell(0, 6, _latin1(f"Estimated hours: {quotation.estimated_hours}"), new_x="LMARGIN", new_y="NEXT")
    if quotation.includes_materials:
        materials = quotation.materials_description or "included"
        pdf.cell(0, 6, _latin1(f"Materials: {materials}"), new_x="LMARGIN", new_y="NEXT")
        pdf.cell(
            0, 6, _latin1(f"Materials cost: {_money(quotation.materials_cost, quotation.price_currency)}"),
            new_x="LMARGIN", new_y="NEXT",
        )

    pdf.ln(2)
    pdf.set_font("Helvetica", "B", 12)
    pdf.cell(
        0, 8, _latin1(f"Total: {_money(quotation.total_price, quotation.price_currency)}"),
        new_x="LMARGIN", new_y="NEXT",
    )

    if quotation.terms_and_conditions:
        pdf.ln(4)
        pdf.set_font("Helvetica", "I", 9)
        pdf.multi_cell(0, 5, _latin1(quotation.terms_and_conditions[:5000]))

    return bytes(pdf.output())
