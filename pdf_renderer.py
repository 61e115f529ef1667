import io
import logging
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import (
    KeepTogether,
    PageBreak,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from exporters import BRAND_NAME, SIGNATURE, format_generated_date, format_publication

logger = logging.getLogger(__name__)

PAGE_MARGIN = 18 * mm
INK = colors.HexColor("#1c1917")
MUTED = colors.HexColor("#78716c")
ACCENT = colors.HexColor("#d97706")
RULE = colors.HexColor("#d6d3d1")
PANEL = colors.HexColor("#f5f5f4")
HEADER_ROW = colors.HexColor("#e7e5e4")


def _styles():
    base = getSampleStyleSheet()
    body = ParagraphStyle(
        "StudyBody",
        parent=base["BodyText"],
        fontName="Times-Roman",
        fontSize=11,
        leading=15,
        alignment=TA_JUSTIFY,
        textColor=INK,
        spaceAfter=6,
    )
    return {
        "body": body,
        "small": ParagraphStyle("StudySmall", parent=body, fontSize=9, leading=12),
        "quote": ParagraphStyle(
            "StudyQuote",
            parent=body,
            fontName="Times-Italic",
            leftIndent=12 * mm,
            fontSize=12,
            leading=17,
        ),
        "h2": ParagraphStyle(
            "StudyHeading",
            parent=base["Heading2"],
            fontName="Times-Bold",
            textColor=INK,
            spaceBefore=12,
            spaceAfter=6,
        ),
        "h3": ParagraphStyle(
            "StudySubheading",
            parent=base["Heading3"],
            fontName="Times-Bold",
            textColor=INK,
            spaceBefore=8,
            spaceAfter=4,
        ),
        "cover_brand": ParagraphStyle(
            "CoverBrand",
            parent=base["Title"],
            fontName="Times-Bold",
            fontSize=40,
            leading=46,
            textColor=INK,
            alignment=TA_CENTER,
        ),
        "cover_reference": ParagraphStyle(
            "CoverReference",
            parent=base["Title"],
            fontName="Times-Bold",
            fontSize=30,
            leading=36,
            textColor=INK,
            alignment=TA_CENTER,
        ),
        "cover_line": ParagraphStyle(
            "CoverLine",
            parent=body,
            fontSize=14,
            leading=20,
            alignment=TA_CENTER,
            textColor=MUTED,
        ),
    }


def _p(text, style):
    return Paragraph(escape(text or ""), style)


def _multiline_markup(text):
    return "<br/>".join(escape(line) for line in (text or "").splitlines())


def _bibliography_markup(book):
    markup = f"• <b>{escape(book.author)}</b>. <i>{escape(book.title)}</i>."
    publication = format_publication(book)
    if publication:
        markup += f" {escape(publication)}."
    return f"{markup} {escape(book.annotation)}"


def _labelled(label, text, style):
    return Paragraph(f"<b>{escape(label)}</b> {escape(text or '')}", style)


def _cover(document, styles):
    meta = document.meta
    return [
        Spacer(1, 60 * mm),
        _p(BRAND_NAME, styles["cover_brand"]),
        _p("Systematic Bible Study", styles["cover_line"]),
        Spacer(1, 25 * mm),
        _p(meta.reference, styles["cover_reference"]),
        _p(f"Version: {meta.translation}", styles["cover_line"]),
        Spacer(1, 60 * mm),
        _p(f"Generated on {format_generated_date(meta.generated_at)}", styles["cover_line"]),
        _p(SIGNATURE, styles["cover_line"]),
        PageBreak(),
    ]


def _lexical_table(entries, styles):
    rows = [[_p("Term", styles["small"]), _p("Original", styles["small"]), _p("Meaning & Nuances", styles["small"])]]
    for entry in entries:
        original = f"<b>{escape(entry.lemma)}</b>"
        if entry.transliteration:
            original += f"<br/><i>{escape(entry.transliteration)}</i>"
        if entry.morphology:
            original += f"<br/>{escape(entry.morphology)}"
        rows.append(
            [
                Paragraph(f"<b>{escape(entry.word)}</b>", styles["small"]),
                Paragraph(original, styles["small"]),
                _p(entry.meaning, styles["small"]),
            ]
        )

    table = Table(rows, colWidths=["18%", "27%", "55%"], repeatRows=1)
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), HEADER_ROW),
                ("GRID", (0, 0), (-1, -1), 0.5, RULE),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("TOPPADDING", (0, 0), (-1, -1), 5),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 5),
            ]
        )
    )
    return table


def _panel(flowables):
    table = Table([[flowables]], colWidths=["100%"])
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, -1), PANEL),
                ("LEFTPADDING", (0, 0), (-1, -1), 10),
                ("RIGHTPADDING", (0, 0), (-1, -1), 10),
                ("TOPPADDING", (0, 0), (-1, -1), 8),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 8),
            ]
        )
    )
    return table


def _study_body(document, styles):
    summary, content = document.summary, document.content
    story = [
        _panel([_p("Executive Summary", styles["h3"]), _p(summary.executive, styles["body"])]),
        _p("Base Text", styles["h2"]),
        Paragraph(_multiline_markup(content.text_base), styles["quote"]),
        _p("Introduction", styles["h2"]),
        _p(content.intro_definition, styles["body"]),
        KeepTogether(
            [
                _p("Context", styles["h2"]),
                _labelled("Literary:", content.context_literary, styles["body"]),
                _labelled("Historical:", content.context_historical, styles["body"]),
            ]
        ),
    ]

    if content.parallels:
        story.append(_p("Parallels and Correlations", styles["h2"]))
        story += [
            _labelled(f"{p.reference} ({p.correlation}):", p.text, styles["body"])
            for p in content.parallels
        ]

    if content.lexical_analysis:
        story += [
            _p("Lexical Analysis", styles["h2"]),
            _lexical_table(content.lexical_analysis, styles),
        ]

    if content.interpretations:
        story.append(_p("Theological Interpretation", styles["h2"]))
        story += [
            _labelled(f"{i.tradition}:", i.summary, styles["body"])
            for i in content.interpretations
        ]

    if content.theologians:
        story.append(_p("Relevant Theologians", styles["h2"]))
        story += [
            _labelled(f"{t.name} ({t.era}):", t.view, styles["body"])
            for t in content.theologians
        ]

    story.append(
        _panel([_p("Practical Implications", styles["h3"]), _p(content.implications, styles["body"])])
    )

    if content.study_questions:
        story.append(_p("Study Questions", styles["h2"]))
        story += [_p(f"• {q}", styles["body"]) for q in content.study_questions]

    if content.bibliography:
        story.append(_p("Bibliography", styles["h2"]))
        for book in content.bibliography:
            story.append(Paragraph(_bibliography_markup(book), styles["small"]))
    return story


def _sermon(sermon, styles):
    story = [
        PageBreak(),
        _p(sermon.title, styles["cover_reference"]),
        _p(f"Focus text: {sermon.text_focus}", styles["cover_line"]),
        _p("Introduction", styles["h2"]),
        _p(sermon.introduction, styles["body"]),
    ]
    for index, point in enumerate(sermon.points, 1):
        story.append(
            KeepTogether(
                [
                    _p(f"{index}. {point.title}", styles["h3"]),
                    _p(point.explanation, styles["body"]),
                    _labelled("Illustration:", point.illustration, styles["small"]),
                    _labelled("Application:", point.application, styles["small"]),
                ]
            )
        )
    story += [_p("Conclusion", styles["h2"]), _p(sermon.conclusion, styles["body"])]
    return story


def _draw_page_header(reference):
    def draw(canvas, doc):
        if doc.page == 1:
            return
        canvas.saveState()
        canvas.setFont("Helvetica", 8)
        canvas.setFillColor(MUTED)
        width, height = A4
        canvas.drawString(PAGE_MARGIN, height - 12 * mm, BRAND_NAME.upper())
        canvas.drawRightString(width - PAGE_MARGIN, height - 12 * mm, reference)
        canvas.drawRightString(width - PAGE_MARGIN, 10 * mm, str(doc.page))
        canvas.restoreState()

    return draw


def export_pdf(document):
    """Renders the study as an A4 PDF and returns the file bytes."""
    buffer = io.BytesIO()
    pdf = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=PAGE_MARGIN,
        rightMargin=PAGE_MARGIN,
        topMargin=PAGE_MARGIN,
        bottomMargin=PAGE_MARGIN,
        title=f"Study: {document.meta.reference}",
        author=BRAND_NAME,
    )
    styles = _styles()

    story = _cover(document, styles) + _study_body(document, styles)
    if document.sermon:
        story += _sermon(document.sermon, styles)

    on_page = _draw_page_header(document.meta.reference)
    pdf.build(story, onFirstPage=on_page, onLaterPages=on_page)
    logger.info(f"Rendered PDF for '{document.meta.reference}' ({len(story)} flowables)")
    return buffer.getvalue()
