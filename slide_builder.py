import io

from pptx import Presentation
from pptx.dml.color import RGBColor
from pptx.enum.shapes import MSO_SHAPE
from pptx.enum.text import PP_ALIGN
from pptx.util import Inches, Pt

from exporters import BRAND_NAME, SIGNATURE

SLIDE_WIDTH = Inches(13.333)
SLIDE_HEIGHT = Inches(7.5)
BLANK_LAYOUT = 6

INK = RGBColor(0x1C, 0x19, 0x17)
STONE = RGBColor(0x57, 0x53, 0x4E)
GREY = RGBColor(0x88, 0x88, 0x88)
PANEL = RGBColor(0xF5, 0xF5, 0xF4)
AMBER = RGBColor(0xB4, 0x53, 0x09)
WHITE = RGBColor(0xFF, 0xFF, 0xFF)
SIGNATURE_GREY = RGBColor(0xAA, 0xAA, 0xAA)


def _add_text(slide, text, left, top, width, height, size, color=INK, bold=False,
              italic=False, align=None, font=None):
    box = slide.shapes.add_textbox(left, top, width, height)
    frame = box.text_frame
    frame.word_wrap = True
    paragraph = frame.paragraphs[0]
    run = paragraph.add_run()
    run.text = text or ""
    run.font.size = Pt(size)
    run.font.bold = bold
    run.font.italic = italic
    run.font.color.rgb = color
    if font:
        run.font.name = font
    if align is not None:
        paragraph.alignment = align
    return box


def _add_footer(slide):
    bar = slide.shapes.add_shape(
        MSO_SHAPE.RECTANGLE, 0, Inches(6.9), SLIDE_WIDTH, Inches(0.6)
    )
    bar.fill.solid()
    bar.fill.fore_color.rgb = INK
    bar.line.fill.background()
    _add_text(slide, BRAND_NAME, Inches(0.5), Inches(6.95), Inches(4), Inches(0.5), 12, WHITE)
    _add_text(slide, SIGNATURE, Inches(11.8), Inches(6.95), Inches(1.2), Inches(0.5), 10,
              SIGNATURE_GREY, italic=True)


def _new_slide(deck):
    slide = deck.slides.add_slide(deck.slide_layouts[BLANK_LAYOUT])
    _add_footer(slide)
    return slide


def _add_bullets(slide, bullets, left, top, width, height, size=18):
    box = slide.shapes.add_textbox(left, top, width, height)
    frame = box.text_frame
    frame.word_wrap = True
    for index, bullet in enumerate(bullets):
        paragraph = frame.paragraphs[0] if index == 0 else frame.add_paragraph()
        paragraph.text = f"• {bullet}"
        paragraph.space_after = Pt(8)
        for run in paragraph.runs:
            run.font.size = Pt(size)
            run.font.color.rgb = INK
    return box


def _title_slide(deck, document):
    slide = _new_slide(deck)
    _add_text(slide, document.meta.reference, Inches(1), Inches(2), Inches(11.3), Inches(1.2),
              44, bold=True, align=PP_ALIGN.CENTER, font="Merriweather")
    _add_text(slide, f"Translation: {document.meta.translation}", Inches(1), Inches(3.5),
              Inches(11.3), Inches(0.8), 24, STONE, align=PP_ALIGN.CENTER)


def _content_slide(deck, record):
    slide = _new_slide(deck)
    _add_text(slide, record.title, Inches(0.5), Inches(0.5), Inches(12.3), Inches(0.9),
              28, bold=True, font="Merriweather")
    if record.bullets:
        _add_bullets(slide, record.bullets, Inches(0.5), Inches(1.5), Inches(7.8), Inches(4.8))
    if record.image_hint:
        hint = _add_text(slide, f"Visual suggestion: {record.image_hint}", Inches(8.8),
                         Inches(1.5), Inches(4), Inches(2), 12, GREY, italic=True)
        hint.fill.solid()
        hint.fill.fore_color.rgb = PANEL


def _sermon_slides(deck, sermon):
    divider = _new_slide(deck)
    _add_text(divider, "Sermon Outline", Inches(1), Inches(2.8), Inches(11.3), Inches(1),
              36, align=PP_ALIGN.CENTER)
    _add_text(divider, sermon.title, Inches(1), Inches(3.8), Inches(11.3), Inches(0.8),
              22, STONE, italic=True, align=PP_ALIGN.CENTER)

    for index, point in enumerate(sermon.points, 1):
        slide = _new_slide(deck)
        _add_text(slide, f"{index}. {point.title}", Inches(0.5), Inches(0.5), Inches(12.3),
                  Inches(0.9), 28, bold=True, font="Merriweather")

        box = slide.shapes.add_textbox(Inches(0.5), Inches(1.5), Inches(12.3), Inches(5))
        frame = box.text_frame
        frame.word_wrap = True
        for position, (label, text, color) in enumerate(
            (("Explanation: ", point.explanation, INK), ("Application: ", point.application, AMBER))
        ):
            paragraph = frame.paragraphs[0] if position == 0 else frame.add_paragraph()
            paragraph.space_after = Pt(14)
            heading = paragraph.add_run()
            heading.text = label
            heading.font.bold = True
            heading.font.size = Pt(18)
            heading.font.color.rgb = color
            body = paragraph.add_run()
            body.text = text
            body.font.size = Pt(18)
            body.font.color.rgb = STONE


def export_slides(document):
    """Builds a 16:9 deck from the study's slide records and returns the .pptx bytes."""
    deck = Presentation()
    deck.slide_width = SLIDE_WIDTH
    deck.slide_height = SLIDE_HEIGHT
    deck.core_properties.title = f"Study: {document.meta.reference}"
    deck.core_properties.author = BRAND_NAME

    _title_slide(deck, document)
    for record in document.slides:
        _content_slide(deck, record)
    if document.sermon:
        _sermon_slides(deck, document.sermon)

    buffer = io.BytesIO()
    deck.save(buffer)
    return buffer.getvalue()
