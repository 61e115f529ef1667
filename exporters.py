import os
import re
from datetime import datetime

from jinja2 import Environment, FileSystemLoader, select_autoescape

TEMPLATES_DIR = os.path.join(os.path.dirname(__file__), "templates")
WORD_TEMPLATE = "study_document.html"
BRAND_NAME = "Exegesis AI"
SIGNATURE = "Celpf"

_jinja_env = Environment(
    loader=FileSystemLoader(TEMPLATES_DIR),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


def format_generated_date(generated_at):
    """ISO timestamp -> "dd/mm/yyyy"; anything unparseable is shown as-is."""
    if not generated_at:
        return ""
    try:
        return datetime.fromisoformat(generated_at).strftime("%d/%m/%Y")
    except ValueError:
        return generated_at


def export_filename(document, extension):
    reference = re.sub(r'[\\/:*?"<>|]+', "-", document.meta.reference).strip()
    return f"Estudo - {reference}.{extension}"


def format_publication(book):
    """Publisher and year joined by a comma, skipping missing parts."""
    return ", ".join(part for part in (book.publisher, book.year) if part)


_jinja_env.filters["publication"] = format_publication


def _md_cell(value):
    return (value or "").replace("|", "\\|").replace("\n", " ").strip()


def _md_bullets(items):
    return "\n".join(f"- {item}" for item in items)


def export_markdown(document):
    meta, summary, content = document.meta, document.summary, document.content

    parts = [
        f"# Exegetical Study: {meta.reference}",
        f"**Translation:** {meta.translation}  ",
        f"**Generated on:** {format_generated_date(meta.generated_at)}",
        "---",
        "## Executive Summary",
        summary.executive,
    ]
    if summary.preaching_points:
        parts += ["### Preaching Points", _md_bullets(summary.preaching_points)]

    parts += [
        "---",
        "## Base Text",
        "\n".join(f"> {line}" for line in content.text_base.splitlines() or [""]),
        "## Introduction",
        content.intro_definition,
        "## Context",
        f"**Literary:** {content.context_literary}",
        f"**Historical:** {content.context_historical}",
    ]

    if content.parallels:
        parts.append("## Parallels and Correlations")
        for parallel in content.parallels:
            parts.append(
                f"### {parallel.reference} ({parallel.correlation})\n{parallel.text}"
            )

    if content.intertextuality:
        parts += ["## Intertextuality", content.intertextuality]

    if content.lexical_analysis:
        rows = [
            "| Word | Original | Morphology | Meaning |",
            "|------|----------|------------|---------|",
        ]
        for entry in content.lexical_analysis:
            original = _md_cell(entry.lemma)
            if entry.transliteration:
                original += f" ({_md_cell(entry.transliteration)})"
            rows.append(
                f"| {_md_cell(entry.word)} | {original} | "
                f"{_md_cell(entry.morphology)} | {_md_cell(entry.meaning)} |"
            )
        parts += ["## Lexical Analysis", "\n".join(rows)]

    if content.interpretations:
        parts.append("## Interpretation")
        parts += [f"### {i.tradition}\n{i.summary}" for i in content.interpretations]

    if content.theologians:
        parts.append("### Theologians and Thinkers")
        parts += [f"#### {t.name} ({t.era})\n{t.view}" for t in content.theologians]

    parts += ["## Application", content.implications]

    if content.study_questions:
        parts += ["## Study Questions", _md_bullets(content.study_questions)]

    if content.bibliography:
        parts.append("## Annotated Bibliography")
        for book in content.bibliography:
            publication = format_publication(book)
            line = f"### {book.author}. *{book.title}*."
            if publication:
                line += f" {publication}."
            parts.append(f"{line}\n> {book.annotation}")

    sermon = document.sermon
    if sermon:
        parts += [
            "---",
            f"# Expository Sermon: {sermon.title}",
            f"**Text:** {sermon.text_focus}",
            "## Introduction",
            sermon.introduction,
        ]
        if sermon.points:
            parts.append("## Points")
            for index, point in enumerate(sermon.points, 1):
                parts.append(
                    f"### {index}. {point.title}\n{point.explanation}\n\n"
                    f"*Illustration:* {point.illustration}  \n"
                    f"*Application:* {point.application}"
                )
        parts += ["## Conclusion", sermon.conclusion]

    if document.slides:
        parts += ["---", "## Slide Outline"]
        for index, slide in enumerate(document.slides, 1):
            block = f"### Slide {index}: {slide.title}"
            if slide.bullets:
                block += "\n" + _md_bullets(slide.bullets)
            if slide.image_hint:
                block += f"\n*Visual:* {slide.image_hint}"
            parts.append(block)

    return "\n\n".join(part for part in parts if part is not None).strip() + "\n"


def export_word_html(document):
    """Word-compatible HTML; save it with a .doc extension."""
    template = _jinja_env.get_template(WORD_TEMPLATE)
    return template.render(
        doc=document,
        generated_date=format_generated_date(document.meta.generated_at),
        signature=SIGNATURE,
    )


def export_word_bytes(document):
    # Word needs the BOM to pick up UTF-8 in an HTML .doc file.
    return ("\ufeff" + export_word_html(document)).encode("utf-8")
