from collections import namedtuple

from study_models import Depth

DepthProfile = namedtuple(
    "DepthProfile", ["tone", "guidance", "lexical", "theology", "sermon"]
)

DEPTH_PROFILES = {
    Depth.QUICK: DepthProfile(
        tone="Devotional, inspiring, practical and concise. Simple, direct language.",
        guidance="Prioritize brevity. The goal is quick reading and edification.",
        lexical=(
            "Select 3 to 5 essential key words. Include basic morphology and at "
            "least 2 nuances of meaning for each one."
        ),
        theology=(
            "Present 3 or 4 main views focused on broad Christian consensus "
            "(e.g. Historical, Evangelical, Practical Application). Avoid "
            "excessive controversy."
        ),
        sermon=(
            "Generate a short DEVOTIONAL sermon outline. Define the exact textual "
            "focus. Use clear Bible references to support each application."
        ),
    ),
    Depth.DETAILED: DepthProfile(
        tone="Educational, didactic and balanced. Accessible but robust language.",
        guidance=(
            "Balance depth and clarity. Ideal for preparing a Sunday School class."
        ),
        lexical=(
            "Select 5 to 7 important words. Include detailed morphology (part of "
            "speech, tense, voice, mood) and explain at least 2 nuances of meaning "
            "for each term."
        ),
        theology=(
            "Present a wide range of interpretive lines (at least 5 to 7), going "
            "beyond the basics. Include: Catholic tradition, Reformed (Calvinist), "
            "Lutheran, Arminian-Wesleyan, Pentecostal/Charismatic and Contemporary. "
            "Highlight the nuances between them."
        ),
        sermon=(
            "Generate a balanced EXPOSITORY sermon outline. Every application point "
            "MUST contain supporting Bible quotations with references (e.g. Jo 1:1)."
        ),
    ),
    Depth.ACADEMIC: DepthProfile(
        tone="Strictly academic, critical and exegetical. Formal, technical language.",
        guidance=(
            "Prioritize depth and technical precision. The interpretation section "
            "must confront different schools of thought and include dissenting voices."
        ),
        lexical=(
            "Deep analysis of 5 to 7 words. Full morphology is MANDATORY (part of "
            "speech, tense, voice, mood, case) and explore at least 2 distinct "
            "translation or meaning nuances."
        ),
        theology=(
            "Exhaustive analysis of interpretive lines (at least 6). Necessarily "
            "include: 1. Patristic/Medieval exegesis; 2. Magisterial Reformation "
            "(Calvin/Luther); 3. Eastern Orthodoxy; 4. Modern/Historical-critical "
            "perspective; 5. Pentecostal/Charismatic view; 6. Jewish perspective "
            "(if Old Testament) or Anabaptist. Confront the arguments."
        ),
        sermon=(
            "Generate a SOLID and dense EXPOSITORY sermon outline. Cite other Bible "
            "texts abundantly with full references (Book Chapter:Verse) to justify "
            "the exegesis and the application."
        ),
    ),
    Depth.SERMON: DepthProfile(
        tone=(
            "Pastoral, proclamatory, persuasive and eloquent. Focused on oral "
            "delivery and application."
        ),
        guidance=(
            "The whole focus is a complete, structured biblical sermon for the "
            "preacher. The exegesis must serve the homiletics."
        ),
        lexical=(
            "Select 3 to 5 key words that enrich the preaching. Explain them in a "
            "way that can be used from the pulpit."
        ),
        theology=(
            "Present a variety of views (5 to 6) that enrich the preaching, "
            "including: Reformed, Wesleyan, Pentecostal, and quotations from "
            "classic preachers (Spurgeon, Lloyd-Jones). Focus on homiletic "
            "application."
        ),
        sermon=(
            "HIGHEST PRIORITY: Generate a COMPLETE EXPOSITORY SERMON. Structure it "
            "with Introduction, clear divisions (points), illustrations and "
            "conclusion. You MUST use Bible references (e.g. Rm 3:23) in the "
            "explanation and application of EVERY point."
        ),
    ),
}

ACADEMIC_TEMPERATURE = 0.3
DEFAULT_TEMPERATURE = 0.7

STUDY_SCHEMA_NAME = "bible_study"


def sampling_temperature(depth):
    """Academic studies trade creativity for precision."""
    return ACADEMIC_TEMPERATURE if Depth.parse(depth) is Depth.ACADEMIC else DEFAULT_TEMPERATURE


def _build_system_section(depth, profile):
    return f"""You are an expert in biblical exegesis and homiletics.
Your task is to produce a structured Bible study as JSON.

DEPTH SETTING: {depth.value.upper()}

STYLE GUIDELINES:
- Tone: {profile.tone}
- General instruction: {profile.guidance}"""


def _build_content_section(request, profile):
    translation = request.translation
    return f"""Generate a study for the passage: "{request.passage}"
Translation: "{translation.value}" ({translation.display_name})
Write every field in {translation.language}.

Follow these content instructions strictly:

1. LEXICAL ANALYSIS: {profile.lexical}
2. THEOLOGY AND INTERPRETERS: {profile.theology}
3. BASE TEXT: Return the complete text in the {translation.value} translation.
4. PARALLELS AND CORRELATIONS: Look for parallel texts in other books (e.g. for a Gospel, the Synoptics; for the Old Testament, where it is quoted in the New Testament). List at least 3 correlations.
5. STRUCTURE: Fill in every field of the provided JSON Schema.
6. SLIDES: Produce a presentation outline suited to the {request.depth.value} level.
7. SERMON: {profile.sermon}
   - Fill in 'text_focus' stating exactly which verses the sermon focuses on.
   - IMPORTANT: In every sermon point (especially the application) you MUST cite supporting Bible verses. Whenever you quote or allude to Scripture, put the full reference next to it, e.g. "as Paul says (Romans 3:23)"."""


def build_instructions(request):
    profile = DEPTH_PROFILES[request.depth]
    return (
        _build_system_section(request.depth, profile)
        + "\n\n"
        + _build_content_section(request, profile)
    )


# ---- Structured output schema ----


def _string(description=None, nullable=False):
    schema = {"type": ["string", "null"] if nullable else "string"}
    if description:
        schema["description"] = description
    return schema


def _string_list():
    return {"type": "array", "items": {"type": "string"}}


def _object(properties):
    # Strict structured output requires every property to be listed as
    # required; optional members are expressed as nullable instead.
    return {
        "type": "object",
        "properties": properties,
        "required": list(properties),
        "additionalProperties": False,
    }


def _array_of(properties):
    return {"type": "array", "items": _object(properties)}


def _nullable(schema):
    return {"anyOf": [schema, {"type": "null"}]}


def build_output_schema():
    """Returns the depth-independent JSON Schema every study must conform to."""
    sermon = _object(
        {
            "title": _string("An engaging, biblical title for the sermon"),
            "text_focus": _string(
                "The specific verses used for the sermon (e.g. 'Mateus 3:11a-12')"
            ),
            "introduction": _string("Opening hook and the sermon's proposition"),
            "points": _array_of(
                {
                    "title": _string(),
                    "explanation": _string(
                        "Exegetical explanation of the point. MANDATORY: include "
                        "explicit Bible references (e.g. 'as Rm 3:23 says') when "
                        "quoting other texts."
                    ),
                    "illustration": _string("Practical illustration or metaphor"),
                    "application": _string(
                        "Direct application for life today. MANDATORY: cite "
                        "supporting verses with full references."
                    ),
                }
            ),
            "conclusion": _string("Summary and final appeal"),
        }
    )

    content = _object(
        {
            "text_base": _string(),
            "intro_definition": _string(),
            "context_literary": _string(),
            "context_historical": _string(),
            "parallels": _array_of(
                {
                    "reference": _string(),
                    "text": _string(),
                    "correlation": _string(
                        "Relationship type: Synoptic, OT Quote, thematic parallel"
                    ),
                }
            ),
            "lexical_analysis": _array_of(
                {
                    "word": _string(),
                    "lemma": _string(),
                    "transliteration": _string(),
                    "morphology": _string(
                        "Detailed morphology: part of speech, tense, voice, mood, "
                        "case (e.g. 'Aorist Active Indicative Verb')"
                    ),
                    "meaning": _string(
                        "Definition and at least 2 distinct nuances of meaning or "
                        "translation options"
                    ),
                }
            ),
            "intertextuality": _string(),
            "interpretations": _array_of(
                {"tradition": _string(), "summary": _string()}
            ),
            "theologians": _array_of(
                {
                    "name": _string(),
                    "era": _string("Historical era, e.g. 'Patristic', 'Reformation'"),
                    "view": _string(
                        "Summary of their specific view on this passage"
                    ),
                }
            ),
            "implications": _string(),
            "study_questions": _string_list(),
            "bibliography": _array_of(
                {
                    "author": _string(),
                    "title": _string(),
                    "publisher": _string(nullable=True),
                    "year": _string(nullable=True),
                    "annotation": _string(
                        "Brief comment on why this source is valuable"
                    ),
                }
            ),
        }
    )

    return _object(
        {
            "meta": _object(
                {
                    "reference": _string(),
                    "translation": _string(),
                    "generated_at": _string(nullable=True),
                }
            ),
            "summary": _object(
                {"executive": _string(), "preaching_points": _string_list()}
            ),
            "content": content,
            "sermon": _nullable(sermon),
            "slides": _array_of(
                {
                    "title": _string(),
                    "bullets": _string_list(),
                    "image_hint": _string(),
                }
            ),
        }
    )


def build_response_format(output_schema):
    return {
        "type": "json_schema",
        "json_schema": {
            "name": STUDY_SCHEMA_NAME,
            "strict": True,
            "schema": output_schema,
        },
    }


def build_study_prompt(request):
    """Turns a validated StudyRequest into (instructions, output_schema)."""
    return build_instructions(request), build_output_schema()
