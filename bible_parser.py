import re

# Optional leading numeral ("1 Jo"), book name made of letters, accented
# letters or periods, mandatory whitespace, chapter, optional verse or range.
# Numbers are ASCII digits only; re's \d would also take full-width and
# Arabic-Indic digits.
PASSAGE_PATTERN = re.compile(
    r"^\s*(?:[0-9]\s*)?[a-zA-ZÀ-ÿ\.]+\s+[0-9]+(?:[:\.][0-9]+(?:-[0-9]+)?)?\s*$"
)

REFERENCE_PARTS_PATTERN = re.compile(
    r"^(?P<book>(?:[0-9]\s*)?[a-zA-ZÀ-ÿ\.]+)\s+(?P<chapter>[0-9]+)"
    r"(?:[:\.](?P<start>[0-9]+)(?:-(?P<end>[0-9]+))?)?$"
)

FORMAT_HINT = (
    "Invalid format. Use: Book Chapter:Verse "
    "(e.g. Mateus 3:11, 1 Jo 1:9, Salmos 23)"
)
EMPTY_HINT = "Please enter a Bible passage."


class PassageValidationError(ValueError):
    """Raised when a passage string is rejected before any request is built."""

    def __init__(self, hint):
        super().__init__(hint)
        self.hint = hint


class EmptyPassageError(PassageValidationError):
    def __init__(self):
        super().__init__(EMPTY_HINT)


class PassageFormatError(PassageValidationError):
    def __init__(self, passage):
        super().__init__(FORMAT_HINT)
        self.passage = passage


def validate_passage(passage):
    """
    Checks that a free-text passage looks like "Book Chapter[:Verse[-Verse]]".

    The check is purely syntactic: "Hezekiah 99:1" is accepted. Returns the
    passage with surrounding whitespace removed.
    """
    if passage is None or not passage.strip():
        raise EmptyPassageError()

    if not PASSAGE_PATTERN.match(passage):
        raise PassageFormatError(passage)

    return passage.strip()


def is_valid_passage(passage):
    try:
        validate_passage(passage)
    except PassageValidationError:
        return False
    return True


def parse_reference(reference_str):
    """
    Splits an already valid passage into its components.
    Handles "Book Chapter", "Book Chapter:Verse" and "Book Chapter:Verse-Verse";
    a period may stand in for the colon ("Jo 3.16").
    """
    if not is_valid_passage(reference_str):
        return None

    match = REFERENCE_PARTS_PATTERN.match(reference_str.strip())
    if not match:
        return None

    start_verse_str = match.group("start")
    end_verse_str = match.group("end")
    start_verse = int(start_verse_str) if start_verse_str else None

    return {
        "book_name": re.sub(r"\s+", " ", match.group("book")).strip(),
        "chapter": int(match.group("chapter")),
        "start_verse": start_verse,
        # A single verse is its own range end, as in "John 3:16".
        "end_verse": int(end_verse_str) if end_verse_str else start_verse,
    }
