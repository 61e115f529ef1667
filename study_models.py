from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Translation(str, Enum):
    NVI = "NVI"
    NVT = "NVT"
    KJA = "KJA"
    ARC = "ARC"
    ACF = "ACF"
    NIV = "NIV"
    ESV = "ESV"
    KJV = "KJV"

    @property
    def display_name(self):
        return TRANSLATION_NAMES[self]

    @property
    def language(self):
        return TRANSLATION_LANGUAGES[self]

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            accepted = ", ".join(t.value for t in cls)
            raise ValueError(
                f"Unknown translation '{value}'. Accepted: {accepted}."
            ) from None


TRANSLATION_NAMES = {
    Translation.NVI: "Nova Versão Internacional",
    Translation.NVT: "Nova Versão Transformadora",
    Translation.KJA: "King James Atualizada",
    Translation.ARC: "Almeida Revista e Corrigida",
    Translation.ACF: "Almeida Corrigida Fiel",
    Translation.NIV: "New International Version",
    Translation.ESV: "English Standard Version",
    Translation.KJV: "King James Version",
}

TRANSLATION_LANGUAGES = {
    Translation.NVI: "Portuguese",
    Translation.NVT: "Portuguese",
    Translation.KJA: "Portuguese",
    Translation.ARC: "Portuguese",
    Translation.ACF: "Portuguese",
    Translation.NIV: "English",
    Translation.ESV: "English",
    Translation.KJV: "English",
}


class Depth(str, Enum):
    QUICK = "quick"
    DETAILED = "detailed"
    ACADEMIC = "academic"
    SERMON = "sermon"

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        key = DEPTH_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            accepted = ", ".join(d.value for d in cls)
            raise ValueError(f"Unknown depth '{value}'. Accepted: {accepted}.") from None


# Codes used by links shared from the first (Portuguese) release.
DEPTH_ALIASES = {
    "rapido": "quick",
    "detalhado": "detailed",
    "academico": "academic",
    "sermao": "sermon",
}

DEFAULT_TRANSLATION = Translation.NVI
DEFAULT_DEPTH = Depth.DETAILED


@dataclass(frozen=True)
class StudyRequest:
    passage: str
    translation: Translation = DEFAULT_TRANSLATION
    depth: Depth = DEFAULT_DEPTH

    def to_dict(self):
        return {
            "passage": self.passage,
            "translation": self.translation.value,
            "depth": self.depth.value,
        }


@dataclass(frozen=True)
class HistoryEntry:
    passage: str
    translation: Translation
    depth: Depth
    timestamp: int  # epoch milliseconds

    @property
    def request(self):
        return StudyRequest(self.passage, self.translation, self.depth)

    def to_dict(self):
        return {**self.request.to_dict(), "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data):
        return cls(
            passage=str(data["passage"]),
            translation=Translation.parse(data["translation"]),
            depth=Depth.parse(data.get("depth", DEFAULT_DEPTH)),
            timestamp=int(data["timestamp"]),
        )


# ---- Study document (remote payload, validated at the trust boundary) ----


class _DocumentModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class StudyMeta(_DocumentModel):
    reference: str
    translation: str
    generated_at: Optional[str] = None


class StudySummary(_DocumentModel):
    executive: str
    preaching_points: List[str] = Field(default_factory=list)


class ParallelPassage(_DocumentModel):
    reference: str
    text: str
    correlation: str


class LexicalEntry(_DocumentModel):
    word: str
    lemma: str
    transliteration: str = ""
    morphology: str = ""
    meaning: str


class TheologicalPosition(_DocumentModel):
    tradition: str
    summary: str


class Theologian(_DocumentModel):
    name: str
    era: str
    view: str


class BibliographicEntry(_DocumentModel):
    author: str
    title: str
    publisher: Optional[str] = None
    year: Optional[str] = None
    annotation: str


class StudyContent(_DocumentModel):
    text_base: str
    intro_definition: str
    context_literary: str
    context_historical: str
    parallels: List[ParallelPassage] = Field(default_factory=list)
    lexical_analysis: List[LexicalEntry] = Field(default_factory=list)
    intertextuality: str = ""
    interpretations: List[TheologicalPosition] = Field(default_factory=list)
    theologians: List[Theologian] = Field(default_factory=list)
    implications: str
    study_questions: List[str] = Field(default_factory=list)
    bibliography: List[BibliographicEntry] = Field(default_factory=list)


class SermonPoint(_DocumentModel):
    title: str
    explanation: str
    illustration: str
    application: str


class SermonContent(_DocumentModel):
    title: str
    text_focus: str
    introduction: str
    points: List[SermonPoint] = Field(default_factory=list)
    conclusion: str


class SlideContent(_DocumentModel):
    title: str
    bullets: List[str] = Field(default_factory=list)
    image_hint: str = ""


class StudyDocument(_DocumentModel):
    meta: StudyMeta
    summary: StudySummary
    content: StudyContent
    sermon: Optional[SermonContent] = None
    slides: List[SlideContent] = Field(default_factory=list)
