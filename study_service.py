from bible_parser import parse_reference, validate_passage
from normalizer import normalize_study
from prompt_builder import build_study_prompt
from study_models import DEFAULT_DEPTH, DEFAULT_TRANSLATION, Depth, StudyRequest, Translation

GENERIC_FAILURE_MESSAGE = (
    "An error occurred while generating the study. Check your API key or try "
    "again in a few moments."
)


class StudyGenerationError(Exception):
    """User-facing failure; the original error is kept as __cause__."""

    def __init__(self, message=GENERIC_FAILURE_MESSAGE):
        super().__init__(message)
        self.message = message


class StudyService:
    def __init__(self, llm_handler, logger):
        self.llm_handler = llm_handler
        self.logger = logger

    def build_request(self, passage, translation=None, depth=None):
        """Validates raw user input. Raises PassageValidationError or ValueError."""
        return StudyRequest(
            passage=validate_passage(passage),
            translation=Translation.parse(translation or DEFAULT_TRANSLATION),
            depth=Depth.parse(depth or DEFAULT_DEPTH),
        )

    def create_study(self, request):
        instructions, output_schema = build_study_prompt(request)
        parts = parse_reference(request.passage) or {}
        self.logger.info(
            f"Generating study for '{request.passage}' (book: {parts.get('book_name')}, chapter: {parts.get('chapter')}, {request.translation.value}, {request.depth.value})."
        )
        try:
            raw_document = self.llm_handler.fetch_study(
                instructions, output_schema, request.depth
            )
        except Exception as e:
            self.logger.error(
                f"Study generation failed for '{request.passage}': {type(e).__name__}: {e}"
            )
            raise StudyGenerationError() from e

        return normalize_study(raw_document, request)

    def submit(self, request, history):
        """
        Records the request in the history, then generates the study.

        Returns (document, history). The history is updated even when
        generation fails; the caller receives the new history on the
        StudyGenerationError as `.history`.
        """
        history = history.add(request)
        try:
            document = self.create_study(request)
        except StudyGenerationError as e:
            e.history = history
            raise
        return document, history
