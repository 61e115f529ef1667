import io
import os

from dotenv import load_dotenv
from flask import Flask, request, send_file, session
from flask_restx import Api, Resource, fields
from pydantic import ValidationError

from bible_parser import PassageValidationError
from exporters import export_filename, export_markdown, export_word_bytes
from history import SessionHistoryStore, StudyHistory, load_history, save_history
from llm_handler import DEFAULT_BASE_URL, LLMHandler, create_client
from pdf_renderer import export_pdf
from share_link import build_share_url, parse_share_query
from slide_builder import export_slides
from study_models import Depth, StudyDocument, Translation
from study_service import StudyGenerationError, StudyService

load_dotenv()  # Load variables from .env file

app = Flask(__name__)
app.secret_key = os.getenv(
    "FLASK_SECRET_KEY", os.urandom(24)
)  # Needed for session management

# ---- Flask-RESTX API setup ----
api = Api(
    app,
    version="1.0",
    title="Exegesis AI API",
    description="Generate structured Bible studies and export them as Markdown, Word, PDF or slides",
    prefix="/api",
    doc="/docs",  # Swagger UI served at /docs
)

study_request_model = api.model(
    "StudyRequest",
    {
        "passage": fields.String(
            required=True, description="Bible passage, e.g. 'Mateus 3:11' or '1 Jo 1:9'"
        ),
        "translation": fields.String(
            required=False,
            description="Bible translation code",
            enum=[t.value for t in Translation],
            default=Translation.NVI.value,
        ),
        "depth": fields.String(
            required=False,
            description="Study depth",
            enum=[d.value for d in Depth],
            default=Depth.DETAILED.value,
        ),
    },
)

history_entry_model = api.model(
    "HistoryEntry",
    {
        "passage": fields.String,
        "translation": fields.String,
        "depth": fields.String,
        "timestamp": fields.Integer(description="Epoch milliseconds"),
    },
)

EXPORT_FORMATS = {
    "md": ("text/markdown; charset=utf-8", "md"),
    "doc": ("application/msword", "doc"),
    "pdf": ("application/pdf", "pdf"),
    "pptx": (
        "application/vnd.openxmlformats-officedocument.presentationml.presentation",
        "pptx",
    ),
}

OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY")
LLM_BASE_URL = os.getenv("LLM_BASE_URL", DEFAULT_BASE_URL)
LLM_MODEL = os.getenv("LLM_MODEL", "google/gemini-2.5-flash")
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL")

# Initialize OpenAI client (OpenRouter by default)
if OPENROUTER_API_KEY:
    client = create_client(OPENROUTER_API_KEY, LLM_BASE_URL)
else:
    app.logger.error(
        "OPENROUTER_API_KEY not found in .env file. LLM functionality will be disabled."
    )
    client = None  # Explicitly set client to None if key is missing

llm_handler = LLMHandler(client, app.logger, LLM_MODEL)
study_service = StudyService(llm_handler, app.logger)


def _export(document, fmt):
    if fmt == "md":
        return export_markdown(document).encode("utf-8")
    if fmt == "doc":
        return export_word_bytes(document)
    if fmt == "pdf":
        return export_pdf(document)
    return export_slides(document)


def _share_base_url():
    return PUBLIC_BASE_URL or request.host_url.rstrip("/") + "/"


def run_submission(passage, translation=None, depth=None):
    """Shared by direct submissions and opened share links."""
    if not llm_handler.is_configured:
        api.abort(503, "LLM service is not configured on the server.")

    try:
        study_request = study_service.build_request(passage, translation, depth)
    except PassageValidationError as e:
        api.abort(400, e.hint)
    except ValueError as e:
        api.abort(400, str(e))

    store = SessionHistoryStore(session)
    history = load_history(store, app.logger)
    try:
        document, history = study_service.submit(study_request, history)
    except StudyGenerationError as e:
        save_history(store, e.history, app.logger)
        api.abort(502, e.message)

    save_history(store, history, app.logger)
    return {
        "study": document.model_dump(mode="json"),
        "share_url": build_share_url(_share_base_url(), study_request),
    }


@api.route("/study")
class StudyEndpoint(Resource):
    @api.expect(study_request_model)
    def post(self):
        """Generate a study for a Bible passage"""
        payload = api.payload or {}
        return run_submission(
            payload.get("passage"), payload.get("translation"), payload.get("depth")
        )


@api.route("/study/shared")
class SharedStudyEndpoint(Resource):
    @api.doc(params={"ref": "Bible passage", "trans": "Translation code", "depth": "Study depth"})
    def get(self):
        """Re-run the study encoded in a share link"""
        shared = parse_share_query(request.args)
        if shared is None:
            api.abort(400, "Share link has no 'ref' parameter.")
        return run_submission(
            shared.passage, shared.translation.value, shared.depth.value
        )


@api.route("/history")
class HistoryEndpoint(Resource):
    @api.doc(params={"filter": "Case-insensitive search on passage or translation"})
    @api.marshal_list_with(history_entry_model)
    def get(self):
        """List recent study requests, most recent first"""
        history = load_history(SessionHistoryStore(session), app.logger)
        return [entry.to_dict() for entry in history.filter(request.args.get("filter", ""))]

    def delete(self):
        """Clear the study history"""
        save_history(SessionHistoryStore(session), StudyHistory(), app.logger)
        return "", 204


@api.route("/export/<string:fmt>")
class ExportEndpoint(Resource):
    def post(self, fmt):
        """Export a generated study (md, doc, pdf or pptx)"""
        if fmt not in EXPORT_FORMATS:
            api.abort(404, f"Unknown export format '{fmt}'.")

        payload = api.payload or {}
        try:
            document = StudyDocument.model_validate(payload.get("study", payload))
        except ValidationError as e:
            app.logger.warning(f"Rejected export request: {e}")
            api.abort(400, "Request body is not a valid study document.")

        mimetype, extension = EXPORT_FORMATS[fmt]
        data = _export(document, fmt)
        app.logger.info(
            f"Exported '{document.meta.reference}' as {fmt} ({len(data)} bytes)."
        )
        return send_file(
            io.BytesIO(data),
            mimetype=mimetype,
            as_attachment=True,
            download_name=export_filename(document, extension),
        )


if __name__ == "__main__":
    app.run(debug=True)
