import argparse
import logging
import os
import sys

from dotenv import load_dotenv

from bible_parser import PassageValidationError
from exporters import export_filename, export_markdown, export_word_bytes
from history import JsonFileHistoryStore, load_history, save_history
from llm_handler import DEFAULT_BASE_URL, LLMHandler, create_client
from pdf_renderer import export_pdf
from slide_builder import export_slides
from study_models import Depth, Translation
from study_service import StudyGenerationError, StudyService

# Configure basic logging for the command-line run
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

EXPORTERS = {
    "md": lambda document: export_markdown(document).encode("utf-8"),
    "doc": export_word_bytes,
    "pdf": export_pdf,
    "pptx": export_slides,
}

DEFAULT_HISTORY_FILE = os.path.join(os.path.expanduser("~"), ".exegesis_history.json")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Generate a structured Bible study and export it to files."
    )
    parser.add_argument("passage", help="Bible passage, e.g. 'Mateus 3:11'")
    parser.add_argument(
        "-t", "--translation", default=Translation.NVI.value,
        choices=[t.value for t in Translation],
    )
    parser.add_argument(
        "-d", "--depth", default=Depth.DETAILED.value,
        help="quick, detailed, academic or sermon",
    )
    parser.add_argument(
        "-f", "--format", dest="formats", action="append", choices=sorted(EXPORTERS),
        help="Export format; repeat for several (default: md)",
    )
    parser.add_argument("-o", "--output-dir", default=".")
    parser.add_argument("--history", default=DEFAULT_HISTORY_FILE, help="History JSON file")
    return parser.parse_args(argv)


def build_service():
    api_key = os.getenv("OPENROUTER_API_KEY")
    if not api_key:
        logger.error("OPENROUTER_API_KEY is not set. Cannot generate studies.")
        return None
    client = create_client(api_key, os.getenv("LLM_BASE_URL", DEFAULT_BASE_URL))
    handler = LLMHandler(client, logger, os.getenv("LLM_MODEL", "google/gemini-2.5-flash"))
    return StudyService(handler, logger)


def main(argv=None):
    # In deployed environments these are already set.
    load_dotenv()
    args = parse_args(argv)

    service = build_service()
    if service is None:
        return 2

    try:
        study_request = service.build_request(args.passage, args.translation, args.depth)
    except PassageValidationError as e:
        logger.error(e.hint)
        return 1
    except ValueError as e:
        logger.error(str(e))
        return 1

    store = JsonFileHistoryStore(args.history)
    history = load_history(store, logger)
    try:
        document, history = service.submit(study_request, history)
    except StudyGenerationError as e:
        save_history(store, e.history, logger)
        logger.error(f"{e.message} Cause: {e.__cause__!r}")
        return 1
    save_history(store, history, logger)

    os.makedirs(args.output_dir, exist_ok=True)
    for fmt in args.formats or ["md"]:
        path = os.path.join(args.output_dir, export_filename(document, fmt))
        with open(path, "wb") as f:
            f.write(EXPORTERS[fmt](document))
        logger.info(f"Wrote {path}")
    return 0


def cli():
    sys.exit(main())


if __name__ == '__main__':
    cli()
