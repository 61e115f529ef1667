from datetime import datetime


def current_timestamp():
    """Local time, ISO-8601 with UTC offset."""
    return datetime.now().astimezone().isoformat()


def normalize_study(raw_document, request, now=None):
    """
    Returns a copy of the raw document whose metadata reflects the request.

    Whatever the model echoed back, the reference is the passage the user
    asked for, the translation is the requested code and generated_at is the
    time of this call. The raw document is left untouched.
    """
    meta = raw_document.meta.model_copy(
        update={
            "reference": request.passage,
            "translation": request.translation.value,
            "generated_at": now or current_timestamp(),
        }
    )
    return raw_document.model_copy(update={"meta": meta})
