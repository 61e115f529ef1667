from urllib.parse import urlencode

from study_models import DEFAULT_DEPTH, DEFAULT_TRANSLATION, Depth, StudyRequest, Translation


def build_share_query(request):
    return urlencode(
        {
            "ref": request.passage,
            "trans": request.translation.value,
            "depth": request.depth.value,
        }
    )


def build_share_url(base_url, request):
    base = (base_url or "").rstrip("?")
    return f"{base}?{build_share_query(request)}"


def parse_share_query(args):
    """
    Rebuilds a StudyRequest from share-link query parameters.

    `args` is any mapping with `.get` (a Flask `request.args`, a dict).
    Returns None when no reference is present; missing or unknown
    translation and depth fall back to the defaults.
    """
    passage = (args.get("ref") or "").strip()
    if not passage:
        return None

    try:
        translation = Translation.parse(args.get("trans") or DEFAULT_TRANSLATION)
    except ValueError:
        translation = DEFAULT_TRANSLATION

    try:
        depth = Depth.parse(args.get("depth") or DEFAULT_DEPTH)
    except ValueError:
        depth = DEFAULT_DEPTH

    return StudyRequest(passage=passage, translation=translation, depth=depth)
