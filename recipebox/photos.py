import logging

logger = logging.getLogger(__name__)


def resolve_photo_reference(lookup, query: str, placeholder: str) -> str:
    """Ask the stock-photo ``lookup`` for an image matching ``query``.

    The lookup is best effort: no lookup, an error or an empty answer all
    fall back to ``placeholder`` so a recipe save never fails because of it.
    """
    if lookup is None or not query:
        return placeholder
    try:
        reference = lookup(query)
    except Exception as exc:  # any collaborator failure degrades to placeholder
        logger.warning("Photo lookup failed for %r: %s. Using placeholder.", query, exc)
        return placeholder
    if not reference:
        logger.warning("Photo lookup found nothing for %r. Using placeholder.", query)
        return placeholder
    return reference
