"""Shareable join links: the room code as a `room` query parameter."""

from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

from .documents import normalize_room_code

ROOM_PARAM = 'room'


def join_link(base_url: str, room_id: str) -> str:
    scheme, netloc, path, query, fragment = urlsplit(base_url)
    params = parse_qs(query)
    params[ROOM_PARAM] = [normalize_room_code(room_id)]
    return urlunsplit((scheme, netloc, path, urlencode(params, doseq=True), fragment))


def room_code_from_url(url: str):
    """Return the upper-cased room code carried by `url`, or None."""
    values = parse_qs(urlsplit(url).query).get(ROOM_PARAM)
    if not values or not values[0].strip():
        return None
    return normalize_room_code(values[0])
